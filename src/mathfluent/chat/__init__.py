"""Community rooms and direct messages with optimistic sends."""

from .conversation import ChatNavigator, ConversationView, SendOutcome
from .merge import merge_snapshot
from .models import (
    ChatRoom,
    ChatRoomForm,
    Conversation,
    DirectMessageThread,
    Message,
    MessageSender,
    MessageStatus,
    RoomType,
)
from .service import ChatService, messages_collection
from .threads import direct_thread_id

__all__ = [
    "ChatNavigator",
    "ChatRoom",
    "ChatRoomForm",
    "ChatService",
    "Conversation",
    "ConversationView",
    "DirectMessageThread",
    "Message",
    "MessageSender",
    "MessageStatus",
    "RoomType",
    "SendOutcome",
    "direct_thread_id",
    "merge_snapshot",
    "messages_collection",
]
