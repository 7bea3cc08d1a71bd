"""Chat persistence: rooms, direct threads, message sends and live queries.

Store failures are logged and re-raised as ``ChatServiceError`` carrying a
message that is safe to show to the user.
"""

import logging
from typing import Any

from pydantic import ValidationError

from ..config import DIRECT_THREADS_COLLECTION, MESSAGES_SUBCOLLECTION, ROOMS_COLLECTION
from ..errors import ChatServiceError, StoreError
from ..store import SERVER_TIMESTAMP, Document, DocumentStore, Query, Subscription
from .models import (
    ChatRoom,
    ChatRoomForm,
    Conversation,
    DirectMessageThread,
    Message,
    MessageSender,
)
from .threads import direct_thread_id

logger = logging.getLogger(__name__)


def messages_collection(conversation: Conversation) -> str:
    """Collection path holding a conversation's messages."""
    parent = ROOMS_COLLECTION if conversation.kind == "room" else DIRECT_THREADS_COLLECTION
    return f"{parent}/{conversation.id}/{MESSAGES_SUBCOLLECTION}"


def _to_messages(documents: list[Document]) -> list[Message]:
    messages = []
    for doc in documents:
        try:
            messages.append(Message.model_validate(doc.to_dict()))
        except ValidationError:
            logger.warning("Skipping malformed message %s in %s", doc.id, doc.collection)
    return messages


class ChatService:
    """Chat operations on top of a document store.

    Hidden design decisions:
    - Collection layout (rooms, threads and their message sub-collections)
    - Server-assigned timestamps
    - Live query bounds per conversation kind
    """

    def __init__(self, store: DocumentStore):
        self._store = store

    async def create_room(self, form: ChatRoomForm, user_id: str) -> str:
        """Create a room with its creator as the only member."""
        data: dict[str, Any] = {
            **form.model_dump(mode="json"),
            "created_by": user_id,
            "created_at": SERVER_TIMESTAMP,
            "members": [user_id],
        }
        try:
            room_id = await self._store.add(ROOMS_COLLECTION, data)
        except StoreError as e:
            logger.error("Error adding chat room: %s", e)
            raise ChatServiceError("Failed to create chat room.") from e

        logger.info("Created room %s (%s)", room_id, form.room_name)
        return room_id

    async def list_rooms(self) -> list[ChatRoom]:
        """All rooms, newest first."""
        try:
            documents = await self._store.query(
                Query(collection=ROOMS_COLLECTION, order_by="created_at", descending=True)
            )
        except StoreError as e:
            logger.error("Error fetching chat rooms: %s", e)
            raise ChatServiceError("Failed to fetch chat rooms.") from e

        return [ChatRoom.model_validate(doc.to_dict()) for doc in documents]

    async def get_room(self, room_id: str) -> ChatRoom | None:
        try:
            document = await self._store.get(ROOMS_COLLECTION, room_id)
        except StoreError as e:
            logger.error("Error fetching chat room %s: %s", room_id, e)
            raise ChatServiceError("Failed to fetch chat room.") from e

        return ChatRoom.model_validate(document.to_dict()) if document else None

    async def get_or_create_direct_thread(self, user_id_1: str, user_id_2: str) -> str:
        """Return the shared thread id, creating the thread document on first use."""
        thread_id = direct_thread_id(user_id_1, user_id_2)
        try:
            if await self._store.get(DIRECT_THREADS_COLLECTION, thread_id) is None:
                await self._store.set(DIRECT_THREADS_COLLECTION, thread_id, {
                    "participants": [user_id_1, user_id_2],
                    "created_at": SERVER_TIMESTAMP,
                    "last_message_at": SERVER_TIMESTAMP,
                })
        except StoreError as e:
            logger.error("Error getting or creating DM thread: %s", e)
            raise ChatServiceError("Failed to initialize direct message thread.") from e

        return thread_id

    async def get_direct_thread(self, thread_id: str) -> DirectMessageThread | None:
        try:
            document = await self._store.get(DIRECT_THREADS_COLLECTION, thread_id)
        except StoreError as e:
            logger.error("Error fetching DM thread %s: %s", thread_id, e)
            raise ChatServiceError("Failed to fetch direct message thread.") from e

        return DirectMessageThread.model_validate(document.to_dict()) if document else None

    async def send_message(
        self,
        conversation: Conversation,
        sender: MessageSender,
        text: str,
        client_token: str | None = None
    ) -> str:
        """Append a message; the store assigns its id and timestamp."""
        data: dict[str, Any] = {
            "text": text,
            "sender": sender.model_dump(mode="json"),
            "timestamp": SERVER_TIMESTAMP,
            **conversation.association(),
        }
        if client_token is not None:
            data["client_token"] = client_token

        try:
            message_id = await self._store.add(messages_collection(conversation), data)
        except StoreError as e:
            logger.error("Error sending message to %s %s: %s", conversation.kind, conversation.id, e)
            raise ChatServiceError("Failed to send message.") from e

        # The message is stored; a stale thread timestamp must not fail the send
        if conversation.kind == "direct":
            try:
                await self._store.set(
                    DIRECT_THREADS_COLLECTION,
                    conversation.id,
                    {"last_message_at": SERVER_TIMESTAMP},
                    merge=True,
                )
            except StoreError as e:
                logger.warning("Could not update last_message_at of %s: %s", conversation.id, e)

        return message_id

    async def subscribe(self, conversation: Conversation) -> Subscription[list[Message]]:
        """Live, ascending view of the conversation's most recent messages."""
        query = Query(
            collection=messages_collection(conversation),
            order_by="timestamp",
            limit=conversation.message_limit,
            limit_to_last=True,
        )
        try:
            subscription = await self._store.watch(query)
        except StoreError as e:
            logger.error("Error subscribing to %s %s: %s", conversation.kind, conversation.id, e)
            raise ChatServiceError("Failed to load messages.") from e

        return subscription.map(_to_messages)
