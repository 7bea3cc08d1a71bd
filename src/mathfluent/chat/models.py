"""Data models for rooms, direct threads and messages."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..config import (
    DIRECT_MESSAGE_LIMIT,
    ROOM_DESCRIPTION_MAX_LENGTH,
    ROOM_MESSAGE_LIMIT,
    ROOM_NAME_MAX_LENGTH,
    ROOM_NAME_MIN_LENGTH,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MessageStatus(str, Enum):
    """Delivery state of a locally-originated message."""

    PENDING = "pending"  # Shown optimistically, store write in flight
    SENT = "sent"        # Store accepted it; awaiting the server echo
    FAILED = "failed"    # Store write failed; user may resubmit


class RoomType(str, Enum):
    """Visibility of a chat room."""

    PUBLIC = "public"
    PRIVATE = "private"


class MessageSender(BaseModel):
    """Identity shown next to a message."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    avatar: str | None = None


class Message(BaseModel):
    """A chat message in a room or a direct thread.

    Messages read from the store have no ``status``; only messages created
    by the local send pipeline carry one.
    """

    id: str
    text: str
    sender: MessageSender
    timestamp: datetime = Field(default_factory=_utcnow)
    room_id: str | None = None
    dm_thread_id: str | None = None
    status: MessageStatus | None = None
    client_token: str | None = Field(
        default=None,
        description="Sender-generated token echoed by the store, used to correlate the echo"
    )

    @model_validator(mode="after")
    def exactly_one_conversation(self) -> "Message":
        if (self.room_id is None) == (self.dm_thread_id is None):
            raise ValueError("a message belongs to exactly one of a room or a direct thread")
        return self

    @property
    def is_local(self) -> bool:
        """True for messages created by the local send pipeline."""
        return self.status is not None


class Conversation(BaseModel):
    """A room or direct thread a view is attached to."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["room", "direct"]
    id: str

    @classmethod
    def room(cls, room_id: str) -> "Conversation":
        return cls(kind="room", id=room_id)

    @classmethod
    def direct(cls, thread_id: str) -> "Conversation":
        return cls(kind="direct", id=thread_id)

    @property
    def message_limit(self) -> int:
        """How many of the most recent messages a live view holds."""
        return ROOM_MESSAGE_LIMIT if self.kind == "room" else DIRECT_MESSAGE_LIMIT

    def association(self) -> dict[str, Any]:
        """Message fields tying a message to this conversation."""
        if self.kind == "room":
            return {"room_id": self.id}
        return {"dm_thread_id": self.id}


class ChatRoomForm(BaseModel):
    """Fields a user fills in to create a room."""

    model_config = ConfigDict(str_strip_whitespace=True)

    room_name: str = Field(min_length=ROOM_NAME_MIN_LENGTH, max_length=ROOM_NAME_MAX_LENGTH)
    description: str | None = Field(default=None, max_length=ROOM_DESCRIPTION_MAX_LENGTH)
    room_type: RoomType = RoomType.PUBLIC
    enable_ai_assistant: bool = False


class ChatRoom(ChatRoomForm):
    """A created room. Rooms are not edited after creation."""

    model_config = ConfigDict(frozen=True)

    id: str
    created_by: str
    created_at: datetime = Field(default_factory=_utcnow)
    members: list[str] = Field(default_factory=list)


class DirectMessageThread(BaseModel):
    """A persistent conversation between exactly two users."""

    model_config = ConfigDict(frozen=True)

    id: str
    participants: list[str] = Field(min_length=2, max_length=2)
    created_at: datetime = Field(default_factory=_utcnow)
    last_message_at: datetime | None = None
