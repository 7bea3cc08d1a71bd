"""Per-view chat state: live messages plus the optimistic send pipeline.

A ``ConversationView`` owns the visible message list of one room or direct
thread. It is mutated only by its own callbacks (snapshot deliveries and
send outcomes) on the event loop, so no locking is needed.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict

from ..auth import AuthSession
from ..errors import ChatServiceError
from ..notifications import Notifier, notify
from ..store import Subscription
from .merge import merge_snapshot
from .models import Conversation, Message, MessageSender, MessageStatus
from .service import ChatService

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[list[Message]], None]


class SendOutcome(BaseModel):
    """What happened to one send request."""

    model_config = ConfigDict(frozen=True)

    message: Message | None = None
    status: MessageStatus | None = None
    error: str | None = None

    @property
    def accepted(self) -> bool:
        """False when the send was refused before anything was shown."""
        return self.message is not None


class ConversationView:
    """Messages of one conversation as shown to the signed-in user.

    Usage:
        async with ConversationView(service, conversation, session) as view:
            view.draft = "hello"
            await view.send()
    """

    def __init__(
        self,
        service: ChatService,
        conversation: Conversation,
        session: AuthSession,
        notifier: Notifier | None = None,
        on_change: ChangeCallback | None = None
    ):
        self._service = service
        self._session = session
        self._notifier = notifier
        self._on_change = on_change
        self._subscription: Subscription[list[Message]] | None = None
        self._listener: asyncio.Task | None = None
        self._in_flight = 0
        self._closed = False
        self.conversation = conversation
        self.messages: list[Message] = []
        self.draft: str = ""
        self.error: str | None = None

    @property
    def is_sending(self) -> bool:
        """True while a send is in flight; only meant to disable a submit control."""
        return self._in_flight > 0

    @property
    def is_open(self) -> bool:
        return self._subscription is not None and not self._subscription.closed

    def _changed(self) -> None:
        if self._closed:
            return
        if self._on_change is not None:
            self._on_change(list(self.messages))

    async def open(self) -> None:
        """Subscribe to the conversation and start applying snapshots."""
        if self._subscription is not None:
            return
        self._closed = False
        try:
            self._subscription = await self._service.subscribe(self.conversation)
        except ChatServiceError as e:
            self.error = str(e)
            notify(self._notifier, "Chat Error", str(e), destructive=True)
            raise
        self._listener = asyncio.create_task(self._listen(self._subscription))

    async def close(self) -> None:
        """Stop listening. Later deliveries and send outcomes are not shown."""
        self._closed = True
        subscription, self._subscription = self._subscription, None
        listener, self._listener = self._listener, None
        if subscription is not None:
            await subscription.close()
        if listener is not None:
            listener.cancel()
            try:
                await listener
            except asyncio.CancelledError:
                pass

    async def _listen(self, subscription: Subscription[list[Message]]) -> None:
        try:
            async for server_messages in subscription:
                self.apply_snapshot(server_messages)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception("Subscription to %s %s failed", self.conversation.kind, self.conversation.id)
            self.error = str(e) or type(e).__name__

    def apply_snapshot(self, server_messages: list[Message]) -> None:
        """Merge an authoritative snapshot into the visible list."""
        self.messages = merge_snapshot(self.messages, server_messages)
        self._changed()

    def _set_status(self, message_id: str, status: MessageStatus) -> None:
        self.messages = [
            m.model_copy(update={"status": status}) if m.id == message_id else m
            for m in self.messages
        ]
        self._changed()

    async def send(self, text: str | None = None) -> SendOutcome:
        """Send ``text`` (default: the current draft) optimistically.

        The pending message is visible and the draft cleared before the store
        is contacted. On failure the message is marked failed and its text is
        put back into the draft.
        """
        text = self.draft if text is None else text
        user = self._session.user

        if not text.strip():
            return SendOutcome(error="Message is empty.")
        if user is None:
            notify(self._notifier, "Error", "You must be logged in to send messages.", destructive=True)
            return SendOutcome(error="Not signed in.")

        sender = MessageSender(id=user.id, name=user.display_name, avatar=user.avatar_url)
        message = Message(
            id=f"temp_{uuid4().hex}",
            text=text,
            sender=sender,
            timestamp=datetime.now(timezone.utc),
            status=MessageStatus.PENDING,
            client_token=uuid4().hex,
            **self.conversation.association(),
        )
        self.messages = [*self.messages, message]
        self.draft = ""
        self._changed()

        self._in_flight += 1
        try:
            await self._service.send_message(
                self.conversation, sender, text, client_token=message.client_token
            )
        except ChatServiceError as e:
            self._set_status(message.id, MessageStatus.FAILED)
            self.draft = text
            notify(self._notifier, "Error", "Could not send message.", destructive=True)
            return SendOutcome(message=message, status=MessageStatus.FAILED, error=str(e))
        finally:
            self._in_flight -= 1

        self._set_status(message.id, MessageStatus.SENT)
        return SendOutcome(message=message, status=MessageStatus.SENT)

    async def __aenter__(self) -> "ConversationView":
        await self.open()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


class ChatNavigator:
    """Switches the single open conversation of a chat screen.

    The previous view is always closed before the next one subscribes.
    """

    def __init__(
        self,
        service: ChatService,
        session: AuthSession,
        notifier: Notifier | None = None,
        on_change: ChangeCallback | None = None
    ):
        self._service = service
        self._session = session
        self._notifier = notifier
        self._on_change = on_change
        self.current: ConversationView | None = None

    async def select(self, conversation: Conversation) -> ConversationView:
        """Close the open conversation, if any, and open ``conversation``."""
        await self.close()
        view = ConversationView(
            self._service, conversation, self._session, self._notifier, self._on_change
        )
        await view.open()
        self.current = view
        return view

    async def open_direct(self, peer_id: str) -> ConversationView:
        """Open the direct thread between the signed-in user and ``peer_id``."""
        user = self._session.user
        if user is None:
            raise ChatServiceError("You must be logged in to send messages.")
        try:
            thread_id = await self._service.get_or_create_direct_thread(user.id, peer_id)
        except ChatServiceError as e:
            notify(self._notifier, "Chat Error", "Could not initialize chat.", destructive=True)
            raise e
        return await self.select(Conversation.direct(thread_id))

    async def close(self) -> None:
        view, self.current = self.current, None
        if view is not None:
            await view.close()

    async def __aenter__(self) -> "ChatNavigator":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
