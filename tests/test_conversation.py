"""Tests for the optimistic send pipeline and conversation switching."""
import asyncio

import pytest

from mathfluent.chat import (
    ChatNavigator,
    ChatService,
    Conversation,
    ConversationView,
    MessageSender,
    MessageStatus,
)
from mathfluent.errors import ChatServiceError, StoreError
from mathfluent.notifications import NotificationVariant

ROOM = Conversation.room("r1")
BOB = MessageSender(id="u2", name="Bob")


async def settle():
    """Give the listener task time to apply queued snapshots."""
    await asyncio.sleep(0.01)


class GatedService(ChatService):
    """Chat service whose sends wait until released."""

    def __init__(self, store):
        super().__init__(store)
        self.gate = asyncio.Event()

    async def send_message(self, *args, **kwargs):
        await self.gate.wait()
        return await super().send_message(*args, **kwargs)


class FailingSendService(ChatService):
    """Chat service that cannot send."""

    async def send_message(self, *args, **kwargs):
        raise ChatServiceError("Failed to send message.")


class ThreadUpdateFailingStore:
    """Store wrapper whose thread-timestamp merges fail."""

    def __init__(self, store):
        self._store = store

    def __getattr__(self, name):
        return getattr(self._store, name)

    async def set(self, collection, doc_id, data, merge=False):
        if merge:
            raise StoreError("unavailable")
        return await self._store.set(collection, doc_id, data, merge=merge)


class TestConversationView:
    """Tests for ConversationView."""

    @pytest.mark.asyncio
    async def test_pending_visible_before_store_write(self, store, signed_in):
        """Test that the message and cleared draft appear before the send completes."""
        service = GatedService(store)
        async with ConversationView(service, ROOM, signed_in) as view:
            view.draft = "hello"
            task = asyncio.create_task(view.send())
            await settle()

            assert [m.text for m in view.messages] == ["hello"]
            assert view.messages[0].status == MessageStatus.PENDING
            assert view.messages[0].id.startswith("temp_")
            assert view.draft == ""
            assert view.is_sending

            service.gate.set()
            outcome = await task

        assert outcome.status == MessageStatus.SENT
        assert not view.is_sending

    @pytest.mark.asyncio
    async def test_echo_replaces_local_copy(self, store, signed_in):
        """Test that exactly one copy remains once the store echoes the message."""
        async with ConversationView(ChatService(store), ROOM, signed_in) as view:
            await view.send("x = 2")
            await settle()

            assert len(view.messages) == 1
            message = view.messages[0]
            assert message.text == "x = 2"
            assert not message.id.startswith("temp_")
            assert message.status is None
            assert message.sender.id == signed_in.user.id
            assert message.sender.name == "alice"
            assert message.sender.avatar == "https://picsum.photos/seed/alice@example.com/40/40"

    @pytest.mark.asyncio
    async def test_failed_send(self, store, signed_in, notifier):
        """Test that a failed send is marked, kept, and its text restored to the draft."""
        async with ConversationView(FailingSendService(store), ROOM, signed_in, notifier) as view:
            view.draft = "lost?"
            outcome = await view.send()
            await settle()

            assert outcome.status == MessageStatus.FAILED
            assert [m.status for m in view.messages] == [MessageStatus.FAILED]
            assert view.draft == "lost?"
            assert not view.is_sending

        assert notifier.notifications[-1].title == "Error"
        assert notifier.notifications[-1].description == "Could not send message."
        assert notifier.notifications[-1].variant == NotificationVariant.DESTRUCTIVE

    @pytest.mark.asyncio
    async def test_failed_message_survives_snapshots(self, store, signed_in, notifier):
        """Test that later snapshots do not remove a failed message."""
        async with ConversationView(FailingSendService(store), ROOM, signed_in, notifier) as view:
            await view.send("first")
            await ChatService(store).send_message(ROOM, BOB, "hi")
            await settle()

            assert [(m.text, m.status) for m in view.messages] == [
                ("hi", None),
                ("first", MessageStatus.FAILED),
            ]

    @pytest.mark.asyncio
    async def test_direct_send_with_stale_thread_timestamp(self, store, signed_in, notifier):
        """Test that a stored direct message shows once and is not restored to the draft."""
        service = ChatService(ThreadUpdateFailingStore(store))  # type: ignore[arg-type]
        thread_id = await service.get_or_create_direct_thread(signed_in.user.id, "teacher-1")

        async with ConversationView(service, Conversation.direct(thread_id), signed_in, notifier) as view:
            outcome = await view.send("hello")
            await settle()

            assert outcome.status == MessageStatus.SENT
            assert [m.text for m in view.messages] == ["hello"]
            assert view.messages[0].status is None
            assert view.draft == ""

        assert notifier.drain() == []

    @pytest.mark.asyncio
    async def test_refused_when_signed_out(self, store, auth_session, notifier):
        """Test that sending without a user shows nothing and notifies."""
        async with ConversationView(ChatService(store), ROOM, auth_session, notifier) as view:
            view.draft = "hello"
            outcome = await view.send()

            assert not outcome.accepted
            assert view.messages == []
            assert view.draft == "hello"

        assert notifier.notifications[-1].variant == NotificationVariant.DESTRUCTIVE

    @pytest.mark.asyncio
    async def test_blank_text_ignored(self, store, signed_in, notifier):
        """Test that whitespace-only messages are not sent."""
        async with ConversationView(ChatService(store), ROOM, signed_in, notifier) as view:
            outcome = await view.send("   ")
            await settle()

            assert not outcome.accepted
            assert view.messages == []
            assert notifier.notifications == []

    @pytest.mark.asyncio
    async def test_concurrent_sends(self, store, signed_in):
        """Test that overlapping sends each end with exactly one copy, in order."""
        async with ConversationView(ChatService(store), ROOM, signed_in) as view:
            await asyncio.gather(view.send("a"), view.send("b"), view.send("a"))
            await settle()

            assert sorted(m.text for m in view.messages) == ["a", "a", "b"]
            assert all(m.status is None for m in view.messages)

    @pytest.mark.asyncio
    async def test_other_participants_messages(self, store, signed_in):
        """Test that messages from others appear through the live query."""
        changes = []
        async with ConversationView(ChatService(store), ROOM, signed_in, on_change=changes.append) as view:
            await ChatService(store).send_message(ROOM, BOB, "hello from bob")
            await settle()

            assert [m.text for m in view.messages] == ["hello from bob"]
            assert [m.text for m in changes[-1]] == ["hello from bob"]

    @pytest.mark.asyncio
    async def test_close_stops_updates(self, store, signed_in):
        """Test that no deliveries are shown after the view is closed."""
        changes = []
        view = ConversationView(ChatService(store), ROOM, signed_in, on_change=changes.append)
        await view.open()
        await settle()
        await view.close()
        seen = len(changes)

        await ChatService(store).send_message(ROOM, BOB, "too late")
        await settle()

        assert len(changes) == seen
        assert view.messages == []
        assert not view.is_open

    @pytest.mark.asyncio
    async def test_reopen_resumes_updates(self, store, signed_in):
        """Test that a view opened again after close reports changes again."""
        changes = []
        view = ConversationView(ChatService(store), ROOM, signed_in, on_change=changes.append)
        await view.open()
        await view.close()

        await view.open()
        await ChatService(store).send_message(ROOM, BOB, "welcome back")
        await settle()
        await view.close()

        assert changes
        assert [m.text for m in changes[-1]] == ["welcome back"]

    @pytest.mark.asyncio
    async def test_subscription_failure_is_recorded(self, store, signed_in):
        """Test that a failing live query ends listening with an error."""
        async with ConversationView(ChatService(store), ROOM, signed_in) as view:
            view._subscription.fail(RuntimeError("connection lost"))
            await settle()

            assert view.error == "connection lost"


class TestChatNavigator:
    """Tests for ChatNavigator."""

    @pytest.mark.asyncio
    async def test_select_closes_previous(self, store, signed_in):
        """Test that switching conversations tears down the previous view."""
        service = ChatService(store)
        async with ChatNavigator(service, signed_in) as nav:
            first = await nav.select(Conversation.room("r1"))
            second = await nav.select(Conversation.room("r2"))

            assert not first.is_open
            assert second.is_open
            assert nav.current is second

            await service.send_message(Conversation.room("r1"), BOB, "in r1")
            await service.send_message(Conversation.room("r2"), BOB, "in r2")
            await settle()

            assert first.messages == []
            assert [m.text for m in second.messages] == ["in r2"]

        assert not second.is_open
        assert nav.current is None

    @pytest.mark.asyncio
    async def test_open_direct(self, store, signed_in):
        """Test opening a direct thread with a peer."""
        async with ChatNavigator(ChatService(store), signed_in) as nav:
            view = await nav.open_direct("u2")
            await view.send("hi Bob")
            await settle()

        expected = "_".join(sorted([signed_in.user.id, "u2"]))
        assert view.conversation == Conversation.direct(expected)
        assert view.messages[0].dm_thread_id == expected

    @pytest.mark.asyncio
    async def test_open_direct_requires_user(self, store, auth_session):
        """Test that a direct thread needs a signed-in user."""
        nav = ChatNavigator(ChatService(store), auth_session)

        with pytest.raises(ChatServiceError):
            await nav.open_direct("u2")
