"""Pytest configuration and shared fixtures."""
import logging
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from mathfluent.auth import AuthSession, InMemorySessionStorage
from mathfluent.chat import ChatService
from mathfluent.llm import LLMProvider, LLMResponse
from mathfluent.notifications import RecordingNotifier
from mathfluent.store import create_document_store


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo configure_logging so records reach caplog in later tests."""
    yield
    logger = logging.getLogger("mathfluent")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest_asyncio.fixture
async def store():
    """Connected in-memory document store."""
    store = create_document_store("memory")
    await store.connect()
    yield store
    await store.disconnect()


@pytest_asyncio.fixture
async def sqlite_store(tmp_path):
    """Connected SQLite document store in a temporary directory."""
    store = create_document_store("sqlite", path=tmp_path / "test.db")
    await store.connect()
    yield store
    await store.disconnect()


@pytest.fixture
def notifier():
    """Notifier that records everything it is given."""
    return RecordingNotifier()


@pytest.fixture
def auth_session(notifier):
    """Signed-out session without the simulated network delay."""
    session = AuthSession(InMemorySessionStorage(), notifier, delay=0)
    session.load()
    return session


@pytest_asyncio.fixture
async def signed_in(auth_session, notifier):
    """Session signed in as alice@example.com."""
    await auth_session.login("alice@example.com", "secret")
    notifier.drain()
    return auth_session


@pytest.fixture
def chat_service(store):
    return ChatService(store)


@pytest.fixture
def make_llm():
    """Factory for LLM doubles answering each call with the next content in turn."""
    def factory(*contents: str) -> AsyncMock:
        llm = AsyncMock(spec=LLMProvider)
        llm.chat_completion.side_effect = [
            LLMResponse(content=content, model="test-model") for content in contents
        ]
        return llm
    return factory


@pytest.fixture
def sample_solution():
    """Solution text as typically returned by the AI service."""
    return (
        "Step 1: Subtract 3 from both sides: $2x = 4$\n"
        "\n"
        "Step 2: Divide both sides by 2.\n"
        "$$x = 2$$\n"
        "Step 3: Check: $2(2) + 3 = 7$"
    )
