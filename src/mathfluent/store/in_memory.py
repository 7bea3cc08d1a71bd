"""In-memory document store backend.

Dict-based storage with in-process live queries. Data is lost when the
process exits; suitable for single-session use and testing.
"""

import itertools
import logging
from typing import Any
from uuid import uuid4

from ..errors import NotConnectedError
from .base import DocumentStore
from .models import Document, Query, ServerClock, apply_query, normalize, resolve_server_timestamps
from .subscription import Subscription

logger = logging.getLogger(__name__)


class InMemoryDocumentStore(DocumentStore):
    """In-memory document store (session-only)."""

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._watchers: dict[int, tuple[Query, Subscription[list[Document]]]] = {}
        self._clock = ServerClock()
        self._watch_ids = itertools.count()
        self._connected = False

    async def connect(self) -> None:
        """Open the store (no-op besides state tracking)."""
        self._connected = True

    async def disconnect(self) -> None:
        """Close every live query."""
        for _, subscription in list(self._watchers.values()):
            await subscription.close()
        self._watchers.clear()
        self._connected = False

    def _check_connected(self) -> None:
        if not self._connected:
            raise NotConnectedError(self.backend_type)

    def _prepare(self, data: dict[str, Any]) -> dict[str, Any]:
        return normalize(resolve_server_timestamps(data, self._clock.now()))

    def _documents(self, collection: str) -> list[Document]:
        return [
            Document(id=doc_id, collection=collection, data=normalize(data))
            for doc_id, data in self._collections.get(collection, {}).items()
        ]

    def _notify(self, collection: str) -> None:
        for query, subscription in list(self._watchers.values()):
            if query.collection == collection:
                subscription.push(apply_query(self._documents(collection), query))

    async def add(self, collection: str, data: dict[str, Any]) -> str:
        self._check_connected()
        doc_id = uuid4().hex
        self._collections.setdefault(collection, {})[doc_id] = self._prepare(data)
        self._notify(collection)
        return doc_id

    async def set(
        self,
        collection: str,
        doc_id: str,
        data: dict[str, Any],
        merge: bool = False
    ) -> None:
        self._check_connected()
        documents = self._collections.setdefault(collection, {})
        prepared = self._prepare(data)
        if merge and doc_id in documents:
            documents[doc_id] = {**documents[doc_id], **prepared}
        else:
            documents[doc_id] = prepared
        self._notify(collection)

    async def get(self, collection: str, doc_id: str) -> Document | None:
        self._check_connected()
        data = self._collections.get(collection, {}).get(doc_id)
        if data is None:
            return None
        return Document(id=doc_id, collection=collection, data=normalize(data))

    async def query(self, query: Query) -> list[Document]:
        self._check_connected()
        return apply_query(self._documents(query.collection), query)

    async def watch(self, query: Query) -> Subscription[list[Document]]:
        self._check_connected()
        key = next(self._watch_ids)

        def release() -> None:
            self._watchers.pop(key, None)

        subscription: Subscription[list[Document]] = Subscription(on_close=release)
        self._watchers[key] = (query, subscription)
        subscription.push(apply_query(self._documents(query.collection), query))
        logger.debug("Watching %s (%d live queries)", query.collection, len(self._watchers))
        return subscription

    async def health_check(self) -> bool:
        return self._connected

    @property
    def backend_type(self) -> str:
        return "memory"
