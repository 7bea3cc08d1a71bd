"""Abstract base class for document store backends.

This module defines the interface the chat and profile features persist
through. The abstraction hides:
- Storage engine (in-process dict, SQLite file, PostgreSQL)
- Connection management
- How server timestamps are assigned
- How live queries learn about changes
"""

from abc import ABC, abstractmethod
from typing import Any

from .models import Document, Query
from .subscription import Subscription


class DocumentStore(ABC):
    """Abstract document store.

    Writes may contain ``SERVER_TIMESTAMP`` values; the store replaces them
    with its own clock. Reads return documents normalized to JSON types.

    Supports async context manager protocol:
        async with create_document_store("memory") as store:
            await store.add("chatRooms", {...})
    """

    @abstractmethod
    async def connect(self) -> None:
        """
        Open the store.

        Raises:
            StoreError: If the backend cannot be reached
        """

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the store and every open subscription."""

    @abstractmethod
    async def add(self, collection: str, data: dict[str, Any]) -> str:
        """
        Append a document with a store-assigned id.

        Returns:
            The new document id

        Raises:
            StoreError: If the write fails
        """

    @abstractmethod
    async def set(
        self,
        collection: str,
        doc_id: str,
        data: dict[str, Any],
        merge: bool = False
    ) -> None:
        """
        Create or overwrite a document under a known id.

        Args:
            merge: Update only the given top-level fields of an existing document

        Raises:
            StoreError: If the write fails
        """

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Document | None:
        """
        Read one document.

        Returns:
            Document if found, None otherwise
        """

    @abstractmethod
    async def query(self, query: Query) -> list[Document]:
        """Run a one-off query."""

    @abstractmethod
    async def watch(self, query: Query) -> Subscription[list[Document]]:
        """
        Start a live query.

        The returned subscription delivers the current result immediately and
        again after every change to the watched collection.
        """

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check if the store is usable.

        Returns:
            True if healthy, False otherwise
        """

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Get the backend type identifier."""

    async def __aenter__(self) -> "DocumentStore":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.disconnect()
