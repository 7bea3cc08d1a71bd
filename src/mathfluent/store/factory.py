"""Factory for creating document store backends."""

from typing import Any

from .base import DocumentStore

SUPPORTED_BACKENDS = ("memory", "sqlite", "postgres")


def create_document_store(backend: str = "memory", **config: Any) -> DocumentStore:
    """
    Create a document store instance.

    This factory function hides which backend is used. Backends are imported
    lazily so that, for example, asyncpg is only loaded for "postgres".

    Args:
        backend: Backend type ("memory", "sqlite" or "postgres")
        **config: Backend-specific configuration

    Returns:
        Unconnected document store

    Raises:
        ValueError: If backend type is not supported

    Example:
        >>> store = create_document_store("sqlite", path="./mathfluent.db")
        >>> await store.connect()
    """
    if backend == "memory":
        from .in_memory import InMemoryDocumentStore
        return InMemoryDocumentStore(**config)

    if backend == "sqlite":
        from .sqlite import SQLiteDocumentStore
        return SQLiteDocumentStore(**config)

    if backend == "postgres":
        from .postgres import PostgresDocumentStore
        return PostgresDocumentStore(**config)

    raise ValueError(
        f"Unsupported document store backend: {backend}. "
        f"Supported backends: {', '.join(SUPPORTED_BACKENDS)}"
    )
