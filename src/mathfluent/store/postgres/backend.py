"""PostgreSQL document store backend."""

import asyncio
import itertools
import json
import logging
from typing import Any
from uuid import uuid4

import asyncpg

from ...errors import NotConnectedError, StoreError
from ..base import DocumentStore
from ..models import Document, Query, normalize, resolve_server_timestamps
from ..subscription import Subscription
from . import schema

logger = logging.getLogger(__name__)

# Raised by asyncpg for server errors, dropped connections and pool failures
DATABASE_ERRORS = (OSError, asyncpg.PostgresError, asyncpg.InterfaceError)


class PostgresDocumentStore(DocumentStore):
    """
    PostgreSQL document store with JSONB documents and LISTEN/NOTIFY.

    Hides all Postgres-specific details:
    - Connection pooling
    - SQL query construction
    - Server timestamps taken from the database clock
    - A dedicated listener connection that refreshes live queries
    """

    def __init__(
        self,
        host: str,
        port: int,
        database: str,
        user: str,
        password: str,
        min_pool_size: int = 2,
        max_pool_size: int = 10
    ):
        """
        Initialize Postgres backend.

        Args:
            host: Database host
            port: Database port
            database: Database name
            user: Database user
            password: Database password
            min_pool_size: Minimum connection pool size
            max_pool_size: Maximum connection pool size
        """
        self._connect_kwargs = {
            "host": host,
            "port": port,
            "database": database,
            "user": user,
            "password": password,
        }
        self._min_pool_size = min_pool_size
        self._max_pool_size = max_pool_size
        self._pool: asyncpg.Pool | None = None
        self._listener: asyncpg.Connection | None = None
        self._watchers: dict[int, tuple[Query, Subscription[list[Document]]]] = {}
        self._watch_ids = itertools.count()
        self._refresh_tasks: set[asyncio.Task] = set()

    async def connect(self) -> None:
        """Create the pool, the schema and the notification listener."""
        if self._pool is not None:
            return

        try:
            self._pool = await asyncpg.create_pool(
                **self._connect_kwargs,
                min_size=self._min_pool_size,
                max_size=self._max_pool_size,
                command_timeout=60.0
            )
            async with self._pool.acquire() as conn:
                await conn.execute(schema.CREATE_DOCUMENTS_TABLE)
                await conn.execute(schema.CREATE_COLLECTION_INDEX)
                await conn.execute(schema.CREATE_DATA_GIN_INDEX)
                await conn.execute(schema.CREATE_NOTIFY_TRIGGER)

            self._listener = await asyncpg.connect(**self._connect_kwargs)
            await self._listener.add_listener(schema.NOTIFY_CHANNEL, self._on_notification)
        except DATABASE_ERRORS as e:
            await self.disconnect()
            raise StoreError(f"Failed to connect to PostgreSQL: {e}") from e

    async def disconnect(self) -> None:
        """Close live queries, the listener and the pool."""
        for _, subscription in list(self._watchers.values()):
            await subscription.close()
        self._watchers.clear()

        for task in list(self._refresh_tasks):
            task.cancel()

        if self._listener is not None:
            await self._listener.close()
            self._listener = None
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    def _get_pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise NotConnectedError(self.backend_type)
        return self._pool

    async def _prepare(self, conn: asyncpg.Connection, data: dict[str, Any]) -> str:
        now = await conn.fetchval(schema.CURRENT_TIME)
        return json.dumps(normalize(resolve_server_timestamps(data, now)))

    async def add(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = uuid4().hex
        try:
            async with self._get_pool().acquire() as conn:
                await conn.execute(
                    schema.INSERT_DOCUMENT, collection, doc_id, await self._prepare(conn, data)
                )
        except DATABASE_ERRORS as e:
            raise StoreError(f"Failed to add document to {collection}: {e}") from e
        return doc_id

    async def set(
        self,
        collection: str,
        doc_id: str,
        data: dict[str, Any],
        merge: bool = False
    ) -> None:
        statement = schema.MERGE_DOCUMENT if merge else schema.UPSERT_DOCUMENT
        try:
            async with self._get_pool().acquire() as conn:
                await conn.execute(statement, collection, doc_id, await self._prepare(conn, data))
        except DATABASE_ERRORS as e:
            raise StoreError(f"Failed to write {collection}/{doc_id}: {e}") from e

    async def get(self, collection: str, doc_id: str) -> Document | None:
        try:
            async with self._get_pool().acquire() as conn:
                raw = await conn.fetchval(schema.SELECT_DOCUMENT, collection, doc_id)
        except DATABASE_ERRORS as e:
            raise StoreError(f"Failed to read {collection}/{doc_id}: {e}") from e

        if raw is None:
            return None
        return Document(id=doc_id, collection=collection, data=json.loads(raw))

    async def query(self, query: Query) -> list[Document]:
        try:
            rows = await self._fetch(query)
        except DATABASE_ERRORS as e:
            raise StoreError(f"Failed to query {query.collection}: {e}") from e

        documents = [
            Document(id=row["id"], collection=query.collection, data=json.loads(row["data"]))
            for row in rows
        ]
        if query.limit_to_last:
            documents.reverse()
        return documents

    async def _fetch(self, query: Query) -> list[asyncpg.Record]:
        async with self._get_pool().acquire() as conn:
            if query.order_by is None:
                return await conn.fetch(schema.SELECT_UNORDERED, query.collection, query.limit)

            # Reverse the requested direction for limit_to_last; query() flips back
            descending = query.descending != query.limit_to_last
            sql = schema.SELECT_ORDERED.format(
                direction="DESC" if descending else "ASC",
                nulls="LAST" if descending else "FIRST",
            )
            return await conn.fetch(sql, query.collection, query.order_by, query.limit)

    def _on_notification(self, connection: Any, pid: int, channel: str, payload: str) -> None:
        """asyncpg listener callback; payload is the changed collection."""
        if not any(query.collection == payload for query, _ in self._watchers.values()):
            return
        task = asyncio.get_running_loop().create_task(self._refresh(payload))
        self._refresh_tasks.add(task)
        task.add_done_callback(self._refresh_tasks.discard)

    async def _refresh(self, collection: str) -> None:
        for query, subscription in list(self._watchers.values()):
            if query.collection != collection or subscription.closed:
                continue
            try:
                subscription.push(await self.query(query))
            except StoreError as e:
                logger.error("Live query on %s failed: %s", collection, e)
                subscription.fail(e)

    async def watch(self, query: Query) -> Subscription[list[Document]]:
        key = next(self._watch_ids)

        def release() -> None:
            self._watchers.pop(key, None)

        subscription: Subscription[list[Document]] = Subscription(on_close=release)
        self._watchers[key] = (query, subscription)
        subscription.push(await self.query(query))
        return subscription

    async def health_check(self) -> bool:
        if self._pool is None:
            return False
        try:
            async with self._pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            return True
        except DATABASE_ERRORS:
            return False

    @property
    def backend_type(self) -> str:
        return "postgres"
