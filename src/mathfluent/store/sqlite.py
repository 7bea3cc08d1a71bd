"""SQLite document store backend.

Stores documents as JSON text in a single table using aiosqlite for async
access. Live queries are refreshed after writes made through this store
instance; changes written by other processes are not observed.
"""

import itertools
import json
import logging
from pathlib import Path
from typing import Any
from uuid import uuid4

import aiosqlite

from ..errors import NotConnectedError, StoreError
from .base import DocumentStore
from .models import Document, Query, ServerClock, normalize, resolve_server_timestamps
from .subscription import Subscription

logger = logging.getLogger(__name__)


class SQLiteDocumentStore(DocumentStore):
    """SQLite-backed document store.

    Persists documents in a database file across sessions.
    """

    def __init__(self, path: str | Path = "./mathfluent.db"):
        self._db_path = Path(path)
        self._connection: aiosqlite.Connection | None = None
        self._watchers: dict[int, tuple[Query, Subscription[list[Document]]]] = {}
        self._watch_ids = itertools.count()
        self._clock = ServerClock()

    async def connect(self) -> None:
        """Open the database file and create the schema."""
        if self._connection is not None:
            return
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._connection = await aiosqlite.connect(self._db_path)
            await self._create_schema()
        except (OSError, aiosqlite.Error) as e:
            self._connection = None
            raise StoreError(f"Failed to open SQLite store at {self._db_path}: {e}") from e

    async def _create_schema(self) -> None:
        """Create database tables."""
        await self._connection.execute("""
            CREATE TABLE IF NOT EXISTS documents (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                collection TEXT NOT NULL,
                id TEXT NOT NULL,
                data TEXT NOT NULL DEFAULT '{}',
                UNIQUE (collection, id)
            )
        """)

        await self._connection.execute("""
            CREATE INDEX IF NOT EXISTS idx_documents_collection
            ON documents(collection, seq)
        """)

        await self._connection.commit()

    async def disconnect(self) -> None:
        """Close live queries and the database connection."""
        for _, subscription in list(self._watchers.values()):
            await subscription.close()
        self._watchers.clear()
        if self._connection:
            await self._connection.close()
            self._connection = None

    def _conn(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise NotConnectedError(self.backend_type)
        return self._connection

    def _prepare(self, data: dict[str, Any]) -> dict[str, Any]:
        return normalize(resolve_server_timestamps(data, self._clock.now()))

    async def _write(self, sql: str, params: tuple[Any, ...]) -> None:
        conn = self._conn()
        try:
            await conn.execute(sql, params)
            await conn.commit()
        except aiosqlite.Error as e:
            raise StoreError(f"SQLite write failed: {e}") from e

    async def add(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = uuid4().hex
        await self._write(
            "INSERT INTO documents (collection, id, data) VALUES (?, ?, ?)",
            (collection, doc_id, json.dumps(self._prepare(data)))
        )
        await self._notify(collection)
        return doc_id

    async def set(
        self,
        collection: str,
        doc_id: str,
        data: dict[str, Any],
        merge: bool = False
    ) -> None:
        prepared = self._prepare(data)
        if merge:
            existing = await self.get(collection, doc_id)
            if existing is not None:
                prepared = {**existing.data, **prepared}

        await self._write(
            """
            INSERT INTO documents (collection, id, data) VALUES (?, ?, ?)
            ON CONFLICT(collection, id) DO UPDATE SET data = excluded.data
            """,
            (collection, doc_id, json.dumps(prepared))
        )
        await self._notify(collection)

    async def get(self, collection: str, doc_id: str) -> Document | None:
        try:
            async with self._conn().execute(
                "SELECT data FROM documents WHERE collection = ? AND id = ?",
                (collection, doc_id)
            ) as cursor:
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StoreError(f"SQLite read failed: {e}") from e

        if row is None:
            return None
        return Document(id=doc_id, collection=collection, data=json.loads(row[0]))

    async def query(self, query: Query) -> list[Document]:
        sql = "SELECT id, data FROM documents WHERE collection = ?"
        params: list[Any] = [query.collection]

        if query.order_by is not None:
            # Reverse the requested direction for limit_to_last, then flip back below
            descending = query.descending != query.limit_to_last
            direction = "DESC" if descending else "ASC"
            sql += f" ORDER BY json_extract(data, ?) {direction}, seq {direction}"
            params.append(f"$.{query.order_by}")
        else:
            sql += " ORDER BY seq ASC"

        if query.limit is not None:
            sql += " LIMIT ?"
            params.append(query.limit)

        try:
            async with self._conn().execute(sql, params) as cursor:
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise StoreError(f"SQLite query failed: {e}") from e

        documents = [
            Document(id=doc_id, collection=query.collection, data=json.loads(data))
            for doc_id, data in rows
        ]
        if query.limit_to_last:
            documents.reverse()
        return documents

    async def _notify(self, collection: str) -> None:
        for query, subscription in list(self._watchers.values()):
            if query.collection != collection:
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
        subscription.push(await self.query(query))
        self._watchers[key] = (query, subscription)
        return subscription

    async def health_check(self) -> bool:
        if self._connection is None:
            return False
        try:
            async with self._connection.execute("SELECT 1") as cursor:
                await cursor.fetchone()
            return True
        except aiosqlite.Error:
            return False

    @property
    def backend_type(self) -> str:
        return "sqlite"

