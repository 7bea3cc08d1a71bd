"""Data models for the document store.

Documents are JSON objects grouped in slash-separated collections
(``chatRooms/<room id>/messages``). Values are normalized to JSON types on
write, so every backend returns the same shapes: datetimes become ISO-8601
strings in UTC with microsecond precision, which also sort correctly as text.
"""

import json
from datetime import datetime, timedelta, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class _ServerTimestamp:
    """Sentinel replaced by the store's clock when a document is written."""

    _instance: "_ServerTimestamp | None" = None

    def __new__(cls) -> "_ServerTimestamp":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


class Document(BaseModel):
    """A stored document."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Document id, unique within its collection")
    collection: str = Field(description="Collection path")
    data: dict[str, Any] = Field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Document fields with the id merged in."""
        return {**self.data, "id": self.id}


class Query(BaseModel):
    """An ordered, optionally bounded read of one collection."""

    model_config = ConfigDict(frozen=True)

    collection: str
    order_by: str | None = Field(default=None, description="Top-level field to sort on")
    descending: bool = False
    limit: int | None = Field(default=None, ge=1)
    limit_to_last: bool = Field(
        default=False,
        description="Keep the last `limit` documents of the ordering instead of the first"
    )

    @model_validator(mode="after")
    def check_limit_to_last(self) -> "Query":
        if self.limit_to_last and (self.order_by is None or self.limit is None):
            raise ValueError("limit_to_last requires both order_by and limit")
        return self


class ServerClock:
    """Strictly increasing UTC clock used to resolve SERVER_TIMESTAMP."""

    def __init__(self) -> None:
        self._last: datetime | None = None

    def now(self) -> datetime:
        current = datetime.now(timezone.utc)
        if self._last is not None and current <= self._last:
            current = self._last + timedelta(microseconds=1)
        self._last = current
        return current


def format_timestamp(value: datetime) -> str:
    """Render a datetime the way documents store it."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _encode(value: Any) -> Any:
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    raise TypeError(f"Cannot store value of type {type(value).__name__}")


def resolve_server_timestamps(data: dict[str, Any], now: datetime) -> dict[str, Any]:
    """Return a copy of ``data`` with SERVER_TIMESTAMP values replaced by ``now``."""
    resolved = {}
    for key, value in data.items():
        if value is SERVER_TIMESTAMP:
            resolved[key] = now
        elif isinstance(value, dict):
            resolved[key] = resolve_server_timestamps(value, now)
        else:
            resolved[key] = value
    return resolved


def normalize(data: dict[str, Any]) -> dict[str, Any]:
    """Deep-copy ``data`` into plain JSON types."""
    return json.loads(json.dumps(data, default=_encode))


def _sort_key(field: str):
    def key(doc: Document) -> tuple[bool, Any]:
        value = doc.data.get(field)
        # Missing values sort first, as in most document stores
        return (value is not None, value if value is not None else "")
    return key


def apply_query(documents: list[Document], query: Query) -> list[Document]:
    """Order and bound documents in memory.

    Documents must already belong to ``query.collection``; insertion order is
    kept when no ordering is requested.
    """
    results = list(documents)
    if query.order_by is not None:
        results.sort(key=_sort_key(query.order_by), reverse=query.descending)
    if query.limit is not None:
        results = results[-query.limit:] if query.limit_to_last else results[:query.limit]
    return results
