"""Cancellable streams of live query snapshots.

A store pushes a full, ordered snapshot whenever the watched query's result
changes; the consumer iterates with ``async for``. Closing the subscription
deregisters it from the store and discards anything not yet consumed, and it
is safe to close more than once. Use it as an async context manager so it is
closed on every exit path:

    async with store.watch(query) as snapshots:
        async for documents in snapshots:
            ...
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
U = TypeVar("U")

_CLOSED = object()


class _Failure:
    def __init__(self, error: BaseException):
        self.error = error


class Subscription(Generic[T]):
    """An ordered stream of snapshots from a live query."""

    def __init__(self, on_close: Callable[[], Awaitable[None] | None] | None = None):
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._on_close = on_close
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, snapshot: T) -> None:
        """Deliver a snapshot. Ignored once the subscription is closed."""
        if self._closed:
            return
        self._queue.put_nowait(snapshot)

    def fail(self, error: BaseException) -> None:
        """End the stream with an error raised to the consumer."""
        if self._closed:
            return
        self._queue.put_nowait(_Failure(error))

    async def close(self) -> None:
        """Stop deliveries and release the underlying watch."""
        if self._closed:
            return
        self._closed = True

        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(_CLOSED)

        if self._on_close is not None:
            result = self._on_close()
            if inspect.isawaitable(result):
                await result

    def map(self, fn: Callable[[T], U]) -> "Subscription[U]":
        """Return a subscription delivering ``fn(snapshot)`` for each snapshot.

        Closing the mapped subscription closes this one.
        """
        return _MappedSubscription(self, fn)

    async def next_snapshot(self) -> T:
        """Wait for the next snapshot.

        Raises:
            StopAsyncIteration: If the subscription is closed
        """
        item = await self._queue.get()
        if item is _CLOSED:
            self._queue.put_nowait(_CLOSED)
            raise StopAsyncIteration
        if isinstance(item, _Failure):
            raise item.error
        return item

    def __aiter__(self) -> "Subscription[T]":
        return self

    async def __anext__(self) -> T:
        if self._closed and self._queue.empty():
            raise StopAsyncIteration
        return await self.next_snapshot()

    async def __aenter__(self) -> "Subscription[T]":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


class _MappedSubscription(Subscription[U]):
    """View of another subscription with each snapshot transformed."""

    def __init__(self, source: Subscription[Any], fn: Callable[[Any], U]):
        super().__init__(on_close=source.close)
        self._source = source
        self._fn = fn

    @property
    def closed(self) -> bool:
        return self._closed or self._source.closed

    def push(self, snapshot: U) -> None:
        raise TypeError("Mapped subscriptions receive snapshots from their source")

    def fail(self, error: BaseException) -> None:
        self._source.fail(error)

    async def next_snapshot(self) -> U:
        if self.closed:
            raise StopAsyncIteration
        return self._fn(await self._source.next_snapshot())

    async def __anext__(self) -> U:
        return await self.next_snapshot()
