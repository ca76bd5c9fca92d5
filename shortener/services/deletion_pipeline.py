"""
Deletion Pipeline

Turns a delete-by-user request for N codes into a bounded, producer-closed
stream of N DeletionRequest values that the active storage backend drains
inside one transaction.

Contract:
- The producer enqueues every value, then closes the stream.
- The consumer (URLStorage.mark_deleted) iterates until the close marker is
  observed, so every value enqueued before close() is seen first.
- put() after close() raises StreamClosedError.

Usage:
    stream, producer = start_deletion_producer(requests, maxsize=100)
    await storage.mark_deleted(stream)
    await producer
"""

import asyncio
import logging
from typing import AsyncIterator, Iterable, Tuple

from shortener.core.exceptions import StreamClosedError
from shortener.storage.records import DeletionRequest

logger = logging.getLogger(__name__)

_CLOSED = object()


class DeletionStream:
    """Bounded async stream of DeletionRequest values with an explicit close."""

    def __init__(self, maxsize: int = 100):
        if maxsize <= 0:
            raise ValueError("maxsize must be positive")
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self._drained = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def drained(self) -> bool:
        """True once the consumer has observed the close marker."""
        return self._drained

    async def put(self, request: DeletionRequest) -> None:
        """Enqueue a request, waiting while the stream is at capacity."""
        if self._closed:
            raise StreamClosedError("cannot put on a closed deletion stream")
        await self._queue.put(request)

    def close(self) -> None:
        """
        Signal that no more requests will follow. Idempotent, never blocks.

        The close marker only wakes a consumer parked on an empty queue; a
        full queue is drained first and then ends on the closed flag.
        """
        if self._closed:
            return
        self._closed = True
        try:
            self._queue.put_nowait(_CLOSED)
        except asyncio.QueueFull:
            pass

    def __aiter__(self) -> AsyncIterator[DeletionRequest]:
        return self

    async def __anext__(self) -> DeletionRequest:
        while True:
            if self._drained or (self._closed and self._queue.empty()):
                self._drained = True
                raise StopAsyncIteration
            item = await self._queue.get()
            if item is not _CLOSED:
                return item

    async def collect(self) -> list:
        """Drain the stream to completion and return everything received."""
        return [request async for request in self]


async def _produce(stream: DeletionStream, requests: Iterable[DeletionRequest]) -> int:
    count = 0
    try:
        for request in requests:
            await stream.put(request)
            count += 1
    finally:
        # Close even on failure so the consumer never waits forever
        stream.close()
    logger.debug(f"Deletion producer enqueued {count} request(s)")
    return count


def start_deletion_producer(
    requests: Iterable[DeletionRequest],
    maxsize: int = 100,
) -> Tuple[DeletionStream, "asyncio.Task[int]"]:
    """
    Start a producer task that fills a new stream with ``requests``.

    Must be called from a running event loop. The returned task resolves to
    the number of requests enqueued; cancelling it also closes the stream.
    """
    stream = DeletionStream(maxsize=maxsize)
    task = asyncio.create_task(_produce(stream, requests))
    return stream, task
