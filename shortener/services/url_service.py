"""
URL Shortening Service

This service handles the core business logic for URL shortening:
- Deriving content-addressed short codes
- Persisting single and batch mappings through the storage facade
- Expanding, listing, deleting and counting mappings

Design Decisions:
- Every storage call is bounded by the configured timeout; on expiry the
  call is cancelled and TimeoutError reaches the caller
- A conflict on create is not a failure: the conflicting code IS the code
  for that URL, so it is returned with conflict=True
- Deletions go through the bounded deletion pipeline and complete before
  delete_owned_urls returns
"""

import asyncio
import contextlib
import logging
from typing import Awaitable, List, Sequence, TypeVar

from pydantic import BaseModel, ConfigDict

from shortener.core.exceptions import ConflictError, EmptyInputError
from shortener.services.code_generator import generate_code
from shortener.services.deletion_pipeline import start_deletion_producer
from shortener.storage.interface import URLStorage
from shortener.storage.records import BatchEntry, DeletionRequest, StorageStats, URLRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ShortenResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    short_url: str
    conflict: bool = False


class BatchItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    correlation_id: str
    original_url: str


class BatchResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    correlation_id: str
    code: str
    short_url: str


class UserURL(BaseModel):
    model_config = ConfigDict(frozen=True)

    short_url: str
    original_url: str


class URLShorteningService:
    """
    Core business logic for URL shortening.

    Orchestrates the code generator and the storage facade. Separated from
    the API layer for testability; handlers only map results and exceptions
    to HTTP responses.
    """

    def __init__(
        self,
        storage: URLStorage,
        base_url: str,
        timeout: float = 10.0,
        deletion_queue_size: int = 100,
    ):
        """
        Initialize the URL shortening service.

        Args:
            storage: Active storage backend
            base_url: Prefix for full short URLs
            timeout: Seconds each storage operation may take
            deletion_queue_size: Capacity of the deletion stream
        """
        self.storage = storage
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.deletion_queue_size = deletion_queue_size

    def short_url(self, code: str) -> str:
        return f"{self.base_url}/{code}"

    async def _bounded(self, operation: Awaitable[T]) -> T:
        return await asyncio.wait_for(operation, timeout=self.timeout)

    async def create_short_url(self, original_url: str, owner_id: str) -> ShortenResult:
        """
        Create a short URL, or report the existing one.

        Returns:
            ShortenResult; ``conflict`` is True when the code already existed

        Raises:
            EmptyInputError: If original_url is empty
        """
        code = generate_code(original_url)
        try:
            await self._bounded(self.storage.add(code, original_url, owner_id))
        except ConflictError:
            logger.info(f"Short URL already exists: short_url={code}")
            return ShortenResult(code=code, short_url=self.short_url(code), conflict=True)

        return ShortenResult(code=code, short_url=self.short_url(code))

    async def create_batch(self, items: Sequence[BatchItem], owner_id: str) -> List[BatchResult]:
        """
        Shorten every item and persist them atomically.

        Returns:
            One BatchResult per item, in input order

        Raises:
            EmptyInputError: If the batch or any URL in it is empty
            ConflictError: If any code already exists; nothing is stored
        """
        if not items:
            raise EmptyInputError("batch")

        entries = [
            BatchEntry(
                correlation_id=item.correlation_id,
                code=generate_code(item.original_url),
                original_url=item.original_url,
            )
            for item in items
        ]

        await self._bounded(self.storage.add_batch(entries, owner_id))

        return [
            BatchResult(
                correlation_id=entry.correlation_id,
                code=entry.code,
                short_url=self.short_url(entry.code),
            )
            for entry in entries
        ]

    async def expand(self, code: str) -> URLRecord:
        """
        Look up a short code.

        Tombstoned records are returned with ``deleted=True``.

        Raises:
            NotFoundError: If the code was never stored
        """
        return await self._bounded(self.storage.get(code))

    async def list_owned_urls(self, owner_id: str) -> List[UserURL]:
        records = await self._bounded(self.storage.get_owned_urls(owner_id))
        return [
            UserURL(short_url=self.short_url(record.code), original_url=record.original_url)
            for record in records
        ]

    async def delete_owned_urls(self, owner_id: str, codes: Sequence[str]) -> None:
        """
        Tombstone the owner's codes.

        Codes the owner does not own, or that do not exist, are ignored.
        Returns once the storage has committed the whole set.
        """
        if not codes:
            return

        requests = [DeletionRequest(owner_id=owner_id, code=code) for code in codes]
        stream, producer = start_deletion_producer(requests, maxsize=self.deletion_queue_size)
        try:
            await self._bounded(self.storage.mark_deleted(stream))
        except BaseException:
            producer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await producer
            raise
        # Surfaces producer failures once the consumer is done
        await producer

        logger.info(f"Deleted URLs: owner={owner_id} requested={len(codes)}")

    async def get_stats(self) -> StorageStats:
        return await self._bounded(self.storage.stats())

    async def ping(self) -> None:
        """
        Raises:
            BackendUnavailableError: If the storage backend is unreachable
        """
        await self._bounded(self.storage.health_check())
