"""
Storage Abstraction Interface

This module defines the contract every storage backend implements. The rest
of the codebase only ever sees a URLStorage, so the file backend (local/dev)
and the relational backend (production, multi-user) are interchangeable.

To add a new storage backend:
1. Create a new class inheriting from URLStorage
2. Implement all abstract methods
3. Add a StorageBackend member and a branch in create_storage()
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, List

from shortener.storage.records import BatchEntry, StorageStats, URLRecord

if TYPE_CHECKING:
    from shortener.services.deletion_pipeline import DeletionStream


class URLStorage(ABC):
    """
    Abstract base class for URL storage backends.

    Every operation is a coroutine so callers can bound it with a timeout;
    a cancelled operation must not leave a partially applied change behind.
    """

    name: str = "storage"

    async def initialize(self) -> None:
        """Prepare the backend (create schema, warm the index). Optional."""

    async def close(self) -> None:
        """Release backend resources. Optional."""

    @abstractmethod
    async def add(self, code: str, original_url: str, owner_id: str) -> None:
        """
        Insert one record.

        Raises:
            ConflictError: If ``code`` already exists, whether or not it is
                tombstoned and whoever owns it
        """
        pass

    @abstractmethod
    async def get(self, code: str) -> URLRecord:
        """
        Look up a record by code.

        A tombstoned record is returned with ``deleted=True``; callers decide
        between serving and refusing it.

        Raises:
            NotFoundError: If no record with that code was ever stored
        """
        pass

    @abstractmethod
    async def add_batch(self, entries: List[BatchEntry], owner_id: str) -> None:
        """
        Insert all entries for ``owner_id`` as one atomic unit.

        Raises:
            ConflictError: If any code already exists (or repeats inside the
                batch); nothing from the batch is committed
        """
        pass

    @abstractmethod
    async def get_owned_urls(self, owner_id: str) -> List[URLRecord]:
        """Return the owner's non-deleted records in arbitrary order."""
        pass

    @abstractmethod
    async def mark_deleted(self, requests: "DeletionStream") -> None:
        """
        Drain ``requests`` and tombstone every (owner, code) pair that exists.

        Absent or non-owned pairs are ignored. Everything received is applied
        in one transaction-equivalent scope, committed after the stream closes.
        """
        pass

    @abstractmethod
    async def stats(self) -> StorageStats:
        """Count non-deleted records and the distinct owners among them."""
        pass

    @abstractmethod
    async def health_check(self) -> None:
        """
        Verify the backend is reachable.

        Raises:
            BackendUnavailableError: Wrapping the underlying connectivity error
        """
        pass
