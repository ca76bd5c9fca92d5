"""
File Storage Backend

Keeps the mapping in an in-memory dict and, when a path is configured,
mirrors every mutation to an append-only JSON-lines log.

Log format (one object per line):
    {"uuid": "...", "short_url": "abcd1234", "original_url": "https://...",
     "user_id": "...", "is_deleted": false}

- ``user_id`` and ``is_deleted`` may be missing (older logs); they default to
  an empty owner and not deleted
- a tombstone is a new line for the same short_url with is_deleted=true
- replay is last-line-wins per short_url

The file is the source of truth: every read, and every mutation before its
conflict check, replays the whole log while holding the store's single lock.
That makes replay O(file size) per call, which is fine for local/dev use;
production multi-user deployments use the relational backend.
"""

import asyncio
import logging
import os
from typing import Dict, List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, ValidationError

from shortener.core.exceptions import (
    BackendUnavailableError,
    ConflictError,
    NotFoundError,
    StorageError,
)
from shortener.storage.interface import URLStorage
from shortener.storage.records import BatchEntry, StorageStats, URLRecord

logger = logging.getLogger(__name__)


class FileLogRecord(BaseModel):
    """One line of the on-disk log."""
    uuid: UUID = Field(default_factory=uuid4)
    short_url: str
    original_url: str
    user_id: str = ""
    is_deleted: bool = False

    @classmethod
    def from_record(cls, record: URLRecord) -> "FileLogRecord":
        return cls(
            uuid=record.id,
            short_url=record.code,
            original_url=record.original_url,
            user_id=record.owner_id,
            is_deleted=record.deleted,
        )

    def to_record(self) -> URLRecord:
        return URLRecord(
            id=self.uuid,
            code=self.short_url,
            original_url=self.original_url,
            owner_id=self.user_id,
            deleted=self.is_deleted,
        )


def read_log(path: str) -> Dict[str, URLRecord]:
    """
    Replay the log at ``path`` in file order.

    A missing file is an empty store. Runs in a worker thread.

    Raises:
        StorageError: If the file cannot be read or a line is malformed
    """
    records: Dict[str, URLRecord] = {}
    try:
        with open(path, "r", encoding="utf-8") as log_file:
            for line_number, line in enumerate(log_file, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    entry = FileLogRecord.model_validate_json(line)
                except ValidationError as e:
                    raise StorageError(
                        f"malformed record at {path}:{line_number}", original_error=e
                    ) from e
                records[entry.short_url] = entry.to_record()
    except FileNotFoundError:
        return {}
    except OSError as e:
        raise StorageError(f"failed to read {path}", original_error=e) from e
    return records


def append_log(path: str, records: List[URLRecord]) -> None:
    """Append ``records`` to the log in a single write. Runs in a worker thread."""
    payload = "".join(
        FileLogRecord.from_record(record).model_dump_json() + "\n" for record in records
    )
    try:
        with open(path, "a", encoding="utf-8") as log_file:
            log_file.write(payload)
            log_file.flush()
    except OSError as e:
        raise StorageError(f"failed to write {path}", original_error=e) from e


class FileStorage(URLStorage):
    """
    File-backed (or memory-only) storage.

    Pros:
    - Zero configuration (no external services)
    - Survives restarts when a path is configured

    Cons:
    - Every operation is serialized behind one lock
    - The full index lives in memory and is replayed on every read

    Use case:
    - Development environment, demos and tests
    """

    name = "file"

    def __init__(self, file_path: Optional[str] = None):
        """
        Args:
            file_path: Path of the JSON-lines log; None or "" keeps the store
                in memory only
        """
        self.file_path = file_path or None
        self._records: Dict[str, URLRecord] = {}
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        async with self._lock:
            await self._reload()
        logger.info(
            f"File storage ready: path={self.file_path or '<memory>'} records={len(self._records)}"
        )

    async def _reload(self) -> None:
        """
        Replay the log into the index. Caller must hold the lock.

        The log is parsed into a fresh dict first, so a cancelled replay
        leaves the index untouched.
        """
        if not self.file_path:
            return
        loaded = await asyncio.to_thread(read_log, self.file_path)
        for code, record in loaded.items():
            self._records[code] = record

    async def _commit(self, records: List[URLRecord]) -> None:
        """
        Append ``records`` to the log, then apply them to the index. Caller
        must hold the lock.

        A started write cannot be interrupted, so cancellation is deferred
        until it has finished: the lock stays held, the index is updated to
        match the file and only then is the cancellation re-raised.
        """
        if self.file_path and records:
            write = asyncio.ensure_future(
                asyncio.to_thread(append_log, self.file_path, records)
            )
            cancelled = False
            while not write.done():
                try:
                    await asyncio.shield(write)
                except asyncio.CancelledError:
                    cancelled = True
            # Raises StorageError if the write itself failed
            write.result()
            self._apply(records)
            if cancelled:
                logger.info(
                    f"Write completed after cancellation: records={len(records)}"
                )
                raise asyncio.CancelledError()
            return

        self._apply(records)

    def _apply(self, records: List[URLRecord]) -> None:
        for record in records:
            self._records[record.code] = record

    async def add(self, code: str, original_url: str, owner_id: str) -> None:
        async with self._lock:
            await self._reload()
            if code in self._records:
                raise ConflictError(code)

            record = URLRecord(code=code, original_url=original_url, owner_id=owner_id)
            await self._commit([record])

        logger.info(f"Added to store: short_url={code} original_url={original_url}")

    async def get(self, code: str) -> URLRecord:
        async with self._lock:
            await self._reload()
            record = self._records.get(code)

        if record is None:
            raise NotFoundError(code)
        return record

    async def add_batch(self, entries: List[BatchEntry], owner_id: str) -> None:
        if not entries:
            return

        async with self._lock:
            await self._reload()

            # Check everything before touching the log or the index
            seen = set()
            for entry in entries:
                if entry.code in seen or entry.code in self._records:
                    raise ConflictError(entry.code)
                seen.add(entry.code)

            records = [
                URLRecord(code=entry.code, original_url=entry.original_url, owner_id=owner_id)
                for entry in entries
            ]
            await self._commit(records)

        logger.info(f"Added batch to store: size={len(entries)} owner={owner_id}")

    async def get_owned_urls(self, owner_id: str) -> List[URLRecord]:
        async with self._lock:
            await self._reload()
            return [
                record
                for record in self._records.values()
                if record.owner_id == owner_id and not record.deleted
            ]

    async def mark_deleted(self, requests) -> None:
        # Drain first so the lock is never held while waiting on the producer
        received = await requests.collect()

        async with self._lock:
            await self._reload()

            tombstones: Dict[str, URLRecord] = {}
            for request in received:
                record = self._records.get(request.code)
                if record is None or record.deleted or request.code in tombstones:
                    continue
                if record.owner_id != request.owner_id:
                    continue
                tombstones[request.code] = record.model_copy(update={"deleted": True})

            if tombstones:
                await self._commit(list(tombstones.values()))

        logger.info(
            f"Marked deleted: requested={len(received)} applied={len(tombstones)}"
        )

    async def stats(self) -> StorageStats:
        async with self._lock:
            await self._reload()
            live = [record for record in self._records.values() if not record.deleted]

        return StorageStats(urls=len(live), users=len({record.owner_id for record in live}))

    async def health_check(self) -> None:
        if not self.file_path:
            return

        directory = os.path.dirname(os.path.abspath(self.file_path))
        if not os.path.isdir(directory):
            raise BackendUnavailableError(
                self.name, FileNotFoundError(f"directory does not exist: {directory}")
            )
        target = self.file_path if os.path.exists(self.file_path) else directory
        if not os.access(target, os.W_OK):
            raise BackendUnavailableError(
                self.name, PermissionError(f"not writable: {target}")
            )
