"""
Relational Storage Backend

Persists the mapping as rows of the ``urls`` table through async SQLAlchemy.

Key Features:
- Uniqueness of short_url is enforced by the database, not by a lock
- Batch inserts and deletion sweeps run in a single transaction each
- Every transaction rolls back on any exception, including cancellation
  by the caller's timeout
"""

import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional
from uuid import uuid4

from sqlalchemy import bindparam, false, func, insert, select, text, update
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError
from sqlmodel import SQLModel

from shortener.core.exceptions import (
    BackendUnavailableError,
    ConflictError,
    NotFoundError,
    StorageError,
)
from shortener.db.models import ShortURL
from shortener.db.session import build_engine, build_session_maker
from shortener.storage.interface import URLStorage
from shortener.storage.records import BatchEntry, StorageStats, URLRecord

logger = logging.getLogger(__name__)

urls_table = ShortURL.__table__

INSERT_URL = insert(urls_table)

MARK_DELETED = (
    update(urls_table)
    .where(
        urls_table.c.user_id == bindparam("owner_id"),
        urls_table.c.short_url == bindparam("code"),
    )
    .values(is_deleted=True)
)


def _to_record(row: ShortURL) -> URLRecord:
    return URLRecord(
        id=row.uuid,
        code=row.short_url,
        original_url=row.original_url,
        owner_id=row.user_id,
        deleted=row.is_deleted,
    )


def _row_params(code: str, original_url: str, owner_id: str) -> dict:
    # A fresh identifier per row; caller-supplied tokens are never keys
    return {
        "uuid": uuid4(),
        "short_url": code,
        "original_url": original_url,
        "user_id": owner_id,
        "is_deleted": False,
    }


class DatabaseStorage(URLStorage):
    """
    Relational storage (SQLite for development, PostgreSQL for production).

    Pros:
    - Scales across concurrent writers (row-level locking, unique index)
    - Full per-user listing and deletion support

    Cons:
    - Requires a database server in production
    """

    name = "relational"

    def __init__(self, dsn: str):
        """
        Args:
            dsn: Database connection string; drivers are normalised to async ones
        """
        self.engine = build_engine(dsn)
        self.session_maker = build_session_maker(self.engine)

    @contextmanager
    def _translate_errors(self, action: str) -> Iterator[None]:
        """Map SQLAlchemy/driver failures onto the storage exception taxonomy."""
        try:
            yield
        except (OperationalError, OSError) as e:
            logger.error(f"Database unavailable during {action}: {e}", exc_info=True)
            raise BackendUnavailableError(self.name, e) from e
        except DBAPIError as e:
            if e.connection_invalidated:
                raise BackendUnavailableError(self.name, e) from e
            logger.error(f"Database error during {action}: {e}", exc_info=True)
            raise StorageError(f"{action} failed", original_error=e) from e
        except SQLAlchemyError as e:
            logger.error(f"Database error during {action}: {e}", exc_info=True)
            raise StorageError(f"{action} failed", original_error=e) from e

    async def initialize(self) -> None:
        """Create the urls table if it does not exist."""
        with self._translate_errors("schema creation"):
            async with self.engine.begin() as conn:
                await conn.run_sync(SQLModel.metadata.create_all, tables=[urls_table])
        logger.info(f"Relational storage ready: dialect={self.engine.dialect.name}")

    async def close(self) -> None:
        await self.engine.dispose()

    async def add(self, code: str, original_url: str, owner_id: str) -> None:
        with self._translate_errors("insert"):
            try:
                async with self.session_maker() as session:
                    async with session.begin():
                        await session.execute(
                            INSERT_URL, _row_params(code, original_url, owner_id)
                        )
            except IntegrityError as e:
                raise ConflictError(code) from e

        logger.info(f"Added to store: short_url={code} original_url={original_url}")

    async def get(self, code: str) -> URLRecord:
        with self._translate_errors("lookup"):
            async with self.session_maker() as session:
                result = await session.execute(
                    select(ShortURL).where(ShortURL.short_url == code)
                )
                row: Optional[ShortURL] = result.scalar_one_or_none()

        if row is None:
            raise NotFoundError(code)
        return _to_record(row)

    async def add_batch(self, entries: List[BatchEntry], owner_id: str) -> None:
        if not entries:
            return

        with self._translate_errors("batch insert"):
            async with self.session_maker() as session:
                async with session.begin():
                    for entry in entries:
                        try:
                            await session.execute(
                                INSERT_URL,
                                _row_params(entry.code, entry.original_url, owner_id),
                            )
                        except IntegrityError as e:
                            # Leaving the begin() block rolls back the whole batch
                            logger.error(
                                f"Batch insert rolled back: duplicate short_url={entry.code}"
                            )
                            raise ConflictError(entry.code) from e

        logger.info(f"Added batch to store: size={len(entries)} owner={owner_id}")

    async def get_owned_urls(self, owner_id: str) -> List[URLRecord]:
        with self._translate_errors("owner listing"):
            async with self.session_maker() as session:
                result = await session.execute(
                    select(ShortURL).where(
                        ShortURL.user_id == owner_id,
                        ShortURL.is_deleted == false(),
                    )
                )
                rows = result.scalars().all()

        return [_to_record(row) for row in rows]

    async def mark_deleted(self, requests) -> None:
        received = 0
        applied = 0
        with self._translate_errors("deletion sweep"):
            async with self.session_maker() as session:
                async with session.begin():
                    async for request in requests:
                        result = await session.execute(
                            MARK_DELETED,
                            {"owner_id": request.owner_id, "code": request.code},
                        )
                        received += 1
                        applied += max(result.rowcount, 0)

        logger.info(f"Marked deleted: requested={received} applied={applied}")

    async def stats(self) -> StorageStats:
        live = ShortURL.is_deleted == false()
        with self._translate_errors("stats"):
            async with self.session_maker() as session:
                urls = await session.scalar(
                    select(func.count()).select_from(ShortURL).where(live)
                )
                users = await session.scalar(
                    select(func.count(func.distinct(ShortURL.user_id))).where(live)
                )

        return StorageStats(urls=urls or 0, users=users or 0)

    async def health_check(self) -> None:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Health check failed: {e}")
            raise BackendUnavailableError(self.name, e) from e
