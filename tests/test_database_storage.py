import asyncio

import pytest
from sqlalchemy import Text, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool, StaticPool

from shortener.core.exceptions import BackendUnavailableError, NotFoundError
from shortener.db import (
    PostgreSQLAdapter,
    ShortURL,
    SQLiteAdapter,
    get_database_adapter,
    normalize_dsn,
)
from shortener.services.code_generator import generate_code
from shortener.services.deletion_pipeline import DeletionStream
from shortener.storage import BatchEntry, DatabaseStorage, DeletionRequest


class TestNormalizeDSN:

    def test_postgres_gets_asyncpg(self):
        assert normalize_dsn("postgres://u:p@db:5432/urls") == "postgresql+asyncpg://u:p@db:5432/urls"
        assert normalize_dsn("postgresql://u:p@db/urls") == "postgresql+asyncpg://u:p@db/urls"

    def test_sqlite_gets_aiosqlite(self):
        assert normalize_dsn("sqlite:///urls.db") == "sqlite+aiosqlite:///urls.db"

    def test_explicit_driver_kept(self):
        assert normalize_dsn("sqlite+aiosqlite:///urls.db") == "sqlite+aiosqlite:///urls.db"


class TestAdapters:

    def test_adapter_selection(self):
        assert isinstance(get_database_adapter("sqlite+aiosqlite:///x.db"), SQLiteAdapter)
        assert isinstance(get_database_adapter("postgresql+asyncpg://h/db"), PostgreSQLAdapter)

    def test_unsupported_dialect(self):
        with pytest.raises(ValueError):
            get_database_adapter("mysql+aiomysql://h/db")

    def test_sqlite_pool_classes(self):
        adapter = SQLiteAdapter()
        assert adapter.get_pool_class("sqlite+aiosqlite://") is StaticPool
        assert adapter.get_pool_class("sqlite+aiosqlite:///urls.db") is NullPool

    def test_postgres_pool_settings(self):
        kwargs = PostgreSQLAdapter().get_engine_kwargs()
        assert kwargs["pool_pre_ping"] is True
        assert kwargs["pool_size"] == 20


class TestDatabaseStorage:
    """Relational-only behaviour, on SQLite."""

    @pytest.mark.asyncio
    async def test_rows_get_fresh_uuids(self, database_storage):
        entries = [
            BatchEntry(correlation_id="same", code=generate_code(url), original_url=url)
            for url in ("https://a.io", "https://b.io")
        ]
        await database_storage.add_batch(entries, "alice")

        async with database_storage.session_maker() as session:
            rows = (await session.execute(select(ShortURL))).scalars().all()

        assert len(rows) == 2
        assert rows[0].uuid != rows[1].uuid

    @pytest.mark.asyncio
    async def test_data_survives_reopen(self, sqlite_dsn):
        code = generate_code("https://example.com")
        first = DatabaseStorage(sqlite_dsn)
        await first.initialize()
        await first.add(code, "https://example.com", "alice")
        await first.close()

        second = DatabaseStorage(sqlite_dsn)
        await second.initialize()
        try:
            record = await second.get(code)
        finally:
            await second.close()

        assert record.original_url == "https://example.com"

    @pytest.mark.asyncio
    async def test_initialize_is_idempotent(self, database_storage):
        await database_storage.initialize()
        await database_storage.health_check()

    @pytest.mark.asyncio
    async def test_unreachable_database(self, tmp_path):
        storage = DatabaseStorage(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'urls.db'}")
        try:
            with pytest.raises(BackendUnavailableError):
                await storage.health_check()
        finally:
            await storage.close()

    @pytest.mark.asyncio
    async def test_long_owner_id(self, database_storage):
        assert isinstance(ShortURL.__table__.c.user_id.type, Text)

        owner_id = "user-" + "x" * 300
        code = generate_code("https://example.com")
        await database_storage.add(code, "https://example.com", owner_id)

        owned = await database_storage.get_owned_urls(owner_id)
        assert [record.code for record in owned] == [code]


class StallingSession(AsyncSession):
    """Session that hangs after every statement, inside the open transaction."""

    async def execute(self, *args, **kwargs):
        result = await super().execute(*args, **kwargs)
        await asyncio.sleep(10)
        return result


class TestTimeoutRollback:
    """A timeout aborts the in-flight transaction."""

    @pytest.mark.asyncio
    async def test_stalled_deletion_sweep_rolls_back(self, database_storage, delete_codes):
        code = generate_code("https://example.com")
        await database_storage.add(code, "https://example.com", "alice")

        # One request, then the producer never closes the stream
        stream = DeletionStream(maxsize=10)
        await stream.put(DeletionRequest(owner_id="alice", code=code))

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(database_storage.mark_deleted(stream), timeout=0.2)

        assert (await database_storage.get(code)).deleted is False

        # The database is not left locked by the aborted transaction
        await delete_codes(database_storage, "alice", [code])
        assert (await database_storage.get(code)).deleted is True

    @pytest.mark.asyncio
    async def test_stalled_batch_rolls_back(self, database_storage, sqlite_dsn):
        entries = [
            BatchEntry(correlation_id=str(i), code=generate_code(url), original_url=url)
            for i, url in enumerate(["https://a.io", "https://b.io"])
        ]
        stalling = DatabaseStorage(sqlite_dsn)
        stalling.session_maker = async_sessionmaker(
            stalling.engine, class_=StallingSession, expire_on_commit=False
        )

        try:
            with pytest.raises(asyncio.TimeoutError):
                await asyncio.wait_for(stalling.add_batch(entries, "alice"), timeout=0.2)
        finally:
            await stalling.close()

        for entry in entries:
            with pytest.raises(NotFoundError):
                await database_storage.get(entry.code)

        await database_storage.add_batch(entries, "alice")
        assert len(await database_storage.get_owned_urls("alice")) == 2
