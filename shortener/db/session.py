"""
Database Engine and Session Factory

Engines and session factories are built per storage instance rather than at
import time, so tests and the application can point at different databases
in the same process.
"""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from shortener.db.adapters import get_database_adapter, normalize_dsn


def build_engine(dsn: str) -> AsyncEngine:
    """Create an async engine for ``dsn`` using the matching adapter."""
    database_url = normalize_dsn(dsn)
    return get_database_adapter(database_url).create_engine(database_url)


def build_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Create the session factory for ``engine``.

    expire_on_commit=False keeps loaded rows readable after the transaction
    that loaded them has ended.
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
