"""
Database Adapters

SQLite:
- File-based, no server required
- Single writer at a time (file locking)
- Used for local development and tests

PostgreSQL:
- Server-based, row-level locking
- Connection pool sized for concurrent writers
- Used in production

DSNs without an async driver are normalised first:
    postgres://...   -> postgresql+asyncpg://...
    postgresql://... -> postgresql+asyncpg://...
    sqlite:///...    -> sqlite+aiosqlite:///...
"""

from typing import Any, Optional

from sqlalchemy.engine import make_url
from sqlalchemy.pool import NullPool, Pool, StaticPool

from shortener.db.interface import DatabaseAdapter

ASYNC_DRIVERS = {
    "postgres": "postgresql+asyncpg",
    "postgresql": "postgresql+asyncpg",
    "sqlite": "sqlite+aiosqlite",
}


def normalize_dsn(dsn: str) -> str:
    """Return ``dsn`` with an async driver, leaving explicit drivers alone."""
    url = make_url(dsn)
    driver = ASYNC_DRIVERS.get(url.drivername)
    if driver is not None:
        url = url.set(drivername=driver)
    return url.render_as_string(hide_password=False)


class SQLiteAdapter(DatabaseAdapter):
    """
    SQLite database adapter implementation.

    File databases use NullPool (a fresh connection per checkout); in-memory
    databases use StaticPool so every session sees the same database.
    """

    def get_pool_class(self, database_url: str) -> Optional[type[Pool]]:
        database = make_url(database_url).database
        if not database or database == ":memory:":
            return StaticPool
        return NullPool

    def get_connect_args(self) -> dict[str, Any]:
        return {
            "check_same_thread": False,
            "timeout": 30,  # seconds to wait on a locked database file
        }

    def get_engine_kwargs(self) -> dict[str, Any]:
        return {
            "echo": False  # Set to True only for SQL debugging in development
        }

    def get_dialect_name(self) -> str:
        return "sqlite"


class PostgreSQLAdapter(DatabaseAdapter):
    """PostgreSQL database adapter implementation (asyncpg driver)."""

    def get_pool_class(self, database_url: str) -> Optional[type[Pool]]:
        return None

    def get_connect_args(self) -> dict[str, Any]:
        return {}

    def get_engine_kwargs(self) -> dict[str, Any]:
        return {
            "echo": False,
            "pool_size": 20,
            "max_overflow": 10,
            "pool_pre_ping": True,
        }

    def get_dialect_name(self) -> str:
        return "postgresql"


def get_database_adapter(database_url: str) -> DatabaseAdapter:
    """
    Pick the adapter for a DSN by its dialect.

    Raises:
        ValueError: If the dialect has no adapter
    """
    dialect = make_url(database_url).get_backend_name()
    if dialect == "sqlite":
        return SQLiteAdapter()
    if dialect == "postgresql":
        return PostgreSQLAdapter()
    raise ValueError(f"Unsupported database dialect: {dialect}")
