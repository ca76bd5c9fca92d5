"""
Database module with abstraction layer.

This module provides:
- DatabaseAdapter interface: engine-specific configuration
- SQLiteAdapter / PostgreSQLAdapter: the supported engines
- ShortURL: the SQLModel table behind the relational storage backend
- build_engine / build_session_maker: per-storage engine and sessions
"""

from shortener.db.adapters import (
    PostgreSQLAdapter,
    SQLiteAdapter,
    get_database_adapter,
    normalize_dsn,
)
from shortener.db.interface import DatabaseAdapter
from shortener.db.models import ShortURL
from shortener.db.session import build_engine, build_session_maker

__all__ = [
    "DatabaseAdapter",
    "PostgreSQLAdapter",
    "SQLiteAdapter",
    "ShortURL",
    "build_engine",
    "build_session_maker",
    "get_database_adapter",
    "normalize_dsn",
]
