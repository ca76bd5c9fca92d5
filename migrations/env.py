"""
Alembic Environment Configuration

Runs migrations for the relational storage backend. It handles:
- Database connection from settings (DATABASE_DSN)
- Model imports for autogenerate
- SQLite through the sync driver, PostgreSQL through asyncpg
"""

import asyncio
from logging.config import fileConfig

from sqlalchemy import create_engine, pool
from sqlalchemy.engine import Connection, make_url
from sqlalchemy.ext.asyncio import create_async_engine
from sqlmodel import SQLModel

from alembic import context

from shortener.core.setting import get_settings
from shortener.db import models  # noqa: F401  registers the urls table
from shortener.db.adapters import normalize_dsn

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = SQLModel.metadata


def get_database_url() -> str:
    """Return the async DSN from settings, falling back to alembic.ini."""
    dsn = get_settings().database_dsn or config.get_main_option("sqlalchemy.url")
    if not dsn:
        raise RuntimeError("DATABASE_DSN is not set")
    return normalize_dsn(dsn)


def to_sync_url(database_url: str) -> str:
    """sqlite+aiosqlite:///x.db -> sqlite:///x.db"""
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        url = url.set(drivername="sqlite")
    return url.render_as_string(hide_password=False)


database_url = get_database_url()
is_sqlite = make_url(database_url).get_backend_name() == "sqlite"


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode, emitting SQL to the script output."""
    context.configure(
        url=to_sync_url(database_url),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        render_as_batch=is_sqlite,
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    connectable = create_async_engine(database_url, poolclass=pool.NullPool)

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    if is_sqlite:
        connectable = create_engine(to_sync_url(database_url), poolclass=pool.NullPool)

        with connectable.connect() as connection:
            do_run_migrations(connection)

        connectable.dispose()
    else:
        asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
