"""
Database Abstraction Interface

This module defines the database abstraction layer that lets the relational
storage backend run on different engines (SQLite, PostgreSQL) without
changing its queries.

Each adapter encapsulates the engine-specific configuration: pool class,
connect arguments and engine options. Queries themselves are portable
SQLAlchemy Core/ORM and live in the storage backend.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import Pool


class DatabaseAdapter(ABC):
    """
    Abstract base class for database adapters.

    To add a new database backend:
    1. Create a new class inheriting from DatabaseAdapter
    2. Implement all abstract methods
    3. Register it in get_database_adapter()
    """

    def create_engine(self, database_url: str, **kwargs) -> AsyncEngine:
        """
        Create and configure the async database engine.

        Args:
            database_url: Connection string with an async driver
            **kwargs: Additional engine options (override adapter defaults)

        Returns:
            Configured AsyncEngine instance
        """
        engine_kwargs = self.get_engine_kwargs()
        engine_kwargs.update(kwargs)

        pool_class = self.get_pool_class(database_url)
        if pool_class is not None:
            engine_kwargs["poolclass"] = pool_class

        return create_async_engine(
            database_url,
            connect_args=self.get_connect_args(),
            **engine_kwargs
        )

    @abstractmethod
    def get_pool_class(self, database_url: str) -> Optional[type[Pool]]:
        """
        Get the connection pool class for this database type.

        Returns:
            Pool class, or None to use the engine default
        """
        pass

    @abstractmethod
    def get_connect_args(self) -> dict[str, Any]:
        """Get connection arguments specific to this database type."""
        pass

    @abstractmethod
    def get_engine_kwargs(self) -> dict[str, Any]:
        """Get additional engine configuration specific to this database type."""
        pass

    @abstractmethod
    def get_dialect_name(self) -> str:
        """
        Get the SQLAlchemy dialect name for this database.

        Returns:
            Dialect name (e.g., 'sqlite', 'postgresql')
        """
        pass
