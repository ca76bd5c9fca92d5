"""
Factory for creating storage instances.

Gets its configuration passed in explicitly; no instance is cached here. The
process wiring creates one storage on startup and owns its lifecycle.
"""

import logging

from shortener.storage.config import StorageBackend, StorageConfig
from shortener.storage.database_storage import DatabaseStorage
from shortener.storage.file_storage import FileStorage
from shortener.storage.interface import URLStorage

logger = logging.getLogger(__name__)


def create_storage(config: StorageConfig) -> URLStorage:
    """
    Create the storage backend described by ``config``.

    Args:
        config: Tagged backend configuration

    Returns:
        An uninitialized URLStorage; call ``await storage.initialize()``

    Raises:
        ValueError: If the backend is unknown
    """
    if config.backend == StorageBackend.RELATIONAL:
        storage: URLStorage = DatabaseStorage(dsn=config.dsn)
        logger.info("Relational storage selected")

    elif config.backend == StorageBackend.FILE:
        storage = FileStorage(file_path=config.file_path)
        logger.info(f"File storage selected: path={config.file_path or '<memory>'}")

    else:
        raise ValueError(f"Unknown storage backend: {config.backend}")

    return storage
