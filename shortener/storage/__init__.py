"""
Storage module for the URL mapping.

Implements the Strategy Pattern for pluggable storage backends:
- FileStorage: in-memory index with an optional append-only JSON-lines log
- DatabaseStorage: relational table through async SQLAlchemy
"""

from .config import StorageBackend, StorageConfig
from .database_storage import DatabaseStorage
from .factory import create_storage
from .file_storage import FileStorage
from .interface import URLStorage
from .records import BatchEntry, DeletionRequest, StorageStats, URLRecord

__all__ = [
    "BatchEntry",
    "DatabaseStorage",
    "DeletionRequest",
    "FileStorage",
    "StorageBackend",
    "StorageConfig",
    "StorageStats",
    "URLRecord",
    "URLStorage",
    "create_storage",
]
