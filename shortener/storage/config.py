"""
Storage backend selection.

The backend is a tagged variant decided once, when settings are turned into
a StorageConfig. Nothing downstream branches on the presence of a DSN again.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, model_validator


class StorageBackend(Enum):
    """Available storage backends"""
    FILE = "file"
    RELATIONAL = "relational"


class StorageConfig(BaseModel):
    """
    Configuration for exactly one storage backend.

    - FILE: ``file_path`` is optional; empty means memory-only.
    - RELATIONAL: ``dsn`` is required.
    """
    model_config = ConfigDict(frozen=True)

    backend: StorageBackend
    file_path: Optional[str] = None
    dsn: Optional[str] = None

    @model_validator(mode="after")
    def _check_variant(self) -> "StorageConfig":
        if self.backend == StorageBackend.RELATIONAL and not self.dsn:
            raise ValueError("relational backend requires a DSN")
        if self.backend == StorageBackend.FILE and self.dsn:
            raise ValueError("file backend does not take a DSN")
        return self

    @classmethod
    def file(cls, path: Optional[str] = None) -> "StorageConfig":
        return cls(backend=StorageBackend.FILE, file_path=path or None)

    @classmethod
    def relational(cls, dsn: str) -> "StorageConfig":
        return cls(backend=StorageBackend.RELATIONAL, dsn=dsn)
