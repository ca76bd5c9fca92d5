"""
Value objects exchanged between the shortening service and the storage
backends.

All of them are frozen: a record handed out by a backend cannot be mutated
by its caller, only replaced inside the backend.
"""

from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


class URLRecord(BaseModel):
    """The persisted unit: one short code and what it expands to."""
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    code: str
    original_url: str
    owner_id: str
    deleted: bool = False


class BatchEntry(BaseModel):
    """One already-coded item of a batch insert."""
    model_config = ConfigDict(frozen=True)

    correlation_id: str
    code: str
    original_url: str


class DeletionRequest(BaseModel):
    """A requested tombstone for ``code``, honoured only if ``owner_id`` owns it."""
    model_config = ConfigDict(frozen=True)

    owner_id: str
    code: str


class StorageStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    urls: int
    users: int
