"""
Database Models for URL Shortener Service

Defines the SQLModel schema of the relational storage backend.

Design Decisions:
- uuid primary key generated per row (never taken from caller input)
- Unique constraint on short_url: the only arbiter of concurrent inserts
- Non-unique index on user_id for per-user listings and deletions
- Rows are never removed; is_deleted marks a tombstone
"""

from uuid import UUID, uuid4

from sqlalchemy import Boolean, String, Text, false
from sqlmodel import Column, Field, SQLModel


class ShortURL(SQLModel, table=True):
    """
    Main table storing URL shortening mappings.

    Fields:
    - uuid: Record identifier, generated on insert
    - short_url: Unique short code
    - original_url: The long URL that was shortened
    - user_id: Opaque identifier of the creating user, unbounded length
    - is_deleted: Tombstone flag
    """
    __tablename__ = "urls"

    uuid: UUID = Field(default_factory=uuid4, primary_key=True)
    short_url: str = Field(
        sa_column=Column(String(16), nullable=False, unique=True)
    )
    original_url: str = Field(sa_column=Column(Text, nullable=False))
    user_id: str = Field(sa_column=Column(Text, nullable=False, index=True))
    is_deleted: bool = Field(
        default=False,
        sa_column=Column(Boolean, nullable=False, default=False, server_default=false())
    )
