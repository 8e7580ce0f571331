"""
Pulseboard - Configuration Model

Key/value settings editable from the dashboard. Keys are unique and
written with upsert semantics.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import Column, DateTime, String, Text
from sqlmodel import Field, SQLModel


class ConfigEntry(SQLModel, table=True):
    """
    One configuration entry.

    Attributes:
        id: Unique identifier
        key: Unique configuration key
        value: String value
        description: Optional human description
        updated_by: User who last wrote the entry
        updated_at: Time of the last write (UTC), never moves backwards
    """
    __tablename__ = "config"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    key: str = Field(sa_column=Column(String(255), unique=True, index=True, nullable=False))
    value: str = Field(sa_column=Column(Text, nullable=False))
    description: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    updated_by: Optional[UUID] = Field(default=None, foreign_key="users.id", nullable=True)
    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime, nullable=False),
    )
