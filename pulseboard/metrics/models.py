"""
Pulseboard - Metric Model

Append-only time series rows feeding the live dashboard.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column, DateTime, Integer, String
from sqlmodel import Field, SQLModel


class Metric(SQLModel, table=True):
    """
    One metric sample.

    `meta` maps to the `metadata` column; the attribute name `metadata`
    is reserved by SQLAlchemy's declarative base.

    Attributes:
        id: Unique identifier
        type: Free-form category tag (e.g. "cpu_utilization")
        value: Integer sample value
        meta: Optional structured metadata
        timestamp: Sample time (UTC)
    """
    __tablename__ = "metrics"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    type: str = Field(sa_column=Column(String(100), nullable=False, index=True))
    value: int = Field(sa_column=Column(Integer, nullable=False))
    meta: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column("metadata", JSON, nullable=True))
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime, nullable=False, index=True),
    )
