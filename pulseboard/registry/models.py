"""
Pulseboard - AI Model Registry Model

Plain CRUD entity; `status` is freely settable by an admin.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column, DateTime, Enum as SQLEnum, String
from sqlmodel import Field, SQLModel


class ModelStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    TRAINING = "training"
    DEPLOYED = "deployed"
    MAINTENANCE = "maintenance"


class AIModel(SQLModel, table=True):
    """
    Registered AI model.

    Attributes:
        id: Unique identifier
        name: Display name
        version: Version label
        status: Lifecycle status
        compliance: Free-text compliance description
        security: Free-text security description
        config: Optional structured configuration
        created_at: Creation time (UTC)
        updated_at: Last modification time (UTC)
    """
    __tablename__ = "ai_models"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    name: str = Field(sa_column=Column(String(255), nullable=False, index=True))
    version: str = Field(sa_column=Column(String(50), nullable=False))
    status: ModelStatus = Field(
        default=ModelStatus.ACTIVE,
        sa_column=Column(SQLEnum(ModelStatus), nullable=False, default=ModelStatus.ACTIVE),
    )
    compliance: Optional[str] = Field(default=None, sa_column=Column(String(255), nullable=True))
    security: Optional[str] = Field(default=None, sa_column=Column(String(255), nullable=True))
    config: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime, nullable=False, index=True),
    )
    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime, nullable=False),
    )
