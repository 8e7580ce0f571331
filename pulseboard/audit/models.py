"""
Pulseboard - Audit Models

Append-only audit log table and its API representation.
Entries are never updated or deleted by the application.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel
from sqlalchemy import JSON, Column, DateTime, String
from sqlmodel import Field, SQLModel


class AuditAction(str, Enum):
    """Action tags written by the application."""
    LOGIN_SUCCESS = "auth.login.success"
    LOGIN_FAILURE = "auth.login.failure"
    LOGOUT = "auth.logout"
    LOGOUT_ALL = "auth.logout.all"
    USER_REGISTERED = "auth.user.registered"
    USER_UPDATED = "admin.user.updated"
    USER_SESSIONS_REVOKED = "admin.user.sessions_revoked"
    ACCESS_DENIED = "access.denied"
    REALTIME_AUTH = "realtime.auth"
    CONFIG_UPDATED = "config.updated"
    AI_MODEL_CREATED = "ai_model.created"
    AI_MODEL_UPDATED = "ai_model.updated"
    AI_MODEL_DELETED = "ai_model.deleted"
    DATA_EXPORTED = "export.created"


class AuditLog(SQLModel, table=True):
    """
    Single audit log entry.

    Attributes:
        id: Unique identifier
        user_id: Acting user; None for system-generated events
        action: What happened (see AuditAction)
        resource: What it happened to
        details: Structured context (IP, user agent, ids, ...)
        timestamp: When it was recorded (UTC)
    """
    __tablename__ = "audit_logs"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: Optional[UUID] = Field(default=None, foreign_key="users.id", nullable=True, index=True)
    action: str = Field(sa_column=Column(String(100), nullable=False))
    resource: str = Field(sa_column=Column(String(100), nullable=False))
    details: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime, nullable=False, index=True),
    )


class AuditLogResponse(BaseModel):
    """Audit entry as returned by the API and exports."""
    id: UUID
    user_id: Optional[UUID] = None
    action: str
    resource: str
    details: Optional[Dict[str, Any]] = None
    timestamp: datetime

    class Config:
        from_attributes = True
