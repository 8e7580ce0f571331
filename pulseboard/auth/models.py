"""
Pulseboard - Authentication Database Models

SQLModel-based models for user accounts and server-side sessions.

Security:
- Passwords stored as bcrypt hashes only
- Bearer tokens stored as SHA-256 hashes only
- Sessions are server-controlled for immediate revocation (row deletion)
- All timestamps in UTC
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import Column, DateTime, Enum as SQLEnum, String
from sqlmodel import Field, SQLModel


class Role(str, Enum):
    """
    User roles, lowest to highest privilege.

    Permissions per role live in gateway/policies.yaml.
    """
    USER = "user"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


class User(SQLModel, table=True):
    """
    User account for authentication.

    Attributes:
        id: Unique identifier (UUIDv4)
        email: Login identifier (unique, lower-cased)
        password_hash: bcrypt hash (never store plaintext)
        role: Role determining permissions
        is_active: Soft-delete flag; inactive users cannot authenticate
        last_login: Timestamp of the most recent successful login
        created_at: Account creation timestamp (UTC)
        updated_at: Last modification timestamp (UTC)
    """
    __tablename__ = "users"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    email: str = Field(
        sa_column=Column(String(255), unique=True, index=True, nullable=False),
    )
    password_hash: str = Field(sa_column=Column(String(255), nullable=False))
    role: Role = Field(
        default=Role.USER,
        sa_column=Column(SQLEnum(Role), nullable=False, default=Role.USER),
    )
    is_active: bool = Field(default=True, nullable=False)
    last_login: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime, nullable=True),
    )
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime, nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime, nullable=False),
    )


class Session(SQLModel, table=True):
    """
    Server-side session backing a bearer token.

    A token is accepted only while its row exists and has not expired;
    deleting the row is logout.

    Attributes:
        id: Unique session identifier (UUIDv4)
        user_id: Owning user
        token_hash: SHA-256 hex digest of the bearer token
        expires_at: Session expiration timestamp
        created_at: Session creation timestamp
        ip_address: Client IP for audit
        user_agent: Client user-agent for audit
    """
    __tablename__ = "sessions"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(foreign_key="users.id", nullable=False, index=True)
    token_hash: str = Field(
        sa_column=Column(String(64), unique=True, index=True, nullable=False),
    )
    expires_at: datetime = Field(sa_column=Column(DateTime, nullable=False, index=True))
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime, nullable=False),
    )
    ip_address: Optional[str] = Field(default=None, sa_column=Column(String(45), nullable=True))
    user_agent: Optional[str] = Field(default=None, sa_column=Column(String(512), nullable=True))
