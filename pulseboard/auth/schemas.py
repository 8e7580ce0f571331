"""
Pulseboard - Authentication Request/Response Schemas

Pydantic models for API request validation and response serialization.
Separates API contracts from database models.
"""

import re
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from pulseboard.auth.models import Role, User
from pulseboard.auth.password import MAX_PASSWORD_BYTES


EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+$")


def _normalize_email(value: str) -> str:
    """Basic email format validation (allows .local for development)."""
    value = value.strip()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Invalid email format")
    return value.lower()


class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""
    email: str = Field(..., description="User email address")
    password: str = Field(..., min_length=1, description="User password")

    @field_validator("email")
    @classmethod
    def email_format(cls, v: str) -> str:
        return _normalize_email(v)


class RegisterRequest(BaseModel):
    """Request body for POST /auth/register."""
    email: str
    password: str = Field(..., min_length=8)

    @field_validator("email")
    @classmethod
    def email_format(cls, v: str) -> str:
        return _normalize_email(v)

    @field_validator("password")
    @classmethod
    def password_length(cls, v: str) -> str:
        if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        return v


class LogoutRequest(BaseModel):
    """Request body for POST /auth/logout (optional)."""
    all_sessions: bool = Field(
        default=False,
        description="Invalidate all sessions (logout everywhere)",
    )


class LogoutResponse(BaseModel):
    message: str = Field(default="Session invalidated")
    sessions_invalidated: int = Field(default=1)


class UserResponse(BaseModel):
    """User as returned by /auth/me, login and the admin user list."""
    id: UUID
    email: str
    role: Role
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            role=user.role,
            is_active=user.is_active,
            last_login=user.last_login,
            created_at=user.created_at,
        )


class LoginResponse(BaseModel):
    """Response body for successful login."""
    token: str = Field(..., description="Bearer token")
    token_type: str = Field(default="bearer")
    expires_at: datetime = Field(..., description="Token expiry (UTC)")
    user: UserResponse
