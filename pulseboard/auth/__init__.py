"""
Pulseboard - Authentication Package

Authentication with:
- Signed bearer tokens backed by server-side sessions
- bcrypt password hashing
- Policy-backed permission gates with deny-by-default
- Audit trail integration
"""

from pulseboard.auth.models import User, Session, Role
from pulseboard.auth.dependencies import (
    AuthenticatedUser,
    get_current_user,
    require_permission,
)
from pulseboard.auth.tokens import TokenService

__all__ = [
    "User",
    "Session",
    "Role",
    "AuthenticatedUser",
    "get_current_user",
    "require_permission",
    "TokenService",
]
