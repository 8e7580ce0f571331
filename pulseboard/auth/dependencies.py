"""
Pulseboard - Security Dependencies

FastAPI dependencies for authentication and authorization.
Implements token + server-side session validation with policy-backed
permission gates.

Usage:
    @router.get("/protected")
    async def protected_route(user: AuthenticatedUser = Depends(get_current_user)):
        ...

    @router.get("/config")
    async def config_route(user: AuthenticatedUser = Depends(require_permission(Permission.READ_CONFIG))):
        ...

Security:
- Every protected request checks the session store BEFORE the signature,
  so a logged-out token is rejected while its signature is still valid
- Authentication failures never reveal which check failed
- Export denials are audited and raised as dashboard alerts
"""

import logging
from typing import Callable, Optional
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from sqlmodel.ext.asyncio.session import AsyncSession

from pulseboard.audit.models import AuditAction
from pulseboard.audit.service import record_event, request_context
from pulseboard.auth.models import Role
from pulseboard.auth.sessions import get_active_session
from pulseboard.auth.tokens import TokenService
from pulseboard.auth.users import get_user
from pulseboard.database import get_db
from pulseboard.gateway.rbac import Permission, RBACPolicy


logger = logging.getLogger(__name__)

# HTTP Bearer scheme; missing headers are reported by get_current_user
security = HTTPBearer(auto_error=False)

INVALID_TOKEN = "Invalid or expired token"


class AuthenticationError(Exception):
    """
    Token could not be resolved to an active user.

    `message` is safe to show to clients; `reason` is for logs only.
    """

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.reason = reason or message


class AuthenticatedUser(BaseModel):
    """
    Represents a validated, authenticated user.

    Available in route handlers via Depends(get_current_user) and on
    request.state.user.
    """
    user_id: UUID
    email: str
    role: Role
    session_id: UUID
    token_id: str  # jti for audit correlation
    token: str


async def authenticate_token(
    db: AsyncSession,
    token: Optional[str],
    tokens: TokenService,
) -> AuthenticatedUser:
    """
    Resolve a bearer token to an active user.

    Shared by the HTTP gate and the real-time hub. Checks, in order:
    1. A token was supplied
    2. Its session row exists and has not expired
    3. Signature and embedded expiry are valid
    4. The user exists, is active and owns the session

    Raises:
        AuthenticationError: On the first failing check
    """
    if not token:
        raise AuthenticationError("Token required")

    session = await get_active_session(db, token)
    if session is None:
        raise AuthenticationError(INVALID_TOKEN, reason="session_not_found")

    claims = tokens.verify(token)
    if claims is None:
        raise AuthenticationError(INVALID_TOKEN, reason="signature_or_expiry")

    user = await get_user(db, claims.user_id)
    if user is None or not user.is_active:
        raise AuthenticationError(INVALID_TOKEN, reason="user_inactive")
    if session.user_id != user.id:
        raise AuthenticationError(INVALID_TOKEN, reason="session_user_mismatch")

    return AuthenticatedUser(
        user_id=user.id,
        email=user.email,
        role=user.role,
        session_id=session.id,
        token_id=claims.jti,
        token=token,
    )


def get_tokens(request: Request) -> TokenService:
    """Token service from app state."""
    return request.app.state.tokens


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> AuthenticatedUser:
    """
    Validate request authentication and return current user.

    Returns:
        AuthenticatedUser with validated claims

    Raises:
        HTTPException 401: Missing, invalid, expired or revoked token,
            or inactive user
    """
    token = credentials.credentials if credentials else None

    try:
        user = await authenticate_token(db, token, get_tokens(request))
    except AuthenticationError as e:
        logger.debug("Rejected bearer token: %s", e.reason)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        )

    request.state.user = user
    return user


def require_permission(permission: Permission, audit_denial: bool = False) -> Callable:
    """
    Dependency factory enforcing a policy permission.

    Every role gate goes through policies.yaml, so editing a grant there
    changes who may call the route. Denials are 403. With audit_denial the
    denial is also recorded in the audit log (actor email, resource, IP,
    user agent) and pushed to connected dashboards as a warning alert.

    Usage:
        @router.get("/config")
        async def list_config(user: AuthenticatedUser = Depends(require_permission(Permission.READ_CONFIG))):
            ...

    Raises:
        HTTPException 403: If the user's role lacks the permission
    """

    async def permission_checker(
        request: Request,
        user: AuthenticatedUser = Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
    ) -> AuthenticatedUser:
        if RBACPolicy.default().has_permission(user.role, permission):
            return user

        if audit_denial:
            await _report_denial(request, db, user, permission)
        else:
            logger.info(
                "Permission %s denied for %s on %s",
                permission.value, user.email, request.url.path,
            )

        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient privileges",
        )

    return permission_checker


async def _report_denial(
    request: Request,
    db: AsyncSession,
    user: AuthenticatedUser,
    permission: Permission,
) -> None:
    context = request_context(request)
    await record_event(
        db,
        action=AuditAction.ACCESS_DENIED,
        resource=request.url.path,
        user_id=user.user_id,
        details={
            "email": user.email,
            "role": user.role.value,
            "permission": permission.value,
            **context,
        },
    )
    logger.warning(
        "Permission %s denied for %s on %s",
        permission.value, user.email, request.url.path,
    )

    hub = getattr(request.app.state, "hub", None)
    if hub is not None:
        await hub.broadcast_alert(
            "warning",
            f"Unauthorized access attempt on {request.url.path}",
            {"email": user.email, "ip": context["ip"]},
        )
