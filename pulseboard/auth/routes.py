"""
Pulseboard - Authentication Routes

API endpoints for authentication:
- POST /auth/login     - Verify credentials, create session, issue token
- POST /auth/register  - Create a `user` account (when enabled)
- POST /auth/logout    - Delete the current session (or all of them)
- GET  /auth/me        - Current user

All operations are logged to the audit trail.
"""

import logging
from functools import lru_cache
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlmodel.ext.asyncio.session import AsyncSession

from pulseboard.audit.models import AuditAction
from pulseboard.audit.service import get_client_ip, get_user_agent, record_event, request_context
from pulseboard.auth import sessions as session_service
from pulseboard.auth.dependencies import AuthenticatedUser, get_current_user, get_tokens
from pulseboard.auth.password import hash_password, needs_rehash, verify_password
from pulseboard.auth.schemas import (
    LoginRequest,
    LoginResponse,
    LogoutRequest,
    LogoutResponse,
    RegisterRequest,
    UserResponse,
)
from pulseboard.auth.users import (
    create_user,
    get_user,
    get_user_by_email,
    set_password_hash,
    update_last_login,
)
from pulseboard.database import get_db
from pulseboard.gateway.rate_limit import SCOPE_AUTH, rate_limited


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


@lru_cache(maxsize=4)
def _dummy_hash(rounds: int) -> str:
    # Checked against when the email is unknown so both failure paths cost one bcrypt verify
    return hash_password("pulseboard-unknown-account", rounds=rounds)


async def _log_auth_event(
    db: AsyncSession,
    request: Request,
    action: str,
    user_id: Optional[UUID] = None,
    details: Optional[Dict[str, Any]] = None,
) -> None:
    await record_event(
        db,
        action=action,
        resource="auth",
        user_id=user_id,
        details={**request_context(request), **(details or {})},
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    dependencies=[Depends(rate_limited(SCOPE_AUTH))],
    summary="Authenticate user and create session",
)
async def login(
    request: Request,
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Authenticate user with email and password.

    On successful authentication:
    1. Validates password against bcrypt hash
    2. Issues a signed token and stores its session row
    3. Updates last login and logs the event

    Unknown email, wrong password and inactive account all return the
    same 401 so accounts cannot be enumerated.
    """
    settings = request.app.state.settings
    user = await get_user_by_email(db, credentials.email)

    if user is None:
        verify_password(credentials.password, _dummy_hash(settings.BCRYPT_ROUNDS))
        reason = "user_not_found"
    elif not verify_password(credentials.password, user.password_hash):
        reason = "invalid_password"
    elif not user.is_active:
        reason = "account_inactive"
    else:
        reason = None

    if reason is not None:
        await _log_auth_event(
            db, request, AuditAction.LOGIN_FAILURE,
            user_id=user.id if user else None,
            details={"email": credentials.email, "reason": reason},
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    # Work factor upgrade
    if needs_rehash(user.password_hash, settings.BCRYPT_ROUNDS):
        await set_password_hash(db, user, hash_password(credentials.password, rounds=settings.BCRYPT_ROUNDS))

    token, expires_at = get_tokens(request).issue(user.id, user.email)
    session = await session_service.create_session(
        db,
        user_id=user.id,
        token=token,
        expires_at=expires_at,
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
    )
    await update_last_login(db, user)

    await _log_auth_event(
        db, request, AuditAction.LOGIN_SUCCESS,
        user_id=user.id,
        details={"session_id": str(session.id)},
    )
    logger.info("User %s logged in", user.email)

    return LoginResponse(
        token=token,
        token_type="bearer",
        expires_at=expires_at,
        user=UserResponse.from_user(user),
    )


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limited(SCOPE_AUTH))],
    summary="Create a user account",
)
async def register(
    request: Request,
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db),
):
    """Self-service registration; new accounts always get the `user` role."""
    settings = request.app.state.settings
    if not settings.ALLOW_REGISTRATION:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Registration is disabled",
        )

    if await get_user_by_email(db, body.email):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered",
        )

    user = await create_user(db, body.email, body.password, rounds=settings.BCRYPT_ROUNDS)
    await _log_auth_event(
        db, request, AuditAction.USER_REGISTERED,
        user_id=user.id,
        details={"email": user.email},
    )

    return UserResponse.from_user(user)


@router.post(
    "/logout",
    response_model=LogoutResponse,
    summary="Invalidate current session",
)
async def logout(
    request: Request,
    body: Optional[LogoutRequest] = None,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Delete the current session (or all sessions).

    The token keeps a valid signature until it expires, but without its
    session row every later request with it is rejected.
    Real-time connections authenticated on the deleted sessions lose
    their authentication.
    """
    if body and body.all_sessions:
        count = await session_service.delete_user_sessions(db, user.user_id)
        await request.app.state.hub.revoke_user_connections(user.user_id)
        await _log_auth_event(
            db, request, AuditAction.LOGOUT_ALL,
            user_id=user.user_id,
            details={"sessions_invalidated": count},
        )
        return LogoutResponse(message="All sessions invalidated", sessions_invalidated=count)

    deleted = await session_service.delete_session(db, user.token)
    await request.app.state.hub.revoke_user_connections(user.user_id, [user.session_id])
    await _log_auth_event(
        db, request, AuditAction.LOGOUT,
        user_id=user.user_id,
        details={"session_id": str(user.session_id)},
    )
    return LogoutResponse(sessions_invalidated=1 if deleted else 0)


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get current user information",
)
async def get_me(
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    db_user = await get_user(db, user.user_id)
    if db_user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return UserResponse.from_user(db_user)
