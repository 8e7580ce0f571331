"""
Pulseboard - Admin API Routes

Admin endpoints for system management:
- Configuration key/value entries (list, get, upsert)
- Audit log queries
- User management (list, role/active changes, session revocation)

Each route requires its policy permission (gateway/policies.yaml).
"""

import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request, status
from sqlmodel.ext.asyncio.session import AsyncSession

from pulseboard.admin.schemas import (
    ConfigEntryResponse,
    SetConfigRequest,
    UpdateUserRequest,
    config_payload,
)
from pulseboard.admin.store import get_config, list_config, set_config
from pulseboard.audit.models import AuditAction, AuditLogResponse
from pulseboard.audit.service import query_audit_logs, record_event, request_context
from pulseboard.auth.dependencies import AuthenticatedUser, require_permission
from pulseboard.auth.schemas import UserResponse
from pulseboard.auth.sessions import delete_user_sessions
from pulseboard.auth.users import get_user, list_users, update_user
from pulseboard.database import get_db
from pulseboard.gateway.rbac import Permission
from pulseboard.realtime.messages import ConfigUpdatedMessage


logger = logging.getLogger(__name__)

router = APIRouter(tags=["admin"])


# =============================================================================
# Configuration
# =============================================================================

@router.get("/admin/config", response_model=List[ConfigEntryResponse], summary="List configuration")
async def get_all_config(
    admin: AuthenticatedUser = Depends(require_permission(Permission.READ_CONFIG)),
    db: AsyncSession = Depends(get_db),
):
    return await list_config(db)


@router.get("/admin/config/{key}", response_model=ConfigEntryResponse, summary="Get configuration entry")
async def get_config_entry(
    key: str,
    admin: AuthenticatedUser = Depends(require_permission(Permission.READ_CONFIG)),
    db: AsyncSession = Depends(get_db),
):
    entry = await get_config(db, key)
    if entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Config entry not found")
    return entry


@router.post("/admin/config", response_model=ConfigEntryResponse, summary="Create or update configuration entry")
async def upsert_config(
    request: Request,
    body: SetConfigRequest,
    admin: AuthenticatedUser = Depends(require_permission(Permission.MANAGE_CONFIG)),
    db: AsyncSession = Depends(get_db),
):
    """
    Upsert a config entry.

    Writes an audit entry and pushes `config_updated` to dashboards.
    """
    entry = await set_config(db, body.key, body.value, body.description, admin.user_id)

    await record_event(
        db,
        action=AuditAction.CONFIG_UPDATED,
        resource="config",
        user_id=admin.user_id,
        details={"key": entry.key, "value": entry.value, **request_context(request)},
    )
    await request.app.state.hub.broadcast(ConfigUpdatedMessage(data=config_payload(entry)))

    return entry


# =============================================================================
# Audit Logs
# =============================================================================

@router.get("/audit-logs", response_model=List[AuditLogResponse], summary="Query audit logs")
async def get_audit_logs(
    filter_user_id: Optional[UUID] = Query(None, alias="userId", description="Filter by user ID"),
    date_from: Optional[datetime] = Query(None, alias="from"),
    date_to: Optional[datetime] = Query(None, alias="to"),
    limit: int = Query(100, ge=1, le=1000),
    admin: AuthenticatedUser = Depends(require_permission(Permission.READ_AUDIT)),
    db: AsyncSession = Depends(get_db),
):
    """Audit entries newest first, filtered by user and time range."""
    return await query_audit_logs(db, filter_user_id, date_from, date_to, limit)


# =============================================================================
# User Management
# =============================================================================

@router.get("/admin/users", response_model=List[UserResponse], summary="List all users")
async def get_users(
    admin: AuthenticatedUser = Depends(require_permission(Permission.READ_USERS)),
    db: AsyncSession = Depends(get_db),
):
    return [UserResponse.from_user(u) for u in await list_users(db)]


@router.put("/admin/users/{target_user_id}", response_model=UserResponse, summary="Update user")
async def put_user(
    request: Request,
    body: UpdateUserRequest,
    target_user_id: UUID = Path(..., description="User ID to update"),
    admin: AuthenticatedUser = Depends(require_permission(Permission.MANAGE_USERS)),
    db: AsyncSession = Depends(get_db),
):
    """
    Change a user's role and/or active flag.

    Deactivating a user deletes all of their sessions, so their tokens
    stop working immediately and their live dashboards stop receiving
    broadcasts.
    """
    user = await get_user(db, target_user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    # Prevent self-deactivation
    if user.id == admin.user_id and body.is_active is False:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot deactivate your own account",
        )

    user = await update_user(db, user, role=body.role, is_active=body.is_active)

    revoked = 0
    if body.is_active is False:
        revoked = await delete_user_sessions(db, user.id)
        await request.app.state.hub.revoke_user_connections(user.id)

    await record_event(
        db,
        action=AuditAction.USER_UPDATED,
        resource="users",
        user_id=admin.user_id,
        details={
            "target_user_id": str(user.id),
            "changes": body.model_dump(mode="json", exclude_none=True),
            "sessions_revoked": revoked,
            **request_context(request),
        },
    )
    logger.info("User %s updated by %s", user.email, admin.email)

    return UserResponse.from_user(user)


@router.post("/admin/users/{target_user_id}/revoke-sessions", summary="Revoke user sessions")
async def revoke_user_sessions(
    request: Request,
    target_user_id: UUID = Path(..., description="User ID to revoke sessions for"),
    admin: AuthenticatedUser = Depends(require_permission(Permission.MANAGE_USERS)),
    db: AsyncSession = Depends(get_db),
):
    """Delete every session of a user and unauthenticate their live dashboards. Forces re-login."""
    user = await get_user(db, target_user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    count = await delete_user_sessions(db, user.id)
    await request.app.state.hub.revoke_user_connections(user.id)
    await record_event(
        db,
        action=AuditAction.USER_SESSIONS_REVOKED,
        resource="users",
        user_id=admin.user_id,
        details={"target_user_id": str(user.id), "sessions_revoked": count, **request_context(request)},
    )

    return {"message": f"Revoked {count} sessions", "user_id": str(user.id), "sessions_revoked": count}
