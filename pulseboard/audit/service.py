"""
Pulseboard - Audit Service

Writes and queries audit log entries. Each write commits on its own;
there is no transaction spanning an audit entry and the change it records.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Union
from uuid import UUID

from fastapi import Request
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from pulseboard.audit.models import AuditAction, AuditLog


async def record_event(
    db: AsyncSession,
    action: Union[AuditAction, str],
    resource: str,
    user_id: Optional[UUID] = None,
    details: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """
    Append an audit entry.

    Args:
        db: Database session
        action: AuditAction tag, or a free-form tag for system events
        resource: Affected resource
        user_id: Acting user, None for system events
        details: JSON-serializable context
    """
    entry = AuditLog(
        user_id=user_id,
        action=action.value if isinstance(action, AuditAction) else action,
        resource=resource,
        details=details,
        timestamp=datetime.utcnow(),
    )
    db.add(entry)
    await db.commit()
    await db.refresh(entry)
    return entry


async def query_audit_logs(
    db: AsyncSession,
    user_id: Optional[UUID] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    limit: Optional[int] = 100,
) -> List[AuditLog]:
    """Audit entries filtered by user and time range, newest first."""
    statement = select(AuditLog)
    if user_id is not None:
        statement = statement.where(AuditLog.user_id == user_id)
    if date_from is not None:
        statement = statement.where(AuditLog.timestamp >= date_from)
    if date_to is not None:
        statement = statement.where(AuditLog.timestamp <= date_to)
    statement = statement.order_by(AuditLog.timestamp.desc())
    if limit is not None:
        statement = statement.limit(limit)

    result = await db.exec(statement)
    return list(result.all())


def get_client_ip(request: Request) -> str:
    """Extract client IP from request."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def get_user_agent(request: Request) -> str:
    """Extract user agent from request."""
    return request.headers.get("User-Agent", "unknown")[:512]


def request_context(request: Request) -> Dict[str, str]:
    """IP and user agent of a request, for audit details."""
    return {
        "ip": get_client_ip(request),
        "user_agent": get_user_agent(request)[:256],
    }
