"""
Pulseboard - Session Management

Server-side session store for bearer tokens.
Sessions enable immediate token revocation: a token whose row is gone is
rejected even though its signature and embedded expiry are still valid.

Security:
- Only SHA-256 hashes of tokens are persisted
- Logout deletes the session row
- Expired rows are purged by a periodic sweep (see auth/sweeper.py)
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from pulseboard.auth.models import Session
from pulseboard.auth.tokens import hash_token


async def create_session(
    db: AsyncSession,
    user_id: UUID,
    token: str,
    expires_at: datetime,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> Session:
    """
    Persist a session for a freshly issued token.

    Args:
        db: Database session
        user_id: Owning user
        token: Raw bearer token (stored hashed)
        expires_at: Expiry matching the token's embedded expiry
        ip_address: Client IP for audit
        user_agent: Client user-agent for audit
    """
    session = Session(
        user_id=user_id,
        token_hash=hash_token(token),
        expires_at=expires_at,
        created_at=datetime.utcnow(),
        ip_address=ip_address,
        user_agent=user_agent,
    )

    db.add(session)
    await db.commit()
    await db.refresh(session)

    return session


async def get_active_session(db: AsyncSession, token: str) -> Optional[Session]:
    """
    Look up the session for a token if it exists and has not expired.

    Returns:
        Session if present and unexpired, None otherwise
    """
    statement = select(Session).where(
        Session.token_hash == hash_token(token),
        Session.expires_at > datetime.utcnow(),
    )
    result = await db.exec(statement)
    return result.first()


async def delete_session(db: AsyncSession, token: str) -> bool:
    """
    Delete the session for a token (logout).

    Returns:
        True if a session was deleted, False if none matched
    """
    result = await db.exec(delete(Session).where(Session.token_hash == hash_token(token)))
    await db.commit()
    return result.rowcount > 0


async def delete_user_sessions(db: AsyncSession, user_id: UUID) -> int:
    """
    Delete every session of a user (logout everywhere, deactivation).

    Returns:
        Number of sessions deleted
    """
    result = await db.exec(delete(Session).where(Session.user_id == user_id))
    await db.commit()
    return result.rowcount


async def get_active_sessions(db: AsyncSession, user_id: UUID) -> List[Session]:
    """List unexpired sessions of a user, newest first."""
    statement = (
        select(Session)
        .where(Session.user_id == user_id, Session.expires_at > datetime.utcnow())
        .order_by(Session.created_at.desc())
    )
    result = await db.exec(statement)
    return list(result.all())


async def cleanup_expired_sessions(db: AsyncSession, now: Optional[datetime] = None) -> int:
    """
    Delete all sessions whose expiry has passed.

    The cutoff is fixed when the sweep starts, so a session created while
    the sweep runs (expiring 24h later) can never match. Running it twice
    in a row leaves the same set of sessions.

    Returns:
        Number of sessions deleted
    """
    cutoff = now or datetime.utcnow()
    result = await db.exec(delete(Session).where(Session.expires_at <= cutoff))
    await db.commit()
    return result.rowcount
