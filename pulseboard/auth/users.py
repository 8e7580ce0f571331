"""
Pulseboard - User Store

Async data access for user accounts. Users are never hard-deleted;
deactivation flips is_active.
"""

import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from pulseboard.auth.models import Role, User
from pulseboard.auth.password import hash_password


logger = logging.getLogger(__name__)


async def get_user(db: AsyncSession, user_id: UUID) -> Optional[User]:
    return await db.get(User, user_id)


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.exec(select(User).where(User.email == email.lower()))
    return result.first()


async def create_user(
    db: AsyncSession,
    email: str,
    password: str,
    role: Role = Role.USER,
    rounds: int = 12,
) -> User:
    """
    Create a user with a bcrypt-hashed password.

    Raises:
        sqlalchemy.exc.IntegrityError: If the email is already registered
    """
    now = datetime.utcnow()
    user = User(
        email=email.lower(),
        password_hash=hash_password(password, rounds=rounds),
        role=role,
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def update_last_login(db: AsyncSession, user: User) -> None:
    user.last_login = datetime.utcnow()
    db.add(user)
    await db.commit()


async def set_password_hash(db: AsyncSession, user: User, password_hash: str) -> None:
    user.password_hash = password_hash
    user.updated_at = datetime.utcnow()
    db.add(user)
    await db.commit()


async def list_users(db: AsyncSession) -> List[User]:
    result = await db.exec(select(User).order_by(User.created_at))
    return list(result.all())


async def update_user(
    db: AsyncSession,
    user: User,
    role: Optional[Role] = None,
    is_active: Optional[bool] = None,
) -> User:
    """Apply an admin change of role and/or active flag."""
    if role is not None:
        user.role = role
    if is_active is not None:
        user.is_active = is_active
    user.updated_at = datetime.utcnow()
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def ensure_bootstrap_admin(
    db: AsyncSession,
    email: str,
    password: str,
    rounds: int = 12,
) -> Optional[User]:
    """
    First-access provisioning of a superadmin account.

    Does nothing when the email already exists, so restarts are safe.

    Returns:
        The created user, or None if nothing was created
    """
    if not email or not password:
        return None
    if await get_user_by_email(db, email):
        return None

    user = await create_user(db, email, password, role=Role.SUPERADMIN, rounds=rounds)
    logger.info("Provisioned bootstrap superadmin %s", user.email)
    return user
