"""
Pulseboard - Configuration Store

Get / upsert / list over the config table.
"""

import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from pulseboard.admin.models import ConfigEntry


logger = logging.getLogger(__name__)


async def get_config(db: AsyncSession, key: str) -> Optional[ConfigEntry]:
    result = await db.exec(select(ConfigEntry).where(ConfigEntry.key == key))
    return result.first()


async def list_config(db: AsyncSession) -> List[ConfigEntry]:
    result = await db.exec(select(ConfigEntry).order_by(ConfigEntry.key))
    return list(result.all())


async def set_config(
    db: AsyncSession,
    key: str,
    value: str,
    description: Optional[str] = None,
    updated_by: Optional[UUID] = None,
    _retry: bool = True,
) -> ConfigEntry:
    """
    Insert or overwrite a config entry.

    An existing row gets value, description, updated_by and updated_at
    replaced together. If a concurrent writer inserts the same key first,
    the insert is retried once as an update.
    """
    now = datetime.utcnow()
    entry = await get_config(db, key)

    if entry is not None:
        entry.value = value
        entry.description = description
        entry.updated_by = updated_by
        entry.updated_at = max(now, entry.updated_at)
    else:
        entry = ConfigEntry(
            key=key,
            value=value,
            description=description,
            updated_by=updated_by,
            updated_at=now,
        )

    db.add(entry)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        if not _retry:
            raise
        logger.info("Config key %s inserted concurrently; retrying as update", key)
        return await set_config(db, key, value, description, updated_by, _retry=False)

    await db.refresh(entry)
    return entry
