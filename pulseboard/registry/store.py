"""
Pulseboard - AI Model Store

CRUD over the ai_models table. Each call commits its own change.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from pulseboard.registry.models import AIModel, ModelStatus


async def create_ai_model(
    db: AsyncSession,
    name: str,
    version: str,
    status: ModelStatus = ModelStatus.ACTIVE,
    compliance: Optional[str] = None,
    security: Optional[str] = None,
    config: Optional[Dict[str, Any]] = None,
) -> AIModel:
    now = datetime.utcnow()
    model = AIModel(
        name=name,
        version=version,
        status=status,
        compliance=compliance,
        security=security,
        config=config,
        created_at=now,
        updated_at=now,
    )
    db.add(model)
    await db.commit()
    await db.refresh(model)
    return model


async def list_ai_models(
    db: AsyncSession,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
) -> List[AIModel]:
    """Registered models, newest first, optionally by creation time."""
    statement = select(AIModel)
    if date_from is not None:
        statement = statement.where(AIModel.created_at >= date_from)
    if date_to is not None:
        statement = statement.where(AIModel.created_at <= date_to)
    result = await db.exec(statement.order_by(AIModel.created_at.desc()))
    return list(result.all())


async def get_ai_model(db: AsyncSession, model_id: UUID) -> Optional[AIModel]:
    return await db.get(AIModel, model_id)


async def update_ai_model(db: AsyncSession, model: AIModel, changes: Dict[str, Any]) -> AIModel:
    """
    Apply a partial update.

    Args:
        model: Loaded model row
        changes: Field name -> new value; unknown names are ignored
    """
    for field, value in changes.items():
        if field in ("id", "created_at", "updated_at") or not hasattr(model, field):
            continue
        setattr(model, field, value)
    model.updated_at = max(datetime.utcnow(), model.updated_at)

    db.add(model)
    await db.commit()
    await db.refresh(model)
    return model


async def delete_ai_model(db: AsyncSession, model_id: UUID) -> bool:
    """
    Delete a model.

    Returns:
        True if a model was deleted, False if none matched
    """
    model = await db.get(AIModel, model_id)
    if model is None:
        return False
    await db.delete(model)
    await db.commit()
    return True
