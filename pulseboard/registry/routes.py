"""
Pulseboard - AI Model Registry Routes

- GET    /ai-models        - List (read:models)
- GET    /ai-models/{id}   - Fetch one (read:models)
- POST   /ai-models        - Create (manage:models)
- PUT    /ai-models/{id}   - Update (manage:models)
- DELETE /ai-models/{id}   - Delete (delete:models)

Each mutation writes an audit entry and pushes a typed event to dashboards.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlmodel.ext.asyncio.session import AsyncSession

from pulseboard.audit.models import AuditAction
from pulseboard.audit.service import record_event
from pulseboard.auth.dependencies import AuthenticatedUser, require_permission
from pulseboard.database import get_db
from pulseboard.gateway.rbac import Permission
from pulseboard.realtime.messages import AIModelEventMessage
from pulseboard.registry.schemas import (
    AIModelResponse,
    CreateAIModelRequest,
    UpdateAIModelRequest,
    ai_model_payload,
)
from pulseboard.registry.store import (
    create_ai_model,
    delete_ai_model,
    get_ai_model,
    list_ai_models,
    update_ai_model,
)


router = APIRouter(prefix="/ai-models", tags=["ai-models"])

# Fields an update may explicitly clear with null
NULLABLE_FIELDS = {"compliance", "security", "config"}


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="AI model not found")


@router.get("", response_model=List[AIModelResponse])
async def get_models(
    user: AuthenticatedUser = Depends(require_permission(Permission.READ_MODELS)),
    db: AsyncSession = Depends(get_db),
):
    return await list_ai_models(db)


@router.get("/{model_id}", response_model=AIModelResponse)
async def get_model(
    model_id: UUID,
    user: AuthenticatedUser = Depends(require_permission(Permission.READ_MODELS)),
    db: AsyncSession = Depends(get_db),
):
    model = await get_ai_model(db, model_id)
    if model is None:
        raise _not_found()
    return model


@router.post("", response_model=AIModelResponse, status_code=status.HTTP_201_CREATED)
async def post_model(
    request: Request,
    body: CreateAIModelRequest,
    admin: AuthenticatedUser = Depends(require_permission(Permission.MANAGE_MODELS)),
    db: AsyncSession = Depends(get_db),
):
    model = await create_ai_model(db, **body.model_dump())

    await record_event(
        db,
        action=AuditAction.AI_MODEL_CREATED,
        resource="ai_models",
        user_id=admin.user_id,
        details={"model_id": str(model.id), "name": model.name, "version": model.version},
    )
    await request.app.state.hub.broadcast(
        AIModelEventMessage(type="ai_model_created", data=ai_model_payload(model))
    )
    return model


@router.put("/{model_id}", response_model=AIModelResponse)
async def put_model(
    request: Request,
    model_id: UUID,
    body: UpdateAIModelRequest,
    admin: AuthenticatedUser = Depends(require_permission(Permission.MANAGE_MODELS)),
    db: AsyncSession = Depends(get_db),
):
    """Partial update; fields left out of the body keep their value."""
    model = await get_ai_model(db, model_id)
    if model is None:
        raise _not_found()

    changes = {
        field: value
        for field, value in body.model_dump(exclude_unset=True).items()
        if value is not None or field in NULLABLE_FIELDS
    }
    model = await update_ai_model(db, model, changes)

    await record_event(
        db,
        action=AuditAction.AI_MODEL_UPDATED,
        resource="ai_models",
        user_id=admin.user_id,
        details={"model_id": str(model.id), "fields": sorted(changes)},
    )
    await request.app.state.hub.broadcast(
        AIModelEventMessage(type="ai_model_updated", data=ai_model_payload(model))
    )
    return model


@router.delete("/{model_id}")
async def remove_model(
    request: Request,
    model_id: UUID,
    admin: AuthenticatedUser = Depends(require_permission(Permission.DELETE_MODELS)),
    db: AsyncSession = Depends(get_db),
):
    if not await delete_ai_model(db, model_id):
        raise _not_found()

    await record_event(
        db,
        action=AuditAction.AI_MODEL_DELETED,
        resource="ai_models",
        user_id=admin.user_id,
        details={"model_id": str(model_id)},
    )
    await request.app.state.hub.broadcast(
        AIModelEventMessage(type="ai_model_deleted", data={"id": str(model_id)})
    )
    return {"message": "AI model deleted", "id": str(model_id)}
