"""
Pulseboard - AI Model Request/Response Schemas
"""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from pulseboard.registry.models import AIModel, ModelStatus


class CreateAIModelRequest(BaseModel):
    """Request body for POST /ai-models."""
    name: str = Field(..., min_length=1, max_length=255)
    version: str = Field(..., min_length=1, max_length=50)
    status: ModelStatus = ModelStatus.ACTIVE
    compliance: Optional[str] = Field(None, max_length=255)
    security: Optional[str] = Field(None, max_length=255)
    config: Optional[Dict[str, Any]] = None


class UpdateAIModelRequest(BaseModel):
    """Request body for PUT /ai-models/{id}. Only supplied fields change."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    version: Optional[str] = Field(None, min_length=1, max_length=50)
    status: Optional[ModelStatus] = None
    compliance: Optional[str] = Field(None, max_length=255)
    security: Optional[str] = Field(None, max_length=255)
    config: Optional[Dict[str, Any]] = None


class AIModelResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, protected_namespaces=())

    id: UUID
    name: str
    version: str
    status: ModelStatus
    compliance: Optional[str] = None
    security: Optional[str] = None
    config: Optional[Dict[str, Any]] = None
    created_at: datetime
    updated_at: datetime


def ai_model_payload(model: AIModel) -> Dict[str, Any]:
    return AIModelResponse.model_validate(model).model_dump(mode="json")
