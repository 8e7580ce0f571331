"""
Pulseboard - Admin Request/Response Schemas
"""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from pulseboard.admin.models import ConfigEntry
from pulseboard.auth.models import Role


class SetConfigRequest(BaseModel):
    """Request body for POST /admin/config."""
    key: str = Field(..., min_length=1, max_length=255)
    value: str
    description: Optional[str] = None


class ConfigEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    key: str
    value: str
    description: Optional[str] = None
    updated_by: Optional[UUID] = None
    updated_at: datetime


def config_payload(entry: ConfigEntry) -> Dict[str, Any]:
    return ConfigEntryResponse.model_validate(entry).model_dump(mode="json")


class UpdateUserRequest(BaseModel):
    """Request body for PUT /admin/users/{id}. Omitted fields are left alone."""
    role: Optional[Role] = None
    is_active: Optional[bool] = None
