"""
Pulseboard - Real-Time Message Schemas

Typed messages exchanged over the /ws endpoint.

Client -> server messages form a discriminated union on `type`; anything
that does not parse into one of its variants raises MessageFormatError,
which the hub turns into an `error` reply.

Every server -> client message carries `type` and `timestamp`.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field, TypeAdapter, ValidationError


CHANNELS = ("metrics", "alerts", "audit", "config", "models")


class MessageFormatError(ValueError):
    """Inbound real-time message could not be decoded."""


# =============================================================================
# CLIENT -> SERVER
# =============================================================================

class AuthMessage(BaseModel):
    type: Literal["auth"]
    token: str = Field(..., min_length=1)


class SubscribeMessage(BaseModel):
    """Channel subscription. Omitted or empty channels means all channels."""
    type: Literal["subscribe"]
    channels: Optional[List[str]] = None


class PingMessage(BaseModel):
    type: Literal["ping"]


ClientMessage = Annotated[
    Union[AuthMessage, SubscribeMessage, PingMessage],
    Field(discriminator="type"),
]

_client_message_adapter = TypeAdapter(ClientMessage)


def parse_client_message(raw: str) -> Union[AuthMessage, SubscribeMessage, PingMessage]:
    """
    Decode one inbound text frame.

    Raises:
        MessageFormatError: Invalid JSON, unknown `type` or bad fields
    """
    try:
        return _client_message_adapter.validate_json(raw)
    except ValidationError as e:
        error = e.errors()[0] if e.errors() else {}
        if error.get("type") == "json_invalid":
            raise MessageFormatError("Invalid JSON") from e
        if error.get("type") in ("union_tag_invalid", "union_tag_not_found", "model_attributes_type"):
            raise MessageFormatError("Unknown message type") from e
        raise MessageFormatError(f"Invalid message: {error.get('msg', 'validation failed')}") from e


# =============================================================================
# SERVER -> CLIENT
# =============================================================================

class ServerMessage(BaseModel):
    """Base for outbound messages."""
    type: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    def to_json(self) -> str:
        return self.model_dump_json()


class ConnectionMessage(ServerMessage):
    type: Literal["connection"] = "connection"
    message: str = "Connected to Pulseboard real-time service"


class ConnectionUser(BaseModel):
    id: UUID
    email: str
    role: str


class AuthSuccessMessage(ServerMessage):
    type: Literal["auth_success"] = "auth_success"
    user: ConnectionUser


class ErrorMessage(ServerMessage):
    type: Literal["error"] = "error"
    message: str


class SubscribedMessage(ServerMessage):
    type: Literal["subscribed"] = "subscribed"
    channels: List[str]


class PongMessage(ServerMessage):
    type: Literal["pong"] = "pong"


class MetricsUpdateMessage(ServerMessage):
    type: Literal["metrics_update"] = "metrics_update"
    data: List[Dict[str, Any]]


class MetricCreatedMessage(ServerMessage):
    type: Literal["metric_created"] = "metric_created"
    data: Dict[str, Any]


class AIModelEventMessage(ServerMessage):
    type: Literal["ai_model_created", "ai_model_updated", "ai_model_deleted"]
    data: Dict[str, Any]


class ConfigUpdatedMessage(ServerMessage):
    type: Literal["config_updated"] = "config_updated"
    data: Dict[str, Any]


class AlertMessage(ServerMessage):
    type: Literal["alert"] = "alert"
    severity: Literal["info", "warning", "error", "critical"] = "info"
    message: str
    data: Optional[Dict[str, Any]] = None
