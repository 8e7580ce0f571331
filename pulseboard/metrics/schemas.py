"""
Pulseboard - Metric Request/Response Schemas
"""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from pulseboard.metrics.models import Metric


class CreateMetricRequest(BaseModel):
    """Request body for POST /metrics."""
    type: str = Field(..., min_length=1, max_length=100)
    value: int
    metadata: Optional[Dict[str, Any]] = None


class MetricResponse(BaseModel):
    """Metric as returned by the API, pushed over the real-time channel and exported."""
    id: UUID
    type: str
    value: int
    metadata: Optional[Dict[str, Any]] = None
    timestamp: datetime

    @classmethod
    def from_row(cls, metric: Metric) -> "MetricResponse":
        return cls(
            id=metric.id,
            type=metric.type,
            value=metric.value,
            metadata=metric.meta,
            timestamp=metric.timestamp,
        )


def metric_payload(metric: Metric) -> Dict[str, Any]:
    """JSON-ready dict of a metric row."""
    return MetricResponse.from_row(metric).model_dump(mode="json")
