"""
Pulseboard - Metric Routes

- GET  /metrics  - Type/time-range filtered query, newest first
- POST /metrics  - Record a metric and push `metric_created` to dashboards
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlmodel.ext.asyncio.session import AsyncSession

from pulseboard.auth.dependencies import AuthenticatedUser, require_permission
from pulseboard.database import get_db
from pulseboard.gateway.rbac import Permission
from pulseboard.metrics.schemas import CreateMetricRequest, MetricResponse, metric_payload
from pulseboard.metrics.store import create_metric, query_metrics
from pulseboard.realtime.messages import MetricCreatedMessage


router = APIRouter(prefix="/metrics", tags=["metrics"])


@router.get("", response_model=List[MetricResponse])
async def list_metrics(
    metric_type: Optional[str] = Query(None, alias="type"),
    date_from: Optional[datetime] = Query(None, alias="from"),
    date_to: Optional[datetime] = Query(None, alias="to"),
    limit: int = Query(100, ge=1, le=1000),
    user: AuthenticatedUser = Depends(require_permission(Permission.READ_METRICS)),
    db: AsyncSession = Depends(get_db),
):
    metrics = await query_metrics(db, metric_type, date_from, date_to, limit)
    return [MetricResponse.from_row(m) for m in metrics]


@router.post("", response_model=MetricResponse, status_code=status.HTTP_201_CREATED)
async def post_metric(
    request: Request,
    body: CreateMetricRequest,
    user: AuthenticatedUser = Depends(require_permission(Permission.WRITE_METRICS)),
    db: AsyncSession = Depends(get_db),
):
    """Store a metric sample, then broadcast it."""
    metric = await create_metric(db, body.type, body.value, body.metadata)
    await request.app.state.hub.broadcast(MetricCreatedMessage(data=metric_payload(metric)))
    return MetricResponse.from_row(metric)
