"""
Pulseboard - Metric Store

Insert and range/type-filtered queries over the metrics table.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from pulseboard.metrics.models import Metric


async def create_metric(
    db: AsyncSession,
    metric_type: str,
    value: int,
    metadata: Optional[Dict[str, Any]] = None,
) -> Metric:
    metric = Metric(type=metric_type, value=value, meta=metadata, timestamp=datetime.utcnow())
    db.add(metric)
    await db.commit()
    await db.refresh(metric)
    return metric


async def query_metrics(
    db: AsyncSession,
    metric_type: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    limit: Optional[int] = 100,
) -> List[Metric]:
    """Metrics filtered by type and time range, newest first."""
    statement = select(Metric)
    if metric_type:
        statement = statement.where(Metric.type == metric_type)
    if date_from is not None:
        statement = statement.where(Metric.timestamp >= date_from)
    if date_to is not None:
        statement = statement.where(Metric.timestamp <= date_to)
    statement = statement.order_by(Metric.timestamp.desc())
    if limit is not None:
        statement = statement.limit(limit)

    result = await db.exec(statement)
    return list(result.all())


async def latest_metrics(db: AsyncSession, limit: int = 100) -> List[Metric]:
    return await query_metrics(db, limit=limit)
