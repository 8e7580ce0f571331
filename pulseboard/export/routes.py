"""
Pulseboard - Export Routes

GET /export/{metrics|audit-logs|ai-models|config|system-report}
    ?format=json|csv&from&to[&userId]

Gated by the `export:data` permission and the strict export rate limit.
Responses are file downloads (Content-Disposition: attachment).
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import StreamingResponse
from sqlmodel.ext.asyncio.session import AsyncSession

from pulseboard.admin.schemas import config_payload
from pulseboard.admin.store import list_config
from pulseboard.audit.models import AuditAction, AuditLogResponse
from pulseboard.audit.service import query_audit_logs, record_event, request_context
from pulseboard.auth.dependencies import AuthenticatedUser, require_permission
from pulseboard.database import get_db
from pulseboard.export.formatter import (
    AI_MODEL_COLUMNS,
    AUDIT_LOG_COLUMNS,
    CONFIG_COLUMNS,
    METRIC_COLUMNS,
    build_system_report,
    records_to_csv,
    records_to_json,
    report_to_json,
)
from pulseboard.gateway.rate_limit import SCOPE_EXPORT, rate_limited
from pulseboard.gateway.rbac import Permission
from pulseboard.metrics.schemas import metric_payload
from pulseboard.metrics.store import query_metrics
from pulseboard.registry.schemas import ai_model_payload
from pulseboard.registry.store import list_ai_models


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/export", tags=["export"])

CONTENT_TYPES = {
    "json": "application/json",
    "csv": "text/csv; charset=utf-8",
}


class ExportKind(str, Enum):
    METRICS = "metrics"
    AUDIT_LOGS = "audit-logs"
    AI_MODELS = "ai-models"
    CONFIG = "config"
    SYSTEM_REPORT = "system-report"


class ExportFormat(str, Enum):
    JSON = "json"
    CSV = "csv"


def _download(content: str, kind: ExportKind, fmt: ExportFormat) -> StreamingResponse:
    stamp = datetime.utcnow().strftime("%Y%m%d-%H%M%S")
    filename = f"pulseboard-{kind.value}-{stamp}.{fmt.value}"
    return StreamingResponse(
        iter([content]),
        media_type=CONTENT_TYPES[fmt.value],
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Cache-Control": "no-cache",
        },
    )


@router.get(
    "/{kind}",
    dependencies=[Depends(rate_limited(SCOPE_EXPORT))],
    summary="Download an export file",
)
async def export_data(
    request: Request,
    kind: ExportKind,
    fmt: ExportFormat = Query(ExportFormat.JSON, alias="format"),
    date_from: Optional[datetime] = Query(None, alias="from"),
    date_to: Optional[datetime] = Query(None, alias="to"),
    filter_user_id: Optional[UUID] = Query(None, alias="userId"),
    user: AuthenticatedUser = Depends(require_permission(Permission.EXPORT_DATA, audit_denial=True)),
    db: AsyncSession = Depends(get_db),
):
    """
    Export one table, or the combined system report (JSON only).

    Raises:
        HTTPException 400: system-report requested as CSV
    """
    if kind == ExportKind.SYSTEM_REPORT and fmt != ExportFormat.JSON:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="System report is only available as JSON",
        )

    max_rows = request.app.state.settings.EXPORT_MAX_ROWS

    if kind == ExportKind.METRICS:
        records = [metric_payload(m) for m in await query_metrics(db, None, date_from, date_to, max_rows)]
        columns, extra = METRIC_COLUMNS, {}
    elif kind == ExportKind.AUDIT_LOGS:
        logs = await query_audit_logs(db, filter_user_id, date_from, date_to, max_rows)
        records = [AuditLogResponse.model_validate(log).model_dump(mode="json") for log in logs]
        columns, extra = AUDIT_LOG_COLUMNS, {"user_id": str(filter_user_id) if filter_user_id else "all"}
    elif kind == ExportKind.AI_MODELS:
        records = [ai_model_payload(m) for m in await list_ai_models(db, date_from, date_to)]
        columns, extra = AI_MODEL_COLUMNS, {}
    elif kind == ExportKind.CONFIG:
        records = [config_payload(entry) for entry in await list_config(db)]
        columns, extra = CONFIG_COLUMNS, {}
    else:
        metrics = await query_metrics(db, None, date_from, date_to, max_rows)
        logs = await query_audit_logs(db, None, date_from, date_to, max_rows)
        report = build_system_report(
            metrics=[metric_payload(m) for m in metrics],
            audit_logs=[AuditLogResponse.model_validate(log).model_dump(mode="json") for log in logs],
            ai_models=[ai_model_payload(m) for m in await list_ai_models(db)],
            config=[config_payload(entry) for entry in await list_config(db)],
            date_from=date_from,
            date_to=date_to,
        )
        records, columns, extra = None, None, {}

    if records is None:
        content = report_to_json(report)
        total = report["summary"]["total_metrics"]
    elif fmt == ExportFormat.CSV:
        content = records_to_csv(records, columns)
        total = len(records)
    else:
        content = records_to_json(records, date_from, date_to, **extra)
        total = len(records)

    await record_event(
        db,
        action=AuditAction.DATA_EXPORTED,
        resource=kind.value,
        user_id=user.user_id,
        details={"format": fmt.value, "records": total, **request_context(request)},
    )
    logger.info("Export %s (%s) by %s", kind.value, fmt.value, user.email)

    return _download(content, kind, fmt)
