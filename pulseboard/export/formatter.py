"""
Pulseboard - Export Formatter

Pure conversions from API-shaped records (JSON-ready dicts) to download
payloads. No database access and no state.

JSON exports wrap the records in an envelope with the export time, the
requested date range and a record count. CSV exports follow a fixed column
list per entity; nested values (metadata, details, config) are written as
compact JSON inside one cell, and the csv module takes care of quoting.
"""

import csv
import io
import json
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence


@dataclass(frozen=True)
class Column:
    """
    One CSV column.

    Attributes:
        key: Record key to read
        label: Header text
        fmt: Optional cell formatter, applied to non-empty values
    """
    key: str
    label: str
    fmt: Optional[Callable[[Any], str]] = None


def _json_cell(value: Any) -> str:
    return json.dumps(value if value is not None else {}, separators=(",", ":"), sort_keys=True)


METRIC_COLUMNS = (
    Column("id", "ID"),
    Column("type", "Type"),
    Column("value", "Value"),
    Column("timestamp", "Timestamp"),
    Column("metadata", "Metadata", _json_cell),
)

AUDIT_LOG_COLUMNS = (
    Column("id", "ID"),
    Column("user_id", "User ID"),
    Column("action", "Action"),
    Column("resource", "Resource"),
    Column("timestamp", "Timestamp"),
    Column("details", "Details", _json_cell),
)

AI_MODEL_COLUMNS = (
    Column("id", "ID"),
    Column("name", "Name"),
    Column("version", "Version"),
    Column("status", "Status"),
    Column("compliance", "Compliance"),
    Column("security", "Security Level"),
    Column("created_at", "Created"),
    Column("updated_at", "Updated"),
)

CONFIG_COLUMNS = (
    Column("id", "ID"),
    Column("key", "Key"),
    Column("value", "Value"),
    Column("description", "Description"),
    Column("updated_by", "Updated By"),
    Column("updated_at", "Updated"),
)


def _format_cell(record: Dict[str, Any], column: Column) -> str:
    value = record.get(column.key)
    if column.fmt is not None:
        return column.fmt(value)
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return _json_cell(value)
    return str(value)


def records_to_csv(
    records: Iterable[Dict[str, Any]],
    columns: Sequence[Column],
    include_headers: bool = True,
) -> str:
    """
    Render records as CSV text.

    Example:
        >>> records_to_csv([{"key": "a,b", "value": "x"}],
        ...                [Column("key", "Key"), Column("value", "Value")])
        'Key,Value\\r\\n"a,b",x\\r\\n'
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    if include_headers:
        writer.writerow([column.label for column in columns])
    for record in records:
        writer.writerow([_format_cell(record, column) for column in columns])
    return buffer.getvalue()


def records_to_json(
    records: List[Dict[str, Any]],
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    exported_at: Optional[datetime] = None,
    **extra: Any,
) -> str:
    """Render records inside the export envelope."""
    envelope = {
        "export_date": (exported_at or datetime.utcnow()).isoformat(),
        "date_range": {
            "from": date_from.isoformat() if date_from else None,
            "to": date_to.isoformat() if date_to else None,
        },
        **extra,
        "total_records": len(records),
        "data": records,
    }
    return json.dumps(envelope, indent=2, default=str)


def _count_by(records: Iterable[Dict[str, Any]], key: str) -> Dict[str, int]:
    return dict(Counter(record.get(key) or "unknown" for record in records))


def build_system_report(
    metrics: List[Dict[str, Any]],
    audit_logs: List[Dict[str, Any]],
    ai_models: List[Dict[str, Any]],
    config: List[Dict[str, Any]],
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Combined snapshot of every table.

    `metrics` and `audit_logs` are expected newest first; the report keeps
    the 50 most recent of each plus per-type / per-action counts.
    Recent alerts are console_attempts samples from the last 24 hours.
    """
    now = now or datetime.utcnow()
    alert_cutoff = now - timedelta(hours=24)

    recent_alerts = sum(
        1 for m in metrics
        if m.get("type") == "console_attempts"
        and datetime.fromisoformat(str(m["timestamp"])) > alert_cutoff
    )

    return {
        "generated": now.isoformat(),
        "date_range": {
            "from": date_from.isoformat() if date_from else None,
            "to": date_to.isoformat() if date_to else None,
        },
        "summary": {
            "total_metrics": len(metrics),
            "total_audit_logs": len(audit_logs),
            "total_ai_models": len(ai_models),
            "total_configs": len(config),
            "active_models": sum(1 for m in ai_models if m.get("status") == "active"),
            "recent_alerts": recent_alerts,
        },
        "metrics": {
            "recent": metrics[:50],
            "by_type": _count_by(metrics, "type"),
        },
        "audit_logs": {
            "recent": audit_logs[:50],
            "by_action": _count_by(audit_logs, "action"),
        },
        "ai_models": ai_models,
        "system_config": config,
    }


def report_to_json(report: Dict[str, Any]) -> str:
    return json.dumps(report, indent=2, default=str)
