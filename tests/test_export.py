"""
Pulseboard - Export Tests

Formatter unit tests and round trips through GET /api/export/{kind}.
"""

import csv
import doctest
import io
import json
from datetime import datetime, timedelta

from sqlmodel import select

from pulseboard.audit.models import AuditAction, AuditLog
from pulseboard.export import formatter
from pulseboard.export.formatter import (
    METRIC_COLUMNS,
    Column,
    build_system_report,
    records_to_csv,
    records_to_json,
)
from tests.conftest import auth_headers, token_for


NESTED_METADATA = {
    "unit": "percent",
    "note": 'peak, "burst" traffic',
    "hosts": {"primary": "db-1", "replicas": ["db-2", "db-3"]},
}


def _post_metrics(client, token):
    samples = [
        {"type": "cpu_utilization", "value": 91, "metadata": NESTED_METADATA},
        {"type": "memory_usage", "value": 44, "metadata": {"unit": "GB"}},
        {"type": "console_attempts", "value": 2},
    ]
    for sample in samples:
        assert client.post("/api/metrics", headers=auth_headers(token), json=sample).status_code == 201
    return samples


class TestFormatter:

    def test_csv_quotes_commas_and_quotes(self):
        text = records_to_csv(
            [{"key": "a,b", "value": 'say "hi"'}],
            [Column("key", "Key"), Column("value", "Value")],
        )

        assert text == 'Key,Value\r\n"a,b","say ""hi"""\r\n'

    def test_docstring_examples_run(self):
        results = doctest.testmod(formatter)

        assert results.attempted >= 1
        assert results.failed == 0

    def test_csv_nested_values_become_json_cells(self):
        record = {"id": "1", "type": "t", "value": 3, "timestamp": "2026-01-01T00:00:00", "metadata": NESTED_METADATA}

        rows = list(csv.DictReader(io.StringIO(records_to_csv([record], METRIC_COLUMNS))))

        assert json.loads(rows[0]["Metadata"]) == NESTED_METADATA
        assert rows[0]["Value"] == "3"

    def test_csv_missing_values_are_empty(self):
        text = records_to_csv([{"id": "1"}], [Column("id", "ID"), Column("description", "Description")])

        assert text.splitlines()[1] == "1,"

    def test_csv_without_headers(self):
        text = records_to_csv([{"id": "1"}], [Column("id", "ID")], include_headers=False)

        assert text == "1\r\n"

    def test_json_envelope(self):
        exported_at = datetime(2026, 3, 1, 12, 0, 0)
        date_from = datetime(2026, 2, 1)

        envelope = json.loads(records_to_json([{"a": 1}], date_from, None, exported_at, user_id="all"))

        assert envelope["export_date"] == "2026-03-01T12:00:00"
        assert envelope["date_range"] == {"from": "2026-02-01T00:00:00", "to": None}
        assert envelope["user_id"] == "all"
        assert envelope["total_records"] == 1
        assert envelope["data"] == [{"a": 1}]

    def test_system_report_summary(self):
        now = datetime(2026, 3, 1, 12, 0, 0)
        metrics = [
            {"type": "console_attempts", "timestamp": (now - timedelta(hours=1)).isoformat()},
            {"type": "console_attempts", "timestamp": (now - timedelta(hours=30)).isoformat()},
            {"type": "cpu_utilization", "timestamp": now.isoformat()},
        ]
        logs = [{"action": "auth.login.success"}, {"action": "auth.login.success"}, {"action": None}]
        models = [{"status": "active"}, {"status": "training"}]

        report = build_system_report(metrics, logs, models, [{"key": "k"}], now=now)

        assert report["summary"] == {
            "total_metrics": 3,
            "total_audit_logs": 3,
            "total_ai_models": 2,
            "total_configs": 1,
            "active_models": 1,
            "recent_alerts": 1,
        }
        assert report["metrics"]["by_type"] == {"console_attempts": 2, "cpu_utilization": 1}
        assert report["audit_logs"]["by_action"] == {"auth.login.success": 2, "unknown": 1}
        assert report["system_config"] == [{"key": "k"}]

    def test_system_report_keeps_fifty_recent(self):
        metrics = [{"type": "t", "timestamp": datetime(2026, 1, 1).isoformat(), "n": i} for i in range(60)]

        report = build_system_report(metrics, [], [], [])

        assert len(report["metrics"]["recent"]) == 50
        assert report["metrics"]["recent"][0]["n"] == 0
        assert report["summary"]["total_metrics"] == 60


class TestExportEndpoint:

    def test_json_export_round_trips_metrics(self, client, admin_user):
        token = token_for(client, admin_user)
        _post_metrics(client, token)
        listed = client.get("/api/metrics", headers=auth_headers(token)).json()

        response = client.get("/api/export/metrics?format=json", headers=auth_headers(token))

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/json")
        envelope = json.loads(response.content)
        assert envelope["total_records"] == 3

        exported = {(r["type"], r["value"], r["timestamp"]) for r in envelope["data"]}
        expected = {(r["type"], r["value"], r["timestamp"]) for r in listed}
        assert exported == expected

        cpu = next(r for r in envelope["data"] if r["type"] == "cpu_utilization")
        assert cpu["metadata"] == NESTED_METADATA

    def test_csv_export_round_trips_metrics(self, client, admin_user):
        token = token_for(client, admin_user)
        _post_metrics(client, token)

        response = client.get("/api/export/metrics?format=csv", headers=auth_headers(token))

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        rows = list(csv.DictReader(io.StringIO(response.text)))
        assert len(rows) == 3
        assert list(rows[0].keys()) == ["ID", "Type", "Value", "Timestamp", "Metadata"]

        by_type = {row["Type"]: row for row in rows}
        assert by_type["cpu_utilization"]["Value"] == "91"
        assert json.loads(by_type["cpu_utilization"]["Metadata"]) == NESTED_METADATA
        assert json.loads(by_type["console_attempts"]["Metadata"]) == {}
        assert datetime.fromisoformat(by_type["memory_usage"]["Timestamp"])

    def test_download_headers(self, client, admin_user):
        token = token_for(client, admin_user)

        response = client.get("/api/export/config?format=csv", headers=auth_headers(token))

        disposition = response.headers["Content-Disposition"]
        assert disposition.startswith('attachment; filename="pulseboard-config-')
        assert disposition.endswith('.csv"')

    def test_date_range_filter(self, client, admin_user):
        token = token_for(client, admin_user)
        _post_metrics(client, token)
        future = (datetime.utcnow() + timedelta(days=1)).isoformat()

        response = client.get(f"/api/export/metrics?from={future}", headers=auth_headers(token))

        envelope = json.loads(response.content)
        assert envelope["total_records"] == 0
        assert envelope["date_range"]["from"] == future

    def test_audit_log_export_filtered_by_user(self, client, admin_user, regular_user):
        token_for(client, regular_user)
        token = token_for(client, admin_user)

        response = client.get(
            f"/api/export/audit-logs?userId={regular_user.id}",
            headers=auth_headers(token),
        )

        envelope = json.loads(response.content)
        assert envelope["user_id"] == str(regular_user.id)
        assert envelope["total_records"] >= 1
        assert {r["user_id"] for r in envelope["data"]} == {str(regular_user.id)}

    def test_ai_model_export(self, client, admin_user):
        token = token_for(client, admin_user)
        client.post(
            "/api/ai-models",
            headers=auth_headers(token),
            json={"name": "Fraud Detector", "version": "2.1", "status": "active"},
        )

        response = client.get("/api/export/ai-models?format=csv", headers=auth_headers(token))

        rows = list(csv.DictReader(io.StringIO(response.text)))
        assert rows[0]["Name"] == "Fraud Detector"
        assert rows[0]["Status"] == "active"

    def test_system_report(self, client, admin_user):
        token = token_for(client, admin_user)
        _post_metrics(client, token)

        response = client.get("/api/export/system-report", headers=auth_headers(token))

        assert response.status_code == 200
        report = json.loads(response.content)
        assert report["summary"]["total_metrics"] == 3
        assert report["summary"]["recent_alerts"] == 1
        assert report["metrics"]["by_type"]["memory_usage"] == 1

    def test_system_report_as_csv_rejected(self, client, admin_user):
        token = token_for(client, admin_user)

        response = client.get("/api/export/system-report?format=csv", headers=auth_headers(token))

        assert response.status_code == 400
        assert "Content-Disposition" not in response.headers

    def test_unknown_kind_is_validation_error(self, client, admin_user):
        token = token_for(client, admin_user)

        response = client.get("/api/export/passwords", headers=auth_headers(token))

        assert response.status_code == 400

    def test_export_is_audited(self, client, db_session, admin_user):
        token = token_for(client, admin_user)

        client.get("/api/export/metrics?format=csv", headers=auth_headers(token))

        entry = db_session.exec(
            select(AuditLog).where(AuditLog.action == AuditAction.DATA_EXPORTED)
        ).one()
        assert entry.user_id == admin_user.id
        assert entry.resource == "metrics"
        assert entry.details["format"] == "csv"
        assert entry.details["records"] == 0
