"""Tests for health, metrics and request handling."""

from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from studydesk.services.monitoring import MetricsCollector, normalize_path


def test_health_check(client):
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["checks"] == {"api": "healthy", "database": "healthy"}


def test_health_check_degraded(client):
    with patch("studydesk.index.check_database", side_effect=OperationalError("SELECT 1", {}, Exception("down"))):
        response = client.get("/health")

    assert response.json()["status"] == "degraded"


def test_metrics_normalize_ids(client):
    client.delete("/studyplan/17")
    client.delete("/studyplan/18")
    client.post("/update-study-progress", json={"id": 5, "progress": 1, "completed": False})

    body = client.get("/metrics").text

    assert 'studydesk_requests_total{method="DELETE",path="/studyplan/:id"} 2' in body
    assert 'studydesk_errors_total{method="POST",path="/update-study-progress",status="404"} 1' in body


def test_normalize_path():
    assert normalize_path("/studyplan/42") == "/studyplan/:id"
    assert normalize_path("/notes-history") == "/notes-history"


def test_metrics_collector_counts_per_process():
    collector = MetricsCollector(prefix="test")
    collector.record_request("GET", "/notes-history", 200, 0.5)
    collector.record_request("GET", "/notes-history", 500, 1.5)

    body = collector.to_prometheus()

    assert 'test_requests_total{method="GET",path="/notes-history"} 2' in body
    assert 'test_request_duration_avg_seconds{method="GET",path="/notes-history"} 1.0000' in body
    assert 'test_errors_total{method="GET",path="/notes-history",status="500"} 1' in body

    collector.reset()

    assert "test_requests_total{" not in collector.to_prometheus()
    assert "test_active_requests 0" in collector.to_prometheus()


def test_database_errors_are_500(client):
    with patch(
        "studydesk.services.notes.list_notes",
        side_effect=OperationalError("SELECT", {}, Exception("disk I/O error")),
    ):
        response = client.get("/notes-history")

    assert response.status_code == 500
    assert response.json() == {"detail": "Database error"}


def test_cors_headers(client):
    response = client.get("/health", headers={"Origin": "http://localhost:5500"})

    assert response.headers["access-control-allow-origin"] == "*"


HUGE_ID = 10**20


@pytest.mark.parametrize("method,path,body", [
    ("DELETE", f"/studyplan/{HUGE_ID}", None),
    ("DELETE", f"/note/{HUGE_ID}", None),
    ("DELETE", f"/flashcard/{HUGE_ID}", None),
    ("DELETE", "/studyplan/0", None),
    ("POST", "/update-study-progress", {"id": HUGE_ID, "progress": 10, "completed": False}),
    ("POST", "/save-flashcard-status", {"setId": HUGE_ID, "cardId": 1, "known": True}),
    ("POST", "/save-flashcard-status", {"setId": 1, "cardId": HUGE_ID, "known": True}),
    ("POST", "/download-export", {"type": "notes", "id": HUGE_ID}),
])
def test_out_of_range_ids_are_rejected(client, method, path, body):
    response = client.request(method, path, json=body)

    assert response.status_code == 400
    assert response.json() == {"detail": "Invalid or missing fields"}


def test_largest_record_id_is_accepted(client):
    response = client.delete(f"/studyplan/{2**63 - 1}")

    assert response.status_code == 200
    assert response.json() == {"success": True}
