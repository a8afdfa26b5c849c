"""
Tests for the HTTP endpoints.
"""

import pytest
from fastapi.testclient import TestClient

from conftest import TENANT
from daily_report.api import create_app

HEADERS = {"X-API-Key": "test-key", "X-Tenant-ID": TENANT}


@pytest.fixture
def client(settings, database):
    with TestClient(create_app(settings, database)) as test_client:
        yield test_client


def test_healthz_endpoint(client):
    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_rejects_bad_api_key(client):
    response = client.get("/api/notifications", params={"user_id": "u1"}, headers={**HEADERS, "X-API-Key": "nope"})
    assert response.status_code == 401


def test_requires_tenant_header(client):
    response = client.get("/api/notifications", params={"user_id": "u1"}, headers={"X-API-Key": "test-key"})
    assert response.status_code == 422


def test_allowed_dates(client):
    response = client.get("/api/reports/allowed-dates", params={"today": "2024-03-10"}, headers=HEADERS)

    assert response.status_code == 200
    data = response.json()
    assert data["friday"] == "2024-03-08"
    assert "Saturday was a holiday" in data["message"]


def test_submit_and_check_report(client):
    payload = {"user_id": "u1", "date": "2024-03-06", "content": "Wrote tests"}
    response = client.post("/api/reports", json=payload, params={"today": "2024-03-06"}, headers=HEADERS)
    assert response.status_code == 200
    assert response.json()["created"] is True

    response = client.post("/api/reports", json=payload, params={"today": "2024-03-06"}, headers=HEADERS)
    assert response.json()["updated"] is True

    response = client.get("/api/reports/check", params={"user_id": "u1", "date": "2024-03-06"}, headers=HEADERS)
    data = response.json()
    assert data["exists"] is True
    assert data["report"]["content"] == "Wrote tests"

    response = client.get("/api/reports/check", params={"user_id": "u1", "date": "2024-03-06"}, headers={**HEADERS, "X-Tenant-ID": "other"})
    assert response.json() == {"exists": False, "report": None}

    response = client.get("/api/reports/user/u1", headers=HEADERS)
    assert len(response.json()["reports"]) == 1


def test_submit_report_outside_window(client):
    payload = {"user_id": "u1", "date": "2024-03-01", "content": "late"}
    response = client.post("/api/reports", json=payload, params={"today": "2024-03-06"}, headers=HEADERS)
    assert response.status_code == 400


def test_invalid_date_format(client):
    response = client.get("/api/reports/check", params={"user_id": "u1", "date": "03/06/2024"}, headers=HEADERS)
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid date format. Use YYYY-MM-DD"


def test_admin_flow(client):
    user = {"id": "u1", "username": "ana", "real_name": "Ana Lima"}
    assert client.post("/api/admin/users", json=user, headers=HEADERS).status_code == 200

    report = {"user_id": "u1", "date": "2024-02-01", "content": "backfill", "reason": "sick day paperwork"}
    response = client.post("/api/admin/reports", json=report, headers=HEADERS)
    assert response.status_code == 200
    assert response.json()["report"]["admin_reason"] == "sick day paperwork"

    assert client.post("/api/admin/reports", json=report, headers=HEADERS).status_code == 409
    missing = {**report, "user_id": "ghost"}
    assert client.post("/api/admin/reports", json=missing, headers=HEADERS).status_code == 404

    response = client.get("/api/admin/progress", params={"date": "2024-02-01"}, headers=HEADERS)
    data = response.json()
    assert data["submitted_count"] == 1
    assert data["status"] == "All reports submitted"


def test_notification_lifecycle(client):
    response = client.post(
        "/api/notifications/check", json={"user_id": "u1"}, params={"today": "2024-03-06"}, headers=HEADERS
    )
    assert response.status_code == 200
    computed = response.json()["notifications"]
    assert [n["type"] for n in computed] == ["converted_to_leave", "missed_report"]
    assert [n["date"] for n in computed] == ["2024-03-04", "2024-03-05"]

    response = client.get("/api/notifications", params={"user_id": "u1"}, headers=HEADERS)
    assert response.json()["unread_count"] == 2

    first_id = computed[0]["id"]
    assert client.put(f"/api/notifications/{first_id}/seen", headers=HEADERS).status_code == 200
    assert client.put("/api/notifications/9999/seen", headers=HEADERS).status_code == 404

    response = client.put("/api/notifications/seen", json={"user_id": "u1"}, headers=HEADERS)
    assert response.json()["updated"] == 1

    response = client.get("/api/notifications", params={"user_id": "u1"}, headers=HEADERS)
    assert response.json()["unread_count"] == 0


def test_weekend_check_returns_nothing(client):
    response = client.post(
        "/api/notifications/check", json={"user_id": "u1"}, params={"today": "2024-03-09"}, headers=HEADERS
    )
    assert response.json() == {"notifications": []}


def test_cleanup_endpoint(client, database):
    from daily_report.models import Notification, NotificationType

    for hour in (8, 9, 10):
        database.insert_notification(
            Notification(
                user_id="u1",
                tenant_id=TENANT,
                type=NotificationType.MISSED_REPORT,
                date="2024-03-05",
                message="dup",
                created_at=f"2024-03-05T{hour:02d}:00:00+00:00",
            )
        )

    response = client.post("/api/notifications/cleanup", json={"user_id": "u1"}, headers=HEADERS)
    assert response.json()["deleted_count"] == 2
    response = client.post("/api/notifications/cleanup", json={}, headers=HEADERS)
    assert response.json()["deleted_count"] == 0


def test_missed_reports_endpoint(client):
    response = client.get(
        "/api/notifications/missed-reports",
        params={"user_id": "u1", "days": 3, "today": "2024-03-06"},
        headers=HEADERS,
    )
    data = response.json()
    assert data["success"] is True
    assert data["missed_dates"] == ["2024-03-05", "2024-03-04"]


def test_admin_user_listing_and_toggle(client):
    for user_id, name in (("u1", "Ana Lima"), ("u2", "Ben Ode")):
        client.post("/api/admin/users", json={"id": user_id, "username": user_id, "real_name": name}, headers=HEADERS)

    response = client.get("/api/admin/users", headers=HEADERS)
    assert [u["id"] for u in response.json()["users"]] == ["u1", "u2"]
    assert client.get("/api/admin/users", headers={**HEADERS, "X-Tenant-ID": "other"}).json() == {"users": []}

    response = client.patch("/api/admin/users/u2/toggle", headers=HEADERS)
    assert response.status_code == 200
    data = response.json()
    assert data["user"] == {"id": "u2", "is_active": False}
    assert data["message"] == "User disabled successfully"

    response = client.get("/api/admin/progress", params={"date": "2024-03-06"}, headers=HEADERS)
    assert response.json()["total_users"] == 1

    assert client.patch("/api/admin/users/ghost/toggle", headers=HEADERS).status_code == 404


def test_admin_reports_by_date(client):
    for user_id in ("u1", "u2"):
        client.post(
            "/api/reports",
            json={"user_id": user_id, "date": "2024-03-06", "content": f"{user_id} work"},
            params={"today": "2024-03-06"},
            headers=HEADERS,
        )

    response = client.get("/api/admin/reports", params={"date": "2024-03-06"}, headers=HEADERS)
    data = response.json()
    assert data["date"] == "2024-03-06"
    assert sorted(r["user_id"] for r in data["reports"]) == ["u1", "u2"]

    response = client.get("/api/admin/reports", params={"date": "2024-03-05"}, headers=HEADERS)
    assert response.json()["reports"] == []
    assert client.get("/api/admin/reports", params={"date": "bad"}, headers=HEADERS).status_code == 400


@pytest.mark.parametrize("days", [0, 366, 800000])
def test_missed_reports_rejects_out_of_range_days(client, days):
    response = client.get(
        "/api/notifications/missed-reports",
        params={"user_id": "u1", "days": days, "today": "2024-03-06"},
        headers=HEADERS,
    )
    assert response.status_code == 422


def test_unread_count_reflects_seen_flags(client):
    client.post("/api/notifications/check", json={"user_id": "u1"}, params={"today": "2024-03-06"}, headers=HEADERS)
    client.put("/api/notifications/seen", json={"user_id": "u1"}, headers=HEADERS)
    client.post("/api/notifications/check", json={"user_id": "u1"}, params={"today": "2024-03-07"}, headers=HEADERS)

    response = client.get("/api/notifications", params={"user_id": "u1"}, headers=HEADERS)
    data = response.json()
    assert len(data["notifications"]) == 3
    assert data["unread_count"] == 1
