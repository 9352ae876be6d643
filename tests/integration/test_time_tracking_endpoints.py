"""Integration tests for time tracking endpoints."""
import pytest
from datetime import timedelta

from app.utils.permissions import Role
from tests.fakes import START

YESTERDAY_9AM = (START - timedelta(days=1) + timedelta(hours=1)).isoformat()
YESTERDAY_5PM = (START - timedelta(days=1) + timedelta(hours=9)).isoformat()


def manual_payload(**overrides):
    payload = {
        "clock_in_time": YESTERDAY_9AM,
        "clock_out_time": YESTERDAY_5PM,
        "reason": "Forgot to clock in",
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
class TestAuthentication:
    """Tests for bearer token handling."""

    async def test_requires_token(self, app_client):
        response = await app_client.post("/time/clock-in", json={})

        assert response.status_code == 401

    async def test_rejects_invalid_token(self, app_client):
        response = await app_client.get(
            "/time/status", headers={"Authorization": "Bearer not-a-token"}
        )

        assert response.status_code == 401

    async def test_me(self, app_client, auth_headers):
        response = await app_client.get("/auth/me", headers=auth_headers("hr1", Role.HR))

        assert response.status_code == 200
        assert response.json() == {"user_id": "hr1", "role": "HR"}


@pytest.mark.asyncio
class TestClockEndpoints:
    """Tests for clock-in, breaks and clock-out."""

    async def test_full_shift(self, app_client, auth_headers, clock):
        """Test clock-in, a lunch break and clock-out through the API."""
        headers = auth_headers("emp1")

        response = await app_client.post("/time/clock-in", json={"notes": "Hi"}, headers=headers)
        assert response.status_code == 201
        entry = response.json()
        assert entry["status"] == "ACTIVE"
        assert entry["employee_id"] == "emp1"
        assert "id" in entry

        clock.advance(hours=4)
        response = await app_client.post(
            "/time/break/start", json={"break_type": "LUNCH"}, headers=headers
        )
        assert response.status_code == 201
        assert response.json()["paid"] is False

        response = await app_client.get("/time/status", headers=headers)
        assert response.json()["current_status"] == "ON_BREAK"

        clock.advance(minutes=30)
        response = await app_client.post("/time/break/end", json={}, headers=headers)
        assert response.status_code == 200
        assert response.json()["duration_minutes"] == 30

        clock.advance(hours=5)
        response = await app_client.post("/time/clock-out", json={}, headers=headers)
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "COMPLETED"
        assert data["total_hours"] == 9.0
        assert data["regular_hours"] == 8.0
        assert data["overtime_hours"] == 1.0

    async def test_clock_in_twice_conflicts(self, app_client, auth_headers):
        headers = auth_headers("emp1")
        await app_client.post("/time/clock-in", json={}, headers=headers)

        response = await app_client.post("/time/clock-in", json={}, headers=headers)

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "CLOCK_STATE_ERROR"

    async def test_clock_out_without_clock_in_conflicts(self, app_client, auth_headers):
        response = await app_client.post("/time/clock-out", json={}, headers=auth_headers("emp1"))

        assert response.status_code == 409
        assert response.json()["detail"]["details"]["current_status"] == "CLOCKED_OUT"

    async def test_future_clock_in_is_validation_error(self, app_client, auth_headers):
        response = await app_client.post(
            "/time/clock-in",
            json={"clock_in_time": (START + timedelta(hours=1)).isoformat()},
            headers=auth_headers("emp1"),
        )

        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["code"] == "VALIDATION_ERROR"
        assert detail["details"]["errors"][0]["field"] == "clock_in_time"

    async def test_employee_cannot_clock_in_others(self, app_client, auth_headers):
        response = await app_client.post(
            "/time/clock-in", json={"employee_id": "emp2"}, headers=auth_headers("emp1")
        )

        assert response.status_code == 403

    async def test_manager_can_clock_in_employee(self, app_client, auth_headers):
        response = await app_client.post(
            "/time/clock-in",
            json={"employee_id": "emp2"},
            headers=auth_headers("mgr1", Role.MANAGER),
        )

        assert response.status_code == 201
        assert response.json()["employee_id"] == "emp2"


@pytest.mark.asyncio
class TestEntryEndpoints:
    """Tests for reading entries with field visibility."""

    async def test_get_entry_hides_location_from_manager(self, app_client, auth_headers):
        response = await app_client.post(
            "/time/clock-in",
            json={"location": {"latitude": 52.0, "longitude": 4.0}},
            headers=auth_headers("emp1"),
        )
        entry_id = response.json()["id"]

        own = await app_client.get(f"/time/entries/{entry_id}", headers=auth_headers("emp1"))
        managed = await app_client.get(
            f"/time/entries/{entry_id}", headers=auth_headers("mgr1", Role.MANAGER)
        )

        assert own.json()["location"]["latitude"] == 52.0
        assert "location" not in managed.json()
        assert managed.json()["clock_in_time"] == START.isoformat()

    async def test_other_employee_cannot_read_entry(self, app_client, auth_headers):
        response = await app_client.post("/time/clock-in", json={}, headers=auth_headers("emp1"))
        entry_id = response.json()["id"]

        response = await app_client.get(f"/time/entries/{entry_id}", headers=auth_headers("emp2"))

        assert response.status_code == 403

    async def test_get_missing_entry(self, app_client, auth_headers):
        response = await app_client.get("/time/entries/missing", headers=auth_headers("emp1"))

        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "TIME_ENTRY_NOT_FOUND"

    async def test_list_entries_only_own_for_employee(self, app_client, auth_headers):
        await app_client.post("/time/clock-in", json={}, headers=auth_headers("emp1"))
        await app_client.post("/time/clock-in", json={}, headers=auth_headers("emp2"))

        response = await app_client.get("/time/entries", headers=auth_headers("emp1"))

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert [item["employee_id"] for item in data["items"]] == ["emp1"]

    async def test_list_entries_for_manager(self, app_client, auth_headers):
        await app_client.post("/time/clock-in", json={}, headers=auth_headers("emp1"))
        await app_client.post("/time/clock-in", json={}, headers=auth_headers("emp2"))

        response = await app_client.get(
            "/time/entries", params={"status": "ACTIVE"}, headers=auth_headers("hr1", Role.HR)
        )

        assert response.json()["total"] == 2


@pytest.mark.asyncio
class TestApprovalEndpoints:
    """Tests for manual entries, corrections and approvals."""

    async def test_manual_entry_then_approve(self, app_client, auth_headers):
        response = await app_client.post(
            "/time/entries/manual", json=manual_payload(), headers=auth_headers("emp1")
        )
        assert response.status_code == 201
        entry = response.json()
        assert entry["status"] == "PENDING_APPROVAL"
        assert entry["pending_change"]["kind"] == "manual_creation"

        response = await app_client.get("/time/approvals/pending", headers=auth_headers("emp1"))
        assert response.status_code == 403

        manager = auth_headers("mgr1", Role.MANAGER)
        response = await app_client.get("/time/approvals/pending", headers=manager)
        assert [item["id"] for item in response.json()["items"]] == [entry["id"]]

        response = await app_client.post(
            f"/time/entries/{entry['id']}/approve", json={"notes": "fine"}, headers=manager
        )
        assert response.status_code == 200
        assert response.json()["status"] == "COMPLETED"
        assert response.json()["approved_by"] == "mgr1"
        assert response.json()["total_hours"] == 8.0

    async def test_employee_cannot_approve(self, app_client, auth_headers):
        response = await app_client.post(
            "/time/entries/manual", json=manual_payload(), headers=auth_headers("emp1")
        )

        response = await app_client.post(
            f"/time/entries/{response.json()['id']}/approve", json={}, headers=auth_headers("emp1")
        )

        assert response.status_code == 403

    async def test_reject_manual_entry_deletes_it(self, app_client, auth_headers):
        response = await app_client.post(
            "/time/entries/manual", json=manual_payload(), headers=auth_headers("emp1")
        )
        entry_id = response.json()["id"]

        response = await app_client.post(
            f"/time/entries/{entry_id}/reject",
            json={"reason": "No evidence"},
            headers=auth_headers("hr1", Role.HR),
        )

        assert response.status_code == 200
        assert response.json() == {"deleted": True, "id": entry_id}
        response = await app_client.get(f"/time/entries/{entry_id}", headers=auth_headers("emp1"))
        assert response.status_code == 404

    async def test_overlapping_manual_entry_conflicts(self, app_client, auth_headers):
        headers = auth_headers("emp1")
        await app_client.post("/time/entries/manual", json=manual_payload(), headers=headers)

        response = await app_client.post(
            "/time/entries/manual", json=manual_payload(), headers=headers
        )

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "TIME_ENTRY_CONFLICT"

    async def test_manual_entry_requires_reason(self, app_client, auth_headers):
        response = await app_client.post(
            "/time/entries/manual", json=manual_payload(reason=""), headers=auth_headers("emp1")
        )

        assert response.status_code == 422

    async def test_correct_and_reject(self, app_client, auth_headers, clock):
        headers = auth_headers("emp1")
        await app_client.post("/time/clock-in", json={}, headers=headers)
        clock.advance(hours=8)
        response = await app_client.post("/time/clock-out", json={}, headers=headers)
        entry = response.json()
        clock.advance(days=1)

        response = await app_client.post(
            f"/time/entries/{entry['id']}/correction",
            json={
                "clock_out_time": (START + timedelta(hours=9)).isoformat(),
                "reason": "Stayed late",
            },
            headers=headers,
        )
        assert response.status_code == 200
        assert response.json()["status"] == "PENDING_APPROVAL"
        assert response.json()["total_hours"] is None

        response = await app_client.post(
            f"/time/entries/{entry['id']}/reject",
            json={"reason": "Not confirmed"},
            headers=auth_headers("mgr1", Role.MANAGER),
        )
        assert response.status_code == 200
        restored = response.json()["entry"]
        assert response.json()["deleted"] is False
        assert restored["status"] == "COMPLETED"
        assert restored["total_hours"] == 8.0
        assert restored["rejection_reason"] == "Not confirmed"

    async def test_correcting_other_employees_entry_forbidden(self, app_client, auth_headers, clock):
        headers = auth_headers("emp1")
        await app_client.post("/time/clock-in", json={}, headers=headers)
        clock.advance(hours=8)
        response = await app_client.post("/time/clock-out", json={}, headers=headers)

        response = await app_client.post(
            f"/time/entries/{response.json()['id']}/correction",
            json={"notes": "mine now", "reason": "x"},
            headers=auth_headers("emp2"),
        )

        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "UNAUTHORIZED_CORRECTION"


@pytest.mark.asyncio
class TestHealth:
    async def test_health(self, app_client):
        response = await app_client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}
