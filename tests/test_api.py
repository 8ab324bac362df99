"""HTTP tests: routers, RFC 7807 problem details and end-to-end flows.

Punches through the API run on the real clock, so assertions here avoid
anything that depends on the time of day.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

from httpx import AsyncClient

from shiftdesk.attendance.models import AttendanceRecord
from tests.conftest import FAR_LAT, MONDAY, NEAR_LAT, OFFICE_LAT, OFFICE_LON, ist

PROBLEM_JSON = "application/problem+json"


# ── Helpers ─────────────────────────────────────────────────────────


async def _configure_org(client: AsyncClient, org_id, mode: str = "strict") -> dict:
    resp = await client.put(
        f"/api/v1/organizations/{org_id}/attendance-settings",
        json={
            "location_latitude": OFFICE_LAT,
            "location_longitude": OFFICE_LON,
            "location_address": "BKC, Mumbai",
            "enforcement_mode": mode,
            "distance_threshold_meters": 500,
            "timezone": "Asia/Kolkata",
            "default_weekly_off_days": ["sun"],
        },
    )
    assert resp.status_code == 200, resp.text
    return resp.json()


async def _create_shift(client: AsyncClient, org_id, **overrides) -> dict:
    body = {
        "organization_id": str(org_id),
        "name": "General",
        "start_time": "09:00:00",
        "end_time": "18:00:00",
        "break_duration_minutes": 60,
        "weekly_off_days": ["sunday"],
    }
    body.update(overrides)
    resp = await client.post("/api/v1/shifts", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def _assign(client: AsyncClient, user_id, shift_id, effective_from: str = "2020-01-01") -> dict:
    resp = await client.post(
        "/api/v1/assignments",
        json={"user_id": str(user_id), "shift_id": shift_id, "effective_from": effective_from},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


def _punch_body(org_id, user_id, lat: float = NEAR_LAT) -> dict:
    return {
        "organization_id": str(org_id),
        "user_id": str(user_id),
        "latitude": lat,
        "longitude": OFFICE_LON,
    }


async def _seed_record(db, org_id, user_id, **fields) -> AttendanceRecord:
    data = dict(
        organization_id=org_id,
        user_id=user_id,
        date=MONDAY,
        punch_in_time=ist(MONDAY, 9, 45),
        punch_out_time=ist(MONDAY, 18),
        total_hours=8.25,
        effective_hours=7.25,
        is_late=True,
        is_outside_geofence=False,
        is_regularized=False,
    )
    data.update(fields)
    record = AttendanceRecord(**data)
    db.add(record)
    await db.commit()
    return record


# ═════════════════════════════════════════════════════════════════════
# SYSTEM & ERRORS
# ═════════════════════════════════════════════════════════════════════


async def test_health(client: AsyncClient):
    resp = await client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


async def test_not_found_problem_detail(client: AsyncClient):
    shift_id = uuid.uuid4()
    resp = await client.get(f"/api/v1/shifts/{shift_id}")
    assert resp.status_code == 404
    assert resp.headers["content-type"].startswith(PROBLEM_JSON)
    body = resp.json()
    assert body["type"].endswith("/not-found")
    assert body["instance"] == f"/api/v1/shifts/{shift_id}"


async def test_request_validation_problem_detail(client: AsyncClient, org_id, user_id):
    resp = await client.post(
        "/api/v1/punch/in",
        json={"organization_id": str(org_id), "user_id": str(user_id), "latitude": 19.0},
    )
    assert resp.status_code == 422
    body = resp.json()
    assert body["title"] == "Validation Error"
    assert "errors" in body


# ═════════════════════════════════════════════════════════════════════
# ORGANIZATIONS
# ═════════════════════════════════════════════════════════════════════


class TestOrganizationSettings:

    async def test_defaults_when_unconfigured(self, client: AsyncClient, org_id):
        resp = await client.get(f"/api/v1/organizations/{org_id}/attendance-settings")
        assert resp.status_code == 200
        body = resp.json()
        assert body["is_configured"] is False
        assert body["location_latitude"] is None
        assert body["enforcement_mode"] == "strict"

    async def test_put_then_get(self, client: AsyncClient, org_id):
        await _configure_org(client, org_id, mode="warn")
        body = (await client.get(f"/api/v1/organizations/{org_id}/attendance-settings")).json()
        assert body["is_configured"] is True
        assert body["enforcement_mode"] == "warn"
        assert body["default_weekly_off_days"] == ["sunday"]

    async def test_rejects_unknown_timezone(self, client: AsyncClient, org_id):
        resp = await client.put(
            f"/api/v1/organizations/{org_id}/attendance-settings",
            json={"timezone": "Mars/Olympus"},
        )
        assert resp.status_code == 422

    async def test_holiday_rederives_existing_records(self, client: AsyncClient, org_id, user_id):
        shift = await _create_shift(client, org_id)
        await _assign(client, user_id, shift["id"])
        sweep = await client.post(
            "/api/v1/attendance/absence-sweep",
            json={"organization_id": str(org_id), "on_date": MONDAY.isoformat()},
        )
        assert sweep.json()["count"] == 1

        resp = await client.post(
            f"/api/v1/organizations/{org_id}/holidays",
            json={"date": MONDAY.isoformat(), "name": "Holi"},
        )
        assert resp.status_code == 201

        day = (await client.get(
            "/api/v1/attendance/organization",
            params={"organization_id": str(org_id), "on_date": MONDAY.isoformat()},
        )).json()
        assert day["data"][0]["is_holiday"] is True
        assert day["data"][0]["is_absent"] is False

        duplicate = await client.post(
            f"/api/v1/organizations/{org_id}/holidays",
            json={"date": MONDAY.isoformat(), "name": "Holi again"},
        )
        assert duplicate.status_code == 409

        listed = await client.get(f"/api/v1/organizations/{org_id}/holidays", params={"year": 2026})
        assert [h["name"] for h in listed.json()] == ["Holi"]


# ═════════════════════════════════════════════════════════════════════
# SHIFTS & ASSIGNMENTS
# ═════════════════════════════════════════════════════════════════════


class TestShiftEndpoints:

    async def test_create_and_conflict(self, client: AsyncClient, org_id):
        shift = await _create_shift(client, org_id)
        assert shift["duration_hours"] == 8.0
        assert shift["is_overnight"] is False

        resp = await client.post(
            "/api/v1/shifts",
            json={
                "organization_id": str(org_id),
                "name": "General",
                "start_time": "10:00:00",
                "end_time": "19:00:00",
            },
        )
        assert resp.status_code == 409
        assert resp.json()["type"].endswith("/conflict")

    async def test_inconsistent_duration(self, client: AsyncClient, org_id):
        resp = await client.post(
            "/api/v1/shifts",
            json={
                "organization_id": str(org_id),
                "name": "Broken",
                "start_time": "09:00:00",
                "end_time": "18:00:00",
                "duration_hours": 6,
            },
        )
        assert resp.status_code == 422
        assert "duration_hours" in resp.json()["errors"]

    async def test_update_deactivate_list(self, client: AsyncClient, org_id):
        shift = await _create_shift(client, org_id)
        resp = await client.patch(f"/api/v1/shifts/{shift['id']}", json={"end_time": "19:00:00"})
        assert resp.json()["duration_hours"] == 9.0

        resp = await client.delete(f"/api/v1/shifts/{shift['id']}")
        assert resp.json()["is_active"] is False

        active = await client.get(
            "/api/v1/shifts", params={"organization_id": str(org_id), "is_active": True},
        )
        assert active.json() == []

    async def test_bulk_upsert(self, client: AsyncClient, org_id):
        await _create_shift(client, org_id)
        resp = await client.post(
            "/api/v1/shifts/bulk-upsert",
            json={
                "organization_id": str(org_id),
                "shifts": [
                    {
                        "organization_id": str(org_id),
                        "name": "General",
                        "start_time": "10:00:00",
                        "end_time": "19:00:00",
                    },
                    {
                        "organization_id": str(org_id),
                        "name": "Night",
                        "start_time": "22:00:00",
                        "end_time": "06:00:00",
                    },
                ],
            },
        )
        assert resp.status_code == 200
        names = {s["name"]: s for s in resp.json()}
        assert names["General"]["start_time"] == "10:00:00"
        assert names["Night"]["is_overnight"] is True

    async def test_assignment_lifecycle(self, client: AsyncClient, org_id, user_id):
        day = await _create_shift(client, org_id)
        late = await _create_shift(client, org_id, name="Late", start_time="12:00:00", end_time="21:00:00")
        await _assign(client, user_id, day["id"], "2026-01-01")

        resp = await client.post(
            "/api/v1/assignments/reassign",
            json={"user_id": str(user_id), "shift_id": late["id"], "effective_from": "2026-03-01"},
        )
        assert resp.status_code == 200

        history = (await client.get("/api/v1/assignments", params={"user_id": str(user_id)})).json()
        assert [a["effective_to"] for a in history] == ["2026-02-28", None]

        active = await client.get(
            "/api/v1/assignments/active", params={"user_id": str(user_id), "on_date": "2026-02-10"},
        )
        assert active.json()["shift"]["name"] == "General"

    async def test_active_assignment_missing(self, client: AsyncClient, user_id):
        resp = await client.get(
            "/api/v1/assignments/active", params={"user_id": str(user_id), "on_date": "2026-03-02"},
        )
        assert resp.status_code == 404
        assert resp.json()["type"].endswith("/shift-not-assigned")


# ═════════════════════════════════════════════════════════════════════
# PUNCH
# ═════════════════════════════════════════════════════════════════════


class TestPunchEndpoints:

    async def test_punch_cycle(self, client: AsyncClient, org_id, user_id):
        await _configure_org(client, org_id)
        shift = await _create_shift(client, org_id)
        await _assign(client, user_id, shift["id"])

        first = await client.post("/api/v1/punch/in", json=_punch_body(org_id, user_id))
        assert first.status_code == 200, first.text
        assert first.json()["created"] is True

        repeat = await client.post("/api/v1/punch/in", json=_punch_body(org_id, user_id))
        assert repeat.json()["created"] is False
        assert repeat.json()["record"]["id"] == first.json()["record"]["id"]

        state = await client.get(
            "/api/v1/punch/state", params={"organization_id": str(org_id), "user_id": str(user_id)},
        )
        assert state.json()["state"] == "punched_in"

        out = await client.post("/api/v1/punch/out", json=_punch_body(org_id, user_id))
        assert out.status_code == 200, out.text
        assert out.json()["record"]["punch_out_time"] is not None

        records = await client.get("/api/v1/attendance/records", params={"user_id": str(user_id)})
        assert records.json()["meta"]["total"] == 1

    async def test_strict_geofence_violation(self, client: AsyncClient, org_id, user_id):
        await _configure_org(client, org_id)
        resp = await client.post("/api/v1/punch/in", json=_punch_body(org_id, user_id, lat=FAR_LAT))

        assert resp.status_code == 403
        assert resp.headers["content-type"].startswith(PROBLEM_JSON)
        body = resp.json()
        assert body["type"].endswith("/geofence-violation")
        assert body["threshold_meters"] == 500
        assert body["distance_meters"] > 1000
        assert body["punch_type"] == "punch_in"

        records = await client.get("/api/v1/attendance/records", params={"user_id": str(user_id)})
        assert records.json()["meta"]["total"] == 0

    async def test_warn_mode_returns_warning(self, client: AsyncClient, org_id, user_id):
        await _configure_org(client, org_id, mode="warn")
        resp = await client.post("/api/v1/punch/in", json=_punch_body(org_id, user_id, lat=FAR_LAT))
        assert resp.status_code == 200
        body = resp.json()
        assert body["record"]["is_outside_geofence"] is True
        assert body["warning"]
        assert body["record"]["needs_review"] is True

    async def test_punch_out_without_session(self, client: AsyncClient, org_id, user_id):
        resp = await client.post("/api/v1/punch/out", json=_punch_body(org_id, user_id))
        assert resp.status_code == 409
        assert resp.json()["type"].endswith("/no-active-punch")

    async def test_events_after_punch(self, client: AsyncClient, org_id, user_id):
        await client.post("/api/v1/punch/in", json=_punch_body(org_id, user_id))

        events = (await client.get("/api/v1/events", params={"organization_id": str(org_id)})).json()
        assert events["meta"]["total"] == 1
        event = events["data"][0]
        assert event["event_type"] == "attendance_record_created"

        ack = await client.post(f"/api/v1/events/{event['id']}/ack")
        assert ack.json()["dispatched_at"] is not None

        pending = (await client.get("/api/v1/events", params={"organization_id": str(org_id)})).json()
        assert pending["meta"]["total"] == 0
        everything = (await client.get(
            "/api/v1/events", params={"organization_id": str(org_id), "pending_only": False},
        )).json()
        assert everything["meta"]["total"] == 1


# ═════════════════════════════════════════════════════════════════════
# ADMIN OPERATIONS
# ═════════════════════════════════════════════════════════════════════


class TestAdminEndpoints:

    async def test_geofence_override(self, client: AsyncClient, db, org_id, user_id, admin_id):
        record = await _seed_record(db, org_id, user_id, is_outside_geofence=True)
        resp = await client.post(
            f"/api/v1/attendance/{record.id}/geofence-override",
            json={"admin_id": str(admin_id), "reason": "Client site visit"},
        )
        assert resp.status_code == 200, resp.text
        assert resp.json()["geofence_override_by"] == str(admin_id)

    async def test_close_stale_sessions(self, client: AsyncClient, db, org_id, user_id, admin_id):
        started = datetime.now(timezone.utc) - timedelta(hours=30)
        await _seed_record(
            db, org_id, user_id,
            date=started.date(), punch_in_time=started, punch_out_time=None, is_late=False,
        )
        resp = await client.post(
            "/api/v1/attendance/stale-sessions/close",
            json={"organization_id": str(org_id), "admin_id": str(admin_id)},
        )
        assert resp.json()["count"] == 1

    async def test_rederive_rejects_inverted_range(self, client: AsyncClient, org_id):
        resp = await client.post(
            "/api/v1/attendance/rederive",
            json={"organization_id": str(org_id), "from_date": "2026-03-10", "to_date": "2026-03-01"},
        )
        assert resp.status_code == 422
        assert "from_date" in resp.json()["errors"]


# ═════════════════════════════════════════════════════════════════════
# REGULARIZATION
# ═════════════════════════════════════════════════════════════════════


class TestRegularizationEndpoints:

    async def test_request_and_approve(self, client: AsyncClient, db, org_id, user_id, admin_id):
        record = await _seed_record(db, org_id, user_id)
        body = {
            "attendance_record_id": str(record.id),
            "requester_id": str(user_id),
            "reason": "Metro delayed",
        }
        created = await client.post("/api/v1/regularizations", json=body)
        assert created.status_code == 201, created.text
        assert created.json()["status"] == "pending"

        duplicate = await client.post("/api/v1/regularizations", json=body)
        assert duplicate.status_code == 409
        assert duplicate.json()["pending_request_id"] == created.json()["id"]

        listed = await client.get("/api/v1/regularizations", params={"organization_id": str(org_id)})
        assert listed.json()["meta"]["total"] == 1

        approved = await client.post(
            f"/api/v1/regularizations/{created.json()['id']}/approve",
            json={"approver_id": str(admin_id), "remarks": "OK"},
        )
        assert approved.json()["status"] == "approved"

        records = await client.get("/api/v1/attendance/records", params={"user_id": str(user_id)})
        row = records.json()["data"][0]
        assert row["is_regularized"] is True
        assert row["is_late"] is False

    async def test_reject(self, client: AsyncClient, db, org_id, user_id, admin_id):
        record = await _seed_record(db, org_id, user_id)
        created = await client.post(
            "/api/v1/regularizations",
            json={
                "attendance_record_id": str(record.id),
                "requester_id": str(user_id),
                "reason": "Overslept",
            },
        )
        rejected = await client.post(
            f"/api/v1/regularizations/{created.json()['id']}/reject",
            json={"approver_id": str(admin_id), "remarks": "No"},
        )
        assert rejected.json()["status"] == "rejected"
        assert rejected.json()["admin_remarks"] == "No"

    async def test_direct_regularize(self, client: AsyncClient, db, org_id, user_id, admin_id):
        record = await _seed_record(db, org_id, user_id)
        resp = await client.post(
            f"/api/v1/attendance/{record.id}/regularize",
            json={"admin_id": str(admin_id), "reason": "Bulk fix"},
        )
        assert resp.status_code == 200
        assert resp.json()["is_regularized"] is True
        assert resp.json()["regularized_by"] == str(admin_id)


# ═════════════════════════════════════════════════════════════════════
# MONTHLY
# ═════════════════════════════════════════════════════════════════════


class TestMonthlyEndpoints:

    async def test_summary_and_override(self, client: AsyncClient, org_id, user_id, admin_id):
        params = {"user_id": str(user_id), "year": 2026, "month": 3}
        system = (await client.get("/api/v1/attendance/monthly", params=params)).json()
        assert system["source"] == "system"
        assert system["present_days"] == 0

        resp = await client.post(
            "/api/v1/attendance/monthly/overrides",
            json={
                "organization_id": str(org_id),
                "user_id": str(user_id),
                "year": 2026,
                "month": 3,
                "payload": {"present_days": 18, "overtime_hours": 4},
                "approved_by": str(admin_id),
            },
        )
        assert resp.status_code == 201, resp.text

        summary = (await client.get("/api/v1/attendance/monthly", params=params)).json()
        assert summary["source"] == "override"
        assert summary["present_days"] == 18
        assert summary["overtime_hours"] == 4

        overrides = await client.get(
            "/api/v1/attendance/monthly/overrides",
            params={"organization_id": str(org_id), "year": 2026, "month": 3},
        )
        assert len(overrides.json()) == 1

        report = await client.get(
            "/api/v1/attendance/monthly/organization",
            params={"organization_id": str(org_id), "year": 2026, "month": 3},
        )
        assert [s["user_id"] for s in report.json()["summaries"]] == [str(user_id)]

    async def test_rejects_invalid_month(self, client: AsyncClient, user_id):
        resp = await client.get(
            "/api/v1/attendance/monthly", params={"user_id": str(user_id), "year": 2026, "month": 13},
        )
        assert resp.status_code == 422
