"""Tests for monthly aggregation: system totals, overrides and the org report."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from shiftdesk.attendance.models import AttendanceRecord
from shiftdesk.common.constants import SummarySource
from shiftdesk.monthly import aggregator
from shiftdesk.monthly.models import MonthlyOverride
from shiftdesk.monthly.schemas import MonthlyOverrideCreate, OverridePayload
from shiftdesk.monthly.service import MonthlyAttendanceService, month_bounds
from tests.conftest import ist


def _make_record(org_id, user_id, on_date: date, *, present: bool = True, **flags) -> dict:
    data = dict(
        id=uuid.uuid4(),
        organization_id=org_id,
        user_id=user_id,
        date=on_date,
        shift_id=None,
        punch_in_time=ist(on_date, 9) if present else None,
        punch_out_time=ist(on_date, 18) if present else None,
        total_hours=9.0 if present else 0.0,
        effective_hours=8.0 if present else 0.0,
        is_outside_geofence=False,
        is_late=False,
        is_early_out=False,
        is_half_day=False,
        is_weekend=False,
        is_holiday=False,
        is_absent=not present,
        is_regularized=False,
        created_at=datetime.now(timezone.utc),
        updated_at=datetime.now(timezone.utc),
    )
    data.update(flags)
    return data


async def _seed_month(db: AsyncSession, org_id, user_id, present_days: int = 20, absent_days: int = 0):
    """Present on the first *present_days* weekdays of March 2026, then absent."""
    day = date(2026, 3, 1)
    present = absent = 0
    while present < present_days or absent < absent_days:
        if day.weekday() < 5:
            if present < present_days:
                db.add(AttendanceRecord(**_make_record(org_id, user_id, day)))
                present += 1
            else:
                db.add(AttendanceRecord(**_make_record(org_id, user_id, day, present=False)))
                absent += 1
        day += timedelta(days=1)
    await db.flush()


def _override(payload: dict, **kwargs) -> SimpleNamespace:
    data = dict(
        id=uuid.uuid4(),
        user_id=uuid.uuid4(),
        payload=payload,
        approved_at=None,
        created_at=datetime(2026, 4, 1, tzinfo=timezone.utc),
    )
    data.update(kwargs)
    return SimpleNamespace(**data)


# ═════════════════════════════════════════════════════════════════════
# PURE AGGREGATION
# ═════════════════════════════════════════════════════════════════════


class TestAggregator:

    def test_dedupe_prefers_punched_record(self):
        user = uuid.uuid4()
        day = date(2026, 3, 2)
        absent = SimpleNamespace(**_make_record(uuid.uuid4(), user, day, present=False))
        present = SimpleNamespace(**_make_record(uuid.uuid4(), user, day))
        assert aggregator.dedupe_records([absent, present]) == [present]

    def test_system_totals(self):
        org, user = uuid.uuid4(), uuid.uuid4()
        records = [
            SimpleNamespace(**_make_record(org, user, date(2026, 3, 2), is_late=True)),
            SimpleNamespace(**_make_record(org, user, date(2026, 3, 3), is_half_day=True, effective_hours=3.0)),
            SimpleNamespace(**_make_record(org, user, date(2026, 3, 4), present=False)),
            SimpleNamespace(**_make_record(org, user, date(2026, 3, 9), present=False, is_absent=False, is_holiday=True)),
        ]
        totals = aggregator.system_totals(records)
        assert totals.total_days == 4
        assert totals.present_days == 2
        assert totals.absent_days == 1
        assert totals.lop_days == 1
        assert totals.holidays == 1
        assert totals.late_days == 1
        assert totals.half_day_count == 1
        assert totals.total_effective_hours == pytest.approx(11.0)

    def test_select_override_latest_approval_wins(self):
        older = _override({}, approved_at=datetime(2026, 4, 2, tzinfo=timezone.utc))
        newer = _override({}, approved_at=datetime(2026, 4, 5, tzinfo=timezone.utc))
        unapproved = _override({}, created_at=datetime(2026, 4, 3, tzinfo=timezone.utc))
        assert aggregator.select_override([older, newer, unapproved]) is newer
        assert aggregator.select_override([]) is None

    def test_merge_field_by_field(self):
        system = aggregator.system_totals([])
        system = system.model_copy(update={"present_days": 20, "total_effective_hours": 160.0, "late_days": 3})
        override = _override({"present_days": 18, "overtime_hours": 4, "late_occurrences": 0})

        summary = aggregator.merge(override.user_id, 2026, 3, system, override)

        assert summary.source == SummarySource.override
        assert summary.override_id == override.id
        assert summary.present_days == 18
        assert summary.late_days == 0
        assert summary.overtime_hours == 4
        assert summary.total_effective_hours == pytest.approx(164.0)
        assert summary.average_hours == pytest.approx(164.0 / 18)

    def test_malformed_override_ignored(self):
        system = aggregator.system_totals([]).model_copy(update={"present_days": 20})
        override = _override({"present_days": -3})
        summary = aggregator.merge(override.user_id, 2026, 3, system, override)
        assert summary.source == SummarySource.system
        assert summary.present_days == 20

    def test_average_with_no_present_days(self):
        summary = aggregator.merge(uuid.uuid4(), 2026, 3, aggregator.system_totals([]))
        assert summary.average_hours == 0.0


def test_month_bounds():
    assert month_bounds(2026, 2) == (date(2026, 2, 1), date(2026, 2, 28))
    assert month_bounds(2028, 2)[1] == date(2028, 2, 29)


# ═════════════════════════════════════════════════════════════════════
# SERVICE
# ═════════════════════════════════════════════════════════════════════


class TestMonthlyService:

    async def test_system_summary(self, db: AsyncSession, org_id, user_id):
        await _seed_month(db, org_id, user_id, present_days=20, absent_days=2)

        summary = await MonthlyAttendanceService.user_summary(db, user_id, 2026, 3)

        assert summary.source == SummarySource.system
        assert summary.present_days == 20
        assert summary.absent_days == 2
        assert summary.lop_days == 2
        assert summary.total_effective_hours == pytest.approx(160.0)
        assert summary.average_hours == pytest.approx(8.0)

    async def test_records_outside_month_ignored(self, db: AsyncSession, org_id, user_id):
        db.add(AttendanceRecord(**_make_record(org_id, user_id, date(2026, 2, 27))))
        db.add(AttendanceRecord(**_make_record(org_id, user_id, date(2026, 4, 1))))
        await db.flush()
        summary = await MonthlyAttendanceService.user_summary(db, user_id, 2026, 3)
        assert summary.total_days == 0

    async def test_approved_override_applies(self, db: AsyncSession, org_id, user_id, admin_id):
        await _seed_month(db, org_id, user_id, present_days=20)
        override = await MonthlyAttendanceService.create_override(
            db,
            MonthlyOverrideCreate(
                organization_id=org_id,
                user_id=user_id,
                year=2026,
                month=3,
                payload=OverridePayload(present_days=18, overtime_hours=4, remarks="Payroll import"),
                approved_by=admin_id,
            ),
        )
        assert override.approved_at is not None
        assert override.payload == {"present_days": 18.0, "overtime_hours": 4.0, "remarks": "Payroll import"}

        summary = await MonthlyAttendanceService.user_summary(db, user_id, 2026, 3, organization_id=org_id)

        assert summary.source == SummarySource.override
        assert summary.present_days == 18
        assert summary.overtime_hours == 4
        assert summary.total_effective_hours == pytest.approx(164.0)
        assert summary.remarks == "Payroll import"

    async def test_malformed_stored_override_falls_back(self, db: AsyncSession, org_id, user_id):
        await _seed_month(db, org_id, user_id, present_days=20)
        db.add(MonthlyOverride(
            organization_id=org_id,
            user_id=user_id,
            year=2026,
            month=3,
            payload={"present_days": "twenty"},
            approved_at=datetime.now(timezone.utc),
        ))
        await db.flush()

        summary = await MonthlyAttendanceService.user_summary(db, user_id, 2026, 3)
        assert summary.source == SummarySource.system
        assert summary.present_days == 20

    async def test_organization_report(self, db: AsyncSession, org_id):
        worker, imported_only = uuid.uuid4(), uuid.uuid4()
        await _seed_month(db, org_id, worker, present_days=5)
        await MonthlyAttendanceService.create_override(
            db,
            MonthlyOverrideCreate(
                organization_id=org_id,
                user_id=imported_only,
                year=2026,
                month=3,
                payload=OverridePayload(present_days=22),
            ),
        )

        report = await MonthlyAttendanceService.organization_report(db, org_id, 2026, 3)

        by_user = {s.user_id: s for s in report.summaries}
        assert set(by_user) == {worker, imported_only}
        assert by_user[worker].present_days == 5
        assert by_user[imported_only].source == SummarySource.override
        assert by_user[imported_only].present_days == 22

    async def test_list_overrides(self, db: AsyncSession, org_id, user_id):
        for days in (18, 19):
            await MonthlyAttendanceService.create_override(
                db,
                MonthlyOverrideCreate(
                    organization_id=org_id, user_id=user_id, year=2026, month=3,
                    payload=OverridePayload(present_days=days),
                ),
            )
        overrides = await MonthlyAttendanceService.list_overrides(db, org_id, 2026, 3, user_id=user_id)
        assert len(overrides) == 2
        assert await MonthlyAttendanceService.list_overrides(db, org_id, 2026, 4) == []
