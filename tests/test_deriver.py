"""Tests for attendance derivation: late, early out, half day, weekend, holiday, absent."""

from __future__ import annotations

from datetime import date, time
from types import SimpleNamespace
from typing import Optional

import pytest

from shiftdesk.attendance.deriver import apply, derive, is_weekly_off
from tests.conftest import MONDAY, ist

SATURDAY = date(2026, 3, 7)


def _shift(**overrides) -> SimpleNamespace:
    data = dict(
        start_time=time(9, 0),
        end_time=time(18, 0),
        duration_hours=8.0,
        break_duration_minutes=60,
        late_threshold_minutes=15,
        early_out_threshold_minutes=15,
        is_overnight=False,
        weekly_off_days=["saturday", "sunday"],
    )
    data.update(overrides)
    return SimpleNamespace(**data)


def _record(on_date: date = MONDAY, punch_in=None, punch_out=None, is_regularized: bool = False):
    return SimpleNamespace(
        date=on_date,
        punch_in_time=punch_in,
        punch_out_time=punch_out,
        is_regularized=is_regularized,
    )


def _derive(record, shift: Optional[SimpleNamespace] = None, is_holiday: bool = False):
    return derive(record, shift, is_holiday=is_holiday, timezone="Asia/Kolkata")


class TestHours:

    def test_total_and_effective(self):
        derived = _derive(_record(punch_in=ist(MONDAY, 9), punch_out=ist(MONDAY, 18)), _shift())
        assert derived.total_hours == pytest.approx(9.0)
        assert derived.effective_hours == pytest.approx(8.0)

    def test_effective_floored_at_zero(self):
        derived = _derive(_record(punch_in=ist(MONDAY, 9), punch_out=ist(MONDAY, 9, 30)), _shift())
        assert derived.effective_hours == 0.0
        assert derived.is_half_day is False

    def test_open_session_has_no_hours(self):
        derived = _derive(_record(punch_in=ist(MONDAY, 9)), _shift())
        assert derived.total_hours == 0.0
        assert derived.is_half_day is False

    def test_unassigned_uses_default_break(self):
        derived = _derive(_record(punch_in=ist(MONDAY, 9), punch_out=ist(MONDAY, 17)))
        assert derived.effective_hours == pytest.approx(7.0)


class TestFlags:

    def test_on_time_within_threshold(self):
        derived = _derive(_record(punch_in=ist(MONDAY, 9, 15), punch_out=ist(MONDAY, 18)), _shift())
        assert derived.is_late is False
        assert derived.is_early_out is False

    def test_late_after_threshold(self):
        derived = _derive(_record(punch_in=ist(MONDAY, 9, 16)), _shift())
        assert derived.is_late is True

    def test_early_out_before_threshold(self):
        derived = _derive(_record(punch_in=ist(MONDAY, 9), punch_out=ist(MONDAY, 17, 44)), _shift())
        assert derived.is_early_out is True

    def test_half_day(self):
        derived = _derive(_record(punch_in=ist(MONDAY, 9), punch_out=ist(MONDAY, 12)), _shift())
        assert derived.effective_hours == pytest.approx(2.0)
        assert derived.is_half_day is True

    def test_regularized_is_never_late_or_early(self):
        record = _record(punch_in=ist(MONDAY, 10), punch_out=ist(MONDAY, 15), is_regularized=True)
        derived = _derive(record, _shift())
        assert derived.is_late is False
        assert derived.is_early_out is False

    def test_no_shift_never_late(self):
        assert _derive(_record(punch_in=ist(MONDAY, 13))).is_late is False


class TestCalendar:

    def test_weekend_work_is_not_late(self):
        derived = _derive(_record(SATURDAY, punch_in=ist(SATURDAY, 11)), _shift())
        assert derived.is_weekend is True
        assert derived.is_late is False

    def test_absent_on_working_day(self):
        derived = _derive(_record(), _shift())
        assert derived.is_absent is True

    def test_not_absent_on_weekend(self):
        derived = _derive(_record(SATURDAY), _shift())
        assert derived.is_absent is False
        assert derived.is_weekend is True

    def test_not_absent_on_holiday(self):
        derived = _derive(_record(), _shift(), is_holiday=True)
        assert derived.is_absent is False
        assert derived.is_holiday is True

    def test_unassigned_uses_org_weekly_off(self):
        derived = derive(
            _record(MONDAY),
            None,
            is_holiday=False,
            timezone="Asia/Kolkata",
            default_weekly_off_days=["monday"],
        )
        assert derived.is_weekend is True

    def test_is_weekly_off(self):
        assert is_weekly_off(SATURDAY, ["saturday"]) is True
        assert is_weekly_off(MONDAY, []) is False


class TestOvernight:

    def test_overnight_end_is_next_day(self):
        night = _shift(
            start_time=time(22, 0),
            end_time=time(6, 0),
            duration_hours=7.0,
            is_overnight=True,
            weekly_off_days=["sunday"],
        )
        tuesday = date(2026, 3, 3)
        derived = _derive(_record(punch_in=ist(MONDAY, 22), punch_out=ist(tuesday, 6)), night)
        assert derived.total_hours == pytest.approx(8.0)
        assert derived.is_early_out is False
        assert derived.is_late is False

    def test_overnight_early_out(self):
        night = _shift(start_time=time(22, 0), end_time=time(6, 0), is_overnight=True, duration_hours=7.0)
        tuesday = date(2026, 3, 3)
        derived = _derive(_record(punch_in=ist(MONDAY, 22), punch_out=ist(tuesday, 4)), night)
        assert derived.is_early_out is True


def test_apply_copies_fields():
    record = _record(punch_in=ist(MONDAY, 9, 30), punch_out=ist(MONDAY, 18))
    apply(record, _derive(record, _shift()))
    assert record.is_late is True
    assert record.effective_hours == pytest.approx(7.5)
