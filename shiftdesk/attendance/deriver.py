"""Attendance derivation: status flags and hours from punches and shift.

Pure: no I/O, no clock. Works on any object exposing the record / shift
attributes it reads, so the same code runs on ORM rows and on test doubles.

Rules:
  - weekend: record weekday is a weekly off (shift's, else the org default)
  - total hours: out − in; effective hours: total − break, floored at 0
  - late: punch-in strictly after start + threshold (working days only)
  - early out: punch-out strictly before end − threshold (working days only)
  - half day: 0 < effective < half of the shift duration
  - absent: no punch-in on a working day
  - a regularized record is never late or early out
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Iterable, Optional

from pydantic import BaseModel, ConfigDict

from shiftdesk.common.constants import WEEKDAYS
from shiftdesk.common.timeutils import combine_local, ensure_utc, hours_between

DEFAULT_BREAK_MINUTES = 60
DEFAULT_SHIFT_HOURS = 8.0


class DerivedAttendance(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_hours: float = 0.0
    effective_hours: float = 0.0
    is_late: bool = False
    is_early_out: bool = False
    is_half_day: bool = False
    is_weekend: bool = False
    is_holiday: bool = False
    is_absent: bool = False


def is_weekly_off(on_date, weekly_off_days: Iterable[str]) -> bool:
    return WEEKDAYS[on_date.weekday()] in set(weekly_off_days or ())


def derive(
    record: Any,
    shift: Optional[Any],
    *,
    is_holiday: bool,
    timezone: str,
    default_weekly_off_days: Iterable[str] = ("sunday",),
    default_break_minutes: int = DEFAULT_BREAK_MINUTES,
    default_shift_hours: float = DEFAULT_SHIFT_HOURS,
) -> DerivedAttendance:
    """Compute derived fields for *record* under *shift* (``None`` when unassigned)."""
    punch_in = ensure_utc(record.punch_in_time)
    punch_out = ensure_utc(record.punch_out_time)

    off_days = shift.weekly_off_days if shift is not None else default_weekly_off_days
    is_weekend = is_weekly_off(record.date, off_days)
    working_day = not is_weekend and not is_holiday

    total_hours = 0.0
    if punch_in is not None and punch_out is not None:
        total_hours = max(0.0, hours_between(punch_in, punch_out))

    break_minutes = (
        shift.break_duration_minutes
        if shift is not None and shift.break_duration_minutes is not None
        else default_break_minutes
    )
    effective_hours = max(0.0, total_hours - break_minutes / 60)

    is_late = False
    is_early_out = False
    if shift is not None and working_day and not record.is_regularized:
        if punch_in is not None:
            start = combine_local(record.date, shift.start_time, timezone)
            is_late = punch_in > start + timedelta(minutes=shift.late_threshold_minutes)
        if punch_out is not None:
            end_date = record.date + timedelta(days=1) if shift.is_overnight else record.date
            end = combine_local(end_date, shift.end_time, timezone)
            is_early_out = punch_out < end - timedelta(minutes=shift.early_out_threshold_minutes)

    duration = shift.duration_hours if shift is not None else default_shift_hours
    is_half_day = punch_out is not None and 0 < effective_hours < 0.5 * duration

    return DerivedAttendance(
        total_hours=total_hours,
        effective_hours=effective_hours,
        is_late=is_late,
        is_early_out=is_early_out,
        is_half_day=is_half_day,
        is_weekend=is_weekend,
        is_holiday=is_holiday,
        is_absent=punch_in is None and working_day,
    )


def apply(record: Any, derived: DerivedAttendance) -> Any:
    """Copy *derived* onto *record* in place and return it."""
    for field, value in derived.model_dump().items():
        setattr(record, field, value)
    return record
