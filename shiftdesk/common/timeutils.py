"""Time-zone helpers shared by the deriver, punch state machine and aggregator."""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Optional
from zoneinfo import ZoneInfo


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Ensure datetime is timezone-aware (UTC).

    SQLite drops tzinfo on round-trip; every stored timestamp is UTC, so a
    naive value read back is interpreted as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def get_zone(tz_name: str) -> ZoneInfo:
    return ZoneInfo(tz_name)


def to_local(dt: datetime, tz_name: str) -> datetime:
    """Convert a stored (UTC) timestamp to the organization's local time."""
    return ensure_utc(dt).astimezone(get_zone(tz_name))


def local_date(dt: datetime, tz_name: str) -> date:
    return to_local(dt, tz_name).date()


def combine_local(on_date: date, at: time, tz_name: str) -> datetime:
    """Wall-clock ``at`` on ``on_date`` in ``tz_name``, as an aware datetime."""
    return datetime.combine(on_date, at, tzinfo=get_zone(tz_name))


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def hours_between(start: datetime, end: datetime) -> float:
    return (ensure_utc(end) - ensure_utc(start)).total_seconds() / 3600
