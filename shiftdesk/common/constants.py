"""Enums and constants for shiftdesk: matching PostgreSQL ENUM types."""

from __future__ import annotations

import enum


# ── Geofence ────────────────────────────────────────────────────────

class EnforcementMode(str, enum.Enum):
    off = "off"
    warn = "warn"
    strict = "strict"


class PunchType(str, enum.Enum):
    punch_in = "punch_in"
    punch_out = "punch_out"


# ── Attendance ──────────────────────────────────────────────────────

class PunchState(str, enum.Enum):
    not_punched = "not_punched"
    punched_in = "punched_in"
    punched_out = "punched_out"


class RegularizationStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class SummarySource(str, enum.Enum):
    system = "system"
    override = "override"


# ── Events (consumed by the notification dispatcher) ────────────────

class AttendanceEventType(str, enum.Enum):
    record_created = "attendance_record_created"
    record_updated = "attendance_record_updated"
    regularization_requested = "regularization_requested"
    regularization_resolved = "regularization_resolved"


# ── Misc constants ──────────────────────────────────────────────────

WEEKDAYS: tuple[str, ...] = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)

EARTH_RADIUS_METERS = 6_371_000
DEFAULT_DISTANCE_THRESHOLD_METERS = 500
REVIEW_REASON_SHIFT_NOT_ASSIGNED = "shift-not-assigned"
MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 50
MAX_DATE_RANGE_DAYS = 93
