"""Geofence module: pure distance and enforcement checks for punches."""

from shiftdesk.geofence.validator import (
    GeofencePolicy,
    GeofenceResult,
    check,
    enforce,
    evaluate,
    haversine_distance,
)

__all__ = [
    "GeofencePolicy",
    "GeofenceResult",
    "check",
    "enforce",
    "evaluate",
    "haversine_distance",
]
