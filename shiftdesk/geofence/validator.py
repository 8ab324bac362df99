"""Geofence validation: haversine distance and enforcement policy.

Pure and synchronous: no I/O, no session, safe to call from any thread.
"""

from __future__ import annotations

import math
from typing import Optional

from pydantic import BaseModel, ConfigDict

from shiftdesk.common.constants import (
    DEFAULT_DISTANCE_THRESHOLD_METERS,
    EARTH_RADIUS_METERS,
    EnforcementMode,
    PunchType,
)
from shiftdesk.common.exceptions import GeofenceViolation, ValidationException


class GeofencePolicy(BaseModel):
    """Organization geofence configuration as seen by a single punch."""

    model_config = ConfigDict(frozen=True)

    center_latitude: Optional[float] = None
    center_longitude: Optional[float] = None
    enabled: bool = True
    enforcement_mode: EnforcementMode = EnforcementMode.strict
    distance_threshold_meters: float = DEFAULT_DISTANCE_THRESHOLD_METERS

    @property
    def is_active(self) -> bool:
        return (
            self.enabled
            and self.enforcement_mode != EnforcementMode.off
            and self.center_latitude is not None
            and self.center_longitude is not None
        )


class GeofenceResult(BaseModel):
    """Outcome of a distance check. ``distance_meters`` is None when not evaluated."""

    model_config = ConfigDict(frozen=True)

    distance_meters: Optional[float] = None
    is_outside: bool = False
    enforcement_mode: EnforcementMode = EnforcementMode.off
    threshold_meters: Optional[float] = None


ALLOW = GeofenceResult()


def is_valid_coordinate(latitude: float, longitude: float) -> bool:
    return (
        not math.isnan(latitude)
        and not math.isnan(longitude)
        and -90 <= latitude <= 90
        and -180 <= longitude <= 180
    )


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points, in meters."""
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (math.sin(delta_lat / 2) ** 2 +
         math.cos(lat1_rad) * math.cos(lat2_rad) *
         math.sin(delta_lon / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_METERS * c


def evaluate(
    policy: GeofencePolicy,
    latitude: Optional[float],
    longitude: Optional[float],
) -> GeofenceResult:
    """Measure a punch against the policy without enforcing it."""
    if not policy.is_active or latitude is None or longitude is None:
        return ALLOW

    if not is_valid_coordinate(latitude, longitude):
        raise ValidationException(
            {"coordinates": [f"Invalid coordinates ({latitude}, {longitude})."]}
        )

    distance = haversine_distance(
        latitude, longitude, policy.center_latitude, policy.center_longitude,
    )
    return GeofenceResult(
        distance_meters=round(distance, 2),
        is_outside=distance > policy.distance_threshold_meters,
        enforcement_mode=policy.enforcement_mode,
        threshold_meters=policy.distance_threshold_meters,
    )


def enforce(result: GeofenceResult, punch_type: PunchType) -> GeofenceResult:
    """Raise ``GeofenceViolation`` for a strict-mode breach; otherwise pass through."""
    if result.is_outside and result.enforcement_mode == EnforcementMode.strict:
        raise GeofenceViolation(
            distance_meters=result.distance_meters,
            threshold_meters=result.threshold_meters,
            punch_type=punch_type.value,
        )
    return result


def check(
    policy: GeofencePolicy,
    latitude: Optional[float],
    longitude: Optional[float],
    punch_type: PunchType,
) -> GeofenceResult:
    return enforce(evaluate(policy, latitude, longitude), punch_type)


def format_distance(distance_meters: float) -> str:
    if distance_meters < 1000:
        return f"{round(distance_meters)} m"
    return f"{distance_meters / 1000:.1f} km"
