"""Organization attendance-settings and holiday schemas."""


import uuid
from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shiftdesk.common.constants import (
    DEFAULT_DISTANCE_THRESHOLD_METERS,
    EnforcementMode,
)
from shiftdesk.shifts.schemas import normalize_weekdays


class AttendanceSettingsUpdate(BaseModel):
    """Full replacement of an organization's attendance settings."""

    location_latitude: Optional[float] = Field(None, ge=-90, le=90)
    location_longitude: Optional[float] = Field(None, ge=-180, le=180)
    location_address: Optional[str] = None
    geofence_enabled: bool = True
    enforcement_mode: EnforcementMode = EnforcementMode.strict
    distance_threshold_meters: float = Field(DEFAULT_DISTANCE_THRESHOLD_METERS, gt=0)
    allow_admin_override: bool = True
    timezone: str = Field("Asia/Kolkata", max_length=64)
    default_weekly_off_days: list[str] = Field(default_factory=lambda: ["sunday"])

    @field_validator("default_weekly_off_days")
    @classmethod
    def _weekdays(cls, value: list[str]) -> list[str]:
        return normalize_weekdays(value)

    @field_validator("timezone")
    @classmethod
    def _timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown time zone '{value}'.")
        return value


class AttendanceSettingsResponse(AttendanceSettingsUpdate):
    model_config = ConfigDict(from_attributes=True)

    organization_id: uuid.UUID
    is_configured: bool = True


class HolidayCreate(BaseModel):
    date: date
    name: str = Field(..., min_length=1, max_length=150)


class HolidayResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    organization_id: uuid.UUID
    date: date
    name: str
    created_at: Optional[datetime] = None
