"""Shift & assignment Pydantic v2 schemas: request / response validation.

Naming conventions:
  - *Create / *Request  → request bodies (write)
  - *Response           → response bodies (read)
"""


import uuid
from datetime import date, datetime, time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shiftdesk.common.constants import WEEKDAYS

_WEEKDAY_ALIASES = {name[:3]: name for name in WEEKDAYS}


def normalize_weekdays(values: list[str]) -> list[str]:
    """Lower-case, expand ``mon``-style abbreviations, de-duplicate in week order."""
    normalized: set[str] = set()
    for raw in values:
        day = str(raw).strip().lower()
        day = _WEEKDAY_ALIASES.get(day, day)
        if day not in WEEKDAYS:
            raise ValueError(f"'{raw}' is not a weekday name.")
        normalized.add(day)
    return [d for d in WEEKDAYS if d in normalized]


# ═════════════════════════════════════════════════════════════════════
# Shifts
# ═════════════════════════════════════════════════════════════════════


class ShiftCreate(BaseModel):
    """Shift definition. ``duration_hours`` is computed when omitted."""

    organization_id: uuid.UUID
    name: str = Field(..., min_length=1, max_length=100)
    start_time: time
    end_time: time
    duration_hours: Optional[float] = Field(None, gt=0, le=24)
    break_duration_minutes: int = Field(60, ge=0, le=720)
    late_threshold_minutes: int = Field(15, ge=0, le=720)
    early_out_threshold_minutes: int = Field(15, ge=0, le=720)
    weekly_off_days: list[str] = Field(default_factory=lambda: ["sunday"])
    is_active: bool = True

    @field_validator("weekly_off_days")
    @classmethod
    def _weekdays(cls, value: list[str]) -> list[str]:
        return normalize_weekdays(value)


class ShiftUpdate(BaseModel):
    """Partial update; omitted fields are left unchanged."""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    duration_hours: Optional[float] = Field(None, gt=0, le=24)
    break_duration_minutes: Optional[int] = Field(None, ge=0, le=720)
    late_threshold_minutes: Optional[int] = Field(None, ge=0, le=720)
    early_out_threshold_minutes: Optional[int] = Field(None, ge=0, le=720)
    weekly_off_days: Optional[list[str]] = None
    is_active: Optional[bool] = None

    @field_validator("weekly_off_days")
    @classmethod
    def _weekdays(cls, value: Optional[list[str]]) -> Optional[list[str]]:
        return normalize_weekdays(value) if value is not None else None


class ShiftTemplateBatch(BaseModel):
    """Shift templates produced upstream (e.g. the AI configurator), upserted by name."""

    organization_id: uuid.UUID
    shifts: list[ShiftCreate] = Field(..., min_length=1)


class ShiftResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    organization_id: uuid.UUID
    name: str
    start_time: time
    end_time: time
    duration_hours: float
    break_duration_minutes: int
    late_threshold_minutes: int
    early_out_threshold_minutes: int
    is_overnight: bool
    weekly_off_days: list[str]
    is_active: bool
    created_at: Optional[datetime] = None


# ═════════════════════════════════════════════════════════════════════
# Assignments
# ═════════════════════════════════════════════════════════════════════


class AssignmentCreate(BaseModel):
    user_id: uuid.UUID
    shift_id: uuid.UUID
    effective_from: date
    assigned_by: Optional[uuid.UUID] = None


class ReassignRequest(BaseModel):
    user_id: uuid.UUID
    shift_id: uuid.UUID
    effective_from: Optional[date] = Field(
        None, description="Defaults to today in the shift's organization time zone",
    )
    assigned_by: Optional[uuid.UUID] = None


class AssignmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    shift_id: uuid.UUID
    effective_from: date
    effective_to: Optional[date] = None
    assigned_by: Optional[uuid.UUID] = None
    created_at: Optional[datetime] = None


class ActiveAssignmentResponse(BaseModel):
    assignment: AssignmentResponse
    shift: ShiftResponse
