"""Attendance Pydantic v2 schemas: request / response validation.

Naming conventions:
  - *Request   → request bodies (write)
  - *Response  → response bodies (read)
"""


import uuid
from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from shiftdesk.common.constants import (
    EnforcementMode,
    PunchState,
    RegularizationStatus,
)
from shiftdesk.common.pagination import PaginationMeta


# ═════════════════════════════════════════════════════════════════════
# Punch
# ═════════════════════════════════════════════════════════════════════


class PunchRequest(BaseModel):
    """Punch in / out payload. Range checks on coordinates happen in the
    geofence validator so the client gets the same error on both paths."""

    organization_id: uuid.UUID
    user_id: uuid.UUID
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    address: Optional[str] = Field(None, max_length=500)
    selfie_reference: Optional[str] = Field(None, max_length=1000)
    selfie_base64: Optional[str] = None
    device_info: Optional[dict[str, Any]] = None

    @model_validator(mode="after")
    def _coordinates_pair(self) -> "PunchRequest":
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be given together")
        return self


class GeofenceInfo(BaseModel):
    distance_meters: Optional[float] = None
    is_outside: bool = False
    enforcement_mode: EnforcementMode = EnforcementMode.off
    threshold_meters: Optional[float] = None


class AttendanceRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    organization_id: uuid.UUID
    user_id: uuid.UUID
    date: date
    shift_id: Optional[uuid.UUID] = None

    punch_in_time: Optional[datetime] = None
    punch_in_latitude: Optional[float] = None
    punch_in_longitude: Optional[float] = None
    punch_in_address: Optional[str] = None
    punch_in_selfie_url: Optional[str] = None
    punch_in_device_info: Optional[dict[str, Any]] = None
    punch_in_distance_meters: Optional[float] = None

    punch_out_time: Optional[datetime] = None
    punch_out_latitude: Optional[float] = None
    punch_out_longitude: Optional[float] = None
    punch_out_address: Optional[str] = None
    punch_out_selfie_url: Optional[str] = None
    punch_out_device_info: Optional[dict[str, Any]] = None
    punch_out_distance_meters: Optional[float] = None

    is_outside_geofence: bool = False
    geofence_override_by: Optional[uuid.UUID] = None
    geofence_override_reason: Optional[str] = None
    geofence_override_at: Optional[datetime] = None

    total_hours: float = 0.0
    effective_hours: float = 0.0
    is_late: bool = False
    is_early_out: bool = False
    is_half_day: bool = False
    is_weekend: bool = False
    is_holiday: bool = False
    is_absent: bool = False

    is_regularized: bool = False
    regularized_by: Optional[uuid.UUID] = None
    regularization_reason: Optional[str] = None
    regularized_at: Optional[datetime] = None

    needs_review: bool = False
    review_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PunchResponse(BaseModel):
    """Result of a punch. ``created`` is False for an idempotent repeat."""

    record: AttendanceRecordResponse
    created: bool
    geofence: Optional[GeofenceInfo] = None
    warning: Optional[str] = None


class PunchStateResponse(BaseModel):
    state: PunchState
    record: Optional[AttendanceRecordResponse] = None


class AttendanceListResponse(BaseModel):
    data: list[AttendanceRecordResponse]
    meta: PaginationMeta


# ═════════════════════════════════════════════════════════════════════
# Admin operations
# ═════════════════════════════════════════════════════════════════════


class GeofenceOverrideRequest(BaseModel):
    admin_id: uuid.UUID
    reason: str = Field(..., min_length=3, max_length=1000)


class AbsenceSweepRequest(BaseModel):
    organization_id: uuid.UUID
    on_date: date


class StaleSessionCloseRequest(BaseModel):
    organization_id: uuid.UUID
    admin_id: uuid.UUID
    max_open_hours: Optional[float] = Field(None, gt=0, le=72)


class RederiveRequest(BaseModel):
    organization_id: uuid.UUID
    from_date: date
    to_date: date
    user_id: Optional[uuid.UUID] = None


class BatchResultResponse(BaseModel):
    count: int
    record_ids: list[uuid.UUID] = Field(default_factory=list)


# ═════════════════════════════════════════════════════════════════════
# Regularization
# ═════════════════════════════════════════════════════════════════════


class RegularizationCreate(BaseModel):
    attendance_record_id: uuid.UUID
    requester_id: uuid.UUID
    reason: str = Field(..., min_length=3, max_length=1000)


class RegularizationDecision(BaseModel):
    approver_id: uuid.UUID
    remarks: Optional[str] = Field(None, max_length=1000)


class DirectRegularizeRequest(BaseModel):
    admin_id: uuid.UUID
    reason: str = Field(..., min_length=3, max_length=1000)


class RegularizationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    attendance_record_id: uuid.UUID
    requester_id: uuid.UUID
    reason: str
    status: RegularizationStatus
    approver_id: Optional[uuid.UUID] = None
    admin_remarks: Optional[str] = None
    resolved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RegularizationListResponse(BaseModel):
    data: list[RegularizationResponse]
    meta: PaginationMeta
