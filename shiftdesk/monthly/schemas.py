"""Monthly attendance schemas: override payloads and summaries."""


import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from shiftdesk.common.constants import SummarySource


class OverridePayload(BaseModel):
    """Imported totals. A field left out (or null) falls back to the system value."""

    present_days: Optional[float] = Field(None, ge=0, le=31)
    lop_days: Optional[float] = Field(None, ge=0, le=31)
    paid_leaves: Optional[float] = Field(None, ge=0, le=31)
    holidays: Optional[int] = Field(None, ge=0, le=31)
    weekly_offs: Optional[int] = Field(None, ge=0, le=31)
    overtime_hours: Optional[float] = Field(None, ge=0)
    late_occurrences: Optional[int] = Field(None, ge=0, le=31)
    early_outs: Optional[int] = Field(None, ge=0, le=31)
    remarks: Optional[str] = None


class MonthlyOverrideCreate(BaseModel):
    organization_id: uuid.UUID
    user_id: uuid.UUID
    year: int = Field(..., ge=2000, le=2100)
    month: int = Field(..., ge=1, le=12)
    source_batch_id: Optional[uuid.UUID] = None
    payload: OverridePayload
    approved_by: Optional[uuid.UUID] = None


class MonthlyOverrideResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    organization_id: uuid.UUID
    user_id: uuid.UUID
    year: int
    month: int
    source_batch_id: Optional[uuid.UUID] = None
    payload: dict[str, Any]
    approved_by: Optional[uuid.UUID] = None
    approved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class SystemTotals(BaseModel):
    total_days: int = 0
    present_days: float = 0
    absent_days: int = 0
    half_day_count: int = 0
    late_days: int = 0
    early_out_days: int = 0
    regularized_days: int = 0
    holidays: int = 0
    weekly_offs: int = 0
    lop_days: float = 0
    total_effective_hours: float = 0.0


class MonthlyAttendanceSummary(SystemTotals):
    user_id: uuid.UUID
    year: int
    month: int
    paid_leaves: float = 0
    overtime_hours: float = 0.0
    average_hours: float = 0.0
    source: SummarySource = SummarySource.system
    override_id: Optional[uuid.UUID] = None
    remarks: Optional[str] = None


class OrganizationMonthlyReport(BaseModel):
    organization_id: uuid.UUID
    year: int
    month: int
    summaries: list[MonthlyAttendanceSummary]
