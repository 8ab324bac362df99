"""Monthly attendance endpoints: payroll-facing summaries and overrides."""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shiftdesk.database import get_db
from shiftdesk.monthly.schemas import (
    MonthlyAttendanceSummary,
    MonthlyOverrideCreate,
    MonthlyOverrideResponse,
    OrganizationMonthlyReport,
)
from shiftdesk.monthly.service import MonthlyAttendanceService

router = APIRouter(prefix="", tags=["monthly-attendance"])


@router.get("", response_model=MonthlyAttendanceSummary)
async def user_monthly_summary(
    user_id: uuid.UUID = Query(...),
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    organization_id: Optional[uuid.UUID] = Query(default=None),
    db: AsyncSession = Depends(get_db),
):
    """System totals for the month, merged with the latest approved override."""
    return await MonthlyAttendanceService.user_summary(
        db, user_id, year, month, organization_id=organization_id,
    )


@router.get("/organization", response_model=OrganizationMonthlyReport)
async def organization_monthly_report(
    organization_id: uuid.UUID = Query(...),
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    db: AsyncSession = Depends(get_db),
):
    return await MonthlyAttendanceService.organization_report(db, organization_id, year, month)


@router.post("/overrides", response_model=MonthlyOverrideResponse, status_code=201)
async def create_override(
    body: MonthlyOverrideCreate,
    db: AsyncSession = Depends(get_db),
):
    return await MonthlyAttendanceService.create_override(db, body)


@router.get("/overrides", response_model=list[MonthlyOverrideResponse])
async def list_overrides(
    organization_id: uuid.UUID = Query(...),
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    user_id: Optional[uuid.UUID] = Query(default=None),
    db: AsyncSession = Depends(get_db),
):
    return await MonthlyAttendanceService.list_overrides(
        db, organization_id, year, month, user_id=user_id,
    )
