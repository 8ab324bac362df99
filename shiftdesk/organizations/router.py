"""Organization attendance settings and holiday calendar endpoints."""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shiftdesk.attendance.service import PunchStateMachine
from shiftdesk.database import get_db
from shiftdesk.dependencies import get_punch_state_machine
from shiftdesk.organizations.schemas import (
    AttendanceSettingsResponse,
    AttendanceSettingsUpdate,
    HolidayCreate,
    HolidayResponse,
)
from shiftdesk.organizations.service import OrganizationService

router = APIRouter(prefix="", tags=["organizations"])


def _settings_response(organization_id: uuid.UUID, row, configured: bool) -> AttendanceSettingsResponse:
    response = AttendanceSettingsResponse.model_validate(row)
    return response.model_copy(update={"is_configured": configured})


@router.get("/{organization_id}/attendance-settings", response_model=AttendanceSettingsResponse)
async def get_attendance_settings(
    organization_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """Stored settings, or the defaults (geofencing unconfigured) when none exist."""
    configured = await OrganizationService.is_configured(db, organization_id)
    row = await OrganizationService.get_settings(db, organization_id)
    return _settings_response(organization_id, row, configured)


@router.put("/{organization_id}/attendance-settings", response_model=AttendanceSettingsResponse)
async def put_attendance_settings(
    organization_id: uuid.UUID,
    body: AttendanceSettingsUpdate,
    actor_id: Optional[uuid.UUID] = Query(default=None),
    db: AsyncSession = Depends(get_db),
):
    row = await OrganizationService.upsert_settings(db, organization_id, body, actor_id=actor_id)
    return _settings_response(organization_id, row, True)


@router.get("/{organization_id}/holidays", response_model=list[HolidayResponse])
async def list_holidays(
    organization_id: uuid.UUID,
    year: Optional[int] = Query(default=None, ge=2000, le=2100),
    db: AsyncSession = Depends(get_db),
):
    return await OrganizationService.list_holidays(db, organization_id, year=year)


@router.post("/{organization_id}/holidays", response_model=HolidayResponse, status_code=201)
async def add_holiday(
    organization_id: uuid.UUID,
    body: HolidayCreate,
    actor_id: Optional[uuid.UUID] = Query(default=None),
    machine: PunchStateMachine = Depends(get_punch_state_machine),
):
    """Add a holiday and re-derive the records already stored for that date."""
    holiday = await OrganizationService.add_holiday(
        machine.db, organization_id, on_date=body.date, name=body.name, actor_id=actor_id,
    )
    await machine.rederive(organization_id, body.date, body.date)
    return holiday
