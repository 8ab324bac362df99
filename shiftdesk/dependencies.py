"""Shared FastAPI dependencies."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shiftdesk.attendance.collaborators import (
    DatabaseHolidayCalendar,
    default_blob_store,
    default_geocoder,
)
from shiftdesk.attendance.regularization import RegularizationWorkflow
from shiftdesk.attendance.service import PunchStateMachine
from shiftdesk.database import get_db


async def get_punch_state_machine(
    db: AsyncSession = Depends(get_db),
) -> PunchStateMachine:
    """Punch state machine wired to the configured blob store and geocoder."""
    return PunchStateMachine(
        db,
        blob_store=default_blob_store(),
        geocoder=default_geocoder(),
        holiday_calendar=DatabaseHolidayCalendar(db),
    )


async def get_regularization_workflow(
    db: AsyncSession = Depends(get_db),
) -> RegularizationWorkflow:
    return RegularizationWorkflow(db, holiday_calendar=DatabaseHolidayCalendar(db))
