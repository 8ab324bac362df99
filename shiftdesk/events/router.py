"""Attendance event endpoints: polled by the notification dispatcher."""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shiftdesk.common.constants import AttendanceEventType
from shiftdesk.common.pagination import PaginationParams
from shiftdesk.database import get_db
from shiftdesk.events.schemas import AttendanceEventListResponse, AttendanceEventResponse
from shiftdesk.events.service import EventService

router = APIRouter(prefix="", tags=["events"])


@router.get("", response_model=AttendanceEventListResponse)
async def list_events(
    organization_id: uuid.UUID = Query(...),
    pending_only: bool = Query(default=True),
    event_type: Optional[AttendanceEventType] = Query(default=None),
    pagination: PaginationParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    """List attendance events for an organization (pending only by default)."""
    return await EventService.list_events(
        db,
        organization_id,
        pagination,
        pending_only=pending_only,
        event_type=event_type,
    )


@router.post("/{event_id}/ack", response_model=AttendanceEventResponse)
async def acknowledge_event(
    event_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    return await EventService.acknowledge(db, event_id)
