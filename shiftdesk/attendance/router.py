"""Attendance routers: punch, records & maintenance, regularization.

Identity is explicit in every request (organization_id / user_id / admin_id);
authentication happens upstream.
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from shiftdesk.attendance.regularization import RegularizationWorkflow
from shiftdesk.attendance.schemas import (
    AbsenceSweepRequest,
    AttendanceListResponse,
    AttendanceRecordResponse,
    BatchResultResponse,
    DirectRegularizeRequest,
    GeofenceOverrideRequest,
    PunchRequest,
    PunchResponse,
    PunchStateResponse,
    RederiveRequest,
    RegularizationCreate,
    RegularizationDecision,
    RegularizationListResponse,
    RegularizationResponse,
    StaleSessionCloseRequest,
)
from shiftdesk.attendance.service import AttendanceQueryService, PunchStateMachine
from shiftdesk.common.constants import RegularizationStatus
from shiftdesk.common.pagination import PaginationParams
from shiftdesk.common.rate_limit import limiter
from shiftdesk.config import settings
from shiftdesk.database import get_db
from shiftdesk.dependencies import get_punch_state_machine, get_regularization_workflow

punch_router = APIRouter(prefix="", tags=["punch"])
router = APIRouter(prefix="", tags=["attendance"])
regularizations_router = APIRouter(prefix="", tags=["regularizations"])


# ═════════════════════════════════════════════════════════════════════
# Punch
# ═════════════════════════════════════════════════════════════════════


# ── POST /in ────────────────────────────────────────────────────────

@punch_router.post("/in", response_model=PunchResponse)
@limiter.limit(settings.PUNCH_RATE_LIMIT)
async def punch_in(
    request: Request,
    body: PunchRequest,
    machine: PunchStateMachine = Depends(get_punch_state_machine),
):
    """Record a punch-in. Repeating it while a session is open is a no-op."""
    return await machine.punch_in(body)


# ── POST /out ───────────────────────────────────────────────────────

@punch_router.post("/out", response_model=PunchResponse)
@limiter.limit(settings.PUNCH_RATE_LIMIT)
async def punch_out(
    request: Request,
    body: PunchRequest,
    machine: PunchStateMachine = Depends(get_punch_state_machine),
):
    """Close the user's open session."""
    return await machine.punch_out(body)


@punch_router.get("/state", response_model=PunchStateResponse)
async def punch_state(
    organization_id: uuid.UUID = Query(...),
    user_id: uuid.UUID = Query(...),
    machine: PunchStateMachine = Depends(get_punch_state_machine),
):
    return await machine.punch_state(organization_id, user_id)


# ═════════════════════════════════════════════════════════════════════
# Records & maintenance
# ═════════════════════════════════════════════════════════════════════


@router.get("/records", response_model=AttendanceListResponse)
async def list_records(
    user_id: uuid.UUID = Query(...),
    from_date: Optional[date] = Query(default=None),
    to_date: Optional[date] = Query(default=None),
    pagination: PaginationParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    """Attendance history for one user, newest first."""
    return await AttendanceQueryService.list_records(
        db, user_id, pagination, from_date=from_date, to_date=to_date,
    )


@router.get("/organization", response_model=AttendanceListResponse)
async def organization_day(
    organization_id: uuid.UUID = Query(...),
    on_date: date = Query(...),
    pagination: PaginationParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    """Every record of an organization on one date."""
    return await AttendanceQueryService.organization_day(db, organization_id, on_date, pagination)


@router.post("/absence-sweep", response_model=BatchResultResponse)
async def absence_sweep(
    body: AbsenceSweepRequest,
    machine: PunchStateMachine = Depends(get_punch_state_machine),
):
    records = await machine.sweep_absences(body.organization_id, body.on_date)
    return BatchResultResponse(count=len(records), record_ids=[r.id for r in records])


@router.post("/stale-sessions/close", response_model=BatchResultResponse)
async def close_stale_sessions(
    body: StaleSessionCloseRequest,
    machine: PunchStateMachine = Depends(get_punch_state_machine),
):
    records = await machine.close_stale_sessions(
        body.organization_id, body.admin_id, max_open_hours=body.max_open_hours,
    )
    return BatchResultResponse(count=len(records), record_ids=[r.id for r in records])


@router.post("/rederive", response_model=BatchResultResponse)
async def rederive(
    body: RederiveRequest,
    machine: PunchStateMachine = Depends(get_punch_state_machine),
):
    records = await machine.rederive(
        body.organization_id, body.from_date, body.to_date, user_id=body.user_id,
    )
    return BatchResultResponse(count=len(records), record_ids=[r.id for r in records])


@router.post("/{record_id}/geofence-override", response_model=AttendanceRecordResponse)
async def geofence_override(
    record_id: uuid.UUID,
    body: GeofenceOverrideRequest,
    machine: PunchStateMachine = Depends(get_punch_state_machine),
):
    return await machine.grant_geofence_override(record_id, body.admin_id, body.reason)


@router.post("/{record_id}/regularize", response_model=AttendanceRecordResponse)
async def regularize_record(
    record_id: uuid.UUID,
    body: DirectRegularizeRequest,
    workflow: RegularizationWorkflow = Depends(get_regularization_workflow),
):
    """Admin direct regularization (no request needed)."""
    return await workflow.direct_regularize(record_id, body.admin_id, body.reason)


# ═════════════════════════════════════════════════════════════════════
# Regularization requests
# ═════════════════════════════════════════════════════════════════════


@regularizations_router.post("", response_model=RegularizationResponse, status_code=201)
async def create_regularization(
    body: RegularizationCreate,
    workflow: RegularizationWorkflow = Depends(get_regularization_workflow),
):
    return await workflow.request(body.attendance_record_id, body.requester_id, body.reason)


@regularizations_router.get("", response_model=RegularizationListResponse)
async def list_regularizations(
    organization_id: Optional[uuid.UUID] = Query(default=None),
    requester_id: Optional[uuid.UUID] = Query(default=None),
    status: Optional[RegularizationStatus] = Query(default=None),
    pagination: PaginationParams = Depends(),
    workflow: RegularizationWorkflow = Depends(get_regularization_workflow),
):
    return await workflow.list_requests(
        pagination,
        organization_id=organization_id,
        requester_id=requester_id,
        status=status,
    )


@regularizations_router.post("/{request_id}/approve", response_model=RegularizationResponse)
async def approve_regularization(
    request_id: uuid.UUID,
    body: RegularizationDecision,
    workflow: RegularizationWorkflow = Depends(get_regularization_workflow),
):
    return await workflow.approve(request_id, body.approver_id, body.remarks)


@regularizations_router.post("/{request_id}/reject", response_model=RegularizationResponse)
async def reject_regularization(
    request_id: uuid.UUID,
    body: RegularizationDecision,
    workflow: RegularizationWorkflow = Depends(get_regularization_workflow),
):
    return await workflow.reject(request_id, body.approver_id, body.remarks)
