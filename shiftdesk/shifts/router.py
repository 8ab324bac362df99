"""Shift router: shift catalog CRUD, template upsert, assignments."""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shiftdesk.database import get_db
from shiftdesk.shifts.schemas import (
    ActiveAssignmentResponse,
    AssignmentCreate,
    AssignmentResponse,
    ReassignRequest,
    ShiftCreate,
    ShiftResponse,
    ShiftTemplateBatch,
    ShiftUpdate,
)
from shiftdesk.shifts.service import ShiftAssignmentResolver, ShiftCatalog

router = APIRouter(prefix="", tags=["shifts"])
assignments_router = APIRouter(prefix="", tags=["shift-assignments"])


# ── GET /: list shifts of an organization ──────────────────────────

@router.get("", response_model=list[ShiftResponse])
async def list_shifts(
    organization_id: uuid.UUID = Query(...),
    is_active: Optional[bool] = Query(default=None),
    db: AsyncSession = Depends(get_db),
):
    return await ShiftCatalog.list_shifts(db, organization_id, is_active=is_active)


# ── POST /: create a shift ─────────────────────────────────────────

@router.post("", response_model=ShiftResponse, status_code=201)
async def create_shift(
    body: ShiftCreate,
    db: AsyncSession = Depends(get_db),
):
    return await ShiftCatalog.create(db, body)


# ── POST /bulk-upsert: shift templates by name ─────────────────────
# NOTE: registered before /{shift_id} routes.

@router.post("/bulk-upsert", response_model=list[ShiftResponse])
async def bulk_upsert_shifts(
    body: ShiftTemplateBatch,
    db: AsyncSession = Depends(get_db),
):
    """Create or replace shift templates (e.g. from the shift configurator)."""
    return await ShiftCatalog.upsert_many(db, body)


@router.get("/{shift_id}", response_model=ShiftResponse)
async def get_shift(
    shift_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    return await ShiftCatalog.get(db, shift_id)


@router.patch("/{shift_id}", response_model=ShiftResponse)
async def update_shift(
    shift_id: uuid.UUID,
    body: ShiftUpdate,
    db: AsyncSession = Depends(get_db),
):
    return await ShiftCatalog.update(db, shift_id, body)


@router.delete("/{shift_id}", response_model=ShiftResponse)
async def deactivate_shift(
    shift_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """Soft delete: the shift is deactivated, never removed."""
    return await ShiftCatalog.deactivate(db, shift_id)


# ═════════════════════════════════════════════════════════════════════
# Assignments
# ═════════════════════════════════════════════════════════════════════


@assignments_router.post("", response_model=AssignmentResponse, status_code=201)
async def assign_shift(
    body: AssignmentCreate,
    db: AsyncSession = Depends(get_db),
):
    return await ShiftAssignmentResolver.assign(
        db,
        user_id=body.user_id,
        shift_id=body.shift_id,
        effective_from=body.effective_from,
        assigned_by=body.assigned_by,
    )


@assignments_router.post("/reassign", response_model=AssignmentResponse)
async def reassign_shift(
    body: ReassignRequest,
    db: AsyncSession = Depends(get_db),
):
    return await ShiftAssignmentResolver.reassign(
        db,
        user_id=body.user_id,
        shift_id=body.shift_id,
        effective_from=body.effective_from,
        assigned_by=body.assigned_by,
    )


@assignments_router.get("", response_model=list[AssignmentResponse])
async def list_assignments(
    user_id: uuid.UUID = Query(...),
    db: AsyncSession = Depends(get_db),
):
    return await ShiftAssignmentResolver.list_assignments(db, user_id)


@assignments_router.get("/active", response_model=ActiveAssignmentResponse)
async def active_assignment(
    user_id: uuid.UUID = Query(...),
    on_date: date = Query(...),
    db: AsyncSession = Depends(get_db),
):
    assignment, shift = await ShiftAssignmentResolver.require_active_assignment(
        db, user_id, on_date,
    )
    return ActiveAssignmentResponse(
        assignment=AssignmentResponse.model_validate(assignment),
        shift=ShiftResponse.model_validate(shift),
    )
