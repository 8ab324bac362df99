"""Shift service layer: shift catalog and effective-dated assignments.

Business logic:
  - Shift CRUD with duration consistency (span minus break)
  - Template upsert keyed by (organization, name)
  - Non-overlapping assignment intervals with close-then-insert reassignment
  - Active-assignment resolution for a calendar date
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shiftdesk.common.audit import create_audit_entry, snapshot
from shiftdesk.common.exceptions import (
    ConflictError,
    NotFoundException,
    ShiftNotAssigned,
    ValidationException,
)
from shiftdesk.common.timeutils import local_date, utc_now
from shiftdesk.organizations.service import OrganizationService
from shiftdesk.shifts.models import EmployeeShiftAssignment, Shift
from shiftdesk.shifts.schemas import ShiftCreate, ShiftTemplateBatch, ShiftUpdate

logger = logging.getLogger(__name__)

DURATION_TOLERANCE_HOURS = 0.01


def _minutes(t) -> int:
    return t.hour * 60 + t.minute


def expected_duration_hours(start_time, end_time, break_minutes: int) -> float:
    """``((end - start) mod 24h) - break``; equal start/end means a 24h span."""
    span = (_minutes(end_time) - _minutes(start_time)) % (24 * 60) or 24 * 60
    return round((span - break_minutes) / 60, 2)


SHIFT_AUDIT_FIELDS = (
    "name",
    "start_time",
    "end_time",
    "duration_hours",
    "break_duration_minutes",
    "weekly_off_days",
    "is_active",
)


# ═════════════════════════════════════════════════════════════════════
# ShiftCatalog
# ═════════════════════════════════════════════════════════════════════


class ShiftCatalog:
    """Async CRUD for shift definitions."""

    @staticmethod
    def _resolve_duration(
        start_time, end_time, break_minutes: int, duration_hours: Optional[float],
    ) -> float:
        expected = expected_duration_hours(start_time, end_time, break_minutes)
        if expected <= 0:
            raise ValidationException({
                "break_duration_minutes": [
                    "Break must be shorter than the shift span."
                ],
            })
        if duration_hours is None:
            return expected
        if abs(duration_hours - expected) > DURATION_TOLERANCE_HOURS:
            raise ValidationException({
                "duration_hours": [
                    f"Expected {expected:.2f}h for this start, end and break; "
                    f"got {duration_hours:.2f}h."
                ],
            })
        return duration_hours

    @staticmethod
    async def _ensure_unique_name(
        db: AsyncSession,
        organization_id: uuid.UUID,
        name: str,
        *,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        query = select(Shift.id).where(
            Shift.organization_id == organization_id,
            Shift.name == name,
        )
        if exclude_id is not None:
            query = query.where(Shift.id != exclude_id)
        if (await db.execute(query)).scalars().first() is not None:
            raise ConflictError("name", name)

    @staticmethod
    async def create(
        db: AsyncSession,
        body: ShiftCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Shift:
        await ShiftCatalog._ensure_unique_name(db, body.organization_id, body.name)
        duration = ShiftCatalog._resolve_duration(
            body.start_time, body.end_time, body.break_duration_minutes, body.duration_hours,
        )
        shift = Shift(
            organization_id=body.organization_id,
            name=body.name,
            start_time=body.start_time,
            end_time=body.end_time,
            duration_hours=duration,
            break_duration_minutes=body.break_duration_minutes,
            late_threshold_minutes=body.late_threshold_minutes,
            early_out_threshold_minutes=body.early_out_threshold_minutes,
            is_overnight=body.end_time < body.start_time,
            weekly_off_days=body.weekly_off_days,
            is_active=body.is_active,
        )
        db.add(shift)
        try:
            await db.flush()
        except IntegrityError:
            raise ConflictError("name", body.name)

        await create_audit_entry(
            db,
            action="create",
            entity_type="shift",
            entity_id=shift.id,
            organization_id=shift.organization_id,
            actor_id=actor_id,
            new_values=snapshot(shift, SHIFT_AUDIT_FIELDS),
        )
        logger.info("Shift %s (%s) created for org %s", shift.name, shift.id, shift.organization_id)
        return shift

    @staticmethod
    async def get(db: AsyncSession, shift_id: uuid.UUID) -> Shift:
        shift = await db.get(Shift, shift_id)
        if shift is None:
            raise NotFoundException("Shift", shift_id)
        return shift

    @staticmethod
    async def list_shifts(
        db: AsyncSession,
        organization_id: uuid.UUID,
        *,
        is_active: Optional[bool] = None,
    ) -> Sequence[Shift]:
        query = (
            select(Shift)
            .where(Shift.organization_id == organization_id)
            .order_by(Shift.start_time, Shift.name)
        )
        if is_active is not None:
            query = query.where(Shift.is_active == is_active)
        return (await db.execute(query)).scalars().all()

    @staticmethod
    async def update(
        db: AsyncSession,
        shift_id: uuid.UUID,
        body: ShiftUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Shift:
        shift = await ShiftCatalog.get(db, shift_id)
        old_values = snapshot(shift, SHIFT_AUDIT_FIELDS)
        changes = body.model_dump(exclude_unset=True)

        if changes.get("name") and changes["name"] != shift.name:
            await ShiftCatalog._ensure_unique_name(
                db, shift.organization_id, changes["name"], exclude_id=shift.id,
            )

        for field, value in changes.items():
            if field != "duration_hours" and value is not None:
                setattr(shift, field, value)

        # A timing change without an explicit duration recomputes it
        shift.duration_hours = ShiftCatalog._resolve_duration(
            shift.start_time,
            shift.end_time,
            shift.break_duration_minutes,
            changes.get("duration_hours"),
        )
        shift.is_overnight = shift.end_time < shift.start_time
        shift.updated_at = datetime.now(timezone.utc)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="shift",
            entity_id=shift.id,
            organization_id=shift.organization_id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=snapshot(shift, SHIFT_AUDIT_FIELDS),
        )
        return shift

    @staticmethod
    async def deactivate(
        db: AsyncSession,
        shift_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Shift:
        """Soft delete. Existing assignments and records keep pointing at it."""
        shift = await ShiftCatalog.get(db, shift_id)
        if shift.is_active:
            shift.is_active = False
            shift.updated_at = datetime.now(timezone.utc)
            await db.flush()
            await create_audit_entry(
                db,
                action="deactivate",
                entity_type="shift",
                entity_id=shift.id,
                organization_id=shift.organization_id,
                actor_id=actor_id,
                old_values={"is_active": True},
                new_values={"is_active": False},
            )
        return shift

    @staticmethod
    async def upsert_many(
        db: AsyncSession,
        batch: ShiftTemplateBatch,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> list[Shift]:
        """Create or replace shifts by name within one organization."""
        names = [t.name for t in batch.shifts]
        if len(set(names)) != len(names):
            raise ValidationException({"shifts": ["Shift names must be unique within a batch."]})

        existing = {
            s.name: s
            for s in (
                await db.execute(
                    select(Shift).where(
                        Shift.organization_id == batch.organization_id,
                        Shift.name.in_(names),
                    )
                )
            ).scalars().all()
        }

        result: list[Shift] = []
        for template in batch.shifts:
            if template.organization_id != batch.organization_id:
                raise ValidationException({
                    "shifts": [f"Template '{template.name}' belongs to another organization."],
                })
            current = existing.get(template.name)
            if current is None:
                result.append(await ShiftCatalog.create(db, template, actor_id=actor_id))
                continue
            update = ShiftUpdate(
                **template.model_dump(exclude={"organization_id", "name"}),
            )
            result.append(await ShiftCatalog.update(db, current.id, update, actor_id=actor_id))

        logger.info(
            "Upserted %d shift template(s) for org %s", len(result), batch.organization_id,
        )
        return result

    @staticmethod
    async def longest_overnight_span_hours(
        db: AsyncSession,
        organization_id: Optional[uuid.UUID] = None,
    ) -> float:
        query = select(Shift).where(Shift.is_active.is_(True), Shift.is_overnight.is_(True))
        if organization_id is not None:
            query = query.where(Shift.organization_id == organization_id)
        shifts = (await db.execute(query)).scalars().all()
        return max((s.span_hours for s in shifts), default=0.0)


# ═════════════════════════════════════════════════════════════════════
# ShiftAssignmentResolver
# ═════════════════════════════════════════════════════════════════════


def find_overlaps(
    assignments: Iterable[EmployeeShiftAssignment],
) -> list[tuple[EmployeeShiftAssignment, EmployeeShiftAssignment]]:
    """Pairs of non-empty assignments of the same user whose intervals intersect."""
    by_user: dict[uuid.UUID, list[EmployeeShiftAssignment]] = {}
    for a in assignments:
        if not a.is_empty:
            by_user.setdefault(a.user_id, []).append(a)

    overlaps = []
    for items in by_user.values():
        items.sort(key=lambda a: a.effective_from)
        for i, first in enumerate(items):
            for second in items[i + 1:]:
                if first.effective_to is None or second.effective_from <= first.effective_to:
                    overlaps.append((first, second))
    return overlaps


class ShiftAssignmentResolver:
    """Effective-dated shift assignment for users."""

    @staticmethod
    async def resolve_active_assignment(
        db: AsyncSession,
        user_id: uuid.UUID,
        on_date: date,
    ) -> Optional[tuple[EmployeeShiftAssignment, Shift]]:
        """The assignment covering *on_date* and its shift, latest start first."""
        result = await db.execute(
            select(EmployeeShiftAssignment)
            .where(
                EmployeeShiftAssignment.user_id == user_id,
                EmployeeShiftAssignment.effective_from <= on_date,
                (
                    EmployeeShiftAssignment.effective_to.is_(None)
                    | (EmployeeShiftAssignment.effective_to >= on_date)
                ),
            )
            .order_by(
                EmployeeShiftAssignment.effective_from.desc(),
                EmployeeShiftAssignment.created_at.desc(),
            )
            .limit(1)
        )
        assignment = result.scalars().first()
        if assignment is None:
            return None
        shift = await db.get(Shift, assignment.shift_id)
        if shift is None:
            return None
        return assignment, shift

    @staticmethod
    async def require_active_assignment(
        db: AsyncSession,
        user_id: uuid.UUID,
        on_date: date,
    ) -> tuple[EmployeeShiftAssignment, Shift]:
        resolved = await ShiftAssignmentResolver.resolve_active_assignment(db, user_id, on_date)
        if resolved is None:
            raise ShiftNotAssigned(user_id, on_date)
        return resolved

    @staticmethod
    async def list_assignments(
        db: AsyncSession,
        user_id: uuid.UUID,
    ) -> Sequence[EmployeeShiftAssignment]:
        result = await db.execute(
            select(EmployeeShiftAssignment)
            .where(EmployeeShiftAssignment.user_id == user_id)
            .order_by(EmployeeShiftAssignment.effective_from)
        )
        return result.scalars().all()

    @staticmethod
    async def assigned_user_ids(
        db: AsyncSession,
        organization_id: uuid.UUID,
        on_date: date,
    ) -> list[uuid.UUID]:
        """Users whose assignment on *on_date* is a shift of the organization."""
        result = await db.execute(
            select(EmployeeShiftAssignment.user_id)
            .join(Shift, Shift.id == EmployeeShiftAssignment.shift_id)
            .where(
                Shift.organization_id == organization_id,
                EmployeeShiftAssignment.effective_from <= on_date,
                (
                    EmployeeShiftAssignment.effective_to.is_(None)
                    | (EmployeeShiftAssignment.effective_to >= on_date)
                ),
            )
            .distinct()
        )
        return list(result.scalars().all())

    @staticmethod
    async def assign(
        db: AsyncSession,
        *,
        user_id: uuid.UUID,
        shift_id: uuid.UUID,
        effective_from: date,
        assigned_by: Optional[uuid.UUID] = None,
    ) -> EmployeeShiftAssignment:
        """Close whatever overlaps ``effective_from`` and open a new interval.

        Assignments starting on or after ``effective_from`` are closed to an
        empty interval (``effective_to < effective_from``) so history is kept.
        """
        shift = await ShiftCatalog.get(db, shift_id)
        if not shift.is_active:
            raise ValidationException({"shift_id": ["Shift is inactive."]})

        current = (
            await db.execute(
                select(EmployeeShiftAssignment)
                .where(EmployeeShiftAssignment.user_id == user_id)
                .order_by(EmployeeShiftAssignment.effective_from)
                .with_for_update()
            )
        ).scalars().all()

        for existing in current:
            if (
                existing.effective_to is None
                and existing.shift_id == shift_id
                and existing.effective_from == effective_from
            ):
                return existing

        close_at = effective_from - timedelta(days=1)
        closed = []
        for existing in current:
            if existing.is_empty:
                continue
            if (
                existing.effective_to is None
                or existing.effective_from >= effective_from
                or existing.effective_to >= effective_from
            ):
                closed.append({
                    "id": str(existing.id),
                    "effective_to": existing.effective_to.isoformat() if existing.effective_to else None,
                })
                existing.effective_to = close_at
        if closed:
            await db.flush()

        assignment = EmployeeShiftAssignment(
            user_id=user_id,
            shift_id=shift_id,
            effective_from=effective_from,
            effective_to=None,
            assigned_by=assigned_by,
        )
        db.add(assignment)
        try:
            await db.flush()
        except IntegrityError:
            raise ConflictError("user_id", user_id)

        await create_audit_entry(
            db,
            action="assign_shift",
            entity_type="employee_shift_assignment",
            entity_id=assignment.id,
            organization_id=shift.organization_id,
            actor_id=assigned_by,
            old_values={"closed": closed} if closed else None,
            new_values={
                "user_id": str(user_id),
                "shift_id": str(shift_id),
                "effective_from": effective_from.isoformat(),
            },
        )
        logger.info(
            "User %s assigned to shift %s from %s (%d interval(s) closed)",
            user_id, shift_id, effective_from, len(closed),
        )
        return assignment

    @staticmethod
    async def reassign(
        db: AsyncSession,
        *,
        user_id: uuid.UUID,
        shift_id: uuid.UUID,
        effective_from: Optional[date] = None,
        assigned_by: Optional[uuid.UUID] = None,
        now: Optional[datetime] = None,
    ) -> EmployeeShiftAssignment:
        if effective_from is None:
            shift = await ShiftCatalog.get(db, shift_id)
            org = await OrganizationService.get_settings(db, shift.organization_id)
            effective_from = local_date(now or utc_now(), org.timezone)
        return await ShiftAssignmentResolver.assign(
            db,
            user_id=user_id,
            shift_id=shift_id,
            effective_from=effective_from,
            assigned_by=assigned_by,
        )
