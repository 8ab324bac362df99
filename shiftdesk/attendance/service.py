"""Attendance service layer: punch state machine and record maintenance.

Business logic:
  - Punch in / out with geofence enforcement and best-effort evidence
  - One record per user per local date (first in, last out); overnight
    punches keyed to the shift's start date
  - Idempotent punch-in while a session is open
  - Stale-session auto close, admin geofence override, absence sweep
  - Re-derivation after shift or holiday changes
  - Read operations for history and organization-day views
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import math
import uuid
from datetime import date, datetime, timedelta
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shiftdesk.attendance import deriver
from shiftdesk.attendance.collaborators import (
    BlobStore,
    DatabaseHolidayCalendar,
    HolidayCalendar,
    NullBlobStore,
    ReverseGeocoder,
    lookup_address,
    upload_evidence,
)
from shiftdesk.attendance.models import AttendanceRecord
from shiftdesk.attendance.schemas import (
    AttendanceListResponse,
    AttendanceRecordResponse,
    GeofenceInfo,
    PunchRequest,
    PunchResponse,
    PunchStateResponse,
)
from shiftdesk.common.audit import create_audit_entry, snapshot
from shiftdesk.common.constants import (
    MAX_DATE_RANGE_DAYS,
    REVIEW_REASON_SHIFT_NOT_ASSIGNED,
    AttendanceEventType,
    EnforcementMode,
    PunchState,
    PunchType,
)
from shiftdesk.common.exceptions import (
    ConflictError,
    InvalidDuration,
    NoActivePunch,
    NotFoundException,
    ShiftNotAssigned,
    ValidationException,
)
from shiftdesk.common.pagination import PaginationParams, paginate
from shiftdesk.common.timeutils import ensure_utc, hours_between, local_date, to_local, utc_now
from shiftdesk.config import settings
from shiftdesk.events.service import EventService
from shiftdesk.geofence.validator import GeofenceResult, check, format_distance
from shiftdesk.organizations.models import OrganizationAttendanceSettings
from shiftdesk.organizations.service import OrganizationService
from shiftdesk.shifts.models import Shift
from shiftdesk.shifts.service import ShiftAssignmentResolver, ShiftCatalog

logger = logging.getLogger(__name__)


def _decode_selfie(encoded: Optional[str]) -> Optional[bytes]:
    if not encoded:
        return None
    if "," in encoded and encoded.startswith("data:"):
        encoded = encoded.split(",", 1)[1]
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationException({"selfie_base64": ["Not valid base64 image data."]})


def _geofence_info(result: GeofenceResult) -> GeofenceInfo:
    return GeofenceInfo(
        distance_meters=result.distance_meters,
        is_outside=result.is_outside,
        enforcement_mode=result.enforcement_mode,
        threshold_meters=result.threshold_meters,
    )


def _warning(result: GeofenceResult) -> Optional[str]:
    if result.is_outside and result.enforcement_mode == EnforcementMode.warn:
        return (
            f"Punch recorded {format_distance(result.distance_meters)} from the "
            f"organization location (allowed {format_distance(result.threshold_meters)})."
        )
    return None


RECORD_AUDIT_FIELDS = (
    "date",
    "punch_in_time",
    "punch_out_time",
    "is_outside_geofence",
    "is_late",
    "is_early_out",
    "is_absent",
    "is_regularized",
)


async def rederive_record(
    db: AsyncSession,
    record: AttendanceRecord,
    calendar: HolidayCalendar,
    *,
    org: Optional[OrganizationAttendanceSettings] = None,
    shift: Optional[Shift] = None,
) -> deriver.DerivedAttendance:
    """Recompute and store the derived fields of *record*."""
    if org is None:
        org = await OrganizationService.get_settings(db, record.organization_id)
    if shift is None and record.shift_id is not None:
        shift = await db.get(Shift, record.shift_id)
    derived = deriver.derive(
        record,
        shift,
        is_holiday=await calendar.is_holiday(record.organization_id, record.date),
        timezone=org.timezone,
        default_weekly_off_days=org.default_weekly_off_days or settings.default_weekly_off_days_list,
        default_break_minutes=settings.DEFAULT_BREAK_MINUTES,
        default_shift_hours=settings.DEFAULT_SHIFT_HOURS,
    )
    deriver.apply(record, derived)
    return derived


# ═════════════════════════════════════════════════════════════════════
# PunchStateMachine
# ═════════════════════════════════════════════════════════════════════


class PunchStateMachine:
    """NotPunched → PunchedIn → PunchedOut, per user per local date."""

    def __init__(
        self,
        db: AsyncSession,
        *,
        blob_store: Optional[BlobStore] = None,
        geocoder: Optional[ReverseGeocoder] = None,
        holiday_calendar: Optional[HolidayCalendar] = None,
        collaborator_timeout: Optional[float] = None,
    ) -> None:
        self.db = db
        self.blob_store = blob_store or NullBlobStore()
        self.geocoder = geocoder
        self.holiday_calendar = holiday_calendar or DatabaseHolidayCalendar(db)
        self.collaborator_timeout = (
            collaborator_timeout
            if collaborator_timeout is not None
            else settings.COLLABORATOR_TIMEOUT_SECONDS
        )

    # ── Helpers ─────────────────────────────────────────────────────

    async def lookback_days(self, organization_id: Optional[uuid.UUID] = None) -> int:
        """How many local dates back an open session may still be punched out."""
        if settings.PUNCH_OUT_LOOKBACK_DAYS is not None:
            return settings.PUNCH_OUT_LOOKBACK_DAYS
        longest = await ShiftCatalog.longest_overnight_span_hours(self.db, organization_id)
        return math.ceil(max(settings.MAX_OVERNIGHT_HOURS, longest) / 24) + 1

    async def _find_open(
        self,
        user_id: uuid.UUID,
        today: date,
        lookback: int,
    ) -> Optional[AttendanceRecord]:
        result = await self.db.execute(
            select(AttendanceRecord)
            .where(
                AttendanceRecord.user_id == user_id,
                AttendanceRecord.punch_in_time.is_not(None),
                AttendanceRecord.punch_out_time.is_(None),
                AttendanceRecord.date >= today - timedelta(days=lookback),
                AttendanceRecord.date <= today,
            )
            .order_by(AttendanceRecord.date.desc())
            .limit(1)
            .with_for_update()
        )
        return result.scalars().first()

    async def _record_on(self, user_id: uuid.UUID, on_date: date) -> Optional[AttendanceRecord]:
        result = await self.db.execute(
            select(AttendanceRecord)
            .where(AttendanceRecord.user_id == user_id, AttendanceRecord.date == on_date)
            .with_for_update()
        )
        return result.scalars().first()

    async def _resolve_shift(self, user_id: uuid.UUID, on_date: date) -> Optional[Shift]:
        try:
            _, shift = await ShiftAssignmentResolver.require_active_assignment(
                self.db, user_id, on_date,
            )
        except ShiftNotAssigned:
            logger.warning("No shift assigned to user %s on %s; record flagged for review", user_id, on_date)
            return None
        return shift

    async def _gather_evidence(
        self,
        punch_type: PunchType,
        body: PunchRequest,
        selfie: Optional[bytes],
        now: datetime,
    ) -> tuple[Optional[str], Optional[str]]:
        """(selfie reference, address), each obtained best effort and concurrently."""

        async def selfie_reference() -> Optional[str]:
            if selfie is None:
                return body.selfie_reference
            path = (
                f"attendance/{body.organization_id}/{body.user_id}/"
                f"{punch_type.value}-{int(now.timestamp() * 1000)}.jpg"
            )
            return await upload_evidence(
                self.blob_store,
                selfie,
                path=path,
                punch_type=punch_type.value,
                now=now,
                timeout=self.collaborator_timeout,
            )

        async def address() -> Optional[str]:
            if body.address:
                return body.address
            return await lookup_address(
                self.geocoder, body.latitude, body.longitude, timeout=self.collaborator_timeout,
            )

        reference, resolved_address = await asyncio.gather(selfie_reference(), address())
        return reference, resolved_address

    def _response(
        self,
        record: AttendanceRecord,
        *,
        created: bool,
        geofence: Optional[GeofenceResult] = None,
    ) -> PunchResponse:
        return PunchResponse(
            record=AttendanceRecordResponse.model_validate(record),
            created=created,
            geofence=_geofence_info(geofence) if geofence is not None else None,
            warning=_warning(geofence) if geofence is not None else None,
        )

    # ── Punch in ────────────────────────────────────────────────────

    async def punch_in(
        self,
        body: PunchRequest,
        *,
        now: Optional[datetime] = None,
    ) -> PunchResponse:
        """Open a session for the user. A repeat while open returns the open record."""
        db = self.db
        now = ensure_utc(now) if now is not None else utc_now()
        org = await OrganizationService.get_settings(db, body.organization_id)
        local_now = to_local(now, org.timezone)
        today = local_now.date()
        selfie = _decode_selfie(body.selfie_base64)

        open_record = await self._find_open(
            body.user_id, today, await self.lookback_days(body.organization_id),
        )
        if open_record is not None:
            logger.info("Punch-in repeated by user %s; session %s already open", body.user_id, open_record.id)
            return self._response(open_record, created=False)

        record_date = today
        shift = await self._resolve_shift(body.user_id, today)

        # Early-morning punch on an overnight shift belongs to the shift that started yesterday
        if shift is not None and shift.is_overnight and local_now.time() < shift.end_time:
            yesterday = today - timedelta(days=1)
            previous = await self._record_on(body.user_id, yesterday)
            if previous is None or previous.punch_in_time is None:
                record_date = yesterday
                shift = await self._resolve_shift(body.user_id, yesterday) or shift

        policy = OrganizationService.geofence_policy(org)
        geofence = check(policy, body.latitude, body.longitude, PunchType.punch_in)

        selfie_ref, address = await self._gather_evidence(PunchType.punch_in, body, selfie, now)

        record = await self._record_on(body.user_id, record_date)
        created = record is None
        old_values = None if created else snapshot(record, RECORD_AUDIT_FIELDS)

        if record is None:
            record = AttendanceRecord(
                organization_id=body.organization_id,
                user_id=body.user_id,
                date=record_date,
                is_outside_geofence=False,
                is_regularized=False,
                created_at=now,
            )
            db.add(record)

        if record.punch_in_time is None:
            # New record, or an absence materialized by the sweep
            record.punch_in_time = now
            record.punch_in_latitude = body.latitude
            record.punch_in_longitude = body.longitude
            record.punch_in_address = address
            record.punch_in_selfie_url = selfie_ref
            record.punch_in_device_info = body.device_info
            record.punch_in_distance_meters = geofence.distance_meters
        else:
            # Second cycle on a closed date: keep first in, reopen for a new last out
            logger.info("Reopening attendance record %s for user %s", record.id, body.user_id)
            record.punch_out_time = None
            record.punch_out_latitude = None
            record.punch_out_longitude = None
            record.punch_out_address = None
            record.punch_out_selfie_url = None
            record.punch_out_device_info = None
            record.punch_out_distance_meters = None

        record.shift_id = shift.id if shift is not None else record.shift_id
        if record.shift_id is None:
            record.needs_review = True
            record.review_reason = REVIEW_REASON_SHIFT_NOT_ASSIGNED
        record.is_outside_geofence = bool(record.is_outside_geofence) or geofence.is_outside
        record.updated_at = now

        # A concurrent punch-in for the same (user, date) loses here
        try:
            await db.flush()
        except IntegrityError:
            raise ConflictError("date", record_date.isoformat())
        await rederive_record(db, record, self.holiday_calendar, org=org, shift=shift)
        await db.flush()

        await create_audit_entry(
            db,
            action="punch_in",
            entity_type="attendance_record",
            entity_id=record.id,
            organization_id=record.organization_id,
            actor_id=record.user_id,
            old_values=old_values,
            new_values=snapshot(record, RECORD_AUDIT_FIELDS),
        )
        await EventService.emit(
            db,
            organization_id=record.organization_id,
            user_id=record.user_id,
            event_type=(
                AttendanceEventType.record_created if created else AttendanceEventType.record_updated
            ),
            entity_type="attendance_record",
            entity_id=record.id,
            payload={
                "punch_type": PunchType.punch_in.value,
                "date": record.date.isoformat(),
                "is_late": record.is_late,
                "is_outside_geofence": record.is_outside_geofence,
                "needs_review": bool(record.needs_review),
            },
        )
        logger.info(
            "User %s punched in for %s (record %s, distance=%s)",
            record.user_id, record.date, record.id, geofence.distance_meters,
        )
        return self._response(record, created=True, geofence=geofence)

    # ── Punch out ───────────────────────────────────────────────────

    async def punch_out(
        self,
        body: PunchRequest,
        *,
        now: Optional[datetime] = None,
    ) -> PunchResponse:
        db = self.db
        now = ensure_utc(now) if now is not None else utc_now()
        org = await OrganizationService.get_settings(db, body.organization_id)
        today = local_date(now, org.timezone)
        selfie = _decode_selfie(body.selfie_base64)

        record = await self._find_open(
            body.user_id, today, await self.lookback_days(body.organization_id),
        )
        if record is None:
            raise NoActivePunch(body.user_id)

        policy = OrganizationService.geofence_policy(org)
        geofence = check(policy, body.latitude, body.longitude, PunchType.punch_out)

        shift = await db.get(Shift, record.shift_id) if record.shift_id else None
        elapsed = hours_between(record.punch_in_time, now)
        if elapsed < 0 or (
            shift is not None
            and shift.is_overnight
            and not settings.MIN_OVERNIGHT_HOURS <= elapsed <= settings.MAX_OVERNIGHT_HOURS
        ):
            raise InvalidDuration(
                record_id=record.id,
                elapsed_hours=round(elapsed, 2),
                min_hours=settings.MIN_OVERNIGHT_HOURS,
                max_hours=settings.MAX_OVERNIGHT_HOURS,
            )

        selfie_ref, address = await self._gather_evidence(PunchType.punch_out, body, selfie, now)
        old_values = snapshot(record, RECORD_AUDIT_FIELDS)

        record.punch_out_time = now
        record.punch_out_latitude = body.latitude
        record.punch_out_longitude = body.longitude
        record.punch_out_address = address
        record.punch_out_selfie_url = selfie_ref
        record.punch_out_device_info = body.device_info
        record.punch_out_distance_meters = geofence.distance_meters
        record.is_outside_geofence = bool(record.is_outside_geofence) or geofence.is_outside
        record.updated_at = now

        await rederive_record(db, record, self.holiday_calendar, org=org, shift=shift)
        await db.flush()

        await create_audit_entry(
            db,
            action="punch_out",
            entity_type="attendance_record",
            entity_id=record.id,
            organization_id=record.organization_id,
            actor_id=record.user_id,
            old_values=old_values,
            new_values=snapshot(record, RECORD_AUDIT_FIELDS),
        )
        await EventService.emit(
            db,
            organization_id=record.organization_id,
            user_id=record.user_id,
            event_type=AttendanceEventType.record_updated,
            entity_type="attendance_record",
            entity_id=record.id,
            payload={
                "punch_type": PunchType.punch_out.value,
                "date": record.date.isoformat(),
                "total_hours": round(record.total_hours, 2),
                "is_early_out": record.is_early_out,
                "is_half_day": record.is_half_day,
                "is_outside_geofence": record.is_outside_geofence,
            },
        )
        logger.info(
            "User %s punched out for %s (record %s, %.2fh)",
            record.user_id, record.date, record.id, record.total_hours,
        )
        return self._response(record, created=False, geofence=geofence)

    # ── State ───────────────────────────────────────────────────────

    async def punch_state(
        self,
        organization_id: uuid.UUID,
        user_id: uuid.UUID,
        *,
        now: Optional[datetime] = None,
    ) -> PunchStateResponse:
        now = ensure_utc(now) if now is not None else utc_now()
        org = await OrganizationService.get_settings(self.db, organization_id)
        today = local_date(now, org.timezone)

        open_record = await self._find_open(user_id, today, await self.lookback_days(organization_id))
        if open_record is not None:
            return PunchStateResponse(
                state=PunchState.punched_in,
                record=AttendanceRecordResponse.model_validate(open_record),
            )

        record = await self._record_on(user_id, today)
        if record is not None and record.punch_out_time is not None:
            return PunchStateResponse(
                state=PunchState.punched_out,
                record=AttendanceRecordResponse.model_validate(record),
            )
        return PunchStateResponse(
            state=PunchState.not_punched,
            record=AttendanceRecordResponse.model_validate(record) if record else None,
        )

    # ── Admin maintenance ───────────────────────────────────────────

    async def close_stale_sessions(
        self,
        organization_id: uuid.UUID,
        admin_id: uuid.UUID,
        *,
        max_open_hours: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> list[AttendanceRecord]:
        """Auto punch-out sessions left open longer than *max_open_hours*."""
        db = self.db
        now = ensure_utc(now) if now is not None else utc_now()
        max_open_hours = max_open_hours or settings.STALE_SESSION_HOURS
        org = await OrganizationService.get_settings(db, organization_id)

        result = await db.execute(
            select(AttendanceRecord)
            .where(
                AttendanceRecord.organization_id == organization_id,
                AttendanceRecord.punch_in_time.is_not(None),
                AttendanceRecord.punch_out_time.is_(None),
            )
            .order_by(AttendanceRecord.date)
            .with_for_update()
        )
        limit = timedelta(hours=max_open_hours)
        closed: list[AttendanceRecord] = []
        for record in result.scalars().all():
            punched_in = ensure_utc(record.punch_in_time)
            if now - punched_in < limit:
                continue
            record.punch_out_time = min(now, punched_in + limit)
            record.is_regularized = True
            record.regularized_by = admin_id
            record.regularization_reason = (
                f"Auto punch-out: session open longer than {max_open_hours:g}h"
            )
            record.regularized_at = now
            record.updated_at = now
            await rederive_record(db, record, self.holiday_calendar, org=org)
            await EventService.emit(
                db,
                organization_id=organization_id,
                user_id=record.user_id,
                event_type=AttendanceEventType.record_updated,
                entity_type="attendance_record",
                entity_id=record.id,
                payload={"auto_closed": True, "date": record.date.isoformat()},
            )
            closed.append(record)

        if closed:
            await db.flush()
            await create_audit_entry(
                db,
                action="close_stale_sessions",
                entity_type="organization",
                entity_id=organization_id,
                organization_id=organization_id,
                actor_id=admin_id,
                new_values={
                    "max_open_hours": max_open_hours,
                    "record_ids": [str(r.id) for r in closed],
                },
            )
        logger.info("Closed %d stale session(s) for org %s", len(closed), organization_id)
        return closed

    async def grant_geofence_override(
        self,
        record_id: uuid.UUID,
        admin_id: uuid.UUID,
        reason: str,
        *,
        now: Optional[datetime] = None,
    ) -> AttendanceRecord:
        """Accept a geofence breach. The breach flag itself is kept."""
        db = self.db
        now = ensure_utc(now) if now is not None else utc_now()
        record = await db.get(AttendanceRecord, record_id)
        if record is None:
            raise NotFoundException("AttendanceRecord", record_id)

        org = await OrganizationService.get_settings(db, record.organization_id)
        if not org.allow_admin_override:
            raise ValidationException({"organization": ["Admin geofence override is disabled."]})
        if not record.is_outside_geofence:
            raise ValidationException({"record": ["Record has no geofence breach to override."]})

        record.geofence_override_by = admin_id
        record.geofence_override_reason = reason
        record.geofence_override_at = now
        record.updated_at = now
        await db.flush()

        await create_audit_entry(
            db,
            action="geofence_override",
            entity_type="attendance_record",
            entity_id=record.id,
            organization_id=record.organization_id,
            actor_id=admin_id,
            new_values={"reason": reason},
        )
        await EventService.emit(
            db,
            organization_id=record.organization_id,
            user_id=record.user_id,
            event_type=AttendanceEventType.record_updated,
            entity_type="attendance_record",
            entity_id=record.id,
            payload={"geofence_override": True},
        )
        return record

    async def sweep_absences(
        self,
        organization_id: uuid.UUID,
        on_date: date,
        *,
        now: Optional[datetime] = None,
    ) -> list[AttendanceRecord]:
        """Materialize absent rows for assigned users who never punched on a working day."""
        db = self.db
        now = ensure_utc(now) if now is not None else utc_now()
        org = await OrganizationService.get_settings(db, organization_id)

        user_ids = await ShiftAssignmentResolver.assigned_user_ids(db, organization_id, on_date)
        if not user_ids:
            return []
        present = set(
            (
                await db.execute(
                    select(AttendanceRecord.user_id).where(
                        AttendanceRecord.date == on_date,
                        AttendanceRecord.user_id.in_(user_ids),
                    )
                )
            ).scalars().all()
        )

        created: list[AttendanceRecord] = []
        for user_id in user_ids:
            if user_id in present:
                continue
            shift = await self._resolve_shift(user_id, on_date)
            record = AttendanceRecord(
                organization_id=organization_id,
                user_id=user_id,
                date=on_date,
                shift_id=shift.id if shift is not None else None,
                is_outside_geofence=False,
                is_regularized=False,
                created_at=now,
                updated_at=now,
            )
            derived = await rederive_record(db, record, self.holiday_calendar, org=org, shift=shift)
            if not derived.is_absent:
                continue
            db.add(record)
            created.append(record)

        if created:
            try:
                await db.flush()
            except IntegrityError:
                raise ConflictError("date", on_date.isoformat())
            for record in created:
                await EventService.emit(
                    db,
                    organization_id=organization_id,
                    user_id=record.user_id,
                    event_type=AttendanceEventType.record_created,
                    entity_type="attendance_record",
                    entity_id=record.id,
                    payload={"date": on_date.isoformat(), "is_absent": True},
                )
            await create_audit_entry(
                db,
                action="absence_sweep",
                entity_type="organization",
                entity_id=organization_id,
                organization_id=organization_id,
                new_values={"date": on_date.isoformat(), "absent": len(created)},
            )
        logger.info("Absence sweep for org %s on %s: %d absent", organization_id, on_date, len(created))
        return created

    async def rederive(
        self,
        organization_id: uuid.UUID,
        from_date: date,
        to_date: date,
        *,
        user_id: Optional[uuid.UUID] = None,
    ) -> list[AttendanceRecord]:
        """Re-run derivation over a date range, attaching shifts to unassigned records."""
        _validate_range(from_date, to_date)
        db = self.db
        org = await OrganizationService.get_settings(db, organization_id)

        query = select(AttendanceRecord).where(
            AttendanceRecord.organization_id == organization_id,
            AttendanceRecord.date >= from_date,
            AttendanceRecord.date <= to_date,
        )
        if user_id is not None:
            query = query.where(AttendanceRecord.user_id == user_id)
        records = (await db.execute(query.order_by(AttendanceRecord.date))).scalars().all()

        for record in records:
            if record.shift_id is None:
                resolved = await ShiftAssignmentResolver.resolve_active_assignment(
                    db, record.user_id, record.date,
                )
                if resolved is not None:
                    record.shift_id = resolved[1].id
                    record.needs_review = False
                    record.review_reason = None
            await rederive_record(db, record, self.holiday_calendar, org=org)
            record.updated_at = utc_now()
        await db.flush()
        logger.info(
            "Re-derived %d record(s) for org %s between %s and %s",
            len(records), organization_id, from_date, to_date,
        )
        return list(records)


# ═════════════════════════════════════════════════════════════════════
# Read operations
# ═════════════════════════════════════════════════════════════════════


def _validate_range(from_date: date, to_date: date) -> None:
    if from_date > to_date:
        raise ValidationException({"from_date": ["from_date must be on or before to_date."]})
    if (to_date - from_date).days > MAX_DATE_RANGE_DAYS:
        raise ValidationException(
            {"to_date": [f"Date range cannot exceed {MAX_DATE_RANGE_DAYS} days."]}
        )


class AttendanceQueryService:
    """Paginated attendance listings."""

    @staticmethod
    async def list_records(
        db: AsyncSession,
        user_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> AttendanceListResponse:
        if from_date and to_date:
            _validate_range(from_date, to_date)
        query = (
            select(AttendanceRecord)
            .where(AttendanceRecord.user_id == user_id)
            .order_by(AttendanceRecord.date.desc())
        )
        if from_date:
            query = query.where(AttendanceRecord.date >= from_date)
        if to_date:
            query = query.where(AttendanceRecord.date <= to_date)

        rows, meta = await paginate(db, query, pagination, model=AttendanceRecord)
        return AttendanceListResponse(
            data=[AttendanceRecordResponse.model_validate(r) for r in rows],
            meta=meta,
        )

    @staticmethod
    async def organization_day(
        db: AsyncSession,
        organization_id: uuid.UUID,
        on_date: date,
        pagination: PaginationParams,
    ) -> AttendanceListResponse:
        query = (
            select(AttendanceRecord)
            .where(
                AttendanceRecord.organization_id == organization_id,
                AttendanceRecord.date == on_date,
            )
            .order_by(AttendanceRecord.punch_in_time, AttendanceRecord.user_id)
        )
        rows, meta = await paginate(db, query, pagination, model=AttendanceRecord)
        return AttendanceListResponse(
            data=[AttendanceRecordResponse.model_validate(r) for r in rows],
            meta=meta,
        )

    @staticmethod
    async def get_record(db: AsyncSession, record_id: uuid.UUID) -> AttendanceRecord:
        record = await db.get(AttendanceRecord, record_id)
        if record is None:
            raise NotFoundException("AttendanceRecord", record_id)
        return record

    @staticmethod
    async def records_for_month(
        db: AsyncSession,
        user_id: uuid.UUID,
        first_day: date,
        last_day: date,
        *,
        organization_id: Optional[uuid.UUID] = None,
    ) -> Sequence[AttendanceRecord]:
        query = select(AttendanceRecord).where(
            AttendanceRecord.user_id == user_id,
            AttendanceRecord.date >= first_day,
            AttendanceRecord.date <= last_day,
        )
        if organization_id is not None:
            query = query.where(AttendanceRecord.organization_id == organization_id)
        return (await db.execute(query)).scalars().all()
