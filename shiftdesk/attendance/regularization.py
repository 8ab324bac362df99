"""Regularization workflow: request, approve / reject, admin direct path.

pending → approved | rejected. Approval (or a direct regularization)
marks the record regularized and re-derives it, which clears its late
and early-out flags.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shiftdesk.attendance.collaborators import DatabaseHolidayCalendar, HolidayCalendar
from shiftdesk.attendance.models import AttendanceRecord, RegularizationRequest
from shiftdesk.attendance.schemas import (
    RegularizationListResponse,
    RegularizationResponse,
)
from shiftdesk.attendance.service import rederive_record
from shiftdesk.common.audit import create_audit_entry
from shiftdesk.common.constants import AttendanceEventType, RegularizationStatus
from shiftdesk.common.exceptions import (
    DuplicateRequest,
    NotFoundException,
    ValidationException,
)
from shiftdesk.common.pagination import PaginationParams, paginate
from shiftdesk.common.timeutils import ensure_utc, utc_now
from shiftdesk.events.service import EventService

logger = logging.getLogger(__name__)


class RegularizationWorkflow:
    """Async regularization operations over one session."""

    def __init__(
        self,
        db: AsyncSession,
        *,
        holiday_calendar: Optional[HolidayCalendar] = None,
    ) -> None:
        self.db = db
        self.holiday_calendar = holiday_calendar or DatabaseHolidayCalendar(db)

    # ── Helpers ─────────────────────────────────────────────────────

    async def _get_record(self, record_id: uuid.UUID) -> AttendanceRecord:
        result = await self.db.execute(
            select(AttendanceRecord).where(AttendanceRecord.id == record_id).with_for_update()
        )
        record = result.scalars().first()
        if record is None:
            raise NotFoundException("AttendanceRecord", record_id)
        return record

    async def _get_request(self, request_id: uuid.UUID) -> RegularizationRequest:
        result = await self.db.execute(
            select(RegularizationRequest)
            .where(RegularizationRequest.id == request_id)
            .with_for_update()
        )
        req = result.scalars().first()
        if req is None:
            raise NotFoundException("RegularizationRequest", request_id)
        return req

    async def _pending_for(self, record_id: uuid.UUID) -> list[RegularizationRequest]:
        result = await self.db.execute(
            select(RegularizationRequest).where(
                RegularizationRequest.attendance_record_id == record_id,
                RegularizationRequest.status == RegularizationStatus.pending,
            )
        )
        return list(result.scalars().all())

    async def _mark_regularized(
        self,
        record: AttendanceRecord,
        *,
        actor_id: uuid.UUID,
        reason: str,
        now: datetime,
    ) -> None:
        """The one mutation shared by approval and the direct path."""
        record.is_regularized = True
        record.regularized_by = actor_id
        record.regularization_reason = reason
        record.regularized_at = now
        record.updated_at = now
        await rederive_record(self.db, record, self.holiday_calendar)

    async def _resolve(
        self,
        req: RegularizationRequest,
        record: AttendanceRecord,
        status: RegularizationStatus,
        *,
        approver_id: uuid.UUID,
        remarks: Optional[str],
        now: datetime,
    ) -> None:
        req.status = status
        req.approver_id = approver_id
        req.admin_remarks = remarks
        req.resolved_at = now
        req.updated_at = now
        await self.db.flush()

        await create_audit_entry(
            self.db,
            action=status.value,
            entity_type="regularization_request",
            entity_id=req.id,
            organization_id=record.organization_id,
            actor_id=approver_id,
            old_values={"status": RegularizationStatus.pending.value},
            new_values={"status": status.value, "admin_remarks": remarks},
        )
        await EventService.emit(
            self.db,
            organization_id=record.organization_id,
            user_id=req.requester_id,
            event_type=AttendanceEventType.regularization_resolved,
            entity_type="regularization_request",
            entity_id=req.id,
            payload={
                "status": status.value,
                "attendance_record_id": str(record.id),
                "date": record.date.isoformat(),
            },
        )

    # ── Operations ──────────────────────────────────────────────────

    async def request(
        self,
        record_id: uuid.UUID,
        requester_id: uuid.UUID,
        reason: str,
        *,
        now: Optional[datetime] = None,
    ) -> RegularizationRequest:
        now = ensure_utc(now) if now is not None else utc_now()
        record = await self._get_record(record_id)

        if record.is_regularized:
            raise ValidationException({"attendance_record_id": ["Record is already regularized."]})
        if not (record.is_late or record.is_early_out):
            raise ValidationException({
                "attendance_record_id": ["Only late or early-out records can be regularized."],
            })
        pending = await self._pending_for(record.id)
        if pending:
            raise DuplicateRequest(record.id, pending[0].id)

        req = RegularizationRequest(
            attendance_record_id=record.id,
            requester_id=requester_id,
            reason=reason,
            status=RegularizationStatus.pending,
            created_at=now,
            updated_at=now,
        )
        self.db.add(req)
        await self.db.flush()

        await create_audit_entry(
            self.db,
            action="create",
            entity_type="regularization_request",
            entity_id=req.id,
            organization_id=record.organization_id,
            actor_id=requester_id,
            new_values={"attendance_record_id": str(record.id), "reason": reason},
        )
        await EventService.emit(
            self.db,
            organization_id=record.organization_id,
            user_id=requester_id,
            event_type=AttendanceEventType.regularization_requested,
            entity_type="regularization_request",
            entity_id=req.id,
            payload={
                "attendance_record_id": str(record.id),
                "date": record.date.isoformat(),
                "is_late": record.is_late,
                "is_early_out": record.is_early_out,
            },
        )
        logger.info("Regularization %s requested for record %s", req.id, record.id)
        return req

    async def approve(
        self,
        request_id: uuid.UUID,
        approver_id: uuid.UUID,
        remarks: Optional[str] = None,
        *,
        now: Optional[datetime] = None,
    ) -> RegularizationRequest:
        now = ensure_utc(now) if now is not None else utc_now()
        req = await self._get_request(request_id)
        if req.status == RegularizationStatus.approved:
            return req
        if req.status == RegularizationStatus.rejected:
            raise ValidationException({"status": ["A rejected request cannot be approved."]})

        record = await self._get_record(req.attendance_record_id)
        await self._mark_regularized(
            record, actor_id=approver_id, reason=remarks or req.reason, now=now,
        )
        await self._resolve(
            req, record, RegularizationStatus.approved,
            approver_id=approver_id, remarks=remarks, now=now,
        )
        logger.info("Regularization %s approved by %s", req.id, approver_id)
        return req

    async def reject(
        self,
        request_id: uuid.UUID,
        approver_id: uuid.UUID,
        remarks: Optional[str] = None,
        *,
        now: Optional[datetime] = None,
    ) -> RegularizationRequest:
        now = ensure_utc(now) if now is not None else utc_now()
        req = await self._get_request(request_id)
        if req.status == RegularizationStatus.rejected:
            return req
        if req.status == RegularizationStatus.approved:
            raise ValidationException({"status": ["An approved request cannot be rejected."]})

        record = await self._get_record(req.attendance_record_id)
        await self._resolve(
            req, record, RegularizationStatus.rejected,
            approver_id=approver_id, remarks=remarks, now=now,
        )
        logger.info("Regularization %s rejected by %s", req.id, approver_id)
        return req

    async def direct_regularize(
        self,
        record_id: uuid.UUID,
        admin_id: uuid.UUID,
        reason: str,
        *,
        now: Optional[datetime] = None,
    ) -> AttendanceRecord:
        """Admin path; also approves any request still pending on the record."""
        now = ensure_utc(now) if now is not None else utc_now()
        record = await self._get_record(record_id)
        await self._mark_regularized(record, actor_id=admin_id, reason=reason, now=now)
        await self.db.flush()

        for req in await self._pending_for(record.id):
            await self._resolve(
                req, record, RegularizationStatus.approved,
                approver_id=admin_id, remarks=reason, now=now,
            )

        await create_audit_entry(
            self.db,
            action="regularize",
            entity_type="attendance_record",
            entity_id=record.id,
            organization_id=record.organization_id,
            actor_id=admin_id,
            new_values={"reason": reason},
        )
        logger.info("Record %s regularized directly by %s", record.id, admin_id)
        return record

    async def list_requests(
        self,
        pagination: PaginationParams,
        *,
        organization_id: Optional[uuid.UUID] = None,
        requester_id: Optional[uuid.UUID] = None,
        status: Optional[RegularizationStatus] = None,
    ) -> RegularizationListResponse:
        query = select(RegularizationRequest).order_by(RegularizationRequest.created_at.desc())
        if organization_id is not None:
            query = query.join(
                AttendanceRecord,
                AttendanceRecord.id == RegularizationRequest.attendance_record_id,
            ).where(AttendanceRecord.organization_id == organization_id)
        if requester_id is not None:
            query = query.where(RegularizationRequest.requester_id == requester_id)
        if status is not None:
            query = query.where(RegularizationRequest.status == status)

        rows, meta = await paginate(self.db, query, pagination, model=RegularizationRequest)
        return RegularizationListResponse(
            data=[RegularizationResponse.model_validate(r) for r in rows],
            meta=meta,
        )
