"""Monthly attendance service: per-user and organization reports, overrides."""

from __future__ import annotations

import calendar
import logging
import uuid
from datetime import date, datetime, timezone
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shiftdesk.attendance.models import AttendanceRecord
from shiftdesk.attendance.service import AttendanceQueryService
from shiftdesk.common.audit import create_audit_entry
from shiftdesk.monthly import aggregator
from shiftdesk.monthly.models import MonthlyOverride
from shiftdesk.monthly.schemas import (
    MonthlyAttendanceSummary,
    MonthlyOverrideCreate,
    OrganizationMonthlyReport,
)

logger = logging.getLogger(__name__)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


class MonthlyAttendanceService:
    """Async monthly aggregation for payroll."""

    @staticmethod
    async def _overrides(
        db: AsyncSession,
        year: int,
        month: int,
        *,
        user_id: Optional[uuid.UUID] = None,
        organization_id: Optional[uuid.UUID] = None,
    ) -> Sequence[MonthlyOverride]:
        query = select(MonthlyOverride).where(
            MonthlyOverride.year == year,
            MonthlyOverride.month == month,
        )
        if user_id is not None:
            query = query.where(MonthlyOverride.user_id == user_id)
        if organization_id is not None:
            query = query.where(MonthlyOverride.organization_id == organization_id)
        return (await db.execute(query)).scalars().all()

    @staticmethod
    async def user_summary(
        db: AsyncSession,
        user_id: uuid.UUID,
        year: int,
        month: int,
        *,
        organization_id: Optional[uuid.UUID] = None,
    ) -> MonthlyAttendanceSummary:
        first_day, last_day = month_bounds(year, month)
        records = await AttendanceQueryService.records_for_month(
            db, user_id, first_day, last_day, organization_id=organization_id,
        )

        override = aggregator.select_override(
            await MonthlyAttendanceService._overrides(
                db, year, month, user_id=user_id, organization_id=organization_id,
            )
        )
        return aggregator.merge(
            user_id, year, month, aggregator.system_totals(records), override,
        )

    @staticmethod
    async def organization_report(
        db: AsyncSession,
        organization_id: uuid.UUID,
        year: int,
        month: int,
    ) -> OrganizationMonthlyReport:
        """Every user with records or an override in the month."""
        first_day, last_day = month_bounds(year, month)
        records = (
            await db.execute(
                select(AttendanceRecord).where(
                    AttendanceRecord.organization_id == organization_id,
                    AttendanceRecord.date >= first_day,
                    AttendanceRecord.date <= last_day,
                )
            )
        ).scalars().all()
        overrides = await MonthlyAttendanceService._overrides(
            db, year, month, organization_id=organization_id,
        )

        by_user: dict[uuid.UUID, list[AttendanceRecord]] = {}
        for record in records:
            by_user.setdefault(record.user_id, []).append(record)
        overrides_by_user: dict[uuid.UUID, list[MonthlyOverride]] = {}
        for override in overrides:
            overrides_by_user.setdefault(override.user_id, []).append(override)

        summaries = [
            aggregator.merge(
                user_id,
                year,
                month,
                aggregator.system_totals(by_user.get(user_id, [])),
                aggregator.select_override(overrides_by_user.get(user_id, [])),
            )
            for user_id in sorted(set(by_user) | set(overrides_by_user), key=str)
        ]
        logger.info(
            "Monthly report %04d-%02d for org %s: %d user(s)",
            year, month, organization_id, len(summaries),
        )
        return OrganizationMonthlyReport(
            organization_id=organization_id,
            year=year,
            month=month,
            summaries=summaries,
        )

    @staticmethod
    async def create_override(
        db: AsyncSession,
        body: MonthlyOverrideCreate,
    ) -> MonthlyOverride:
        override = MonthlyOverride(
            organization_id=body.organization_id,
            user_id=body.user_id,
            year=body.year,
            month=body.month,
            source_batch_id=body.source_batch_id,
            payload=body.payload.model_dump(mode="json", exclude_none=True),
            approved_by=body.approved_by,
            approved_at=datetime.now(timezone.utc) if body.approved_by else None,
        )
        db.add(override)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="monthly_override",
            entity_id=override.id,
            organization_id=body.organization_id,
            actor_id=body.approved_by,
            new_values={
                "user_id": str(body.user_id),
                "period": f"{body.year:04d}-{body.month:02d}",
                "payload": override.payload,
            },
        )
        return override

    @staticmethod
    async def list_overrides(
        db: AsyncSession,
        organization_id: uuid.UUID,
        year: int,
        month: int,
        *,
        user_id: Optional[uuid.UUID] = None,
    ) -> Sequence[MonthlyOverride]:
        overrides = await MonthlyAttendanceService._overrides(
            db, year, month, user_id=user_id, organization_id=organization_id,
        )
        return sorted(overrides, key=lambda o: (str(o.user_id), o.created_at))
