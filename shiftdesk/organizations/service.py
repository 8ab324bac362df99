"""Organization attendance settings and holiday calendar operations."""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shiftdesk.common.audit import create_audit_entry
from shiftdesk.common.constants import DEFAULT_DISTANCE_THRESHOLD_METERS, EnforcementMode
from shiftdesk.common.exceptions import ConflictError
from shiftdesk.config import settings
from shiftdesk.geofence.validator import GeofencePolicy
from shiftdesk.organizations.models import (
    OrganizationAttendanceSettings,
    OrganizationHoliday,
)
from shiftdesk.organizations.schemas import AttendanceSettingsUpdate

logger = logging.getLogger(__name__)


class OrganizationService:
    """Async access to per-organization attendance policy."""

    @staticmethod
    def default_settings(organization_id: uuid.UUID) -> OrganizationAttendanceSettings:
        """Unsaved settings object for an organization that never configured one.

        No location means geofencing is unconfigured, so every punch is allowed.
        """
        return OrganizationAttendanceSettings(
            organization_id=organization_id,
            location_latitude=None,
            location_longitude=None,
            location_address=None,
            geofence_enabled=True,
            enforcement_mode=EnforcementMode.strict,
            distance_threshold_meters=DEFAULT_DISTANCE_THRESHOLD_METERS,
            allow_admin_override=True,
            timezone=settings.DEFAULT_TIMEZONE,
            default_weekly_off_days=settings.default_weekly_off_days_list,
        )

    @staticmethod
    async def get_settings(
        db: AsyncSession,
        organization_id: uuid.UUID,
    ) -> OrganizationAttendanceSettings:
        row = await db.get(OrganizationAttendanceSettings, organization_id)
        if row is None:
            return OrganizationService.default_settings(organization_id)
        return row

    @staticmethod
    async def is_configured(db: AsyncSession, organization_id: uuid.UUID) -> bool:
        return await db.get(OrganizationAttendanceSettings, organization_id) is not None

    @staticmethod
    def geofence_policy(org: OrganizationAttendanceSettings) -> GeofencePolicy:
        return GeofencePolicy(
            center_latitude=org.location_latitude,
            center_longitude=org.location_longitude,
            enabled=bool(org.geofence_enabled),
            enforcement_mode=org.enforcement_mode,
            distance_threshold_meters=org.distance_threshold_meters,
        )

    @staticmethod
    async def upsert_settings(
        db: AsyncSession,
        organization_id: uuid.UUID,
        body: AttendanceSettingsUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> OrganizationAttendanceSettings:
        row = await db.get(OrganizationAttendanceSettings, organization_id)
        old_values = None
        if row is None:
            row = OrganizationAttendanceSettings(organization_id=organization_id)
            db.add(row)
        else:
            old_values = {
                "enforcement_mode": row.enforcement_mode.value if row.enforcement_mode else None,
                "distance_threshold_meters": row.distance_threshold_meters,
                "timezone": row.timezone,
            }

        for field, value in body.model_dump().items():
            setattr(row, field, value)
        row.updated_at = datetime.now(timezone.utc)
        await db.flush()

        await create_audit_entry(
            db,
            action="update_settings",
            entity_type="organization_attendance_settings",
            entity_id=organization_id,
            organization_id=organization_id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=body.model_dump(mode="json"),
        )
        logger.info(
            "Attendance settings updated for org %s (mode=%s, threshold=%sm)",
            organization_id, body.enforcement_mode.value, body.distance_threshold_meters,
        )
        return row

    # ── Holidays ────────────────────────────────────────────────────

    @staticmethod
    async def list_holidays(
        db: AsyncSession,
        organization_id: uuid.UUID,
        *,
        year: Optional[int] = None,
    ) -> list[OrganizationHoliday]:
        query = (
            select(OrganizationHoliday)
            .where(OrganizationHoliday.organization_id == organization_id)
            .order_by(OrganizationHoliday.date)
        )
        if year is not None:
            query = query.where(
                OrganizationHoliday.date >= date(year, 1, 1),
                OrganizationHoliday.date <= date(year, 12, 31),
            )
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def add_holiday(
        db: AsyncSession,
        organization_id: uuid.UUID,
        *,
        on_date: date,
        name: str,
        actor_id: Optional[uuid.UUID] = None,
    ) -> OrganizationHoliday:
        existing = await db.execute(
            select(OrganizationHoliday).where(
                OrganizationHoliday.organization_id == organization_id,
                OrganizationHoliday.date == on_date,
            )
        )
        if existing.scalars().first() is not None:
            raise ConflictError("date", on_date.isoformat())

        holiday = OrganizationHoliday(
            organization_id=organization_id,
            date=on_date,
            name=name,
        )
        db.add(holiday)
        try:
            await db.flush()
        except IntegrityError:
            raise ConflictError("date", on_date.isoformat())

        await create_audit_entry(
            db,
            action="create",
            entity_type="organization_holiday",
            entity_id=holiday.id,
            organization_id=organization_id,
            actor_id=actor_id,
            new_values={"date": on_date.isoformat(), "name": name},
        )
        return holiday
