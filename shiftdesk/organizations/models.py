"""Organization ORM models: OrganizationAttendanceSettings, OrganizationHoliday."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from shiftdesk.common.constants import DEFAULT_DISTANCE_THRESHOLD_METERS, EnforcementMode
from shiftdesk.database import Base


class OrganizationAttendanceSettings(Base):
    __tablename__ = "organization_attendance_settings"
    __table_args__ = (
        sa.CheckConstraint(
            "location_latitude IS NULL OR (location_latitude >= -90 AND location_latitude <= 90)",
            name="ck_org_settings_latitude_range",
        ),
        sa.CheckConstraint(
            "location_longitude IS NULL OR (location_longitude >= -180 AND location_longitude <= 180)",
            name="ck_org_settings_longitude_range",
        ),
    )

    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True,
    )
    location_latitude: Mapped[Optional[float]] = mapped_column(sa.Float)
    location_longitude: Mapped[Optional[float]] = mapped_column(sa.Float)
    location_address: Mapped[Optional[str]] = mapped_column(sa.Text)
    geofence_enabled: Mapped[bool] = mapped_column(sa.Boolean, default=True)
    enforcement_mode: Mapped[EnforcementMode] = mapped_column(
        sa.Enum(EnforcementMode, name="geofence_enforcement_mode", create_type=False),
        default=EnforcementMode.strict,
    )
    distance_threshold_meters: Mapped[float] = mapped_column(
        sa.Float, default=DEFAULT_DISTANCE_THRESHOLD_METERS
    )
    allow_admin_override: Mapped[bool] = mapped_column(sa.Boolean, default=True)
    timezone: Mapped[str] = mapped_column(sa.String(64), default="Asia/Kolkata")
    default_weekly_off_days: Mapped[list] = mapped_column(
        JSONB, default=lambda: ["sunday"]
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )


class OrganizationHoliday(Base):
    __tablename__ = "organization_holidays"
    __table_args__ = (
        sa.UniqueConstraint("organization_id", "date", name="uq_org_holiday_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False,
    )
    date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    name: Mapped[str] = mapped_column(sa.String(150), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
