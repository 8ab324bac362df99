"""Attendance ORM models: AttendanceRecord, RegularizationRequest."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shiftdesk.common.constants import RegularizationStatus
from shiftdesk.database import Base


class AttendanceRecord(Base):
    """One row per user per local calendar date (first in, last out)."""

    __tablename__ = "attendance_records"
    __table_args__ = (
        sa.UniqueConstraint("user_id", "date", name="uq_attendance_user_date"),
        sa.Index("idx_attendance_org_date", "organization_id", "date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False, index=True,
    )
    date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    shift_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("shifts.id")
    )

    # Punch in
    punch_in_time: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    punch_in_latitude: Mapped[Optional[float]] = mapped_column(sa.Float)
    punch_in_longitude: Mapped[Optional[float]] = mapped_column(sa.Float)
    punch_in_address: Mapped[Optional[str]] = mapped_column(sa.Text)
    punch_in_selfie_url: Mapped[Optional[str]] = mapped_column(sa.Text)
    punch_in_device_info: Mapped[Optional[dict]] = mapped_column(JSONB)
    punch_in_distance_meters: Mapped[Optional[float]] = mapped_column(sa.Float)

    # Punch out
    punch_out_time: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    punch_out_latitude: Mapped[Optional[float]] = mapped_column(sa.Float)
    punch_out_longitude: Mapped[Optional[float]] = mapped_column(sa.Float)
    punch_out_address: Mapped[Optional[str]] = mapped_column(sa.Text)
    punch_out_selfie_url: Mapped[Optional[str]] = mapped_column(sa.Text)
    punch_out_device_info: Mapped[Optional[dict]] = mapped_column(JSONB)
    punch_out_distance_meters: Mapped[Optional[float]] = mapped_column(sa.Float)

    is_outside_geofence: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    geofence_override_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    geofence_override_reason: Mapped[Optional[str]] = mapped_column(sa.Text)
    geofence_override_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))

    # Derived
    total_hours: Mapped[float] = mapped_column(sa.Float, default=0.0)
    effective_hours: Mapped[float] = mapped_column(sa.Float, default=0.0)
    is_late: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    is_early_out: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    is_half_day: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    is_weekend: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    is_holiday: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    is_absent: Mapped[bool] = mapped_column(sa.Boolean, default=False)

    # Regularization
    is_regularized: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    regularized_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    regularization_reason: Mapped[Optional[str]] = mapped_column(sa.Text)
    regularized_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))

    needs_review: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    review_reason: Mapped[Optional[str]] = mapped_column(sa.String(50))

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    # Relationships
    regularization_requests: Mapped[list[RegularizationRequest]] = relationship(
        back_populates="attendance_record"
    )

    @property
    def is_open(self) -> bool:
        return self.punch_in_time is not None and self.punch_out_time is None


class RegularizationRequest(Base):
    __tablename__ = "regularization_requests"
    __table_args__ = (
        sa.Index("idx_regularization_record_status", "attendance_record_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    attendance_record_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("attendance_records.id"), nullable=False
    )
    requester_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    reason: Mapped[str] = mapped_column(sa.Text, nullable=False)
    status: Mapped[RegularizationStatus] = mapped_column(
        sa.Enum(RegularizationStatus, name="regularization_status", create_type=False),
        default=RegularizationStatus.pending,
    )
    approver_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    admin_remarks: Mapped[Optional[str]] = mapped_column(sa.Text)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    # Relationships
    attendance_record: Mapped[AttendanceRecord] = relationship(
        back_populates="regularization_requests"
    )
