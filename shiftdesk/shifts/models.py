"""Shift ORM models: Shift, EmployeeShiftAssignment."""

from __future__ import annotations

import uuid
from datetime import date, datetime, time, timezone
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shiftdesk.database import Base


class Shift(Base):
    __tablename__ = "shifts"
    __table_args__ = (
        sa.UniqueConstraint("organization_id", "name", name="uq_shift_org_name"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False, index=True,
    )
    name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    start_time: Mapped[time] = mapped_column(sa.Time, nullable=False)
    end_time: Mapped[time] = mapped_column(sa.Time, nullable=False)
    duration_hours: Mapped[float] = mapped_column(sa.Float, nullable=False)
    break_duration_minutes: Mapped[int] = mapped_column(sa.Integer, default=60)
    late_threshold_minutes: Mapped[int] = mapped_column(sa.Integer, default=15)
    early_out_threshold_minutes: Mapped[int] = mapped_column(sa.Integer, default=15)
    is_overnight: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    weekly_off_days: Mapped[list] = mapped_column(
        JSONB, default=lambda: ["sunday"]
    )
    is_active: Mapped[bool] = mapped_column(sa.Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    # Relationships
    assignments: Mapped[list[EmployeeShiftAssignment]] = relationship(
        back_populates="shift"
    )

    @property
    def span_hours(self) -> float:
        """Wall-clock length from start to end, wrapping midnight."""
        start = self.start_time.hour * 60 + self.start_time.minute
        end = self.end_time.hour * 60 + self.end_time.minute
        minutes = (end - start) % (24 * 60) or 24 * 60
        return minutes / 60


class EmployeeShiftAssignment(Base):
    __tablename__ = "employee_shift_assignments"
    __table_args__ = (
        sa.Index("idx_emp_shift_eff", "user_id", "effective_from"),
        # At most one open-ended assignment per user
        sa.Index(
            "uq_emp_shift_open",
            "user_id",
            unique=True,
            postgresql_where=sa.text("effective_to IS NULL"),
            sqlite_where=sa.text("effective_to IS NULL"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False,
    )
    shift_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("shifts.id"), nullable=False
    )
    effective_from: Mapped[date] = mapped_column(sa.Date, nullable=False)
    effective_to: Mapped[Optional[date]] = mapped_column(sa.Date)
    assigned_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    # Relationships
    shift: Mapped[Shift] = relationship(back_populates="assignments")

    @property
    def is_empty(self) -> bool:
        """A superseded-before-start interval (effective_to < effective_from)."""
        return self.effective_to is not None and self.effective_to < self.effective_from

    def covers(self, on_date: date) -> bool:
        return self.effective_from <= on_date and (
            self.effective_to is None or on_date <= self.effective_to
        )
