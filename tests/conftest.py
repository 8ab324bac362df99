"""Shared test fixtures: async DB, client, collaborator fakes, factories.

Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL.
"""

from __future__ import annotations

import os

# Keep tests offline and unthrottled before pydantic-settings reads the env
os.environ.setdefault("GEOCODER_URL", "")
os.environ.setdefault("BLOB_STORE_URL", "")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import uuid
from datetime import date, datetime, time, timezone
from typing import AsyncGenerator, Iterable, Optional
from zoneinfo import ZoneInfo

import pytest
from fastapi import Depends
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from shiftdesk.attendance.collaborators import DatabaseHolidayCalendar
from shiftdesk.attendance.service import PunchStateMachine
from shiftdesk.common.constants import EnforcementMode
from shiftdesk.database import Base, get_db
from shiftdesk.dependencies import get_punch_state_machine
from shiftdesk.main import create_app

# Import ALL model modules so every table is registered on Base.metadata
import shiftdesk.attendance.models  # noqa: F401
import shiftdesk.common.audit  # noqa: F401
import shiftdesk.events.models  # noqa: F401
import shiftdesk.monthly.models  # noqa: F401
import shiftdesk.organizations.models  # noqa: F401
import shiftdesk.shifts.models  # noqa: F401

# ── SQLite compat: compile PG-specific types to TEXT/BLOB ───────────

from sqlalchemy.dialects.postgresql import JSONB, UUID as PG_UUID
from sqlalchemy.ext.compiler import compiles


@compiles(JSONB, "sqlite")
def _jsonb_sqlite(element, compiler, **kw):
    return "TEXT"


@compiles(PG_UUID, "sqlite")
def _uuid_sqlite(element, compiler, **kw):
    return "CHAR(36)"


# ── Test database (SQLite in-memory) ────────────────────────────────

TEST_DATABASE_URL = "sqlite+aiosqlite://"

engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine.sync_engine, "connect")
def _register_sqlite_functions(dbapi_conn, connection_record):
    """Register NOW() as a SQLite custom function."""
    dbapi_conn.create_function(
        "NOW", 0, lambda: datetime.now(timezone.utc).isoformat(),
    )


TestSessionFactory = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def _setup_db():
    """Create all tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """Reset rate limiter storage between tests to prevent cross-test interference."""
    from shiftdesk.common.rate_limit import limiter

    limiter.reset()
    yield


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Collaborator fakes ──────────────────────────────────────────────

class RecordingBlobStore:
    """Keeps uploads in memory and returns a deterministic reference."""

    def __init__(self) -> None:
        self.uploads: list[tuple[str, bytes]] = []

    async def upload(self, data: bytes, *, path: str, content_type: str) -> Optional[str]:
        self.uploads.append((path, data))
        return f"https://blobs.test/{path}"


class FailingBlobStore:
    async def upload(self, data: bytes, *, path: str, content_type: str) -> Optional[str]:
        raise ConnectionError("blob store unavailable")


class StaticGeocoder:
    def __init__(self, address: str = "Bandra Kurla Complex, Mumbai") -> None:
        self.address = address
        self.calls = 0

    async def lookup(self, latitude: float, longitude: float) -> Optional[str]:
        self.calls += 1
        return self.address


class FailingGeocoder:
    async def lookup(self, latitude: float, longitude: float) -> Optional[str]:
        raise TimeoutError("geocoder down")


class StaticHolidayCalendar:
    def __init__(self, holidays: Iterable[date] = ()) -> None:
        self.holidays = set(holidays)

    async def is_holiday(self, organization_id: uuid.UUID, on_date: date) -> bool:
        return on_date in self.holidays


# ── FastAPI test client ─────────────────────────────────────────────

@pytest.fixture
async def app():
    """Create a fresh app instance with DB and collaborators overridden."""
    application = create_app()
    application.dependency_overrides[get_db] = _override_get_db

    async def _machine(db: AsyncSession = Depends(get_db)):
        return PunchStateMachine(
            db,
            blob_store=RecordingBlobStore(),
            geocoder=StaticGeocoder(),
            holiday_calendar=DatabaseHolidayCalendar(db),
        )

    application.dependency_overrides[get_punch_state_machine] = _machine
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ── Database session (for direct DB operations in tests) ────────────

@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        yield session
        await session.commit()


# ── Time helpers ────────────────────────────────────────────────────

IST = ZoneInfo("Asia/Kolkata")

# A Monday; the weekend is 2026-03-07 / 2026-03-08
MONDAY = date(2026, 3, 2)

OFFICE_LAT = 19.0760
OFFICE_LON = 72.8777
# ~100 m and ~1.1 km north of the office
NEAR_LAT = 19.0769
FAR_LAT = 19.0860


def ist(on_date: date, hour: int, minute: int = 0) -> datetime:
    """Wall-clock time in the test organization's zone."""
    return datetime.combine(on_date, time(hour, minute), tzinfo=IST)


# ── Model factories ─────────────────────────────────────────────────

def _make_shift(
    *,
    organization_id: uuid.UUID,
    name: str = "General",
    start: time = time(9, 0),
    end: time = time(18, 0),
    break_minutes: int = 60,
    weekly_off_days: Optional[list[str]] = None,
    late_threshold: int = 15,
    early_out_threshold: int = 15,
) -> dict:
    span = ((end.hour * 60 + end.minute) - (start.hour * 60 + start.minute)) % 1440 or 1440
    return dict(
        id=uuid.uuid4(),
        organization_id=organization_id,
        name=name,
        start_time=start,
        end_time=end,
        duration_hours=(span - break_minutes) / 60,
        break_duration_minutes=break_minutes,
        late_threshold_minutes=late_threshold,
        early_out_threshold_minutes=early_out_threshold,
        is_overnight=end < start,
        weekly_off_days=weekly_off_days or ["saturday", "sunday"],
        is_active=True,
        created_at=datetime.now(timezone.utc),
        updated_at=datetime.now(timezone.utc),
    )


@pytest.fixture
def org_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def user_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def admin_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
async def org_settings(db, org_id):
    """Organization with a configured office location and strict geofence."""
    from shiftdesk.organizations.models import OrganizationAttendanceSettings

    row = OrganizationAttendanceSettings(
        organization_id=org_id,
        location_latitude=OFFICE_LAT,
        location_longitude=OFFICE_LON,
        location_address="BKC, Mumbai",
        geofence_enabled=True,
        enforcement_mode=EnforcementMode.strict,
        distance_threshold_meters=500,
        allow_admin_override=True,
        timezone="Asia/Kolkata",
        default_weekly_off_days=["sunday"],
    )
    db.add(row)
    await db.flush()
    return row


@pytest.fixture
async def day_shift(db, org_id):
    """09:00–18:00 with a 60 minute break (8h), Saturday/Sunday off."""
    from shiftdesk.shifts.models import Shift

    shift = Shift(**_make_shift(organization_id=org_id))
    db.add(shift)
    await db.flush()
    return shift


@pytest.fixture
async def night_shift(db, org_id):
    """22:00–06:00 overnight with a 60 minute break (7h), Sunday off."""
    from shiftdesk.shifts.models import Shift

    shift = Shift(**_make_shift(
        organization_id=org_id,
        name="Night",
        start=time(22, 0),
        end=time(6, 0),
        weekly_off_days=["sunday"],
    ))
    db.add(shift)
    await db.flush()
    return shift


async def assign(db, user_id, shift, effective_from: date = date(2026, 1, 1)):
    from shiftdesk.shifts.models import EmployeeShiftAssignment

    assignment = EmployeeShiftAssignment(
        user_id=user_id,
        shift_id=shift.id,
        effective_from=effective_from,
    )
    db.add(assignment)
    await db.flush()
    return assignment


@pytest.fixture
def holidays() -> StaticHolidayCalendar:
    return StaticHolidayCalendar()


@pytest.fixture
def blob_store() -> RecordingBlobStore:
    return RecordingBlobStore()


@pytest.fixture
def machine(db, blob_store, holidays) -> PunchStateMachine:
    """Punch state machine on the test session with in-memory collaborators."""
    return PunchStateMachine(
        db,
        blob_store=blob_store,
        geocoder=StaticGeocoder(),
        holiday_calendar=holidays,
        collaborator_timeout=1.0,
    )
