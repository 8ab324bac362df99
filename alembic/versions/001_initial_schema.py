"""001 – Initial schema: shifts, assignments, attendance, regularization,
monthly overrides, organization settings, events, audit trail.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-17 10:00:00.000000+05:30
"""

from alembic import op

# Revision identifiers
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

ENUM_TYPES: list[tuple[str, list[str]]] = [
    ("geofence_enforcement_mode", ["off", "warn", "strict"]),
    ("regularization_status", ["pending", "approved", "rejected"]),
]


def _create_enum(name: str, values: list[str]) -> None:
    vals = ", ".join(f"'{v}'" for v in values)
    op.execute(f"CREATE TYPE {name} AS ENUM ({vals})")


def _drop_enum(name: str) -> None:
    op.execute(f"DROP TYPE IF EXISTS {name}")


# ---------------------------------------------------------------------------
# UPGRADE
# ---------------------------------------------------------------------------


def upgrade() -> None:
    # ── Extensions ────────────────────────────────────────────────────────
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    # ── Enum types ────────────────────────────────────────────────────────
    for name, values in ENUM_TYPES:
        _create_enum(name, values)

    # ── 1. organization_attendance_settings ───────────────────────────────
    op.execute("""
        CREATE TABLE organization_attendance_settings (
            organization_id           UUID PRIMARY KEY,
            location_latitude         DOUBLE PRECISION
                CHECK (location_latitude IS NULL OR location_latitude BETWEEN -90 AND 90),
            location_longitude        DOUBLE PRECISION
                CHECK (location_longitude IS NULL OR location_longitude BETWEEN -180 AND 180),
            location_address          TEXT,
            geofence_enabled          BOOLEAN DEFAULT TRUE,
            enforcement_mode          geofence_enforcement_mode DEFAULT 'strict',
            distance_threshold_meters DOUBLE PRECISION DEFAULT 500,
            allow_admin_override      BOOLEAN DEFAULT TRUE,
            timezone                  VARCHAR(64) DEFAULT 'Asia/Kolkata',
            default_weekly_off_days   JSONB DEFAULT '["sunday"]'::jsonb,
            created_at                TIMESTAMPTZ DEFAULT NOW(),
            updated_at                TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    # ── 2. organization_holidays ──────────────────────────────────────────
    op.execute("""
        CREATE TABLE organization_holidays (
            id              UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            organization_id UUID NOT NULL,
            date            DATE NOT NULL,
            name            VARCHAR(150) NOT NULL,
            created_at      TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT uq_org_holiday_date UNIQUE (organization_id, date)
        )
    """)

    # ── 3. shifts ─────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE shifts (
            id                          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            organization_id             UUID NOT NULL,
            name                        VARCHAR(100) NOT NULL,
            start_time                  TIME NOT NULL,
            end_time                    TIME NOT NULL,
            duration_hours              DOUBLE PRECISION NOT NULL,
            break_duration_minutes      INTEGER DEFAULT 60,
            late_threshold_minutes      INTEGER DEFAULT 15,
            early_out_threshold_minutes INTEGER DEFAULT 15,
            is_overnight                BOOLEAN DEFAULT FALSE,
            weekly_off_days             JSONB DEFAULT '["sunday"]'::jsonb,
            is_active                   BOOLEAN DEFAULT TRUE,
            created_at                  TIMESTAMPTZ DEFAULT NOW(),
            updated_at                  TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT uq_shift_org_name UNIQUE (organization_id, name)
        )
    """)
    op.execute("CREATE INDEX ix_shifts_organization_id ON shifts(organization_id)")

    # ── 4. employee_shift_assignments ─────────────────────────────────────
    op.execute("""
        CREATE TABLE employee_shift_assignments (
            id             UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id        UUID NOT NULL,
            shift_id       UUID NOT NULL REFERENCES shifts(id),
            effective_from DATE NOT NULL,
            effective_to   DATE,
            assigned_by    UUID,
            created_at     TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX idx_emp_shift_eff
            ON employee_shift_assignments(user_id, effective_from)
    """)
    # At most one open-ended assignment per user
    op.execute("""
        CREATE UNIQUE INDEX uq_emp_shift_open
            ON employee_shift_assignments(user_id)
            WHERE effective_to IS NULL
    """)

    # ── 5. attendance_records ─────────────────────────────────────────────
    op.execute("""
        CREATE TABLE attendance_records (
            id                        UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            organization_id           UUID NOT NULL,
            user_id                   UUID NOT NULL,
            date                      DATE NOT NULL,
            shift_id                  UUID REFERENCES shifts(id),
            punch_in_time             TIMESTAMPTZ,
            punch_in_latitude         DOUBLE PRECISION,
            punch_in_longitude        DOUBLE PRECISION,
            punch_in_address          TEXT,
            punch_in_selfie_url       TEXT,
            punch_in_device_info      JSONB,
            punch_in_distance_meters  DOUBLE PRECISION,
            punch_out_time            TIMESTAMPTZ,
            punch_out_latitude        DOUBLE PRECISION,
            punch_out_longitude       DOUBLE PRECISION,
            punch_out_address         TEXT,
            punch_out_selfie_url      TEXT,
            punch_out_device_info     JSONB,
            punch_out_distance_meters DOUBLE PRECISION,
            is_outside_geofence       BOOLEAN DEFAULT FALSE,
            geofence_override_by      UUID,
            geofence_override_reason  TEXT,
            geofence_override_at      TIMESTAMPTZ,
            total_hours               DOUBLE PRECISION DEFAULT 0,
            effective_hours           DOUBLE PRECISION DEFAULT 0,
            is_late                   BOOLEAN DEFAULT FALSE,
            is_early_out              BOOLEAN DEFAULT FALSE,
            is_half_day               BOOLEAN DEFAULT FALSE,
            is_weekend                BOOLEAN DEFAULT FALSE,
            is_holiday                BOOLEAN DEFAULT FALSE,
            is_absent                 BOOLEAN DEFAULT FALSE,
            is_regularized            BOOLEAN DEFAULT FALSE,
            regularized_by            UUID,
            regularization_reason     TEXT,
            regularized_at            TIMESTAMPTZ,
            needs_review              BOOLEAN DEFAULT FALSE,
            review_reason             VARCHAR(50),
            created_at                TIMESTAMPTZ DEFAULT NOW(),
            updated_at                TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT uq_attendance_user_date UNIQUE (user_id, date)
        )
    """)
    op.execute("CREATE INDEX ix_attendance_records_user_id ON attendance_records(user_id)")
    op.execute("""
        CREATE INDEX idx_attendance_org_date
            ON attendance_records(organization_id, date)
    """)

    # ── 6. regularization_requests ────────────────────────────────────────
    op.execute("""
        CREATE TABLE regularization_requests (
            id                   UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            attendance_record_id UUID NOT NULL REFERENCES attendance_records(id),
            requester_id         UUID NOT NULL,
            reason               TEXT NOT NULL,
            status               regularization_status DEFAULT 'pending',
            approver_id          UUID,
            admin_remarks        TEXT,
            resolved_at          TIMESTAMPTZ,
            created_at           TIMESTAMPTZ DEFAULT NOW(),
            updated_at           TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX idx_regularization_record_status
            ON regularization_requests(attendance_record_id, status)
    """)

    # ── 7. monthly_attendance_overrides ───────────────────────────────────
    op.execute("""
        CREATE TABLE monthly_attendance_overrides (
            id              UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            organization_id UUID NOT NULL,
            user_id         UUID NOT NULL,
            year            INTEGER NOT NULL,
            month           INTEGER NOT NULL CHECK (month BETWEEN 1 AND 12),
            source_batch_id UUID,
            payload         JSONB NOT NULL,
            approved_by     UUID,
            approved_at     TIMESTAMPTZ,
            created_at      TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX idx_monthly_override_user_period
            ON monthly_attendance_overrides(user_id, year, month)
    """)

    # ── 8. attendance_events ──────────────────────────────────────────────
    op.execute("""
        CREATE TABLE attendance_events (
            id              UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            organization_id UUID NOT NULL,
            user_id         UUID,
            event_type      VARCHAR(50) NOT NULL,
            entity_type     VARCHAR(50) NOT NULL,
            entity_id       UUID NOT NULL,
            payload         JSONB,
            dispatched_at   TIMESTAMPTZ,
            created_at      TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX idx_attendance_events_pending
            ON attendance_events(organization_id, dispatched_at)
    """)

    # ── 9. audit_trail ────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE audit_trail (
            id              UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            organization_id UUID,
            actor_id        UUID,
            action          VARCHAR(50) NOT NULL,
            entity_type     VARCHAR(50) NOT NULL,
            entity_id       UUID NOT NULL,
            old_values      JSONB,
            new_values      JSONB,
            created_at      TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX ix_audit_trail_entity
            ON audit_trail(entity_type, entity_id)
    """)
    op.execute("""
        CREATE INDEX ix_audit_trail_org_created
            ON audit_trail(organization_id, created_at)
    """)
    op.execute("CREATE INDEX ix_audit_trail_action     ON audit_trail(action)")


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    # Drop tables in reverse dependency order
    tables = [
        "audit_trail",
        "attendance_events",
        "monthly_attendance_overrides",
        "regularization_requests",
        "attendance_records",
        "employee_shift_assignments",
        "shifts",
        "organization_holidays",
        "organization_attendance_settings",
    ]
    for t in tables:
        op.execute(f"DROP TABLE IF EXISTS {t} CASCADE")

    # Drop enum types
    for name, _ in reversed(ENUM_TYPES):
        _drop_enum(name)

    op.execute('DROP EXTENSION IF EXISTS "uuid-ossp"')
