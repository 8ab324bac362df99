#!/usr/bin/env python3
"""Attendance maintenance: nightly absence sweep and stale-session close.

Purpose: run from cron after the organization's day ends. Materializes
absent rows for assigned users who never punched, and auto punches-out
sessions left open past the stale limit.

Usage:
    python -m scripts.attendance_maintenance --org <uuid> --admin <uuid>
    python -m scripts.attendance_maintenance --org <uuid> --admin <uuid> --date 2026-10-16
    python -m scripts.attendance_maintenance --org <uuid> --admin <uuid> --sweep-only
    python -m scripts.attendance_maintenance --org <uuid> --admin <uuid> --max-open-hours 16

Requires in .env (project root):
    DATABASE_URL
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import uuid
from datetime import date, timedelta
from pathlib import Path

from dotenv import load_dotenv

# ── Path setup ────────────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

# Load .env before shiftdesk.config reads the environment
env_path = PROJECT_ROOT / ".env"
if env_path.exists():
    load_dotenv(env_path)

from shiftdesk.attendance.collaborators import DatabaseHolidayCalendar  # noqa: E402
from shiftdesk.attendance.service import PunchStateMachine  # noqa: E402
from shiftdesk.common.timeutils import local_date, utc_now  # noqa: E402
from shiftdesk.config import settings  # noqa: E402
from shiftdesk.database import engine, session_scope  # noqa: E402
from shiftdesk.organizations.service import OrganizationService  # noqa: E402

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("attendance_maintenance")


async def run(
    organization_id: uuid.UUID,
    admin_id: uuid.UUID,
    *,
    on_date: date | None,
    max_open_hours: float | None,
    sweep: bool,
    close_stale: bool,
) -> tuple[int, int]:
    async with session_scope() as session:
        machine = PunchStateMachine(session, holiday_calendar=DatabaseHolidayCalendar(session))
        if on_date is None:
            org = await OrganizationService.get_settings(session, organization_id)
            on_date = local_date(utc_now(), org.timezone) - timedelta(days=1)

        closed = []
        if close_stale:
            closed = await machine.close_stale_sessions(
                organization_id, admin_id, max_open_hours=max_open_hours,
            )
        absent = []
        if sweep:
            absent = await machine.sweep_absences(organization_id, on_date)
    await engine.dispose()
    logger.info(
        "Org %s: %d stale session(s) closed, %d absence(s) recorded for %s",
        organization_id, len(closed), len(absent), on_date,
    )
    return len(closed), len(absent)


# ══════════════════════════════════════════════════════════════════════
# Main
# ══════════════════════════════════════════════════════════════════════

def main():
    parser = argparse.ArgumentParser(
        description="Attendance maintenance: absence sweep + stale-session close",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --org <uuid> --admin <uuid>                    # yesterday, both jobs
  %(prog)s --org <uuid> --admin <uuid> --date 2026-10-16  # specific date
  %(prog)s --org <uuid> --admin <uuid> --stale-only       # close sessions only
        """,
    )
    parser.add_argument("--org", dest="organization_id", type=uuid.UUID, required=True,
                        help="Organization id")
    parser.add_argument("--admin", dest="admin_id", type=uuid.UUID, required=True,
                        help="Admin recorded as the regularizer of auto-closed sessions")
    parser.add_argument("--date", dest="on_date", type=date.fromisoformat,
                        help="Date to sweep (YYYY-MM-DD, default: yesterday in org time)")
    parser.add_argument("--max-open-hours", type=float, default=None,
                        help=f"Stale limit in hours (default: {settings.STALE_SESSION_HOURS:g})")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--sweep-only", action="store_true", help="Skip the stale-session close")
    group.add_argument("--stale-only", action="store_true", help="Skip the absence sweep")
    args = parser.parse_args()

    asyncio.run(
        run(
            args.organization_id,
            args.admin_id,
            on_date=args.on_date,
            max_open_hours=args.max_open_hours,
            sweep=not args.stale_only,
            close_stale=not args.sweep_only,
        )
    )


if __name__ == "__main__":
    main()
