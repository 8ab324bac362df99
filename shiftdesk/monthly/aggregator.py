"""Monthly aggregation: pure merge of stored records and an approved override.

Records are de-duplicated per (user, date) before counting. An override
replaces system numbers field by field: a field present in the payload wins
(even at 0), a missing one falls back to the system value.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from shiftdesk.common.constants import SummarySource
from shiftdesk.common.timeutils import ensure_utc
from shiftdesk.monthly.schemas import MonthlyAttendanceSummary, OverridePayload, SystemTotals

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# payload field → summary field
OVERRIDE_FIELD_MAP: dict[str, str] = {
    "present_days": "present_days",
    "lop_days": "lop_days",
    "paid_leaves": "paid_leaves",
    "holidays": "holidays",
    "weekly_offs": "weekly_offs",
    "late_occurrences": "late_days",
    "early_outs": "early_out_days",
}


def _preference(record: Any) -> tuple:
    updated = ensure_utc(record.updated_at) or _EPOCH
    return (
        record.punch_in_time is None,
        record.shift_id is None,
        -updated.timestamp(),
        str(record.id),
    )


def dedupe_records(records: Iterable[Any]) -> list[Any]:
    """One record per (user, date): punched in, then shifted, then newest, then lowest id."""
    best: dict[tuple, Any] = {}
    for record in records:
        key = (record.user_id, record.date)
        current = best.get(key)
        if current is None or _preference(record) < _preference(current):
            best[key] = record
    return sorted(best.values(), key=lambda r: (r.date, str(r.user_id)))


def system_totals(records: Iterable[Any]) -> SystemTotals:
    rows = dedupe_records(records)
    return SystemTotals(
        total_days=len(rows),
        present_days=sum(1 for r in rows if r.punch_in_time is not None),
        absent_days=sum(1 for r in rows if r.is_absent),
        half_day_count=sum(1 for r in rows if r.is_half_day),
        late_days=sum(1 for r in rows if r.is_late),
        early_out_days=sum(1 for r in rows if r.is_early_out),
        regularized_days=sum(1 for r in rows if r.is_regularized),
        holidays=sum(1 for r in rows if r.is_holiday),
        weekly_offs=sum(1 for r in rows if r.is_weekend),
        lop_days=sum(1 for r in rows if r.is_absent and not r.is_holiday and not r.is_weekend),
        total_effective_hours=sum(r.effective_hours or 0.0 for r in rows),
    )


def select_override(overrides: Iterable[Any]) -> Optional[Any]:
    """Latest ``approved_at``, falling back to ``created_at``."""
    def stamp(o: Any) -> datetime:
        return ensure_utc(o.approved_at) or ensure_utc(o.created_at) or _EPOCH

    candidates = list(overrides)
    if not candidates:
        return None
    return max(candidates, key=stamp)


def parse_payload(override: Any) -> Optional[OverridePayload]:
    try:
        return OverridePayload.model_validate(override.payload or {})
    except ValidationError as exc:
        logger.warning(
            "Ignoring malformed monthly override %s for user %s: %s",
            override.id, override.user_id, exc.errors(include_url=False),
        )
        return None


def merge(
    user_id: uuid.UUID,
    year: int,
    month: int,
    system: SystemTotals,
    override: Optional[Any] = None,
) -> MonthlyAttendanceSummary:
    values = system.model_dump()
    values.update(paid_leaves=0, overtime_hours=0.0)
    source = SummarySource.system
    override_id = None
    remarks = None

    payload = parse_payload(override) if override is not None else None
    if payload is not None:
        source = SummarySource.override
        override_id = override.id
        remarks = payload.remarks
        for payload_field, summary_field in OVERRIDE_FIELD_MAP.items():
            value = getattr(payload, payload_field)
            if value is not None:
                values[summary_field] = value
        if payload.overtime_hours is not None:
            values["overtime_hours"] = payload.overtime_hours
            values["total_effective_hours"] += payload.overtime_hours

    present = values["present_days"]
    values["average_hours"] = values["total_effective_hours"] / present if present else 0.0

    return MonthlyAttendanceSummary(
        user_id=user_id,
        year=year,
        month=month,
        source=source,
        override_id=override_id,
        remarks=remarks,
        **values,
    )
