"""Attendance event outbox: emit, list pending, acknowledge.

The notification dispatcher polls pending events and acknowledges them;
message content and channels are decided there.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shiftdesk.common.constants import AttendanceEventType
from shiftdesk.common.exceptions import NotFoundException
from shiftdesk.common.pagination import PaginationParams, paginate
from shiftdesk.events.models import AttendanceEvent
from shiftdesk.events.schemas import AttendanceEventListResponse, AttendanceEventResponse

logger = logging.getLogger(__name__)


class EventService:
    """Async attendance event operations."""

    @staticmethod
    async def emit(
        db: AsyncSession,
        *,
        organization_id: uuid.UUID,
        event_type: AttendanceEventType,
        entity_type: str,
        entity_id: uuid.UUID,
        user_id: Optional[uuid.UUID] = None,
        payload: Optional[dict[str, Any]] = None,
    ) -> AttendanceEvent:
        """Queue an event in the current transaction."""
        event = AttendanceEvent(
            organization_id=organization_id,
            user_id=user_id,
            event_type=event_type.value,
            entity_type=entity_type,
            entity_id=entity_id,
            payload=payload,
        )
        db.add(event)
        await db.flush()
        logger.debug("Event %s queued for %s %s", event_type.value, entity_type, entity_id)
        return event

    @staticmethod
    async def list_events(
        db: AsyncSession,
        organization_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        pending_only: bool = True,
        event_type: Optional[AttendanceEventType] = None,
    ) -> AttendanceEventListResponse:
        """Oldest first, so the dispatcher preserves emission order."""
        query = (
            select(AttendanceEvent)
            .where(AttendanceEvent.organization_id == organization_id)
            .order_by(AttendanceEvent.created_at, AttendanceEvent.id)
        )
        if pending_only:
            query = query.where(AttendanceEvent.dispatched_at.is_(None))
        if event_type is not None:
            query = query.where(AttendanceEvent.event_type == event_type.value)

        rows, meta = await paginate(db, query, pagination, model=AttendanceEvent)
        return AttendanceEventListResponse(
            data=[AttendanceEventResponse.model_validate(e) for e in rows],
            meta=meta,
        )

    @staticmethod
    async def acknowledge(db: AsyncSession, event_id: uuid.UUID) -> AttendanceEvent:
        """Mark an event dispatched. Acknowledging twice keeps the first timestamp."""
        event = await db.get(AttendanceEvent, event_id)
        if event is None:
            raise NotFoundException("AttendanceEvent", event_id)
        if event.dispatched_at is None:
            event.dispatched_at = datetime.now(timezone.utc)
            await db.flush()
        return event
