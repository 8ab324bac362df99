"""Attendance event schemas."""


import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel

from shiftdesk.common.pagination import PaginationMeta


class AttendanceEventResponse(BaseModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    user_id: Optional[uuid.UUID] = None
    event_type: str
    entity_type: str
    entity_id: uuid.UUID
    payload: Optional[dict[str, Any]] = None
    dispatched_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class AttendanceEventListResponse(BaseModel):
    data: list[AttendanceEventResponse]
    meta: PaginationMeta
