"""Common module: shared utilities for shiftdesk."""

from shiftdesk.common.audit import AuditTrail, create_audit_entry, snapshot
from shiftdesk.common.constants import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    WEEKDAYS,
    AttendanceEventType,
    EnforcementMode,
    PunchState,
    PunchType,
    RegularizationStatus,
    SummarySource,
)
from shiftdesk.common.exceptions import (
    AppException,
    ConflictError,
    DuplicateRequest,
    GeofenceViolation,
    InvalidDuration,
    NoActivePunch,
    NotFoundException,
    ShiftNotAssigned,
    ValidationException,
    register_exception_handlers,
)
from shiftdesk.common.pagination import (
    PaginationMeta,
    PaginationParams,
    paginate,
)
from shiftdesk.common.timeutils import ensure_utc, to_local

__all__ = [
    # Audit
    "AuditTrail",
    "create_audit_entry",
    "snapshot",
    # Constants / Enums
    "AttendanceEventType",
    "EnforcementMode",
    "PunchState",
    "PunchType",
    "RegularizationStatus",
    "SummarySource",
    "WEEKDAYS",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    # Exceptions
    "AppException",
    "ConflictError",
    "DuplicateRequest",
    "GeofenceViolation",
    "InvalidDuration",
    "NoActivePunch",
    "NotFoundException",
    "ShiftNotAssigned",
    "ValidationException",
    "register_exception_handlers",
    # Pagination
    "PaginationMeta",
    "PaginationParams",
    "paginate",
    # Time
    "ensure_utc",
    "to_local",
]
