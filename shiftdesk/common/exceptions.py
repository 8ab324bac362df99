"""Custom exceptions and RFC 7807 Problem Detail error handlers."""

from __future__ import annotations

import uuid
from datetime import date
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

BASE_ERROR_URI = "https://shiftdesk.dev/errors"


# ── Exception hierarchy ─────────────────────────────────────────────

class AppException(Exception):
    """Base for all application exceptions → RFC 7807 JSON.

    ``context`` carries structured, machine-readable detail (distance,
    threshold, record id, ...) and is rendered as problem-detail extension
    members so the calling UI can build an actionable message.
    """

    def __init__(
        self,
        status_code: int,
        error_type: str,
        title: str,
        detail: str,
        errors: Optional[dict[str, Any]] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        self.status_code = status_code
        self.error_type = error_type
        self.title = title
        self.detail = detail
        self.errors = errors
        self.context = context or {}
        super().__init__(detail)


class NotFoundException(AppException):
    """404: entity not found."""

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(
            status_code=404,
            error_type="not-found",
            title=f"{entity_type} Not Found",
            detail=f"{entity_type} with id '{entity_id}' does not exist.",
        )


class ConflictError(AppException):
    """409: unique-constraint / duplicate."""

    def __init__(self, field: str, value: Any) -> None:
        super().__init__(
            status_code=409,
            error_type="conflict",
            title="Conflict",
            detail=f"An entry with {field}='{value}' already exists.",
            errors={field: [f"'{value}' is already in use."]},
        )


class ValidationException(AppException):
    """422: business-logic validation failures."""

    def __init__(self, errors: dict[str, list[str]]) -> None:
        super().__init__(
            status_code=422,
            error_type="validation-error",
            title="Validation Error",
            detail="One or more fields failed validation.",
            errors=errors,
        )


# ── Attendance taxonomy ─────────────────────────────────────────────

class GeofenceViolation(AppException):
    """403: strict-mode punch outside the organization geofence."""

    def __init__(
        self,
        distance_meters: float,
        threshold_meters: float,
        punch_type: str,
    ) -> None:
        super().__init__(
            status_code=403,
            error_type="geofence-violation",
            title="Outside Geofence",
            detail=(
                f"You are {distance_meters:.0f}m away from the organization location. "
                f"Punch is not allowed beyond {threshold_meters:.0f}m."
            ),
            context={
                "distance_meters": distance_meters,
                "threshold_meters": threshold_meters,
                "punch_type": punch_type,
            },
        )
        self.distance_meters = distance_meters
        self.threshold_meters = threshold_meters


class NoActivePunch(AppException):
    """409: punch-out without an open punch-in."""

    def __init__(self, user_id: uuid.UUID) -> None:
        super().__init__(
            status_code=409,
            error_type="no-active-punch",
            title="No Active Punch",
            detail="No active punch-in found. Please punch in first.",
            context={"user_id": str(user_id)},
        )


class InvalidDuration(AppException):
    """422: elapsed time outside the allowed shift duration."""

    def __init__(
        self,
        record_id: uuid.UUID,
        elapsed_hours: float,
        min_hours: Optional[float],
        max_hours: Optional[float],
    ) -> None:
        super().__init__(
            status_code=422,
            error_type="invalid-duration",
            title="Invalid Shift Duration",
            detail=(
                f"Elapsed time of {elapsed_hours:.2f}h is outside the allowed "
                f"range for this shift."
            ),
            context={
                "record_id": str(record_id),
                "elapsed_hours": round(elapsed_hours, 2),
                "min_hours": min_hours,
                "max_hours": max_hours,
            },
        )
        self.elapsed_hours = elapsed_hours


class ShiftNotAssigned(AppException):
    """404: no shift assignment covers the date.

    Non-fatal for punches: the state machine catches it and flags the record
    for admin review instead.
    """

    def __init__(self, user_id: uuid.UUID, on_date: date) -> None:
        super().__init__(
            status_code=404,
            error_type="shift-not-assigned",
            title="Shift Not Assigned",
            detail=f"No shift is assigned to user '{user_id}' on {on_date.isoformat()}.",
            context={"user_id": str(user_id), "on_date": on_date.isoformat()},
        )


class DuplicateRequest(AppException):
    """409: a regularization request is already pending for the record."""

    def __init__(self, record_id: uuid.UUID, pending_request_id: uuid.UUID) -> None:
        super().__init__(
            status_code=409,
            error_type="duplicate-request",
            title="Duplicate Regularization Request",
            detail="A regularization request is already pending for this attendance record.",
            context={
                "record_id": str(record_id),
                "pending_request_id": str(pending_request_id),
            },
        )


# ── RFC 7807 builder ────────────────────────────────────────────────

def _build_problem_detail(exc: AppException, request: Request) -> dict[str, Any]:
    body: dict[str, Any] = {
        "type": f"{BASE_ERROR_URI}/{exc.error_type}",
        "title": exc.title,
        "status": exc.status_code,
        "detail": exc.detail,
        "instance": str(request.url.path),
    }
    if exc.errors:
        body["errors"] = exc.errors
    for key, value in exc.context.items():
        body.setdefault(key, value)
    return body


# ── FastAPI handlers ────────────────────────────────────────────────

async def _handle_app_exception(
    request: Request,
    exc: AppException,
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_build_problem_detail(exc, request),
        media_type="application/problem+json",
    )


async def _handle_validation_error(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    field_errors: dict[str, list[str]] = {}
    for err in exc.errors():
        loc = err.get("loc", ())
        name = (
            ".".join(str(p) for p in loc[1:])
            if len(loc) > 1
            else str(loc[0]) if loc else "unknown"
        )
        field_errors.setdefault(name, []).append(err.get("msg", "Invalid value"))

    return JSONResponse(
        status_code=422,
        content={
            "type": f"{BASE_ERROR_URI}/validation-error",
            "title": "Validation Error",
            "status": 422,
            "detail": "Request validation failed.",
            "instance": str(request.url.path),
            "errors": field_errors,
        },
        media_type="application/problem+json",
    )


# ── Registration helper (called from main.py) ──────────────────────

def register_exception_handlers(app: FastAPI) -> None:
    """Attach all custom exception handlers to the FastAPI app."""
    app.add_exception_handler(AppException, _handle_app_exception)          # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _handle_validation_error)  # type: ignore[arg-type]
