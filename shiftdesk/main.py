"""shiftdesk: FastAPI Application Factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from shiftdesk.attendance.router import (
    punch_router,
    regularizations_router,
    router as attendance_router,
)
from shiftdesk.common.exceptions import register_exception_handlers
from shiftdesk.common.rate_limit import limiter
from shiftdesk.config import settings
from shiftdesk.database import engine
from shiftdesk.events.router import router as events_router
from shiftdesk.monthly.router import router as monthly_router
from shiftdesk.organizations.router import router as organizations_router
from shiftdesk.shifts.router import assignments_router, router as shifts_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    logger.info("shiftdesk starting (environment=%s)", settings.ENVIRONMENT)
    yield
    await engine.dispose()
    logger.info("shiftdesk stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="shiftdesk",
        description="Attendance & shift engine: punches, geofencing, regularization, monthly payroll totals",
        version="1.0.0",
        docs_url="/api/docs" if settings.ENVIRONMENT != "production" else None,
        redoc_url="/api/redoc" if settings.ENVIRONMENT != "production" else None,
        lifespan=lifespan,
    )

    # Exception handlers (RFC 7807)
    register_exception_handlers(app)

    # Rate limiting (slowapi)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api/v1/health", tags=["system"])
    async def health_check():
        return {
            "status": "healthy",
            "version": "1.0.0",
            "environment": settings.ENVIRONMENT,
        }

    # Register routers
    app.include_router(punch_router, prefix="/api/v1/punch", tags=["punch"])
    app.include_router(shifts_router, prefix="/api/v1/shifts", tags=["shifts"])
    app.include_router(assignments_router, prefix="/api/v1/assignments", tags=["shift-assignments"])
    app.include_router(regularizations_router, prefix="/api/v1/regularizations", tags=["regularizations"])
    # Monthly before attendance so /attendance/monthly is never read as a record path
    app.include_router(monthly_router, prefix="/api/v1/attendance/monthly", tags=["monthly-attendance"])
    app.include_router(attendance_router, prefix="/api/v1/attendance", tags=["attendance"])
    app.include_router(organizations_router, prefix="/api/v1/organizations", tags=["organizations"])
    app.include_router(events_router, prefix="/api/v1/events", tags=["events"])

    return app


app = create_app()
