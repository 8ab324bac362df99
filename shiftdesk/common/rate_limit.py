"""Rate limiting configuration using slowapi.

Module-level Limiter imported by routers (the punch endpoints apply
``PUNCH_RATE_LIMIT``) and wired into the FastAPI app in main.py.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from shiftdesk.config import settings

# Per client IP. Punch routes tighten this with @limiter.limit(settings.PUNCH_RATE_LIMIT).
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.DEFAULT_RATE_LIMIT],
    enabled=settings.RATE_LIMIT_ENABLED,
)
