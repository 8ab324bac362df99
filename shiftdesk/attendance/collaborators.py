"""Outbound collaborators used by the punch flow: blob store, reverse
geocoder, holiday calendar.

Evidence upload and geocoding are best effort: a failure or timeout is
logged and replaced (placeholder reference, empty address), never raised.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import date, datetime
from typing import Optional, Protocol

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shiftdesk.config import settings
from shiftdesk.organizations.models import OrganizationHoliday

logger = logging.getLogger(__name__)


# ── Protocols ───────────────────────────────────────────────────────

class BlobStore(Protocol):
    async def upload(self, data: bytes, *, path: str, content_type: str) -> Optional[str]:
        """Store *data* and return its reference, or ``None`` if nothing was stored."""


class ReverseGeocoder(Protocol):
    async def lookup(self, latitude: float, longitude: float) -> Optional[str]:
        ...


class HolidayCalendar(Protocol):
    async def is_holiday(self, organization_id: uuid.UUID, on_date: date) -> bool:
        ...


# ── Default implementations ─────────────────────────────────────────

class HttpBlobStore:
    """PUTs objects to ``{base_url}/{path}`` with an optional bearer token."""

    def __init__(self, base_url: str, token: str = "", timeout: float = 10.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout

    async def upload(self, data: bytes, *, path: str, content_type: str) -> Optional[str]:
        headers = {"Content-Type": content_type}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        url = f"{self.base_url}/{path}"
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.put(url, content=data, headers=headers)
            resp.raise_for_status()
        return url


class NullBlobStore:
    """Used when no blob store is configured; stores nothing."""

    async def upload(self, data: bytes, *, path: str, content_type: str) -> Optional[str]:
        return None


class NominatimGeocoder:
    """Reverse geocoding against a Nominatim-compatible ``/reverse`` endpoint."""

    def __init__(self, url: str, user_agent: str, timeout: float = 10.0) -> None:
        self.url = url
        self.user_agent = user_agent
        self.timeout = timeout

    async def lookup(self, latitude: float, longitude: float) -> Optional[str]:
        params = {"lat": latitude, "lon": longitude, "format": "jsonv2"}
        async with httpx.AsyncClient(
            timeout=self.timeout, headers={"User-Agent": self.user_agent},
        ) as client:
            resp = await client.get(self.url, params=params)
            resp.raise_for_status()
            data = resp.json()
        return data.get("display_name") or None


class DatabaseHolidayCalendar:
    """Holidays from the ``organization_holidays`` table."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def is_holiday(self, organization_id: uuid.UUID, on_date: date) -> bool:
        result = await self.db.execute(
            select(OrganizationHoliday.id).where(
                OrganizationHoliday.organization_id == organization_id,
                OrganizationHoliday.date == on_date,
            )
        )
        return result.scalars().first() is not None


def default_blob_store() -> BlobStore:
    if settings.BLOB_STORE_URL:
        return HttpBlobStore(settings.BLOB_STORE_URL, settings.BLOB_STORE_TOKEN)
    return NullBlobStore()


def default_geocoder() -> Optional[ReverseGeocoder]:
    if settings.GEOCODER_URL:
        return NominatimGeocoder(settings.GEOCODER_URL, settings.GEOCODER_USER_AGENT)
    return None


# ── Best-effort wrappers ────────────────────────────────────────────

def placeholder_reference(punch_type: str, now: datetime) -> str:
    return f"placeholder-{punch_type}-{int(now.timestamp() * 1000)}"


async def upload_evidence(
    store: BlobStore,
    data: bytes,
    *,
    path: str,
    punch_type: str,
    now: datetime,
    timeout: float,
    content_type: str = "image/jpeg",
) -> str:
    """Upload a selfie; fall back to a placeholder reference on any failure."""
    try:
        reference = await asyncio.wait_for(
            store.upload(data, path=path, content_type=content_type), timeout,
        )
    except asyncio.TimeoutError:
        logger.warning("Selfie upload timed out after %.1fs (%s)", timeout, path)
        reference = None
    except Exception as exc:
        logger.warning("Selfie upload failed (%s): %s", path, exc)
        reference = None
    return reference or placeholder_reference(punch_type, now)


async def lookup_address(
    geocoder: Optional[ReverseGeocoder],
    latitude: Optional[float],
    longitude: Optional[float],
    *,
    timeout: float,
) -> Optional[str]:
    if geocoder is None or latitude is None or longitude is None:
        return None
    try:
        return await asyncio.wait_for(geocoder.lookup(latitude, longitude), timeout)
    except asyncio.TimeoutError:
        logger.warning("Reverse geocoding timed out after %.1fs", timeout)
    except Exception as exc:
        logger.warning("Reverse geocoding failed for (%s, %s): %s", latitude, longitude, exc)
    return None
