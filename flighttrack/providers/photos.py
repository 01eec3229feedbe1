"""Aircraft photo lookup by ICAO24 hex address (planespotters public API)."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from flighttrack.domain.errors import ProviderUnavailable
from flighttrack.models.enrichment import AircraftPhoto

logger = logging.getLogger("flighttrack.providers.photos")


def _src(raw: Any) -> str | None:
    if isinstance(raw, dict):
        return raw.get("src")
    return None


class PhotoLookup:
    """Find a photo of an airframe; ``None`` means no photo is published."""

    name = "photos"

    def __init__(
        self,
        *,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def lookup(self, icao24: str) -> AircraftPhoto | None:
        icao24 = (icao24 or "").strip().lower()
        if not icao24:
            return None

        url = f"{self.base_url}/hex/{quote(icao24)}"
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self.transport
            ) as client:
                response = await client.get(url)
        except httpx.RequestError as exc:
            logger.warning("Photo lookup failed for %s: %s", icao24, exc)
            raise ProviderUnavailable(self.name, exc) from exc

        if response.status_code == 404:
            return None
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "Photo lookup returned HTTP %s for %s", exc.response.status_code, icao24
            )
            raise ProviderUnavailable(self.name, f"HTTP {exc.response.status_code}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            logger.debug("Failed to parse photo JSON for %s: %s", icao24, exc)
            return None

        photos = payload.get("photos") if isinstance(payload, dict) else None
        if not photos or not isinstance(photos, list) or not isinstance(photos[0], dict):
            return None

        first = photos[0]
        image_url = _src(first.get("thumbnail_large")) or _src(first.get("thumbnail"))
        if not image_url:
            return None

        return AircraftPhoto(
            icao24=icao24,
            image_url=image_url,
            thumbnail_url=_src(first.get("thumbnail")),
            link=first.get("link"),
            photographer=first.get("photographer"),
        )


__all__ = ["PhotoLookup"]
