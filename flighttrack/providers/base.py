"""Shared plumbing for telemetry provider adapters."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
import math
from typing import Any, Protocol

import httpx

from flighttrack.domain.errors import ProviderUnavailable
from flighttrack.models.telemetry import ProviderDescriptor, TelemetrySample

logger = logging.getLogger("flighttrack.providers")


def normalize_identifier(identifier: str) -> str:
    """Strip all whitespace and upper-case a callsign or flight number."""

    return "".join((identifier or "").split()).upper()


def _parse_timestamp(raw_ts: Any) -> datetime | None:
    if raw_ts is None:
        return None
    try:
        # providers report seconds since epoch
        return datetime.fromtimestamp(float(raw_ts), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        logger.debug("Failed to parse provider timestamp: %s", raw_ts)
        return None


def _as_number(value: Any) -> float:
    """Coerce a raw numeric field to ``float``; missing or junk values become 0."""

    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def _m_to_feet(value_m: Any) -> float:
    return _as_number(value_m) * 3.28084


def _ms_to_knots(value_ms: Any) -> float:
    return _as_number(value_ms) * 1.94384


def _position(lat: Any, lon: Any) -> tuple[float, float] | None:
    """Return a usable ``(lat, lon)`` pair or ``None`` when either is missing or out of range."""

    if lat is None or lon is None or isinstance(lat, bool) or isinstance(lon, bool):
        return None
    try:
        lat_f = float(lat)
        lon_f = float(lon)
    except (TypeError, ValueError):
        return None
    if not (-90.0 <= lat_f <= 90.0 and -180.0 <= lon_f <= 180.0):
        return None
    return lat_f, lon_f


class ProviderAdapter(Protocol):
    """Anything the orchestrator can ask for a live sample."""

    descriptor: ProviderDescriptor

    @property
    def name(self) -> str:
        ...

    async def fetch(self, identifier: str) -> TelemetrySample | None:
        ...


class HttpProviderAdapter:
    """Base adapter that performs one JSON GET per fetch.

    Subclasses implement :meth:`build_request` and :meth:`parse`. Transport
    failures, timeouts and non-2xx statuses other than 404 raise
    :class:`ProviderUnavailable`; a 404 or an unusable payload yields ``None``.
    """

    def __init__(
        self,
        descriptor: ProviderDescriptor,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.descriptor = descriptor
        self.transport = transport
        self.logger = logging.getLogger(f"flighttrack.providers.{descriptor.name}")

    @property
    def name(self) -> str:
        return self.descriptor.name

    def build_request(self, identifier: str) -> tuple[str, dict[str, Any], dict[str, str]]:
        """Return ``(url, params, headers)`` for ``identifier``."""

        raise NotImplementedError

    def parse(self, payload: Any, identifier: str) -> TelemetrySample | None:
        raise NotImplementedError

    async def fetch(self, identifier: str) -> TelemetrySample | None:
        identifier = normalize_identifier(identifier)
        if not identifier:
            return None

        url, params, headers = self.build_request(identifier)
        try:
            async with httpx.AsyncClient(
                timeout=self.descriptor.timeout_s, transport=self.transport
            ) as client:
                response = await client.get(url, params=params or None, headers=headers or None)
        except httpx.TimeoutException as exc:
            self.logger.warning("%s request timed out: %s", self.name, exc)
            raise ProviderUnavailable(self.name, exc) from exc
        except httpx.RequestError as exc:
            self.logger.warning("%s request failed: %s", self.name, exc)
            raise ProviderUnavailable(self.name, exc) from exc

        if response.status_code == 404:
            self.logger.debug("%s has no data for %s", self.name, identifier)
            return None
        if response.status_code == 429:
            self.logger.warning("%s rate limit encountered: %s", self.name, response.text)
            raise ProviderUnavailable(self.name, "HTTP 429")
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self.logger.warning(
                "%s returned HTTP %s: %s", self.name, exc.response.status_code, exc
            )
            raise ProviderUnavailable(self.name, f"HTTP {exc.response.status_code}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            self.logger.debug("Failed to parse %s JSON response: %s", self.name, exc)
            return None

        sample = self.parse(payload, identifier)
        if sample is None:
            self.logger.debug("%s returned no usable aircraft for %s", self.name, identifier)
        return sample


__all__ = [
    "HttpProviderAdapter",
    "ProviderAdapter",
    "normalize_identifier",
]
