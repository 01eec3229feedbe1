"""Flight route lookup by callsign against an adsbdb-style JSON API."""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from flighttrack.domain.errors import ProviderUnavailable
from flighttrack.models.enrichment import AirportInfo, FlightRoute
from flighttrack.providers.base import normalize_identifier

logger = logging.getLogger("flighttrack.providers.routes")


def _airport(raw: Any) -> Optional[AirportInfo]:
    if not isinstance(raw, dict):
        return None
    return AirportInfo(
        iata=raw.get("iata_code"),
        icao=raw.get("icao_code"),
        name=raw.get("name"),
        city=raw.get("municipality"),
        country=raw.get("country_name"),
        latitude=raw.get("latitude"),
        longitude=raw.get("longitude"),
    )


class RouteLookup:
    """Fetch the scheduled origin and destination for a callsign."""

    name = "routes"

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

    async def lookup(self, callsign: str) -> FlightRoute | None:
        callsign = normalize_identifier(callsign)
        if not callsign:
            return None

        url = f"{self.base_url}/callsign/{quote(callsign)}"
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self.transport
            ) as client:
                response = await client.get(url)
        except httpx.RequestError as exc:
            logger.warning("Route lookup failed for %s: %s", callsign, exc)
            raise ProviderUnavailable(self.name, exc) from exc

        if response.status_code == 404:
            logger.debug("No route known for %s", callsign)
            return None
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "Route lookup returned HTTP %s for %s", exc.response.status_code, callsign
            )
            raise ProviderUnavailable(self.name, f"HTTP {exc.response.status_code}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            logger.debug("Failed to parse route JSON for %s: %s", callsign, exc)
            return None

        body = payload.get("response") if isinstance(payload, dict) else None
        route = body.get("flightroute") if isinstance(body, dict) else None
        if not isinstance(route, dict):
            return None

        airline = route.get("airline") if isinstance(route.get("airline"), dict) else {}
        return FlightRoute(
            callsign=(route.get("callsign") or callsign).upper(),
            airline_name=airline.get("name"),
            airline_icao=airline.get("icao"),
            origin=_airport(route.get("origin")),
            destination=_airport(route.get("destination")),
        )


__all__ = ["RouteLookup"]
