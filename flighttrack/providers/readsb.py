"""Adapters for readsb-compatible aggregators (Airplanes.live, ADS-B Exchange)."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote, urlsplit

import httpx

from flighttrack.models.telemetry import ProviderDescriptor, TelemetrySample
from flighttrack.providers.base import (
    HttpProviderAdapter,
    _as_number,
    _parse_timestamp,
    _position,
)


def _altitude_ft(entry: dict[str, Any]) -> float:
    alt_baro = entry.get("alt_baro")
    # readsb reports aircraft on the ground as the string "ground"
    if isinstance(alt_baro, str) and alt_baro.strip().lower() == "ground":
        return 0.0
    if alt_baro is None or isinstance(alt_baro, str):
        return _as_number(entry.get("alt_geom"))
    return _as_number(alt_baro)


class ReadsbAdapter(HttpProviderAdapter):
    """Look up one callsign against a readsb ``/callsign/{callsign}`` endpoint.

    The payload carries an ``ac`` list of aircraft; the first entry with a
    numeric position is used. Altitude is already in feet and ground speed
    already in knots.
    """

    def build_request(self, identifier: str):
        url = f"{self.descriptor.base_url.rstrip('/')}/callsign/{quote(identifier)}"
        return url, {}, self.headers()

    def headers(self) -> dict[str, str]:
        return {}

    def parse(self, payload: Any, identifier: str) -> TelemetrySample | None:
        if not isinstance(payload, dict):
            return None

        aircraft = payload.get("ac") or []
        if not isinstance(aircraft, list):
            return None

        for entry in aircraft:
            if not isinstance(entry, dict):
                continue
            position = _position(entry.get("lat"), entry.get("lon"))
            if position is None:
                continue

            captured_at = None
            now_ts = payload.get("now")
            if now_ts is not None:
                # ``now`` is in milliseconds; ``seen_pos`` is the age of the position
                captured_at = _parse_timestamp(
                    _as_number(now_ts) / 1000.0 - _as_number(entry.get("seen_pos"))
                )

            fields: dict[str, Any] = {
                "latitude": position[0],
                "longitude": position[1],
                "altitude_ft": _altitude_ft(entry),
                "ground_speed_kt": max(0.0, _as_number(entry.get("gs"))),
                "heading_deg": _as_number(entry.get("track")),
                "source": self.name,
            }
            if captured_at is not None:
                fields["captured_at"] = captured_at
            return TelemetrySample(**fields)

        return None


class AirplanesLiveAdapter(ReadsbAdapter):
    """Airplanes.live public API; no credentials required."""


class ADSBExchangeAdapter(ReadsbAdapter):
    """ADS-B Exchange through RapidAPI, authenticated with the descriptor's API key."""

    def __init__(
        self,
        descriptor: ProviderDescriptor,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(descriptor, transport=transport)
        self.rapidapi_host = urlsplit(descriptor.base_url).netloc

    def headers(self) -> dict[str, str]:
        return {
            "X-RapidAPI-Key": self.descriptor.api_key or "",
            "X-RapidAPI-Host": self.rapidapi_host,
        }


__all__ = ["ADSBExchangeAdapter", "AirplanesLiveAdapter", "ReadsbAdapter"]
