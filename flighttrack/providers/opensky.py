"""OpenSky Network adapter using the ``states/all`` REST endpoint."""

from __future__ import annotations

from typing import Any

from flighttrack.models.telemetry import TelemetrySample
from flighttrack.providers.base import (
    HttpProviderAdapter,
    _as_number,
    _m_to_feet,
    _ms_to_knots,
    _parse_timestamp,
    _position,
)


class OpenSkyAdapter(HttpProviderAdapter):
    """Resolve a callsign from OpenSky state vectors.

    State vectors are positional arrays; altitudes are metres and velocity is
    metres per second, so both are converted before normalizing.
    """

    def build_request(self, identifier: str):
        url = f"{self.descriptor.base_url.rstrip('/')}/states/all"
        return url, {"callsign": identifier}, {}

    def parse(self, payload: Any, identifier: str) -> TelemetrySample | None:
        if not isinstance(payload, dict):
            return None

        states = payload.get("states") or []
        if not isinstance(states, list):
            return None

        for entry in states:
            if not isinstance(entry, (list, tuple)) or len(entry) < 7:
                continue

            callsign = "".join(str(entry[1] or "").split()).upper()
            # the endpoint may ignore the filter and return every state vector
            if callsign and callsign != identifier:
                continue

            position = _position(entry[6], entry[5])
            if position is None:
                continue

            baro_altitude = entry[7] if len(entry) > 7 else None
            geo_altitude = entry[13] if len(entry) > 13 else None
            velocity = entry[9] if len(entry) > 9 else None
            true_track = entry[10] if len(entry) > 10 else None
            time_position = entry[3] if len(entry) > 3 and entry[3] is not None else None
            last_contact = entry[4] if len(entry) > 4 else None

            fields: dict[str, Any] = {
                "latitude": position[0],
                "longitude": position[1],
                "altitude_ft": _m_to_feet(
                    baro_altitude if baro_altitude is not None else geo_altitude
                ),
                "ground_speed_kt": max(0.0, _ms_to_knots(velocity)),
                "heading_deg": _as_number(true_track),
                "source": self.name,
            }
            captured_at = _parse_timestamp(
                time_position if time_position is not None else last_contact
            )
            if captured_at is not None:
                fields["captured_at"] = captured_at
            return TelemetrySample(**fields)

        return None


__all__ = ["OpenSkyAdapter"]
