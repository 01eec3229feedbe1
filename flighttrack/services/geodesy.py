"""Spherical great-circle helpers: distance, bearing and forward projection.

All functions take and return plain floats in decimal degrees and kilometres.
Coordinates outside ``[-90, 90]`` latitude or ``[-180, 180]`` longitude are
rejected with :class:`InvalidCoordinate`.
"""

from __future__ import annotations

import math

from flighttrack.domain.errors import InvalidCoordinate

EARTH_RADIUS_KM = 6371.0
KNOTS_TO_KMH = 1.852

Coordinate = tuple[float, float]


def _validate(point: Coordinate) -> Coordinate:
    lat, lon = point
    if (
        lat is None
        or lon is None
        or math.isnan(lat)
        or math.isnan(lon)
        or not -90.0 <= lat <= 90.0
        or not -180.0 <= lon <= 180.0
    ):
        raise InvalidCoordinate(lat, lon)
    return float(lat), float(lon)


def _normalize_longitude(lon: float) -> float:
    wrapped = (lon + 540.0) % 360.0 - 180.0
    # keep the eastern antimeridian as +180 rather than folding it to -180
    if wrapped == -180.0 and lon > 0:
        return 180.0
    return wrapped


def distance_km(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two points using the haversine formula."""

    lat1, lon1 = _validate(a)
    lat2, lon2 = _validate(b)

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    h = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    # clamp to guard asin/atan2 against rounding just above 1.0
    h = min(1.0, max(0.0, h))
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def bearing_deg(a: Coordinate, b: Coordinate) -> float:
    """Initial great-circle bearing from ``a`` to ``b`` in ``[0, 360)``."""

    lat1, lon1 = _validate(a)
    lat2, lon2 = _validate(b)

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_lambda = math.radians(lon2 - lon1)

    y = math.sin(d_lambda) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(d_lambda)
    bearing = math.degrees(math.atan2(y, x)) % 360.0
    return 0.0 if bearing >= 360.0 else bearing


def destination_point(origin: Coordinate, bearing: float, distance: float) -> Coordinate:
    """Project ``distance`` km from ``origin`` along the initial ``bearing`` in degrees."""

    lat1, lon1 = _validate(origin)

    delta = distance / EARTH_RADIUS_KM
    theta = math.radians(bearing)
    phi1 = math.radians(lat1)
    lambda1 = math.radians(lon1)

    sin_phi2 = math.sin(phi1) * math.cos(delta) + math.cos(phi1) * math.sin(delta) * math.cos(theta)
    phi2 = math.asin(min(1.0, max(-1.0, sin_phi2)))
    lambda2 = lambda1 + math.atan2(
        math.sin(theta) * math.sin(delta) * math.cos(phi1),
        math.cos(delta) - math.sin(phi1) * math.sin(phi2),
    )

    return math.degrees(phi2), _normalize_longitude(math.degrees(lambda2))


def knots_to_km_per_second(speed_kt: float) -> float:
    return speed_kt * KNOTS_TO_KMH / 3600.0


__all__ = [
    "EARTH_RADIUS_KM",
    "bearing_deg",
    "destination_point",
    "distance_km",
    "knots_to_km_per_second",
]
