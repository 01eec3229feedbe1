"""Cached route and photo enrichment for live flights."""

from __future__ import annotations

import logging

from flighttrack.domain.errors import CacheMiss, ProviderUnavailable
from flighttrack.models.enrichment import AircraftPhoto, FlightRoute
from flighttrack.providers.base import normalize_identifier
from flighttrack.providers.photos import PhotoLookup
from flighttrack.providers.routes import RouteLookup
from flighttrack.services.cache import EnrichmentCache
from flighttrack.services.rate_limit import RequestDeduplicator

logger = logging.getLogger("flighttrack.enrichment")


class EnrichmentService:
    """Look up routes and photos through the persisted cache.

    Routes are cached only when found, so an unknown callsign is retried on
    the next request. Photos are cached either way because most airframes
    have none and the lookup is slow. Lookup failures are logged and yield
    ``None`` without being cached.
    """

    def __init__(
        self,
        cache: EnrichmentCache,
        *,
        routes: RouteLookup,
        photos: PhotoLookup,
        route_ttl_s: float = 30 * 60,
        photo_ttl_s: float = 24 * 60 * 60,
        deduplicator: RequestDeduplicator | None = None,
    ) -> None:
        self.cache = cache
        self.routes = routes
        self.photos = photos
        self.route_ttl_s = route_ttl_s
        self.photo_ttl_s = photo_ttl_s
        self.deduplicator = deduplicator or RequestDeduplicator()

    async def get_route(self, callsign: str) -> FlightRoute | None:
        callsign = normalize_identifier(callsign)
        if not callsign:
            return None

        key = f"route:{callsign}"
        try:
            cached = self.cache.get(key)
        except CacheMiss:
            return await self.deduplicator.run(key, lambda: self._fetch_route(key, callsign))
        return FlightRoute.model_validate(cached) if cached is not None else None

    async def _fetch_route(self, key: str, callsign: str) -> FlightRoute | None:
        try:
            route = await self.routes.lookup(callsign)
        except ProviderUnavailable as exc:
            logger.warning("Route enrichment unavailable for %s: %s", callsign, exc.cause)
            return None

        if route is not None:
            await self.cache.put(key, route.model_dump(mode="json"), ttl_s=self.route_ttl_s)
        return route

    async def get_photo(self, icao24: str) -> AircraftPhoto | None:
        icao24 = (icao24 or "").strip().lower()
        if not icao24:
            return None

        key = f"photo:{icao24}"
        try:
            cached = self.cache.get(key)
        except CacheMiss:
            return await self.deduplicator.run(key, lambda: self._fetch_photo(key, icao24))
        return AircraftPhoto.model_validate(cached) if cached is not None else None

    async def _fetch_photo(self, key: str, icao24: str) -> AircraftPhoto | None:
        try:
            photo = await self.photos.lookup(icao24)
        except ProviderUnavailable as exc:
            logger.warning("Photo enrichment unavailable for %s: %s", icao24, exc.cause)
            return None

        payload = photo.model_dump(mode="json") if photo is not None else None
        await self.cache.put(key, payload, ttl_s=self.photo_ttl_s)
        return photo


__all__ = ["EnrichmentService"]
