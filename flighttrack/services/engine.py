"""Composition root wiring providers, health, limits, cache and sessions."""

from __future__ import annotations

import logging
import time
from typing import Callable, Mapping

import httpx

from flighttrack.config import Settings, load_provider_descriptors
from flighttrack.models.telemetry import TelemetrySample
from flighttrack.providers.base import ProviderAdapter
from flighttrack.providers.factory import build_adapters
from flighttrack.providers.photos import PhotoLookup
from flighttrack.providers.routes import RouteLookup
from flighttrack.services.cache import CacheStore, EnrichmentCache, build_cache_store
from flighttrack.services.enrichment import EnrichmentService
from flighttrack.services.health import ProviderHealthRegistry
from flighttrack.services.orchestrator import FallbackOrchestrator
from flighttrack.services.rate_limit import RequestDeduplicator, SlidingWindowRateLimiter
from flighttrack.services.reconnect import BackoffPolicy
from flighttrack.services.session import TrackingSession

logger = logging.getLogger("flighttrack.engine")


class TrackingEngine:
    """Own every piece of shared state for one process.

    Health, rate limits, the dedup map and the cache live here rather than in
    module globals, so a fresh engine means fresh state.
    """

    def __init__(
        self,
        settings: Settings,
        adapters: Mapping[str, ProviderAdapter],
        registry: ProviderHealthRegistry,
        enrichment: EnrichmentService,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings
        self.registry = registry
        self.enrichment = enrichment
        self._clock = clock
        self.caller_limiter = SlidingWindowRateLimiter(
            max_per_window=settings.caller_rate_max,
            window_s=settings.caller_rate_window,
            min_interval_s=settings.caller_min_interval,
            clock=clock,
        )
        self.provider_limiter = SlidingWindowRateLimiter(
            max_per_window=settings.provider_rate_max,
            window_s=settings.provider_rate_window,
            min_interval_s=settings.provider_min_interval,
            clock=clock,
        )
        self.orchestrator = FallbackOrchestrator(
            adapters,
            registry,
            provider_limiter=self.provider_limiter,
            caller_limiter=self.caller_limiter,
            deduplicator=RequestDeduplicator(),
        )
        self.sessions: dict[str, TrackingSession] = {}
        # open stream connections per session id
        self._streams: dict[str, int] = {}

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        cache_store: CacheStore | None = None,
        clock: Callable[[], float] = time.time,
    ) -> "TrackingEngine":
        descriptors = load_provider_descriptors(settings)
        adapters = build_adapters(descriptors, transport=transport)
        registry = ProviderHealthRegistry(
            descriptors, tie_break_threshold=settings.health_tie_break, clock=clock
        )

        store = cache_store or build_cache_store(
            settings.cache_backend, path=settings.cache_path
        )
        cache = EnrichmentCache(store, default_ttl_s=settings.route_cache_ttl, clock=clock)
        enrichment = EnrichmentService(
            cache,
            routes=RouteLookup(
                base_url=settings.route_lookup_base_url,
                timeout=settings.enrichment_timeout,
                transport=transport,
            ),
            photos=PhotoLookup(
                base_url=settings.photo_lookup_base_url,
                timeout=settings.enrichment_timeout,
                transport=transport,
            ),
            route_ttl_s=settings.route_cache_ttl,
            photo_ttl_s=settings.photo_cache_ttl,
        )
        logger.info(
            "Tracking engine ready with providers %s", [d.name for d in descriptors]
        )
        return cls(settings, adapters, registry, enrichment, clock=clock)

    async def resolve(self, identifier: str, *, caller_key: str | None = None) -> TelemetrySample:
        return await self.orchestrator.resolve(identifier, caller_key=caller_key)

    def start_session(
        self, flight_identifier: str, *, poll_interval_s: float | None = None
    ) -> TrackingSession:
        """Create and start a tracking session; requires a running event loop."""

        session = TrackingSession(
            flight_identifier,
            self.orchestrator.resolve,
            poll_interval_s=poll_interval_s or self.settings.poll_interval,
            tick_interval_s=self.settings.tick_interval,
            staleness_factor=self.settings.staleness_factor,
            min_speed_kt=self.settings.min_extrapolation_speed_kt,
            history_size=self.settings.history_size,
            backoff=BackoffPolicy(self.settings.backoff_base, self.settings.backoff_max),
            clock=self._clock,
        )
        self.sessions[session.session_id] = session
        session.start()
        return session

    def get_session(self, session_id: str) -> TrackingSession | None:
        return self.sessions.get(session_id)

    async def stop_session(self, session_id: str) -> bool:
        self._streams.pop(session_id, None)
        session = self.sessions.pop(session_id, None)
        if session is None:
            return False
        await session.aclose()
        return True

    def attach_stream(self, session_id: str) -> None:
        self._streams[session_id] = self._streams.get(session_id, 0) + 1

    async def detach_stream(self, session_id: str) -> None:
        """Drop one stream; the session is stopped once its last stream has gone."""

        remaining = self._streams.get(session_id, 0) - 1
        if remaining > 0:
            self._streams[session_id] = remaining
            return
        self._streams.pop(session_id, None)
        if session_id in self.sessions:
            logger.info("Last stream for session %s closed; stopping it", session_id)
            await self.stop_session(session_id)

    async def aclose(self) -> None:
        """Stop every session; called on application shutdown."""

        for session_id in list(self.sessions):
            await self.stop_session(session_id)


__all__ = ["TrackingEngine"]
