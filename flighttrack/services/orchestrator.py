"""Health-ranked provider fallback for resolving one live telemetry sample."""

from __future__ import annotations

import asyncio
import logging
from typing import Mapping

from flighttrack.domain.errors import AllProvidersExhausted, ProviderUnavailable, RateLimited
from flighttrack.models.telemetry import TelemetrySample
from flighttrack.providers.base import ProviderAdapter, normalize_identifier
from flighttrack.services.health import ProviderHealthRegistry
from flighttrack.services.rate_limit import RequestDeduplicator, SlidingWindowRateLimiter

logger = logging.getLogger("flighttrack.orchestrator")


class FallbackOrchestrator:
    """Try providers one at a time, best first, until one returns a sample.

    The first sample wins and no further provider is queried. ``None`` and
    :class:`ProviderUnavailable` count against the provider and move on to the
    next one. Concurrent resolutions of the same identifier share a single
    pass through the providers.
    """

    def __init__(
        self,
        adapters: Mapping[str, ProviderAdapter],
        registry: ProviderHealthRegistry,
        *,
        provider_limiter: SlidingWindowRateLimiter | None = None,
        caller_limiter: SlidingWindowRateLimiter | None = None,
        deduplicator: RequestDeduplicator | None = None,
    ) -> None:
        self.adapters = dict(adapters)
        self.registry = registry
        self.provider_limiter = provider_limiter
        self.caller_limiter = caller_limiter
        self.deduplicator = deduplicator or RequestDeduplicator()

    async def resolve(self, identifier: str, *, caller_key: str | None = None) -> TelemetrySample:
        """Return a live sample for ``identifier``.

        Raises :class:`RateLimited` when ``caller_key`` is over its quota or
        every provider is throttled, and :class:`AllProvidersExhausted` when
        no provider produced data.
        """

        if caller_key is not None and self.caller_limiter is not None:
            self.caller_limiter.acquire(caller_key)

        key = normalize_identifier(identifier)
        if not key:
            raise AllProvidersExhausted(identifier)

        return await self.deduplicator.run(key, lambda: self._resolve_once(key))

    async def _resolve_once(self, identifier: str) -> TelemetrySample:
        attempts: list[str] = []
        throttled: list[float] = []

        for descriptor in self.registry.ranked_order():
            adapter = self.adapters.get(descriptor.name)
            if adapter is None:
                continue

            if self.provider_limiter is not None:
                decision = self.provider_limiter.try_acquire(f"{descriptor.name}:{identifier}")
                if not decision.allowed:
                    logger.debug(
                        "Skipping %s for %s; throttled for %.1fs",
                        descriptor.name,
                        identifier,
                        decision.retry_after,
                    )
                    throttled.append(decision.retry_after)
                    continue

            attempts.append(descriptor.name)
            try:
                sample = await asyncio.wait_for(
                    adapter.fetch(identifier), timeout=descriptor.timeout_s
                )
            except asyncio.TimeoutError:
                logger.warning("%s timed out after %.1fs", descriptor.name, descriptor.timeout_s)
                self.registry.record_outcome(descriptor.name, False)
                continue
            except ProviderUnavailable as exc:
                logger.warning("Provider %s unavailable: %s", descriptor.name, exc.cause)
                self.registry.record_outcome(descriptor.name, False)
                continue

            if sample is None:
                logger.debug("%s had no data for %s", descriptor.name, identifier)
                self.registry.record_outcome(descriptor.name, False)
                continue

            self.registry.record_outcome(descriptor.name, True)
            logger.debug("Resolved %s via %s", identifier, descriptor.name)
            return sample

        if not attempts and throttled:
            raise RateLimited(min(throttled), key=identifier)

        logger.info("All providers exhausted for %s (tried %s)", identifier, attempts)
        raise AllProvidersExhausted(identifier, attempts)


__all__ = ["FallbackOrchestrator"]
