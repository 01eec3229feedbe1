"""Provider health tracking and fetch ordering."""

from __future__ import annotations

from dataclasses import dataclass
from functools import cmp_to_key
import logging
import time
from typing import Callable, Iterable

from flighttrack.models.telemetry import ProviderDescriptor

logger = logging.getLogger("flighttrack.health")

UNTRIED_RATIO = 0.5


@dataclass
class ProviderHealth:
    """Success and failure counters for one provider."""

    name: str
    success_count: int = 0
    failure_count: int = 0
    last_used_at: float | None = None

    @property
    def attempts(self) -> int:
        return self.success_count + self.failure_count

    @property
    def success_ratio(self) -> float:
        if self.attempts == 0:
            return UNTRIED_RATIO
        return self.success_count / self.attempts

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "success_ratio": round(self.success_ratio, 4),
            "last_used_at": self.last_used_at,
        }


class ProviderHealthRegistry:
    """Track provider outcomes and rank providers for the next resolution.

    Providers are ordered by success ratio. When two ratios are within
    ``tie_break_threshold`` of each other the one used least recently wins,
    which spreads load and gives recovering providers a chance to be
    retried. Static descriptor priority settles any remaining tie.
    """

    def __init__(
        self,
        descriptors: Iterable[ProviderDescriptor],
        *,
        tie_break_threshold: float = 0.1,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.tie_break_threshold = tie_break_threshold
        self._clock = clock
        self._descriptors: dict[str, ProviderDescriptor] = {}
        self._health: dict[str, ProviderHealth] = {}
        for descriptor in descriptors:
            self._descriptors[descriptor.name] = descriptor
            self._health[descriptor.name] = ProviderHealth(name=descriptor.name)

    def get(self, name: str) -> ProviderHealth:
        return self._health[name]

    def record_outcome(self, name: str, success: bool) -> None:
        """Increment the matching counter and stamp the provider as just used."""

        health = self._health[name]
        if success:
            health.success_count += 1
        else:
            health.failure_count += 1
        health.last_used_at = self._clock()
        logger.debug(
            "Provider %s outcome=%s ratio=%.2f (%s/%s)",
            name,
            "success" if success else "failure",
            health.success_ratio,
            health.success_count,
            health.attempts,
        )

    def _compare(self, a: ProviderHealth, b: ProviderHealth) -> int:
        ratio_a = a.success_ratio
        ratio_b = b.success_ratio
        if ratio_a != ratio_b and abs(ratio_a - ratio_b) >= self.tie_break_threshold:
            return -1 if ratio_a > ratio_b else 1

        # never-used providers count as the least recently used
        used_a = a.last_used_at if a.last_used_at is not None else float("-inf")
        used_b = b.last_used_at if b.last_used_at is not None else float("-inf")
        if used_a != used_b:
            return -1 if used_a < used_b else 1

        return self._descriptors[a.name].priority - self._descriptors[b.name].priority

    def ranked_order(self) -> list[ProviderDescriptor]:
        """Return provider descriptors in the order they should be tried."""

        ranked = sorted(self._health.values(), key=cmp_to_key(self._compare))
        return [self._descriptors[health.name] for health in ranked]

    def snapshot(self) -> list[dict]:
        """Return ranked health records for status reporting."""

        return [self._health[descriptor.name].to_dict() for descriptor in self.ranked_order()]


__all__ = ["ProviderHealth", "ProviderHealthRegistry", "UNTRIED_RATIO"]
