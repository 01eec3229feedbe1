"""Sliding-window rate limiting and in-flight request deduplication."""

from __future__ import annotations

import asyncio
from collections import OrderedDict
from dataclasses import dataclass
import logging
import time
from typing import Awaitable, Callable, Generic, Hashable, TypeVar

from flighttrack.domain.errors import RateLimited

logger = logging.getLogger("flighttrack.rate_limit")

T = TypeVar("T")


@dataclass(frozen=True)
class RateDecision:
    allowed: bool
    retry_after: float = 0.0


@dataclass
class _Window:
    started_at: float
    count: int
    last_request_at: float


class SlidingWindowRateLimiter:
    """Per-key request budget with a minimum spacing between requests.

    A key may make at most ``max_per_window`` requests inside a window of
    ``window_s`` seconds, and consecutive requests must be at least
    ``min_interval_s`` apart. The window restarts with the first request made
    after it has elapsed. Denied requests do not consume budget. Elapsed
    windows are evicted as new requests arrive, so only keys seen within the
    last window are held.
    """

    def __init__(
        self,
        *,
        max_per_window: int,
        window_s: float,
        min_interval_s: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_per_window < 1:
            raise ValueError("max_per_window must be at least 1")
        self.max_per_window = max_per_window
        self.window_s = window_s
        self.min_interval_s = min_interval_s
        self._clock = clock
        # ordered by window start, oldest first
        self._windows: OrderedDict[Hashable, _Window] = OrderedDict()

    def try_acquire(self, key: Hashable) -> RateDecision:
        now = self._clock()
        self._evict_elapsed(now)
        window = self._windows.get(key)

        if window is None:
            self._windows[key] = _Window(started_at=now, count=1, last_request_at=now)
            return RateDecision(allowed=True)

        since_last = now - window.last_request_at
        if window.count < self.max_per_window and since_last >= self.min_interval_s:
            window.count += 1
            window.last_request_at = now
            return RateDecision(allowed=True)

        interval_remaining = max(0.0, self.min_interval_s - since_last)
        window_remaining = 0.0
        if window.count >= self.max_per_window:
            window_remaining = max(0.0, window.started_at + self.window_s - now)
        retry_after = max(interval_remaining, window_remaining)
        logger.debug("Rate limit hit for %s; retry in %.2fs", key, retry_after)
        return RateDecision(allowed=False, retry_after=retry_after)

    def acquire(self, key: Hashable) -> None:
        """Consume one request for ``key`` or raise :class:`RateLimited`."""

        decision = self.try_acquire(key)
        if not decision.allowed:
            raise RateLimited(decision.retry_after, key=str(key))

    def _evict_elapsed(self, now: float) -> int:
        removed = 0
        while self._windows:
            window = next(iter(self._windows.values()))
            if now - window.started_at < self.window_s:
                break
            self._windows.popitem(last=False)
            removed += 1
        return removed

    def prune(self) -> int:
        """Drop windows that have fully elapsed; returns the number removed."""

        return self._evict_elapsed(self._clock())

    def __len__(self) -> int:
        return len(self._windows)


class RequestDeduplicator(Generic[T]):
    """Share one in-flight request among concurrent callers with the same key.

    The first caller for a key starts the work; later callers await the same
    task. A caller being cancelled only detaches that caller. The shared task
    is cancelled once every waiter has gone away, and the key is released as
    soon as the task settles, whether it succeeded or failed.
    """

    def __init__(self) -> None:
        self._inflight: dict[Hashable, asyncio.Task] = {}
        self._waiters: dict[Hashable, int] = {}

    def inflight(self, key: Hashable) -> bool:
        return key in self._inflight

    def __len__(self) -> int:
        return len(self._inflight)

    def _release(self, key: Hashable, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
            self._waiters.pop(key, None)

    async def run(self, key: Hashable, factory: Callable[[], Awaitable[T]]) -> T:
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._inflight[key] = task
            self._waiters[key] = 0
            task.add_done_callback(lambda done, key=key: self._release(key, done))
        else:
            logger.debug("Joining in-flight request for %s", key)

        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.done() and self._inflight.get(key) is task:
                remaining = self._waiters.get(key, 1) - 1
                self._waiters[key] = remaining
                if remaining <= 0:
                    logger.debug("Last waiter for %s left; cancelling request", key)
                    task.cancel()
            raise
        finally:
            # done callbacks run on the next loop iteration; release eagerly
            if task.done() and self._inflight.get(key) is task:
                self._release(key, task)


__all__ = ["RateDecision", "RequestDeduplicator", "SlidingWindowRateLimiter"]
