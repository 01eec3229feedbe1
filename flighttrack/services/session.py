"""Live tracking of one flight: polling, backoff and dead-reckoned animation."""

from __future__ import annotations

import asyncio
from collections import deque
from datetime import datetime, timezone
import logging
import time
from typing import Awaitable, Callable
import uuid

from flighttrack.domain.errors import AllProvidersExhausted, RateLimited
from flighttrack.domain.status import ConnectionStatus
from flighttrack.models.telemetry import TelemetrySample
from flighttrack.services.extrapolation import PositionExtrapolator
from flighttrack.services.reconnect import BackoffPolicy, ConnectionStateMachine

logger = logging.getLogger("flighttrack.session")

Resolver = Callable[[str], Awaitable[TelemetrySample]]
PositionCallback = Callable[[TelemetrySample], None]
StatusCallback = Callable[[ConnectionStatus], None]


class TrackingSession:
    """Track one flight identifier until stopped.

    Two tasks run while the session is active. The poll loop resolves a real
    sample, anchors it and waits one poll interval, or backs off after a
    failure. The animation loop emits dead-reckoned positions on a fixed tick.
    ``stop`` cancels both, including any fetch in flight, and nothing is
    emitted after it returns.
    """

    def __init__(
        self,
        flight_identifier: str,
        resolver: Resolver,
        *,
        poll_interval_s: float = 30.0,
        tick_interval_s: float = 1.0,
        staleness_factor: float = 2.0,
        min_speed_kt: float = 40.0,
        history_size: int = 100,
        backoff: BackoffPolicy | None = None,
        clock: Callable[[], float] = time.time,
        session_id: str | None = None,
    ) -> None:
        self.session_id = session_id or uuid.uuid4().hex
        self.flight_identifier = flight_identifier
        self.poll_interval_s = poll_interval_s
        self.tick_interval_s = tick_interval_s
        self._resolver = resolver
        self._clock = clock
        self.extrapolator = PositionExtrapolator(
            poll_interval_s=poll_interval_s,
            staleness_factor=staleness_factor,
            min_speed_kt=min_speed_kt,
            clock=clock,
        )
        self.state_machine = ConnectionStateMachine(backoff)
        self.state_machine.add_listener(self._on_status_change)

        self._history: deque[TelemetrySample] = deque(maxlen=history_size)
        self._position_callbacks: list[PositionCallback] = []
        self._status_callbacks: list[StatusCallback] = []
        self._poll_task: asyncio.Task | None = None
        self._animation_task: asyncio.Task | None = None

        self.is_active = False
        self.current_position: TelemetrySample | None = None
        self.last_anchor: TelemetrySample | None = None
        self.last_update: datetime | None = None
        self.update_count = 0
        self.last_error: str | None = None

    @property
    def connection_status(self) -> ConnectionStatus:
        return self.state_machine.status

    @property
    def reconnect_attempts(self) -> int:
        return self.state_machine.consecutive_failures

    def history(self) -> list[TelemetrySample]:
        """Return the real samples received so far, oldest first."""

        return list(self._history)

    def clear_history(self) -> None:
        self._history.clear()

    def subscribe(self, callback: PositionCallback) -> Callable[[], None]:
        """Register a position observer; returns a handle that unregisters it."""

        self._position_callbacks.append(callback)
        return lambda: self._discard(self._position_callbacks, callback)

    def subscribe_status(self, callback: StatusCallback) -> Callable[[], None]:
        self._status_callbacks.append(callback)
        return lambda: self._discard(self._status_callbacks, callback)

    @staticmethod
    def _discard(callbacks: list, callback) -> None:
        if callback in callbacks:
            callbacks.remove(callback)

    def start(self) -> None:
        """Begin polling and animating; must be called from a running event loop."""

        if self.is_active:
            return

        self.state_machine.reset()
        self.is_active = True
        logger.info("Tracking session %s started for %s", self.session_id, self.flight_identifier)
        self._poll_task = asyncio.create_task(
            self._poll_loop(), name=f"flighttrack-poll-{self.session_id}"
        )
        self._animation_task = asyncio.create_task(
            self._animation_loop(), name=f"flighttrack-animate-{self.session_id}"
        )

    def stop(self) -> None:
        """Cancel timers and any in-flight fetch; safe to call more than once."""

        was_active = self.is_active
        self.is_active = False
        for task in (self._poll_task, self._animation_task):
            if task is not None and not task.done():
                task.cancel()
        self.state_machine.stop()
        if was_active:
            logger.info("Tracking session %s stopped", self.session_id)

    async def aclose(self) -> None:
        """Stop the session and wait for its tasks to unwind."""

        self.stop()
        tasks = [task for task in (self._poll_task, self._animation_task) if task is not None]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def poll_once(self) -> float:
        """Run one resolution and return the delay before the next one."""

        self.state_machine.begin_attempt()
        try:
            sample = await self._resolver(self.flight_identifier)
        except asyncio.CancelledError:
            logger.debug("Poll for session %s cancelled", self.session_id)
            raise
        except RateLimited as exc:
            delay = max(self._record_failure(exc), exc.retry_after)
            logger.info("Session %s throttled; retrying in %.1fs", self.session_id, delay)
            return delay
        except AllProvidersExhausted as exc:
            delay = self._record_failure(exc)
            logger.info(
                "No live data for %s (failure %s); retrying in %.1fs",
                self.flight_identifier,
                self.reconnect_attempts,
                delay,
            )
            return delay
        except Exception as exc:
            logger.exception("Unexpected error polling %s", self.flight_identifier)
            return self._record_failure(exc)

        if self.state_machine.stopped:
            return self.poll_interval_s

        self.last_error = None
        self.state_machine.record_success()
        self._accept(sample)
        return self.poll_interval_s

    def _record_failure(self, exc: Exception) -> float:
        self.last_error = str(exc)
        if self.state_machine.stopped:
            return self.state_machine.next_delay()
        return self.state_machine.record_failure()

    def _accept(self, sample: TelemetrySample) -> None:
        self.extrapolator.anchor(sample)
        self.last_anchor = sample
        self._history.append(sample)
        self.update_count += 1
        self.last_update = datetime.now(tz=timezone.utc)
        self._emit(sample)

    def _emit(self, sample: TelemetrySample) -> None:
        if self.state_machine.stopped:
            return
        self.current_position = sample
        for callback in list(self._position_callbacks):
            try:
                callback(sample)
            except Exception:  # pragma: no cover - observer bugs are logged, not raised
                logger.exception("Position callback failed for session %s", self.session_id)

    def _on_status_change(self, previous: ConnectionStatus, current: ConnectionStatus) -> None:
        for callback in list(self._status_callbacks):
            try:
                callback(current)
            except Exception:  # pragma: no cover - observer bugs are logged, not raised
                logger.exception("Status callback failed for session %s", self.session_id)

    async def _poll_loop(self) -> None:
        while self.is_active:
            delay = await self.poll_once()
            await asyncio.sleep(delay)

    async def _animation_loop(self) -> None:
        while self.is_active:
            await asyncio.sleep(self.tick_interval_s)
            if not self.is_active:
                break
            derived = self.extrapolator.tick(self._clock())
            if derived is not None:
                self._emit(derived)

    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "flight_identifier": self.flight_identifier,
            "is_active": self.is_active,
            "connection_status": self.connection_status.value,
            "reconnect_attempts": self.reconnect_attempts,
            "update_count": self.update_count,
            "last_update": self.last_update,
            "last_error": self.last_error,
            "current_position": self.current_position,
            "last_anchor": self.last_anchor,
        }


__all__ = ["TrackingSession"]
