"""Connection status state machine with exponential backoff."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Callable

from flighttrack.domain.errors import InvalidTransition
from flighttrack.domain.status import ConnectionStatus

logger = logging.getLogger("flighttrack.reconnect")

StatusListener = Callable[[ConnectionStatus, ConnectionStatus], None]

_ALLOWED: dict[ConnectionStatus, frozenset[ConnectionStatus]] = {
    ConnectionStatus.DISCONNECTED: frozenset({ConnectionStatus.CONNECTING}),
    ConnectionStatus.CONNECTING: frozenset(
        {ConnectionStatus.CONNECTED, ConnectionStatus.ERROR, ConnectionStatus.DISCONNECTED}
    ),
    ConnectionStatus.CONNECTED: frozenset(
        {ConnectionStatus.CONNECTED, ConnectionStatus.ERROR, ConnectionStatus.DISCONNECTED}
    ),
    ConnectionStatus.ERROR: frozenset({ConnectionStatus.CONNECTING, ConnectionStatus.DISCONNECTED}),
}


@dataclass(frozen=True)
class BackoffPolicy:
    """``base_delay_s * 2 ** (n - 1)`` after the n-th consecutive failure, capped."""

    base_delay_s: float = 2.0
    max_delay_s: float = 60.0

    def delay_for(self, failures: int) -> float:
        if failures <= 0:
            return 0.0
        # cap the exponent so huge failure counts cannot overflow
        exponent = min(failures - 1, 62)
        return min(self.base_delay_s * (2**exponent), self.max_delay_s)


class ConnectionStateMachine:
    """Guarded transitions between connection states plus a failure counter.

    ``stop`` is always allowed and leaves the machine ``DISCONNECTED`` with
    the stopped flag set; a stopped machine refuses to begin new attempts.
    """

    def __init__(self, policy: BackoffPolicy | None = None) -> None:
        self.policy = policy or BackoffPolicy()
        self.status = ConnectionStatus.DISCONNECTED
        self.consecutive_failures = 0
        self.stopped = False
        self._listeners: list[StatusListener] = []

    def add_listener(self, listener: StatusListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def transition(self, target: ConnectionStatus) -> None:
        current = self.status
        if target not in _ALLOWED[current]:
            raise InvalidTransition(current.value, target.value)
        if target is current:
            return

        self.status = target
        logger.info("Connection status %s -> %s", current.value, target.value)
        for listener in list(self._listeners):
            try:
                listener(current, target)
            except Exception:  # pragma: no cover - listener bugs must not break the loop
                logger.exception("Status listener failed")

    def begin_attempt(self) -> None:
        if self.stopped:
            raise InvalidTransition(self.status.value, ConnectionStatus.CONNECTING.value)
        if self.status is not ConnectionStatus.CONNECTED:
            self.transition(ConnectionStatus.CONNECTING)

    def record_success(self) -> None:
        self.consecutive_failures = 0
        self.transition(ConnectionStatus.CONNECTED)

    def record_failure(self) -> float:
        """Move to ``ERROR`` and return the delay before the next attempt."""

        self.consecutive_failures += 1
        self.transition(ConnectionStatus.ERROR)
        return self.policy.delay_for(self.consecutive_failures)

    def next_delay(self) -> float:
        return self.policy.delay_for(self.consecutive_failures)

    def reset(self) -> None:
        """Clear a previous stop so the machine can be started again."""

        self.stopped = False
        self.consecutive_failures = 0

    def stop(self) -> None:
        self.stopped = True
        if self.status is not ConnectionStatus.DISCONNECTED:
            self.transition(ConnectionStatus.DISCONNECTED)


__all__ = ["BackoffPolicy", "ConnectionStateMachine", "StatusListener"]
