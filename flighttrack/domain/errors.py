"""Error taxonomy for telemetry resolution and tracking."""

from __future__ import annotations


class TrackingError(Exception):
    """Base class for errors raised by the tracking engine."""


class InvalidCoordinate(TrackingError, ValueError):
    """Raised when a latitude or longitude falls outside its valid range."""

    def __init__(self, latitude: float, longitude: float) -> None:
        super().__init__(f"Invalid coordinate: lat={latitude} lon={longitude}")
        self.latitude = latitude
        self.longitude = longitude


class ProviderUnavailable(TrackingError):
    """A provider failed at the network, timeout or HTTP status level."""

    def __init__(self, name: str, cause: str | BaseException) -> None:
        super().__init__(f"{name} unavailable: {cause}")
        self.name = name
        self.cause = cause


class RateLimited(TrackingError):
    """The caller exceeded its request quota and should retry later."""

    def __init__(self, retry_after: float, key: str | None = None) -> None:
        super().__init__(f"Rate limited; retry after {retry_after:.1f}s")
        self.retry_after = max(retry_after, 0.0)
        self.key = key


class CacheMiss(TrackingError, KeyError):
    """No valid cache entry exists for the requested key."""

    def __init__(self, key: str) -> None:
        super().__init__(key)
        self.key = key

    def __str__(self) -> str:
        return f"Cache miss for {self.key!r}"


class AllProvidersExhausted(TrackingError):
    """Every provider was tried for one resolution without producing a sample."""

    def __init__(self, identifier: str, attempts: list[str] | None = None) -> None:
        super().__init__(f"No provider returned live data for {identifier}")
        self.identifier = identifier
        self.attempts = attempts or []


class InvalidTransition(TrackingError):
    """Raised when a state machine is asked to make a transition it does not allow."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Cannot transition from {current} to {target}")
        self.current = current
        self.target = target


__all__ = [
    "AllProvidersExhausted",
    "CacheMiss",
    "InvalidCoordinate",
    "InvalidTransition",
    "ProviderUnavailable",
    "RateLimited",
    "TrackingError",
]
