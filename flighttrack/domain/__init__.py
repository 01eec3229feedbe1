"""Domain definitions shared across the engine."""

from .errors import (
    AllProvidersExhausted,
    CacheMiss,
    InvalidCoordinate,
    InvalidTransition,
    ProviderUnavailable,
    RateLimited,
    TrackingError,
)
from .status import ConnectionStatus, ExtrapolationState

__all__ = [
    "AllProvidersExhausted",
    "CacheMiss",
    "ConnectionStatus",
    "ExtrapolationState",
    "InvalidCoordinate",
    "InvalidTransition",
    "ProviderUnavailable",
    "RateLimited",
    "TrackingError",
]
