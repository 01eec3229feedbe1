"""Service layer for the flighttrack engine."""

from .cache import CacheEntry, EnrichmentCache, JsonFileStore, SqlCacheStore, build_cache_store
from .engine import TrackingEngine
from .enrichment import EnrichmentService
from .extrapolation import PositionExtrapolator
from .geodesy import bearing_deg, destination_point, distance_km
from .health import ProviderHealth, ProviderHealthRegistry
from .orchestrator import FallbackOrchestrator
from .rate_limit import RateDecision, RequestDeduplicator, SlidingWindowRateLimiter
from .reconnect import BackoffPolicy, ConnectionStateMachine
from .session import TrackingSession

__all__ = [
    "BackoffPolicy",
    "CacheEntry",
    "ConnectionStateMachine",
    "EnrichmentCache",
    "EnrichmentService",
    "FallbackOrchestrator",
    "JsonFileStore",
    "PositionExtrapolator",
    "ProviderHealth",
    "ProviderHealthRegistry",
    "RateDecision",
    "RequestDeduplicator",
    "SlidingWindowRateLimiter",
    "SqlCacheStore",
    "TrackingEngine",
    "TrackingSession",
    "bearing_deg",
    "build_cache_store",
    "destination_point",
    "distance_km",
]
