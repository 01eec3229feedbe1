"""Pydantic models for the flighttrack engine."""

from .enrichment import AircraftPhoto, AirportInfo, FlightRoute
from .telemetry import ProviderDescriptor, TelemetrySample
from .tracking import (
    FlightSearchResponse,
    LiveFlight,
    ProviderHealthStatus,
    RateLimitedResponse,
    SessionCreateRequest,
    SessionHistory,
    SessionStatus,
)

__all__ = [
    "AircraftPhoto",
    "AirportInfo",
    "FlightRoute",
    "FlightSearchResponse",
    "LiveFlight",
    "ProviderDescriptor",
    "ProviderHealthStatus",
    "RateLimitedResponse",
    "SessionCreateRequest",
    "SessionHistory",
    "SessionStatus",
    "TelemetrySample",
]
