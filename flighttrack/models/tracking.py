"""Request and response models for the flights and tracking endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from flighttrack.domain.status import ConnectionStatus
from flighttrack.models.enrichment import FlightRoute
from flighttrack.models.telemetry import TelemetrySample


class LiveFlight(BaseModel):
    """A resolved live flight with optional route enrichment."""

    callsign: str = Field(..., description="Normalized callsign that was resolved")
    position: TelemetrySample = Field(..., description="Latest real telemetry sample")
    route: Optional[FlightRoute] = Field(default=None, description="Scheduled route, if known")


class FlightSearchResponse(BaseModel):
    """Result of a live flight lookup; an empty list is a normal outcome."""

    flights: list[LiveFlight] = Field(default_factory=list)
    note: Optional[str] = Field(default=None, description="Why no live data was returned")


class RateLimitedResponse(BaseModel):
    detail: str
    retry_after: float = Field(..., description="Seconds to wait before retrying")


class SessionCreateRequest(BaseModel):
    """Start tracking a flight."""

    flight_identifier: str = Field(..., min_length=1, description="Callsign or flight number")
    poll_interval_s: Optional[float] = Field(
        default=None, gt=0, description="Override for the provider polling interval"
    )


class SessionStatus(BaseModel):
    """Observable state of a tracking session."""

    session_id: str
    flight_identifier: str
    is_active: bool
    connection_status: ConnectionStatus
    reconnect_attempts: int = 0
    update_count: int = 0
    last_update: Optional[datetime] = None
    last_error: Optional[str] = None
    current_position: Optional[TelemetrySample] = None
    last_anchor: Optional[TelemetrySample] = None


class SessionHistory(BaseModel):
    session_id: str
    samples: list[TelemetrySample] = Field(default_factory=list)


class ProviderHealthStatus(BaseModel):
    name: str
    success_count: int
    failure_count: int
    success_ratio: float
    last_used_at: Optional[float] = None


__all__ = [
    "FlightSearchResponse",
    "LiveFlight",
    "ProviderHealthStatus",
    "RateLimitedResponse",
    "SessionCreateRequest",
    "SessionHistory",
    "SessionStatus",
]
