"""Normalized telemetry models shared by providers and the tracking engine."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class TelemetrySample(BaseModel):
    """A single aircraft position report, real or dead-reckoned."""

    latitude: float = Field(..., ge=-90.0, le=90.0, description="Latitude in decimal degrees")
    longitude: float = Field(
        ..., ge=-180.0, le=180.0, description="Longitude in decimal degrees"
    )
    altitude_ft: float = Field(default=0.0, description="Altitude in feet")
    ground_speed_kt: float = Field(default=0.0, ge=0.0, description="Ground speed in knots")
    heading_deg: float = Field(
        default=0.0, ge=0.0, lt=360.0, description="Track heading in degrees from true north"
    )
    captured_at: datetime = Field(
        default_factory=_utcnow, description="When the sample was observed or derived (UTC)"
    )
    derived: bool = Field(
        default=False, description="True when produced by extrapolation rather than a provider"
    )
    source: Optional[str] = Field(default=None, description="Provider that produced the sample")

    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("heading_deg", mode="before")
    @classmethod
    def _wrap_heading(cls, value):
        if value is None:
            return 0.0
        wrapped = float(value) % 360.0
        # tiny negative inputs round up to exactly 360.0
        return 0.0 if wrapped >= 360.0 else wrapped

    @property
    def captured_ts(self) -> float:
        """Capture time as epoch seconds."""
        return self.captured_at.timestamp()


@dataclass(frozen=True)
class ProviderDescriptor:
    """Static configuration for one telemetry provider."""

    name: str
    base_url: str
    timeout_s: float
    priority: int = 0
    api_key: str | None = None


__all__ = ["ProviderDescriptor", "TelemetrySample"]
