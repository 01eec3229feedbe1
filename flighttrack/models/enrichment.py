"""Models for flight enrichment data (routes and aircraft photos)."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AirportInfo(BaseModel):
    """Airport details attached to a flight route."""

    iata: Optional[str] = Field(default=None, description="IATA airport code")
    icao: Optional[str] = Field(default=None, description="ICAO airport code")
    name: Optional[str] = Field(default=None, description="Airport name")
    city: Optional[str] = Field(default=None, description="Municipality served")
    country: Optional[str] = Field(default=None, description="Country name")
    latitude: Optional[float] = Field(default=None, description="Latitude in decimal degrees")
    longitude: Optional[float] = Field(default=None, description="Longitude in decimal degrees")

    model_config = ConfigDict(extra="ignore")


class FlightRoute(BaseModel):
    """Scheduled route for a callsign."""

    callsign: str = Field(..., description="Normalized callsign the route belongs to")
    airline_name: Optional[str] = Field(default=None, description="Operating airline")
    airline_icao: Optional[str] = Field(default=None, description="Airline ICAO code")
    origin: Optional[AirportInfo] = Field(default=None, description="Departure airport")
    destination: Optional[AirportInfo] = Field(default=None, description="Arrival airport")

    model_config = ConfigDict(extra="ignore")


class AircraftPhoto(BaseModel):
    """Photo of an airframe, looked up by ICAO24 hex address."""

    icao24: str = Field(..., description="ICAO24 hex address")
    image_url: str = Field(..., description="Full-size image URL")
    thumbnail_url: Optional[str] = Field(default=None, description="Thumbnail image URL")
    link: Optional[str] = Field(default=None, description="Page crediting the photo")
    photographer: Optional[str] = Field(default=None, description="Photographer credit")

    model_config = ConfigDict(extra="ignore")


__all__ = ["AircraftPhoto", "AirportInfo", "FlightRoute"]
