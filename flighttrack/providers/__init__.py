"""Telemetry and enrichment provider adapters."""

from .base import HttpProviderAdapter, ProviderAdapter, normalize_identifier
from .factory import build_adapters
from .opensky import OpenSkyAdapter
from .photos import PhotoLookup
from .readsb import ADSBExchangeAdapter, AirplanesLiveAdapter, ReadsbAdapter
from .routes import RouteLookup

__all__ = [
    "ADSBExchangeAdapter",
    "AirplanesLiveAdapter",
    "HttpProviderAdapter",
    "OpenSkyAdapter",
    "PhotoLookup",
    "ProviderAdapter",
    "ReadsbAdapter",
    "RouteLookup",
    "build_adapters",
    "normalize_identifier",
]
