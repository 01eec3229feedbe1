"""Map configured provider descriptors to adapter instances."""

from __future__ import annotations

import logging
from typing import Iterable

import httpx

from flighttrack.models.telemetry import ProviderDescriptor
from flighttrack.providers.base import HttpProviderAdapter
from flighttrack.providers.opensky import OpenSkyAdapter
from flighttrack.providers.readsb import ADSBExchangeAdapter, AirplanesLiveAdapter

logger = logging.getLogger("flighttrack.providers")

ADAPTER_TYPES: dict[str, type[HttpProviderAdapter]] = {
    "airplanes.live": AirplanesLiveAdapter,
    "adsbexchange": ADSBExchangeAdapter,
    "opensky": OpenSkyAdapter,
}


def build_adapters(
    descriptors: Iterable[ProviderDescriptor],
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict[str, HttpProviderAdapter]:
    """Instantiate one adapter per known descriptor, keyed by provider name."""

    adapters: dict[str, HttpProviderAdapter] = {}
    for descriptor in descriptors:
        adapter_type = ADAPTER_TYPES.get(descriptor.name)
        if adapter_type is None:
            logger.warning("No adapter registered for provider %s; skipping", descriptor.name)
            continue
        adapters[descriptor.name] = adapter_type(descriptor, transport=transport)
    return adapters


__all__ = ["ADAPTER_TYPES", "build_adapters"]
