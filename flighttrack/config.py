"""Configuration settings for the flighttrack engine."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from flighttrack.models.telemetry import ProviderDescriptor

logger = logging.getLogger("flighttrack.config")

ADSBX_KEY_PARAMETER = "/flighttrack/adsbx/rapidapi_key"


def _get_bool(env_var: str, default: bool = False) -> bool:
    """Parse an environment variable into a boolean with a default."""

    value = os.getenv(env_var)
    if value is None:
        return default

    return value.lower() in {"1", "true", "yes", "on"}


@lru_cache(maxsize=1)
def _ssm_client():
    # Default to a region so lookups do not fail in environments without AWS
    # configuration (e.g. CI test runners).
    return boto3.client(
        "ssm",
        region_name=os.getenv("AWS_REGION") or os.getenv("AWS_DEFAULT_REGION") or "us-east-1",
    )


@lru_cache(maxsize=8)
def get_secret_parameter(name: str) -> str:
    """Fetch a decrypted secret from AWS SSM Parameter Store.

    The value is cached in-memory to avoid repeated SSM calls. Any failure to
    retrieve the value results in a runtime error so callers can decide whether
    the missing secret is fatal.
    """

    try:
        response = _ssm_client().get_parameter(Name=name, WithDecryption=True)
        value = response.get("Parameter", {}).get("Value")
    except (ClientError, BotoCoreError) as exc:  # pragma: no cover - AWS error passthrough
        logger.error("Failed to load %s from SSM: %s", name, exc)
        raise RuntimeError(f"Unable to load {name} from SSM") from exc

    if not value:
        logger.error("Received empty value for %s from SSM", name)
        raise RuntimeError(f"{name} not configured in SSM")

    return value


@dataclass
class Settings:
    """Application configuration loaded from environment variables."""

    flighttrack_env: str = os.getenv("FLIGHTTRACK_ENV", "local")
    log_level: str = os.getenv("FLIGHTTRACK_LOG_LEVEL", "INFO")
    use_ssm_secrets: bool = _get_bool("FLIGHTTRACK_USE_SSM", default=False)

    # Telemetry providers
    airplanes_live_base_url: str = os.getenv(
        "AIRPLANES_LIVE_BASE_URL", "https://api.airplanes.live/v2"
    )
    airplanes_live_timeout: float = float(os.getenv("AIRPLANES_LIVE_TIMEOUT", "12.0"))
    adsbx_base_url: str = os.getenv(
        "ADSBX_BASE_URL", "https://adsbexchange-com1.p.rapidapi.com/v2"
    )
    adsbx_timeout: float = float(os.getenv("ADSBX_TIMEOUT", "12.0"))
    adsbx_api_key: str = os.getenv("ADSBX_RAPIDAPI_KEY", "")
    opensky_base_url: str = os.getenv("OPENSKY_BASE_URL", "https://opensky-network.org/api")
    opensky_timeout: float = float(os.getenv("OPENSKY_TIMEOUT", "12.0"))

    # Tracking sessions
    poll_interval: float = float(os.getenv("FLIGHTTRACK_POLL_INTERVAL", "30.0"))
    tick_interval: float = float(os.getenv("FLIGHTTRACK_TICK_INTERVAL", "1.0"))
    staleness_factor: float = float(os.getenv("FLIGHTTRACK_STALENESS_FACTOR", "2.0"))
    min_extrapolation_speed_kt: float = float(
        os.getenv("FLIGHTTRACK_MIN_EXTRAPOLATION_SPEED_KT", "40.0")
    )
    history_size: int = int(os.getenv("FLIGHTTRACK_HISTORY_SIZE", "100"))
    backoff_base: float = float(os.getenv("FLIGHTTRACK_BACKOFF_BASE", "2.0"))
    backoff_max: float = float(os.getenv("FLIGHTTRACK_BACKOFF_MAX", "60.0"))

    # Provider health ranking
    health_tie_break: float = float(os.getenv("FLIGHTTRACK_HEALTH_TIE_BREAK", "0.1"))

    # Caller-facing rate limiting (per client address)
    caller_rate_window: float = float(os.getenv("FLIGHTTRACK_CALLER_RATE_WINDOW", "60.0"))
    caller_rate_max: int = int(os.getenv("FLIGHTTRACK_CALLER_RATE_MAX", "30"))
    caller_min_interval: float = float(os.getenv("FLIGHTTRACK_CALLER_MIN_INTERVAL", "2.0"))

    # Outbound rate limiting (per provider and flight)
    provider_rate_window: float = float(os.getenv("FLIGHTTRACK_PROVIDER_RATE_WINDOW", "60.0"))
    provider_rate_max: int = int(os.getenv("FLIGHTTRACK_PROVIDER_RATE_MAX", "12"))
    provider_min_interval: float = float(
        os.getenv("FLIGHTTRACK_PROVIDER_MIN_INTERVAL", "5.0")
    )

    # Enrichment cache
    cache_backend: str = os.getenv("FLIGHTTRACK_CACHE_BACKEND", "json")
    cache_path: str = os.getenv("FLIGHTTRACK_CACHE_PATH", "./data/enrichment-cache.json")
    route_cache_ttl: float = float(os.getenv("FLIGHTTRACK_ROUTE_CACHE_TTL", str(30 * 60)))
    photo_cache_ttl: float = float(os.getenv("FLIGHTTRACK_PHOTO_CACHE_TTL", str(24 * 60 * 60)))
    route_lookup_base_url: str = os.getenv(
        "ROUTE_LOOKUP_BASE_URL", "https://api.adsbdb.com/v0"
    )
    photo_lookup_base_url: str = os.getenv(
        "PHOTO_LOOKUP_BASE_URL", "https://api.planespotters.net/pub/photos"
    )
    enrichment_timeout: float = float(os.getenv("ENRICHMENT_TIMEOUT", "10.0"))

    database_url: str = os.getenv("FLIGHTTRACK_DB_URL", "sqlite:///./flighttrack.db")


def load_provider_descriptors(config: Settings) -> list[ProviderDescriptor]:
    """Build the static provider list; providers missing credentials are skipped."""

    descriptors = [
        ProviderDescriptor(
            name="airplanes.live",
            base_url=config.airplanes_live_base_url,
            timeout_s=config.airplanes_live_timeout,
            priority=0,
        ),
    ]

    if config.adsbx_api_key:
        descriptors.append(
            ProviderDescriptor(
                name="adsbexchange",
                base_url=config.adsbx_base_url,
                timeout_s=config.adsbx_timeout,
                priority=1,
                api_key=config.adsbx_api_key,
            )
        )
    else:
        logger.info("ADS-B Exchange key not configured; provider disabled")

    descriptors.append(
        ProviderDescriptor(
            name="opensky",
            base_url=config.opensky_base_url,
            timeout_s=config.opensky_timeout,
            priority=2,
        )
    )
    return descriptors


settings = Settings()

# Populate provider secrets lazily so tests can override behavior via env
if settings.use_ssm_secrets and not settings.adsbx_api_key:
    try:
        settings.adsbx_api_key = get_secret_parameter(ADSBX_KEY_PARAMETER)
    except RuntimeError:
        logger.warning("ADS-B Exchange key not available at import time")

__all__ = [
    "Settings",
    "get_secret_parameter",
    "load_provider_descriptors",
    "settings",
]
