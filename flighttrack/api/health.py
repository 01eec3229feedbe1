"""Health check and provider status endpoints."""

from fastapi import APIRouter, Depends

from flighttrack.api.dependencies import get_engine
from flighttrack.config import settings
from flighttrack.models import ProviderHealthStatus
from flighttrack.services.engine import TrackingEngine

router = APIRouter()


@router.get("/healthz", summary="Health check")
def health_check() -> dict[str, str]:
    """Simple health check endpoint."""
    return {"status": "ok", "env": settings.flighttrack_env}


@router.get(
    "/api/v1/providers/health",
    response_model=list[ProviderHealthStatus],
    summary="Provider health ranking",
    tags=["providers"],
)
def provider_health(engine: TrackingEngine = Depends(get_engine)) -> list[dict]:
    """Return provider health records in the order the next resolution will try them."""

    return engine.registry.snapshot()
