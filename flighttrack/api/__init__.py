"""API routers for the flighttrack engine."""

from fastapi import APIRouter

from .flights import router as flights_router
from .health import router as health_router
from .tracking import router as tracking_router

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(flights_router)
api_router.include_router(tracking_router)

__all__ = ["api_router"]
