"""Live flight lookup and aircraft photo endpoints."""

from __future__ import annotations

import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse

from flighttrack.api.dependencies import client_key, get_engine
from flighttrack.domain.errors import AllProvidersExhausted, RateLimited
from flighttrack.models import (
    AircraftPhoto,
    FlightSearchResponse,
    LiveFlight,
    RateLimitedResponse,
)
from flighttrack.providers.base import normalize_identifier
from flighttrack.services.engine import TrackingEngine

router = APIRouter(prefix="/api/v1", tags=["flights"])

logger = logging.getLogger("flighttrack.api.flights")

NO_LIVE_DATA_NOTE = (
    "No live position is currently available for this flight. It may not be "
    "airborne yet or may be outside provider coverage."
)


def rate_limited_response(exc: RateLimited) -> JSONResponse:
    """Build the 429 response that tells clients how long to wait."""

    body = RateLimitedResponse(detail="Too many requests", retry_after=round(exc.retry_after, 1))
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content=body.model_dump(),
        headers={"Retry-After": str(max(1, math.ceil(exc.retry_after)))},
    )


@router.get(
    "/flights",
    response_model=FlightSearchResponse,
    summary="Resolve the live position of a flight",
    responses={429: {"model": RateLimitedResponse, "description": "Caller is rate limited"}},
)
async def search_flights(
    request: Request,
    query: Optional[str] = Query(default=None, description="Callsign or flight number"),
    q: Optional[str] = Query(default=None, description="Alias for query"),
    engine: TrackingEngine = Depends(get_engine),
):
    """Resolve one flight against the live providers and attach its route."""

    raw = (query or "").strip() or q
    callsign = normalize_identifier(raw or "")
    if not callsign:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="query parameter is required",
        )

    try:
        sample = await engine.resolve(callsign, caller_key=client_key(request))
    except RateLimited as exc:
        logger.info("Caller %s throttled for %.1fs", client_key(request), exc.retry_after)
        return rate_limited_response(exc)
    except AllProvidersExhausted:
        return FlightSearchResponse(flights=[], note=NO_LIVE_DATA_NOTE)

    route = await engine.enrichment.get_route(callsign)
    return FlightSearchResponse(
        flights=[LiveFlight(callsign=callsign, position=sample, route=route)]
    )


@router.get(
    "/aircraft/{icao24}/photo",
    response_model=AircraftPhoto,
    summary="Look up a photo of an airframe",
)
async def aircraft_photo(icao24: str, engine: TrackingEngine = Depends(get_engine)):
    photo = await engine.enrichment.get_photo(icao24)
    if photo is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No photo found for {icao24}",
        )
    return photo
