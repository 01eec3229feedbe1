from __future__ import annotations

import contextlib
import logging
import time

from fastapi import FastAPI, Request

from flighttrack.api import api_router
from flighttrack.config import settings
from flighttrack.services.engine import TrackingEngine

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger("flighttrack")


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown lifecycle."""

    # tests install their own engine before startup
    if getattr(app.state, "engine", None) is None:
        app.state.engine = TrackingEngine.from_settings(settings)
        logger.info("Tracking engine started")

    try:
        yield
    finally:
        engine: TrackingEngine | None = getattr(app.state, "engine", None)
        if engine is not None:
            await engine.aclose()
            logger.info("Tracking engine stopped")
        app.state.engine = None


app = FastAPI(title="Flighttrack Engine", lifespan=lifespan)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log basic request information for observability."""

    start_time = time.time()
    response = await call_next(request)
    duration_ms = (time.time() - start_time) * 1000
    logger.info(
        "HTTP %s %s -> %s (%.2f ms)",
        request.method,
        request.url.path,
        response.status_code,
        duration_ms,
    )
    return response


app.include_router(api_router)


@app.get("/", summary="Root")
def read_root() -> dict[str, str]:
    """Basic root endpoint for quick verification."""

    return {"message": "Flighttrack engine is running"}
