"""FastAPI dependencies shared by the routers."""

from __future__ import annotations

from fastapi import HTTPException, Request, WebSocket, status

from flighttrack.services.engine import TrackingEngine


def get_engine(request: Request) -> TrackingEngine:
    engine: TrackingEngine | None = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Tracking engine is not running",
        )
    return engine


def get_ws_engine(websocket: WebSocket) -> TrackingEngine | None:
    return getattr(websocket.app.state, "engine", None)


def client_key(request: Request) -> str:
    """Identify the caller for rate limiting, honouring a proxy's forwarded address."""

    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client is not None:
        return request.client.host
    return "unknown"


__all__ = ["client_key", "get_engine", "get_ws_engine"]
