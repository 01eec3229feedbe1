"""Tracking session endpoints and the live position stream."""

from __future__ import annotations

import asyncio
import contextlib
import logging

from fastapi import (
    APIRouter,
    Depends,
    HTTPException,
    Response,
    WebSocket,
    WebSocketDisconnect,
    status,
)

from flighttrack.api.dependencies import get_engine, get_ws_engine
from flighttrack.domain.status import ConnectionStatus
from flighttrack.models import (
    SessionCreateRequest,
    SessionHistory,
    SessionStatus,
    TelemetrySample,
)
from flighttrack.services.engine import TrackingEngine
from flighttrack.services.session import TrackingSession

router = APIRouter(prefix="/api/v1/tracking", tags=["tracking"])

logger = logging.getLogger("flighttrack.api.tracking")

STREAM_QUEUE_SIZE = 256


def _get_session_or_404(engine: TrackingEngine, session_id: str) -> TrackingSession:
    session = engine.get_session(session_id)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Tracking session {session_id} not found",
        )
    return session


@router.post(
    "/sessions",
    response_model=SessionStatus,
    status_code=status.HTTP_201_CREATED,
    summary="Start tracking a flight",
)
async def create_session(
    payload: SessionCreateRequest, engine: TrackingEngine = Depends(get_engine)
) -> SessionStatus:
    session = engine.start_session(
        payload.flight_identifier, poll_interval_s=payload.poll_interval_s
    )
    return SessionStatus(**session.to_dict())


@router.get("/sessions/{session_id}", response_model=SessionStatus, summary="Session status")
async def get_session(session_id: str, engine: TrackingEngine = Depends(get_engine)) -> SessionStatus:
    session = _get_session_or_404(engine, session_id)
    return SessionStatus(**session.to_dict())


@router.get(
    "/sessions/{session_id}/history",
    response_model=SessionHistory,
    summary="Recent real samples for trail rendering",
)
async def get_session_history(
    session_id: str, engine: TrackingEngine = Depends(get_engine)
) -> SessionHistory:
    session = _get_session_or_404(engine, session_id)
    return SessionHistory(session_id=session_id, samples=session.history())


@router.delete(
    "/sessions/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Stop tracking a flight",
)
async def delete_session(session_id: str, engine: TrackingEngine = Depends(get_engine)) -> Response:
    if not await engine.stop_session(session_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Tracking session {session_id} not found",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


def _offer(queue: asyncio.Queue, event: dict) -> None:
    try:
        queue.put_nowait(event)
    except asyncio.QueueFull:
        # slow consumer; drop the oldest event so the newest position wins
        with contextlib.suppress(asyncio.QueueEmpty):
            queue.get_nowait()
        queue.put_nowait(event)


async def _pump(websocket: WebSocket, queue: asyncio.Queue) -> None:
    while True:
        event = await queue.get()
        await websocket.send_json(event)
        if event["type"] == "status" and event["status"] == ConnectionStatus.DISCONNECTED.value:
            return


async def _drain(websocket: WebSocket) -> None:
    while True:
        await websocket.receive_text()


@router.websocket("/sessions/{session_id}/stream")
async def stream_session(websocket: WebSocket, session_id: str) -> None:
    """Push position and connection status events until the session or client goes away.

    The session is stopped when its last stream disconnects.
    """

    engine = get_ws_engine(websocket)
    session = engine.get_session(session_id) if engine is not None else None
    if session is None:
        await websocket.close(code=4404)
        return

    await websocket.accept()
    engine.attach_stream(session_id)
    queue: asyncio.Queue = asyncio.Queue(maxsize=STREAM_QUEUE_SIZE)

    def on_position(sample: TelemetrySample) -> None:
        _offer(queue, {"type": "position", "data": sample.model_dump(mode="json")})

    def on_status(current: ConnectionStatus) -> None:
        _offer(queue, {"type": "status", "status": current.value})

    unsubscribe_position = session.subscribe(on_position)
    unsubscribe_status = session.subscribe_status(on_status)
    on_status(session.connection_status)
    if session.current_position is not None:
        on_position(session.current_position)

    pump = asyncio.create_task(_pump(websocket, queue))
    drain = asyncio.create_task(_drain(websocket))
    try:
        done, pending = await asyncio.wait({pump, drain}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, (WebSocketDisconnect, RuntimeError)):
                logger.warning("Stream for session %s failed: %s", session_id, exc)
    finally:
        unsubscribe_position()
        unsubscribe_status()
        for task in (pump, drain):
            task.cancel()
        with contextlib.suppress(RuntimeError, WebSocketDisconnect):
            await websocket.close()
        logger.debug("Stream for session %s closed", session_id)
        await engine.detach_stream(session_id)
