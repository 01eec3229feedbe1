import asyncio

import httpx
import pytest

from flighttrack.config import Settings
from flighttrack.domain import AllProvidersExhausted, ConnectionStatus, RateLimited
from flighttrack.models import TelemetrySample
from flighttrack.services.cache import JsonFileStore
from flighttrack.services.engine import TrackingEngine
from flighttrack.services.reconnect import BackoffPolicy
from flighttrack.services.session import TrackingSession


def _sample(**overrides):
    fields = dict(latitude=51.47, longitude=-0.45, ground_speed_kt=450, heading_deg=90)
    fields.update(overrides)
    return TelemetrySample(**fields)


class ScriptedResolver:
    """Return or raise the queued outcomes in order, repeating the last one."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    async def __call__(self, identifier):
        self.calls += 1
        outcome = self.outcomes[0] if len(self.outcomes) == 1 else self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.mark.anyio
async def test_successful_poll_anchors_and_emits(clock):
    sample = _sample()
    session = TrackingSession("BAW117", ScriptedResolver(sample), poll_interval_s=30.0, clock=clock)
    received = []
    session.subscribe(received.append)

    delay = await session.poll_once()

    assert delay == 30.0
    assert received == [sample]
    assert session.current_position == sample
    assert session.connection_status is ConnectionStatus.CONNECTED
    assert session.history() == [sample]
    assert session.update_count == 1


@pytest.mark.anyio
async def test_failures_back_off_and_map_to_error_status(clock):
    exhausted = AllProvidersExhausted("BAW117", ["a"])
    session = TrackingSession(
        "BAW117",
        ScriptedResolver(exhausted),
        backoff=BackoffPolicy(base_delay_s=2.0, max_delay_s=60.0),
        clock=clock,
    )
    statuses = []
    session.subscribe_status(statuses.append)

    delays = [await session.poll_once() for _ in range(3)]

    assert delays == [2.0, 4.0, 8.0]
    assert session.connection_status is ConnectionStatus.ERROR
    assert session.reconnect_attempts == 3
    assert statuses[:2] == [ConnectionStatus.CONNECTING, ConnectionStatus.ERROR]


@pytest.mark.anyio
async def test_success_after_failures_resets_backoff(clock):
    resolver = ScriptedResolver(AllProvidersExhausted("BAW117"), AllProvidersExhausted("BAW117"), _sample())
    session = TrackingSession("BAW117", resolver, poll_interval_s=15.0, clock=clock)

    await session.poll_once()
    await session.poll_once()
    assert session.reconnect_attempts == 2

    assert await session.poll_once() == 15.0
    assert session.reconnect_attempts == 0


@pytest.mark.anyio
async def test_rate_limited_waits_at_least_retry_after(clock):
    session = TrackingSession(
        "BAW117",
        ScriptedResolver(RateLimited(45.0)),
        backoff=BackoffPolicy(base_delay_s=2.0, max_delay_s=60.0),
        clock=clock,
    )

    assert await session.poll_once() == 45.0
    assert session.connection_status is ConnectionStatus.ERROR


@pytest.mark.anyio
async def test_unexpected_errors_do_not_escape(clock):
    session = TrackingSession("BAW117", ScriptedResolver(RuntimeError("bug")), clock=clock)

    delay = await session.poll_once()

    assert delay == 2.0
    assert session.last_error == "bug"


@pytest.mark.anyio
async def test_history_is_bounded_to_real_samples(clock):
    samples = [_sample(longitude=float(i) / 10) for i in range(5)]
    session = TrackingSession("BAW117", ScriptedResolver(*samples), history_size=3, clock=clock)

    for _ in samples:
        await session.poll_once()

    assert [s.longitude for s in session.history()] == [0.2, 0.3, 0.4]
    session.clear_history()
    assert session.history() == []


@pytest.mark.anyio
async def test_unsubscribe_stops_callbacks(clock):
    session = TrackingSession("BAW117", ScriptedResolver(_sample()), clock=clock)
    received = []
    unsubscribe = session.subscribe(received.append)

    unsubscribe()
    unsubscribe()
    await session.poll_once()

    assert received == []


@pytest.mark.anyio
async def test_running_session_animates_between_polls():
    resolver = ScriptedResolver(_sample())
    session = TrackingSession(
        "BAW117", resolver, poll_interval_s=30.0, tick_interval_s=0.01
    )
    received = []
    session.subscribe(received.append)

    session.start()
    await asyncio.sleep(0.1)
    await session.aclose()

    assert resolver.calls == 1
    assert received[0].derived is False
    assert any(sample.derived for sample in received[1:])
    assert all(sample.longitude >= received[0].longitude for sample in received)


@pytest.mark.anyio
async def test_stop_halts_emissions_and_inflight_fetch():
    cancelled = asyncio.Event()
    started = asyncio.Event()

    async def hanging_resolver(identifier):
        started.set()
        try:
            await asyncio.sleep(3600)
        except asyncio.CancelledError:
            cancelled.set()
            raise

    session = TrackingSession("BAW117", hanging_resolver, tick_interval_s=0.01)
    session.extrapolator.anchor(_sample())
    received = []
    session.subscribe(received.append)

    session.start()
    await started.wait()
    await asyncio.sleep(0.05)
    session.stop()
    count_at_stop = len(received)
    session.stop()

    await asyncio.sleep(0.05)
    await asyncio.wait_for(cancelled.wait(), timeout=1)

    assert count_at_stop > 0
    assert len(received) == count_at_stop
    assert session.connection_status is ConnectionStatus.DISCONNECTED
    assert not session.is_active


class OneShotFeed:
    """Serve one live airplanes.live position, then report the flight as gone."""

    def __init__(self):
        self.served = False

    def __call__(self, request: httpx.Request):
        if request.url.host == "api.airplanes.live":
            if self.served:
                return httpx.Response(200, json={"ac": [], "now": 1714765200000})
            self.served = True
            return httpx.Response(
                200,
                json={
                    "ac": [
                        {
                            "hex": "400def",
                            "flight": "BAW117  ",
                            "lat": 51.47,
                            "lon": -0.45,
                            "alt_baro": 36000,
                            "gs": 450,
                            "track": 90,
                        }
                    ],
                    "now": 1714765200000,
                },
            )
        if request.url.host == "opensky-network.org":
            return httpx.Response(200, json={"time": 1714765200, "states": None})
        return httpx.Response(404)


def _engine(tmp_path, clock, handler):
    config = Settings()
    config.adsbx_api_key = ""
    config.tick_interval = 0.01
    return TrackingEngine.from_settings(
        config,
        transport=httpx.MockTransport(handler),
        cache_store=JsonFileStore(str(tmp_path / "cache.json")),
        clock=clock,
    )


async def _wait_for(predicate, timeout=1.0):
    async def poll():
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(poll(), timeout)


@pytest.mark.anyio
async def test_engine_session_keeps_animating_through_failed_poll(tmp_path, clock):
    engine = _engine(tmp_path, clock, OneShotFeed())
    session = engine.start_session("BAW117")
    received = []
    session.subscribe(received.append)

    try:
        await _wait_for(lambda: session.update_count == 1)
        anchor = session.last_anchor
        assert session.connection_status is ConnectionStatus.CONNECTED

        clock.advance(30)
        assert await session.poll_once() == 2.0
        assert session.connection_status is ConnectionStatus.ERROR
        assert session.last_anchor is anchor
        assert session.extrapolator.current_anchor is anchor

        await _wait_for(lambda: received[-1].derived)
        at_half_ceiling = received[-1].longitude
        assert at_half_ceiling > anchor.longitude

        clock.advance(30)
        await asyncio.sleep(0.05)
        at_ceiling = received[-1]
        assert at_ceiling.derived is True
        assert at_ceiling.longitude > at_half_ceiling

        clock.advance(1)
        await asyncio.sleep(0.02)
        count_past_ceiling = len(received)
        await asyncio.sleep(0.05)
        assert len(received) == count_past_ceiling
        assert session.update_count == 1
    finally:
        await engine.aclose()

    assert not session.is_active


@pytest.mark.anyio
async def test_session_stops_when_last_stream_detaches(tmp_path, clock):
    engine = _engine(tmp_path, clock, OneShotFeed())
    session = engine.start_session("BAW117")

    try:
        engine.attach_stream(session.session_id)
        engine.attach_stream(session.session_id)

        await engine.detach_stream(session.session_id)
        assert engine.get_session(session.session_id) is session
        assert session.is_active

        await engine.detach_stream(session.session_id)
        assert engine.get_session(session.session_id) is None
        assert not session.is_active
    finally:
        await engine.aclose()
