"""Dead-reckoning between sparse real telemetry samples."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
import time
from typing import Callable

from flighttrack.domain.status import ExtrapolationState
from flighttrack.models.telemetry import TelemetrySample
from flighttrack.services.geodesy import destination_point, knots_to_km_per_second

logger = logging.getLogger("flighttrack.extrapolation")


class PositionExtrapolator:
    """Produce derived positions from the latest real anchor sample.

    The anchor is only ever replaced by :meth:`anchor`. Each :meth:`tick`
    projects the anchor along its heading for the time elapsed since it was
    received. Slow or stationary aircraft are never extrapolated, and once
    the anchor is older than ``staleness_factor`` poll intervals ticks yield
    nothing until a fresh anchor arrives.
    """

    def __init__(
        self,
        *,
        poll_interval_s: float,
        staleness_factor: float = 2.0,
        min_speed_kt: float = 40.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.poll_interval_s = poll_interval_s
        self.staleness_factor = staleness_factor
        self.min_speed_kt = min_speed_kt
        self._clock = clock
        self._anchor: TelemetrySample | None = None
        self._anchored_at: float | None = None
        self.state = ExtrapolationState.ANCHORED

    @property
    def staleness_ceiling_s(self) -> float:
        return self.poll_interval_s * self.staleness_factor

    @property
    def current_anchor(self) -> TelemetrySample | None:
        return self._anchor

    def anchor(self, sample: TelemetrySample) -> None:
        """Adopt a new real sample and restart the extrapolation clock."""

        self._anchor = sample
        self._anchored_at = self._clock()
        self.state = ExtrapolationState.ANCHORED

    def reset(self) -> None:
        self._anchor = None
        self._anchored_at = None
        self.state = ExtrapolationState.ANCHORED

    def tick(self, now: float | None = None) -> TelemetrySample | None:
        anchor = self._anchor
        if anchor is None or self._anchored_at is None:
            return None

        now = self._clock() if now is None else now
        elapsed = now - self._anchored_at
        if elapsed <= 0:
            return None

        if anchor.ground_speed_kt <= self.min_speed_kt:
            return None

        if elapsed > self.staleness_ceiling_s:
            if self.state is ExtrapolationState.EXTRAPOLATING:
                logger.debug("Anchor is %.1fs old; suspending extrapolation", elapsed)
            self.state = ExtrapolationState.ANCHORED
            return None

        distance = knots_to_km_per_second(anchor.ground_speed_kt) * elapsed
        latitude, longitude = destination_point(
            (anchor.latitude, anchor.longitude), anchor.heading_deg, distance
        )
        self.state = ExtrapolationState.EXTRAPOLATING
        return anchor.model_copy(
            update={
                "latitude": latitude,
                "longitude": longitude,
                "captured_at": datetime.fromtimestamp(now, tz=timezone.utc),
                "derived": True,
            }
        )


__all__ = ["PositionExtrapolator"]
