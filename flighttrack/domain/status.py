"""Connection and extrapolation state definitions."""

from __future__ import annotations

from enum import Enum


class ConnectionStatus(str, Enum):
    """Connection status reported to status indicators."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


class ExtrapolationState(str, Enum):
    """States of the position extrapolation loop."""

    ANCHORED = "anchored"
    EXTRAPOLATING = "extrapolating"


__all__ = ["ConnectionStatus", "ExtrapolationState"]
