"""Live flight telemetry aggregation and position extrapolation engine."""

__version__ = "0.1.0"
