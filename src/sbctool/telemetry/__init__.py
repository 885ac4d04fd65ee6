"""Bounded telemetry state and the channel collectors publish into."""

from .state import LOG_CAPACITY, TelemetryChannel, TelemetrySnapshot, TelemetryState

__all__ = ["LOG_CAPACITY", "TelemetryChannel", "TelemetrySnapshot", "TelemetryState"]
