"""Terminal dashboard for live board telemetry."""
