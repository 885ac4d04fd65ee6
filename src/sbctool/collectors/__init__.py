"""Background collectors that gather telemetry from the remote target."""
