"""Tests for telemetry state and the collector channel."""

import threading

from sbctool.collectors.log_parsers import LogEntry
from sbctool.collectors.system_info import SystemInfo
from sbctool.telemetry.state import LOG_CAPACITY, TelemetryChannel, TelemetryState


def entry(i):
    return LogEntry(timestamp=f"10:00:{i % 60:02d}", level="INFO", message=f"line {i}")


def sample_info(hostname="sbc1"):
    return SystemInfo(
        hostname=hostname,
        kernel="Linux 5.10.0",
        architecture="aarch64",
        chip=None,
        cpu="ARM v8 (4 cores)",
        memory="4 GB",
        uptime="2m",
        os="Debian GNU/Linux 12 (bookworm)",
    )


class TestTelemetryState:
    def test_starts_empty(self):
        state = TelemetryState()
        snapshot = state.snapshot()
        assert snapshot.system_info is None
        assert snapshot.logs == ()

    def test_buffer_keeps_last_100_in_order(self):
        state = TelemetryState()
        for i in range(150):
            state.append_log(entry(i))
        logs = state.snapshot().logs
        assert len(logs) == LOG_CAPACITY == 100
        assert [e.message for e in logs] == [f"line {i}" for i in range(50, 150)]

    def test_extend_respects_capacity(self):
        state = TelemetryState(capacity=5)
        state.extend_logs(entry(i) for i in range(8))
        assert [e.message for e in state.snapshot().logs] == [
            f"line {i}" for i in range(3, 8)
        ]

    def test_replace_system_info_whole(self):
        state = TelemetryState()
        state.replace_system_info(sample_info("first"))
        state.replace_system_info(sample_info("second"))
        assert state.system_info.hostname == "second"

    def test_snapshot_is_a_copy(self):
        state = TelemetryState()
        state.append_log(entry(1))
        snapshot = state.snapshot()
        state.append_log(entry(2))
        assert len(snapshot.logs) == 1
        assert len(state) == 2

    def test_concurrent_appends(self):
        state = TelemetryState()

        def writer(offset):
            for i in range(200):
                state.append_log(entry(offset + i))

        threads = [threading.Thread(target=writer, args=(n * 1000,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(state) == 100


class TestTelemetryChannel:
    def test_drain_applies_in_order(self):
        channel = TelemetryChannel()
        state = TelemetryState()
        channel.publish_log(entry(1))
        channel.publish_system_info(sample_info())
        channel.publish_logs([entry(2), entry(3)])
        assert channel.pending() == 3

        assert channel.drain(state) == 3
        snapshot = state.snapshot()
        assert snapshot.system_info.hostname == "sbc1"
        assert [e.message for e in snapshot.logs] == ["line 1", "line 2", "line 3"]
        assert channel.pending() == 0

    def test_empty_batches_skipped(self):
        channel = TelemetryChannel()
        channel.publish_logs([])
        assert channel.pending() == 0

    def test_drain_limit(self):
        channel = TelemetryChannel()
        state = TelemetryState()
        for i in range(5):
            channel.publish_log(entry(i))
        assert channel.drain(state, limit=2) == 2
        assert len(state) == 2
        assert channel.pending() == 3

    def test_drain_without_messages(self):
        assert TelemetryChannel().drain(TelemetryState()) == 0
