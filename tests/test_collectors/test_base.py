"""Tests for the background collector thread wrapper."""

import threading

from sbctool.collectors.base import BackgroundCollector
from sbctool.telemetry.state import TelemetryChannel, TelemetryState


class CountingCollector(BackgroundCollector):
    name = "counting"

    def __init__(self, channel, stop_event=None, interval=60.0):
        super().__init__(channel, stop_event)
        self.interval = interval
        self.cycles = 0
        self.cycled = threading.Event()

    def run_loop(self):
        while not self.stopping:
            self.cycles += 1
            self.cycled.set()
            if not self.wait(self.interval):
                break


class CrashingCollector(BackgroundCollector):
    name = "crashing"

    def run_loop(self):
        raise RuntimeError("boom")


class TestWait:
    def test_returns_false_once_stopped(self):
        collector = CountingCollector(TelemetryChannel())
        collector.stop_event.set()
        assert collector.wait(10) is False

    def test_refresh_cuts_wait_short(self):
        collector = CountingCollector(TelemetryChannel())
        collector.request_refresh()
        assert collector.wait(60) is True


class TestLifecycle:
    def test_refresh_triggers_new_cycle_and_stop_joins(self):
        collector = CountingCollector(TelemetryChannel())
        collector.start()
        assert collector.cycled.wait(2)
        collector.cycled.clear()

        collector.request_refresh()
        assert collector.cycled.wait(2)
        assert collector.cycles == 2

        collector.stop(timeout=2)
        assert not collector._thread.is_alive()

    def test_shared_stop_event(self):
        stop = threading.Event()
        first = CountingCollector(TelemetryChannel(), stop_event=stop)
        second = CountingCollector(TelemetryChannel(), stop_event=stop)
        first.stop()
        assert second.stopping

    def test_crash_becomes_error_entry(self):
        channel = TelemetryChannel()
        collector = CrashingCollector(channel)
        collector.start()
        collector._thread.join(2)
        state = TelemetryState()
        channel.drain(state)
        logs = state.snapshot().logs
        assert logs[-1].level == "ERROR"
        assert logs[-1].message == "crashing stopped: boom"
