"""Remote log collection by polling snapshots or streaming the journal."""

import logging
import threading
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sbctool.config.models import PollingSettings
from sbctool.errors import TransportError
from sbctool.remote.transport import Transport

from .base import BackgroundCollector
from .log_parsers import (
    LogEntry,
    LogLevel,
    local_entry,
    parse_journal_line,
    parse_journal_stream_line,
    parse_logcat_line,
    parse_syslog_line,
)

if TYPE_CHECKING:
    from sbctool.telemetry.state import TelemetryChannel

logger = logging.getLogger(__name__)

LOGCAT_COMMAND = "logcat -d -v threadtime -t {lines}"
JOURNAL_PROBE_COMMAND = "which journalctl"
JOURNAL_SNAPSHOT_COMMAND = "journalctl --no-pager -n {lines} -o short-iso"
JOURNAL_FOLLOW_COMMAND = "journalctl -f --no-hostname --output=short-iso"
SYSLOG_COMMAND = "tail -n {lines} {path}"
SYSLOG_PATHS = ("/var/log/syslog", "/var/log/messages", "/var/log/kern.log")


class LogSource(str, Enum):
    ANDROID = "Android"
    JOURNALD = "journald"
    SYSLOG = "syslog"


def parse_snapshot(
    output: str, parser: Callable[[str], Optional[LogEntry]], limit: int
) -> list[LogEntry]:
    """Parse command output line by line, keeping the newest ``limit`` entries."""
    entries = []
    for line in output.splitlines():
        entry = parser(line)
        if entry is not None:
            entries.append(entry)
    return entries[-limit:]


def fresh_entries(previous: list[LogEntry], current: list[LogEntry]) -> list[LogEntry]:
    """Entries of ``current`` not already seen at the end of ``previous``.

    Consecutive tail snapshots overlap; the longest suffix of ``previous``
    that starts ``current`` is skipped.
    """
    for overlap in range(min(len(previous), len(current)), 0, -1):
        if previous[-overlap:] == current[:overlap]:
            return current[overlap:]
    return current


class LogCollector(BackgroundCollector):
    """Collects remote log lines and publishes them on the telemetry channel.

    The source is selected once at start: logcat on Android, otherwise the
    systemd journal when ``journalctl`` exists, else the first non-empty
    classic syslog file. The journal is followed live when the transport
    can stream and ``stream`` is on; every other source is polled.
    """

    name = "log-collector"

    def __init__(
        self,
        transport: Transport,
        channel: "TelemetryChannel",
        android: bool = False,
        polling: Optional[PollingSettings] = None,
        stream: bool = True,
        timeout: Optional[float] = None,
        stop_event: Optional[threading.Event] = None,
    ) -> None:
        super().__init__(channel, stop_event)
        self.transport = transport
        self.android = android
        self.polling = polling or PollingSettings()
        self.stream = stream
        self.timeout = timeout
        self._previous: list[LogEntry] = []

    def select_source(self) -> LogSource:
        if self.android:
            return LogSource.ANDROID
        try:
            found = self.transport.execute(JOURNAL_PROBE_COMMAND, timeout=self.timeout)
        except TransportError as e:
            logger.debug(f"journalctl probe failed: {e}")
            return LogSource.SYSLOG
        return LogSource.JOURNALD if found else LogSource.SYSLOG

    def interval(self, source: LogSource) -> float:
        if source == LogSource.ANDROID:
            return self.polling.android_log_interval
        if source == LogSource.JOURNALD:
            return self.polling.journal_interval
        return self.polling.syslog_interval

    def fetch(self, source: LogSource) -> list[LogEntry]:
        """Take one snapshot of the newest log lines.

        Raises:
            TransportError: If the log command failed.
        """
        lines = self.polling.log_tail_lines
        if source == LogSource.ANDROID:
            output = self.transport.execute(
                LOGCAT_COMMAND.format(lines=lines), timeout=self.timeout
            )
            return parse_snapshot(output, parse_logcat_line, lines)
        if source == LogSource.JOURNALD:
            output = self.transport.execute(
                JOURNAL_SNAPSHOT_COMMAND.format(lines=lines), timeout=self.timeout
            )
            return parse_snapshot(output, parse_journal_line, lines)
        return self._fetch_syslog(lines)

    def _fetch_syslog(self, lines: int) -> list[LogEntry]:
        last_error = None
        for path in SYSLOG_PATHS:
            try:
                output = self.transport.execute(
                    SYSLOG_COMMAND.format(lines=lines, path=path), timeout=self.timeout
                )
            except TransportError as e:
                last_error = e
                continue
            if output:
                return parse_snapshot(output, parse_syslog_line, lines)
        if last_error is not None:
            raise last_error
        return []

    def _report(self, source: LogSource, error: Exception | str) -> None:
        logger.debug(f"{source.value} log collection failed: {error}")
        self.channel.publish_log(
            local_entry(LogLevel.ERROR, f"Failed to get {source.value} logs: {error}")
        )

    def run_loop(self) -> None:
        source = self.select_source()
        logger.info(f"Collecting {source.value} logs from {self.transport.target.display}")
        if (
            source == LogSource.JOURNALD
            and self.stream
            and self.transport.supports_streaming
        ):
            self._follow_journal()
        else:
            self._poll(source)

    def _poll(self, source: LogSource) -> None:
        interval = self.interval(source)
        while not self.stopping:
            try:
                entries = self.fetch(source)
            except TransportError as e:
                self._report(source, e)
            else:
                self.channel.publish_logs(fresh_entries(self._previous, entries))
                self._previous = entries
            if not self.wait(interval):
                break

    def _follow_journal(self) -> None:
        interval = self.interval(LogSource.JOURNALD)
        while not self.stopping:
            try:
                for line in self.transport.stream_lines(
                    JOURNAL_FOLLOW_COMMAND, self.stop_event
                ):
                    entry = parse_journal_stream_line(line)
                    if entry is not None:
                        self.channel.publish_log(entry)
            except TransportError as e:
                self._report(LogSource.JOURNALD, e)
            else:
                if self.stopping:
                    break
                self._report(LogSource.JOURNALD, "journal stream ended")
            if not self.wait(interval):
                break
