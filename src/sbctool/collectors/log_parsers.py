"""Log line model and per-format line parsers.

Each parser is a pure function of one line of text. Lines that do not fit
the expected shape return None and are dropped by the caller.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class LogLevel(str, Enum):
    ERROR = "ERROR"
    WARN = "WARN"
    INFO = "INFO"
    DEBUG = "DEBUG"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class LogEntry:
    """One displayed log line."""

    timestamp: str
    level: str
    message: str


def local_timestamp() -> str:
    return datetime.now().strftime("%H:%M:%S")


def local_entry(level: LogLevel, message: str) -> LogEntry:
    """A log line produced by sbctool itself, stamped with local time."""
    return LogEntry(timestamp=local_timestamp(), level=level.value, message=message)


def classify_level(message: str) -> str:
    """Infer a level from keywords: error, warn, info, else DEBUG."""
    lowered = message.lower()
    if "error" in lowered:
        return LogLevel.ERROR.value
    if "warn" in lowered:
        return LogLevel.WARN.value
    if "info" in lowered:
        return LogLevel.INFO.value
    return LogLevel.DEBUG.value


def classify_stream_level(message: str) -> str:
    """Keyword level for streamed journal lines, UNKNOWN when nothing matches."""
    lowered = message.lower()
    if "error" in lowered or "fail" in lowered:
        return LogLevel.ERROR.value
    if "warn" in lowered:
        return LogLevel.WARN.value
    if "info" in lowered or "start" in lowered:
        return LogLevel.INFO.value
    if "debug" in lowered:
        return LogLevel.DEBUG.value
    return LogLevel.UNKNOWN.value


def parse_logcat_line(line: str) -> LogEntry | None:
    """Parse ``logcat -v threadtime`` output.

    ``MM-DD HH:MM:SS.mmm PID TID L TAG: MESSAGE``
    """
    parts = line.split()
    if len(parts) < 6:
        return None
    return LogEntry(
        timestamp=f"{parts[0]} {parts[1]}",
        level=parts[4].upper(),
        message=" ".join(parts[5:]),
    )


def parse_journal_line(line: str) -> LogEntry | None:
    """Parse ``journalctl -o short-iso`` output.

    ``YYYY-MM-DDTHH:MM:SS+ZZZZ HOST UNIT[PID]: MESSAGE``
    """
    if line.startswith("-- "):
        return None
    timestamp, sep, rest = line.partition(" ")
    if not sep:
        return None
    _, colon, message = rest.partition(":")
    if not colon:
        return None
    message = message.strip()
    return LogEntry(
        timestamp=timestamp,
        level=classify_level(message),
        message=message,
    )


_TIME_OF_DAY_RE = re.compile(r"^([^+\-Z]*)")


def parse_journal_stream_line(line: str) -> LogEntry | None:
    """Parse a ``journalctl -f --no-hostname --output=short-iso`` line.

    The timestamp keeps only the time of day, between ``T`` and the offset.
    """
    parts = line.split(" ", 2)
    if len(parts) < 3:
        return None
    _, sep, clock = parts[0].partition("T")
    timestamp = _TIME_OF_DAY_RE.match(clock).group(1) if sep else ""
    message = parts[2]
    return LogEntry(
        timestamp=timestamp,
        level=classify_stream_level(message),
        message=message,
    )


def parse_syslog_line(line: str) -> LogEntry | None:
    """Parse a classic syslog line.

    ``MMM DD HH:MM:SS HOST SERVICE: MESSAGE``
    """
    parts = line.split()
    if len(parts) < 6:
        return None
    service = parts[4].rstrip(":")
    message = " ".join(parts[5:])
    return LogEntry(
        timestamp=" ".join(parts[:3]),
        level=classify_level(message),
        message=f"{service}: {message}",
    )
