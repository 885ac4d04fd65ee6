"""Telemetry state owned by the dashboard and fed through a channel."""

import logging
import queue
import threading
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sbctool.collectors.log_parsers import LogEntry

if TYPE_CHECKING:
    from sbctool.collectors.system_info import SystemInfo

logger = logging.getLogger(__name__)

LOG_CAPACITY = 100


@dataclass(frozen=True)
class TelemetrySnapshot:
    """Immutable view handed to the renderer."""

    system_info: "SystemInfo | None"
    logs: tuple[LogEntry, ...]


class TelemetryState:
    """Latest system snapshot plus a bounded, ordered log buffer.

    Appending beyond ``capacity`` evicts the oldest entries first. The
    lock is held only for a single append, replace or copy.
    """

    def __init__(self, capacity: int = LOG_CAPACITY) -> None:
        self.capacity = capacity
        self._system_info: "SystemInfo | None" = None
        self._logs: deque[LogEntry] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def append_log(self, entry: LogEntry) -> None:
        with self._lock:
            self._logs.append(entry)

    def extend_logs(self, entries: Iterable[LogEntry]) -> None:
        entries = list(entries)
        with self._lock:
            self._logs.extend(entries)

    def replace_system_info(self, info: "SystemInfo") -> None:
        """Swap in a complete snapshot; fields are never merged."""
        with self._lock:
            self._system_info = info

    @property
    def system_info(self) -> "SystemInfo | None":
        with self._lock:
            return self._system_info

    def __len__(self) -> int:
        with self._lock:
            return len(self._logs)

    def snapshot(self) -> TelemetrySnapshot:
        with self._lock:
            return TelemetrySnapshot(self._system_info, tuple(self._logs))


@dataclass(frozen=True)
class LogBatch:
    entries: tuple[LogEntry, ...]


@dataclass(frozen=True)
class SystemInfoUpdate:
    info: "SystemInfo"


class TelemetryChannel:
    """Thread-safe message queue from collectors to the state owner.

    Collectors only publish; the dashboard drains messages into its
    TelemetryState in arrival order, so messages from one collector are
    applied in the order it produced them.
    """

    def __init__(self) -> None:
        self._queue: queue.Queue = queue.Queue()

    def publish_logs(self, entries: Iterable[LogEntry]) -> None:
        batch = tuple(entries)
        if batch:
            self._queue.put(LogBatch(batch))

    def publish_log(self, entry: LogEntry) -> None:
        self._queue.put(LogBatch((entry,)))

    def publish_system_info(self, info: "SystemInfo") -> None:
        self._queue.put(SystemInfoUpdate(info))

    def pending(self) -> int:
        return self._queue.qsize()

    def drain(self, state: TelemetryState, limit: int | None = None) -> int:
        """Apply pending messages to ``state`` without blocking.

        Returns:
            Number of messages applied.
        """
        applied = 0
        while limit is None or applied < limit:
            try:
                message = self._queue.get_nowait()
            except queue.Empty:
                break
            if isinstance(message, SystemInfoUpdate):
                state.replace_system_info(message.info)
            else:
                state.extend_logs(message.entries)
            applied += 1
        return applied
