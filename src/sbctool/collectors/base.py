"""Background collector thread with cooperative stop and refresh."""

import logging
import threading
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

from .log_parsers import LogLevel, local_entry

if TYPE_CHECKING:
    from sbctool.telemetry.state import TelemetryChannel

logger = logging.getLogger(__name__)


class BackgroundCollector(ABC):
    """Runs ``run_loop`` in a daemon thread until stopped.

    ``stop_event`` is checked at every suspension point. ``request_refresh``
    cuts the current wait short so the next cycle starts immediately.
    """

    name = "collector"

    def __init__(
        self,
        channel: "TelemetryChannel",
        stop_event: Optional[threading.Event] = None,
    ) -> None:
        self.channel = channel
        self.stop_event = stop_event or threading.Event()
        self._wake = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def stopping(self) -> bool:
        return self.stop_event.is_set()

    @abstractmethod
    def run_loop(self) -> None:
        """Collect until ``stop_event`` is set."""

    def wait(self, seconds: float) -> bool:
        """Sleep for ``seconds`` unless refreshed or stopped.

        Returns:
            False when the collector should stop.
        """
        if self.stopping:
            return False
        self._wake.wait(seconds)
        self._wake.clear()
        return not self.stopping

    def request_refresh(self) -> None:
        self._wake.set()

    def _run(self) -> None:
        try:
            self.run_loop()
        except Exception as e:
            logger.exception(f"{self.name} crashed")
            self.channel.publish_log(
                local_entry(LogLevel.ERROR, f"{self.name} stopped: {e}")
            )

    def start(self) -> None:
        """Start the collector in a background thread."""
        self._thread = threading.Thread(target=self._run, daemon=True, name=self.name)
        self._thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        """Signal the collector to stop and wait briefly for it."""
        self.stop_event.set()
        self._wake.set()
        if self._thread:
            self._thread.join(timeout=timeout)
