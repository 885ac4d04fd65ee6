"""Live dashboard: system info panel, log panel and a controls bar."""

import logging
import threading
from datetime import datetime
from typing import Optional

from rich.logging import RichHandler
from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Horizontal
from textual.widgets import Static

from sbctool.collectors.base import BackgroundCollector
from sbctool.collectors.log_collector import LogCollector
from sbctool.collectors.log_parsers import LogEntry, LogLevel, local_entry
from sbctool.collectors.system_info import (
    SystemInfo,
    SystemInfoCollector,
    SystemInfoPoller,
)
from sbctool.config.models import DashboardSettings
from sbctool.remote.target import RemoteTarget, TransportKind
from sbctool.remote.transport import Transport
from sbctool.telemetry.state import TelemetryChannel, TelemetrySnapshot, TelemetryState

logger = logging.getLogger(__name__)

VISIBLE_LOG_LINES = 20
PANEL_TITLE = "SBC System Information"
EMPTY_SYSTEM_INFO = "No system information available"

# Logcat priorities are single letters; everything else uses full names.
LEVEL_STYLES = {
    "ERROR": "red",
    "E": "red",
    "F": "red",
    "WARN": "yellow",
    "W": "yellow",
    "INFO": "green",
    "I": "green",
    "DEBUG": "blue",
    "D": "blue",
    "V": "blue",
}

CONTROLS = (("q", "Quit"), ("r", "Refresh"), ("ESC", "Exit"))


def level_style(level: str) -> str:
    return LEVEL_STYLES.get(level, "white")


def render_system_info(info: Optional[SystemInfo]) -> Text:
    """Left panel body; the chip line is highlighted when known."""
    text = Text()
    text.append(PANEL_TITLE, style="bold yellow")
    text.append("\n\n")
    if info is None:
        text.append(EMPTY_SYSTEM_INFO, style="red")
        return text

    def field(label: str, value: str) -> None:
        text.append(f"{label}: ", style="cyan")
        text.append(f"{value}\n")

    field("Hostname", info.hostname)
    field("Kernel", info.kernel)
    field("Architecture", info.architecture)
    text.append("\n")
    if info.chip:
        text.append(f"Chip: {info.chip}\n\n", style="bold green")
    field("CPU", info.cpu)
    field("Memory", info.memory)
    field("Uptime", info.uptime)
    field("OS", info.os)
    text.rstrip()
    return text


def visible_logs(
    logs: tuple[LogEntry, ...], limit: int = VISIBLE_LOG_LINES
) -> list[LogEntry]:
    """The newest ``limit`` entries, newest first."""
    return list(reversed(logs[-limit:])) if limit > 0 else []


def render_logs(logs: tuple[LogEntry, ...], limit: int = VISIBLE_LOG_LINES) -> Text:
    text = Text()
    for entry in visible_logs(logs, limit):
        text.append(f"[{entry.timestamp}] ", style="bright_black")
        text.append(f"{entry.level}: ", style=f"bold {level_style(entry.level)}")
        text.append(f"{entry.message}\n")
    text.rstrip()
    return text


def render_controls() -> Text:
    text = Text(justify="center")
    for i, (key, action) in enumerate(CONTROLS):
        if i:
            text.append("  ")
        text.append(f"{key}: ", style="bold yellow")
        text.append(action, style="white")
    return text


class DashboardController:
    """Owns the telemetry state and applies keyboard actions.

    Collectors never touch the state directly: each ``tick`` drains their
    messages from the channel and returns a snapshot for rendering.
    """

    def __init__(
        self,
        channel: TelemetryChannel,
        state: TelemetryState,
        collectors: Optional[list[BackgroundCollector]] = None,
        visible_log_lines: int = VISIBLE_LOG_LINES,
    ) -> None:
        self.channel = channel
        self.state = state
        self.collectors = collectors or []
        self.visible_log_lines = visible_log_lines
        self.running = True

    def tick(self) -> TelemetrySnapshot:
        self.channel.drain(self.state)
        return self.state.snapshot()

    def refresh(self) -> None:
        """Log the request and cut every collector's current wait short."""
        self.state.append_log(
            local_entry(LogLevel.INFO, "Refreshing system information...")
        )
        for collector in self.collectors:
            collector.request_refresh()

    def quit(self) -> None:
        self.state.append_log(local_entry(LogLevel.INFO, "Exiting TUI..."))
        logger.info("Dashboard exiting")
        self.running = False

    def handle_key(self, key: str) -> bool:
        """Apply one key press.

        Returns:
            False once the dashboard should exit.
        """
        if key in ("q", "escape"):
            self.quit()
        elif key == "r":
            self.refresh()
        return self.running

    def start(self) -> None:
        for collector in self.collectors:
            collector.start()

    def stop(self) -> None:
        for collector in self.collectors:
            collector.stop_event.set()
        for collector in self.collectors:
            collector.stop()


class DashboardLogHandler(logging.Handler):
    """Forwards sbctool log records onto the dashboard's log panel."""

    def __init__(self, channel: TelemetryChannel, level: int = logging.WARNING) -> None:
        super().__init__(level)
        self.channel = channel

    def emit(self, record: logging.LogRecord) -> None:
        try:
            if record.levelno >= logging.ERROR:
                level = LogLevel.ERROR
            elif record.levelno >= logging.WARNING:
                level = LogLevel.WARN
            elif record.levelno >= logging.INFO:
                level = LogLevel.INFO
            else:
                level = LogLevel.DEBUG
            self.channel.publish_log(
                LogEntry(
                    timestamp=datetime.fromtimestamp(record.created).strftime("%H:%M:%S"),
                    level=level.value,
                    message=self.format(record),
                )
            )
        except Exception:
            self.handleError(record)


class DashboardApp(App):
    """Textual front end redrawing the dashboard every tick."""

    CSS = """
    #panels {
        height: 1fr;
    }

    #system-info, #logs {
        width: 1fr;
        height: 1fr;
        border: round $primary;
        padding: 0 1;
    }

    #controls {
        height: 3;
        border: round $secondary;
    }
    """

    BINDINGS = [
        ("q", "quit_dashboard", "Quit"),
        ("escape", "quit_dashboard", "Exit"),
        ("r", "refresh", "Refresh"),
    ]

    def __init__(
        self, controller: DashboardController, tick_seconds: float = 0.1, **kwargs
    ):
        super().__init__(**kwargs)
        self.controller = controller
        self.tick_seconds = tick_seconds

    def compose(self) -> ComposeResult:
        with Horizontal(id="panels"):
            yield Static(id="system-info")
            yield Static(id="logs")
        yield Static(render_controls(), id="controls")

    def on_mount(self) -> None:
        self.query_one("#system-info", Static).border_title = "System Info"
        self.query_one("#logs", Static).border_title = "Logs"
        self.query_one("#controls", Static).border_title = "Controls"
        self.redraw()
        self.set_interval(self.tick_seconds, self.redraw)

    def redraw(self) -> None:
        snapshot = self.controller.tick()
        self.query_one("#system-info", Static).update(
            render_system_info(snapshot.system_info)
        )
        self.query_one("#logs", Static).update(
            render_logs(snapshot.logs, self.controller.visible_log_lines)
        )

    def action_refresh(self) -> None:
        self.controller.handle_key("r")
        self.redraw()

    def action_quit_dashboard(self) -> None:
        self.controller.handle_key("q")
        self.exit()


def build_controller(
    target: RemoteTarget,
    transport: Transport,
    settings: DashboardSettings,
    android: bool = False,
    stop_event: Optional[threading.Event] = None,
) -> DashboardController:
    """Wire the collectors for one session to a fresh state and channel."""
    stop_event = stop_event or threading.Event()
    channel = TelemetryChannel()
    state = TelemetryState(settings.log_capacity)
    timeout = (
        settings.adb.command_timeout
        if target.kind == TransportKind.ADB
        else settings.ssh.command_timeout
    )

    poller = SystemInfoPoller(
        SystemInfoCollector(transport, android=android, timeout=timeout),
        channel,
        interval=settings.polling.system_info_interval,
        stop_event=stop_event,
    )
    log_collector = LogCollector(
        transport,
        channel,
        android=android,
        polling=settings.polling,
        timeout=timeout,
        stop_event=stop_event,
    )
    state.append_log(
        local_entry(
            LogLevel.INFO,
            f"Connected to {target.display} via {target.kind.value.upper()}",
        )
    )
    return DashboardController(
        channel,
        state,
        [poller, log_collector],
        visible_log_lines=settings.visible_log_lines,
    )


def run_dashboard(
    target: RemoteTarget,
    transport: Transport,
    settings: DashboardSettings,
    android: bool = False,
) -> None:
    """Run the dashboard until the user quits, then stop the collectors.

    Console log handlers on the ``sbctool`` logger are swapped for a
    DashboardLogHandler while the app owns the terminal.
    """
    controller = build_controller(target, transport, settings, android)
    package_logger = logging.getLogger("sbctool")
    console_handlers = [
        h for h in package_logger.handlers if isinstance(h, RichHandler)
    ]
    dashboard_handler = DashboardLogHandler(controller.channel)
    dashboard_handler.setFormatter(logging.Formatter("%(message)s"))

    for handler in console_handlers:
        package_logger.removeHandler(handler)
    package_logger.addHandler(dashboard_handler)
    try:
        controller.start()
        DashboardApp(controller, tick_seconds=settings.tick_seconds).run()
    finally:
        controller.stop()
        transport.close()
        package_logger.removeHandler(dashboard_handler)
        for handler in console_handlers:
            package_logger.addHandler(handler)
