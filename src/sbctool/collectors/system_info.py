"""Remote system information collection."""

import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

from sbctool.errors import ParseError, TransportError
from sbctool.hardware.parsers import (
    UNKNOWN,
    android_chip,
    android_os,
    clean_probe,
    format_memory_kb,
    format_uptime,
    parse_architecture,
    parse_cpu_description,
    parse_free_total_kb,
    parse_kernel,
    parse_meminfo_total_kb,
    parse_proc_uptime,
    parse_release_field,
    parse_uptime_command,
    resolve_chip,
)
from sbctool.remote.transport import Transport

from .base import BackgroundCollector
from .log_parsers import LogLevel, local_entry

if TYPE_CHECKING:
    from sbctool.telemetry.state import TelemetryChannel

logger = logging.getLogger(__name__)

BATCH_PROBES = [
    "uname -a",
    "hostname",
    "cat /proc/device-tree/model 2>/dev/null || echo 'No model'",
    "cat /proc/device-tree/compatible 2>/dev/null || echo 'No compatible'",
    "cat /proc/cpuinfo",
    "cat /proc/meminfo",
    "cat /proc/uptime",
    "cat /etc/os-release 2>/dev/null || echo 'No os-release'",
]

# (command, key) in fallback order; an empty key means use the whole output
OS_SOURCES = [
    ("cat /etc/os-release", "PRETTY_NAME"),
    ("cat /etc/lsb-release", "DISTRIB_DESCRIPTION"),
    ("uname -o", ""),
]

ERROR_PREFIX = "Error: "


@dataclass(frozen=True)
class SystemInfo:
    """Snapshot of a remote board, replaced whole on every collection."""

    hostname: str
    kernel: str
    architecture: str
    chip: Optional[str]
    cpu: str
    memory: str
    uptime: str
    os: str


def _parsed(parse: Callable[[str], object], fmt: Callable, text: Optional[str]) -> str:
    if not text:
        return UNKNOWN
    try:
        return fmt(parse(text))
    except ParseError as e:
        logger.debug(f"Parse failed: {e}")
        return UNKNOWN


class SystemInfoCollector:
    """Assemble a SystemInfo from a transport.

    Persistent sessions get one batched round trip of the fixed probes;
    other transports run one command per field. Android targets use
    device properties and ``free``/``uptime``. ``collect`` never raises:
    fields that cannot be determined read "Unknown".
    """

    def __init__(
        self,
        transport: Transport,
        android: bool = False,
        timeout: Optional[float] = None,
    ) -> None:
        self.transport = transport
        self.android = android
        self.timeout = timeout
        self.last_error: Optional[str] = None
        self._last_failure: Optional[str] = None

    def _try(self, command: str) -> Optional[str]:
        try:
            return self.transport.execute(command, timeout=self.timeout)
        except TransportError as e:
            logger.debug(f"Probe '{command}' failed: {e}")
            self._last_failure = str(e)
            return None

    def _uname(self) -> Optional[str]:
        """Run ``uname -a``; its failure reason becomes ``last_error``."""
        uname = self._try("uname -a")
        if uname is None:
            self.last_error = self._last_failure
        return uname

    def collect(self) -> SystemInfo:
        """Collect one complete snapshot.

        ``last_error`` is set when the target could not be reached at all.
        """
        self.last_error = None
        if self.android:
            return self._collect_android()
        if self.transport.persistent:
            return self._collect_batched()
        return self._collect_sequential()

    def _base_fields(self, uname: Optional[str], hostname: Optional[str]) -> dict:
        return {
            "hostname": (hostname or "").strip() or UNKNOWN,
            "kernel": parse_kernel(uname) if uname else UNKNOWN,
            "architecture": parse_architecture(uname) if uname else "unknown",
        }

    def _collect_batched(self) -> SystemInfo:
        outputs = self.transport.execute_many(BATCH_PROBES, timeout=self.timeout)
        uname, hostname, model, compatible, cpuinfo, meminfo, uptime, os_release = [
            None if o.startswith(ERROR_PREFIX) else o for o in outputs
        ]
        if uname is None:
            self.last_error = outputs[0][len(ERROR_PREFIX):]
        fields = self._base_fields(uname, hostname)

        os_name = _parsed(
            lambda text: parse_release_field(text, "PRETTY_NAME"),
            str,
            clean_probe(os_release),
        )
        if os_name == UNKNOWN:
            os_name = self._os_from_sources(OS_SOURCES[1:])

        return SystemInfo(
            chip=resolve_chip(model or "", compatible or "", cpuinfo or ""),
            cpu=parse_cpu_description(cpuinfo) if cpuinfo else UNKNOWN,
            memory=_parsed(parse_meminfo_total_kb, format_memory_kb, meminfo),
            uptime=_parsed(parse_proc_uptime, format_uptime, uptime),
            os=os_name,
            **fields,
        )

    def _collect_sequential(self) -> SystemInfo:
        fields = self._base_fields(self._uname(), self._try("hostname"))
        cpuinfo = self._try("cat /proc/cpuinfo")
        return SystemInfo(
            chip=self._sequential_chip(cpuinfo),
            cpu=parse_cpu_description(cpuinfo) if cpuinfo else UNKNOWN,
            memory=_parsed(
                parse_meminfo_total_kb, format_memory_kb, self._try("cat /proc/meminfo")
            ),
            uptime=_parsed(parse_proc_uptime, format_uptime, self._try("cat /proc/uptime")),
            os=self._os_from_sources(OS_SOURCES),
            **fields,
        )

    def _sequential_chip(self, cpuinfo: Optional[str]) -> Optional[str]:
        model = clean_probe(self._try("cat /proc/device-tree/model 2>/dev/null"))
        if model:
            return model
        compatible = self._try("cat /proc/device-tree/compatible 2>/dev/null")
        return resolve_chip("", compatible or "", cpuinfo or "")

    def _os_from_sources(self, sources: list[tuple[str, str]]) -> str:
        for command, key in sources:
            output = self._try(command)
            if not output:
                continue
            if not key:
                return output.strip()
            try:
                return parse_release_field(output, key)
            except ParseError:
                continue
        return UNKNOWN

    def _getprop(self, name: str) -> str:
        return self._try(f"getprop {name}") or ""

    def _collect_android(self) -> SystemInfo:
        fields = self._base_fields(self._uname(), self._try("hostname"))
        cpuinfo = self._try("cat /proc/cpuinfo")

        memory = _parsed(parse_free_total_kb, format_memory_kb, self._try("free"))
        if memory == UNKNOWN:
            memory = _parsed(
                parse_meminfo_total_kb, format_memory_kb, self._try("cat /proc/meminfo")
            )

        uptime = _parsed(parse_uptime_command, format_uptime, self._try("uptime"))
        if uptime == UNKNOWN:
            uptime = _parsed(parse_proc_uptime, format_uptime, self._try("cat /proc/uptime"))

        return SystemInfo(
            chip=android_chip(
                self._getprop("ro.product.manufacturer"),
                self._getprop("ro.product.model"),
                self._getprop("ro.product.board"),
            ),
            cpu=parse_cpu_description(cpuinfo) if cpuinfo else UNKNOWN,
            memory=memory,
            uptime=uptime,
            os=android_os(
                self._getprop("ro.build.version.release"),
                self._getprop("ro.build.display.id"),
            )
            or UNKNOWN,
            **fields,
        )


class SystemInfoPoller(BackgroundCollector):
    """Publishes a fresh SystemInfo at start and then every ``interval`` seconds.

    A cycle that cannot reach the target publishes one ERROR line and keeps
    the previous snapshot.
    """

    name = "system-info"

    def __init__(
        self,
        collector: SystemInfoCollector,
        channel: "TelemetryChannel",
        interval: float = 30.0,
        stop_event: Optional[threading.Event] = None,
    ) -> None:
        super().__init__(channel, stop_event)
        self.collector = collector
        self.interval = interval

    def run_loop(self) -> None:
        self.channel.publish_log(
            local_entry(LogLevel.INFO, "Starting system info collection...")
        )
        announced = False
        while not self.stopping:
            info = self.collector.collect()
            if self.collector.last_error is not None:
                self.channel.publish_log(
                    local_entry(
                        LogLevel.ERROR,
                        f"Failed to collect system info: {self.collector.last_error}",
                    )
                )
            else:
                self.channel.publish_system_info(info)
                if not announced:
                    self.channel.publish_log(
                        local_entry(LogLevel.INFO, "System info collected successfully")
                    )
                    announced = True
            if not self.wait(self.interval):
                break
