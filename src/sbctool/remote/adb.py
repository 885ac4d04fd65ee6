"""ADB transport and device address resolution via the adb client."""

import functools
import logging
import subprocess
from dataclasses import dataclass

from sbctool.errors import ResolutionError, TransportError

from .target import (
    DEFAULT_ADB_PORT,
    ADBAddressMode,
    RemoteTarget,
    TransportKind,
    classify_adb_address,
)
from .transport import CommandResult, Transport

logger = logging.getLogger(__name__)

ADB_SETUP_TIMEOUT = 15


@dataclass(frozen=True)
class ADBDevice:
    """One row of ``adb devices -l``."""

    serial: str
    state: str
    usb: bool = False


def _run_adb(
    adb_path: str, args: list[str], timeout: float | None = ADB_SETUP_TIMEOUT
) -> subprocess.CompletedProcess:
    return subprocess.run(
        [adb_path, *args],
        capture_output=True,
        text=True,
        timeout=timeout,
    )


def parse_device_list(output: str) -> list[ADBDevice]:
    """Parse ``adb devices -l`` output, skipping headers and daemon notices."""
    devices = []
    for line in output.splitlines():
        line = line.strip()
        if not line or line.startswith("*") or line.startswith("List of devices"):
            continue
        parts = line.split()
        if len(parts) < 2:
            continue
        devices.append(
            ADBDevice(
                serial=parts[0],
                state=parts[1],
                usb=any(p.startswith("usb:") for p in parts[2:]),
            )
        )
    return devices


def list_devices(adb_path: str = "adb") -> list[ADBDevice]:
    """List devices visible to the local adb server.

    Raises:
        ResolutionError: If adb is missing or the server does not answer.
    """
    try:
        result = _run_adb(adb_path, ["devices", "-l"])
    except FileNotFoundError:
        raise ResolutionError(f"adb not found: {adb_path}") from None
    except subprocess.TimeoutExpired:
        raise ResolutionError("adb server did not respond") from None
    if result.returncode != 0:
        raise ResolutionError(f"adb devices failed: {result.stderr.strip()}")
    return parse_device_list(result.stdout)


def _probe_state(adb_path: str, serial: str) -> tuple[bool, str]:
    try:
        result = _run_adb(adb_path, ["-s", serial, "get-state"])
    except (FileNotFoundError, subprocess.TimeoutExpired) as e:
        return False, str(e)
    message = (result.stdout + result.stderr).strip()
    return result.returncode == 0 and "device" in result.stdout, message


def _connect_direct(adb_path: str, address: str) -> None:
    try:
        result = _run_adb(adb_path, ["connect", address])
    except FileNotFoundError:
        raise ResolutionError(f"adb not found: {adb_path}") from None
    except subprocess.TimeoutExpired:
        raise ResolutionError(f"Timed out connecting to {address}") from None
    output = (result.stdout + result.stderr).strip()
    if result.returncode != 0 or "connected to" not in output:
        raise ResolutionError(f"Could not connect to {address}: {output}")
    logger.info(f"ADB: {output}")


def _discover(adb_path: str, spec: str) -> RemoteTarget:
    retried = False
    while True:
        devices = list_devices(adb_path)
        usb_devices = [d for d in devices if d.usb]
        if len(usb_devices) == 1:
            device = usb_devices[0]
            ok, message = _probe_state(adb_path, device.serial)
            if ok:
                return RemoteTarget(
                    kind=TransportKind.ADB,
                    spec=spec,
                    serial=device.serial,
                    adb_mode=ADBAddressMode.USB,
                )
            if "busy" in message.lower() and not retried:
                logger.warning(
                    f"USB device {device.serial} is busy, restarting adb server"
                )
                try:
                    _run_adb(adb_path, ["kill-server"])
                except (FileNotFoundError, subprocess.TimeoutExpired) as e:
                    logger.debug(f"adb kill-server failed: {e}")
                retried = True
                continue
        break

    online = [d for d in devices if d.state == "device"]
    if not online:
        raise ResolutionError("No ADB devices found")
    chosen = online[0]
    if len(online) > 1:
        others = ", ".join(d.serial for d in online[1:])
        logger.warning(f"Multiple ADB devices, using {chosen.serial} (also: {others})")
    return RemoteTarget(
        kind=TransportKind.ADB,
        spec=spec,
        serial=chosen.serial,
        adb_mode=ADBAddressMode.SERVER_ENUMERATED,
    )


@functools.lru_cache(maxsize=None)
def resolve_adb_target(
    spec: str | None, adb_path: str = "adb", default_port: int = DEFAULT_ADB_PORT
) -> RemoteTarget:
    """Resolve an ADB address spec to a device serial.

    ``ip:port`` and bare ``ip`` are connected directly with ``adb connect``;
    any other spec is a serial routed through the adb server; no spec
    triggers USB discovery, then server enumeration. Cached per process.

    Raises:
        ResolutionError: If no usable device can be determined.
    """
    mode, serial = classify_adb_address(spec, default_port)
    if mode is None:
        return _discover(adb_path, spec or "")

    if mode in (ADBAddressMode.DIRECT, ADBAddressMode.DIRECT_DEFAULT_PORT):
        _connect_direct(adb_path, serial)
    else:
        ok, message = _probe_state(adb_path, serial)
        if not ok:
            raise ResolutionError(f"ADB device {serial} is not available: {message}")

    host, _, port = serial.partition(":")
    return RemoteTarget(
        kind=TransportKind.ADB,
        spec=spec or "",
        host=host if port else "",
        port=int(port) if port else default_port,
        serial=serial,
        adb_mode=mode,
    )


class ADBTransport(Transport):
    """Runs shell commands on one device through the adb client."""

    def __init__(self, target: RemoteTarget, adb_path: str = "adb") -> None:
        super().__init__(target)
        self.adb_path = adb_path

    def run(self, command: str, timeout: float | None = None) -> CommandResult:
        args = ["-s", self.target.serial, "shell", command]
        try:
            result = _run_adb(self.adb_path, args, timeout=timeout)
        except subprocess.TimeoutExpired:
            raise TransportError(f"Command timed out: {command}") from None
        except FileNotFoundError:
            raise TransportError("adb not found") from None
        return CommandResult(result.returncode, result.stdout, result.stderr)
