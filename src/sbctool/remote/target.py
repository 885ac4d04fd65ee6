"""Remote target addressing and SSH alias resolution."""

import functools
import ipaddress
import logging
import os
import subprocess
from enum import Enum
from pathlib import Path

import paramiko
from pydantic import BaseModel, ConfigDict

from sbctool.errors import ResolutionError

logger = logging.getLogger(__name__)

USER_SSH_CONFIG = Path.home() / ".ssh" / "config"
SYSTEM_SSH_CONFIG = Path("/etc/ssh/ssh_config")
DEFAULT_SSH_PORT = 22
DEFAULT_ADB_PORT = 5555


class TransportKind(str, Enum):
    SSH = "ssh"
    ADB = "adb"


class ADBAddressMode(str, Enum):
    """How an ADB target is reached."""

    DIRECT = "direct"  # ip:port, connected with `adb connect`
    DIRECT_DEFAULT_PORT = "direct_default_port"  # bare ip
    SERVER = "server"  # explicit serial routed through the local adb server
    USB = "usb"  # single auto-discovered USB device
    SERVER_ENUMERATED = "server_enumerated"  # first device the server lists


class RemoteTarget(BaseModel):
    """A resolved remote endpoint. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    kind: TransportKind
    spec: str = ""
    host: str = ""
    port: int = DEFAULT_SSH_PORT
    user: str = ""
    identity_files: tuple[str, ...] = ()
    serial: str = ""
    adb_mode: ADBAddressMode | None = None

    @property
    def display(self) -> str:
        """Human-readable endpoint, e.g. ``pi@10.0.0.2:22`` or a device serial."""
        if self.kind == TransportKind.ADB:
            return self.serial or "auto"
        return f"{self.user}@{self.host}:{self.port}"


def _parse_host_port(text: str) -> tuple[str, int | None]:
    if text.count(":") == 1:
        host, port = text.split(":", 1)
        if port.isdigit():
            return host, int(port)
    return text, None


def _ssh_g_lookup(alias: str) -> dict[str, list[str]] | None:
    """Run ``ssh -G`` and return its key/value output, or None when unusable."""
    try:
        result = subprocess.run(
            ["ssh", "-G", alias],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (subprocess.TimeoutExpired, FileNotFoundError) as e:
        logger.debug(f"ssh -G unavailable for {alias}: {e}")
        return None
    if result.returncode != 0:
        logger.debug(f"ssh -G {alias} failed: {result.stderr.strip()}")
        return None

    options: dict[str, list[str]] = {}
    for line in result.stdout.splitlines():
        key, _, value = line.strip().partition(" ")
        if key and value:
            options.setdefault(key.lower(), []).append(value.strip())
    return options


def _config_file_lookup(alias: str, path: Path) -> dict | None:
    """Look an alias up in an OpenSSH config file via paramiko."""
    if not path.is_file():
        return None
    try:
        config = paramiko.SSHConfig.from_path(str(path))
    except (OSError, ValueError) as e:
        logger.debug(f"Could not parse {path}: {e}")
        return None
    entry = config.lookup(alias)
    # lookup() always echoes the alias back as hostname; only keep real matches
    if set(entry.keys()) <= {"hostname"} and entry.get("hostname") == alias:
        return None
    return dict(entry)


def _env_user() -> str:
    return os.environ.get("USER") or os.environ.get("LOGNAME") or ""


def _expand_identities(paths: list[str]) -> tuple[str, ...]:
    return tuple(os.path.expanduser(p) for p in paths)


@functools.lru_cache(maxsize=None)
def resolve_ssh_target(spec: str, use_ssh_g: bool = True) -> RemoteTarget:
    """Resolve an SSH target spec to an endpoint.

    Priority chain: explicit ``user@host[:port]``, then ``ssh -G`` (unless
    disabled), then ``~/.ssh/config``, then ``/etc/ssh/ssh_config``, then
    ``$USER``/``$LOGNAME`` for the user name. Results are cached for the
    process lifetime, so resolving the same spec again does not re-probe.

    Raises:
        ResolutionError: If no host or user can be determined.
    """
    spec = spec.strip()
    if not spec or any(c.isspace() for c in spec):
        raise ResolutionError(f"Invalid SSH target: {spec!r}")

    user = ""
    host_part = spec
    if "@" in spec:
        user, host_part = spec.rsplit("@", 1)
        if not user or not host_part:
            raise ResolutionError(f"Invalid SSH target: {spec!r}")
    host, port = _parse_host_port(host_part)
    identities: tuple[str, ...] = ()

    if not user:
        options = _ssh_g_lookup(host) if use_ssh_g else None
        if options is not None:
            host = options.get("hostname", [host])[0]
            user = user or options.get("user", [""])[0]
            if port is None and options.get("port", [""])[0].isdigit():
                port = int(options["port"][0])
            identities = _expand_identities(options.get("identityfile", []))
        else:
            for path in (USER_SSH_CONFIG, SYSTEM_SSH_CONFIG):
                entry = _config_file_lookup(host, path)
                if entry is None:
                    continue
                logger.debug(f"Resolved {host} from {path}")
                host = entry.get("hostname", host)
                user = user or entry.get("user", "")
                if port is None and str(entry.get("port", "")).isdigit():
                    port = int(entry["port"])
                identities = _expand_identities(entry.get("identityfile", []))
                break

    user = user or _env_user()
    if not user:
        raise ResolutionError(
            f"Could not determine SSH user for {spec!r}; use user@host or set $USER"
        )
    if not host:
        raise ResolutionError(f"Could not determine SSH host for {spec!r}")

    target = RemoteTarget(
        kind=TransportKind.SSH,
        spec=spec,
        host=host,
        port=port or DEFAULT_SSH_PORT,
        user=user,
        identity_files=identities,
    )
    logger.info(f"Resolved SSH target {spec} -> {target.display}")
    return target


def _is_ip(text: str) -> bool:
    try:
        ipaddress.ip_address(text)
    except ValueError:
        return False
    return True


def classify_adb_address(
    spec: str | None, default_port: int = DEFAULT_ADB_PORT
) -> tuple[ADBAddressMode | None, str]:
    """Classify an ADB address by specificity.

    Returns:
        ``(mode, serial)``. ``mode`` is None when no address was given and
        the device must be discovered.
    """
    spec = (spec or "").strip()
    if not spec:
        return None, ""
    host, port = _parse_host_port(spec)
    if port is not None and host:
        return ADBAddressMode.DIRECT, f"{host}:{port}"
    if _is_ip(spec):
        return ADBAddressMode.DIRECT_DEFAULT_PORT, f"{spec}:{default_port}"
    return ADBAddressMode.SERVER, spec
