"""Remote transports: persistent SSH, on-demand SSH client and ADB."""

from .adb import ADBTransport, resolve_adb_target
from .connect import open_transport, resolve_target
from .ssh_connection import SSHClientTransport
from .ssh_session import SSHSessionTransport
from .target import (
    ADBAddressMode,
    RemoteTarget,
    TransportKind,
    classify_adb_address,
    resolve_ssh_target,
)
from .transport import CommandResult, Transport

__all__ = [
    "ADBAddressMode",
    "ADBTransport",
    "CommandResult",
    "RemoteTarget",
    "SSHClientTransport",
    "SSHSessionTransport",
    "Transport",
    "TransportKind",
    "classify_adb_address",
    "open_transport",
    "resolve_adb_target",
    "resolve_ssh_target",
    "resolve_target",
]
