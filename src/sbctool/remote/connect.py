"""Build the transport for a dashboard session from settings."""

import logging

from sbctool.config.models import DashboardSettings
from sbctool.errors import TransportError

from .adb import ADBTransport, resolve_adb_target
from .ssh_connection import SSHClientTransport
from .ssh_session import SSHSessionTransport, prompt_password
from .target import RemoteTarget, TransportKind, resolve_ssh_target
from .transport import Transport

logger = logging.getLogger(__name__)


def resolve_target(
    kind: TransportKind, spec: str | None, settings: DashboardSettings
) -> RemoteTarget:
    """Resolve a target spec once for the process.

    Raises:
        ResolutionError: If the address or credentials are undeterminable.
    """
    if kind == TransportKind.ADB:
        return resolve_adb_target(
            spec, settings.adb.adb_path, settings.adb.default_port
        )
    return resolve_ssh_target(spec or "", settings.ssh.resolve_with_ssh_g)


def open_transport(target: RemoteTarget, settings: DashboardSettings) -> Transport:
    """Open the transport for a resolved target.

    SSH uses a persistent session unless ``ssh.persistent`` is off; when the
    session cannot reach the host it degrades to one ssh process per call,
    so failures surface as dashboard log lines instead of aborting.

    Raises:
        AuthError: If every SSH authentication method was rejected.
    """
    if target.kind == TransportKind.ADB:
        return ADBTransport(target, adb_path=settings.adb.adb_path)

    if not settings.ssh.persistent:
        return SSHClientTransport(target)

    session = SSHSessionTransport(
        target,
        connect_timeout=settings.ssh.connect_timeout,
        password_prompt=prompt_password if settings.ssh.password_prompt else None,
    )
    try:
        return session.open()
    except TransportError as e:
        logger.warning(f"Persistent SSH session unavailable, using ssh client: {e}")
        return SSHClientTransport(target)
