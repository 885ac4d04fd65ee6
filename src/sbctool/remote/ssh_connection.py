"""On-demand SSH transport: one ssh client process per command."""

import logging
import shlex
import subprocess

from sbctool.errors import TransportError

from .target import RemoteTarget
from .transport import CommandResult, Transport

logger = logging.getLogger(__name__)

REMOTE_TIMEOUT_SECONDS = 30


class SSHClientTransport(Transport):
    """Wrapper around ssh subprocess calls for callers without a live session.

    Each call spawns the system ``ssh`` client with short connect and
    keepalive timeouts. Host keys are NOT verified (``StrictHostKeyChecking=no``
    with a throwaway known-hosts file): this trades trust for convenience so
    freshly flashed boards with changing keys can be inspected without
    prompts. Use the persistent session transport when host-key checking
    matters.
    """

    def __init__(self, target: RemoteTarget, connect_timeout: int = 5) -> None:
        super().__init__(target)
        self.connect_timeout = connect_timeout

    @property
    def destination(self) -> str:
        """Return user@host or host."""
        if self.target.user:
            return f"{self.target.user}@{self.target.host}"
        return self.target.host

    def _ssh_base_args(self) -> list:
        """Build common SSH arguments."""
        args = [
            "ssh",
            "-o",
            f"ConnectTimeout={self.connect_timeout}",
            "-o",
            "ServerAliveInterval=2",
            "-o",
            "ServerAliveCountMax=3",
            "-o",
            "BatchMode=yes",
            "-o",
            "RequestTTY=no",
            "-o",
            "StrictHostKeyChecking=no",
            "-o",
            "UserKnownHostsFile=/dev/null",
            "-p",
            str(self.target.port),
        ]
        for identity in self.target.identity_files:
            args.extend(["-i", identity])
        return args

    def run(self, command: str, timeout: float | None = None) -> CommandResult:
        """Execute a command on the remote host.

        The remote side is bounded by ``timeout 30`` so a hung command cannot
        outlive the local wait.
        """
        remote = f"timeout {REMOTE_TIMEOUT_SECONDS} sh -c {shlex.quote(command)}"
        args = self._ssh_base_args() + [self.destination, remote]
        try:
            result = subprocess.run(
                args,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            raise TransportError(f"Command timed out: {command}") from None
        except FileNotFoundError:
            raise TransportError("ssh not found") from None
        return CommandResult(result.returncode, result.stdout, result.stderr)
