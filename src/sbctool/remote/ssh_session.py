"""Persistent SSH session transport built on paramiko."""

import logging
import socket
import sys
import threading
from collections.abc import Callable, Iterator
from pathlib import Path

import click
import paramiko

from sbctool.errors import AuthError, TransportError

from .target import RemoteTarget
from .transport import CommandResult, Transport

logger = logging.getLogger(__name__)

DEFAULT_IDENTITY_FILES = ("id_ed25519", "id_ecdsa", "id_rsa")
STREAM_READ_TIMEOUT = 1.0
NO_AUTH_METHODS = "No authentication methods available"


def _default_identity_files() -> list[str]:
    ssh_dir = Path.home() / ".ssh"
    return [str(ssh_dir / name) for name in DEFAULT_IDENTITY_FILES]


def prompt_password(display: str) -> str | None:
    """Ask for a password on the terminal; None when not interactive."""
    if not sys.stdin.isatty():
        return None
    password = click.prompt(
        f"Password for {display}", hide_input=True, default="", show_default=False
    )
    return password or None


class SSHSessionTransport(Transport):
    """One authenticated SSH connection reused for every command.

    Each call opens its own channel. Opening channels is serialized by a
    lock because both collectors share the connection.
    """

    supports_streaming = True
    persistent = True

    def __init__(
        self,
        target: RemoteTarget,
        connect_timeout: float = 10.0,
        password_prompt: Callable[[str], str | None] | None = prompt_password,
    ) -> None:
        super().__init__(target)
        self.connect_timeout = connect_timeout
        self.password_prompt = password_prompt
        self._client: paramiko.SSHClient | None = None
        self._lock = threading.Lock()

    def identity_chain(self) -> list[str]:
        """Config-specified identities first, then the default key files."""
        chain = []
        for path in list(self.target.identity_files) + _default_identity_files():
            if path not in chain and Path(path).is_file():
                chain.append(path)
        return chain

    def _new_client(self) -> paramiko.SSHClient:
        client = paramiko.SSHClient()
        client.load_system_host_keys()
        # Known hosts are still verified; unknown boards are accepted.
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        return client

    def _connect(self, **auth) -> paramiko.SSHClient:
        client = self._new_client()
        try:
            client.connect(
                self.target.host,
                port=self.target.port,
                username=self.target.user,
                timeout=self.connect_timeout,
                banner_timeout=self.connect_timeout,
                auth_timeout=self.connect_timeout,
                look_for_keys=False,
                **auth,
            )
        except Exception:
            client.close()
            raise
        return client

    def agent_has_keys(self) -> bool:
        """True when a running ssh agent offers at least one key."""
        try:
            agent = paramiko.Agent()
        except paramiko.SSHException as e:
            logger.debug(f"ssh agent unavailable: {e}")
            return False
        try:
            return len(agent.get_keys()) > 0
        finally:
            agent.close()

    def _try_keys(self, display: str) -> bool:
        """Attempt key authentication; False when no key was accepted."""
        identities = self.identity_chain()
        if not identities and not self.agent_has_keys():
            logger.debug(f"No identity files or agent keys for {display}")
            return False
        try:
            self._client = self._connect(
                key_filename=identities or None, allow_agent=True
            )
        except paramiko.AuthenticationException as e:
            logger.debug(f"Key authentication failed for {display}: {e}")
            return False
        except paramiko.SSHException as e:
            # paramiko raises this when no key source had anything to offer
            if NO_AUTH_METHODS not in str(e):
                raise
            logger.debug(f"Key authentication unavailable for {display}: {e}")
            return False
        return True

    def open(self) -> "SSHSessionTransport":
        """Connect and authenticate.

        Order: identity files (config, then defaults), agent keys, then an
        interactive password prompt. The key step is skipped when there are
        no identity files and no agent keys.

        Raises:
            AuthError: If every authentication method was rejected.
            TransportError: If the host could not be reached.
        """
        display = self.target.display
        logger.info(f"SSH session: connecting to {display}")
        try:
            if self._try_keys(display):
                return self

            password = self.password_prompt(display) if self.password_prompt else None
            if not password:
                raise AuthError(f"SSH authentication failed for {display}")
            try:
                self._client = self._connect(password=password, allow_agent=False)
            except paramiko.AuthenticationException as e:
                raise AuthError(f"SSH authentication failed for {display}: {e}") from e
            return self
        except (paramiko.SSHException, OSError) as e:
            raise TransportError(f"Could not connect to {display}: {e}") from e

    def _open_channel(self, command: str, timeout: float | None) -> paramiko.Channel:
        with self._lock:
            transport = self._client.get_transport() if self._client else None
            if transport is None or not transport.is_active():
                raise TransportError("SSH session is not connected")
            try:
                channel = transport.open_session(timeout=timeout)
                channel.settimeout(timeout)
                channel.exec_command(command)
            except (paramiko.SSHException, OSError) as e:
                raise TransportError(f"Could not open channel: {e}") from e
        return channel

    def run(self, command: str, timeout: float | None = None) -> CommandResult:
        channel = self._open_channel(command, timeout)
        try:
            stdout = channel.makefile("rb").read()
            stderr = channel.makefile_stderr("rb").read()
            status = channel.recv_exit_status()
        except socket.timeout:
            raise TransportError(f"Command timed out: {command}") from None
        except (paramiko.SSHException, OSError) as e:
            raise TransportError(f"Command '{command}' failed: {e}") from e
        finally:
            channel.close()
        return CommandResult(
            status,
            stdout.decode("utf-8", errors="replace"),
            stderr.decode("utf-8", errors="replace"),
        )

    def stream_lines(
        self, command: str, stop_event: threading.Event
    ) -> Iterator[str]:
        """Yield lines of a long-running command until EOF or ``stop_event``.

        Reads use a short timeout so a set ``stop_event`` is noticed promptly.
        """
        channel = self._open_channel(command, None)
        channel.settimeout(STREAM_READ_TIMEOUT)
        pending = b""
        try:
            while not stop_event.is_set():
                try:
                    data = channel.recv(4096)
                except socket.timeout:
                    continue
                except (paramiko.SSHException, OSError) as e:
                    raise TransportError(f"Stream read failed: {e}") from e
                if not data:
                    break
                pending += data
                *lines, pending = pending.split(b"\n")
                for line in lines:
                    yield line.decode("utf-8", errors="replace").rstrip("\r")
            if pending:
                yield pending.decode("utf-8", errors="replace").rstrip("\r")
        finally:
            channel.close()

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
