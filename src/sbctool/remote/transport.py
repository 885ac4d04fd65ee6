"""Command-execution contract shared by every transport."""

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass

from sbctool.errors import TransportError

from .target import RemoteTarget

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Raw outcome of one remote command."""

    exit_status: int
    stdout: str
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_status == 0


class Transport(ABC):
    """Executes commands on a remote target.

    ``execute`` returns trimmed text output or raises TransportError. A
    failure is always local to the call; the transport stays usable.
    """

    supports_streaming = False
    persistent = False

    def __init__(self, target: RemoteTarget) -> None:
        self.target = target

    @abstractmethod
    def run(self, command: str, timeout: float | None = None) -> CommandResult:
        """Run a command and return its raw result.

        Raises:
            TransportError: If the command could not be run at all.
        """

    def execute(self, command: str, timeout: float | None = None) -> str:
        """Run a command and return its trimmed stdout.

        Raises:
            TransportError: If the command could not be run or exited non-zero.
        """
        result = self.run(command, timeout=timeout)
        if not result.ok:
            detail = result.stderr.strip()
            message = f"Command failed with exit status {result.exit_status}"
            raise TransportError(f"{message}: {detail}" if detail else message)
        return result.stdout.strip()

    def execute_many(
        self, commands: list[str], timeout: float | None = None
    ) -> list[str]:
        """Run several commands, keeping one output slot per command.

        Failed commands yield ``"Error: <reason>"`` instead of aborting.
        """
        outputs = []
        for command in commands:
            try:
                outputs.append(self.execute(command, timeout=timeout))
            except TransportError as e:
                logger.debug(f"Command '{command}' failed: {e}")
                outputs.append(f"Error: {e}")
        return outputs

    def stream_lines(
        self, command: str, stop_event: threading.Event
    ) -> Iterator[str]:
        """Yield output lines of a long-running command until it ends.

        Raises:
            TransportError: If this transport cannot stream.
        """
        raise TransportError(f"{type(self).__name__} does not support streaming")

    def close(self) -> None:
        """Release any held connection."""
