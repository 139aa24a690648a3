"""Type definitions for boltrun.

This module defines the small value types shared by the config merger,
command builder and runner: what kind of bolt unit is being run, which
transport a machine is reached over, the connection facts a machine
reports, and the result of an external process.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class RunKind(str, Enum):
    """The kind of bolt unit to run."""

    TASK = "task"
    PLAN = "plan"

    @classmethod
    def parse(cls, value: Any) -> "RunKind | None":
        """Convert a user supplied value to a RunKind.

        Args:
            value: A RunKind or exactly "task" or "plan"

        Returns:
            The matching RunKind, or None if the value is not recognized

        Example:
            >>> RunKind.parse("task")
            <RunKind.TASK: 'task'>
            >>> RunKind.parse("Task") is None
            True
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value)
        except ValueError:
            return None

    def __str__(self) -> str:
        return self.value


class Transport(str, Enum):
    """Remote access transport used to reach a machine."""

    SSH = "ssh"
    WINRM = "winrm"

    @classmethod
    def for_machine(cls, machine: Any) -> "Transport":
        """Pick the transport from the machine's guest classification.

        Windows guests are reached over WinRM, everything else over SSH.
        """
        return cls.WINRM if machine.is_windows else cls.SSH

    def __str__(self) -> str:
        return self.value


@dataclass
class SSHInfo:
    """SSH connection facts reported by a machine.

    Attributes:
        host: Address the machine's SSH server listens on
        port: SSH port
        username: Login user
        private_key_path: Candidate private keys, first one wins
        verify_host_key: Whether the host key should be checked

    Example:
        >>> info = SSHInfo(host="127.0.0.1", port=2222, username="vagrant",
        ...                private_key_path=["/keys/id_rsa"])
        >>> info.private_key
        '/keys/id_rsa'
    """

    host: str
    port: int | str = 22
    username: str | None = None
    private_key_path: list[str] = field(default_factory=list)
    verify_host_key: bool | None = None

    @property
    def private_key(self) -> str | None:
        """The first private key path, if any."""
        return self.private_key_path[0] if self.private_key_path else None


@dataclass
class WinRMInfo:
    """WinRM connection facts reported by a machine.

    Attributes:
        host: Address the machine's WinRM listener is reachable on
        port: WinRM port
        username: Login user
        transport: WinRM transport name ("plaintext", "negotiate", "ssl")
        ssl_peer_verification: Whether the peer certificate is verified
    """

    host: str
    port: int | str = 5985
    username: str | None = None
    transport: str = "negotiate"
    ssl_peer_verification: bool | None = None

    @property
    def uses_ssl(self) -> bool:
        """Check if the WinRM listener is reached over SSL."""
        return self.transport == "ssl"


@dataclass
class ProcessResult:
    """Result of running the external bolt process.

    Attributes:
        exit_code: Process exit status
        stderr: Everything the process wrote to stderr
    """

    exit_code: int
    stderr: str = ""

    @property
    def is_success(self) -> bool:
        """Check if the process exited cleanly."""
        return self.exit_code == 0
