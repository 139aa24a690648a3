"""Environment and machine collaborators for boltrun.

The runner only talks to the environment layer through the two protocols
defined here. ``StaticEnvironment`` is a YAML-backed implementation used by
the command line tool and by tests; an orchestration layer can supply its
own objects as long as they satisfy the protocols.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

import yaml

from .config import TaskConfig
from .exceptions import ConfigError, ConnectionNotReadyError
from .types import SSHInfo, Transport, WinRMInfo

logger = logging.getLogger(__name__)


class Machine(Protocol):
    """A machine managed by the environment layer."""

    name: str

    @property
    def is_windows(self) -> bool:
        """Whether the guest is Windows-like (reached over WinRM)."""
        ...

    def is_running(self) -> bool:
        """Whether the machine is currently running."""
        ...

    def ssh_info(self) -> SSHInfo | None:
        """SSH connection facts, or None if SSH is not ready."""
        ...

    def winrm_info(self) -> WinRMInfo:
        """WinRM connection facts."""
        ...


class Environment(Protocol):
    """The environment a set of machines is defined in."""

    root_path: Path
    local_data_path: Path

    def active_machine_names(self) -> list[str]:
        """Names of every machine defined in the environment, in order."""
        ...

    def machine_by_name(self, name: str) -> Machine | None:
        """Look up a machine by name."""
        ...


@dataclass
class StaticMachine:
    """A machine described statically, e.g. in an environment YAML file.

    Attributes:
        name: Machine name
        host: Address the machine is reachable on
        port: SSH or WinRM port
        user: Login user
        private_key: SSH private key paths, first one wins
        verify_host_key: Whether the SSH host key is checked
        guest: Guest classification, "linux" or "windows"
        state: Machine state, e.g. "running" or "poweroff"
        winrm_transport: WinRM transport name ("negotiate", "ssl", ...)
        ssl_peer_verification: Whether WinRM verifies the peer certificate
        config: Bolt config declared for this machine

    Example:
        >>> machine = StaticMachine(name="server", host="127.0.0.1", port=2222)
        >>> machine.ssh_info().port
        2222
    """

    name: str
    host: str = "127.0.0.1"
    port: int | str | None = None
    user: str | None = None
    private_key: list[str] = field(default_factory=list)
    verify_host_key: bool | None = None
    guest: str = "linux"
    state: str = "running"
    winrm_transport: str = "negotiate"
    ssl_peer_verification: bool | None = None
    config: TaskConfig = field(default_factory=TaskConfig)

    @property
    def is_windows(self) -> bool:
        return self.guest.lower() == "windows"

    @property
    def transport(self) -> Transport:
        return Transport.for_machine(self)

    def is_running(self) -> bool:
        return self.state == "running"

    def ssh_info(self) -> SSHInfo | None:
        if not self.is_running():
            return None
        return SSHInfo(
            host=self.host,
            port=self.port if self.port is not None else 22,
            username=self.user,
            private_key_path=list(self.private_key),
            verify_host_key=self.verify_host_key,
        )

    def winrm_info(self) -> WinRMInfo:
        if not self.is_running():
            raise ConnectionNotReadyError(self.name, str(Transport.WINRM))
        return WinRMInfo(
            host=self.host,
            port=self.port if self.port is not None else 5985,
            username=self.user,
            transport=self.winrm_transport,
            ssl_peer_verification=self.ssl_peer_verification,
        )


@dataclass
class StaticEnvironment:
    """An environment holding a fixed, ordered set of machines.

    Attributes:
        root_path: Directory relative paths in bolt configs resolve against
        local_data_path: Directory for generated files such as inventories
        machines: Machines keyed by name, in declaration order
    """

    root_path: Path = field(default_factory=Path.cwd)
    local_data_path: Path | None = None
    machines: dict[str, StaticMachine] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.root_path = Path(self.root_path)
        if self.local_data_path is None:
            self.local_data_path = self.root_path / ".boltrun"
        self.local_data_path = Path(self.local_data_path)

    def add_machine(self, machine: StaticMachine) -> None:
        """Add a machine to the environment."""
        self.machines[machine.name] = machine

    def active_machine_names(self) -> list[str]:
        return list(self.machines)

    def machine_by_name(self, name: str) -> StaticMachine | None:
        return self.machines.get(name)


def _machine_from_dict(name: str, data: dict[str, Any]) -> StaticMachine:
    """Create a StaticMachine from an environment file entry."""
    if not isinstance(data, dict):
        data = {}

    private_key = data.get("private_key", [])
    if isinstance(private_key, str):
        private_key = [private_key]

    bolt = data.get("bolt") or {}
    if not isinstance(bolt, dict):
        raise ConfigError(f"The bolt settings of machine {name} must be a mapping")

    return StaticMachine(
        name=name,
        host=data.get("host", "127.0.0.1"),
        port=data.get("port"),
        user=data.get("user"),
        private_key=list(private_key),
        verify_host_key=data.get("verify_host_key"),
        guest=data.get("guest", "linux"),
        state=data.get("state", "running"),
        winrm_transport=data.get("winrm_transport", "negotiate"),
        ssl_peer_verification=data.get("ssl_peer_verification"),
        config=TaskConfig.from_dict(bolt),
    )


def load_environment(environment_file: str | Path) -> StaticEnvironment:
    """Load an environment description from a YAML file.

    Relative ``root_path`` and ``local_data_path`` values resolve against
    the directory containing the file.

    Args:
        environment_file: Path to the environment YAML file

    Returns:
        StaticEnvironment with machines in file order

    Raises:
        FileNotFoundError: If the file does not exist
        ConfigError: If the file structure is invalid

    Example:
        # environment.yml
        root_path: .
        machines:
          server:
            host: 127.0.0.1
            port: 2222
            user: vagrant
            private_key: .vagrant/machines/server/private_key
          win:
            guest: windows
            port: 55985
            state: poweroff
    """
    path = Path(environment_file)
    data = yaml.safe_load(path.read_text()) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Environment file {path} must contain a mapping")

    base_dir = path.parent
    root_path = base_dir / data.get("root_path", ".")
    local_data_path = data.get("local_data_path")
    if local_data_path is not None:
        local_data_path = base_dir / local_data_path

    environment = StaticEnvironment(
        root_path=root_path.resolve(),
        local_data_path=Path(local_data_path).resolve() if local_data_path else None,
    )

    machines = data.get("machines") or {}
    if not isinstance(machines, dict):
        raise ConfigError(f"'machines' in {path} must be a mapping of name to settings")

    for name, machine_data in machines.items():
        environment.add_machine(_machine_from_dict(str(name), machine_data))

    logger.debug(f"Loaded {len(environment.machines)} machines from {path}")
    return environment
