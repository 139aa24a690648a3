"""Bolt configuration objects for boltrun.

Two config layers exist:

- GlobalConfig holds process-wide defaults shared by every machine and can
  render itself as a bolt inventory ``config`` fragment.
- TaskConfig holds what a single machine declares it wants to run. The
  runner clones it per invocation and layers global settings, call-site
  overrides and machine connection facts on top.

Every field starts out as ``None`` ("unset"). Merges only ever fill unset
fields, and ``finalize()`` applies the compiled-in defaults last, so the
defaults always have the lowest precedence.
"""

import copy
import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, ClassVar

import yaml

from .exceptions import ConfigError
from .messages import render_message
from .types import RunKind

logger = logging.getLogger(__name__)


@dataclass
class BoltOptions:
    """Settings shared by the global and per-machine bolt configs.

    Attributes:
        bolt_command: Full path to the bolt executable (default: "bolt")
        boltdir: Bolt project directory (default: ".")
        modulepath: Module path, relative to the environment root unless
            absolute (default: "modules")
        user: User to authenticate as on the target
        password: Password to authenticate with
        private_key: Path to the SSH private key
        sudo_password: Password for sudo on SSH targets
        host_key_check: Whether SSH host keys are verified
        ssl: Whether WinRM connections use SSL
        ssl_verify: Whether WinRM SSL certificates are verified
        tmpdir: Directory to upload and run temporary files from on the target
        run_as: User to run as using privilege escalation
        verbose: Pass --verbose to bolt
        debug: Pass --debug to bolt
    """

    DEFAULTS: ClassVar[dict[str, Any]] = {}

    bolt_command: str | None = None
    boltdir: str | None = None
    modulepath: str | None = None
    user: str | None = None
    password: str | None = None
    private_key: str | None = None
    sudo_password: str | None = None
    host_key_check: bool | None = None
    ssl: bool | None = None
    ssl_verify: bool | None = None
    tmpdir: str | None = None
    run_as: str | None = None
    verbose: bool | None = None
    debug: bool | None = None
    _unknown: list[str] = field(
        default_factory=list, init=False, repr=False, compare=False
    )

    @classmethod
    def option_names(cls) -> list[str]:
        """Names of all settable options, in declaration order."""
        return [f.name for f in fields(cls) if not f.name.startswith("_")]

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "BoltOptions":
        """Create a config from a mapping of option names to values.

        Unknown keys are remembered and reported by ``validate()``
        instead of raising here.
        """
        config = cls()
        config.set_options(data or {})
        return config

    def set_options(self, options: dict[str, Any]) -> None:
        """Set options unconditionally, overwriting current values.

        Args:
            options: Mapping of option name to value
        """
        known = set(self.option_names())
        for key, value in options.items():
            if key in known:
                setattr(self, key, value)
            elif key not in self._unknown:
                logger.debug(f"Ignoring unknown setting {key}")
                self._unknown.append(key)

    def fill_from(self, other: "BoltOptions") -> None:
        """Fill unset options from another config.

        Only options both configs define are considered, and a value is
        taken only where this config's value is ``None``. Unknown settings
        recorded by a config of the same type carry over, so they are still
        reported by ``validate()``.
        """
        known = set(self.option_names())
        for name in other.option_names():
            if name not in known:
                continue
            value = getattr(other, name)
            if getattr(self, name) is None and value is not None:
                setattr(self, name, copy.deepcopy(value))

        if isinstance(other, type(self)):
            for key in other._unknown:
                if key not in self._unknown:
                    self._unknown.append(key)

    def finalize(self) -> None:
        """Apply compiled-in defaults to options that are still unset."""
        for name, default in self.DEFAULTS.items():
            if getattr(self, name) is None:
                setattr(self, name, copy.deepcopy(default))

    def copy(self):
        """Return an independent deep copy of this config."""
        return copy.deepcopy(self)

    def unknown_settings(self) -> list[str]:
        """Names of options that were set but are not recognized."""
        return list(self._unknown)

    def _detected_errors(self) -> list[str]:
        if not self._unknown:
            return []
        return [render_message("unknown_settings", settings=", ".join(self._unknown))]


@dataclass
class TaskConfig(BoltOptions):
    """Per-machine bolt configuration for running a task or plan.

    Attributes:
        kind: What to run, task or plan
        name: Name of the task or plan
        parameters: Parameters for the task or plan, passed as JSON
        nodes: Target nodes: a name, a list of names, or "all". Defaults
            to the machine the config belongs to.
        excludes: Machine names to drop from ``nodes``
        node_list: Comma separated node list handed to bolt. Once set it
            is never recomputed.
        dependencies: Machines that must be running before this runs
        inventoryfile: Bolt inventory file to pass to bolt
        args: Additional raw arguments appended to the bolt command

    Example:
        >>> config = TaskConfig(nodes=["server", "server2"])
        >>> config.finalize()
        >>> config.modulepath
        'modules'
    """

    DEFAULTS: ClassVar[dict[str, Any]] = {
        "bolt_command": "bolt",
        "boltdir": ".",
        "modulepath": "modules",
        "host_key_check": False,
        "ssl": False,
        "ssl_verify": False,
        "verbose": False,
        "debug": False,
        "excludes": [],
    }

    kind: RunKind | str | None = None
    name: str | None = None
    parameters: dict[str, Any] | None = None
    nodes: str | list[str] | None = None
    excludes: list[str] | None = None
    node_list: str | None = None
    dependencies: list[str] | None = None
    inventoryfile: str | None = None
    args: str | None = None

    def validate(self) -> dict[str, list[str]]:
        """Check the config for structural problems.

        Returns:
            ``{"Bolt": [messages]}``; the list is empty when valid
        """
        errors = self._detected_errors()
        if self.kind is not None and RunKind.parse(self.kind) is None:
            errors.append(render_message("invalid_type", type=str(self.kind)))
        if self.dependencies is not None and not isinstance(
            self.dependencies, (list, tuple)
        ):
            errors.append(render_message("dependencies_not_array"))
        if self.kind is None and self.name is not None:
            errors.append(render_message("type_not_specified"))
        elif self.kind is not None and self.name is None:
            errors.append(render_message("no_task_or_plan"))

        return {"Bolt": errors}


# Settings bolt understands per transport in an inventory config section
INVENTORY_SETTINGS: dict[str, list[str]] = {
    "ssh": [
        "user",
        "password",
        "run_as",
        "port",
        "private_key",
        "host_key_check",
        "sudo_password",
    ],
    "winrm": [
        "user",
        "password",
        "run_as",
        "ssl",
        "ssl_verify",
        "port",
    ],
}


@dataclass
class GlobalConfig(BoltOptions):
    """Process-wide bolt settings layered beneath every TaskConfig.

    Attributes:
        port: Port used in the generated inventory config

    Example:
        >>> config = GlobalConfig(run_as="root", port="22")
        >>> config.finalize()
        >>> config.inventory_config()["ssh"]
        {'run-as': 'root', 'port': '22'}
    """

    DEFAULTS: ClassVar[dict[str, Any]] = {
        "bolt_command": "bolt",
        "boltdir": ".",
        "modulepath": "modules",
    }

    port: int | str | None = None

    def validate(self) -> dict[str, list[str]]:
        """Check the config for unknown settings."""
        return {"GlobalBolt": self._detected_errors()}

    def inventory_config(self) -> dict[str, dict[str, Any]]:
        """Generate a bolt inventory config section from this config.

        Only settings that are set and that a transport recognizes are
        included. Setting names have ``_`` replaced by ``-``.

        Returns:
            Mapping of transport name to its settings
        """
        configs: dict[str, dict[str, Any]] = {}
        for name in self.option_names():
            value = getattr(self, name)
            if value is None:
                continue
            for transport, settings in INVENTORY_SETTINGS.items():
                if name not in settings:
                    continue
                configs.setdefault(transport, {})[name.replace("_", "-")] = value
        return configs


def load_config(config_file: str | Path) -> tuple[GlobalConfig, TaskConfig]:
    """Load global and per-machine bolt settings from a YAML file.

    The file may contain a ``global`` section and a ``bolt`` section; both
    are optional. The returned configs are not finalized.

    Args:
        config_file: Path to the YAML config file

    Returns:
        Tuple of (GlobalConfig, TaskConfig)

    Raises:
        FileNotFoundError: If the file does not exist
        ConfigError: If the file is not a mapping of mappings

    Example:
        # boltrun.yml
        global:
          run_as: root
        bolt:
          nodes: all
          excludes: [db01]
    """
    path = Path(config_file)
    data = yaml.safe_load(path.read_text()) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    sections = {}
    for section in ("global", "bolt"):
        value = data.get(section) or {}
        if not isinstance(value, dict):
            raise ConfigError(f"Section '{section}' in {path} must be a mapping")
        sections[section] = value

    unexpected = sorted(set(data) - set(sections))
    if unexpected:
        logger.warning(f"Ignoring unknown sections in {path}: {', '.join(unexpected)}")

    return (
        GlobalConfig.from_dict(sections["global"]),
        TaskConfig.from_dict(sections["bolt"]),
    )
