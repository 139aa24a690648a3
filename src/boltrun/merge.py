"""Config merging for a single bolt invocation.

Layers, from lowest to highest precedence:

1. compiled-in defaults (applied last by ``finalize()``, fill-only)
2. global settings (fill-only)
3. settings declared on the machine's TaskConfig
4. call-site overrides (always win)

Machine connection facts are then filled into whatever is still unset,
so an explicitly configured value is never clobbered.
"""

import logging
from typing import Any

from .config import GlobalConfig, TaskConfig
from .exceptions import ConnectionNotReadyError
from .nodes import node_list, node_uri
from .types import RunKind, Transport

logger = logging.getLogger(__name__)


def _fill(config: TaskConfig, name: str, value: Any) -> None:
    """Set an option only if it is currently unset."""
    if getattr(config, name) is None and value is not None:
        setattr(config, name, value)


def fill_connection_facts(config: TaskConfig, machine, transport: Transport) -> None:
    """Fill unset connection settings from the machine's connection facts.

    Args:
        config: Config to fill in place
        machine: Machine providing ``ssh_info()``/``winrm_info()``
        transport: Transport already chosen for this invocation

    Raises:
        ConnectionNotReadyError: If the machine cannot be reached yet
    """
    if transport is Transport.WINRM:
        if not machine.is_running():
            raise ConnectionNotReadyError(machine.name, str(transport))
        info = machine.winrm_info()
        _fill(config, "node_list", node_uri(str(transport), info.host, info.port))
        _fill(config, "user", info.username)
        _fill(config, "ssl", info.uses_ssl)
        _fill(config, "ssl_verify", info.ssl_peer_verification)
        return

    info = machine.ssh_info()
    if info is None:
        raise ConnectionNotReadyError(machine.name, str(transport))
    _fill(config, "node_list", node_uri(str(transport), info.host, info.port))
    _fill(config, "user", info.username)
    _fill(config, "private_key", info.private_key)
    _fill(config, "host_key_check", info.verify_host_key)


def setup_overrides(
    base: TaskConfig,
    kind: RunKind | str | None,
    name: str | None,
    overrides: dict[str, Any] | None,
    *,
    environment,
    machine,
    transport: Transport,
    global_config: GlobalConfig | None = None,
) -> TaskConfig:
    """Build the effective config for one invocation.

    The base config is cloned, never modified.

    Args:
        base: Config declared for the machine
        kind: Task or plan; always replaces the declared value
        name: Task or plan name; always replaces the declared value
        overrides: Call-site overrides, e.g. ``{"run_as": "root"}``
        environment: Environment used to resolve "all" nodes
        machine: Machine whose connection facts fill unset settings
        transport: Transport chosen for the machine
        global_config: Global settings beneath the declared config

    Returns:
        The merged, finalized TaskConfig. It is not validated.

    Raises:
        ConnectionNotReadyError: If the machine's connection facts are
            not available yet
    """
    config = base.copy()
    config.kind = kind
    config.name = name

    if global_config is not None:
        config.fill_from(global_config)

    if overrides:
        config.set_options(overrides)

    if config.node_list is None:
        config.node_list = node_list(config.nodes, config.excludes, environment)

    fill_connection_facts(config, machine, transport)
    config.finalize()

    logger.debug(f"Effective node list for {machine.name}: {config.node_list}")
    return config
