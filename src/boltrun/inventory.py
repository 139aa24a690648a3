"""Bolt inventory generation for boltrun.

Renders the machines of an environment as a bolt inventory file so bolt
can address them by name. Each running machine becomes a node keyed by its
connection URI with the machine name as alias; global settings become the
inventory-wide ``config`` section.
"""

import logging
from pathlib import Path
from typing import Any

import yaml

from .config import GlobalConfig
from .nodes import node_uri
from .types import Transport

logger = logging.getLogger(__name__)

INVENTORY_FILENAME = "bolt_inventory.yaml"


def _node_entry(machine) -> dict[str, Any] | None:
    """Build the inventory node for one running machine, if reachable."""
    transport = Transport.for_machine(machine)
    settings: dict[str, Any] = {}

    if transport is Transport.WINRM:
        info = machine.winrm_info()
        if info.username is not None:
            settings["user"] = info.username
        settings["ssl"] = info.uses_ssl
        if info.ssl_peer_verification is not None:
            settings["ssl-verify"] = info.ssl_peer_verification
    else:
        info = machine.ssh_info()
        if info is None:
            return None
        if info.username is not None:
            settings["user"] = info.username
        if info.private_key is not None:
            settings["private-key"] = info.private_key
        if info.verify_host_key is not None:
            settings["host-key-check"] = info.verify_host_key

    config: dict[str, Any] = {"transport": str(transport)}
    if settings:
        config[str(transport)] = settings

    return {
        "name": node_uri(str(transport), info.host, info.port),
        "alias": machine.name,
        "config": config,
    }


def generate_inventory(
    environment, global_config: GlobalConfig | None = None
) -> dict[str, Any]:
    """Generate a bolt inventory for every running machine.

    Machines that are not running are skipped since their connection
    endpoints are unknown.

    Args:
        environment: Environment providing the machines
        global_config: Settings for the inventory-wide config section

    Returns:
        Inventory mapping with ``groups``, ``nodes`` and ``config``

    Example:
        >>> inventory = generate_inventory(environment)
        >>> inventory["nodes"][0]["alias"]
        'server'
    """
    nodes = []
    for name in environment.active_machine_names():
        machine = environment.machine_by_name(name)
        if machine is None or not machine.is_running():
            logger.debug(f"Skipping machine {name}: not running")
            continue
        entry = _node_entry(machine)
        if entry is not None:
            nodes.append(entry)

    inventory: dict[str, Any] = {"groups": [], "nodes": nodes}
    config = global_config.inventory_config() if global_config else {}
    if config:
        inventory["config"] = config
    return inventory


def dump_inventory(inventory: dict[str, Any]) -> str:
    """Serialize an inventory mapping as YAML."""
    return yaml.safe_dump(inventory, default_flow_style=False, sort_keys=False)


def inventory_path(environment) -> Path:
    """Default location of the generated inventory for an environment."""
    return Path(environment.local_data_path) / INVENTORY_FILENAME


def write_inventory(path: str | Path, inventory: dict[str, Any]) -> Path:
    """Write an inventory mapping to a YAML file.

    Args:
        path: Destination file; parent directories are created
        inventory: Inventory mapping from ``generate_inventory``

    Returns:
        Path the inventory was written to
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dump_inventory(inventory))
    logger.info(f"Inventory written to {path}")
    return path
