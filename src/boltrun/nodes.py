"""Node resolution for boltrun.

Turns a node specification into the ordered node list handed to bolt:
- Unset or empty: no list, the runner falls back to the machine itself
- A name or a list of names: used verbatim
- The literal "all": every machine defined in the environment

Excluded names are dropped and duplicates removed, keeping first-seen order.
"""

from typing import Callable, Iterable

ALL_NODES = "all"


def _filter_nodes(names: Iterable[str], excludes: Iterable[str] | None) -> list[str]:
    """Drop excluded and duplicate names while keeping order."""
    excluded = set(excludes or [])
    result: list[str] = []
    for name in names:
        if name in excluded or name in result:
            continue
        result.append(name)
    return result


def resolve_nodes(
    nodes: str | list[str] | None,
    excludes: list[str] | None,
    lookup: Callable[[], list[str]],
) -> list[str] | None:
    """Resolve a node specification to an ordered list of node names.

    Args:
        nodes: A name, a list of names, "all", or None
        excludes: Names to leave out
        lookup: Returns every machine name in the environment. Only called
            when ``nodes`` is "all"; any error it raises propagates.

    Returns:
        Ordered, de-duplicated node names, or None when ``nodes`` is unset

    Examples:
        >>> resolve_nodes(["web01", "web02"], [], list)
        ['web01', 'web02']

        >>> resolve_nodes("all", ["b"], lambda: ["a", "b", "c"])
        ['a', 'c']

        >>> resolve_nodes(None, [], list) is None
        True
    """
    if not nodes:
        return None

    if nodes == ALL_NODES:
        return _filter_nodes(lookup(), excludes)

    if isinstance(nodes, str):
        nodes = [nodes]

    return _filter_nodes(nodes, excludes)


def node_list(
    nodes: str | list[str] | None,
    excludes: list[str] | None,
    environment,
) -> str | None:
    """Resolve a node specification into a comma separated node list.

    Args:
        nodes: A name, a list of names, "all", or None
        excludes: Names to leave out
        environment: Environment providing ``active_machine_names()``

    Returns:
        Comma joined node names, or None when ``nodes`` is unset
    """
    resolved = resolve_nodes(nodes, excludes, environment.active_machine_names)
    if resolved is None:
        return None
    return ",".join(resolved)


def node_uri(transport: str, host: str, port: int | str) -> str:
    """Format a node URI such as ``ssh://127.0.0.1:2222``."""
    return f"{transport}://{host}:{port}"
