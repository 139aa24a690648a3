"""User-facing message catalog for boltrun.

Messages are looked up by key and rendered with keyword substitutions,
so the runner and validator never build user-facing text inline.
"""

from typing import Any

MESSAGES: dict[str, str] = {
    # Validation
    "invalid_type": "Invalid type specified: {type}. Valid types are task and plan.",
    "dependencies_not_array": "Dependencies must be an array of machine names.",
    "type_not_specified": "No type set. Please specify either task or plan.",
    "no_task_or_plan": "No name set. Please specify a task or plan name.",
    "unknown_settings": "The following settings shouldn't exist: {settings}",
    # Runner
    "running_bolt": "Running bolt command locally: {command}",
    "dependent_machines_offline": (
        "Dependent machine {name} is not running. "
        "Bring it up before running this task or plan."
    ),
    "connection_not_ready": (
        "Machine {machine} is not ready for {transport} connections. "
        "Make sure it is booted and reachable."
    ),
    "bolt_failed": "Bolt exited with status {exit_code}",
    "validation_failed": "There are errors in the configuration of this machine.",
}


def render_message(key: str, **substitutions: Any) -> str:
    """Render a catalog message.

    Args:
        key: Message key
        **substitutions: Values for the message placeholders

    Returns:
        The rendered message

    Raises:
        KeyError: If the key is not in the catalog

    Example:
        >>> render_message("invalid_type", type="bogus")
        'Invalid type specified: bogus. Valid types are task and plan.'
    """
    return MESSAGES[key].format(**substitutions)


def format_errors(errors: dict[str, list[str]]) -> str:
    """Render validation errors as a human-readable report.

    Each bucket becomes a heading followed by one bullet per message.

    Example:
        >>> print(format_errors({"Bolt": ["No name set."]}))
        Bolt:
        * No name set.
    """
    sections = []
    for bucket, messages in errors.items():
        lines = [f"{bucket}:"]
        lines.extend(f"* {message}" for message in messages)
        sections.append("\n".join(lines))
    return "\n\n".join(sections)
