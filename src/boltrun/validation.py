"""Validation of the effective bolt configuration.

Errors are collected into named buckets so every problem is reported at
once. Empty buckets are pruned; anything left over stops the run before a
command is built.
"""

from .config import TaskConfig
from .exceptions import ConfigInvalidError
from .messages import format_errors, render_message

__all__ = ["validate", "ensure_valid", "format_errors"]


def _required_errors(config: TaskConfig) -> list[str]:
    errors = []
    if config.kind is None:
        errors.append(render_message("type_not_specified"))
    if config.name is None:
        errors.append(render_message("no_task_or_plan"))
    return errors


def validate(config: TaskConfig) -> dict[str, list[str]]:
    """Validate an effective config.

    Combines the config's own structural checks with the requirement that
    a kind and a name are set. Validation has no side effects.

    Args:
        config: Effective config for one invocation

    Returns:
        Mapping of bucket name to error messages, with empty buckets
        removed. An empty mapping means the config is valid.

    Example:
        >>> validate(TaskConfig(kind="task", name="foo"))
        {}
        >>> validate(TaskConfig(kind="task"))
        {'Bolt': ['No name set. Please specify a task or plan name.']}
    """
    errors: dict[str, list[str]] = {}
    for bucket, messages in config.validate().items():
        errors.setdefault(bucket, []).extend(messages)

    bucket = errors.setdefault("Bolt", [])
    for message in _required_errors(config):
        if message not in bucket:
            bucket.append(message)

    return {key: messages for key, messages in errors.items() if messages}


def ensure_valid(config: TaskConfig) -> None:
    """Raise if the config has validation errors.

    Raises:
        ConfigInvalidError: With every error found, grouped by bucket
    """
    errors = validate(config)
    if errors:
        raise ConfigInvalidError(errors)
