"""Exceptions raised by boltrun.

Every failure aborts the current invocation. Nothing is launched unless
the whole pipeline (dependency check, override setup, validation, command
build) completes.
"""

from .messages import format_errors, render_message


class BoltRunError(Exception):
    """Base class for all boltrun errors."""


class ConfigError(BoltRunError):
    """Raised when a config or environment file cannot be understood."""


class ConfigInvalidError(BoltRunError):
    """Raised when the effective configuration fails validation.

    Attributes:
        errors: Mapping of bucket name to the messages in that bucket

    Example:
        raise ConfigInvalidError({"Bolt": ["No name set. ..."]})
    """

    def __init__(self, errors: dict[str, list[str]]) -> None:
        self.errors = errors
        self.report = format_errors(errors)
        super().__init__(f"{render_message('validation_failed')}\n\n{self.report}")


class DependencyNotReadyError(BoltRunError):
    """Raised when a dependent machine is unknown or not running."""

    def __init__(self, name: str) -> None:
        super().__init__(render_message("dependent_machines_offline", name=name))
        self.name = name


class ConnectionNotReadyError(BoltRunError):
    """Raised when a machine's connection endpoint cannot be determined."""

    def __init__(self, machine: str, transport: str) -> None:
        super().__init__(
            render_message("connection_not_ready", machine=machine, transport=transport)
        )
        self.machine = machine
        self.transport = transport


class ExecutionFailureError(BoltRunError):
    """Raised when the bolt process exits with a non-zero status.

    Attributes:
        exit_code: Process exit status
        stderr: Captured stderr text
    """

    def __init__(self, exit_code: int, stderr: str = "") -> None:
        message = render_message("bolt_failed", exit_code=exit_code)
        if stderr:
            message = f"{message}\n{stderr.rstrip()}"
        super().__init__(message)
        self.exit_code = exit_code
        self.stderr = stderr
