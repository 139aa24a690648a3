"""Logging setup for boltrun.

The command line maps ``-v`` counts onto levels, with a TRACE level below
DEBUG that shows each invocation's effective config. The runner logs
through a ``StructuredLogger`` so every line names the machine it is for.
"""

import logging
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator

CONSOLE_FORMAT = "%(levelname)s [%(name)s] %(message)s"
DETAILED_FORMAT = "%(asctime)s %(levelname)s [%(name)s:%(funcName)s:%(lineno)d] %(message)s"

# Below DEBUG; effective configs are logged here
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

VERBOSITY_LEVELS = {
    0: logging.WARNING,
    1: logging.INFO,
    2: logging.DEBUG,
    3: TRACE,
}


def get_level_from_verbosity(verbosity: int) -> int:
    """Map a ``-v`` count to a logging level; three or more means TRACE."""
    return VERBOSITY_LEVELS[min(verbosity, 3)]


def configure_logging(level: int = logging.WARNING, log_file: str | Path | None = None) -> None:
    """Send boltrun's log records to stderr and optionally to a file.

    Existing root handlers are replaced. At DEBUG and below the console
    format includes timestamps and source locations; the file always does.

    Args:
        level: Level for both the console and the log file
        log_file: Optional file that receives the same records

    Example:
        >>> configure_logging(get_level_from_verbosity(2), log_file="boltrun.log")
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(
        logging.Formatter(DETAILED_FORMAT if level <= logging.DEBUG else CONSOLE_FORMAT)
    )
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(logging.Formatter(DETAILED_FORMAT))
        root_logger.addHandler(file_handler)


def _describe(context: dict[str, Any]) -> str:
    return ", ".join(f"{key}={value}" for key, value in context.items())


@contextmanager
def log_scope(
    logger: logging.Logger,
    stage: str,
    level: int = logging.DEBUG,
    **context: Any,
) -> Generator[None, None, None]:
    """Log when a runner stage starts and ends, even if it raises.

    Example:
        >>> with log_scope(logger, "Setting up overrides", transport="ssh"):
        ...     config = setup_overrides(...)
        DEBUG: Entering: Setting up overrides (transport=ssh)
        DEBUG: Exiting: Setting up overrides (transport=ssh)
    """
    label = f"{stage} ({_describe(context)})" if context else stage
    logger.log(level, f"Entering: {label}")
    try:
        yield
    finally:
        logger.log(level, f"Exiting: {label}")


class StructuredLogger:
    """A logger that appends fixed context, such as the machine, to each line.

    Attributes:
        logger: Underlying ``logging.Logger``
        context: Key/value pairs rendered after every message
    """

    def __init__(self, name: str, **context: Any) -> None:
        self.logger = logging.getLogger(name)
        self.context: dict[str, Any] = dict(context)

    def _format(self, message: str) -> str:
        return f"{message} ({_describe(self.context)})" if self.context else message

    def trace(self, message: str) -> None:
        self.logger.log(TRACE, self._format(message))

    def debug(self, message: str) -> None:
        self.logger.debug(self._format(message))

    def warning(self, message: str) -> None:
        self.logger.warning(self._format(message))

    @contextmanager
    def performance(self, operation: str, level: int = logging.INFO) -> Generator[None, None, None]:
        """Log how long the wrapped block took, including when it raises.

        Example:
            >>> with logger.performance("Bolt run"):
            ...     executor.execute(argv, env, ui.info, ui.warn)
            INFO: Bolt run completed in 4.210s (machine=server)
        """
        start = time.perf_counter()
        try:
            yield
        finally:
            duration = time.perf_counter() - start
            self.logger.log(level, self._format(f"{operation} completed in {duration:.3f}s"))


def get_logger(name: str, **context: Any) -> StructuredLogger:
    """Return a ``StructuredLogger`` for ``name`` carrying ``context``."""
    return StructuredLogger(name, **context)
