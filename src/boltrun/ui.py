"""User-facing output for boltrun.

The runner reports progress and streams bolt's output through a
``UserInterface``. ``ConsoleUI`` prints to the terminal with Rich.
"""

from typing import Protocol

from rich.console import Console


class UserInterface(Protocol):
    """Destination for messages shown to the user."""

    def info(self, message: str) -> None:
        ...

    def warn(self, message: str) -> None:
        ...

    def error(self, message: str) -> None:
        ...


class ConsoleUI:
    """Print messages to the terminal, prefixed with the machine name.

    Info goes to stdout; warnings and errors go to stderr in color.
    Markup, emoji codes, highlighting and wrapping are disabled so bolt
    output prints exactly as bolt wrote it.

    Attributes:
        prefix: Text shown before each line, usually the machine name
    """

    def __init__(
        self,
        prefix: str = "",
        console: Console | None = None,
        error_console: Console | None = None,
    ) -> None:
        self.prefix = prefix
        self.console = console or Console(highlight=False, emoji=False, soft_wrap=True)
        self.error_console = error_console or Console(
            stderr=True, highlight=False, emoji=False, soft_wrap=True
        )

    def _format(self, message: str) -> str:
        return f"{self.prefix}: {message}" if self.prefix else message

    def _print(self, console: Console, message: str, style: str | None = None) -> None:
        console.print(
            self._format(message),
            style=style,
            markup=False,
            emoji=False,
            highlight=False,
            soft_wrap=True,
        )

    def info(self, message: str) -> None:
        self._print(self.console, message)

    def warn(self, message: str) -> None:
        self._print(self.error_console, message, style="yellow")

    def error(self, message: str) -> None:
        self._print(self.error_console, message, style="red")
