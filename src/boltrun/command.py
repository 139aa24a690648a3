"""Bolt command construction.

Renders an effective TaskConfig into the bolt command line. The command is
kept as an ordered list of arguments so it can be shown to the user as a
single string and launched as an argument vector, without a shell.

Token order:

1. bolt command
2. ``<kind> run '<name>'``
3. ``-u`` / ``-p`` when a user / password is set
4. transport flags:
   - winrm: ``--ssl``/``--no-ssl`` and ``--ssl-verify``/``--no-ssl-verify``
   - ssh: ``--private-key`` when set, ``--host-key-check``/``--no-host-key-check``,
     ``--sudo-password`` when set
5. ``--run_as`` when set
6. ``--modulepath`` (relative paths resolve against the environment root)
7. ``--tmpdir`` when set
8. ``--boltdir`` (relative paths resolve against the environment root)
9. ``--inventoryfile`` when set
10. ``-n '<node list>'``
11. ``--params '<json>'`` when parameters are set
12. ``--verbose`` / ``--debug`` when enabled
13. additional raw arguments
"""

import json
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .config import TaskConfig
from .types import RunKind, Transport


@dataclass(frozen=True)
class Argument:
    """One token of a bolt command line.

    Attributes:
        flag: Flag or literal words, e.g. ``--modulepath`` or ``task run``
        value: Value following the flag, if any
        quoted: Whether the value is single-quoted when rendered

    Example:
        >>> Argument("-u", "root").render()
        "-u 'root'"
        >>> Argument("-u", "root").argv
        ['-u', 'root']
    """

    flag: str | None
    value: str | None = None
    quoted: bool = True

    def render(self) -> str:
        """Render as command line text."""
        if self.value is None:
            return self.flag or ""
        value = f"'{self.value}'" if self.quoted else self.value
        return f"{self.flag} {value}" if self.flag else value

    @property
    def argv(self) -> list[str]:
        """The argument as separate argv entries."""
        words = self.flag.split() if self.flag else []
        if self.value is not None:
            words.append(self.value)
        return words


@dataclass(frozen=True)
class RawArguments(Argument):
    """Additional arguments passed through verbatim."""

    def render(self) -> str:
        return self.value or ""

    @property
    def argv(self) -> list[str]:
        return shlex.split(self.value or "")


@dataclass(frozen=True)
class BoltCommand:
    """A fully built bolt command.

    Attributes:
        arguments: Command tokens in order
    """

    arguments: tuple[Argument, ...]

    def render(self) -> str:
        """Render the command as a single line of text."""
        return " ".join(argument.render() for argument in self.arguments)

    @property
    def argv(self) -> list[str]:
        """The command as an argument vector for launching without a shell."""
        argv: list[str] = []
        for argument in self.arguments:
            argv.extend(argument.argv)
        return argv

    def __str__(self) -> str:
        return self.render()


def root_relative(path: str, root_path: str | Path) -> str:
    """Resolve a path against the environment root unless it is absolute.

    The path is joined as text, so ``"."`` renders as ``<root>/.``.
    """
    if path.startswith("/"):
        return path
    return f"{root_path}/{path}"


def render_parameters(parameters: dict[str, Any]) -> str:
    """Render task parameters as compact JSON, non-ASCII text kept as is.

    Example:
        >>> render_parameters({"name": "café", "count": 2})
        '{"name":"café","count":2}'
    """
    return json.dumps(parameters, separators=(",", ":"), ensure_ascii=False)


def _toggle(enabled: bool | None, flag: str) -> Argument:
    return Argument(f"--{flag}" if enabled is True else f"--no-{flag}")


def build_command(
    config: TaskConfig,
    transport: Transport,
    root_path: str | Path,
) -> BoltCommand:
    """Build the bolt command for an effective config.

    Building is deterministic and does not modify the config.

    Args:
        config: Effective, validated config
        transport: Transport the target machine is reached over
        root_path: Environment root used for relative module and bolt dirs

    Returns:
        BoltCommand holding the ordered arguments

    Example:
        >>> config = TaskConfig(kind="task", name="foo", node_list="ssh://test:22")
        >>> config.finalize()
        >>> build_command(config, Transport.SSH, "/root/path").render()
        "bolt task run 'foo' --no-host-key-check --modulepath '/root/path/modules' --boltdir '/root/path/.' -n 'ssh://test:22'"
    """
    kind = RunKind.parse(config.kind) or config.kind
    arguments: list[Argument] = [
        Argument(None, config.bolt_command, quoted=False),
        Argument(f"{kind} run", config.name),
    ]
    if config.user is not None:
        arguments.append(Argument("-u", config.user))
    if config.password is not None:
        arguments.append(Argument("-p", config.password))

    if transport is Transport.WINRM:
        arguments.append(_toggle(config.ssl, "ssl"))
        arguments.append(_toggle(config.ssl_verify, "ssl-verify"))
    else:
        if config.private_key is not None:
            arguments.append(Argument("--private-key", config.private_key))
        arguments.append(_toggle(config.host_key_check, "host-key-check"))
        if config.sudo_password is not None:
            arguments.append(Argument("--sudo-password", config.sudo_password))

    if config.run_as is not None:
        arguments.append(Argument("--run_as", config.run_as, quoted=False))
    arguments.append(
        Argument("--modulepath", root_relative(config.modulepath, root_path))
    )
    if config.tmpdir is not None:
        arguments.append(Argument("--tmpdir", config.tmpdir))
    # boltdir always has a default after finalize()
    arguments.append(Argument("--boltdir", root_relative(config.boltdir, root_path)))
    if config.inventoryfile is not None:
        arguments.append(
            Argument("--inventoryfile", root_relative(config.inventoryfile, root_path))
        )
    arguments.append(Argument("-n", config.node_list or ""))
    if config.parameters is not None:
        arguments.append(Argument("--params", render_parameters(config.parameters)))
    if config.verbose:
        arguments.append(Argument("--verbose"))
    if config.debug:
        arguments.append(Argument("--debug"))
    if config.args is not None:
        arguments.append(RawArguments(None, config.args))

    return BoltCommand(tuple(arguments))
