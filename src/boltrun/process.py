"""External process execution for boltrun.

Launches bolt as an argument vector (no intermediate shell) and streams
its stdout and stderr line by line to callbacks as the lines arrive.
"""

import asyncio
import logging
import os
from typing import Callable, Protocol

from .types import ProcessResult

logger = logging.getLogger(__name__)

# Environment variable holding the PATH bolt should run with
ORIGINAL_PATH_VARIABLE = "BOLTRUN_ORIGINAL_PATH"

LineCallback = Callable[[str], None]

READ_CHUNK_SIZE = 64 * 1024


class ProcessExecutor(Protocol):
    """Runs an external command and reports its output as it arrives."""

    def execute(
        self,
        argv: list[str],
        env: dict[str, str] | None,
        on_stdout: LineCallback,
        on_stderr: LineCallback,
    ) -> ProcessResult:
        ...


def build_env(original_path: str | None = None) -> dict[str, str]:
    """Build the environment for the bolt process.

    Args:
        original_path: PATH to restore for bolt. When None, the value of
            ``BOLTRUN_ORIGINAL_PATH`` is used if set, otherwise the
            current PATH is kept.

    Returns:
        A copy of the current environment with PATH replaced
    """
    env = dict(os.environ)
    if original_path is None:
        original_path = os.environ.get(ORIGINAL_PATH_VARIABLE)
    if original_path is not None:
        env["PATH"] = original_path
    return env


async def _pump(
    stream: asyncio.StreamReader,
    callback: LineCallback,
    captured: list[str] | None = None,
) -> None:
    """Forward each line of a stream to a callback.

    The stream is read in chunks and split on newlines here, so a single
    line may be any length.
    """

    def deliver(line: bytes) -> None:
        text = line.decode(errors="replace")
        if captured is not None:
            captured.append(text)
        callback(text.rstrip("\r\n"))

    buffer = bytearray()
    while True:
        chunk = await stream.read(READ_CHUNK_SIZE)
        if not chunk:
            break
        buffer.extend(chunk)
        start = 0
        while (end := buffer.find(b"\n", start)) != -1:
            deliver(bytes(buffer[start:end + 1]))
            start = end + 1
        del buffer[:start]

    if buffer:
        deliver(bytes(buffer))


async def stream_process(
    argv: list[str],
    env: dict[str, str] | None,
    on_stdout: LineCallback,
    on_stderr: LineCallback,
) -> ProcessResult:
    """Run a process, streaming stdout and stderr lines to callbacks.

    Args:
        argv: Command and arguments
        env: Environment for the process, or None to inherit
        on_stdout: Called with each stdout line (without newline)
        on_stderr: Called with each stderr line (without newline)

    Returns:
        ProcessResult with exit code and the captured stderr text

    Raises:
        FileNotFoundError: If the command does not exist
    """
    logger.debug(f"Executing: {argv}")
    proc = await asyncio.create_subprocess_exec(
        *argv,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        env=env,
    )

    stderr_lines: list[str] = []
    try:
        await asyncio.gather(
            _pump(proc.stdout, on_stdout),
            _pump(proc.stderr, on_stderr, stderr_lines),
        )
        exit_code = await proc.wait()
    finally:
        if proc.returncode is None:
            logger.debug(f"Killing process {proc.pid}")
            proc.kill()
            await proc.wait()

    logger.debug(f"Process exited with status {exit_code}")
    return ProcessResult(exit_code=exit_code, stderr="".join(stderr_lines))


class SubprocessExecutor:
    """Blocking executor that runs the process on its own event loop.

    Example:
        >>> executor = SubprocessExecutor()
        >>> result = executor.execute(["echo", "hi"], None, print, print)
        hi
        >>> result.exit_code
        0
    """

    def execute(
        self,
        argv: list[str],
        env: dict[str, str] | None,
        on_stdout: LineCallback,
        on_stderr: LineCallback,
    ) -> ProcessResult:
        return asyncio.run(stream_process(argv, env, on_stdout, on_stderr))
