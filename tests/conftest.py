"""Shared fixtures for boltrun tests."""

import logging
from pathlib import Path

import pytest

from boltrun.config import TaskConfig
from boltrun.environment import StaticEnvironment, StaticMachine
from boltrun.types import ProcessResult

ROOT_PATH = "/root/path"
LOCAL_DATA_PATH = "/local/data/path"


class FakeExecutor:
    """Process executor that records calls instead of launching anything."""

    def __init__(self, exit_code=0, stdout=(), stderr=()):
        self.exit_code = exit_code
        self.stdout = list(stdout)
        self.stderr = list(stderr)
        self.calls = []

    def execute(self, argv, env, on_stdout, on_stderr):
        self.calls.append({"argv": argv, "env": env})
        for line in self.stdout:
            on_stdout(line)
        for line in self.stderr:
            on_stderr(line)
        stderr = "".join(f"{line}\n" for line in self.stderr)
        return ProcessResult(exit_code=self.exit_code, stderr=stderr)


class RecordingUI:
    """User interface that keeps every message it is given."""

    def __init__(self):
        self.infos = []
        self.warnings = []
        self.errors = []

    def info(self, message):
        self.infos.append(message)

    def warn(self, message):
        self.warnings.append(message)

    def error(self, message):
        self.errors.append(message)


@pytest.fixture
def server():
    """A running Linux machine with SSH facts."""
    return StaticMachine(
        name="server",
        host="foo",
        port="22",
        user="user",
        private_key=["path"],
        verify_host_key=True,
    )


@pytest.fixture
def server2():
    """A second running Linux machine."""
    return StaticMachine(name="server2", host="bar", port="2200", user="user")


@pytest.fixture
def windows():
    """A running Windows machine reached over WinRM."""
    return StaticMachine(
        name="win",
        host="winhost",
        port=5986,
        user="Administrator",
        guest="windows",
        winrm_transport="ssl",
        ssl_peer_verification=True,
    )


@pytest.fixture
def environment(server, server2):
    """Environment with two running Linux machines."""
    env = StaticEnvironment(root_path=Path(ROOT_PATH), local_data_path=Path(LOCAL_DATA_PATH))
    env.add_machine(server)
    env.add_machine(server2)
    return env


@pytest.fixture
def config():
    """An empty declared bolt config."""
    return TaskConfig()


@pytest.fixture
def executor():
    return FakeExecutor()


@pytest.fixture
def ui():
    return RecordingUI()


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo handler and level changes made by configure_logging."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
