"""Tests for the bolt runner."""

import pytest

from boltrun.config import GlobalConfig, TaskConfig
from boltrun.environment import StaticMachine
from boltrun.exceptions import (
    ConfigInvalidError,
    ConnectionNotReadyError,
    DependencyNotReadyError,
    ExecutionFailureError,
)
from boltrun.runner import Runner
from boltrun.types import Transport

from conftest import FakeExecutor


def make_runner(environment, machine, config, executor, ui, **kwargs):
    return Runner(environment, machine, config, executor=executor, ui=ui, **kwargs)


class TestSetupOverrides:
    """Tests for the effective config a runner builds."""

    def _effective(self, runner, kind="task", name="foo", **overrides):
        from boltrun.merge import setup_overrides

        return setup_overrides(
            runner.config,
            kind,
            name,
            overrides,
            environment=runner.environment,
            machine=runner.machine,
            transport=Transport.for_machine(runner.machine),
            global_config=runner.global_config,
        )

    def test_adds_kind_and_name(self, environment, server, config, executor, ui):
        """Test that the kind and name are added to the config."""
        runner = make_runner(environment, server, config, executor, ui)
        result = self._effective(runner)

        assert result.kind == "task"
        assert result.name == "foo"

    def test_uses_machine_connection_without_nodes(self, environment, server, config, executor, ui):
        """Test that the machine's own SSH endpoint is used when no nodes are set."""
        runner = make_runner(environment, server, config, executor, ui)
        result = self._effective(runner)

        assert result.node_list == "ssh://foo:22"

    def test_multiple_nodes(self, environment, server, config, executor, ui):
        """Test that a list of nodes is joined in order."""
        config.nodes = ["server", "server2"]
        runner = make_runner(environment, server, config, executor, ui)
        result = self._effective(runner)

        assert result.node_list == "server,server2"

    def test_all_nodes(self, environment, server, config, executor, ui):
        """Test that "all" expands to every machine in the environment."""
        config.nodes = "all"
        runner = make_runner(environment, server, config, executor, ui)
        result = self._effective(runner)

        assert result.node_list == "server,server2"

    def test_all_nodes_with_excludes(self, environment, server, config, executor, ui):
        """Test that excluded machines are dropped from "all"."""
        config.nodes = "all"
        config.excludes = ["server2"]
        runner = make_runner(environment, server, config, executor, ui)
        result = self._effective(runner)

        assert result.node_list == "server"

    def test_does_not_override_specified_settings(self, environment, server, config, executor, ui):
        """Test that explicit settings win over machine connection facts."""
        config.node_list = "ssh://test:22"
        config.user = "root"
        config.host_key_check = False
        runner = make_runner(environment, server, config, executor, ui)
        result = self._effective(runner)

        assert result.node_list == "ssh://test:22"
        assert result.user == "root"
        assert result.host_key_check is False

    def test_fills_unset_settings_from_ssh_facts(self, environment, server, config, executor, ui):
        """Test that unset settings are taken from the machine's SSH facts."""
        runner = make_runner(environment, server, config, executor, ui)
        result = self._effective(runner)

        assert result.user == "user"
        assert result.private_key == "path"
        assert result.host_key_check is True

    def test_additional_overrides(self, environment, server, config, executor, ui):
        """Test that call-site overrides are applied."""
        runner = make_runner(environment, server, config, executor, ui)
        result = self._effective(runner, password="foo")

        assert result.password == "foo"

    def test_overrides_win_over_declared_settings(self, environment, server, config, executor, ui):
        """Test that call-site overrides replace declared values."""
        config.run_as = "vagrant"
        runner = make_runner(environment, server, config, executor, ui)
        result = self._effective(runner, run_as="root")

        assert result.run_as == "root"

    def test_declared_config_not_modified(self, environment, server, config, executor, ui):
        """Test that the declared config is cloned, never modified."""
        runner = make_runner(environment, server, config, executor, ui)
        self._effective(runner, password="foo")

        assert config == TaskConfig()
        assert config.node_list is None
        assert config.kind is None

    def test_global_config_beneath_declared(self, environment, server, config, executor, ui):
        """Test that global settings only fill what the machine leaves unset."""
        config.run_as = "vagrant"
        global_config = GlobalConfig(run_as="root", tmpdir="/tmp/bolt", user="admin")
        runner = make_runner(
            environment, server, config, executor, ui, global_config=global_config
        )
        result = self._effective(runner)

        assert result.run_as == "vagrant"
        assert result.tmpdir == "/tmp/bolt"
        # Global settings take precedence over connection facts
        assert result.user == "admin"

    def test_defaults_applied(self, environment, server, config, executor, ui):
        """Test that compiled-in defaults fill what is left."""
        runner = make_runner(environment, server, config, executor, ui)
        result = self._effective(runner)

        assert result.modulepath == "modules"
        assert result.bolt_command == "bolt"
        assert result.boltdir == "."

    def test_windows_facts(self, environment, windows, config, executor, ui):
        """Test that WinRM facts fill unset settings for Windows machines."""
        runner = make_runner(environment, windows, config, executor, ui)
        result = self._effective(runner)

        assert result.node_list == "winrm://winhost:5986"
        assert result.user == "Administrator"
        assert result.ssl is True
        assert result.ssl_verify is True
        assert result.private_key is None

    def test_windows_explicit_ssl_kept(self, environment, windows, config, executor, ui):
        """Test that an explicit ssl=False is not replaced by WinRM facts."""
        config.ssl = False
        runner = make_runner(environment, windows, config, executor, ui)
        result = self._effective(runner)

        assert result.ssl is False


class TestRun:
    """Tests for Runner.run."""

    @pytest.fixture
    def declared(self, config):
        config.node_list = "ssh://test:22"
        return config

    def test_runs_bolt(self, environment, server, declared, executor, ui):
        """Test that a valid config launches bolt with the built command."""
        runner = make_runner(environment, server, declared, executor, ui)
        result = runner.run("task", "foo")

        assert result.exit_code == 0
        assert len(executor.calls) == 1
        assert executor.calls[0]["argv"] == [
            "bolt", "task", "run", "foo",
            "-u", "user",
            "--private-key", "path",
            "--host-key-check",
            "--modulepath", "/root/path/modules",
            "--boltdir", "/root/path/.",
            "-n", "ssh://test:22",
        ]

    def test_reports_command(self, environment, server, declared, executor, ui):
        """Test that the command is shown before it runs."""
        runner = make_runner(environment, server, declared, executor, ui)
        runner.run("task", "foo")

        assert ui.infos[0] == (
            "Running bolt command locally: bolt task run 'foo' -u 'user' "
            "--private-key 'path' --host-key-check --modulepath '/root/path/modules' "
            "--boltdir '/root/path/.' -n 'ssh://test:22'"
        )

    def test_streams_output(self, environment, server, declared, ui):
        """Test that stdout goes to info and stderr to warnings."""
        executor = FakeExecutor(stdout=["Started on foo..."], stderr=["deprecated"])
        runner = make_runner(environment, server, declared, executor, ui)
        runner.run("task", "foo")

        assert "Started on foo..." in ui.infos
        assert ui.warnings == ["deprecated"]

    def test_uses_original_path(self, environment, server, declared, executor, ui):
        """Test that bolt runs with the caller supplied PATH."""
        runner = make_runner(
            environment, server, declared, executor, ui, original_path="/usr/bin:/bin"
        )
        runner.run("task", "foo")

        assert executor.calls[0]["env"]["PATH"] == "/usr/bin:/bin"

    def test_command_is_repeatable(self, environment, server, declared, executor, ui):
        """Test that building the same invocation twice gives the same command."""
        runner = make_runner(environment, server, declared, executor, ui)
        first = runner.command("task", "foo", run_as="root")
        second = runner.command("task", "foo", run_as="root")

        assert first.render() == second.render()
        assert executor.calls == []

    def test_missing_kind(self, environment, server, declared, executor, ui):
        """Test that a missing kind fails validation."""
        runner = make_runner(environment, server, declared, executor, ui)

        with pytest.raises(ConfigInvalidError, match="No type set"):
            runner.run(None, "foo")
        assert executor.calls == []

    def test_missing_name(self, environment, server, declared, executor, ui):
        """Test that a missing name fails validation."""
        runner = make_runner(environment, server, declared, executor, ui)

        with pytest.raises(ConfigInvalidError, match="No name set"):
            runner.run("task", None)
        assert executor.calls == []

    def test_invalid_kind(self, environment, server, declared, executor, ui):
        """Test that an unknown kind fails validation."""
        runner = make_runner(environment, server, declared, executor, ui)

        with pytest.raises(ConfigInvalidError, match="Invalid type specified: bogus"):
            runner.run("bogus", "foo")

    def test_unknown_override(self, environment, server, declared, executor, ui):
        """Test that an unknown override is reported by validation."""
        runner = make_runner(environment, server, declared, executor, ui)

        with pytest.raises(ConfigInvalidError) as excinfo:
            runner.run("task", "foo", colour="blue")
        assert excinfo.value.errors == {
            "Bolt": ["The following settings shouldn't exist: colour"]
        }

    def test_failed_execution(self, environment, server, declared, ui):
        """Test that a non-zero exit status raises with stderr."""
        executor = FakeExecutor(exit_code=2, stderr=["Could not find task foo"])
        runner = make_runner(environment, server, declared, executor, ui)

        with pytest.raises(ExecutionFailureError) as excinfo:
            runner.run("task", "foo")
        assert excinfo.value.exit_code == 2
        assert "Could not find task foo" in excinfo.value.stderr

    def test_windows_command(self, environment, windows, config, executor, ui):
        """Test that Windows machines get WinRM flags only."""
        config.ssl = False
        runner = make_runner(environment, windows, config, executor, ui)
        command = runner.command("task", "foo").render()

        assert command == (
            "bolt task run 'foo' -u 'Administrator' --no-ssl --ssl-verify "
            "--modulepath '/root/path/modules' --boltdir '/root/path/.' "
            "-n 'winrm://winhost:5986'"
        )

    def test_windows_not_running(self, environment, config, executor, ui):
        """Test that a stopped Windows machine is not ready."""
        machine = StaticMachine(name="win", guest="windows", state="poweroff")
        runner = make_runner(environment, machine, config, executor, ui)

        with pytest.raises(ConnectionNotReadyError):
            runner.run("task", "foo")
        assert executor.calls == []

    def test_ssh_not_ready(self, environment, config, executor, ui):
        """Test that a machine without SSH facts is not ready."""
        machine = StaticMachine(name="server", state="poweroff")
        runner = make_runner(environment, machine, config, executor, ui)

        with pytest.raises(ConnectionNotReadyError, match="not ready for ssh"):
            runner.run("task", "foo")
        assert executor.calls == []

    def test_machine_config_used_by_default(self, environment, executor, ui):
        """Test that the machine's declared config is used when none is given."""
        machine = StaticMachine(name="server", config=TaskConfig(run_as="root"))
        runner = Runner(environment, machine, executor=executor, ui=ui)

        assert "--run_as root" in runner.command("task", "foo").render()


class TestDependencies:
    """Tests for dependent machine checks."""

    def test_running_dependency(self, environment, server, config, executor, ui):
        """Test that running dependencies let the run proceed."""
        config.dependencies = ["server2"]
        runner = make_runner(environment, server, config, executor, ui)
        runner.run("task", "foo")

        assert len(executor.calls) == 1

    def test_stopped_dependency(self, environment, server, server2, config, executor, ui):
        """Test that a stopped dependency aborts before bolt is launched."""
        server2.state = "poweroff"
        config.dependencies = ["server2"]
        runner = make_runner(environment, server, config, executor, ui)

        with pytest.raises(DependencyNotReadyError) as excinfo:
            runner.run("task", "foo")
        assert excinfo.value.name == "server2"
        assert executor.calls == []
        assert ui.errors == [str(excinfo.value)]

    def test_unknown_dependency(self, environment, server, config, executor, ui):
        """Test that an unknown dependency aborts before bolt is launched."""
        config.dependencies = ["missing"]
        runner = make_runner(environment, server, config, executor, ui)

        with pytest.raises(DependencyNotReadyError, match="missing"):
            runner.run("task", "foo")
        assert executor.calls == []

    def test_dependency_checked_before_connection(self, environment, config, executor, ui):
        """Test that dependencies are checked before connection facts."""
        machine = StaticMachine(name="server", state="poweroff")
        config.dependencies = ["missing"]
        runner = make_runner(environment, machine, config, executor, ui)

        with pytest.raises(DependencyNotReadyError):
            runner.run("task", "foo")

    def test_scalar_dependencies_reported_by_validation(self, environment, server, config, executor, ui):
        """Test that non-list dependencies fail validation."""
        config.dependencies = "server2"
        runner = make_runner(environment, server, config, executor, ui)

        with pytest.raises(ConfigInvalidError, match="Dependencies must be an array"):
            runner.run("task", "foo")
