"""Bolt task and plan runner.

``Runner`` drives one bolt invocation for a machine through these stages:

    dependency check -> override setup -> validation -> command build -> execute

Any failure before execution aborts the invocation without launching bolt.
The machine's declared config is cloned for every invocation and never
modified, so one Runner can be reused and several Runners can run side by
side against independent machines.
"""

from typing import Any

from .command import BoltCommand, build_command
from .config import GlobalConfig, TaskConfig
from .exceptions import DependencyNotReadyError, ExecutionFailureError
from .logging import get_logger, log_scope
from .merge import setup_overrides
from .messages import render_message
from .process import ProcessExecutor, SubprocessExecutor, build_env
from .types import ProcessResult, RunKind, Transport
from .ui import ConsoleUI, UserInterface
from .validation import ensure_valid


class Runner:
    """Runs bolt tasks and plans for a machine.

    Attributes:
        environment: Environment the machine belongs to
        machine: Machine the invocation is for
        config: Bolt config declared for the machine (never modified)
        global_config: Global bolt settings layered beneath ``config``
        executor: Collaborator that launches the bolt process
        ui: Destination for user-facing messages and bolt output
        original_path: PATH to run bolt with instead of the current one

    Example:
        >>> runner = Runner(environment, environment.machine_by_name("server"))
        >>> runner.run("task", "package", parameters={"name": "cowsay"})
    """

    def __init__(
        self,
        environment,
        machine,
        config: TaskConfig | None = None,
        *,
        global_config: GlobalConfig | None = None,
        executor: ProcessExecutor | None = None,
        ui: UserInterface | None = None,
        original_path: str | None = None,
    ) -> None:
        self.environment = environment
        self.machine = machine
        if config is None:
            config = getattr(machine, "config", None) or TaskConfig()
        self.config = config
        self.global_config = global_config
        self.executor = executor or SubprocessExecutor()
        self.ui = ui or ConsoleUI(prefix=machine.name)
        self.original_path = original_path
        self.logger = get_logger(__name__, machine=machine.name)

    def run(
        self, kind: RunKind | str | None, name: str | None, **overrides: Any
    ) -> ProcessResult:
        """Run a bolt task or plan.

        Args:
            kind: "task" or "plan"
            name: Name of the task or plan
            **overrides: Config overrides for this invocation only,
                e.g. ``run_as="root"``. They replace declared values.

        Returns:
            ProcessResult of the successful bolt run

        Raises:
            DependencyNotReadyError: If a dependent machine is not running
            ConnectionNotReadyError: If the machine cannot be reached yet
            ConfigInvalidError: If the effective config is invalid
            ExecutionFailureError: If bolt exits with a non-zero status
        """
        command = self.command(kind, name, **overrides)
        return self._execute(command)

    def command(
        self, kind: RunKind | str | None, name: str | None, **overrides: Any
    ) -> BoltCommand:
        """Build the bolt command for an invocation without running it.

        Goes through every stage except execution, so the same errors as
        ``run()`` can be raised.
        """
        self.validate_dependencies()

        transport = Transport.for_machine(self.machine)
        with log_scope(self.logger.logger, "Setting up overrides", transport=transport):
            config = setup_overrides(
                self.config,
                kind,
                name,
                overrides,
                environment=self.environment,
                machine=self.machine,
                transport=transport,
                global_config=self.global_config,
            )
        self.logger.trace(f"Effective config: {config}")

        ensure_valid(config)
        return build_command(config, transport, self.environment.root_path)

    def validate_dependencies(self) -> None:
        """Ensure every dependent machine exists and is running.

        Raises:
            DependencyNotReadyError: For the first dependency that is
                unknown or not running
        """
        dependencies = self.config.dependencies
        # A non-list value is reported by validation instead
        if not dependencies or not isinstance(dependencies, (list, tuple)):
            return

        for dependency in dependencies:
            machine = self.environment.machine_by_name(dependency)
            if machine is not None and machine.is_running():
                continue

            self.ui.error(render_message("dependent_machines_offline", name=dependency))
            raise DependencyNotReadyError(dependency)

    def _execute(self, command: BoltCommand) -> ProcessResult:
        self.ui.info(render_message("running_bolt", command=command.render()))

        with self.logger.performance("Bolt run"):
            result = self.executor.execute(
                command.argv,
                build_env(self.original_path),
                self.ui.info,
                self.ui.warn,
            )

        if not result.is_success:
            self.logger.warning(f"Bolt exited with status {result.exit_code}")
            raise ExecutionFailureError(result.exit_code, result.stderr)
        return result
