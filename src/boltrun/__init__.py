"""boltrun - Run bolt tasks and plans against managed machines.

Resolves target nodes, merges configuration with machine connection facts,
validates it, and builds and runs the matching bolt command line.

Quick Start:
    from boltrun import Runner, load_environment

    environment = load_environment("environment.yml")
    runner = Runner(environment, environment.machine_by_name("server"))
    runner.run("task", "package", parameters={"name": "cowsay"})
"""

__version__ = "0.1.0"

from boltrun.config import GlobalConfig, TaskConfig
from boltrun.environment import load_environment
from boltrun.runner import Runner

__all__ = ["__version__", "GlobalConfig", "Runner", "TaskConfig", "load_environment"]
