"""Command-line interface for boltrun."""

import json
from pathlib import Path
from typing import Any, Iterable, Optional

import click

from boltrun import __version__
from boltrun.config import GlobalConfig, TaskConfig, load_config
from boltrun.environment import StaticEnvironment, load_environment
from boltrun.exceptions import BoltRunError
from boltrun.inventory import (
    dump_inventory,
    generate_inventory,
    inventory_path,
    write_inventory,
)
from boltrun.logging import configure_logging, get_level_from_verbosity, get_logger
from boltrun.runner import Runner

logger = get_logger("boltrun.cli")


def parse_parameters(pairs: Iterable[str]) -> dict[str, str]:
    """Parse task parameters given as repeated key=value options.

    Each pair is split on its first ``=``, so values may contain spaces
    and further ``=`` signs. A later pair replaces an earlier one with the
    same key.

    Args:
        pairs: Values of the ``-p/--param`` option, e.g. ``("name=cowsay",)``

    Returns:
        Dictionary of parameter names to string values

    Raises:
        ValueError: If a pair is not in key=value form

    Example:
        >>> parse_parameters(["name=cowsay", "message=hello world"])
        {'name': 'cowsay', 'message': 'hello world'}
    """
    result = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Invalid parameter format: '{pair}'. Expected key=value format.")
        result[key] = value

    return result


def _load_configs(config: Optional[str]) -> tuple[GlobalConfig, TaskConfig | None]:
    if not config:
        return GlobalConfig(), None
    try:
        return load_config(config)
    except BoltRunError as e:
        raise click.ClickException(str(e))


def _load_environment(environment: str) -> StaticEnvironment:
    try:
        return load_environment(environment)
    except BoltRunError as e:
        raise click.ClickException(str(e))


@click.group(invoke_without_command=True)
@click.option("--version", is_flag=True, help="Show version and exit")
@click.pass_context
def cli(ctx: click.Context, version: bool) -> None:
    """boltrun - Run bolt tasks and plans against managed machines."""
    if version:
        click.echo(f"boltrun {__version__}")
        ctx.exit(0)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command("run")
@click.argument("kind", type=click.Choice(["task", "plan"], case_sensitive=False))
@click.argument("name")
@click.option("--environment", "-e", required=True, type=click.Path(exists=True),
              help="Environment file describing the machines (YAML format)")
@click.option("--machine", "-m", required=True, help="Machine to run for")
@click.option("--config", "-c", type=click.Path(exists=True), default=None,
              help="Bolt config file with 'global' and 'bolt' sections (YAML format)")
@click.option("--nodes", "-n", multiple=True,
              help="Target node (repeatable); 'all' targets every machine")
@click.option("--exclude", "-x", multiple=True, help="Node to exclude (repeatable)")
@click.option("--param", "-p", "param_pairs", multiple=True,
              help="Task parameter in key=value format (repeatable)")
@click.option("--params", default=None, help="Parameters as a JSON object")
@click.option("--run-as", default=None, help="User to run as using privilege escalation")
@click.option("--inventory", "use_inventory", is_flag=True,
              help="Generate a bolt inventory for the environment and pass it to bolt")
@click.option("--dry-run", is_flag=True, help="Print the bolt command without running it")
@click.option("--log-file", type=click.Path(), default=None,
              help="Write logs to file (in addition to console)")
@click.option("-v", "--verbose", count=True,
              help="Increase verbosity: -v=info, -vv=debug, -vvv=trace")
def run_bolt(
    kind: str,
    name: str,
    environment: str,
    machine: str,
    config: Optional[str],
    nodes: tuple[str, ...],
    exclude: tuple[str, ...],
    param_pairs: tuple[str, ...],
    params: Optional[str],
    run_as: Optional[str],
    use_inventory: bool,
    dry_run: bool,
    log_file: Optional[str],
    verbose: int,
) -> None:
    """Run a bolt task or plan for a machine.

    Connection settings not given in the config are taken from the
    machine itself.

    Examples:
        boltrun run task package -e environment.yml -m server -p name=cowsay -p action=install

        boltrun run plan deploy -e environment.yml -m server -n all -x db01

        boltrun run task facts -e environment.yml -m server --params '{"verbose": true}' --dry-run
    """
    level = get_level_from_verbosity(verbose)
    configure_logging(level=level, log_file=log_file)

    env = _load_environment(environment)
    target = env.machine_by_name(machine)
    if target is None:
        raise click.ClickException(f"Machine not found in {environment}: {machine}")

    global_config, declared = _load_configs(config)
    if declared is not None:
        # Settings from the config file win over the environment file
        declared.fill_from(target.config)
    else:
        declared = target.config

    overrides: dict[str, Any] = {}
    if nodes:
        overrides["nodes"] = nodes[0] if list(nodes) == ["all"] else list(nodes)
    if exclude:
        overrides["excludes"] = list(exclude)
    if run_as:
        overrides["run_as"] = run_as

    try:
        parameters = parse_parameters(param_pairs)
        if params:
            parameters.update(json.loads(params))
    except (ValueError, TypeError) as e:
        raise click.ClickException(f"Invalid parameters: {e}")
    if parameters:
        overrides["parameters"] = parameters

    if use_inventory:
        path = inventory_path(env)
        if not dry_run:
            write_inventory(path, generate_inventory(env, global_config))
        overrides["inventoryfile"] = str(path)

    runner = Runner(env, target, declared, global_config=global_config)
    try:
        if dry_run:
            click.echo(runner.command(kind, name, **overrides).render())
            return
        runner.run(kind, name, **overrides)
    except BoltRunError as e:
        logger.debug(f"Bolt run failed: {e}")
        raise click.ClickException(str(e))


@cli.command("inventory")
@click.option("--environment", "-e", required=True, type=click.Path(exists=True),
              help="Environment file describing the machines (YAML format)")
@click.option("--config", "-c", type=click.Path(exists=True), default=None,
              help="Bolt config file whose 'global' section fills the inventory config")
@click.option("--output", "-o", type=click.Path(), default=None,
              help="Write the inventory to this file instead of stdout")
def inventory(environment: str, config: Optional[str], output: Optional[str]) -> None:
    """Generate a bolt inventory for the running machines of an environment.

    Examples:
        boltrun inventory -e environment.yml

        boltrun inventory -e environment.yml -c boltrun.yml -o bolt_inventory.yaml
    """
    env = _load_environment(environment)
    global_config, _ = _load_configs(config)
    global_config.finalize()

    data = generate_inventory(env, global_config)
    if output:
        path = write_inventory(Path(output), data)
        click.echo(f"Inventory written to {path}")
    else:
        click.echo(dump_inventory(data), nl=False)


def main() -> None:
    """Entry point for the boltrun console script."""
    cli()


if __name__ == "__main__":
    main()
