"""CLI entrypoint for helmsman."""

import os
from collections.abc import Callable
from functools import wraps
from pathlib import Path

import rich_click as click

from helmsman import __version__
from helmsman.config import ConfigError
from helmsman.log import setup_logging
from helmsman.orchestrator.controllers import (
    LifecycleCommand,
    LifecycleSummary,
    ListGroupsCommand,
    ServiceCliController,
)
from helmsman.orchestrator.selection import SelectionError, ServiceSelector

click.rich_click.USE_MARKDOWN = True
DEFAULT_PARALLEL_THREADS = os.cpu_count() or 1
CONTROLLER = ServiceCliController(echo=click.echo, confirm=click.confirm)


@click.group()
@click.version_option(version=__version__, prog_name="helmsman")
@click.option(
    "-c",
    "--config-dir",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Directory containing base.properties. Defaults to HELMSMAN_CONFIG_DIR or ./config.",
)
@click.option("-v", "--verbose", is_flag=True, default=False, help="Enable verbose output.")
@click.pass_context
def helmsman(ctx: click.Context, config_dir: Path | None, verbose: bool) -> None:
    """Start, stop, and check the status of configured services."""

    setup_logging(verbose=verbose)
    ctx.obj = {"config_dir": config_dir}


def _selection_options(func: Callable[..., None]) -> Callable[..., None]:
    @click.option(
        "-s",
        "--services",
        multiple=True,
        help="Name of a service to apply the action to. Can be repeated.",
    )
    @click.option(
        "-m",
        "--not-services",
        multiple=True,
        help="Name of a service to exclude from the action. Can be repeated.",
    )
    @click.option("-g", "--group", default=None, help="Apply the action to services in this group.")
    @click.option(
        "-n",
        "--not-group",
        default=None,
        help="Apply the action to services that are not in this group.",
    )
    @wraps(func)
    def wrapper(
        *args: object,
        services: tuple[str, ...],
        not_services: tuple[str, ...],
        group: str | None,
        not_group: str | None,
        **kwargs: object,
    ) -> None:
        selector = ServiceSelector(
            services=services,
            not_services=not_services,
            group=group,
            not_group=not_group,
        )
        try:
            selector.validate()
        except SelectionError as error:
            raise click.UsageError(str(error)) from error
        func(*args, selector=selector, **kwargs)

    return wrapper


def _lifecycle_options(func: Callable[..., None]) -> Callable[..., None]:
    @_selection_options
    @click.option(
        "-p",
        "--parallel",
        "threads",
        type=click.IntRange(min=1, clamp=True),
        is_flag=False,
        flag_value=DEFAULT_PARALLEL_THREADS,
        default=1,
        help="Run services sharing an order level in parallel with this many slots "
        "(default when given without a value: available CPUs).",
    )
    @click.option(
        "-q",
        "--quiet",
        is_flag=True,
        default=False,
        help="Do not ask for confirmation when acting on all services.",
    )
    @click.pass_context
    @wraps(func)
    def wrapper(
        ctx: click.Context,
        selector: ServiceSelector,
        threads: int,
        quiet: bool,
    ) -> None:
        func(
            LifecycleCommand(
                config_dir=ctx.obj["config_dir"],
                selector=selector,
                threads=threads,
                quiet=quiet,
            ),
        )

    return wrapper


@helmsman.command("start")
@_lifecycle_options
def start(command: LifecycleCommand) -> None:
    """Start the selected services, lowest order level first."""

    _finish(_run(CONTROLLER.start, command), "start")


@helmsman.command("stop")
@_lifecycle_options
def stop(command: LifecycleCommand) -> None:
    """Stop the selected services, highest order level first."""

    _finish(_run(CONTROLLER.stop, command), "stop")


@helmsman.command("restart")
@_lifecycle_options
def restart(command: LifecycleCommand) -> None:
    """Stop and then start the selected services."""

    _finish(_run(CONTROLLER.restart, command), "restart")


@helmsman.command("bounce")
@_lifecycle_options
def bounce(command: LifecycleCommand) -> None:
    """Alias for restart."""

    _finish(_run(CONTROLLER.restart, command), "restart")


@helmsman.command("status")
@_lifecycle_options
def status(command: LifecycleCommand) -> None:
    """Show whether the selected services are up."""

    _run(CONTROLLER.status, command)


@helmsman.command("list-groups")
@_selection_options
@click.pass_context
def list_groups(ctx: click.Context, selector: ServiceSelector) -> None:
    """List the groups of every selected service and a summary of all groups."""

    try:
        lines = CONTROLLER.list_groups(
            ListGroupsCommand(config_dir=ctx.obj["config_dir"], selector=selector),
        )
    except ConfigError as error:
        raise click.ClickException(f"Failed to parse configuration file: {error}") from error
    _emit_lines(lines)


def _run(
    action: Callable[[LifecycleCommand], LifecycleSummary],
    command: LifecycleCommand,
) -> LifecycleSummary:
    try:
        return action(command)
    except ConfigError as error:
        raise click.ClickException(f"Failed to parse configuration file: {error}") from error


def _finish(summary: LifecycleSummary, verb: str) -> None:
    if summary.failed:
        raise click.ClickException(f"Failed to {verb}: {', '.join(summary.failed)}")


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    helmsman()
