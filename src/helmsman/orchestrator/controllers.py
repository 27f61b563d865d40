"""Controllers for service lifecycle CLI commands."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from operator import attrgetter
from pathlib import Path

from helmsman.config import Settings, load_service_definitions
from helmsman.orchestrator.models import ServiceCommand, ServiceDefinition
from helmsman.orchestrator.process import LoggingOutputSink, OutputSink, ProcessTask
from helmsman.orchestrator.queue import ServiceQueue
from helmsman.orchestrator.rendering import (
    PADDING_WIDTH,
    pad_right,
    progress_header,
    render_results,
)
from helmsman.orchestrator.scheduler import Scheduler
from helmsman.orchestrator.selection import ServiceSelector, select_services
from helmsman.orchestrator.tasks import Not, Or, Task


@dataclass(slots=True)
class LifecycleCommand:
    """CLI input shared by start/stop/restart/status."""

    config_dir: Path | None
    selector: ServiceSelector = field(default_factory=ServiceSelector)
    threads: int = 1
    quiet: bool = False

    @property
    def parallel(self) -> bool:
        return self.threads > 1


@dataclass(slots=True)
class ListGroupsCommand:
    """CLI input for group listing."""

    config_dir: Path | None
    selector: ServiceSelector = field(default_factory=ServiceSelector)


@dataclass(slots=True)
class LifecycleSummary:
    """Per-service outcome of one lifecycle command."""

    succeeded: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    aborted: bool = False

    @property
    def success(self) -> bool:
        return not self.failed and not self.aborted

    def record(self, results: dict[str, bool]) -> None:
        for name, outcome in results.items():
            (self.succeeded if outcome else self.failed).append(name)


@dataclass(slots=True)
class _Plan:
    services: list[ServiceDefinition]
    threads: int
    tick_seconds: float


class ServiceCliController:
    """Runs lifecycle commands bucket by bucket and reports progress through ``echo``."""

    def __init__(
        self,
        *,
        echo: Callable[..., None],
        confirm: Callable[[str], bool],
        sink_factory: Callable[[ServiceDefinition], OutputSink] | None = None,
    ) -> None:
        self.echo = echo
        self.confirm = confirm
        self.sink_factory = sink_factory or (lambda service: LoggingOutputSink(service.name))

    def status(self, command: LifecycleCommand) -> LifecycleSummary:
        plan = self._plan(command, verb=None)
        summary = LifecycleSummary()
        if plan is not None:
            self._status(plan, summary)
        return summary

    def start(self, command: LifecycleCommand) -> LifecycleSummary:
        plan = self._plan(command, verb="start")
        if plan is None:
            return LifecycleSummary(aborted=True)
        summary = LifecycleSummary()
        self._start(plan, summary)
        return summary

    def stop(self, command: LifecycleCommand) -> LifecycleSummary:
        plan = self._plan(command, verb="stop")
        if plan is None:
            return LifecycleSummary(aborted=True)
        summary = LifecycleSummary()
        self._stop(plan, summary)
        return summary

    def restart(self, command: LifecycleCommand) -> LifecycleSummary:
        plan = self._plan(command, verb="restart")
        if plan is None:
            return LifecycleSummary(aborted=True)
        summary = LifecycleSummary()
        self._stop(plan, summary)
        self._start(plan, summary)
        return summary

    def list_groups(self, command: ListGroupsCommand) -> list[str]:
        settings = Settings.from_env(config_dir=command.config_dir)
        services = load_service_definitions(settings.config_dir, settings.hostname)
        selection = select_services(services, command.selector)
        for name in selection.unknown_names:
            self.echo(f"Ignoring unknown service [{name}].")

        lines = ["Groups by service:"]
        groups: set[str] = set()
        for service in sorted(selection.services, key=attrgetter("order")):
            lines.append(f"{pad_right(service.name, '.', PADDING_WIDTH)}{sorted(service.groups)}")
            groups.update(service.groups)
        lines.append("")
        lines.append(f"Groups summary: {sorted(groups)}")
        return lines

    def _plan(self, command: LifecycleCommand, *, verb: str | None) -> _Plan | None:
        settings = Settings.from_env(config_dir=command.config_dir)
        settings.validate()
        services = load_service_definitions(settings.config_dir, settings.hostname)
        selection = select_services(services, command.selector)
        for name in selection.unknown_names:
            self.echo(f"Ignoring unknown service [{name}].")

        if (
            verb is not None
            and selection.selects_all
            and not command.quiet
            and not self.confirm(f"Are you sure you want to {verb} all services?")
        ):
            self.echo("Aborting at user request.")
            return None

        return _Plan(
            services=selection.services,
            threads=max(command.threads, 1),
            tick_seconds=settings.tick_seconds,
        )

    def _status(self, plan: _Plan, summary: LifecycleSummary) -> None:
        self._run_queue(
            plan,
            ServiceQueue(plan.services, parallel=plan.threads > 1),
            action="Checking the status of",
            build_task=lambda service: self._process(service, ServiceCommand.STATUS),
            captions=("UP", "DOWN"),
            summary=summary,
        )

    def _start(self, plan: _Plan, summary: LifecycleSummary) -> None:
        self._run_queue(
            plan,
            ServiceQueue(plan.services, parallel=plan.threads > 1),
            action="Starting",
            build_task=lambda service: Or(
                self._process(service, ServiceCommand.STATUS),
                self._process(service, ServiceCommand.START),
            ),
            captions=("UP", "FAILED"),
            summary=summary,
        )

    def _stop(self, plan: _Plan, summary: LifecycleSummary) -> None:
        queue = ServiceQueue(plan.services, parallel=plan.threads > 1)
        queue.reverse()
        self._run_queue(
            plan,
            queue,
            action="Stopping",
            build_task=lambda service: Or(
                Not(self._process(service, ServiceCommand.STATUS)),
                self._process(service, ServiceCommand.STOP),
            ),
            captions=("DOWN", "FAILED"),
            summary=summary,
        )

    def _run_queue(  # noqa: PLR0913
        self,
        plan: _Plan,
        queue: Iterable[list[ServiceDefinition]],
        *,
        action: str,
        build_task: Callable[[ServiceDefinition], Task],
        captions: tuple[str, str],
        summary: LifecycleSummary,
    ) -> None:
        scheduler = Scheduler(
            plan.threads,
            tick_seconds=plan.tick_seconds,
            on_tick=lambda: self.echo(".", nl=False),
        )
        for bucket in queue:
            tasks = {service.name: build_task(service) for service in bucket}
            self.echo(progress_header(action, list(tasks)), nl=False)
            results = scheduler.run(tasks)
            for line in render_results(
                results,
                success_caption=captions[0],
                failure_caption=captions[1],
                parallel=plan.threads > 1,
            ):
                self.echo(line)
            summary.record(results)

    def _process(self, service: ServiceDefinition, command: ServiceCommand) -> ProcessTask:
        return ProcessTask(service, command, self.sink_factory(service))
