"""Selection of the services a command applies to."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from helmsman.orchestrator.models import ServiceDefinition


class SelectionError(ValueError):
    """Conflicting selection options."""


@dataclass(slots=True)
class ServiceSelector:
    """At most one selection criterion; none means every service."""

    services: tuple[str, ...] = ()
    not_services: tuple[str, ...] = ()
    group: str | None = None
    not_group: str | None = None

    def validate(self) -> None:
        chosen = [
            option
            for option, value in (
                ("--services", self.services),
                ("--not-services", self.not_services),
                ("--group", self.group),
                ("--not-group", self.not_group),
            )
            if value
        ]
        if len(chosen) > 1:
            raise SelectionError(f"Options {', '.join(chosen)} are mutually exclusive.")


@dataclass(slots=True)
class SelectionResult:
    """Selected services plus what the caller should report."""

    services: list[ServiceDefinition]
    unknown_names: list[str] = field(default_factory=list)
    selects_all: bool = False


def select_services(
    services: Mapping[str, ServiceDefinition],
    selector: ServiceSelector,
) -> SelectionResult:
    """Apply ``selector`` to the configured services."""

    selector.validate()

    if selector.group:
        return SelectionResult(
            services=[s for s in services.values() if selector.group in s.groups],
        )
    if selector.not_group:
        return SelectionResult(
            services=[s for s in services.values() if selector.not_group not in s.groups],
        )
    if selector.services:
        selected: list[ServiceDefinition] = []
        unknown: list[str] = []
        for name in dict.fromkeys(selector.services):
            service = services.get(name)
            if service is None:
                unknown.append(name)
            else:
                selected.append(service)
        return SelectionResult(services=selected, unknown_names=unknown)
    if selector.not_services:
        excluded = set(selector.not_services)
        return SelectionResult(
            services=[s for s in services.values() if s.name not in excluded],
        )
    return SelectionResult(services=list(services.values()), selects_all=True)
