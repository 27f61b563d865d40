"""Runtime settings and service configuration loading."""

from __future__ import annotations

import logging
import os
import re
import socket
from dataclasses import dataclass, field
from pathlib import Path

from helmsman.orchestrator.models import (
    DEFAULT_ORDER,
    DEFAULT_TIMEOUT_SECONDS,
    ServiceDefinition,
)
from helmsman.orchestrator.scheduler import DEFAULT_TICK_SECONDS

logger = logging.getLogger(__name__)

BASE_CONFIG_NAME = "base.properties"
_VARIABLE_PATTERN = re.compile(r"\$\{([^}]+)\}")


class ConfigError(ValueError):
    """Configuration files are missing, unreadable, or invalid."""


@dataclass(slots=True)
class Settings:
    """Process-level settings resolved from the environment."""

    config_dir: Path = Path("config")
    tick_seconds: float = DEFAULT_TICK_SECONDS
    hostname: str | None = None

    @classmethod
    def from_env(cls, config_dir: Path | None = None) -> Settings:
        """Load settings from environment; explicit arguments win."""

        return cls(
            config_dir=config_dir or Path(os.getenv("HELMSMAN_CONFIG_DIR", "config")),
            tick_seconds=float(os.getenv("HELMSMAN_TICK_SECONDS", str(DEFAULT_TICK_SECONDS))),
            hostname=os.getenv("HELMSMAN_HOSTNAME") or None,
        )

    def validate(self) -> None:
        if self.tick_seconds <= 0:
            raise ConfigError("HELMSMAN_TICK_SECONDS must be > 0.")


@dataclass(slots=True)
class _ServiceDraft:
    name: str
    script: str | None = None
    order: int = DEFAULT_ORDER
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    environment: dict[str, str] = field(default_factory=dict)
    groups: list[str] = field(default_factory=list)


def load_service_definitions(
    config_dir: Path,
    hostname: str | None = None,
) -> dict[str, ServiceDefinition]:
    """Read ``base.properties`` plus the optional ``<hostname>.properties`` override.

    Returns services keyed by name in the order ``global.services`` lists them.
    """

    base_path = config_dir / BASE_CONFIG_NAME
    logger.debug("Loading configuration: %s", base_path.absolute())
    if not base_path.is_file():
        raise ConfigError(f"Configuration file not found: {base_path}")
    properties = read_properties(base_path)

    host_path = config_dir / f"{hostname or socket.gethostname()}.properties"
    logger.debug("Checking for machine configuration: %s", host_path.absolute())
    if host_path.is_file():
        logger.debug("Loading configuration: %s", host_path.absolute())
        properties.update(read_properties(host_path))

    return parse_service_definitions(properties)


def parse_service_definitions(properties: dict[str, str]) -> dict[str, ServiceDefinition]:
    """Build service definitions from flat ``global.*``/``service.*`` properties."""

    drafts: dict[str, _ServiceDraft] = {}
    variables: dict[str, str] = {}
    for key, value in properties.items():
        if key == "global.services":
            for name in _split_list(value):
                drafts.setdefault(name, _ServiceDraft(name=name))
        elif key.startswith("global.var."):
            variables[key.removeprefix("global.var.")] = value
        elif not key.startswith("service."):
            logger.warning("Ignoring unrecognized configuration property [%s].", key)

    for key, value in properties.items():
        if not key.startswith("service."):
            continue
        parts = key.split(".", 3)
        draft = drafts.get(parts[1]) if len(parts) > 2 else None
        if draft is None:
            logger.debug("Ignoring service property [%s] for unsupported service.", key)
            continue
        logger.debug("Processing service property [%s].", key)
        _apply_service_property(draft, parts[2:], value.strip(), variables, key)

    return {name: _finish(draft) for name, draft in drafts.items()}


def replace_variables(value: str, variables: dict[str, str]) -> str:
    """Substitute ``${name}`` references; unknown names are left as-is."""

    return _VARIABLE_PATTERN.sub(lambda match: variables.get(match.group(1), match.group(0)), value)


def read_properties(path: Path) -> dict[str, str]:
    """Parse a ``.properties`` file (``key=value`` or ``key: value`` lines)."""

    try:
        text = path.read_text("utf-8")
    except OSError as error:
        raise ConfigError(f"Failed to read configuration file {path}: {error}") from error

    properties: dict[str, str] = {}
    pending = ""
    for raw_line in text.splitlines():
        line = raw_line.strip() if not pending else raw_line.lstrip()
        if not pending and (not line or line[0] in "#!"):
            continue
        if _is_continued(line):
            pending += line[:-1]
            continue
        line, pending = pending + line, ""
        key, value = _split_property(line)
        properties[key] = value
    if pending:
        key, value = _split_property(pending)
        properties[key] = value
    return properties


def _is_continued(line: str) -> bool:
    # An odd run of trailing backslashes escapes the line break.
    return (len(line) - len(line.rstrip("\\"))) % 2 == 1


def _split_property(line: str) -> tuple[str, str]:
    match = re.match(r"([^=:\s]+)\s*[=:\s]\s*(.*)$", line)
    if match is None:
        return line, ""
    return match.group(1), match.group(2).strip()


def _split_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _apply_service_property(
    draft: _ServiceDraft,
    attribute: list[str],
    value: str,
    variables: dict[str, str],
    key: str,
) -> None:
    match attribute:
        case ["script"]:
            draft.script = replace_variables(value, variables)
        case ["order"]:
            draft.order = _parse_int(value, key)
        case ["timeout"]:
            draft.timeout_seconds = _parse_int(value, key)
        case ["groups"]:
            draft.groups.extend(_split_list(value))
        case ["environment", variable]:
            draft.environment[variable] = value
        case _:
            logger.warning("Ignoring unrecognized configuration property [%s].", key)


def _parse_int(value: str, key: str) -> int:
    try:
        return int(value)
    except ValueError as error:
        raise ConfigError(f"Property [{key}] must be an integer, got {value!r}.") from error


def _finish(draft: _ServiceDraft) -> ServiceDefinition:
    if not draft.script:
        raise ConfigError(f"Service [{draft.name}] does not have a valid script defined.")
    if draft.timeout_seconds <= 0:
        raise ConfigError(f"Service [{draft.name}] timeout must be > 0.")
    return ServiceDefinition(
        name=draft.name,
        script=Path(draft.script),
        order=draft.order,
        timeout_seconds=draft.timeout_seconds,
        environment=dict(draft.environment),
        groups=frozenset(draft.groups),
    )
