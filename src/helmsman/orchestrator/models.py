"""Domain models for service lifecycle execution."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

DEFAULT_ORDER = 1
DEFAULT_TIMEOUT_SECONDS = 300


class ServiceCommand(str, Enum):
    """Command keyword passed to a service script as its only argument."""

    STATUS = "status"
    START = "start"
    STOP = "stop"


class TaskState(str, Enum):
    """Observable task lifecycle states."""

    IDLE = "idle"
    RUNNING = "running"
    SETTLED = "settled"


class FailureKind(str, Enum):
    """Why a process task settled unsuccessfully (diagnostics only)."""

    SPAWN_FAILURE = "spawn_failure"
    NON_ZERO_EXIT = "non_zero_exit"
    TIMEOUT_KILL = "timeout_kill"
    POLL_ERROR = "poll_error"


@dataclass(frozen=True, slots=True)
class ServiceDefinition:
    """Configuration of a single managed service."""

    name: str
    script: Path
    order: int = DEFAULT_ORDER
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    environment: Mapping[str, str] = field(default_factory=dict)
    groups: frozenset[str] = frozenset()
