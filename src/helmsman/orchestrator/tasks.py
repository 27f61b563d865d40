"""Asynchronous task lifecycle and short-circuit combinators.

A task is started once, then polled until it settles. Combinators compose
tasks the way a shell composes commands with ``!``, ``||`` and ``&&``:
``Or(status, start)`` only starts a service that is not already up, and
``Or(Not(status), stop)`` only stops a service that is currently up.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum

from helmsman.orchestrator.models import TaskState


class TaskStateError(RuntimeError):
    """Task lifecycle misuse, such as starting twice or settling twice."""


class Task(ABC):
    """Stateful handle on one asynchronous unit of work."""

    def __init__(self) -> None:
        self._state = TaskState.IDLE
        self._outcome: bool | None = None

    @property
    def state(self) -> TaskState:
        return self._state

    @property
    def outcome(self) -> bool:
        """Settled outcome; ``False`` until the task has settled."""

        return bool(self._outcome) if self._state is TaskState.SETTLED else False

    def start(self) -> None:
        """Begin execution without blocking. Allowed only once."""

        if self._state is not TaskState.IDLE:
            raise TaskStateError(f"{self!r} was already started.")
        self._state = TaskState.RUNNING
        self._begin()

    def poll(self) -> bool:
        """Advance the task and report whether it has settled."""

        if self._state is TaskState.SETTLED:
            return True
        if self._state is TaskState.IDLE:
            return False
        self._advance()
        return self._state is TaskState.SETTLED

    @abstractmethod
    def await_progress(self, timeout_seconds: float) -> None:
        """Block up to ``timeout_seconds`` or until settled; may return early."""

    @abstractmethod
    def _begin(self) -> None:
        """Kick off the work. Called once by ``start``."""

    @abstractmethod
    def _advance(self) -> None:
        """Inspect progress and call ``_settle`` once the outcome is known."""

    def _settle(self, success: bool) -> None:
        if self._outcome is not None:
            raise TaskStateError(f"{self!r} already settled with outcome={self._outcome}.")
        self._outcome = success
        self._state = TaskState.SETTLED


class Not(Task):
    """Runs the delegate task unchanged and negates its outcome."""

    def __init__(self, task: Task) -> None:
        super().__init__()
        self.task = task

    def __repr__(self) -> str:
        return f"Not({self.task!r})"

    def await_progress(self, timeout_seconds: float) -> None:
        self.task.await_progress(timeout_seconds)

    def _begin(self) -> None:
        self.task.start()

    def _advance(self) -> None:
        if self.task.poll():
            self._settle(not self.task.outcome)


class Branch(str, Enum):
    """Which operand of a binary combinator is currently active."""

    LEFT = "left"
    RIGHT = "right"


class _ShortCircuit(Task):
    """Runs ``left``; runs ``right`` only when ``left`` settles with ``continue_on``."""

    continue_on: bool

    def __init__(self, left: Task, right: Task) -> None:
        super().__init__()
        self.left = left
        self.right = right
        self.branch = Branch.LEFT

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.left!r}, {self.right!r})"

    @property
    def active(self) -> Task:
        return self.left if self.branch is Branch.LEFT else self.right

    def await_progress(self, timeout_seconds: float) -> None:
        self.active.await_progress(timeout_seconds)

    def _begin(self) -> None:
        self.branch = Branch.LEFT
        self.left.start()

    def _advance(self) -> None:
        if not self.active.poll():
            return
        if self.branch is Branch.LEFT and self.left.outcome == self.continue_on:
            self.branch = Branch.RIGHT
            self.right.start()
            if not self.right.poll():
                return
        self._settle(self.active.outcome)


class Or(_ShortCircuit):
    """Runs ``right`` only if ``left`` fails; succeeds if either succeeds."""

    continue_on = False


class And(_ShortCircuit):
    """Runs ``right`` only if ``left`` succeeds; succeeds only if both succeed."""

    continue_on = True
