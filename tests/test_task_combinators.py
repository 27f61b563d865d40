from __future__ import annotations

import allure
import pytest

from helmsman.orchestrator.models import TaskState
from helmsman.orchestrator.tasks import And, Branch, Not, Or, Task, TaskStateError

pytestmark = [
    allure.epic("Service Lifecycle"),
    allure.feature("Task Combinators"),
]


class ScriptedTask(Task):
    """Settles with ``success`` after ``pending_polls`` unsettled polls."""

    def __init__(self, success: bool, pending_polls: int = 0) -> None:
        super().__init__()
        self.success = success
        self.pending_polls = pending_polls
        self.starts = 0
        self.waits = 0

    def await_progress(self, timeout_seconds: float) -> None:
        self.waits += 1

    def _begin(self) -> None:
        self.starts += 1

    def _advance(self) -> None:
        if self.pending_polls > 0:
            self.pending_polls -= 1
            return
        self._settle(self.success)


def _drive(task: Task, max_polls: int = 50) -> bool:
    task.start()
    for _ in range(max_polls):
        if task.poll():
            return task.outcome
    raise AssertionError(f"{task!r} did not settle")


@pytest.mark.parametrize("right_success", [True, False])
def test_or_skips_right_when_left_succeeds(right_success: bool) -> None:
    left = ScriptedTask(True, pending_polls=2)
    right = ScriptedTask(right_success)

    assert _drive(Or(left, right)) is True
    assert right.starts == 0
    assert right.state is TaskState.IDLE


@pytest.mark.parametrize("right_success", [True, False])
def test_or_runs_right_once_when_left_fails(right_success: bool) -> None:
    left = ScriptedTask(False, pending_polls=1)
    right = ScriptedTask(right_success, pending_polls=2)

    assert _drive(Or(left, right)) is right_success
    assert right.starts == 1


@pytest.mark.parametrize("right_success", [True, False])
def test_and_runs_right_once_when_left_succeeds(right_success: bool) -> None:
    left = ScriptedTask(True)
    right = ScriptedTask(right_success, pending_polls=1)

    assert _drive(And(left, right)) is right_success
    assert right.starts == 1


@pytest.mark.parametrize("right_success", [True, False])
def test_and_skips_right_when_left_fails(right_success: bool) -> None:
    left = ScriptedTask(False, pending_polls=1)
    right = ScriptedTask(right_success)

    assert _drive(And(left, right)) is False
    assert right.starts == 0


@pytest.mark.parametrize("inner_success", [True, False])
def test_not_negates_outcome(inner_success: bool) -> None:
    inner = ScriptedTask(inner_success, pending_polls=1)

    assert _drive(Not(inner)) is (not inner_success)
    assert inner.starts == 1


def test_single_poll_finalizes_left_and_starts_right() -> None:
    left = ScriptedTask(False)
    right = ScriptedTask(True, pending_polls=1)
    task = Or(left, right)
    task.start()

    assert task.branch is Branch.LEFT
    assert right.state is TaskState.IDLE
    assert task.poll() is False
    assert task.branch is Branch.RIGHT
    assert right.state is TaskState.RUNNING
    assert task.poll() is True
    assert task.outcome is True


def test_or_settles_in_same_poll_when_right_settles_immediately() -> None:
    task = Or(ScriptedTask(False), ScriptedTask(False))
    task.start()

    assert task.poll() is True
    assert task.outcome is False


def test_start_only_starts_left_operand() -> None:
    left = ScriptedTask(False)
    right = ScriptedTask(True)
    task = Or(left, right)
    task.start()

    assert left.starts == 1
    assert right.starts == 0
    assert task.state is TaskState.RUNNING


def test_await_progress_goes_to_active_operand() -> None:
    left = ScriptedTask(True)
    right = ScriptedTask(True, pending_polls=3)
    task = And(left, right)
    task.start()
    task.await_progress(0.01)
    task.poll()
    task.await_progress(0.01)

    assert left.waits == 1
    assert right.waits == 1


def test_stop_expression_skips_stop_when_service_is_down() -> None:
    status = ScriptedTask(False)
    stop = ScriptedTask(True)

    assert _drive(Or(Not(status), stop)) is True
    assert stop.starts == 0


def test_stop_expression_stops_running_service() -> None:
    status = ScriptedTask(True)
    stop = ScriptedTask(False)

    assert _drive(Or(Not(status), stop)) is False
    assert stop.starts == 1


def test_outcome_is_false_and_read_only_before_settling() -> None:
    inner = ScriptedTask(False, pending_polls=5)
    task = Not(inner)

    assert task.outcome is False
    task.start()
    assert task.outcome is False
    assert task.outcome is False
    assert inner.pending_polls == 5
    assert task.state is TaskState.RUNNING


def test_poll_before_start_reports_unsettled() -> None:
    task = ScriptedTask(True)

    assert task.poll() is False
    assert task.state is TaskState.IDLE


def test_start_twice_is_rejected() -> None:
    task = Or(ScriptedTask(True), ScriptedTask(True))
    task.start()

    with pytest.raises(TaskStateError, match="already started"):
        task.start()


def test_settled_outcome_is_sticky() -> None:
    task = ScriptedTask(False)
    _drive(task)

    with pytest.raises(TaskStateError, match="already settled"):
        task._settle(True)
    assert task.poll() is True
    assert task.outcome is False
