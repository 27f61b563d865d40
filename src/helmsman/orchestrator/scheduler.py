"""Bounded-concurrency driver for a named set of tasks."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping

from helmsman.orchestrator.tasks import Task

logger = logging.getLogger(__name__)

DEFAULT_TICK_SECONDS = 2.0


class Scheduler:
    """Runs tasks to completion from a single polling thread.

    At most ``concurrency`` tasks are running at any time and tasks are started
    in the mapping's iteration order. Each loop iteration waits on the oldest
    in-flight task for up to ``tick_seconds``, reports a tick, then polls every
    in-flight task. There is no overall deadline: a task that never settles
    keeps the run going.
    """

    def __init__(
        self,
        concurrency: int = 1,
        *,
        tick_seconds: float = DEFAULT_TICK_SECONDS,
        on_tick: Callable[[], None] | None = None,
    ) -> None:
        if concurrency < 1:
            raise ValueError(f"Concurrency bound must be >= 1, got {concurrency}.")
        self.concurrency = concurrency
        self.tick_seconds = tick_seconds
        self.on_tick = on_tick

    def run(self, tasks: Mapping[str, Task]) -> dict[str, bool]:
        """Execute every task and return name -> outcome in completion order."""

        pending = iter(tasks.items())
        remaining = len(tasks)
        in_flight: list[tuple[str, Task]] = []
        results: dict[str, bool] = {}

        while len(results) != len(tasks):
            while remaining and len(in_flight) < self.concurrency:
                name, task = next(pending)
                remaining -= 1
                logger.debug("Starting task %s (%d in flight).", name, len(in_flight) + 1)
                task.start()
                in_flight.append((name, task))

            in_flight[0][1].await_progress(self.tick_seconds)
            if self.on_tick is not None:
                self.on_tick()

            still_running: list[tuple[str, Task]] = []
            for name, task in in_flight:
                if task.poll():
                    results[name] = task.outcome
                    logger.debug("Task %s settled with outcome=%s.", name, task.outcome)
                else:
                    still_running.append((name, task))
            in_flight = still_running

        return results
