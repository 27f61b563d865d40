"""Process-backed task that runs a service script with a command argument."""

from __future__ import annotations

import logging
import os
import subprocess
import threading
from collections.abc import Mapping
from typing import IO, Protocol

from helmsman.orchestrator.models import (
    FailureKind,
    ServiceCommand,
    ServiceDefinition,
    TaskState,
)
from helmsman.orchestrator.tasks import Task

logger = logging.getLogger(__name__)

SUCCESS_EXIT_CODE = 0
# Runtime-generated variables that break child processes of a different runtime version.
STRIPPED_ENVIRONMENT_VARIABLES: tuple[str, ...] = ("NLSPATH", "XFILESEARCHPATH")
# Backgrounded children keep the output pipe open, so poll only gives the pump a moment.
_PUMP_JOIN_SECONDS = 0.05
_TERMINATE_GRACE_SECONDS = 2.0


class OutputSink(Protocol):
    """Receives script output as it is produced."""

    def write(self, text: str) -> None:
        """Consume one chunk (usually one line) of script output."""


class LoggingOutputSink:
    """Forwards script output to a per-service logger at DEBUG level."""

    def __init__(self, service_name: str) -> None:
        self.logger = logging.getLogger(f"helmsman.service.{service_name}")

    def write(self, text: str) -> None:
        line = text.rstrip("\r\n")
        if line:
            self.logger.debug(line)


def build_environment(
    service: ServiceDefinition,
    base: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Inherited environment overlaid with service overrides, minus stripped variables."""

    env = dict(os.environ if base is None else base)
    env.update(service.environment)
    for name in STRIPPED_ENVIRONMENT_VARIABLES:
        env.pop(name, None)
    return env


class ProcessTask(Task):
    """Runs ``<script> <command>`` under a watchdog timeout.

    The task succeeds iff the script exits with code 0 before the watchdog
    fires. Output is pumped to the sink by a background reader; the watchdog
    is a timer that terminates the process. Neither touches task state, so
    outcome is only decided by ``poll`` on the caller's thread.
    """

    def __init__(
        self,
        service: ServiceDefinition,
        command: ServiceCommand,
        sink: OutputSink | None = None,
    ) -> None:
        super().__init__()
        self.service = service
        self.command = command
        self.sink = sink if sink is not None else LoggingOutputSink(service.name)
        self.failure: FailureKind | None = None
        self.exit_code: int | None = None
        self._process: subprocess.Popen[str] | None = None
        self._pump: threading.Thread | None = None
        self._watchdog: threading.Timer | None = None
        self._timed_out = threading.Event()

    def __repr__(self) -> str:
        return f"ProcessTask({self.service.name!r}, {self.command.value!r})"

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process is not None else None

    def _begin(self) -> None:
        logger.debug(
            "Executing script [%s] with command [%s].",
            self.service.script,
            self.command.value,
        )
        try:
            self._process = subprocess.Popen(  # noqa: S603
                [str(self.service.script), self.command.value],
                env=build_environment(self.service),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
            )
        except (OSError, ValueError, subprocess.SubprocessError) as error:
            logger.debug("Failed to spawn service script for %s: %s", self.service.name, error)
            self._fail(FailureKind.SPAWN_FAILURE)
            return

        self._pump = threading.Thread(
            target=_pump_output,
            args=(self._process.stdout, self.sink),
            name=f"helmsman-output-{self.service.name}",
            daemon=True,
        )
        self._pump.start()
        self._watchdog = threading.Timer(self.service.timeout_seconds, self._expire)
        self._watchdog.daemon = True
        self._watchdog.start()

    def await_progress(self, timeout_seconds: float) -> None:
        if self._process is None or self.state is TaskState.SETTLED:
            return
        try:
            self._process.wait(timeout=timeout_seconds)
        except subprocess.TimeoutExpired:
            return

    def _advance(self) -> None:
        if self._process is None:
            return
        try:
            returncode = self._process.poll()
        except OSError as error:
            logger.debug("Failed to poll service script for %s: %s", self.service.name, error)
            self._fail(FailureKind.POLL_ERROR)
            return
        if returncode is None:
            return

        self.exit_code = returncode
        self._release()
        if self._timed_out.is_set():
            logger.debug(
                "Service script for %s killed after %d seconds.",
                self.service.name,
                self.service.timeout_seconds,
            )
            self._fail(FailureKind.TIMEOUT_KILL)
        elif returncode != SUCCESS_EXIT_CODE:
            logger.debug(
                "Service script for %s exited with code %d.",
                self.service.name,
                returncode,
            )
            self._fail(FailureKind.NON_ZERO_EXIT)
        else:
            self._settle(True)

    def _fail(self, kind: FailureKind) -> None:
        self.failure = kind
        self._settle(False)

    def _release(self) -> None:
        if self._watchdog is not None:
            self._watchdog.cancel()
        if self._pump is not None:
            self._pump.join(timeout=_PUMP_JOIN_SECONDS)

    def _expire(self) -> None:
        process = self._process
        if process is None or process.poll() is not None:
            return
        self._timed_out.set()
        _terminate_process(process)


def _pump_output(stream: IO[str] | None, sink: OutputSink) -> None:
    if stream is None:
        return
    with stream:
        for line in stream:
            sink.write(line)


def _terminate_process(process: subprocess.Popen[str]) -> None:
    try:
        process.terminate()
    except OSError:
        return
    try:
        process.wait(timeout=_TERMINATE_GRACE_SECONDS)
    except subprocess.TimeoutExpired:
        try:
            process.kill()
        except OSError:
            return
        process.wait(timeout=_TERMINATE_GRACE_SECONDS)
