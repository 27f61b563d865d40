"""Shared test fixtures."""

from __future__ import annotations

import stat
import threading
from collections.abc import Callable
from pathlib import Path

import pytest


class ListSink:
    """Output sink that keeps every line it receives."""

    def __init__(self) -> None:
        self.lines: list[str] = []
        self._lock = threading.Lock()

    def write(self, text: str) -> None:
        with self._lock:
            self.lines.append(text.rstrip("\n"))


@pytest.fixture()
def write_script(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write an executable POSIX shell script into ``tmp_path``."""

    def _write(name: str, body: str) -> Path:
        path = tmp_path / name
        path.write_text(f"#!/bin/sh\n{body.strip()}\n", "utf-8")
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    return _write


@pytest.fixture()
def sink() -> ListSink:
    return ListSink()
