from __future__ import annotations

import allure

from helmsman.orchestrator.rendering import (
    PADDING_WIDTH,
    pad_right,
    progress_header,
    render_results,
    summarize,
)

pytestmark = [
    allure.epic("Service Lifecycle"),
    allure.feature("Progress Output"),
]


def test_summarize_keeps_short_lists() -> None:
    assert summarize(["a", "b"], 3) == ["a", "b"]


def test_summarize_collapses_the_tail() -> None:
    assert summarize(["foo", "bar", "poo", "moo", "goo"], 2) == ["foo", "bar", "and 3 others"]


def test_pad_right_never_truncates() -> None:
    assert pad_right("db", ".", 5) == "db..."
    assert pad_right("database", ".", 5) == "database"


def test_progress_header_is_padded() -> None:
    header = progress_header("Starting", ["a", "b", "c", "d"])

    assert header.startswith("Starting a, b, c, and 1 others")
    assert len(header) == PADDING_WIDTH
    assert header.endswith(".")


def test_serial_results_render_single_caption() -> None:
    assert render_results(
        {"db": False},
        success_caption="UP",
        failure_caption="DOWN",
        parallel=False,
    ) == ["DOWN"]


def test_parallel_results_list_every_service() -> None:
    lines = render_results(
        {"web": True, "db": False},
        success_caption="UP",
        failure_caption="FAILED",
        parallel=True,
    )

    assert lines == [
        "done",
        "\tweb.................UP",
        "\tdb..................FAILED",
    ]
