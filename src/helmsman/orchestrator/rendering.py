"""Text helpers for progress and result lines."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

PADDING_WIDTH = 50
RESULT_NAME_WIDTH = 20


def summarize(values: Sequence[str], item_count: int) -> list[str]:
    """Keep the first ``item_count`` values and append an "and N others" entry."""

    if len(values) <= item_count:
        return list(values)
    return [*values[:item_count], f"and {len(values) - item_count} others"]


def pad_right(value: str, padding: str, width: int) -> str:
    """Append ``padding`` until ``value`` is at least ``width`` characters long."""

    if not padding:
        return value
    while len(value) < width:
        value += padding
    return value


def progress_header(action: str, names: Sequence[str]) -> str:
    """Render "Starting a, b, c, and 2 others....." padded to the progress width."""

    return pad_right(f"{action} {', '.join(summarize(names, 3))}", ".", PADDING_WIDTH)


def render_results(
    results: Mapping[str, bool],
    *,
    success_caption: str,
    failure_caption: str,
    parallel: bool,
) -> list[str]:
    """Lines that finish a progress header.

    Serial runs hold one result which completes the header line. Parallel runs
    close the header with "done" and list each service on its own line.
    """

    if not parallel:
        outcome = next(iter(results.values()))
        return [success_caption if outcome else failure_caption]

    lines = ["done"]
    for name, outcome in results.items():
        caption = success_caption if outcome else failure_caption
        lines.append(f"\t{pad_right(name, '.', RESULT_NAME_WIDTH)}{caption}")
    return lines
