from __future__ import annotations

from pathlib import Path

import allure
import pytest

from helmsman.orchestrator.models import ServiceDefinition
from helmsman.orchestrator.queue import ServiceQueue

pytestmark = [
    allure.epic("Service Lifecycle"),
    allure.feature("Priority Buckets"),
]


def _service(name: str, order: int = 1) -> ServiceDefinition:
    return ServiceDefinition(name=name, script=Path(f"/opt/{name}.sh"), order=order)


def _names(queue: ServiceQueue) -> list[list[str]]:
    return [[service.name for service in bucket] for bucket in queue]


_MIXED = [
    _service("web", 3),
    _service("db", 1),
    _service("cache", 1),
    _service("api", 2),
    _service("worker", 3),
    _service("auth", 2),
]


def test_parallel_groups_by_order_level_and_sorts_names() -> None:
    queue = ServiceQueue(
        [_service("A", 2), _service("B", 1), _service("C", 1)],
        parallel=True,
    )

    assert _names(queue) == [["B", "C"], ["A"]]


def test_reverse_unwinds_levels_and_names() -> None:
    queue = ServiceQueue(
        [_service("A", 2), _service("B", 1), _service("C", 1)],
        parallel=True,
    )
    queue.reverse()

    assert _names(queue) == [["A"], ["C", "B"]]


def test_serial_mode_yields_one_singleton_bucket_per_service() -> None:
    queue = ServiceQueue(_MIXED, parallel=False)
    buckets = list(queue)

    assert len(queue) == len(_MIXED)
    assert all(len(bucket) == 1 for bucket in buckets)
    assert sorted(bucket[0].name for bucket in buckets) == sorted(s.name for s in _MIXED)
    assert [bucket[0].order for bucket in buckets] == [1, 1, 2, 2, 3, 3]


def test_serial_mode_keeps_input_order_for_ties() -> None:
    queue = ServiceQueue([_service("zeta"), _service("alpha")], parallel=False)

    assert _names(queue) == [["zeta"], ["alpha"]]


def test_parallel_buckets_strictly_increase_in_order_level() -> None:
    buckets = list(ServiceQueue(_MIXED, parallel=True))
    levels = [bucket[0].order for bucket in buckets]

    assert levels == sorted(set(levels))
    for bucket in buckets:
        assert {service.order for service in bucket} == {bucket[0].order}
    assert sum(len(bucket) for bucket in buckets) == len(_MIXED)
    assert _names(ServiceQueue(_MIXED, parallel=True)) == [
        ["cache", "db"],
        ["api", "auth"],
        ["web", "worker"],
    ]


@pytest.mark.parametrize("parallel", [True, False])
def test_reverse_is_self_inverse(parallel: bool) -> None:
    queue = ServiceQueue(_MIXED, parallel=parallel)
    original = _names(queue)

    queue.reverse()
    assert _names(queue) != original
    queue.reverse()

    assert _names(queue) == original


def test_empty_input_yields_no_buckets() -> None:
    queue = ServiceQueue([], parallel=True)

    assert len(queue) == 0
    assert list(queue) == []


def test_iteration_does_not_expose_internal_buckets() -> None:
    queue = ServiceQueue([_service("a"), _service("b")], parallel=True)
    next(iter(queue)).clear()

    assert _names(queue) == [["a", "b"]]
