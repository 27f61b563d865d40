"""Ordering of services into buckets that run as one scheduling round."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from operator import attrgetter

from helmsman.orchestrator.models import ServiceDefinition


class ServiceQueue:
    """Ordered queue of service buckets.

    With parallel execution enabled, services sharing an order level land in
    the same bucket; otherwise every service gets its own bucket. Each bucket
    is sorted by service name so reports come out in a stable order.
    """

    def __init__(self, services: Iterable[ServiceDefinition], *, parallel: bool) -> None:
        ordered = sorted(services, key=attrgetter("order"))
        buckets: list[list[ServiceDefinition]] = []

        if not parallel:
            buckets = [[service] for service in ordered]
        else:
            current: int | None = None
            for service in ordered:
                if not buckets or service.order != current:
                    current = service.order
                    buckets.append([])
                buckets[-1].append(service)

        for bucket in buckets:
            bucket.sort(key=attrgetter("name"))
        self._buckets = buckets

    def __iter__(self) -> Iterator[list[ServiceDefinition]]:
        return (list(bucket) for bucket in self._buckets)

    def __len__(self) -> int:
        return len(self._buckets)

    def reverse(self) -> None:
        """Reverse the bucket order and the order inside every bucket, in place."""

        self._buckets.reverse()
        for bucket in self._buckets:
            bucket.reverse()
