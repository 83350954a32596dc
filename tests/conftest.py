from __future__ import annotations

import asyncio
from collections.abc import Callable

import pytest

from markersync.exceptions import TickError
from markersync.models import ActionCode, MarkerBatch


class RecordingPublisher:
    """Keeps every batch it is handed; optionally fails or runs a hook mid-publish."""

    def __init__(self) -> None:
        self.batches: list[MarkerBatch] = []
        self.fail_next = 0
        self.during_publish: Callable[[], None] | None = None

    async def publish(self, batch: MarkerBatch) -> None:
        if self.during_publish is not None:
            self.during_publish()
        if self.fail_next > 0:
            self.fail_next -= 1
            raise ConnectionError("sink unavailable")
        self.batches.append(batch)

    @property
    def last(self) -> list[tuple[str, dict, ActionCode]]:
        return describe(self.batches[-1])


class CountdownTicker:
    """Allows a fixed number of ticks, then fails like a torn-down timer."""

    def __init__(self, ticks: int) -> None:
        self.remaining = ticks

    async def tick(self) -> None:
        if self.remaining <= 0:
            raise TickError("timer source gone")
        self.remaining -= 1
        await asyncio.sleep(0)


def describe(batch: MarkerBatch) -> list[tuple[str, dict, ActionCode]]:
    return sorted((m.id, m.payload, m.action) for m in batch.markers)


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()
