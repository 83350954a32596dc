"""Tick sources that pace the publish loop."""

from __future__ import annotations

import asyncio
import logging
import math
import time
from collections.abc import Awaitable, Callable
from typing import Protocol

from markersync.exceptions import TickError

_logger = logging.getLogger(__name__)


class TickSource(Protocol):
    """Structural interface for anything that can pace the publish loop.

    ``tick()`` suspends until the next tick is due and raises
    :class:`TickError` once the source can no longer produce ticks.
    """

    async def tick(self) -> None:
        ...


class IntervalTicker:
    """Fixed-rate ticker on the monotonic clock.

    Deadlines are anchored to the first tick, so a slow iteration does not
    shift later ticks. When the loop falls more than one interval behind, the
    missed ticks are dropped rather than fired back to back.
    """

    def __init__(
        self,
        interval: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self._interval = interval
        self._clock = clock
        self._sleep = sleep
        self._next_deadline: float | None = None
        self._closed = False
        self._skipped = 0

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def skipped(self) -> int:
        """Number of ticks dropped because the loop overran."""
        return self._skipped

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Make the current and every later ``tick()`` raise :class:`TickError`."""
        self._closed = True

    async def tick(self) -> None:
        if self._closed:
            raise TickError("ticker is closed")

        now = self._clock()
        if self._next_deadline is None:
            self._next_deadline = now + self._interval
        elif now >= self._next_deadline + self._interval:
            missed = math.floor((now - self._next_deadline) / self._interval)
            self._skipped += missed
            self._next_deadline += missed * self._interval
            _logger.debug("Ticker overran, skipped %d tick(s)", missed)

        delay = max(0.0, self._next_deadline - now)
        await self._sleep(delay)
        self._next_deadline += self._interval

        if self._closed:
            raise TickError("ticker closed while waiting")
