"""Periodic full-state publish with post-publish cleanup."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

from markersync.models import MarkerBatch
from markersync.state.store import MarkerStore
from markersync.ticker import TickSource

_logger = logging.getLogger(__name__)


class MarkerPublisher(Protocol):
    """Structural publish interface used by :class:`PublishLoop`.

    Any exception raised from ``publish`` is treated as a failed tick, never
    as fatal.
    """

    async def publish(self, batch: MarkerBatch) -> None:
        ...


class CallbackPublisher:
    """Adapt a plain callable (sync or async) to :class:`MarkerPublisher`."""

    def __init__(self, callback: Callable[[MarkerBatch], Awaitable[None] | None]) -> None:
        self._callback = callback

    async def publish(self, batch: MarkerBatch) -> None:
        result = self._callback(batch)
        if inspect.isawaitable(result):
            await result


class PublishLoop:
    """Snapshot, publish and clean up the store once per tick.

    Usage::

        loop = PublishLoop(store, publisher, IntervalTicker(0.02))
        await loop.run()  # returns only by raising TickError
    """

    def __init__(
        self,
        store: MarkerStore,
        publisher: MarkerPublisher,
        ticker: TickSource,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._store = store
        self._publisher = publisher
        self._ticker = ticker
        self._logger = logger or _logger
        self._ticks = 0
        self._publish_failures = 0
        self._last_batch: MarkerBatch | None = None

    @property
    def ticks(self) -> int:
        """Number of completed publish attempts."""
        return self._ticks

    @property
    def publish_failures(self) -> int:
        return self._publish_failures

    @property
    def last_batch(self) -> MarkerBatch | None:
        """The most recent batch handed to the publisher."""
        return self._last_batch

    async def run_once(self) -> MarkerBatch:
        """Run one tick body without waiting on the tick source.

        Cleanup is skipped when the publish fails, so records tagged for
        deletion are still surfaced at least once by a later tick.
        """
        snapshot = self._store.snapshot()
        batch = MarkerBatch.from_records(snapshot)
        self._ticks += 1
        self._last_batch = batch

        try:
            await self._publisher.publish(batch)
        except Exception as exc:
            self._publish_failures += 1
            self._logger.warning("Marker batch publish failed (%d markers): %s", len(batch), exc)
            self._logger.debug("Publish failure details", exc_info=True)
            return batch

        removed = self._store.purge_published(snapshot)
        if removed:
            self._logger.debug("Purged %d marker(s) after publish: %s", len(removed), removed)
        return batch

    async def run(self) -> None:
        """Publish forever; a :class:`TickError` from the tick source ends the loop."""
        self._logger.debug("Marker publish loop started")
        try:
            while True:
                await self.run_once()
                await self._ticker.tick()
        except Exception:
            self._logger.error("Marker publish loop stopped after %d tick(s)", self._ticks, exc_info=True)
            raise
