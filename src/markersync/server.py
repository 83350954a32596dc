"""Staged-commit marker server."""

from __future__ import annotations

import asyncio
import contextlib
import copy
import logging
from collections.abc import Callable
from typing import Any

from markersync._summary import summarize_for_log
from markersync.config import SyncConfig
from markersync.exceptions import MarkerSyncError
from markersync.models import CommitReport, MarkerRecord, PendingUpdate, UnknownTargetUpdate, UpdateKind
from markersync.publisher import MarkerPublisher, PublishLoop
from markersync.state.policy import ApplyOutcome, apply_delete_all, apply_update
from markersync.state.stage import UpdateStage
from markersync.state.store import MarkerStore
from markersync.ticker import IntervalTicker, TickSource
from markersync.wire import encode_payload

_logger = logging.getLogger(__name__)


class SyncServer:
    """Stage marker changes, commit them atomically, publish the full state.

    Staging and commit are plain thread-safe methods. Publishing runs as an
    asyncio task started by the async context manager::

        async with SyncServer(config, publisher=publisher) as server:
            server.insert("cube", {"type": "cube", "scale": [0.45, 0.45, 0.45]})
            server.commit()
            await server.wait()
    """

    def __init__(
        self,
        config: SyncConfig | None = None,
        *,
        publisher: MarkerPublisher | None = None,
        ticker: TickSource | None = None,
        on_unknown_target: Callable[[UnknownTargetUpdate], None] | None = None,
    ) -> None:
        self._config = config or SyncConfig()
        self._store = MarkerStore()
        self._stage = UpdateStage()
        self._publisher = publisher
        self._ticker = ticker
        self._on_unknown_target = on_unknown_target
        self._loop: PublishLoop | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def config(self) -> SyncConfig:
        return self._config

    @property
    def publish_loop(self) -> PublishLoop | None:
        return self._loop

    # ------------------------------------------------------------------
    # Staging
    # ------------------------------------------------------------------

    def insert(self, marker_id: str, payload: dict[str, Any]) -> None:
        """Stage an add for *marker_id*, replacing any pending intent for it.

        An add for a marker that is already committed is ignored at commit;
        use :meth:`modify` to change a committed payload.

        Raises :class:`PayloadEncodingError` when *payload* cannot be
        published; nothing is staged in that case.
        """
        encode_payload(payload, marker_id=marker_id)
        payload = copy.deepcopy(payload)
        replaced = self._stage.put(PendingUpdate(id=marker_id, kind=UpdateKind.ADD, payload=payload))
        _logger.debug(
            "Marker staged for add name=%s replaced=%s payload=%s",
            marker_id,
            replaced.kind if replaced is not None else None,
            summarize_for_log(payload),
        )

    def modify(self, marker_id: str, payload: dict[str, Any]) -> None:
        """Stage a payload update; keys in *payload* overwrite committed ones.

        Raises :class:`PayloadEncodingError` like :meth:`insert`.
        """
        encode_payload(payload, marker_id=marker_id)
        payload = copy.deepcopy(payload)
        self._stage.put(PendingUpdate(id=marker_id, kind=UpdateKind.MODIFY, payload=payload))
        _logger.debug("Marker staged for modify name=%s payload=%s", marker_id, summarize_for_log(payload))

    def delete(self, marker_id: str) -> bool:
        """Stage a delete for a committed marker.

        Returns ``False`` and reports an :class:`UnknownTargetUpdate` when the
        store does not hold *marker_id*; nothing is staged in that case.
        """
        if marker_id not in self._store:
            self._report_unknown(UnknownTargetUpdate(id=marker_id, kind=UpdateKind.DELETE))
            return False
        self._stage.put(PendingUpdate(id=marker_id, kind=UpdateKind.DELETE))
        _logger.debug("Marker staged for delete name=%s", marker_id)
        return True

    def delete_all(self) -> None:
        """Stage removal of every marker committed at the next commit."""
        self._stage.request_delete_all()
        _logger.debug("Delete-all staged")

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------

    def commit(self) -> CommitReport:
        """Apply every staged intent to the store in one atomic pass.

        Per-id failures never abort the pass and are not retried; the stage
        is always empty afterwards.
        """
        report = CommitReport()
        with self._store.transaction() as txn, self._stage.drain() as staged:
            if staged.is_empty:
                _logger.debug("No changes to apply")
                return report

            for update in staged.updates:
                outcome = apply_update(txn, update)
                if outcome == ApplyOutcome.APPLIED:
                    report.applied.append(update.id)
                elif outcome == ApplyOutcome.IGNORED:
                    report.ignored.append(update.id)
                else:
                    report.unknown_targets.append(UnknownTargetUpdate(id=update.id, kind=update.kind))

            if staged.delete_all:
                tagged = apply_delete_all(txn)
                report.delete_all = True
                _logger.debug("Delete-all tagged %d marker(s)", tagged)

        # Callbacks run outside both locks so they may call back into the server.
        for unknown in report.unknown_targets:
            self._report_unknown(unknown)
        if report.ignored:
            _logger.debug("Add ignored for already committed marker(s): %s", report.ignored)
        _logger.debug(
            "Commit applied=%d ignored=%d unknown=%d delete_all=%s",
            len(report.applied),
            len(report.ignored),
            len(report.unknown_targets),
            report.delete_all,
        )
        return report

    def _report_unknown(self, report: UnknownTargetUpdate) -> None:
        _logger.warning("Pending %s update for non-existing marker '%s'.", report.kind, report.id)
        if self._on_unknown_target is not None:
            self._on_unknown_target(report)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, marker_id: str) -> MarkerRecord | None:
        """Copy of the committed record for *marker_id*."""
        return self._store.get(marker_id)

    def snapshot(self) -> list[MarkerRecord]:
        """Copy of every committed record."""
        return self._store.snapshot()

    @property
    def pending(self) -> int:
        """Number of staged intents awaiting commit."""
        return len(self._stage)

    def __contains__(self, marker_id: object) -> bool:
        return marker_id in self._store

    def __len__(self) -> int:
        return len(self._store)

    # ------------------------------------------------------------------
    # Publish loop lifecycle
    # ------------------------------------------------------------------

    def build_publish_loop(self) -> PublishLoop:
        """Create the publish loop bound to this server's store."""
        if self._publisher is None:
            raise MarkerSyncError("SyncServer has no publisher configured")
        ticker = self._ticker or IntervalTicker(self._config.tick_interval)
        self._ticker = ticker
        self._loop = PublishLoop(self._store, self._publisher, ticker, logger=_logger)
        return self._loop

    async def start(self) -> None:
        """Start publishing in a background task of the running event loop."""
        if self._task is not None and not self._task.done():
            return
        publish_loop = self.build_publish_loop()
        self._task = asyncio.get_running_loop().create_task(publish_loop.run(), name="markersync-publish")
        _logger.debug("Publishing to %s every %.3fs", self._config.topic, self._config.tick_interval)

    async def wait(self) -> None:
        """Wait for the publish loop to end, re-raising its :class:`TickError`."""
        if self._task is None:
            raise MarkerSyncError("SyncServer not started. Use 'async with SyncServer(...) as server:'")
        await self._task

    async def stop(self, *, reraise: bool = True) -> None:
        """Cancel the publish loop.

        A loop that already failed re-raises its error, unless *reraise* is
        false, in which case the error is only logged.
        """
        task = self._task
        self._task = None
        if task is None:
            return
        if task.done():
            if task.cancelled():
                return
            error = task.exception()
            if error is None:
                return
            if reraise:
                raise error
            _logger.debug("Publish loop had already stopped: %s", error)
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def __aenter__(self) -> SyncServer:
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        # An error raised in the body takes precedence over a loop failure.
        await self.stop(reraise=exc_type is None)
