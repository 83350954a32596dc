"""Authoritative in-memory marker store.

Only two writers exist: the commit step (through :meth:`MarkerStore.transaction`)
and the publish loop's post-publish cleanup (:meth:`MarkerStore.purge_published`).
Everything handed out is a copy.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager

from markersync.exceptions import MarkerSyncError
from markersync.models import ActionCode, MarkerRecord
from markersync.state.policy import cleanup_targets


class StoreTransaction:
    """Scoped write access to the store's records.

    Only valid inside ``MarkerStore.transaction()``; any use after the block
    exits raises :class:`MarkerSyncError`.
    """

    def __init__(self, records: dict[str, MarkerRecord]) -> None:
        self._records: dict[str, MarkerRecord] | None = records

    def _live(self) -> dict[str, MarkerRecord]:
        if self._records is None:
            raise MarkerSyncError("store transaction used after it was closed")
        return self._records

    def _close(self) -> None:
        self._records = None

    def __contains__(self, marker_id: object) -> bool:
        return marker_id in self._live()

    def get(self, marker_id: str) -> MarkerRecord | None:
        return self._live().get(marker_id)

    def add(self, record: MarkerRecord) -> None:
        records = self._live()
        if record.id in records:
            raise MarkerSyncError(f"marker '{record.id}' already exists")
        records[record.id] = record

    def records(self) -> Iterator[MarkerRecord]:
        return iter(list(self._live().values()))


class MarkerStore:
    """Mapping of marker id to committed :class:`MarkerRecord`."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, MarkerRecord] = {}

    @contextmanager
    def transaction(self) -> Iterator[StoreTransaction]:
        """Hold the store lock for the duration of the block."""
        with self._lock:
            txn = StoreTransaction(self._records)
            try:
                yield txn
            finally:
                txn._close()  # noqa: SLF001

    def __contains__(self, marker_id: object) -> bool:
        with self._lock:
            return marker_id in self._records

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def get(self, marker_id: str) -> MarkerRecord | None:
        with self._lock:
            record = self._records.get(marker_id)
            return record.model_copy(deep=True) if record is not None else None

    def snapshot(self) -> list[MarkerRecord]:
        """Deep copy of every record, in insertion order."""
        with self._lock:
            return [record.model_copy(deep=True) for record in self._records.values()]

    def purge_published(self, published: Sequence[MarkerRecord]) -> list[str]:
        """Remove records whose delete lifecycle was just surfaced to subscribers.

        *published* is the snapshot the last batch was built from. A record is
        only removed while its live action still equals the published one, so
        a record re-tagged by a commit that ran after the snapshot survives
        until its new action has been published too.

        Returns the removed ids.
        """
        targets = cleanup_targets(published)
        if not targets:
            return []

        removed: list[str] = []
        with self._lock:
            for marker_id, published_action in targets.items():
                live = self._records.get(marker_id)
                if live is None or live.action != published_action:
                    continue
                del self._records[marker_id]
                removed.append(marker_id)
        return removed

    def actions(self) -> dict[str, ActionCode]:
        with self._lock:
            return {marker_id: record.action for marker_id, record in self._records.items()}
