"""Staging buffer for caller intents awaiting the next commit."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from markersync.models import PendingUpdate


@dataclass(frozen=True)
class StagedBatch:
    """Everything staged since the previous commit."""

    updates: tuple[PendingUpdate, ...] = ()
    delete_all: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.updates and not self.delete_all


class UpdateStage:
    """Thread-safe mapping of marker id to its single pending update.

    Staging the same id twice before a commit keeps only the latest intent.
    The delete-all request is a separate flag so it never displaces, or is
    displaced by, per-id updates.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._pending: dict[str, PendingUpdate] = {}
        self._delete_all = False

    def put(self, update: PendingUpdate) -> PendingUpdate | None:
        """Stage *update*, returning the intent it replaced (if any)."""
        with self._lock:
            previous = self._pending.get(update.id)
            self._pending[update.id] = update
            return previous

    def request_delete_all(self) -> None:
        with self._lock:
            self._delete_all = True

    def peek(self, marker_id: str) -> PendingUpdate | None:
        with self._lock:
            return self._pending.get(marker_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending) + (1 if self._delete_all else 0)

    @property
    def is_empty(self) -> bool:
        return len(self) == 0

    @contextmanager
    def drain(self) -> Iterator[StagedBatch]:
        """Hold the stage lock, yield its contents, then clear it.

        The stage is cleared even when the caller fails while applying the
        batch: staged intents are never retried.
        """
        with self._lock:
            batch = StagedBatch(updates=tuple(self._pending.values()), delete_all=self._delete_all)
            try:
                yield batch
            finally:
                self._pending.clear()
                self._delete_all = False
