"""Subscriber-side view of the published marker state.

Every batch carries the full state, so a mirror rebuilds its view from the
latest batch alone. A consumer that joins late, or drops messages, matches
the server again after the next batch it receives.
"""

from __future__ import annotations

import copy
import logging
from typing import Any

from markersync.models import ActionCode, MarkerBatch
from markersync.wire import decode_batch

_logger = logging.getLogger(__name__)

_VISIBLE_ACTIONS = frozenset({ActionCode.KEEP, ActionCode.ADD, ActionCode.MODIFY})


class MarkerMirror:
    """Current visible markers as seen by one subscriber."""

    def __init__(self) -> None:
        self._view: dict[str, dict[str, Any]] = {}
        self._batches = 0

    @property
    def batches(self) -> int:
        return self._batches

    def apply(self, batch: MarkerBatch) -> set[str]:
        """Replace the view with *batch*; return ids whose visibility or payload changed."""
        view: dict[str, dict[str, Any]] = {}
        if not batch.has_delete_all:
            for marker in batch.markers:
                if marker.action in _VISIBLE_ACTIONS:
                    view[marker.id] = copy.deepcopy(marker.payload)

        changed = {
            marker_id
            for marker_id in set(self._view) | set(view)
            if self._view.get(marker_id) != view.get(marker_id)
        }
        self._view = view
        self._batches += 1
        if changed:
            _logger.debug("Mirror view changed: %s", sorted(changed))
        return changed

    def apply_bytes(self, data: bytes | str) -> set[str]:
        """Decode a wire batch and apply it."""
        return self.apply(decode_batch(data))

    def view(self) -> dict[str, dict[str, Any]]:
        return copy.deepcopy(self._view)

    def __contains__(self, marker_id: object) -> bool:
        return marker_id in self._view

    def __len__(self) -> int:
        return len(self._view)
