"""Deterministic commit and cleanup rules.

This module holds *no* locking. Callers pass in a :class:`StoreTransaction`
(or a published snapshot) and get the same result for the same inputs.
"""

from __future__ import annotations

import copy
from collections.abc import Sequence
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from markersync.models import ActionCode, MarkerRecord, PendingUpdate, UpdateKind

if TYPE_CHECKING:
    from markersync.state.store import StoreTransaction


class ApplyOutcome(StrEnum):
    APPLIED = "applied"
    # Add for an id already in the store: the committed record is left alone.
    IGNORED = "ignored"
    UNKNOWN_TARGET = "unknown_target"


def _merge_payload(target: dict[str, Any], patch: dict[str, Any]) -> None:
    """Keys in the patch overwrite; keys it does not mention are kept."""
    if not patch:
        return
    target.update(copy.deepcopy(patch))


def apply_update(txn: StoreTransaction, update: PendingUpdate) -> ApplyOutcome:
    """Apply one staged per-id update to the store."""
    if update.kind == UpdateKind.DELETE_ALL:
        # Not tied to one id, so it applies whether or not the id exists.
        apply_delete_all(txn)
        return ApplyOutcome.APPLIED

    existing = txn.get(update.id)

    if update.kind == UpdateKind.ADD:
        if existing is not None:
            return ApplyOutcome.IGNORED
        txn.add(MarkerRecord(id=update.id, payload=copy.deepcopy(update.payload), action=ActionCode.ADD))
        return ApplyOutcome.APPLIED

    if existing is None:
        return ApplyOutcome.UNKNOWN_TARGET

    if update.kind == UpdateKind.MODIFY:
        _merge_payload(existing.payload, update.payload)
        existing.action = ActionCode.MODIFY
        return ApplyOutcome.APPLIED

    existing.action = ActionCode.DELETE
    return ApplyOutcome.APPLIED


def apply_delete_all(txn: StoreTransaction) -> int:
    """Tag every record DELETE_ALL. Returns the number of records tagged."""
    count = 0
    for record in txn.records():
        record.action = ActionCode.DELETE_ALL
        count += 1
    return count


def cleanup_targets(published: Sequence[MarkerRecord]) -> dict[str, ActionCode]:
    """Ids to purge after *published* went out, with the action they carried.

    A single DELETE_ALL anywhere in the batch purges every published record;
    otherwise only DELETE-tagged records go.
    """
    if any(record.action == ActionCode.DELETE_ALL for record in published):
        return {record.id: record.action for record in published}
    return {record.id: record.action for record in published if record.action == ActionCode.DELETE}
