"""Pydantic models for markersync."""

from markersync.models.marker import (
    ActionCode,
    CommitReport,
    MarkerBatch,
    MarkerRecord,
    PendingUpdate,
    UnknownTargetUpdate,
    UpdateKind,
)

__all__ = [
    "ActionCode",
    "CommitReport",
    "MarkerBatch",
    "MarkerRecord",
    "PendingUpdate",
    "UnknownTargetUpdate",
    "UpdateKind",
]
