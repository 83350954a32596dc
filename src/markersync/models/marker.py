"""Marker records, staged updates and the published batch.

``ActionCode`` values are part of the wire contract: subscribers key their
behavior off the integers, so they must never be renumbered.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ActionCode(enum.IntEnum):
    """What the next publish tells subscribers about a record."""

    KEEP = 0
    ADD = 1
    MODIFY = 2
    # Published once, then purged.
    DELETE = 3
    # Published once, then the whole store is purged.
    DELETE_ALL = 4

    @property
    def purges_after_publish(self) -> bool:
        return self in (ActionCode.DELETE, ActionCode.DELETE_ALL)


class UpdateKind(StrEnum):
    ADD = "add"
    MODIFY = "modify"
    DELETE = "delete"
    DELETE_ALL = "delete_all"


class MarkerRecord(BaseModel):
    """A committed marker as held by the store and sent on the wire."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(..., description="Marker name, unique within the store")
    payload: dict[str, Any] = Field(default_factory=dict, description="Opaque marker contents")
    action: ActionCode = ActionCode.KEEP


class PendingUpdate(BaseModel):
    """A caller intent waiting in the stage for the next commit."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    kind: UpdateKind
    payload: dict[str, Any] = Field(default_factory=dict)


class UnknownTargetUpdate(BaseModel):
    """Report for a modify/delete aimed at a marker the store does not hold.

    Non-fatal: the update is dropped and this report is logged and handed to
    the server's ``on_unknown_target`` callback.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    kind: UpdateKind
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class MarkerBatch(BaseModel):
    """Full-state message handed to publishers on every tick."""

    model_config = ConfigDict(extra="forbid")

    markers: list[MarkerRecord] = Field(default_factory=list)

    @classmethod
    def from_records(cls, records: list[MarkerRecord]) -> MarkerBatch:
        return cls(markers=records)

    @property
    def ids(self) -> list[str]:
        return [marker.id for marker in self.markers]

    @property
    def has_delete_all(self) -> bool:
        return any(marker.action == ActionCode.DELETE_ALL for marker in self.markers)

    def __len__(self) -> int:
        return len(self.markers)


@dataclass
class CommitReport:
    """Outcome of one commit pass."""

    applied: list[str] = field(default_factory=list)
    ignored: list[str] = field(default_factory=list)
    unknown_targets: list[UnknownTargetUpdate] = field(default_factory=list)
    delete_all: bool = False

    @property
    def is_empty(self) -> bool:
        return not (self.applied or self.ignored or self.unknown_targets or self.delete_all)
