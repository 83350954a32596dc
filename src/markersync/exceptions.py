"""Custom exception hierarchy for markersync."""

from __future__ import annotations


class MarkerSyncError(Exception):
    """Base exception for all markersync errors."""


class SyncConfigError(MarkerSyncError):
    """Invalid or missing configuration."""


class PublishError(MarkerSyncError):
    """A publisher could not hand a batch to its transport.

    Never fatal to the publish loop: the failed tick is logged and the next
    tick resends the full state.
    """

    def __init__(self, message: str, *, topic: str = "") -> None:
        self.topic = topic
        super().__init__(message)


class TickError(MarkerSyncError):
    """The tick source failed or was closed.

    Fatal to the publish loop, which stops and re-raises it to its owner.
    """


class WireFormatError(MarkerSyncError):
    """A received batch could not be decoded."""


class PayloadEncodingError(MarkerSyncError):
    """A staged payload cannot be serialized to the wire format.

    Raised to the caller at staging time so that one bad payload never
    reaches the store, where it would fail every later publish.
    """

    def __init__(self, message: str, *, marker_id: str = "") -> None:
        self.marker_id = marker_id
        super().__init__(message)
