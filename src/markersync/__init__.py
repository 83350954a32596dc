"""markersync - staged-commit marker state server with periodic full-state publish."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("markersync")
except PackageNotFoundError:
    __version__ = "0+local"
from markersync._http import HttpMarkerPublisher
from markersync._mqtt import MqttMarkerPublisher
from markersync.config import SyncConfig
from markersync.exceptions import (
    MarkerSyncError,
    PayloadEncodingError,
    PublishError,
    SyncConfigError,
    TickError,
    WireFormatError,
)
from markersync.mirror import MarkerMirror
from markersync.models import (
    ActionCode,
    CommitReport,
    MarkerBatch,
    MarkerRecord,
    PendingUpdate,
    UnknownTargetUpdate,
    UpdateKind,
)
from markersync.publisher import CallbackPublisher, MarkerPublisher, PublishLoop
from markersync.server import SyncServer
from markersync.ticker import IntervalTicker, TickSource
from markersync.wire import decode_batch, encode_batch, encode_payload

__all__ = [
    "__version__",
    "ActionCode",
    "CallbackPublisher",
    "CommitReport",
    "HttpMarkerPublisher",
    "IntervalTicker",
    "MarkerBatch",
    "MarkerMirror",
    "MarkerPublisher",
    "MarkerRecord",
    "MarkerSyncError",
    "MqttMarkerPublisher",
    "PayloadEncodingError",
    "PendingUpdate",
    "PublishError",
    "PublishLoop",
    "SyncConfig",
    "SyncConfigError",
    "SyncServer",
    "TickError",
    "TickSource",
    "UnknownTargetUpdate",
    "UpdateKind",
    "WireFormatError",
    "decode_batch",
    "encode_batch",
    "encode_payload",
]
