"""JSON wire encoding for published batches.

Schema::

    {"markers": [{"id": "<name>", "payload": {...}, "action": <0-4>}, ...]}

Action codes are the integer values of :class:`ActionCode`.
"""

from __future__ import annotations

from typing import Any

from pydantic import TypeAdapter, ValidationError

from markersync.exceptions import PayloadEncodingError, WireFormatError
from markersync.models import MarkerBatch

# Same serializer the ``payload`` field of a published record goes through.
_PAYLOAD_ADAPTER: TypeAdapter[dict[str, Any]] = TypeAdapter(dict[str, Any])


def encode_batch(batch: MarkerBatch) -> bytes:
    """Serialize *batch* to compact UTF-8 JSON."""
    return batch.model_dump_json().encode("utf-8")


def encode_payload(payload: dict[str, Any], *, marker_id: str = "") -> bytes:
    """Serialize a single marker payload to JSON.

    Raises :class:`PayloadEncodingError` when the payload holds values the
    wire format cannot carry, such as bytes that are not valid UTF-8 or
    arbitrary objects.
    """
    try:
        return _PAYLOAD_ADAPTER.dump_json(payload)
    except (ValueError, TypeError) as exc:
        raise PayloadEncodingError(
            f"Payload for marker '{marker_id}' is not JSON-encodable: {exc}",
            marker_id=marker_id,
        ) from exc


def decode_batch(data: bytes | str) -> MarkerBatch:
    """Parse a batch received from a publisher.

    Raises :class:`WireFormatError` for malformed JSON, unknown action codes
    or missing fields.
    """
    try:
        return MarkerBatch.model_validate_json(data)
    except ValidationError as exc:
        raise WireFormatError(f"Invalid marker batch: {exc.error_count()} error(s): {exc.errors()[0]['msg']}") from exc
