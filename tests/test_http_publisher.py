from __future__ import annotations

import json
from typing import Any

import aiohttp
import pytest

from markersync._http import HttpMarkerPublisher
from markersync.config import SyncConfig
from markersync.exceptions import PublishError, SyncConfigError
from markersync.models import ActionCode, MarkerBatch, MarkerRecord


class _FakeResponse:
    def __init__(self, status: int, text: str = "") -> None:
        self.status = status
        self._text = text

    async def text(self) -> str:
        return self._text

    async def __aenter__(self) -> _FakeResponse:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        return None


class _FakeSession:
    def __init__(self, response: _FakeResponse | None = None, error: Exception | None = None) -> None:
        self.response = response or _FakeResponse(204)
        self.error = error
        self.requests: list[tuple[str, bytes, dict[str, str]]] = []
        self.closed = False

    def post(self, url: str, *, data: bytes, headers: dict[str, str], timeout: Any) -> _FakeResponse:
        self.requests.append((url, data, headers))
        if self.error is not None:
            raise self.error
        return self.response

    async def close(self) -> None:
        self.closed = True


_CONFIG = SyncConfig(http_url="http://collector.local/markers")


def _batch() -> MarkerBatch:
    return MarkerBatch(markers=[MarkerRecord(id="a", payload={}, action=ActionCode.MODIFY)])


@pytest.mark.asyncio
async def test_publish_posts_json_batch() -> None:
    session = _FakeSession()
    async with HttpMarkerPublisher(_CONFIG, session=session) as publisher:  # type: ignore[arg-type]
        await publisher.publish(_batch())

    url, body, headers = session.requests[0]
    assert url == "http://collector.local/markers"
    assert json.loads(body) == {"markers": [{"id": "a", "payload": {}, "action": 2}]}
    assert headers["content-type"].startswith("application/json")
    assert session.closed is False


@pytest.mark.asyncio
async def test_non_success_status_raises_publish_error() -> None:
    session = _FakeSession(_FakeResponse(503, "maintenance"))
    publisher = HttpMarkerPublisher(_CONFIG, session=session)  # type: ignore[arg-type]

    with pytest.raises(PublishError, match="HTTP 503"):
        await publisher.publish(_batch())


@pytest.mark.asyncio
async def test_client_error_is_wrapped() -> None:
    session = _FakeSession(error=aiohttp.ClientConnectionError("refused"))
    publisher = HttpMarkerPublisher(_CONFIG, session=session)  # type: ignore[arg-type]

    with pytest.raises(PublishError, match="refused"):
        await publisher.publish(_batch())


@pytest.mark.asyncio
async def test_publish_requires_session() -> None:
    publisher = HttpMarkerPublisher(_CONFIG)
    with pytest.raises(PublishError):
        await publisher.publish(_batch())


def test_missing_url_is_a_config_error() -> None:
    with pytest.raises(SyncConfigError):
        HttpMarkerPublisher(SyncConfig())
