"""HTTP publisher that POSTs each batch to a collector endpoint."""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from markersync._constants import CONTENT_TYPE_JSON
from markersync.config import SyncConfig
from markersync.exceptions import PublishError, SyncConfigError
from markersync.models import MarkerBatch
from markersync.wire import encode_batch

_logger = logging.getLogger(__name__)


class HttpMarkerPublisher:
    """POST the JSON batch to ``config.http_url`` on every tick.

    Pass an existing :class:`aiohttp.ClientSession` to share connection
    pools; otherwise one is created on ``__aenter__`` and closed on exit.
    """

    def __init__(
        self,
        config: SyncConfig,
        *,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        if not config.http_url:
            raise SyncConfigError("http_url is required for HttpMarkerPublisher")
        self._url = config.http_url
        self._timeout = aiohttp.ClientTimeout(total=config.http_timeout)
        self._external_session = session is not None
        self._http = session

    async def __aenter__(self) -> HttpMarkerPublisher:
        if self._http is None:
            self._http = aiohttp.ClientSession(timeout=self._timeout)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http is not None:
            await self._http.close()
            self._http = None

    async def publish(self, batch: MarkerBatch) -> None:
        if self._http is None:
            raise PublishError("HTTP publisher not initialized. Use 'async with HttpMarkerPublisher(...)'")

        headers = {"content-type": CONTENT_TYPE_JSON}
        body = encode_batch(batch)
        _logger.debug("POST %s markers=%d", self._url, len(batch))

        try:
            async with self._http.post(self._url, data=body, headers=headers, timeout=self._timeout) as resp:
                if resp.status >= 300:
                    text = await resp.text()
                    raise PublishError(f"HTTP {resp.status} from {self._url}: {text[:200]}")
        except PublishError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise PublishError(f"POST to {self._url} failed: {exc}") from exc
