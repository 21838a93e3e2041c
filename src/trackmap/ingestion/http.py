"""HTTP chunk fetcher for device location history."""

from __future__ import annotations

import json
import logging
from typing import Any

import aiohttp

from trackmap.exceptions import TrackMapTransportError
from trackmap.ingestion.normalize import parse_points
from trackmap.models.point import Point

_logger = logging.getLogger(__name__)

USER_AGENT = "trackmap/0.1"


class HttpChunkFetcher:
    """Async ``fetch(device_id, offset, chunk_size)`` callable backed by aiohttp.

    Requests ``GET {base_url}/devices/{device_id}/locations?offset=&limit=``
    and accepts either a JSON list of records or ``{"data": [...]}``.

    Usage::

        async with HttpChunkFetcher("https://fleet.example.com/api") as fetch:
            result = await loader.load(fetch, "IMEI-1")
    """

    def __init__(
        self,
        base_url: str,
        *,
        session: aiohttp.ClientSession | None = None,
        headers: dict[str, str] | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._external_session = session is not None
        self._http = session
        self._headers = {"accept": "application/json", "user-agent": USER_AGENT, **(headers or {})}
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def __aenter__(self) -> HttpChunkFetcher:
        if self._http is None:
            self._http = aiohttp.ClientSession(timeout=self._timeout)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http is not None:
            await self._http.close()
            self._http = None

    def _require_session(self) -> aiohttp.ClientSession:
        if self._http is None:
            raise TrackMapTransportError("Fetcher not initialized. Use 'async with HttpChunkFetcher(...) as fetch:'")
        return self._http

    async def __call__(self, device_id: str, offset: int, chunk_size: int) -> list[Point]:
        http = self._require_session()
        url = f"{self._base_url}/devices/{device_id}/locations"
        params = {"offset": str(offset), "limit": str(chunk_size)}

        _logger.debug("GET %s offset=%d limit=%d", url, offset, chunk_size)

        try:
            async with http.get(url, params=params, headers=self._headers) as resp:
                text = await resp.text()
                if resp.status != 200:
                    raise TrackMapTransportError(
                        f"HTTP {resp.status} from {url}: {text[:200]}",
                        status_code=resp.status,
                        url=url,
                    )
        except TrackMapTransportError:
            raise
        except aiohttp.ClientError as exc:
            raise TrackMapTransportError(f"Request to {url} failed: {exc}", url=url) from exc

        try:
            body = json.loads(text)
        except json.JSONDecodeError as exc:
            raise TrackMapTransportError(f"Invalid JSON from {url}: {text[:200]}", url=url) from exc

        if isinstance(body, dict):
            body = body.get("data")
        if not isinstance(body, list):
            raise TrackMapTransportError(f"Expected a list of locations from {url}", url=url)

        return parse_points(body)
