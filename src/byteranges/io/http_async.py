"""Asynchronous HTTP range fetching using httpx."""

import logging
from typing import AsyncIterator, Optional, Sequence

import httpx

from ..core.model import AbsoluteRange, DecodedPart, RangeSpec
from ..core.ranges import format_range_header
from ..decoder import MultipartByteRangeDecoder, get_boundary
from .base import RangeNotSupportedError, HTTP_TIMEOUT

logger = logging.getLogger(__name__)

# Global async client
_client: Optional[httpx.AsyncClient] = None


def _get_client() -> httpx.AsyncClient:
    """Get or create the global httpx AsyncClient."""
    global _client
    if _client is None:
        _client = httpx.AsyncClient(timeout=HTTP_TIMEOUT)
    return _client


def _check_partial(response: httpx.Response) -> None:
    if response.status_code == 200:
        raise RangeNotSupportedError("Server ignored the Range request")
    if response.status_code != 206:
        raise IOError(f"Range request failed with status {response.status_code}")


class HTTPRangeFetcher:
    """Byte-range fetcher streaming each range from an upstream URL."""

    def __init__(self, url: str, client: Optional[httpx.AsyncClient] = None):
        self.url = url
        self.bytes_fetched = 0
        self.requests_made = 0
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client or _get_client()

    async def total_size(self) -> Optional[int]:
        """Content length reported by a HEAD request, if any."""
        self.requests_made += 1
        try:
            response = await self.client.head(self.url)
        except httpx.RequestError as e:
            raise IOError(f"HEAD request failed: {e}")
        if response.status_code >= 400:
            raise IOError(f"HEAD request failed with status {response.status_code}")
        content_length = response.headers.get("content-length")
        return int(content_length) if content_length else None

    async def _stream(self, rng: AbsoluteRange) -> AsyncIterator[bytes]:
        headers = {"Range": f"bytes={rng.first}-{rng.last}"}
        self.requests_made += 1
        try:
            async with self.client.stream("GET", self.url, headers=headers) as response:
                _check_partial(response)
                async for chunk in response.aiter_bytes():
                    self.bytes_fetched += len(chunk)
                    yield chunk
        except httpx.RequestError as e:
            raise IOError(f"Range request failed: {e}")

    def __call__(self, rng: AbsoluteRange) -> AsyncIterator[bytes]:
        return self._stream(rng)


async def fetch_ranges_async(
    url: str,
    ranges: Sequence[RangeSpec],
    client: Optional[httpx.AsyncClient] = None,
) -> AsyncIterator[DecodedPart]:
    """Request several ranges of `url` in one GET and yield the parts received."""
    client = client or _get_client()
    headers = {"Range": format_range_header(ranges)}
    try:
        async with client.stream("GET", url, headers=headers) as response:
            _check_partial(response)
            content_type = response.headers.get("content-type", "")

            if not content_type.lower().startswith("multipart/byteranges"):
                # server collapsed the request into a single range
                logger.debug("Single-part response for %s", url)
                content = await response.aread()
                header = "\r\n".join(
                    f"{name}: {response.headers[name]}"
                    for name in ("content-type", "content-range") if name in response.headers
                )
                yield DecodedPart(header=header.encode("latin-1"), content=content)
                return

            boundary = get_boundary(content_type)
            if not boundary:
                raise IOError(f"No boundary in Content-Type {content_type!r}")
            decoder = MultipartByteRangeDecoder(boundary)
            async for part in decoder.decode_async(response.aiter_bytes()):
                yield part
    except httpx.RequestError as e:
        raise IOError(f"Range request failed: {e}")


async def close_global_client():
    """Close the global httpx client. Call this at application shutdown."""
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
