"""Synchronous HTTP range fetching using requests."""

import logging
from typing import Iterator, Optional, Sequence

import requests

from ..core.model import DecodedPart, RangeSpec
from ..core.ranges import format_range_header
from ..decoder import MultipartByteRangeDecoder, get_boundary
from .base import RangeNotSupportedError, DEFAULT_CHUNK_SIZE, HTTP_TIMEOUT

logger = logging.getLogger(__name__)

# Module-level session for connection pooling
_session = None


def _get_session():
    """Get or create the global requests session."""
    global _session
    if _session is None:
        _session = requests.Session()
    return _session


def fetch_ranges(
    url: str,
    ranges: Sequence[RangeSpec],
    session: Optional[requests.Session] = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Iterator[DecodedPart]:
    """Request several ranges of `url` in one GET and yield the parts received."""
    session = session or _get_session()
    headers = {"Range": format_range_header(ranges)}
    try:
        with session.get(url, headers=headers, stream=True, timeout=HTTP_TIMEOUT) as response:
            if response.status_code == 200:
                raise RangeNotSupportedError("Server ignored the Range request")
            if response.status_code != 206:
                raise IOError(f"Range request failed with status {response.status_code}")

            content_type = response.headers.get("content-type", "")
            if not content_type.lower().startswith("multipart/byteranges"):
                # server collapsed the request into a single range
                logger.debug("Single-part response for %s", url)
                header = "\r\n".join(
                    f"{name}: {response.headers[name]}"
                    for name in ("content-type", "content-range") if name in response.headers
                )
                yield DecodedPart(header=header.encode("latin-1"), content=response.content)
                return

            boundary = get_boundary(content_type)
            if not boundary:
                raise IOError(f"No boundary in Content-Type {content_type!r}")
            decoder = MultipartByteRangeDecoder(boundary)
            yield from decoder.decode(response.iter_content(chunk_size))
    except requests.RequestException as e:
        raise IOError(f"Range request failed: {e}")
