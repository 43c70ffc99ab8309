"""Streaming decoder for multipart/byteranges bodies."""

from __future__ import annotations
import enum
import logging
import re
from collections.abc import Mapping
from typing import AsyncIterable, AsyncIterator, Iterable, Iterator, List, Optional

from .core.headers import decode_part_header  # noqa: F401
from .core.model import DecodedPart, MalformedPartError
from .core.scanner import BoundaryScanner

logger = logging.getLogger(__name__)

LINE_BREAK = b"\r\n"
DOUBLE_LINE_BREAK = LINE_BREAK + LINE_BREAK
_BOUNDARY_RE = re.compile(r'''boundary=(?:"([^"]+)"|([\w'()+,./:=?-]+))''', re.IGNORECASE)
CLOSE_DELIMITER = b"--"


def get_boundary(value) -> Optional[str]:
    """Return the boundary token of a Content-Type value or headers mapping."""
    if isinstance(value, Mapping):
        value = _header_lookup(value, "content-type")
    match = _BOUNDARY_RE.search(value or "")
    if not match:
        return None
    return match.group(1) or match.group(2)


def _header_lookup(headers: Mapping, name: str) -> Optional[str]:
    found = headers.get(name)
    if found is not None:
        return found
    for key, val in headers.items():
        if key.lower() == name:
            return val
    return None


class DecoderState(enum.Enum):
    AWAITING_FIRST_BOUNDARY = "awaiting_first_boundary"
    ACCUMULATING_PART = "accumulating_part"
    FINISHED = "finished"


class MultipartByteRangeDecoder:
    """Turn raw body chunks into DecodedPart values as each part closes.

    Only the part currently being read is buffered, so memory use follows
    the largest single part rather than the size of the whole body.
    """

    def __init__(self, boundary: str):
        self.boundary = boundary
        self.state = DecoderState.AWAITING_FIRST_BOUNDARY
        self.parts_decoded = 0
        self._scanner = BoundaryScanner(f"--{boundary}".encode("latin-1"))
        self._part = bytearray()

    @property
    def buffered(self) -> int:
        """Bytes held for the part in flight."""
        return len(self._part)

    def feed(self, chunk) -> List[DecodedPart]:
        """Push one raw chunk; return the parts it completed, in wire order."""
        parts: List[DecodedPart] = []
        if self.state is DecoderState.FINISHED:
            return parts
        for event in self._scanner.push(chunk):
            if self.state is DecoderState.FINISHED:
                break
            if event.data is not None and self.state is DecoderState.ACCUMULATING_PART:
                # copies, so transient views never outlive this call
                self._part.extend(event.data)
                if self._part.startswith(CLOSE_DELIMITER):
                    self._finish()
                    break

            if not event.is_match:
                continue
            if self.state is DecoderState.AWAITING_FIRST_BOUNDARY:
                self.state = DecoderState.ACCUMULATING_PART
                continue
            parts.append(self._close_part())
        return parts

    def _close_part(self) -> DecodedPart:
        index = self._part.find(DOUBLE_LINE_BREAK)
        if index == -1:
            raise MalformedPartError("headers not found")

        part = DecodedPart(
            header=bytes(self._part[len(LINE_BREAK):index]),
            content=bytes(self._part[index + len(DOUBLE_LINE_BREAK):len(self._part) - len(LINE_BREAK)]),
        )
        self._part.clear()
        self.parts_decoded += 1
        logger.debug("Decoded part %d (%d content bytes)", self.parts_decoded, len(part.content))
        return part

    def _finish(self) -> None:
        """Closing delimiter seen; the epilogue that follows is ignored."""
        logger.debug("Closing delimiter after %d parts", self.parts_decoded)
        self.state = DecoderState.FINISHED
        self._part.clear()

    def close(self) -> None:
        """Signal end of input. Trailing bytes that never closed a part are dropped."""
        for event in self._scanner.flush():
            if self.state is DecoderState.ACCUMULATING_PART:
                self._part.extend(event.data)
        if self._part.strip(b"-\r\n"):
            logger.warning("Discarding %d bytes after the last boundary", len(self._part))
        self._part.clear()

    def decode(self, chunks: Iterable[bytes]) -> Iterator[DecodedPart]:
        for chunk in chunks:
            yield from self.feed(chunk)
        self.close()

    async def decode_async(self, chunks: AsyncIterable[bytes]) -> AsyncIterator[DecodedPart]:
        async for chunk in chunks:
            for part in self.feed(chunk):
                yield part
        self.close()
