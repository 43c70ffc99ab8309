"""Lazily pulled encoder for multipart/byteranges bodies."""

from __future__ import annotations
import enum
import inspect
import logging
from collections import deque
from dataclasses import dataclass
from typing import AsyncIterable, AsyncIterator, Awaitable, Callable, Dict, Optional, Sequence, Union

from .core.framing import (
    encode_part_footer, encode_part_header, generate_boundary, multipart_content_type, part_length,
)
from .core.model import AbsoluteRange, EncodeOptions, RangeSpec
from .core.ranges import resolve_range

logger = logging.getLogger(__name__)

ByteFetcher = Callable[
    [AbsoluteRange],
    Union[AsyncIterable[bytes], Awaitable[AsyncIterable[bytes]]],
]


@dataclass(slots=True)
class _Part:
    header: bytes
    range: AbsoluteRange
    footer: bytes


class EncoderState(enum.Enum):
    BEFORE_PART = "before_part"
    STREAMING_PART = "streaming_part"
    DONE = "done"


class MultipartByteRangeEncoder:
    """Async iterator over the framed bytes of a multipart/byteranges response.

    Every range is resolved and framed up front, so `headers` and `length`
    are known before any content is read. Content for a part is only
    requested from `fetcher` once the consumer has pulled past the previous
    part; exactly one content source is open at a time.

    Suffix ranges need ``options.total_size``; without it construction
    raises RangeUnresolvableError and `fetcher` is never called.
    """

    def __init__(
        self,
        ranges: Sequence[RangeSpec],
        fetcher: ByteFetcher,
        options: Optional[EncodeOptions] = None,
        *,
        boundary: Optional[str] = None,
        boundary_factory: Callable[[], str] = generate_boundary,
    ):
        self.options = options or EncodeOptions()
        self.boundary = boundary or boundary_factory()
        self.state = EncoderState.BEFORE_PART
        self.bytes_emitted = 0
        self._fetcher = fetcher
        self._parts: deque[_Part] = deque()
        self._part: Optional[_Part] = None
        self._source = None
        self._iterator: Optional[AsyncIterator[bytes]] = None
        self._pending = b""

        length = 0
        for index, spec in enumerate(ranges):
            rng = resolve_range(spec, self.options.total_size)
            header = encode_part_header(self.boundary, rng, self.options)
            footer = encode_part_footer(self.boundary, index == len(ranges) - 1)
            length += part_length(header, rng, footer)
            self._parts.append(_Part(header, rng, footer))
        self._length = length

        self._headers = {
            "Content-Length": str(length),
            "Content-Type": multipart_content_type(self.boundary),
        }

    @property
    def length(self) -> int:
        return self._length

    @property
    def headers(self) -> Dict[str, str]:
        return dict(self._headers)

    def __aiter__(self):
        return self

    async def __anext__(self) -> bytes:
        try:
            chunk = await self._next()
        except BaseException:
            await self.aclose()
            raise
        if chunk is None:
            raise StopAsyncIteration
        self.bytes_emitted += len(chunk)
        return chunk

    async def _next(self) -> Optional[bytes]:
        """Advance the state machine by one step; None means end of output."""
        if self._pending:
            return self._slice(self._pending)

        if self.state is EncoderState.BEFORE_PART:
            if not self._parts:
                self.state = EncoderState.DONE
                return None
            self._part = self._parts.popleft()
            await self._open_source(self._part.range)
            self.state = EncoderState.STREAMING_PART
            return self._part.header

        if self.state is EncoderState.STREAMING_PART:
            try:
                chunk = await self._iterator.__anext__()
            except StopAsyncIteration:
                footer = self._part.footer
                await self._close_source()
                self._part = None
                self.state = EncoderState.BEFORE_PART
                return footer
            return self._slice(bytes(chunk))

        return None

    def _slice(self, chunk: bytes) -> bytes:
        limit = self.options.max_chunk_size
        if limit and len(chunk) > limit:
            chunk, self._pending = chunk[:limit], chunk[limit:]
        else:
            self._pending = b""
        return chunk

    async def _open_source(self, rng: AbsoluteRange) -> None:
        logger.debug("Opening content source for bytes %d-%d", rng.first, rng.last)
        source = self._fetcher(rng)
        if inspect.isawaitable(source):
            source = await source
        self._source = source
        self._iterator = source.__aiter__()

    async def _close_source(self) -> None:
        source, iterator = self._source, self._iterator
        self._source = self._iterator = None
        for obj in (iterator, source):
            aclose = getattr(obj, "aclose", None)
            if aclose is not None:
                await aclose()
                return

    async def aclose(self) -> None:
        """Stop producing output and release the open content source, if any."""
        if self.state is EncoderState.DONE:
            return
        if self._source is not None:
            logger.debug("Encoder closed early, releasing open content source")
        self.state = EncoderState.DONE
        self._parts.clear()
        self._pending = b""
        await self._close_source()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
