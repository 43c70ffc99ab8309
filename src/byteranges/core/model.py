from __future__ import annotations
from dataclasses import dataclass
from typing import NamedTuple, Sequence, Union

from .headers import decode_part_header

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class AbsoluteRange(NamedTuple):
    """Resolved byte range, both bounds inclusive."""
    first: int
    last: int

    @property
    def length(self) -> int:
        return self.last - self.first + 1


class SuffixRange(NamedTuple):
    """Open-ended range: byte `offset` to the end, or the last -offset bytes when negative."""
    offset: int


RangeSpec = Union[AbsoluteRange, SuffixRange, Sequence[int]]


@dataclass(slots=True)
class EncodeOptions:
    content_type: str = DEFAULT_CONTENT_TYPE
    total_size: int | None = None
    max_chunk_size: int | None = None   # re-slice content chunks larger than this


@dataclass(slots=True)
class DecodedPart:
    header: bytes
    content: bytes

    @property
    def headers(self):
        return decode_part_header(self.header)


class RangeUnresolvableError(RuntimeError):
    """Raised when a suffix range is requested but the total size is unknown."""
    pass


class MalformedPartError(RuntimeError):
    """Raised when a closed part has no header/content separator."""
    pass
