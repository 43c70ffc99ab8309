"""byteranges - streaming encoder and decoder for multipart/byteranges bodies."""

from .core.model import (                                             # re-export
    AbsoluteRange, SuffixRange, EncodeOptions, DecodedPart,
    RangeUnresolvableError, MalformedPartError, DEFAULT_CONTENT_TYPE,
)
from .core.ranges import resolve_range, format_range_header, parse_range_header, parse_content_range
from .core.framing import generate_boundary
from .encoder import MultipartByteRangeEncoder
from .decoder import MultipartByteRangeDecoder, get_boundary, decode_part_header
from .io import RangeNotSupportedError, open_fetcher, fetch_ranges, fetch_ranges_async


__all__ = [
    "MultipartByteRangeEncoder", "MultipartByteRangeDecoder",
    "get_boundary", "decode_part_header",
    "resolve_range", "format_range_header", "parse_range_header", "parse_content_range",
    "generate_boundary", "open_fetcher", "fetch_ranges", "fetch_ranges_async",
    "AbsoluteRange", "SuffixRange", "EncodeOptions", "DecodedPart", "DEFAULT_CONTENT_TYPE",
    "RangeUnresolvableError", "MalformedPartError", "RangeNotSupportedError",
]
