"""Wire bytes for one part of a multipart/byteranges body."""

from __future__ import annotations
import random

from .model import AbsoluteRange, EncodeOptions

LINE_BREAK = "\r\n"
BOUNDARY_PREFIX = "-" * 23
BOUNDARY_DIGITS = 24


def generate_boundary(rand: random.Random | None = None) -> str:
    """Return a fresh boundary token. Not cryptographically random."""
    rand = rand or random
    return BOUNDARY_PREFIX + "".join(str(rand.randrange(10)) for _ in range(BOUNDARY_DIGITS))


def multipart_content_type(boundary: str) -> str:
    return f"multipart/byteranges; boundary={boundary}"


def encode_part_header(boundary: str, rng: AbsoluteRange, options: EncodeOptions) -> bytes:
    total = "*" if options.total_size is None else options.total_size
    headers = (
        f"Content-Type: {options.content_type}{LINE_BREAK}"
        f"Content-Range: bytes {rng.first}-{rng.last}/{total}"
    )
    return f"--{boundary}{LINE_BREAK}{headers}{LINE_BREAK}{LINE_BREAK}".encode("latin-1")


def encode_part_footer(boundary: str, is_last: bool) -> bytes:
    if is_last:
        return f"{LINE_BREAK}--{boundary}--{LINE_BREAK}".encode("latin-1")
    return LINE_BREAK.encode("latin-1")


def part_length(header: bytes, rng: AbsoluteRange, footer: bytes) -> int:
    """Bytes one framed part contributes to the response Content-Length."""
    return len(header) + rng.length + len(footer)
