"""Header blocks of individual parts."""

import httpx


def decode_part_header(data: bytes) -> httpx.Headers:
    """Parse a part's header block into a case-insensitive mapping."""
    pairs = []
    for line in bytes(data).decode("latin-1").split("\r\n"):
        name, sep, value = line.partition(":")
        if not sep:
            continue
        pairs.append((name.strip(), value.strip()))
    return httpx.Headers(pairs)
