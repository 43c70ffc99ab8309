"""Range specifications: resolution against a total size, and header text."""

from __future__ import annotations
import re
from typing import Iterable, List, Tuple

from .model import AbsoluteRange, SuffixRange, RangeSpec, RangeUnresolvableError

_CONTENT_RANGE_RE = re.compile(r"^\s*bytes\s+(\d+)-(\d+)/(\d+|\*)\s*$", re.IGNORECASE)


def as_range_spec(spec: RangeSpec) -> AbsoluteRange | SuffixRange:
    """Coerce a plain one- or two-item sequence into a typed range."""
    if isinstance(spec, (AbsoluteRange, SuffixRange)):
        return spec
    values = tuple(spec)
    if len(values) == 2 and values[1] is not None:
        return AbsoluteRange(int(values[0]), int(values[1]))
    if len(values) in (1, 2):
        return SuffixRange(int(values[0]))
    raise ValueError(f"Range must have one or two values, got {values!r}")


def resolve_range(spec: RangeSpec, total_size: int | None = None) -> AbsoluteRange:
    """Return the absolute, inclusive range `spec` refers to.

    Absolute ranges come back unchanged; they are not checked against
    `total_size`. Suffix ranges need `total_size`.
    """
    rng = as_range_spec(spec)
    if isinstance(rng, AbsoluteRange):
        return rng

    if total_size is None:
        raise RangeUnresolvableError("suffix range requested but total size unknown")
    last = total_size - 1
    first = last + 1 + rng.offset if rng.offset < 0 else rng.offset
    return AbsoluteRange(first, last)


def format_range_header(ranges: Iterable[RangeSpec]) -> str:
    """Render ranges as a `Range` header value, e.g. ``bytes=3-6, 100-, -30``."""
    specs = []
    for spec in ranges:
        rng = as_range_spec(spec)
        if isinstance(rng, AbsoluteRange):
            specs.append(f"{rng.first}-{rng.last}")
        elif rng.offset < 0:
            specs.append(str(rng.offset))
        else:
            specs.append(f"{rng.offset}-")
    return "bytes=" + ", ".join(specs)


def parse_range_header(value: str) -> List[AbsoluteRange | SuffixRange]:
    """Parse a `Range` header value. Units other than bytes yield no ranges."""
    if not value:
        raise ValueError("missing Range header value")
    unit, _, range_set = value.partition("=")
    if unit.strip().lower() != "bytes":
        return []

    ranges: List[AbsoluteRange | SuffixRange] = []
    for item in range_set.split(","):
        item = item.strip()
        if not item:
            continue
        first, sep, last = item.partition("-")
        if not sep:
            raise ValueError(f"Invalid byte range {item!r}")
        try:
            if not first:
                ranges.append(SuffixRange(-int(last)))
            elif not last:
                ranges.append(SuffixRange(int(first)))
            else:
                ranges.append(AbsoluteRange(int(first), int(last)))
        except ValueError:
            raise ValueError(f"Invalid byte range {item!r}") from None
        if isinstance(ranges[-1], AbsoluteRange) and ranges[-1].last < ranges[-1].first:
            raise ValueError(f"Byte range {item!r} ends before it starts")
    if not ranges:
        raise ValueError(f"No byte ranges in {value!r}")
    return ranges


def parse_content_range(value: str) -> Tuple[AbsoluteRange, int | None]:
    """Parse ``bytes first-last/total`` where total may be ``*``."""
    match = _CONTENT_RANGE_RE.match(value or "")
    if not match:
        raise ValueError(f"Invalid Content-Range {value!r}")
    first, last, total = match.groups()
    return AbsoluteRange(int(first), int(last)), None if total == "*" else int(total)
