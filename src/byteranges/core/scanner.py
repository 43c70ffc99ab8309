"""Incremental search for a delimiter across a sequence of byte chunks."""

from __future__ import annotations
from typing import List, NamedTuple, Optional


class ScanEvent(NamedTuple):
    is_match: bool
    data: Optional[memoryview]   # non-match bytes, None for a match
    is_safe: bool                # False when `data` aliases memory the caller may reuse


_MATCH = ScanEvent(True, None, True)


class BoundaryScanner:
    """Push chunks, get back match/non-match events in stream order.

    Bytes at the end of a chunk that could be the start of the pattern are
    held back until the next push, so a pattern split across chunks is
    still reported as a single match. At most ``len(pattern) - 1`` bytes are
    held between pushes.
    """

    def __init__(self, pattern: bytes):
        if not pattern:
            raise ValueError("Pattern must not be empty")
        self._pattern = bytes(pattern)
        self._tail = b""
        self.matches = 0

    @property
    def pattern(self) -> bytes:
        return self._pattern

    def push(self, chunk) -> List[ScanEvent]:
        if isinstance(chunk, memoryview):
            chunk = chunk.tobytes()
        if self._tail:
            data = self._tail + bytes(chunk)
            safe = True
        else:
            data = chunk
            safe = isinstance(chunk, bytes)
        self._tail = b""

        events: List[ScanEvent] = []
        view = memoryview(data)
        plen = len(self._pattern)
        pos = 0
        while True:
            idx = data.find(self._pattern, pos)
            if idx == -1:
                break
            if idx > pos:
                events.append(ScanEvent(False, view[pos:idx], safe))
            events.append(_MATCH)
            self.matches += 1
            pos = idx + plen

        end = len(data) - self._partial_match(data, pos)
        if end > pos:
            events.append(ScanEvent(False, view[pos:end], safe))
        self._tail = bytes(data[end:])
        return events

    def flush(self) -> List[ScanEvent]:
        """Release held-back bytes once no more input will arrive."""
        if not self._tail:
            return []
        tail, self._tail = self._tail, b""
        return [ScanEvent(False, memoryview(tail), True)]

    def _partial_match(self, data, pos: int) -> int:
        """Length of the longest suffix of data[pos:] that is a proper prefix of the pattern."""
        first = self._pattern[:1]
        i = data.find(first, max(pos, len(data) - len(self._pattern) + 1))
        while i != -1:
            if self._pattern.startswith(data[i:]):
                return len(data) - i
            i = data.find(first, i + 1)
        return 0
