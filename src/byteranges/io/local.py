"""Byte-range fetchers over local files and in-memory data."""

import asyncio
import os
from pathlib import Path
from typing import AsyncIterator, Union

from ..core.model import AbsoluteRange
from .base import DEFAULT_CHUNK_SIZE


class BytesRangeFetcher:
    """Serve ranges out of a bytes-like object."""

    def __init__(self, data: bytes, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self._data = memoryview(bytes(data))
        self.chunk_size = chunk_size
        self.bytes_fetched = 0
        self.requests_made = 0

    @property
    def size(self) -> int:
        return len(self._data)

    async def _stream(self, rng: AbsoluteRange) -> AsyncIterator[bytes]:
        if rng.first < 0:
            raise IOError("Start offset cannot be negative")
        if rng.last >= len(self._data):
            raise IOError(f"Not enough data: requested bytes {rng.first}-{rng.last}, "
                          f"but data only has {len(self._data)} bytes")

        end = rng.last + 1
        for start in range(rng.first, end, self.chunk_size):
            chunk = self._data[start:min(start + self.chunk_size, end)].tobytes()
            self.bytes_fetched += len(chunk)
            yield chunk

    def __call__(self, rng: AbsoluteRange) -> AsyncIterator[bytes]:
        self.requests_made += 1
        return self._stream(rng)


class FileRangeFetcher:
    """Stream ranges of a local file; reads run in a worker thread."""

    def __init__(self, path: Union[Path, str], chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.path = Path(path)
        self.chunk_size = chunk_size
        self.bytes_fetched = 0
        self.requests_made = 0

    @property
    def size(self) -> int:
        """Return the total size of the file in bytes."""
        return os.path.getsize(self.path)

    async def _stream(self, rng: AbsoluteRange) -> AsyncIterator[bytes]:
        if rng.first < 0:
            raise IOError("Start offset cannot be negative")

        f = await asyncio.to_thread(open, self.path, "rb")
        try:
            await asyncio.to_thread(f.seek, rng.first)
            remaining = rng.length
            while remaining > 0:
                chunk = await asyncio.to_thread(f.read, min(self.chunk_size, remaining))
                if not chunk:
                    raise IOError(f"Not enough data: requested bytes {rng.first}-{rng.last}, "
                                  f"but file only has {self.size} bytes")
                remaining -= len(chunk)
                self.bytes_fetched += len(chunk)
                yield chunk
        finally:
            await asyncio.to_thread(f.close)

    def __call__(self, rng: AbsoluteRange) -> AsyncIterator[bytes]:
        self.requests_made += 1
        return self._stream(rng)


def bytes_fetcher(data: bytes, chunk_size: int = DEFAULT_CHUNK_SIZE) -> BytesRangeFetcher:
    """Create a fetcher over in-memory data."""
    return BytesRangeFetcher(data, chunk_size)


def open_file_fetcher(path: Union[Path, str], chunk_size: int = DEFAULT_CHUNK_SIZE) -> FileRangeFetcher:
    """Create a fetcher over a local file."""
    return FileRangeFetcher(path, chunk_size)
