"""Base protocols and shared types for I/O layer."""

from typing import AsyncIterator, Protocol, runtime_checkable

from ..core.model import AbsoluteRange


class RangeNotSupportedError(RuntimeError):
    """Raised when a server answers a Range request with the full resource."""


DEFAULT_CHUNK_SIZE = 64 * 1024  # 64 KB
HTTP_TIMEOUT = 60.0


@runtime_checkable
class AsyncRangeFetcher(Protocol):
    """Protocol for byte-range fetchers handed to the encoder."""

    bytes_fetched: int  # running total

    def __call__(self, rng: AbsoluteRange) -> AsyncIterator[bytes]:
        """Stream the bytes of `rng`, both bounds inclusive.
        Length is not checked against the range.
        """
        ...
