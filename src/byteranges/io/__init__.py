"""I/O layer for byteranges - byte-range fetchers and HTTP clients."""

# Re-export these for import convenience
from .base import AsyncRangeFetcher, RangeNotSupportedError
from .local import BytesRangeFetcher, FileRangeFetcher, bytes_fetcher, open_file_fetcher
from .http_sync import fetch_ranges
from .http_async import HTTPRangeFetcher, fetch_ranges_async


def open_fetcher(source, **kwargs):
    """Factory function to create the appropriate fetcher for a path, URL or bytes."""
    if isinstance(source, (bytes, bytearray, memoryview)):
        return bytes_fetcher(source, **kwargs)

    source_str = str(source)
    if source_str.startswith(('http://', 'https://')):
        return HTTPRangeFetcher(source_str, **kwargs)
    else:
        return open_file_fetcher(source, **kwargs)
