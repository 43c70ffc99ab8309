"""Tests for the multipart/byteranges decoder."""

import logging
import os

import httpx
import pytest

from byteranges.core.framing import encode_part_footer, encode_part_header
from byteranges.core.model import AbsoluteRange, DecodedPart, EncodeOptions, MalformedPartError
from byteranges.decoder import (
    DecoderState, MultipartByteRangeDecoder, decode_part_header, get_boundary,
)

BOUNDARY = "-----------------------123456789012345678901234"


def build_body(data: bytes, ranges, total_size=None, boundary=BOUNDARY) -> bytes:
    options = EncodeOptions(total_size=total_size)
    body = b""
    for i, (first, last) in enumerate(ranges):
        rng = AbsoluteRange(first, last)
        body += encode_part_header(boundary, rng, options)
        body += data[first:last + 1]
        body += encode_part_footer(boundary, i == len(ranges) - 1)
    return body


def chunked(data: bytes, size: int):
    return [data[i:i + size] for i in range(0, len(data), size)]


class TestMultipartByteRangeDecoder:

    def setup_method(self):
        self.data = os.urandom(138)
        self.ranges = [(3, 6), (100, 105)]
        self.body = build_body(self.data, self.ranges, total_size=138)

    def test_decode_single_chunk(self):
        decoder = MultipartByteRangeDecoder(BOUNDARY)
        parts = decoder.feed(self.body)

        assert len(parts) == 2
        for part, (first, last) in zip(parts, self.ranges):
            headers = decode_part_header(part.header)
            assert headers["content-type"] == "application/octet-stream"
            assert headers["content-range"] == f"bytes {first}-{last}/138"
            assert part.content == self.data[first:last + 1]

    @pytest.mark.parametrize("size", [1, 2, 3, 7, 16, 50])
    def test_decode_arbitrary_chunking(self, size):
        decoder = MultipartByteRangeDecoder(BOUNDARY)
        parts = list(decoder.decode(chunked(self.body, size)))

        assert [p.content for p in parts] == [self.data[3:7], self.data[100:106]]
        assert decoder.parts_decoded == 2

    def test_preamble_discarded(self):
        decoder = MultipartByteRangeDecoder(BOUNDARY)
        parts = decoder.feed(b"this is a preamble\r\n" + self.body)
        assert [p.content for p in parts] == [self.data[3:7], self.data[100:106]]

    def test_state_transitions(self):
        decoder = MultipartByteRangeDecoder(BOUNDARY)
        assert decoder.state is DecoderState.AWAITING_FIRST_BOUNDARY
        decoder.feed(b"junk")
        assert decoder.buffered == 0
        decoder.feed(f"--{BOUNDARY}".encode())
        assert decoder.state is DecoderState.ACCUMULATING_PART

    def test_content_containing_blank_line(self):
        data = b"ab\r\n\r\ncd" + b"x" * 20
        body = build_body(data, [(0, 7)], total_size=len(data))
        parts = MultipartByteRangeDecoder(BOUNDARY).feed(body)
        assert parts[0].content == b"ab\r\n\r\ncd"

    def test_malformed_part(self):
        body = f"--{BOUNDARY}\r\nno separator here\r\n--{BOUNDARY}--\r\n".encode()
        with pytest.raises(MalformedPartError, match="headers not found"):
            MultipartByteRangeDecoder(BOUNDARY).feed(body)

    def test_bytearray_chunks_are_copied(self):
        decoder = MultipartByteRangeDecoder(BOUNDARY)
        parts = []
        buf = bytearray()
        for chunk in chunked(self.body, 5):
            buf[:] = chunk
            parts.extend(decoder.feed(buf))
        assert [p.content for p in parts] == [self.data[3:7], self.data[100:106]]

    def test_memory_bounded_by_largest_part(self):
        big, small = 200_000, 50_000
        data = os.urandom(big + 3 * small)
        ranges = [
            (0, small - 1),
            (small, small + big - 1),
            (small + big, 2 * small + big - 1),
            (2 * small + big, 3 * small + big - 1),
        ]
        body = build_body(data, ranges, total_size=len(data))

        decoder = MultipartByteRangeDecoder(BOUNDARY)
        peak = 0
        parts = []
        for chunk in chunked(body, 1024):
            parts.extend(decoder.feed(chunk))
            peak = max(peak, decoder.buffered)

        assert len(parts) == 4
        assert parts[1].content == data[small:small + big]
        assert big - 1024 < peak < big + 1024
        assert decoder.buffered < 1024

    def test_close_warns_on_trailing_data(self, caplog):
        decoder = MultipartByteRangeDecoder(BOUNDARY)
        decoder.feed(self.body[:-20])
        with caplog.at_level(logging.WARNING, logger="byteranges.decoder"):
            decoder.close()
        assert "Discarding" in caplog.text
        assert decoder.buffered == 0

    def test_close_quiet_after_terminator(self, caplog):
        decoder = MultipartByteRangeDecoder(BOUNDARY)
        decoder.feed(self.body)
        with caplog.at_level(logging.WARNING, logger="byteranges.decoder"):
            decoder.close()
        assert caplog.text == ""

    def test_decoded_part_headers(self):
        part = MultipartByteRangeDecoder(BOUNDARY).feed(self.body)[0]
        assert part.headers["Content-Range"] == "bytes 3-6/138"

    def test_epilogue_ignored(self, caplog):
        decoder = MultipartByteRangeDecoder(BOUNDARY)
        parts = decoder.feed(self.body)
        assert decoder.state is DecoderState.FINISHED

        epilogue = (b"epilogue " * 1000 + f"\r\n--{BOUNDARY}\r\n".encode()) * 10
        for chunk in chunked(epilogue, 512):
            assert decoder.feed(chunk) == []
            assert decoder.buffered == 0

        with caplog.at_level(logging.WARNING, logger="byteranges.decoder"):
            decoder.close()
        assert len(parts) == 2
        assert decoder.parts_decoded == 2
        assert caplog.text == ""

    def test_terminator_split_across_chunks(self):
        decoder = MultipartByteRangeDecoder(BOUNDARY)
        decoder.feed(self.body[:-3])
        assert decoder.state is DecoderState.ACCUMULATING_PART
        decoder.feed(self.body[-3:] + b"trailing")
        assert decoder.state is DecoderState.FINISHED
        assert decoder.buffered == 0

    @pytest.mark.asyncio
    async def test_decode_async(self):
        async def source():
            for chunk in chunked(self.body, 9):
                yield chunk

        decoder = MultipartByteRangeDecoder(BOUNDARY)
        parts = [part async for part in decoder.decode_async(source())]
        assert [p.content for p in parts] == [self.data[3:7], self.data[100:106]]


class TestGetBoundary:

    def test_from_string(self):
        assert get_boundary("multipart/byteranges; boundary=abc-123") == "abc-123"

    def test_case_insensitive(self):
        assert get_boundary("multipart/byteranges; BOUNDARY=abc") == "abc"

    def test_quoted(self):
        assert get_boundary('multipart/byteranges; boundary="abc"') == "abc"

    def test_quoted_with_punctuation(self):
        value = 'multipart/byteranges; boundary="gc0p4Jq0M2Yt08j.34c0p"; charset=x'
        assert get_boundary(value) == "gc0p4Jq0M2Yt08j.34c0p"
        assert get_boundary("multipart/byteranges; boundary=gc0p4Jq0M2Yt08j.34c0p") == "gc0p4Jq0M2Yt08j.34c0p"

    def test_from_headers(self):
        assert get_boundary({"Content-Type": "multipart/byteranges; boundary=abc"}) == "abc"
        assert get_boundary(httpx.Headers({"content-type": "multipart/byteranges; boundary=abc"})) == "abc"

    def test_absent(self):
        assert get_boundary("application/octet-stream") is None
        assert get_boundary({}) is None
        assert get_boundary(None) is None


class TestDecodePartHeader:

    def test_basic(self):
        headers = decode_part_header(b"Content-Type: text/plain\r\nContent-Range: bytes 0-1/2")
        assert headers["content-type"] == "text/plain"
        assert headers["CONTENT-RANGE"] == "bytes 0-1/2"

    def test_value_with_colon_and_whitespace(self):
        headers = decode_part_header(b"X-Thing:   a:b  \r\n\r\nnot a header")
        assert headers["x-thing"] == "a:b"
        assert len(headers) == 1

    def test_reexported_from_core(self):
        from byteranges.core import headers

        assert decode_part_header is headers.decode_part_header
        part = DecodedPart(header=b"Content-Range: bytes 0-1/2", content=b"ab")
        assert part.headers["content-range"] == "bytes 0-1/2"
