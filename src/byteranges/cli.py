
"""CLI implementation for byteranges."""

import asyncio
import base64
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import httpx
import typer

from .core.model import DecodedPart, EncodeOptions, DEFAULT_CONTENT_TYPE, RangeUnresolvableError, MalformedPartError
from .core.ranges import parse_range_header
from .encoder import MultipartByteRangeEncoder
from .io.base import RangeNotSupportedError, HTTP_TIMEOUT
from .io.http_async import fetch_ranges_async
from .io.http_sync import fetch_ranges
from .io.local import open_file_fetcher

app = typer.Typer(add_completion=False, help="Encode and fetch multipart/byteranges bodies.")

_ERRORS = (RangeUnresolvableError, MalformedPartError, RangeNotSupportedError, IOError, ValueError)


def parse_ranges(values: list[str]):
    """Turn `-r` values like 3-6, 100- or -30 into range specs."""
    return parse_range_header("bytes=" + ",".join(values))


def part_asdict(part: DecodedPart) -> dict:
    headers = part.headers
    return {
        "content_type": headers.get("content-type"),
        "content_range": headers.get("content-range"),
        "length": len(part.content),
        "content": base64.b64encode(part.content).decode(),
    }


def _setup_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr,
                            format="%(levelname)s %(name)s: %(message)s")


async def _stream_encoder(encoder: MultipartByteRangeEncoder, sink) -> None:
    async with encoder:
        async for chunk in encoder:
            sink.write(chunk)


async def _fetch_async(url: str, ranges, sink) -> None:
    async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
        async for part in fetch_ranges_async(url, ranges, client=client):
            sink.write(json.dumps(part_asdict(part)))
            sink.write("\n")


@app.command()
def encode(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Local file to serve ranges from"),
    ranges: list[str] = typer.Option(..., "-r", "--range", help="Byte range: 3-6, 100- or -30"),
    content_type: str = typer.Option(DEFAULT_CONTENT_TYPE, "--content-type", help="Mime type of each part"),
    unknown_size: bool = typer.Option(False, "--unknown-size", help="Use '*' as the Content-Range total"),
    boundary: Optional[str] = typer.Option(None, "--boundary", help="Use this boundary instead of a random one"),
    output: Optional[Path] = typer.Option(None, "-o", "--output", help="Write body to PATH instead of stdout"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Log part transitions to stderr"),
):
    """Write a multipart/byteranges body for ranges of FILE; headers go to stderr."""
    _setup_logging(verbose)
    fetcher = open_file_fetcher(file)
    options = EncodeOptions(content_type=content_type, total_size=None if unknown_size else fetcher.size)

    try:
        encoder = MultipartByteRangeEncoder(parse_ranges(ranges), fetcher, options, boundary=boundary)
    except _ERRORS as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)

    for name, value in encoder.headers.items():
        typer.echo(f"{name}: {value}", err=True)

    sink = open(output, "wb") if output else typer.get_binary_stream("stdout")
    try:
        asyncio.run(_stream_encoder(encoder, sink))
    except _ERRORS as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)
    finally:
        if output:
            sink.close()
        else:
            sink.flush()


@app.command()
def fetch(
    url: str = typer.Argument(..., help="URL to request ranges from"),
    ranges: list[str] = typer.Option(..., "-r", "--range", help="Byte range: 3-6, 100- or -30"),
    output: Optional[Path] = typer.Option(None, "-o", "--output", help="Write to PATH instead of stdout"),
    sync: bool = typer.Option(False, "--sync", help="Force synchronous I/O"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Log decoded parts to stderr"),
):
    """Fetch ranges of URL and emit one JSON line per part received."""
    _setup_logging(verbose)
    try:
        specs = parse_ranges(ranges)
    except ValueError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)

    # open output sink
    sink = open(output, "w", encoding="utf-8") if output else sys.stdout
    try:
        if sync:
            for part in fetch_ranges(url, specs):
                sink.write(json.dumps(part_asdict(part)))
                sink.write("\n")
        else:
            asyncio.run(_fetch_async(url, specs, sink))
    except _ERRORS as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)
    finally:
        if output:
            sink.close()


if __name__ == "__main__":
    app()
