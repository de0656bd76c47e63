"""Command-line interface for stream reading and byte extraction."""

import asyncio
import logging
from pathlib import Path
import sys
from typing import BinaryIO
from urllib.parse import urlparse

import typer

from stream_reader.extract import extract_bytes
from stream_reader.reader import StreamReader
from stream_reader.sources.base import ChunkSource
from stream_reader.sources.http import HTTPSource
from stream_reader.sources.local import LocalFileSource

logger = logging.getLogger(__name__)

app = typer.Typer(add_completion=False, help="Stream chunked data from local files or URLs.")


def create_source(source: str, chunk_size: int) -> ChunkSource[bytes]:
    """
    Create a ChunkSource from a URI string.

    Args:
        source: http(s) URL or local path.
        chunk_size: Chunk size for the source.

    Returns:
        ChunkSource[bytes]: Appropriate source implementation.
    """
    parsed = urlparse(source)

    if parsed.scheme in ("http", "https"):
        logger.info("Creating HTTPSource for %s", source)
        return HTTPSource(url=source, chunk_size=chunk_size)

    # Assume local file path
    logger.info("Creating LocalFileSource for %s", source)
    return LocalFileSource(file_path=source, chunk_size=chunk_size)


def _configure_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG)
    else:
        logging.basicConfig(level=logging.INFO)


def _fail(error: Exception, verbose: bool) -> typer.Exit:
    if isinstance(error, FileNotFoundError):
        typer.echo(f"Error: File not found: {error}", err=True)
    elif isinstance(error, ImportError):
        typer.echo(
            f"Error: Missing dependency: {error}\nInstall with: pip install stream-reader[http]",
            err=True,
        )
    else:
        typer.echo(f"Error: {error}", err=True)
        if verbose:
            import traceback

            traceback.print_exc(file=sys.stderr)
    return typer.Exit(code=1)


async def _read(source: ChunkSource[bytes], sink: BinaryIO) -> tuple[int, int]:
    reader: StreamReader[bytes, bytes] = StreamReader(source, in_memory=False)
    chunks = 0
    size = 0

    def on_data(chunk: bytes) -> None:
        nonlocal chunks, size
        sink.write(chunk)
        chunks += 1
        size += len(chunk)

    reader.on("data", on_data)
    await reader.read()
    return chunks, size


async def _split(source: ChunkSource[bytes], size: int, head: Path, rest: Path | None) -> int:
    extracted, continuation = await extract_bytes(source, size)
    head.write_bytes(extracted)

    if rest is None:
        await continuation.cancel()
        return 0

    forwarded = 0
    with rest.open("wb") as f:
        async for chunk in continuation:
            f.write(chunk)
            forwarded += len(chunk)
    return forwarded


@app.command()
def read(
    source: str = typer.Argument(
        ...,
        help="Data source: https://url or /path/to/file",
    ),
    output: str | None = typer.Option(
        None,
        help="Output file path (default: stdout)",
    ),
    chunk_size: int = typer.Option(
        65536,
        help="Chunk size in bytes",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging",
    ),
) -> None:
    """Stream a file or URL chunk by chunk to a file or stdout."""
    _configure_logging(verbose)

    try:
        chunk_source = create_source(source, chunk_size)
        if output:
            with Path(output).open("wb") as f:
                chunks, size = asyncio.run(_read(chunk_source, f))
            typer.echo(f"Output written to: {output}", err=True)
        else:
            chunks, size = asyncio.run(_read(chunk_source, sys.stdout.buffer))
        typer.echo(f"Read {chunks} chunks ({size} bytes)", err=True)
    except Exception as e:
        raise _fail(e, verbose) from None


@app.command()
def split(
    source: str = typer.Argument(
        ...,
        help="Data source: https://url or /path/to/file",
    ),
    size: int = typer.Option(
        ...,
        "--bytes",
        "-n",
        help="Number of leading bytes to extract",
    ),
    head: str = typer.Option(
        ...,
        help="File receiving the extracted bytes",
    ),
    rest: str | None = typer.Option(
        None,
        help="File receiving the remaining bytes (default: discarded)",
    ),
    chunk_size: int = typer.Option(
        65536,
        help="Chunk size in bytes",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging",
    ),
) -> None:
    """Split a file or URL into its first N bytes and the rest."""
    _configure_logging(verbose)

    try:
        chunk_source = create_source(source, chunk_size)
        forwarded = asyncio.run(
            _split(chunk_source, size, Path(head), Path(rest) if rest else None)
        )
        typer.echo(f"Head written to: {head}", err=True)
        if rest:
            typer.echo(f"Rest written to: {rest} ({forwarded} bytes)", err=True)
    except Exception as e:
        raise _fail(e, verbose) from None


if __name__ == "__main__":
    app()
