"""Stream-Reader: push chunks from pull-based sources to listeners, and split byte streams."""

from stream_reader.errors import (
    AbortError,
    CancellationError,
    ErrorCode,
    InvalidStateError,
    ProducerError,
    StreamReaderError,
    UnderflowError,
)
from stream_reader.extract import extract_bytes
from stream_reader.reader import StreamReader
from stream_reader.sources import ChunkChannel, ChunkSource, generator_to_source

__all__ = [
    "AbortError",
    "CancellationError",
    "ChunkChannel",
    "ChunkSource",
    "ErrorCode",
    "InvalidStateError",
    "ProducerError",
    "StreamReader",
    "StreamReaderError",
    "UnderflowError",
    "extract_bytes",
    "generator_to_source",
]
