"""Chunk source abstraction layer for stream reading."""

from stream_reader.sources.base import ChunkSource, ReadResult
from stream_reader.sources.channel import ChannelState, ChunkChannel
from stream_reader.sources.generator import GeneratorSource, generator_to_source
from stream_reader.sources.http import HTTPSource
from stream_reader.sources.local import LocalFileSource

__all__ = [
    "ChannelState",
    "ChunkChannel",
    "ChunkSource",
    "GeneratorSource",
    "HTTPSource",
    "LocalFileSource",
    "ReadResult",
    "generator_to_source",
]
