"""Local file system chunk source."""

import asyncio
import logging
from pathlib import Path
from typing import Any, BinaryIO

from typing_extensions import override

from stream_reader.errors import InvalidStateError, ProducerError
from stream_reader.sources.base import ChunkSource, ReadResult

logger = logging.getLogger(__name__)


class LocalFileSource(ChunkSource[bytes]):
    """
    Stream a file from the local file system.

    Reads the file in configurable chunks, one chunk per pull, without loading
    the entire file into memory. Blocking reads run in a worker thread.
    """

    def __init__(self, file_path: str | Path, chunk_size: int = 65536) -> None:
        """
        Initialize LocalFileSource.

        Args:
            file_path: Path to the local file.
            chunk_size: Size of chunks to read (default: 64KB).

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the path is not a file or chunk_size is not positive.
        """
        self.file_path = Path(file_path)
        self.chunk_size = chunk_size

        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")

        # Validate file exists and is a file
        if not self.file_path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        if not self.file_path.is_file():
            raise ValueError(f"Path is not a file: {file_path}")

        self._handle: BinaryIO | None = None
        self._finished = False
        self._released = False

        logger.info("LocalFileSource initialized for: %s", self.file_path)

    @override
    async def pull(self) -> ReadResult[bytes]:
        if self._released:
            raise InvalidStateError("Invalid state: the reader is not attached to a stream")
        if self._finished:
            return ReadResult(True)

        try:
            if self._handle is None:
                self._handle = self.file_path.open("rb")
            chunk = await asyncio.to_thread(self._handle.read, self.chunk_size)
        except OSError as e:
            logger.exception("Error reading file %s: %s", self.file_path, e)
            self._close_handle()
            raise ProducerError(f"Failed to read file {self.file_path}: {e}", cause=e) from e

        if not chunk:
            self._close_handle()
            return ReadResult(True)
        return ReadResult(False, chunk)

    @override
    async def cancel(self, reason: BaseException | None = None) -> None:
        logger.debug("LocalFileSource cancelled for %s: %r", self.file_path, reason)
        self._close_handle()

    @override
    def release(self) -> None:
        self._released = True
        self._close_handle()

    def _close_handle(self) -> None:
        self._finished = True
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    @override
    def metadata(self) -> dict[str, Any]:
        """
        Return metadata about the local file.

        Returns:
            dict[str, Any]: Metadata containing file size, path, and source type.
        """
        try:
            size = self.file_path.stat().st_size
        except OSError:
            size = 0

        return {
            "size": size,
            "source_type": "local",
            "path": str(self.file_path),
        }
