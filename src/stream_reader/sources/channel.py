"""In-memory chunk channel: a producer writes, a consumer pulls."""

import asyncio
from collections import deque
from collections.abc import AsyncIterator, Callable
from enum import Enum
import logging
from typing import TypeVar

from typing_extensions import override

from stream_reader.errors import CancellationError, InvalidStateError, ProducerError
from stream_reader.sources.base import ChunkSource, ReadResult

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ChannelState(Enum):
    """Lifecycle of a ChunkChannel."""

    OPEN = "open"
    CLOSED = "closed"
    ERRORED = "errored"
    CANCELLED = "cancelled"


class ChunkChannel(ChunkSource[T]):
    """
    Bounded single-producer/single-consumer chunk pipe.

    The producer side calls ``write``, ``close`` and ``abort``; the consumer side
    uses the ``ChunkSource`` interface (``pull``, ``cancel``, ``release``) or
    iterates the channel with ``async for``. Writes wait while more than
    ``high_water_mark`` chunks are buffered.
    """

    def __init__(self, high_water_mark: int = 1) -> None:
        """
        Initialize ChunkChannel.

        Args:
            high_water_mark: Number of chunks that may sit in the buffer before
                ``write`` starts waiting for the consumer (default: 1).

        Raises:
            ValueError: If high_water_mark is negative.
        """
        if high_water_mark < 0:
            raise ValueError("high_water_mark must be non-negative")

        self.high_water_mark = high_water_mark
        self._buffer: deque[T] = deque()
        self._state = ChannelState.OPEN
        self._error: BaseException | None = None
        self._released = False
        self._changed = asyncio.Event()

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def buffered(self) -> int:
        return len(self._buffer)

    def _failure(self) -> BaseException:
        if self._error is None:
            return InvalidStateError(f"Invalid state: the channel is {self._state.value}")
        return self._error

    def _notify(self) -> None:
        self._changed.set()

    async def _wait_until(self, predicate: Callable[[], bool]) -> None:
        while not predicate():
            self._changed.clear()
            await self._changed.wait()

    def _raise_if_not_writable(self) -> None:
        if self._state in (ChannelState.CANCELLED, ChannelState.ERRORED):
            raise self._failure()
        if self._state is ChannelState.CLOSED:
            raise InvalidStateError("Invalid state: the channel is closed")

    async def write(self, chunk: T) -> None:
        """
        Enqueue a chunk for the consumer.

        Raises:
            CancellationError: If the consumer cancelled the channel (the exact
                reason it cancelled with is raised).
            InvalidStateError: If the channel was closed.
        """
        self._raise_if_not_writable()
        self._buffer.append(chunk)
        self._notify()

        await self._wait_until(
            lambda: len(self._buffer) <= self.high_water_mark
            or self._state is not ChannelState.OPEN
        )
        if self._state in (ChannelState.CANCELLED, ChannelState.ERRORED):
            raise self._failure()

    def close(self) -> None:
        """Signal end-of-stream. Buffered chunks are still delivered."""
        if self._state is ChannelState.OPEN:
            self._state = ChannelState.CLOSED
            self._notify()

    def abort(self, error: BaseException | None = None) -> None:
        """Fail the channel: buffered chunks are dropped and pulls raise ``error``."""
        if self._state is not ChannelState.OPEN:
            return
        self._state = ChannelState.ERRORED
        self._error = error or ProducerError("Channel aborted by the producer.")
        self._buffer.clear()
        self._notify()
        logger.debug("Channel aborted: %r", self._error)

    @override
    async def pull(self) -> ReadResult[T]:
        if self._released:
            raise InvalidStateError("Invalid state: the reader is not attached to a stream")

        await self._wait_until(lambda: bool(self._buffer) or self._state is not ChannelState.OPEN)

        if self._state is ChannelState.ERRORED:
            raise self._failure()
        if self._buffer:
            chunk = self._buffer.popleft()
            self._notify()
            return ReadResult(False, chunk)
        return ReadResult(True)

    @override
    async def cancel(self, reason: BaseException | None = None) -> None:
        if self._state in (ChannelState.CANCELLED, ChannelState.ERRORED):
            return
        self._state = ChannelState.CANCELLED
        self._error = reason or CancellationError("Channel cancelled by the consumer.")
        self._buffer.clear()
        self._notify()
        logger.debug("Channel cancelled: %r", self._error)

    @override
    def release(self) -> None:
        self._released = True

    def __aiter__(self) -> AsyncIterator[T]:
        return self._drain()

    async def _drain(self) -> AsyncIterator[T]:
        while True:
            result = await self.pull()
            if result.done:
                return
            yield result.value  # type: ignore[misc]
