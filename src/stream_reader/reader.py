"""Unified public API for reading chunks from any source."""

from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import aclosing
import inspect
import logging
from types import TracebackType
from typing import Any, Generic, TypeVar

from stream_reader.adapter import iter_chunks
from stream_reader.errors import ErrorCode, InvalidStateError
from stream_reader.events import EventHub, Listener
from stream_reader.lifecycle import LifecycleController, ReaderState
from stream_reader.sources.base import ChunkSource
from stream_reader.sources.generator import generator_to_source

logger = logging.getLogger(__name__)

T = TypeVar("T")
O = TypeVar("O")  # noqa: E741


class StreamReader(Generic[T, O]):
    """
    Read a pull-based chunk source and push its chunks to listeners.

    Chunks are optionally transformed, accumulated in memory and emitted one at
    a time. Events:

        - ``data``: each (transformed) chunk.
        - ``close``: the accumulated chunks (``None`` when ``in_memory=False``).
        - ``error``: the exception that stopped reading.
        - ``cancel`` / ``abort``: the CancellationError / AbortError.

    A reader is read-once: after ``read()`` or ``read_chunks()`` consumed it,
    or after any terminal transition, further reads raise InvalidStateError.

    Example:
        >>> reader = StreamReader(channel, transform=bytes.decode)
        >>> reader.on("data", print)
        >>> chunks = await reader.read()
    """

    def __init__(
        self,
        source: ChunkSource[T],
        transform: Callable[[T], O | Awaitable[O]] | None = None,
        in_memory: bool = True,
    ) -> None:
        """
        Initialize the stream reader.

        Args:
            source: The chunk source to read. The reader owns it from now on.
            transform: Optional per-chunk transform, sync or async.
            in_memory: Keep every (transformed) chunk and return them from
                ``read()`` (default: True).
        """
        self.source = source
        self.transform = transform
        self.in_memory = in_memory
        self.events = EventHub()
        self.lifecycle = LifecycleController(source, self.events)
        self._consumed = False

        logger.info(
            "StreamReader initialized (source=%s, transform=%s, in_memory=%s)",
            type(source).__name__,
            getattr(transform, "__name__", transform),
            in_memory,
        )

    generator_to_source = staticmethod(generator_to_source)

    @property
    def state(self) -> ReaderState:
        return self.lifecycle.state

    @property
    def closed(self) -> bool:
        return self.lifecycle.closed

    def on(self, event: str, listener: Listener) -> "StreamReader[T, O]":
        self.events.on(event, listener)
        return self

    def off(self, event: str, listener: Listener) -> "StreamReader[T, O]":
        self.events.off(event, listener)
        return self

    def listener_count(self, event: str) -> int:
        return self.events.listener_count(event)

    def remove_all_listeners(self, event: str | None = None) -> "StreamReader[T, O]":
        self.events.remove_all_listeners(event)
        return self

    async def read(self) -> tuple[O, ...] | None:
        """
        Read the source to the end.

        Each chunk is transformed, accumulated and emitted as ``data``, in that
        order. Reaching the end closes the reader and emits ``close``.

        Returns:
            tuple[O, ...] | None: Every chunk read, or None when ``in_memory``
            is False. After a cancel or a handled error, the chunks read so far.

        Raises:
            Exception: The pull or transform error, when no ``error`` listener
                is registered.
        """
        chunks: list[O] | None = [] if self.in_memory else None

        try:
            async with aclosing(self.read_chunks()) as pulled:
                async for chunk in pulled:
                    output = await self._apply(chunk)
                    if chunks is not None:
                        chunks.append(output)
                    await self.events.emit("data", output)
        except Exception as e:
            await self.lifecycle.error(e)
            return None if chunks is None else tuple(chunks)

        result = None if chunks is None else tuple(chunks)
        if await self.lifecycle.close(result):
            logger.info("Read complete (in_memory=%s)", self.in_memory)
        return result

    async def read_chunks(self) -> AsyncIterator[T]:
        """
        Iterate the raw chunks manually.

        Bypasses transform, accumulation and events. Iteration stops early if
        the reader is cancelled or aborted meanwhile.

        Example:
            >>> async for chunk in reader.read_chunks():
            ...     size += len(chunk)

        Raises:
            InvalidStateError: If the reader is closed or was already consumed.
        """
        if self.closed or self._consumed:
            raise InvalidStateError("Invalid state: the reader is not attached to a stream")
        self._consumed = True

        async for chunk in iter_chunks(self.source, self.lifecycle.is_open):
            yield chunk

    async def _apply(self, chunk: T) -> Any:
        if self.transform is None:
            return chunk
        output = self.transform(chunk)
        if inspect.isawaitable(output):
            output = await output
        return output

    async def cancel(self, reason: str | BaseException | None = None) -> "StreamReader[T, O]":
        """
        Stop reading before the source ends.

        Cancels and releases the source, then emits ``cancel`` with a
        CancellationError. Does nothing if the reader is already closed.
        """
        await self.lifecycle.cancel(reason)
        return self

    async def abort(
        self,
        reason: str | None = None,
        *,
        code: ErrorCode = ErrorCode.ABORT,
        cause: object | None = None,
    ) -> "StreamReader[T, O]":
        """
        Stop reading before the source ends.

        Same as ``cancel`` but emits ``abort`` with an AbortError carrying
        ``code`` and ``cause``.
        """
        await self.lifecycle.abort(reason, code=code, cause=cause)
        return self

    async def __aenter__(self) -> "StreamReader[T, O]":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.cancel()
