"""Adapt sync or async generators into chunk sources."""

from collections.abc import AsyncIterable, AsyncIterator, Iterable, Iterator
import logging
from typing import Any, TypeVar, Union

from typing_extensions import override

from stream_reader.sources.base import ChunkSource, ReadResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

StreamGenerator = Union[AsyncIterable[T], Iterable[T]]


class GeneratorSource(ChunkSource[T]):
    """
    Pull chunks from a generator, one ``next`` per pull.

    Works with generators, async generators and any other (async) iterable.
    Exhaustion maps to end-of-stream; cancelling closes the generator.
    """

    def __init__(self, generator: StreamGenerator[T]) -> None:
        self._iterator: AsyncIterator[T] | Iterator[T]
        if isinstance(generator, AsyncIterable):
            self._iterator = aiter(generator)
        else:
            self._iterator = iter(generator)
        self._finished = False
        self._pulling = False

    @override
    async def pull(self) -> ReadResult[T]:
        if self._finished:
            return ReadResult(True)
        self._pulling = True
        try:
            if isinstance(self._iterator, AsyncIterator):
                value = await anext(self._iterator)
            else:
                value = next(self._iterator)
        except (StopIteration, StopAsyncIteration):
            self._finished = True
            return ReadResult(True)
        finally:
            self._pulling = False

        if self._finished:
            # Cancelled while the generator was running; close it now that it is idle.
            await self._close_iterator()
            return ReadResult(True)
        return ReadResult(False, value)

    @override
    async def cancel(self, reason: BaseException | None = None) -> None:
        if self._finished:
            return
        self._finished = True
        logger.debug("Generator source cancelled: %r", reason)

        if not self._pulling:
            await self._close_iterator()

    async def _close_iterator(self) -> None:
        closer: Any = getattr(self._iterator, "aclose", None)
        if closer is not None:
            await closer()
        else:
            closer = getattr(self._iterator, "close", None)
            if closer is not None:
                closer()


def generator_to_source(generator: StreamGenerator[T]) -> GeneratorSource[T]:
    """
    Convert a Generator or AsyncGenerator into a ChunkSource.

    Args:
        generator: The generator (or any sync/async iterable) to wrap.

    Returns:
        GeneratorSource[T]: A source that advances the generator once per pull.
    """
    return GeneratorSource(generator)
