"""Pull loop that turns a ChunkSource into an async iterator."""

from collections.abc import AsyncIterator, Callable
from typing import TypeVar

from stream_reader.sources.base import ChunkSource

T = TypeVar("T")


async def iter_chunks(
    source: ChunkSource[T],
    is_open: Callable[[], bool] | None = None,
) -> AsyncIterator[T]:
    """
    Yield chunks from ``source`` until it signals end-of-stream.

    One pull is in flight at a time and nothing is read ahead. When ``is_open``
    is given it is checked before every pull; iteration stops quietly once it
    returns False.

    Args:
        source: The source to pull from. Only one consumer may iterate it.
        is_open: Optional predicate guarding each pull.

    Yields:
        T: Chunks in the order the source produced them.
    """
    while is_open is None or is_open():
        result = await source.pull()
        if result.done:
            return
        yield result.value  # type: ignore[misc]
