"""Abstract base class for chunked data sources."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class ReadResult(Generic[T]):
    """Outcome of a single pull: either a chunk or the end-of-stream marker."""

    done: bool
    value: T | None = None


class ChunkSource(ABC, Generic[T]):
    """
    Abstract base class for pull-based chunk sources.

    Provides a unified interface for consuming sequential chunks from different
    producers (in-memory channels, generators, local files, HTTP responses)
    one pull at a time.
    """

    @abstractmethod
    async def pull(self) -> ReadResult[T]:
        """
        Wait for the next chunk.

        Returns:
            ReadResult[T]: ``ReadResult(False, chunk)`` for a chunk, or
            ``ReadResult(True)`` once the source has ended.

        Raises:
            InvalidStateError: If the source was released.
            Exception: Whatever the producer failed with.
        """
        ...

    async def cancel(self, reason: BaseException | None = None) -> None:  # noqa: B027
        """
        Abort the producer side.

        Pending and later pulls resolve as end-of-stream. The default
        implementation does nothing.
        """

    def release(self) -> None:  # noqa: B027
        """Give up ownership of the source. The default implementation does nothing."""

    def metadata(self) -> dict[str, Any]:
        """
        Return metadata about the source.

        Returns:
            dict[str, Any]: Metadata dictionary containing at least
                'source_type'.
        """
        return {"source_type": type(self).__name__}
