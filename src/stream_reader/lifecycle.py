"""Terminal state transitions shared by stream readers."""

from enum import Enum
import logging
from typing import Any

from stream_reader.errors import AbortError, CancellationError, ErrorCode
from stream_reader.events import EventHub
from stream_reader.sources.base import ChunkSource

logger = logging.getLogger(__name__)

DEFAULT_CANCEL_REASON = "Stream reader cancelled."
DEFAULT_ABORT_REASON = "Stream reader aborted."

# Listeners dropped after any terminal transition; "error" listeners are kept.
TRANSIENT_EVENTS = ("data", "close", "cancel", "abort")


class ReaderState(Enum):
    """Reader lifecycle. The only transition is OPEN -> CLOSED."""

    OPEN = "open"
    CLOSED = "closed"


class LifecycleController:
    """
    Own the open/closed state of a reader and its source.

    Every terminal method (``close``, ``cancel``, ``abort``) is a no-op once the
    reader is closed, so at most one terminal event fires per instance. Each one
    releases the source and removes the data/close/cancel/abort listeners.
    """

    def __init__(self, source: ChunkSource[Any], events: EventHub) -> None:
        self.source = source
        self.events = events
        self.state = ReaderState.OPEN

    @property
    def closed(self) -> bool:
        return self.state is ReaderState.CLOSED

    def is_open(self) -> bool:
        return self.state is ReaderState.OPEN

    async def close(self, chunks: tuple[Any, ...] | None) -> bool:
        """
        Release the source and emit ``close`` with the accumulated chunks.

        Returns:
            bool: False if the reader was already closed.
        """
        if self.closed:
            return False
        self.state = ReaderState.CLOSED
        self.source.release()

        logger.debug("Reader closed")
        await self.events.emit("close", chunks)
        self._remove_transient_listeners()
        return True

    async def cancel(self, reason: str | BaseException | None = None) -> bool:
        """Cancel the source and emit ``cancel`` with a CancellationError."""
        if isinstance(reason, CancellationError):
            error = reason
        else:
            error = CancellationError(
                str(reason) if reason else DEFAULT_CANCEL_REASON,
                cause=reason if isinstance(reason, BaseException) else None,
            )
        return await self._terminate("cancel", error)

    async def abort(
        self,
        reason: str | None = None,
        code: ErrorCode = ErrorCode.ABORT,
        cause: object | None = None,
    ) -> bool:
        """Cancel the source and emit ``abort`` with an AbortError."""
        error = AbortError(reason or DEFAULT_ABORT_REASON, code=code, cause=cause)
        return await self._terminate("abort", error)

    async def _terminate(self, event: str, error: CancellationError) -> bool:
        if self.closed:
            return False
        self.state = ReaderState.CLOSED

        logger.debug("Reader %s: %s", event, error.message)
        try:
            await self.source.cancel(error)
        except Exception as e:
            logger.warning("Source failed to cancel: %s", e)
        finally:
            self.source.release()

        await self.events.emit(event, error)
        self._remove_transient_listeners()
        return True

    async def error(self, error: BaseException) -> None:
        """
        Close the reader after a failed pull or transform.

        Raises:
            BaseException: ``error`` itself when nobody listens for ``error``.
        """
        if not self.closed:
            self.state = ReaderState.CLOSED
            self.source.release()
        self._remove_transient_listeners()

        if not self.events.listener_count("error"):
            raise error

        logger.warning("Reader failed: %r", error)
        await self.events.emit("error", error)

    def _remove_transient_listeners(self) -> None:
        for event in TRANSIENT_EVENTS:
            self.events.remove_all_listeners(event)
