"""Error types raised and emitted by stream readers and extractors."""

from enum import Enum


class ErrorCode(str, Enum):
    """Machine-readable codes carried by every StreamReaderError."""

    ABORT = "ERR:ABORT"
    CANCELLED = "ERR:CANCELLED"
    EXPIRED = "ERR:EXPIRED"
    INVALID_STATE = "ERR:INVALID_STATE"
    PRODUCER = "ERR:PRODUCER"
    UNDERFLOW = "ERR:UNDERFLOW"


class StreamReaderError(Exception):
    """
    Base class for stream reader errors.

    Attributes:
        message: Human readable description.
        code: ErrorCode identifying the failure kind.
        cause: Optional underlying exception or value.
    """

    default_code = ErrorCode.PRODUCER

    def __init__(
        self,
        message: str,
        code: ErrorCode | None = None,
        cause: object | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.cause = cause

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, code={self.code.value!r})"


class InvalidStateError(StreamReaderError):
    """Raised when pulling from a reader or source that is closed or released."""

    default_code = ErrorCode.INVALID_STATE


class ProducerError(StreamReaderError):
    """Raised when a source fails to produce the next chunk."""

    default_code = ErrorCode.PRODUCER


class UnderflowError(StreamReaderError):
    """Raised when a stream ends before the requested number of bytes was extracted."""

    default_code = ErrorCode.UNDERFLOW


class CancellationError(StreamReaderError):
    """Delivered when the consumer cancels a reader before the stream ends."""

    default_code = ErrorCode.CANCELLED


class AbortError(CancellationError):
    """Delivered when the consumer aborts a reader before the stream ends."""

    default_code = ErrorCode.ABORT
