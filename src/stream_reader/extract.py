"""Split a byte stream at an exact offset."""

import asyncio
from dataclasses import dataclass, field
import logging

from stream_reader.adapter import iter_chunks
from stream_reader.errors import UnderflowError
from stream_reader.sources.base import ChunkSource
from stream_reader.sources.channel import ChannelState, ChunkChannel
from stream_reader.sources.generator import StreamGenerator, generator_to_source

logger = logging.getLogger(__name__)

ExtractedBytes = tuple[bytes, ChunkChannel[bytes]]

# Strong references to running pumps; the event loop only keeps weak ones.
_pumps: set[asyncio.Task[None]] = set()


@dataclass
class ExtractionState:
    """Progress of one extraction. Only ``feed`` mutates it."""

    size: int
    extracted: bytearray = field(default_factory=bytearray)
    bytes_read: int = 0
    resolved: bool = False

    @property
    def satisfied(self) -> bool:
        return len(self.extracted) == self.size

    def feed(self, chunk: bytes) -> bytes:
        """
        Absorb ``chunk`` and return the part that belongs to the continuation.

        While fewer than ``size`` bytes were read the chunk is appended to the
        extracted buffer; any bytes past ``size`` are cut off and returned.
        Afterwards every chunk is returned unmodified.
        """
        if self.bytes_read >= self.size:
            self.bytes_read += len(chunk)
            return chunk

        self.extracted += chunk
        self.bytes_read += len(chunk)

        # The boundary chunk holds the tail of the extracted data and the head
        # of the continuation.
        if len(self.extracted) > self.size:
            remainder = bytes(self.extracted[self.size :])
            del self.extracted[self.size :]
            return remainder
        return b""


async def extract_bytes(
    source: ChunkSource[bytes] | StreamGenerator[bytes] | bytes,
    size: int | None,
    high_water_mark: int = 1,
) -> ExtractedBytes:
    """
    Extract the first ``size`` bytes from a byte stream.

    The source is consumed by a background task until ``size`` bytes were read;
    everything after them is forwarded, in order, to a ChunkChannel returned
    alongside the extracted bytes. The call returns as soon as the extracted
    bytes are complete, so the continuation may still be filling.

    Args:
        source: A ChunkSource, or any sync/async iterable of bytes chunks.
            Ownership passes to the extraction; do not reuse it afterwards.
        size: Number of bytes to extract. Negative or None means 0, in which
            case the continuation forwards the whole stream.
        high_water_mark: Buffer size of the continuation channel.

    Returns:
        tuple[bytes, ChunkChannel[bytes]]: The extracted bytes and the
        continuation carrying the rest of the stream.

    Raises:
        UnderflowError: If the stream ends before ``size`` bytes were read.
        Exception: Whatever the source failed with.

    Example:
        >>> header, rest = await extract_bytes(source, 16)
        >>> async for chunk in rest:
        ...     handle(chunk)
    """
    if isinstance(source, (bytes, bytearray)):
        source = generator_to_source([bytes(source)])
    elif not isinstance(source, ChunkSource):
        source = generator_to_source(source)

    state = ExtractionState(max(size or 0, 0))
    continuation: ChunkChannel[bytes] = ChunkChannel(high_water_mark)
    result: asyncio.Future[ExtractedBytes] = asyncio.get_running_loop().create_future()

    def resolve() -> None:
        if not result.done():
            state.resolved = True
            result.set_result((bytes(state.extracted), continuation))

    async def pump(source: ChunkSource[bytes]) -> None:
        try:
            if state.satisfied:
                resolve()
            async for chunk in iter_chunks(source):
                forward = state.feed(chunk)
                if state.satisfied:
                    resolve()
                if forward:
                    await continuation.write(forward)

            if not state.satisfied:
                raise UnderflowError(
                    f"Stream ended after {state.bytes_read} bytes but {state.size} bytes "
                    "were requested. The extracted data is shorter than the expected length."
                )
            continuation.close()
            logger.debug("Extraction forwarded %d bytes", state.bytes_read - state.size)
        except Exception as e:
            if continuation.state is ChannelState.CANCELLED:
                logger.debug("Continuation cancelled, cancelling source: %r", e)
                try:
                    await source.cancel(e)
                except Exception as cancel_error:
                    logger.warning("Source failed to cancel: %s", cancel_error)
                return
            logger.debug("Extraction failed: %r", e)
            continuation.abort(e)
            if not result.done():
                result.set_exception(e)
        finally:
            source.release()

    task = asyncio.create_task(pump(source))
    _pumps.add(task)
    task.add_done_callback(_pumps.discard)

    try:
        extracted = await result
    except asyncio.CancelledError:
        task.cancel()
        raise

    logger.info("Extracted %d bytes", len(extracted[0]))
    return extracted
