"""Tests for StreamReader."""

import asyncio
from unittest.mock import Mock

import pytest

from stream_reader.errors import (
    AbortError,
    CancellationError,
    ErrorCode,
    InvalidStateError,
)
from stream_reader.lifecycle import ReaderState
from stream_reader.reader import StreamReader
from stream_reader.sources.base import ChunkSource, ReadResult
from stream_reader.sources.channel import ChunkChannel
from stream_reader.sources.generator import GeneratorSource

DEFAULT_CHUNKS = ["data 1", "data 2"]
ERRORED_CHUNKS = ["data 1", RuntimeError("Test Error"), "data 2"]


async def produce(channel: ChunkChannel[bytes], chunks: list = DEFAULT_CHUNKS) -> None:
    """Write chunks with a short pause between them, then close the channel."""
    for chunk in chunks:
        if isinstance(chunk, Exception):
            raise chunk
        await channel.write(chunk.encode())
        await asyncio.sleep(0.01)
    channel.close()


async def produce_or_abort(channel: ChunkChannel[bytes], chunks: list) -> None:
    """Like produce, but abort the channel when the producer fails."""
    try:
        await produce(channel, chunks)
    except Exception as e:
        channel.abort(e)


def start(channel: ChunkChannel[bytes], chunks: list = DEFAULT_CHUNKS) -> asyncio.Task:
    return asyncio.create_task(produce(channel, chunks))


@pytest.mark.asyncio
async def test_read_emits_data_for_each_chunk() -> None:
    """Test that a data event is emitted for every chunk."""
    channel: ChunkChannel[bytes] = ChunkChannel()
    reader = StreamReader(channel)
    producer = start(channel)

    on_data = Mock()
    reader.on("data", on_data)
    await reader.read()
    await producer

    assert on_data.call_count == 2
    on_data.assert_any_call(b"data 1")
    on_data.assert_any_call(b"data 2")


@pytest.mark.asyncio
async def test_read_returns_chunks_in_pull_order() -> None:
    """Test that read() returns every chunk in the order it was produced."""
    channel: ChunkChannel[bytes] = ChunkChannel()
    reader = StreamReader(channel)
    producer = start(channel, ["a", "b", "c", "d"])

    chunks = await reader.read()
    await producer

    assert chunks == (b"a", b"b", b"c", b"d")
    assert reader.state is ReaderState.CLOSED


@pytest.mark.asyncio
async def test_read_applies_transform() -> None:
    """Test chunk by chunk transformation."""
    channel: ChunkChannel[bytes] = ChunkChannel()
    reader: StreamReader[bytes, str] = StreamReader(channel, transform=bytes.decode)
    producer = start(channel)

    received: list[str] = []
    reader.on("data", received.append)
    chunks = await reader.read()
    await producer

    assert chunks == ("data 1", "data 2")
    assert received == ["data 1", "data 2"]


@pytest.mark.asyncio
async def test_read_awaits_async_transform() -> None:
    """Test that coroutine transforms are awaited."""

    async def shout(chunk: bytes) -> str:
        await asyncio.sleep(0)
        return chunk.decode().upper()

    reader = StreamReader(GeneratorSource([b"a", b"b"]), transform=shout)

    assert await reader.read() == ("A", "B")


@pytest.mark.asyncio
async def test_read_without_in_memory_returns_none() -> None:
    """Test that in_memory=False skips accumulation."""
    channel: ChunkChannel[bytes] = ChunkChannel()
    reader = StreamReader(channel, in_memory=False)
    producer = start(channel)

    on_close = Mock()
    on_data = Mock()
    reader.on("close", on_close)
    reader.on("data", on_data)

    assert await reader.read() is None
    await producer
    assert on_data.call_count == 2
    on_close.assert_called_once_with(None)


@pytest.mark.asyncio
async def test_read_without_in_memory_returns_none_on_handled_error() -> None:
    """Test that in_memory=False still returns None after a handled error."""
    channel: ChunkChannel[bytes] = ChunkChannel()
    reader = StreamReader(channel, in_memory=False)
    producer = asyncio.create_task(produce_or_abort(channel, ERRORED_CHUNKS))

    reader.on("error", lambda error: None)

    assert await reader.read() is None
    await producer


@pytest.mark.asyncio
async def test_close_event_fires_once_with_chunks() -> None:
    """Test that close is emitted exactly once with the accumulated chunks."""
    channel: ChunkChannel[bytes] = ChunkChannel()
    reader = StreamReader(channel)
    producer = start(channel)

    on_close = Mock()
    reader.on("close", on_close)
    await reader.read()
    await producer

    assert not await reader.lifecycle.close(())
    on_close.assert_called_once_with((b"data 1", b"data 2"))


@pytest.mark.asyncio
async def test_close_removes_data_and_close_listeners() -> None:
    """Test that data and close listeners are removed on close."""
    channel: ChunkChannel[bytes] = ChunkChannel()
    reader = StreamReader(channel)
    producer = start(channel)

    on_error = Mock()
    reader.on("data", Mock())
    reader.on("close", Mock())
    reader.on("error", on_error)
    await reader.read()
    await producer

    assert reader.listener_count("data") == 0
    assert reader.listener_count("close") == 0
    assert reader.listener_count("error") == 1
    on_error.assert_not_called()


@pytest.mark.asyncio
async def test_error_event_with_listener_returns_partial_chunks() -> None:
    """Test that a handled producer error emits error once and keeps chunks read so far."""
    channel: ChunkChannel[bytes] = ChunkChannel()
    reader = StreamReader(channel)
    producer = asyncio.create_task(produce_or_abort(channel, ERRORED_CHUNKS))

    on_error = Mock()
    reader.on("error", on_error)
    chunks = await reader.read()
    await producer

    assert chunks == (b"data 1",)
    on_error.assert_called_once()
    error = on_error.call_args.args[0]
    assert isinstance(error, RuntimeError)
    assert str(error) == "Test Error"


@pytest.mark.asyncio
async def test_error_without_listener_raises_originating_error() -> None:
    """Test that read() raises the producer error when nobody listens for it."""
    channel: ChunkChannel[bytes] = ChunkChannel()
    reader = StreamReader(channel)
    producer = asyncio.create_task(produce_or_abort(channel, ERRORED_CHUNKS))

    on_close = Mock()
    on_close2 = Mock()
    reader.on("close", on_close)
    reader.on("close", on_close2)

    with pytest.raises(RuntimeError, match="Test Error"):
        await reader.read()
    await producer

    on_close.assert_not_called()
    on_close2.assert_not_called()
    assert reader.listener_count("data") == 0
    assert reader.listener_count("close") == 0
    assert reader.closed


@pytest.mark.asyncio
async def test_transform_error_is_treated_as_pull_error() -> None:
    """Test that a raising transform goes through the error path."""

    def transform(chunk: bytes) -> bytes:
        if chunk == b"bad":
            raise ValueError("cannot transform")
        return chunk

    reader = StreamReader(GeneratorSource([b"ok", b"bad", b"later"]), transform=transform)
    errors: list[BaseException] = []
    reader.on("error", errors.append)

    assert await reader.read() == (b"ok",)
    assert len(errors) == 1
    assert isinstance(errors[0], ValueError)


@pytest.mark.asyncio
async def test_read_twice_raises_invalid_state() -> None:
    """Test that reading a closed reader raises InvalidStateError."""
    channel: ChunkChannel[bytes] = ChunkChannel()
    reader = StreamReader(channel)
    producer = start(channel)

    await reader.read()
    await producer

    with pytest.raises(InvalidStateError, match="not attached to a stream"):
        await reader.read()


@pytest.mark.asyncio
async def test_read_twice_with_error_listener_emits_invalid_state() -> None:
    """Test that an error listener receives the invalid state error instead."""
    reader = StreamReader(GeneratorSource([b"a"]))
    await reader.read()

    errors: list[BaseException] = []
    reader.on("error", errors.append)

    assert await reader.read() == ()
    assert len(errors) == 1
    assert isinstance(errors[0], InvalidStateError)
    assert errors[0].code is ErrorCode.INVALID_STATE


@pytest.mark.asyncio
async def test_read_chunks_iterates_raw_chunks() -> None:
    """Test manual iteration bypassing events and accumulation."""
    reader: StreamReader[bytes, str] = StreamReader(
        GeneratorSource([b"x", b"y"]), transform=bytes.decode
    )
    on_data = Mock()
    reader.on("data", on_data)

    chunks = [chunk async for chunk in reader.read_chunks()]

    assert chunks == [b"x", b"y"]
    on_data.assert_not_called()
    with pytest.raises(InvalidStateError):
        async for _ in reader.read_chunks():
            pass


@pytest.mark.asyncio
async def test_cancel_after_first_chunk() -> None:
    """Test cancelling the reader before the stream is closed."""
    channel: ChunkChannel[bytes] = ChunkChannel()
    reader = StreamReader(channel)
    producer = start(channel)

    reader.on("data", lambda chunk: reader.cancel("User cancelled the data reading."))
    chunks = await reader.read()

    assert chunks == (b"data 1",)
    with pytest.raises(CancellationError, match="User cancelled the data reading."):
        await producer


@pytest.mark.asyncio
async def test_cancel_emits_cancel_event() -> None:
    """Test that cancel emits a CancellationError and cleans up listeners."""
    channel: ChunkChannel[bytes] = ChunkChannel()
    reader = StreamReader(channel)
    producer = start(channel)

    on_cancel = Mock()
    on_close = Mock()
    reader.on("cancel", on_cancel)
    reader.on("close", on_close)
    reader.on("data", lambda chunk: reader.cancel("User cancelled the data reading."))
    await reader.read()

    on_cancel.assert_called_once()
    error = on_cancel.call_args.args[0]
    assert isinstance(error, CancellationError)
    assert error.code is ErrorCode.CANCELLED
    on_close.assert_not_called()
    assert reader.listener_count("data") == 0
    assert reader.listener_count("cancel") == 0

    with pytest.raises(CancellationError):
        await producer


@pytest.mark.asyncio
async def test_cancel_skipped_when_already_closed() -> None:
    """Test that cancelling from a close listener is a no-op."""
    channel: ChunkChannel[bytes] = ChunkChannel()
    reader = StreamReader(channel)
    producer = start(channel)

    on_cancel = Mock()
    reader.on("cancel", on_cancel)
    reader.on("close", lambda chunks: reader.cancel("User cancelled the data reading."))
    await reader.read()
    await producer

    on_cancel.assert_not_called()


@pytest.mark.asyncio
async def test_cancel_with_default_reason() -> None:
    """Test cancelling without a reason uses the default message."""
    channel: ChunkChannel[bytes] = ChunkChannel()
    reader = StreamReader(channel)
    producer = start(channel)

    reader.on("data", lambda chunk: reader.cancel())
    await reader.read()

    with pytest.raises(CancellationError, match="Stream reader cancelled."):
        await producer


@pytest.mark.asyncio
async def test_cancel_during_pending_pull() -> None:
    """Test that cancelling while a pull is in flight ends read() normally."""
    channel: ChunkChannel[bytes] = ChunkChannel()
    reader = StreamReader(channel)

    task = asyncio.create_task(reader.read())
    await asyncio.sleep(0)
    result = await reader.cancel()

    assert result is reader
    assert await task == ()
    assert reader.closed


@pytest.mark.asyncio
async def test_cancel_during_pending_generator_pull() -> None:
    """Test cancelling while an async generator source is mid-pull."""

    async def slow():
        yield b"a"
        await asyncio.sleep(0.01)
        yield b"b"

    reader = StreamReader(GeneratorSource(slow()))
    on_cancel = Mock()
    reader.on("cancel", on_cancel)
    reader.on("data", Mock())
    reader.on("close", Mock())

    task = asyncio.create_task(reader.read())
    await asyncio.sleep(0)
    await reader.cancel("stop")

    on_cancel.assert_called_once()
    assert str(on_cancel.call_args.args[0]) == "stop"
    assert await task == (b"a",)
    assert reader.listener_count("data") == 0
    assert reader.listener_count("close") == 0
    assert reader.listener_count("cancel") == 0


class FailingCancelSource(ChunkSource[bytes]):
    """Source whose cancel always fails."""

    def __init__(self) -> None:
        self.released = False

    async def pull(self) -> ReadResult[bytes]:
        return ReadResult(True)

    async def cancel(self, reason: BaseException | None = None) -> None:
        raise RuntimeError("cancel failed")

    def release(self) -> None:
        self.released = True


@pytest.mark.asyncio
@pytest.mark.parametrize("terminate", ["cancel", "abort"])
async def test_terminal_event_fires_when_source_cancel_fails(terminate: str) -> None:
    """Test that a failing source cancel still emits the event and cleans up."""
    source = FailingCancelSource()
    reader = StreamReader(source)
    listener = Mock()
    reader.on(terminate, listener)
    reader.on("data", Mock())

    await getattr(reader, terminate)()

    listener.assert_called_once()
    assert reader.closed
    assert source.released
    assert reader.listener_count(terminate) == 0
    assert reader.listener_count("data") == 0


@pytest.mark.asyncio
async def test_abort_after_first_chunk() -> None:
    """Test aborting the reader before the stream is closed."""
    channel: ChunkChannel[bytes] = ChunkChannel()
    reader = StreamReader(channel)
    producer = start(channel)

    on_abort = Mock()
    reader.on("abort", on_abort)
    reader.on("data", lambda chunk: reader.abort("User aborted the data reading."))
    chunks = await reader.read()

    assert chunks == (b"data 1",)
    with pytest.raises(AbortError, match="User aborted the data reading.") as exc_info:
        await producer
    assert exc_info.value.code is ErrorCode.ABORT

    on_abort.assert_called_once()
    assert on_abort.call_args.args[0] is exc_info.value


@pytest.mark.asyncio
async def test_abort_with_default_reason() -> None:
    """Test aborting without a reason uses the default message."""
    channel: ChunkChannel[bytes] = ChunkChannel()
    reader = StreamReader(channel)
    producer = start(channel)

    on_abort = Mock()
    reader.on("abort", on_abort)
    reader.on("data", lambda chunk: reader.abort())
    await reader.read()

    with pytest.raises(AbortError, match="Stream reader aborted."):
        await producer
    error = on_abort.call_args.args[0]
    assert error.message == "Stream reader aborted."
    assert error.code is ErrorCode.ABORT


@pytest.mark.asyncio
async def test_abort_accepts_custom_code_and_cause() -> None:
    """Test custom AbortError options."""
    channel: ChunkChannel[bytes] = ChunkChannel()
    reader = StreamReader(channel)
    producer = start(channel)
    cause = TimeoutError("deadline")

    on_abort = Mock()
    reader.on("abort", on_abort)
    reader.on(
        "data",
        lambda chunk: reader.abort("Custom reason.", code=ErrorCode.EXPIRED, cause=cause),
    )
    await reader.read()

    with pytest.raises(AbortError, match="Custom reason."):
        await producer
    error = on_abort.call_args.args[0]
    assert error.code is ErrorCode.EXPIRED
    assert error.cause is cause


@pytest.mark.asyncio
async def test_abort_skipped_when_already_closed() -> None:
    """Test that abort after close does nothing."""
    channel: ChunkChannel[bytes] = ChunkChannel()
    reader = StreamReader(channel)
    producer = start(channel)

    on_abort = Mock()
    reader.on("abort", on_abort)
    await reader.read()
    await producer
    await reader.abort()

    on_abort.assert_not_called()


@pytest.mark.asyncio
async def test_repeated_terminal_calls_fire_one_event() -> None:
    """Test that only the first terminal call emits anything."""
    channel: ChunkChannel[bytes] = ChunkChannel()
    reader = StreamReader(channel)
    events: list[str] = []
    reader.on("cancel", lambda error: events.append("cancel"))
    reader.on("abort", lambda error: events.append("abort"))
    reader.on("close", lambda chunks: events.append("close"))

    await reader.cancel()
    await reader.abort()
    await reader.cancel()
    await reader.lifecycle.close(())

    assert events == ["cancel"]
    assert reader.listener_count("data") == 0
    assert reader.listener_count("close") == 0


@pytest.mark.asyncio
async def test_async_context_manager_cancels_on_exit() -> None:
    """Test that leaving the context cancels an unfinished reader."""
    channel: ChunkChannel[bytes] = ChunkChannel()
    async with StreamReader(channel) as reader:
        assert not reader.closed

    assert reader.closed
    with pytest.raises(CancellationError, match="Stream reader cancelled."):
        await channel.write(b"late")


@pytest.mark.asyncio
async def test_generator_to_source() -> None:
    """Test converting an async generator into a source."""

    async def make_generator():
        yield b"data 1"
        await asyncio.sleep(0.01)
        yield b"data 2"

    source = StreamReader.generator_to_source(make_generator())
    reader = StreamReader(source)

    assert isinstance(source, GeneratorSource)
    assert await reader.read() == (b"data 1", b"data 2")
