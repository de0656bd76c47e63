"""Example: Reading a response body from an HTTP/HTTPS URL."""

import asyncio

from stream_reader import StreamReader
from stream_reader.sources import HTTPSource


async def main() -> None:
    source = HTTPSource(
        url="https://www.python.org/",
        headers={"User-Agent": "stream-reader-example"},
        timeout=60,
        chunk_size=4096,
    )
    print("Source metadata:", source.metadata())

    reader: StreamReader[bytes, str] = StreamReader(
        source,
        transform=lambda chunk: chunk.decode("utf-8", errors="replace"),
        in_memory=False,
    )

    received = 0

    def on_data(text: str) -> None:
        nonlocal received
        received += len(text)
        print(f"Received {len(text)} characters")

    async def on_close(chunks: None) -> None:
        print(f"\n--- End of body ({received} characters) ---")

    reader.on("data", on_data)
    reader.on("close", on_close)
    reader.on("error", lambda error: print("Failed:", error))
    await reader.read()


asyncio.run(main())
