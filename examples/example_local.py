"""Example: Splitting a local file header and reading the rest."""

import asyncio
from pathlib import Path
import tempfile

from stream_reader import StreamReader, extract_bytes
from stream_reader.sources import LocalFileSource


async def main(path: Path) -> None:
    # First 8 bytes are the header, the rest is the body
    header, body = await extract_bytes(LocalFileSource(path, chunk_size=5), 8)
    print("Header:", header)

    reader = StreamReader(body, transform=bytes.decode)

    def on_data(text: str) -> None:
        print("Body chunk:", text)
        if "STOP" in text:
            # Stop reading; the file source is cancelled too
            return reader.cancel("Found STOP marker")

    reader.on("data", on_data)
    reader.on("cancel", lambda error: print("Cancelled:", error.message))
    chunks = await reader.read()
    print("Chunks read:", chunks)


with tempfile.TemporaryDirectory() as tmpdir:
    file_path = Path(tmpdir) / "example.bin"
    file_path.write_bytes(b"HEADER01first chunk, STOP, never read")
    asyncio.run(main(file_path))
