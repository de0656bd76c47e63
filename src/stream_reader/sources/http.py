"""HTTP/HTTPS chunk source implementation."""

from collections.abc import AsyncIterator
import logging
from typing import Any

from typing_extensions import override

from stream_reader.errors import InvalidStateError, ProducerError
from stream_reader.sources.base import ChunkSource, ReadResult

logger = logging.getLogger(__name__)


class HTTPSource(ChunkSource[bytes]):
    """
    Stream a response body from an HTTP/HTTPS URL.

    Uses an httpx AsyncClient to stream the body without loading it into
    memory. The request is sent on the first pull.
    """

    def __init__(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        auth: tuple[str, str] | None = None,
        timeout: int = 30,
        chunk_size: int = 65536,
    ) -> None:
        """
        Initialize HTTPSource.

        Args:
            url: HTTP/HTTPS URL to stream.
            headers: Optional custom HTTP headers.
            auth: Optional tuple of (username, password) for basic auth.
            timeout: Request timeout in seconds (default: 30).
            chunk_size: Size of chunks to read (default: 64KB).

        Raises:
            ImportError: If httpx is not installed.
            ValueError: If URL is invalid.
        """
        try:
            import httpx  # noqa: F401
        except ImportError as e:
            raise ImportError(
                "httpx is required for HTTPSource. Install with: pip install stream-reader[http]"
            ) from e

        if not url or not url.startswith(("http://", "https://")):
            raise ValueError("url must be a valid HTTP/HTTPS URL")

        self.url = url
        self.headers = headers or {}
        self.auth = auth
        self.timeout = timeout
        self.chunk_size = chunk_size

        self._client: Any = None
        self._response: Any = None
        self._chunks: AsyncIterator[bytes] | None = None
        self._finished = False
        self._released = False

        logger.info("HTTPSource initialized for %s", url)

    async def _open(self) -> AsyncIterator[bytes]:
        import httpx

        self._client = httpx.AsyncClient(
            headers=self.headers,
            auth=self.auth,
            timeout=self.timeout,
            follow_redirects=True,
        )
        request = self._client.build_request("GET", self.url)
        self._response = await self._client.send(request, stream=True)
        self._response.raise_for_status()
        return self._response.aiter_bytes(chunk_size=self.chunk_size)

    @override
    async def pull(self) -> ReadResult[bytes]:
        if self._released:
            raise InvalidStateError("Invalid state: the reader is not attached to a stream")
        if self._finished:
            return ReadResult(True)

        import httpx

        try:
            if self._chunks is None:
                self._chunks = await self._open()
            while True:
                chunk = await anext(self._chunks)
                if chunk:
                    return ReadResult(False, chunk)
        except StopAsyncIteration:
            await self._shutdown()
            return ReadResult(True)
        except httpx.HTTPError as e:
            logger.exception("Error reading from %s: %s", self.url, e)
            await self._shutdown()
            raise ProducerError(f"Failed to read from {self.url}: {e}", cause=e) from e

    @override
    async def cancel(self, reason: BaseException | None = None) -> None:
        logger.debug("HTTPSource cancelled for %s: %r", self.url, reason)
        await self._shutdown()

    @override
    def release(self) -> None:
        # Connections are closed by pull/cancel; release only detaches.
        self._released = True

    async def _shutdown(self) -> None:
        self._finished = True
        if self._response is not None:
            await self._response.aclose()
            self._response = None
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @override
    def metadata(self) -> dict[str, Any]:
        """
        Return metadata about the HTTP resource.

        Returns:
            dict[str, Any]: Metadata containing content length, type, and source type.
        """
        import httpx

        try:
            response = httpx.head(
                self.url,
                headers=self.headers,
                auth=self.auth,
                timeout=self.timeout,
                follow_redirects=True,
            )
            response.raise_for_status()

            size = response.headers.get("content-length")
            size = int(size) if size else 0
            content_type = response.headers.get("content-type", "application/octet-stream")
        except Exception as e:
            logger.warning("Could not retrieve metadata for %s: %s", self.url, e)
            size = 0
            content_type = "application/octet-stream"

        return {
            "size": size,
            "type": content_type,
            "source_type": "http",
            "url": self.url,
        }
