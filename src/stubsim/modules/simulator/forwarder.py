"""Relay unmatched requests to a live backend and stream the answer back."""

import logging
from collections.abc import AsyncIterable, AsyncIterator, Iterable
from enum import Enum

import httpx

logger = logging.getLogger(__name__)

BUFFER_SIZE = 100000
READ_TIMEOUT = 12.0
CONNECT_TIMEOUT = 10.0

BODYLESS_METHODS = frozenset({"GET", "DELETE", "HEAD", "OPTIONS", "TRACE"})

# Framing headers the HTTP client computes for the outbound connection.
REQUEST_FRAMING_HEADERS = frozenset({"host", "content-length", "transfer-encoding"})

# Headers that describe the upstream connection or encoding, not the payload.
RESPONSE_HOP_HEADERS = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailer",
        "transfer-encoding",
        "upgrade",
        "content-length",
        "content-encoding",
    }
)


class HeaderPropagation(str, Enum):
    """Which upstream response headers are passed back to the caller."""

    CONTENT_TYPE = "content-type"
    ALL = "all"


class ForwardedResponse:
    """Upstream response whose body has not been read yet."""

    def __init__(self, response: httpx.Response, client: httpx.AsyncClient, buffer_size: int):
        self._response = response
        self._client = client
        self.buffer_size = buffer_size
        self.status_code = response.status_code
        self.reason_phrase = response.reason_phrase
        self.content_type = response.headers.get("content-type", "")
        self.headers: dict[str, str] = {}

    async def iter_body(self) -> AsyncIterator[bytes]:
        """Yield the body in chunks of at most ``buffer_size`` bytes."""
        async for chunk in self._response.aiter_bytes(chunk_size=self.buffer_size):
            if chunk:
                yield chunk

    async def read(self) -> bytes:
        chunks = [chunk async for chunk in self.iter_body()]
        return b"".join(chunks)

    async def aclose(self) -> None:
        try:
            await self._response.aclose()
        finally:
            await self._client.aclose()


async def _chunked(data: bytes, size: int) -> AsyncIterator[bytes]:
    for start in range(0, len(data), size):
        yield data[start : start + size]


async def _rechunk(stream: AsyncIterable[bytes], size: int) -> AsyncIterator[bytes]:
    async for data in stream:
        for start in range(0, len(data), size):
            yield data[start : start + size]


class Forwarder:
    """Stream an HTTP request to a backend and hand back a streaming response."""

    def __init__(
        self,
        read_timeout: float = READ_TIMEOUT,
        buffer_size: int = BUFFER_SIZE,
        header_propagation: HeaderPropagation = HeaderPropagation.CONTENT_TYPE,
        verify_ssl: bool = False,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if buffer_size <= 0:
            raise ValueError("buffer_size must be positive")
        if read_timeout <= 0:
            raise ValueError("read_timeout must be positive")
        self.read_timeout = read_timeout
        self.buffer_size = buffer_size
        self.header_propagation = HeaderPropagation(header_propagation)
        self.verify_ssl = verify_ssl
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        timeout = httpx.Timeout(CONNECT_TIMEOUT, read=self.read_timeout)
        if self.transport is not None:
            return httpx.AsyncClient(timeout=timeout, transport=self.transport)
        return httpx.AsyncClient(timeout=timeout, verify=self.verify_ssl)

    def request_headers(self, headers: Iterable[tuple[str, str]]) -> list[tuple[str, str]]:
        """Inbound headers to send upstream, minus connection framing."""
        return [(k, v) for k, v in headers if k.lower() not in REQUEST_FRAMING_HEADERS]

    def response_headers(self, response: httpx.Response) -> dict[str, str]:
        """Upstream headers to return, according to ``header_propagation``."""
        if self.header_propagation is HeaderPropagation.CONTENT_TYPE:
            content_type = response.headers.get("content-type")
            return {"content-type": content_type} if content_type else {}
        return {
            key: value
            for key, value in response.headers.items()
            if key.lower() not in RESPONSE_HOP_HEADERS
        }

    async def forward(
        self,
        method: str,
        url: str,
        headers: Iterable[tuple[str, str]] = (),
        body: bytes | AsyncIterable[bytes] | None = None,
    ) -> ForwardedResponse:
        """Send the request and return once upstream headers have arrived.

        The body is never read for methods without body semantics. The caller
        owns the returned response and must ``aclose()`` it.
        """
        method = method.upper()
        content: AsyncIterable[bytes] | None = None
        if body is not None and method not in BODYLESS_METHODS:
            if isinstance(body, bytes):
                content = _chunked(body, self.buffer_size)
            else:
                content = _rechunk(body, self.buffer_size)

        client = self._client()
        try:
            request = client.build_request(
                method,
                url,
                headers=self.request_headers(headers),
                content=content,
            )
            logger.debug("Forwarding %s %s", method, url)
            response = await client.send(request, stream=True)
        except BaseException:
            await client.aclose()
            raise

        forwarded = ForwardedResponse(response, client, self.buffer_size)
        forwarded.headers = self.response_headers(response)
        logger.debug("Upstream answered %d for %s %s", response.status_code, method, url)
        return forwarded
