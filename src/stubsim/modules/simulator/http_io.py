"""Helpers for reading requests from and writing responses to client streams."""

import asyncio
from collections.abc import AsyncIterator
from http import HTTPStatus

MAX_BODY_SIZE = 10 * 1024 * 1024


class BadRequestError(ValueError):
    """The client sent a request that cannot be read."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


async def read_headers(reader: asyncio.StreamReader, timeout: float) -> list[tuple[str, str]]:
    """Read HTTP headers from a stream, keeping order and repeats."""
    headers: list[tuple[str, str]] = []
    while True:
        line = await asyncio.wait_for(reader.readline(), timeout=timeout)
        text = line.decode("latin-1").strip()
        if not text:
            break
        key, _, value = text.partition(":")
        if value:
            headers.append((key.strip(), value.strip()))
    return headers


def header_value(headers: list[tuple[str, str]], name: str, default: str = "") -> str:
    """Return the first value of header ``name`` (case-insensitive)."""
    name = name.lower()
    for key, value in headers:
        if key.lower() == name:
            return value
    return default


async def read_body(
    reader: asyncio.StreamReader,
    headers: list[tuple[str, str]],
    timeout: float,
    max_size: int = MAX_BODY_SIZE,
) -> bytes:
    """Read a Content-Length delimited request body."""
    raw = header_value(headers, "Content-Length", "0") or "0"
    try:
        length = int(raw)
    except ValueError as exc:
        raise BadRequestError(f"Invalid Content-Length: {raw!r}") from exc
    if length < 0:
        raise BadRequestError(f"Invalid Content-Length: {raw!r}")
    if length > max_size:
        raise BadRequestError(f"Request body exceeds {max_size} bytes", status_code=413)
    if length == 0:
        return b""
    return await asyncio.wait_for(reader.readexactly(length), timeout=timeout)


def _reason(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return ""


def write_head(
    writer: asyncio.StreamWriter,
    status_code: int,
    headers: dict[str, str],
    reason: str = "",
) -> None:
    """Write the status line and headers; the connection closes after the body."""
    writer.write(f"HTTP/1.1 {status_code} {reason or _reason(status_code)}\r\n".encode())
    for key, value in headers.items():
        writer.write(f"{key}: {value}\r\n".encode("latin-1", errors="replace"))
    writer.write(b"Connection: close\r\n\r\n")


async def write_response(
    writer: asyncio.StreamWriter,
    status_code: int,
    body: bytes,
    content_type: str = "text/plain; charset=utf-8",
    headers: dict[str, str] | None = None,
) -> None:
    """Write a complete response with a Content-Length."""
    merged = {
        k: v for k, v in (headers or {}).items() if k.lower() not in ("content-length", "content-type")
    }
    merged["Content-Type"] = content_type
    merged["Content-Length"] = str(len(body))
    write_head(writer, status_code, merged)
    writer.write(body)
    await writer.drain()


async def write_stream(
    writer: asyncio.StreamWriter,
    status_code: int,
    chunks: AsyncIterator[bytes],
    headers: dict[str, str],
    reason: str = "",
) -> int:
    """Write a response whose body is delimited by connection close; return bytes sent."""
    write_head(writer, status_code, headers, reason)
    await writer.drain()
    sent = 0
    async for chunk in chunks:
        writer.write(chunk)
        await writer.drain()
        sent += len(chunk)
    return sent


async def write_error(writer: asyncio.StreamWriter, status_code: int, message: str = "") -> None:
    """Write a short plain-text error response."""
    await write_response(writer, status_code, (message or _reason(status_code)).encode())
