"""HTTP front end that answers requests through the interception pipeline."""

import asyncio
import logging
import time
from pathlib import Path
from urllib.parse import unquote, urlsplit

import httpx

from stubsim.modules.simulator.forwarder import BODYLESS_METHODS, ForwardedResponse, Forwarder
from stubsim.modules.simulator.http_io import (
    MAX_BODY_SIZE,
    BadRequestError,
    header_value,
    read_body,
    read_headers,
    write_error,
    write_response,
    write_stream,
)
from stubsim.modules.simulator.models import SimulatorResponse
from stubsim.modules.simulator.pipeline import CycleResult, InterceptionPipeline, Resolve
from stubsim.modules.simulator.resolver import FixtureResolver
from stubsim.modules.simulator.runner import CustomizationRunner
from stubsim.modules.simulator.store import ExchangeEntry, ExchangeStore
from stubsim.modules.simulator.uri_mapper import URIMapper

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "text/plain; charset=utf-8"


class SimulatorServer:
    """Local HTTP server serving fixtures, with forwarding for unmatched requests."""

    def __init__(
        self,
        root_path: Path | str,
        host: str = "127.0.0.1",
        port: int = 9100,
        runner: CustomizationRunner | None = None,
        resolver: FixtureResolver | None = None,
        forwarder: Forwarder | None = None,
        uri_mapper: URIMapper | None = None,
        store: ExchangeStore | None = None,
        timeout: float = 30.0,
        post_hooks_on_short_circuit: bool = True,
        max_body_size: int = MAX_BODY_SIZE,
    ):
        self.root_path = Path(root_path)
        self.host = host
        self.port = port
        self.resolver = resolver if resolver is not None else FixtureResolver()
        self.forwarder = forwarder
        self.uri_mapper = uri_mapper if uri_mapper is not None else URIMapper()
        self.store = store if store is not None else ExchangeStore()
        self.timeout = timeout
        self.max_body_size = max_body_size
        self.pipeline = InterceptionPipeline(
            self.resolver,
            runner=runner,
            post_hooks_on_short_circuit=post_hooks_on_short_circuit,
        )
        self._server: asyncio.Server | None = None
        self.running = False

    async def start(self) -> None:
        """Start listening for connections."""
        self._server = await asyncio.start_server(self._handle_client, self.host, self.port)
        sockets = self._server.sockets or []
        if sockets:
            self.port = sockets[0].getsockname()[1]
        self.running = True
        logger.info("Simulator listening on %s:%d (root %s)", self.host, self.port, self.root_path)

    async def stop(self) -> None:
        """Shut down the server."""
        if self._server:
            self._server.close()
            await self._server.wait_closed()
        self.running = False
        logger.info("Simulator stopped")

    async def serve_forever(self) -> None:
        server = self._server
        if server is None:
            await self.start()
            server = self._server
        if server is None:
            raise RuntimeError("Simulator server failed to start")
        async with server:
            await server.serve_forever()

    async def _handle_client(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        try:
            first_line = await asyncio.wait_for(reader.readline(), timeout=self.timeout)
            if not first_line:
                return
            parts = first_line.decode("latin-1").strip().split()
            if len(parts) < 2:
                await write_error(writer, 400)
                return

            method, target = parts[0].upper(), parts[1]
            headers = await read_headers(reader, self.timeout)
            try:
                body = await read_body(reader, headers, self.timeout, self.max_body_size)
            except BadRequestError as exc:
                logger.warning("Rejected %s %s: %s", method, target, exc)
                await write_error(writer, exc.status_code, str(exc))
                return
            await self.handle(writer, method, target, headers, body)
        except (TimeoutError, ConnectionError, OSError, asyncio.IncompleteReadError) as exc:
            logger.debug("Connection dropped: %s", exc)
        finally:
            writer.close()

    async def handle(
        self,
        writer: asyncio.StreamWriter,
        method: str,
        target: str,
        headers: list[tuple[str, str]],
        body: bytes,
    ) -> ExchangeEntry:
        """Run one request cycle and write the answer to ``writer``."""
        split = urlsplit(target)
        path = unquote(split.path) or "/"
        content_type = header_value(headers, "Content-Type")
        if method in BODYLESS_METHODS:
            payload = unquote(split.query)
        else:
            payload = body.decode("utf-8", errors="replace")

        entry = ExchangeEntry(
            method=method,
            path=path,
            content_type=content_type,
            request_body=payload,
        )
        upstreams: list[ForwardedResponse] = []
        resolve = self._resolve_for(method, split.query, headers, body, payload, upstreams)
        start = time.monotonic()
        try:
            result = await self.pipeline.run(
                self.root_path, path.strip("/"), payload, content_type, resolve
            )
            entry.status_code = await self._write_outcome(writer, result, content_type, entry)
            self._describe(entry, result)
        except httpx.HTTPError as exc:
            logger.warning("Forwarding %s %s failed: %s", method, path, exc)
            entry.status_code = 502
            entry.error = str(exc)
            await write_error(writer, 502)
        except Exception as exc:
            logger.error("Cannot service %s %s", method, path, exc_info=True)
            entry.status_code = 500
            entry.error = str(exc)
            await write_error(writer, 500, f"Simulator error: {exc}")
        finally:
            for upstream in upstreams:
                await upstream.aclose()
            entry.response_time = round(time.monotonic() - start, 4)
            self.store.add(entry)
        return entry

    def _resolve_for(
        self,
        method: str,
        query: str,
        headers: list[tuple[str, str]],
        body: bytes,
        payload: str,
        upstreams: list[ForwardedResponse],
    ) -> Resolve:
        """Fixtures first, then the forwarder when the path maps to an upstream URL."""

        async def resolve(
            root_path: Path,
            root_relative_path: str,
            request: str,
            content_type: str,
        ) -> SimulatorResponse | None:
            outcome = await self.resolver(root_path, root_relative_path, request, content_type)
            if outcome is not None or self.forwarder is None:
                return outcome

            url = self.uri_mapper.map("/" + root_relative_path, query)
            if url is None:
                return None

            outbound = [(k, v) for k, v in headers if k.lower() != "content-type"]
            if content_type:
                outbound.append(("Content-Type", content_type))
            data: bytes | None = None
            if method not in BODYLESS_METHODS:
                data = body if request == payload else request.encode("utf-8")

            upstream = await self.forwarder.forward(method, url, outbound, data)
            upstreams.append(upstream)
            return SimulatorResponse(
                content_type=upstream.content_type,
                status_code=upstream.status_code,
                headers=dict(upstream.headers),
                upstream=upstream,
            )

        return resolve

    async def _write_outcome(
        self,
        writer: asyncio.StreamWriter,
        result: CycleResult,
        request_content_type: str,
        entry: ExchangeEntry,
    ) -> int:
        outcome = result.outcome
        if outcome is None:
            await write_error(writer, 404, "No simulator response found")
            return 404

        content_type = outcome.content_type or request_content_type or DEFAULT_CONTENT_TYPE
        if outcome.upstream is not None and not outcome.body:
            headers = {
                k: v for k, v in outcome.headers.items() if k.lower() != "content-type"
            }
            if content_type:
                headers["Content-Type"] = content_type
            try:
                await write_stream(
                    writer,
                    outcome.status_code,
                    outcome.upstream.iter_body(),
                    headers,
                    outcome.upstream.reason_phrase,
                )
            except httpx.HTTPError as exc:
                # The status line is already out; the client gets a truncated body.
                logger.warning(
                    "Upstream body for %s %s failed after headers were sent: %s",
                    entry.method,
                    entry.path,
                    exc,
                )
                entry.error = str(exc) or type(exc).__name__
            return outcome.status_code

        await write_response(
            writer,
            outcome.status_code,
            outcome.body_bytes(),
            content_type=content_type,
            headers=outcome.headers,
        )
        return outcome.status_code

    @staticmethod
    def _describe(entry: ExchangeEntry, result: CycleResult) -> None:
        outcome = result.outcome
        entry.short_circuited = result.short_circuited
        entry.failures = list(result.failures)
        if outcome is not None:
            entry.forwarded = outcome.forwarded
            if outcome.matching_request is not None:
                entry.matched_fixture = str(outcome.matching_request)
        for failure in result.failures:
            logger.warning(
                "Skipped failing %s unit %s (%s)",
                failure.role.value,
                failure.location,
                failure.error_type,
            )
