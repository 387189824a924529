"""
Per-connection loop driving the stateless framer.

This module implements the connection side of the server:
- A private receive buffer per connection
- Idle and in-flight read timeouts (408)
- A hard ceiling on buffered bytes (413)
- Pipelined requests answered strictly in arrival order
- Malformed input answered with 400
- Socket closure on every exit path
"""

import asyncio
import inspect
import uuid
from enum import Enum
from typing import Awaitable, Callable, Optional, Union

from .buffer import ReceiveBuffer
from .config import ServerConfig
from .http_parser import Request
from .responder import Response, default_app, error_response
from .server_utils import access_log_payload, format_peer, logger
from ..features.metrics import ServerMetrics, get_default_metrics
from ..features.pipelining import drain_pipeline

App = Callable[[Request], Union[Response, Awaitable[Response]]]


class ConnectionState(Enum):
    AWAITING_DATA = "awaiting_data"
    CLOSED = "closed"


class ConnectionHandler:
    """Serves one accepted TCP connection.

    The handler is a two-state machine. While ``AWAITING_DATA`` it reads from
    the socket, appends to its buffer and runs the framer; timeouts, malformed
    input, an oversized buffer, peer EOF or a transport fault move it to
    ``CLOSED``. Responses always carry ``Connection: close``, so once every
    buffered request has been answered and nothing is left over the handler
    closes as well.
    """

    def __init__(
        self,
        app: App = default_app,
        config: Optional[ServerConfig] = None,
        metrics: Optional[ServerMetrics] = None,
    ):
        self.app = app
        self.config = config or ServerConfig()
        self.metrics = metrics or get_default_metrics()
        self.buffer = ReceiveBuffer()
        self.state = ConnectionState.AWAITING_DATA
        self.requests_handled = 0
        self.client = "unknown"

    @property
    def closed(self) -> bool:
        return self.state is ConnectionState.CLOSED

    def current_timeout(self) -> float:
        """Idle timeout with an empty buffer, in-flight timeout otherwise."""
        if self.buffer:
            return self.config.in_flight_timeout
        return self.config.idle_timeout

    async def handle_connection(self, reader: asyncio.StreamReader,
                                writer: asyncio.StreamWriter) -> None:
        self.client = format_peer(writer.get_extra_info("peername"))
        self.metrics.open_connections.inc()
        try:
            while not self.closed:
                try:
                    data = await asyncio.wait_for(
                        reader.read(self.config.read_size),
                        timeout=self.current_timeout(),
                    )
                except asyncio.TimeoutError:
                    logger.warning("Read timeout from %s with %d bytes buffered",
                                   self.client, len(self.buffer))
                    await self._send_error(writer, 408)
                    break

                if not data:
                    logger.debug("Peer %s closed the connection", self.client)
                    break

                await self.data_received(data, writer)
        except OSError as e:
            # Transport already failed; no response is attempted
            logger.debug("Transport error on %s: %s", self.client, e)
        finally:
            self.state = ConnectionState.CLOSED
            self.buffer.clear()
            self.metrics.open_connections.dec()
            await self._close(writer)

    async def data_received(self, data: bytes, writer: asyncio.StreamWriter) -> None:
        """Feed newly arrived bytes and answer everything they complete."""
        self.buffer += data

        if self.buffer.exceeds(self.config.max_buffer_bytes):
            logger.warning("Buffered request from %s exceeded %d bytes",
                           self.client, self.config.max_buffer_bytes)
            await self._send_error(writer, 413)
            self.state = ConnectionState.CLOSED
            return

        result = drain_pipeline(self.buffer)
        for request in result.requests:
            if not await self._respond(request, writer):
                self.state = ConnectionState.CLOSED
                return

        if result.malformed:
            logger.warning("Malformed request from %s: %s", self.client, result.outcome.reason)
            await self._send_error(writer, 400)
            self.state = ConnectionState.CLOSED
        elif self.requests_handled and not self.buffer:
            self.state = ConnectionState.CLOSED

    async def _respond(self, request: Request, writer: asyncio.StreamWriter) -> bool:
        """Run the application for one request and write its response.

        Returns:
            False if the application failed and a 500 was written instead
        """
        loop = asyncio.get_running_loop()
        request_id = str(uuid.uuid4())
        start_time = loop.time()
        self.metrics.requests_total.inc()

        ok = True
        try:
            response = self.app(request)
            if inspect.isawaitable(response):
                response = await response
            if not isinstance(response, Response):
                raise TypeError(f"Application returned {type(response).__name__}, expected Response")
            data = response.serialize()
        except Exception:
            logger.exception("Error processing request %s %s", request.method, request.path)
            response = error_response(500)
            data = response.serialize()
            ok = False

        duration = loop.time() - start_time
        self.metrics.request_duration.observe(duration)

        await self._write(writer, response.status, data)
        self.requests_handled += 1

        payload = access_log_payload(request.method, request.path, response.status,
                                     len(response.body), duration, self.client, request_id)
        logger.info("%s %s %d", request.method, request.path, response.status, extra=payload)
        return ok

    async def _send_error(self, writer: asyncio.StreamWriter, status: int) -> None:
        await self._write(writer, status, error_response(status).serialize())

    async def _write(self, writer: asyncio.StreamWriter, status: int, data: bytes) -> None:
        writer.write(data)
        await writer.drain()
        self.metrics.response_sent(status)

    async def _close(self, writer: asyncio.StreamWriter) -> None:
        try:
            writer.close()
            await writer.wait_closed()
        except Exception:
            logger.debug("Error closing connection to %s", self.client, exc_info=True)
