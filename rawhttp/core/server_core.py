"""
Asynchronous TCP server hosting the HTTP request framer.

This module implements the listener around the connection loop:
- Asynchronous I/O using asyncio (uvloop when available)
- Graceful shutdown handling
- Connection limiting and tracking
- Error handling and guaranteed socket closure
"""

import asyncio
import signal
import sys
from typing import Optional, Set

from .config import ServerConfig
from .connection import App, ConnectionHandler
from .responder import default_app
from .server_utils import configure_client_socket, get_server_kwargs, logger, setup_uvloop
from ..features.metrics import ServerMetrics, get_default_metrics


class HTTPServer:
    """Raw-socket HTTP/1.1 server.

    Attributes:
        app: Callable turning a Request into a Response
        config: Listener, timeout and size-limit settings
    """

    def __init__(self, app: App = default_app, config: Optional[ServerConfig] = None,
                 metrics: Optional[ServerMetrics] = None):
        self.app = app
        self.config = config or ServerConfig()
        self.metrics = metrics or get_default_metrics()
        self._server: Optional[asyncio.AbstractServer] = None
        self._shutdown_event: Optional[asyncio.Event] = None
        self._active_connections: Set[asyncio.Task] = set()
        self._connection_semaphore: Optional[asyncio.Semaphore] = None
        self._bound_port: Optional[int] = None
        self._shutdown_task: Optional[asyncio.Task] = None

    @property
    def sockets(self):
        return self._server.sockets if self._server else ()

    @property
    def port(self) -> int:
        """Bound port, which differs from the configured one when it was 0.

        Stays available after the listener has been closed.
        """
        if self._bound_port is not None:
            return self._bound_port
        return self.config.port

    @property
    def active_connections(self) -> int:
        return len(self._active_connections)

    async def listen(self) -> None:
        """Bind the listening socket and start accepting connections.

        Raises:
            OSError: If the server fails to bind to the configured host/port
        """
        self._shutdown_event = asyncio.Event()
        self._connection_semaphore = asyncio.Semaphore(self.config.max_connections)
        self._server = await asyncio.start_server(
            self.handle_client,
            self.config.host,
            self.config.port,
            **get_server_kwargs()
        )
        for sock in self._server.sockets:
            self._bound_port = sock.getsockname()[1]
            break
        logger.info("HTTP server listening on %s:%d", self.config.host, self.port)

    async def start(self) -> None:
        """Listen and serve until :meth:`shutdown` is called or a signal arrives."""
        await self.listen()

        if sys.platform != "win32":
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGTERM, signal.SIGINT):
                try:
                    loop.add_signal_handler(sig, self._request_shutdown)
                except (NotImplementedError, RuntimeError):
                    # Not on the main thread, or the loop does not support it
                    pass

        try:
            await self._shutdown_event.wait()
            if self._shutdown_task is not None:
                await self._shutdown_task
        finally:
            await self._close_listener()

    def _request_shutdown(self) -> None:
        """Signal handler; keeps a reference to the shutdown task until it is done."""
        if self._shutdown_task is None:
            self._shutdown_task = asyncio.ensure_future(self.shutdown())

    async def _close_listener(self) -> None:
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()

    async def shutdown(self, timeout: float = 30.0) -> None:
        """Stop accepting connections and wait for active ones to finish.

        Args:
            timeout: Maximum time in seconds to wait before cancelling connections
        """
        logger.info("Initiating graceful shutdown...")
        if self._shutdown_event is not None:
            self._shutdown_event.set()
        # wait_closed() also waits for open connections, so only stop accepting here
        if self._server is not None:
            self._server.close()

        tasks = list(self._active_connections)
        if tasks:
            logger.info(f"Waiting for {len(tasks)} active connections to complete...")
            done, pending = await asyncio.wait(tasks, timeout=timeout)
            if pending:
                logger.warning(f"Force closing {len(pending)} connections that didn't complete in time")
                for task in pending:
                    task.cancel()
                await asyncio.wait(pending, timeout=5.0)

        await self._close_listener()
        logger.info("Server shutdown complete")

    async def handle_client(self, reader: asyncio.StreamReader,
                            writer: asyncio.StreamWriter) -> None:
        """Serve one accepted connection.

        Manages connection limiting, task tracking for graceful shutdown and
        makes sure the socket is closed however the handler exits.
        """
        if self._shutdown_event is not None and self._shutdown_event.is_set():
            writer.close()
            return

        configure_client_socket(writer.get_extra_info("socket"))

        async with self._connection_semaphore:
            task = asyncio.current_task()
            if task:
                self._active_connections.add(task)
            try:
                handler = ConnectionHandler(self.app, self.config, self.metrics)
                await handler.handle_connection(reader, writer)
            except Exception:
                logger.exception("Connection handler raised an unexpected exception")
            finally:
                if task:
                    self._active_connections.discard(task)
                if not writer.is_closing():
                    writer.close()

    def run(self) -> None:
        """Run the server in the current thread until it is shut down."""
        setup_uvloop()
        try:
            asyncio.run(self.start())
        except KeyboardInterrupt:
            logger.info("Server stopped")
