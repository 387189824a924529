"""
Utility functions for server configuration and operation.

This module provides core functionality for:
- Logging setup, plain text or JSON via python-json-logger
- Event loop setup with uvloop
- Listener kwargs and per-connection socket options
- Structured access log payloads
"""

import sys
import socket
import asyncio
import logging
from typing import Any, Dict, Optional

from pythonjsonlogger.json import JsonFormatter

LOGGER_NAME = "rawhttp"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
JSON_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

logger = logging.getLogger(LOGGER_NAME)

# Try to import uvloop for better performance on Linux/macOS
try:
    import uvloop

    UVLOOP_AVAILABLE = True
except ImportError:
    UVLOOP_AVAILABLE = False


class ServerConfigError(ValueError):
    """Raised for invalid server configuration."""

    pass


def configure_logging(level=logging.INFO, log_file=None, json_format=False):
    """Configure logging for the server.

    Args:
        level: Logging level (default: INFO)
        log_file: Optional path to log file
        json_format: Emit one JSON object per record instead of plain text

    Returns:
        Configured logger instance
    """
    if json_format:
        formatter = JsonFormatter(JSON_LOG_FORMAT)
    else:
        formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    # Reconfiguring replaces earlier handlers instead of stacking them
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.setLevel(level)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def setup_uvloop() -> bool:
    """Configure uvloop as the event loop policy when possible.

    Returns:
        True if uvloop is in use, False when falling back to the default loop

    Raises:
        ServerConfigError: If uvloop is installed but cannot be set up
    """
    if not UVLOOP_AVAILABLE or sys.platform == "win32":
        logger.warning("uvloop not available, falling back to default event loop")
        return False
    try:
        asyncio.set_event_loop_policy(uvloop.EventLoopPolicy())
    except Exception as e:
        logger.error(f"Failed to setup uvloop: {e}")
        raise ServerConfigError("Failed to initialize event loop") from e
    logger.info("Using uvloop event loop")
    return True


def get_server_kwargs() -> Dict[str, Any]:
    """Keyword arguments passed to ``asyncio.start_server``."""
    return {
        "reuse_address": True,
        "backlog": 2048,
        "start_serving": True,
    }


def configure_client_socket(sock: Optional[socket.socket]) -> None:
    """Apply per-connection TCP options to an accepted socket.

    Failures are logged and ignored; they never prevent serving the peer.
    """
    if sock is None:
        return
    try:
        if hasattr(socket, "TCP_NODELAY"):
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)
    except OSError as e:
        logger.debug(f"Failed to configure client socket: {e}")


def format_peer(peername) -> str:
    if not isinstance(peername, (tuple, list)) or len(peername) < 2:
        return "unknown"
    return f"{peername[0]}:{peername[1]}"


def access_log_payload(method: str, path: str, status: int, length: int,
                       duration: float, client: str, request_id: str) -> Dict[str, Any]:
    return {
        "method": method,
        "path": path,
        "status": status,
        "length": length,
        "duration_s": round(duration, 6),
        "client": client,
        "request_id": request_id,
    }
