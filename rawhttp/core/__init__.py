"""
Core server components
"""

from .http_parser import (
    INCOMPLETE, HTTPParserError, Incomplete, Malformed, ParseOutcome, Parsed, Request, attempt_parse
)
from .buffer import ReceiveBuffer
from .responder import Response, default_app, error_response
from .config import ServerConfig
from .server_utils import ServerConfigError, configure_logging
from .connection import ConnectionHandler, ConnectionState
from .server_core import HTTPServer

# Expose public interface
__all__ = [
    "INCOMPLETE", "HTTPParserError", "Incomplete", "Malformed", "ParseOutcome", "Parsed",
    "Request", "attempt_parse", "ReceiveBuffer", "Response", "default_app", "error_response",
    "ServerConfig", "ServerConfigError", "configure_logging", "ConnectionHandler",
    "ConnectionState", "HTTPServer",
]
