from .core import (
    INCOMPLETE, HTTPParserError, Incomplete, Malformed, ParseOutcome, Parsed, Request, attempt_parse,
    ReceiveBuffer, Response, default_app, error_response, ServerConfig, ServerConfigError,
    configure_logging, ConnectionHandler, ConnectionState, HTTPServer
)
from .features.pipelining import PipelineResult, drain_pipeline

__version__ = '1.0.0'

__all__ = [
    # Framer
    'attempt_parse',
    'Request',
    'ParseOutcome',
    'Incomplete',
    'Malformed',
    'Parsed',
    'INCOMPLETE',
    'HTTPParserError',

    # Connection side
    'ReceiveBuffer',
    'ConnectionHandler',
    'ConnectionState',
    'HTTPServer',
    'ServerConfig',
    'ServerConfigError',
    'configure_logging',

    # Responses
    'Response',
    'default_app',
    'error_response',

    # Features
    'PipelineResult',
    'drain_pipeline',
]
