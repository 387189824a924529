#!/usr/bin/env python3
"""
Command line entry point for the raw HTTP server.
"""

"""
Copyright 2025 Chris Bunting
File: cli.py | Purpose: Command line interface for the raw HTTP server
@author Chris Bunting | @version 1.0.0

CHANGELOG:
2025-09-02 - Chris Bunting: Initial implementation
"""

import argparse
import logging
import sys

from .core.config import ServerConfig
from .core.server_core import HTTPServer
from .core.server_utils import ServerConfigError, configure_logging
from .features.metrics import start_metrics_exporter


def build_parser() -> argparse.ArgumentParser:
    defaults = ServerConfig()
    parser = argparse.ArgumentParser(
        prog="rawhttp",
        description="Minimal HTTP/1.1 server framing requests directly off TCP",
    )
    parser.add_argument("--host", default=defaults.host, help="Address to bind (default: %(default)s)")
    parser.add_argument("--port", type=int, default=defaults.port, help="TCP port (default: %(default)s)")
    parser.add_argument("--idle-timeout-ms", type=int, default=defaults.idle_timeout_ms,
                        help="Time with no bytes before answering 408 (default: %(default)s)")
    parser.add_argument("--in-flight-timeout-ms", type=int, default=defaults.in_flight_timeout_ms,
                        help="Time with a partial request before answering 408 (default: %(default)s)")
    parser.add_argument("--max-buffer-bytes", type=int, default=defaults.max_buffer_bytes,
                        help="Buffered bytes before answering 413 (default: %(default)s)")
    parser.add_argument("--max-connections", type=int, default=defaults.max_connections,
                        help="Simultaneous connections (default: %(default)s)")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON log records")
    parser.add_argument("--metrics-port", type=int, default=None,
                        help="Expose Prometheus metrics on this port")
    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    return ServerConfig(
        host=args.host,
        port=args.port,
        idle_timeout_ms=args.idle_timeout_ms,
        in_flight_timeout_ms=args.in_flight_timeout_ms,
        max_buffer_bytes=args.max_buffer_bytes,
        max_connections=args.max_connections,
    )


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(getattr(logging, args.log_level), json_format=args.json_logs)

    try:
        config = config_from_args(args)
    except ServerConfigError as e:
        parser.error(str(e))

    if args.metrics_port is not None:
        start_metrics_exporter(args.metrics_port, addr=args.host)

    HTTPServer(config=config).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
