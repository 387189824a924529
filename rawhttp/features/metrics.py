"""
Prometheus metrics for framing outcomes and connections.
"""

"""
Copyright 2025 Chris Bunting
File: metrics.py | Purpose: Prometheus metrics for the raw HTTP server
@author Chris Bunting | @version 1.0.0

CHANGELOG:
2025-09-02 - Chris Bunting: Split metrics out of the server module, count responses per status
"""

from typing import Optional

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram, start_http_server


class ServerMetrics:
    """Counters and gauges updated by the connection loop.

    Args:
        registry: Registry to register the collectors with. Tests pass a
            fresh ``CollectorRegistry`` so instances do not collide.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        registry = registry if registry is not None else REGISTRY
        self.registry = registry
        self.requests_total = Counter(
            "rawhttp_requests_total", "Requests framed successfully", registry=registry
        )
        self.responses_total = Counter(
            "rawhttp_responses_total", "Responses written by status code", ["status"], registry=registry
        )
        self.open_connections = Gauge(
            "rawhttp_open_connections", "Connections currently being served", registry=registry
        )
        self.request_duration = Histogram(
            "rawhttp_request_duration_seconds", "Time spent in the application per request", registry=registry
        )

    def response_sent(self, status: int) -> None:
        self.responses_total.labels(status=str(status)).inc()


_default_metrics: Optional[ServerMetrics] = None


def get_default_metrics() -> ServerMetrics:
    """Process-wide metrics bound to the default registry."""
    global _default_metrics
    if _default_metrics is None:
        _default_metrics = ServerMetrics()
    return _default_metrics


def start_metrics_exporter(port: int, addr: str = "127.0.0.1") -> None:
    """Expose the default registry on ``http://addr:port/metrics``."""
    start_http_server(port, addr=addr)
