"""
Constructor-time configuration for the raw HTTP server.
"""

from dataclasses import dataclass, fields
from typing import Any, Mapping

from .server_utils import ServerConfigError

# Option keys accepted by ServerConfig.from_options, mapped to field names
OPTION_ALIASES = {
    'port': 'port',
    'host': 'host',
    'idleTimeoutMs': 'idle_timeout_ms',
    'inFlightTimeoutMs': 'in_flight_timeout_ms',
    'maxBufferBytes': 'max_buffer_bytes',
    'readSize': 'read_size',
    'maxConnections': 'max_connections',
}


@dataclass
class ServerConfig:
    """Listener, timeout and size-limit settings.

    Attributes:
        host: Address to bind to
        port: TCP port to bind (0 picks an ephemeral port)
        idle_timeout_ms: Time with no bytes at all before answering 408
        in_flight_timeout_ms: Time with a partial message buffered before answering 408
        max_buffer_bytes: Hard cap on buffered bytes before answering 413
        read_size: Maximum bytes requested per socket read
        max_connections: Maximum number of simultaneous connections
    """
    host: str = '127.0.0.1'
    port: int = 8080
    idle_timeout_ms: int = 10000
    in_flight_timeout_ms: int = 5000
    max_buffer_bytes: int = 1000000
    read_size: int = 8192
    max_connections: int = 1000

    def __post_init__(self):
        if not isinstance(self.port, int) or isinstance(self.port, bool):
            raise ServerConfigError("Port must be an integer")
        if self.port < 0 or self.port > 65535:
            raise ServerConfigError("Port number must be between 0 and 65535")

        for name in ('idle_timeout_ms', 'in_flight_timeout_ms', 'max_buffer_bytes',
                     'read_size', 'max_connections'):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise ServerConfigError(f"{name} must be an integer")
            if value < 1:
                raise ServerConfigError(f"{name} must be at least 1")

        if self.in_flight_timeout_ms > self.idle_timeout_ms:
            raise ServerConfigError("in_flight_timeout_ms must not exceed idle_timeout_ms")

    @property
    def idle_timeout(self) -> float:
        """Idle timeout in seconds."""
        return self.idle_timeout_ms / 1000.0

    @property
    def in_flight_timeout(self) -> float:
        """In-flight timeout in seconds."""
        return self.in_flight_timeout_ms / 1000.0

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> 'ServerConfig':
        """Build a config from ``{port, idleTimeoutMs, ...}`` style options.

        Snake-case field names are accepted as well.

        Raises:
            ServerConfigError: On unknown keys or invalid values
        """
        field_names = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in options.items():
            name = OPTION_ALIASES.get(key, key)
            if name not in field_names:
                raise ServerConfigError(f"Unknown option: {key}")
            kwargs[name] = value
        return cls(**kwargs)
