"""
Response serialization for the raw HTTP server.

Every response is written with an explicit Content-Length and
``Connection: close``; the server never reuses a connection once the buffered
pipeline has been answered.
"""

from dataclasses import dataclass
from typing import Optional, Union

from .http_parser import Request

REASON_PHRASES = {
    200: 'OK',
    400: 'Bad Request',
    404: 'Not Found',
    408: 'Request Timeout',
    413: 'Payload Too Large',
    500: 'Internal Server Error',
}


@dataclass(frozen=True)
class Response:
    """An HTTP response ready to be written back to the peer.

    Attributes:
        status: Numeric status code
        body: Response body; ``str`` bodies are UTF-8 encoded
        reason: Reason phrase, looked up from the status when omitted
        version: HTTP version number used on the status line
    """
    status: int = 200
    body: Union[bytes, str] = b''
    reason: Optional[str] = None
    version: str = '1.1'

    def __post_init__(self):
        if isinstance(self.body, str):
            object.__setattr__(self, 'body', self.body.encode('utf-8'))
        else:
            object.__setattr__(self, 'body', bytes(self.body))
        if self.reason is None:
            object.__setattr__(self, 'reason', REASON_PHRASES.get(self.status, 'Error'))

    def serialize(self) -> bytes:
        head = (
            f'HTTP/{self.version} {self.status} {self.reason}\r\n'
            f'Content-Length: {len(self.body)}\r\n'
            f'Connection: close\r\n'
            f'\r\n'
        )
        return head.encode('latin-1') + self.body


def error_response(status: int) -> Response:
    """Build an error response whose body is its reason phrase."""
    reason = REASON_PHRASES.get(status, 'Error')
    return Response(status, reason, reason)


def default_app(request: Request) -> Response:
    """Greeting application used when the server is started without one."""
    body = (
        f'Hello from raw HTTP server!\n'
        f'Method: {request.method}\n'
        f'Path: {request.path}'
    )
    return Response(200, body)
