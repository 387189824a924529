"""
Incremental HTTP/1.1 request framer operating on raw bytes.

This module provides the framing core of the server:
- Byte-level search for the start-line and header terminators
- Start-line and header parsing, deferred until boundaries are known
- Content-Length based body framing
- Leftover bytes handed back for pipelined requests

The framer is stateless. Every call receives the full accumulated buffer and
returns a fresh outcome, so it is safe to call again on a grown buffer.
"""

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple, Union

CRLF = b'\r\n'
HEADERS_END = b'\r\n\r\n'
HEADER_ENCODING = 'latin-1'

_content_length_re = re.compile(rb'[0-9]+')


class HTTPParserError(Exception):
    """Raised internally while walking the request head.

    Never escapes :func:`attempt_parse`, which reports it as :class:`Malformed`.
    """
    pass


@dataclass(frozen=True)
class Request:
    """A fully received HTTP request.

    Attributes:
        method: Request method token, e.g. ``"GET"``
        path: Request target exactly as sent
        version: Protocol token, e.g. ``"HTTP/1.1"``
        headers: Read-only mapping of lower-cased header names to trimmed values
        body: Exactly ``Content-Length`` bytes (empty when absent)
    """
    method: str
    path: str
    version: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b''

    def __post_init__(self):
        object.__setattr__(self, 'headers', MappingProxyType(dict(self.headers)))
        object.__setattr__(self, 'body', bytes(self.body))

    # Headers are a mappingproxy, so instances cannot be hashed.
    __hash__ = None

    @property
    def content_length(self) -> int:
        return len(self.body)

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)


@dataclass(frozen=True)
class Incomplete:
    """Not enough bytes yet; keep the buffer and wait for more."""


@dataclass(frozen=True)
class Malformed:
    """The buffered bytes can never form a valid request.

    ``reason`` is for logs only and is ignored when comparing outcomes.
    """
    reason: str = field(default='', compare=False)


@dataclass(frozen=True)
class Parsed:
    """A complete request plus the bytes that followed it."""
    request: Request
    remainder: bytes = b''
    consumed: int = field(default=0, compare=False)


ParseOutcome = Union[Incomplete, Malformed, Parsed]

INCOMPLETE = Incomplete()


def _parse_start_line(line: bytes) -> Tuple[str, str, str]:
    tokens = line.split(b' ')
    if len(tokens) != 3:
        raise HTTPParserError(f"Invalid request line: expected 3 tokens, got {len(tokens)}")
    for token in tokens:
        if not token:
            raise HTTPParserError("Invalid request line: empty token")
        if len(token.split()) != 1:
            raise HTTPParserError("Invalid request line: whitespace inside token")
    method, path, version = (token.decode(HEADER_ENCODING) for token in tokens)
    return method, path, version


def _parse_headers(lines: List[bytes]) -> Dict[str, str]:
    headers: Dict[str, str] = {}
    for line in lines:
        idx = line.find(b':')
        if idx == -1:
            raise HTTPParserError("Header line without colon")
        if idx == 0:
            raise HTTPParserError("Empty header name")
        name = line[:idx].decode(HEADER_ENCODING).lower()
        headers[name] = line[idx + 1:].strip().decode(HEADER_ENCODING)
    return headers


def _content_length(headers: Mapping[str, str]) -> int:
    value = headers.get('content-length')
    if value is None:
        return 0
    # Only plain ASCII digits; rules out signs, blanks and junk suffixes
    if not _content_length_re.fullmatch(value.encode(HEADER_ENCODING)):
        raise HTTPParserError(f"Invalid Content-Length: {value!r}")
    return int(value, 10)


def attempt_parse(buffer) -> ParseOutcome:
    """Try to frame one request at the start of ``buffer``.

    Args:
        buffer: Everything received so far on the connection (any bytes-like
            object). It is neither modified nor retained.

    Returns:
        :data:`INCOMPLETE` if more bytes are needed, :class:`Malformed` if the
        bytes can never form a request, otherwise :class:`Parsed` with the
        request and the unconsumed remainder.
    """
    data = bytes(buffer)

    if data.find(CRLF) == -1:
        return INCOMPLETE

    headers_end = data.find(HEADERS_END)
    if headers_end == -1:
        return INCOMPLETE

    lines = data[:headers_end].split(CRLF)
    try:
        method, path, version = _parse_start_line(lines[0])
        headers = _parse_headers(lines[1:])
        content_length = _content_length(headers)
    except HTTPParserError as e:
        return Malformed(str(e))

    body_start = headers_end + len(HEADERS_END)
    body_end = body_start + content_length
    if len(data) < body_end:
        return INCOMPLETE

    request = Request(method, path, version, headers, data[body_start:body_end])
    return Parsed(request, data[body_end:], body_end)
