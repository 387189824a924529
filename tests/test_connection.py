"""
Test suite for the per-connection loop
"""
import asyncio

import pytest
from prometheus_client import CollectorRegistry

from rawhttp.core.config import ServerConfig
from rawhttp.core.connection import ConnectionHandler, ConnectionState
from rawhttp.core.responder import Response
from rawhttp.features.metrics import ServerMetrics

REQUEST = b'GET /hi HTTP/1.1\r\nHost: a\r\nContent-Length: 5\r\n\r\nhello'
SECOND = b'POST /two HTTP/1.1\r\nContent-Length: 3\r\n\r\nabc'


class MockStreamWriter:
    def __init__(self):
        self.buffer = []
        self.closed = False

    def write(self, data):
        self.buffer.append(data)

    async def drain(self):
        pass

    def close(self):
        self.closed = True

    def is_closing(self):
        return self.closed

    async def wait_closed(self):
        pass

    def get_extra_info(self, name):
        return ('127.0.0.1', 8000) if name == 'peername' else None

    @property
    def output(self):
        return b''.join(self.buffer)


class MockStreamReader:
    """Returns the given chunks one per read, then EOF or silence."""

    def __init__(self, chunks=(), hang=False, error=None):
        self.chunks = list(chunks)
        self.hang = hang
        self.error = error
        self.reads = 0

    async def read(self, n=-1):
        self.reads += 1
        if self.chunks:
            return self.chunks.pop(0)
        if self.error is not None:
            raise self.error
        if self.hang:
            await asyncio.Event().wait()
        return b''


class RecordingApp:
    def __init__(self):
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        return Response(200, f'{request.method} {request.path}')


def make_handler(app=None, **config):
    metrics = ServerMetrics(CollectorRegistry())
    handler = ConnectionHandler(app or RecordingApp(), ServerConfig(**config), metrics)
    return handler


def status_count(handler, status):
    value = handler.metrics.registry.get_sample_value(
        'rawhttp_responses_total', {'status': str(status)})
    return value or 0


async def run(handler, reader):
    writer = MockStreamWriter()
    await asyncio.wait_for(handler.handle_connection(reader, writer), timeout=5)
    return writer


@pytest.mark.asyncio
async def test_single_request():
    app = RecordingApp()
    handler = make_handler(app)
    writer = await run(handler, MockStreamReader([REQUEST]))

    assert writer.output == (
        b'HTTP/1.1 200 OK\r\nContent-Length: 7\r\nConnection: close\r\n\r\nGET /hi'
    )
    assert app.requests[0].body == b'hello'
    assert app.requests[0].headers == {'host': 'a', 'content-length': '5'}
    assert writer.closed
    assert handler.state is ConnectionState.CLOSED
    assert status_count(handler, 200) == 1


@pytest.mark.asyncio
async def test_default_app_greeting():
    handler = ConnectionHandler(config=ServerConfig(),
                                metrics=ServerMetrics(CollectorRegistry()))
    writer = await run(handler, MockStreamReader([b'GET /x HTTP/1.1\r\n\r\n']))
    assert writer.output.endswith(b'Hello from raw HTTP server!\nMethod: GET\nPath: /x')


@pytest.mark.asyncio
async def test_byte_at_a_time_matches_single_read():
    whole = RecordingApp()
    await run(make_handler(whole), MockStreamReader([REQUEST]))

    split = RecordingApp()
    chunks = [REQUEST[i:i + 1] for i in range(len(REQUEST))]
    writer = await run(make_handler(split), MockStreamReader(chunks))

    assert split.requests == whole.requests
    assert writer.output.count(b'HTTP/1.1 200 OK') == 1


@pytest.mark.asyncio
async def test_pipelined_requests_answered_in_order():
    app = RecordingApp()
    handler = make_handler(app)
    writer = await run(handler, MockStreamReader([REQUEST + SECOND]))

    assert [r.path for r in app.requests] == ['/hi', '/two']
    assert len(writer.buffer) == 2
    assert writer.buffer[0].endswith(b'GET /hi')
    assert writer.buffer[1].endswith(b'POST /two')
    assert handler.requests_handled == 2


@pytest.mark.asyncio
async def test_partial_pipelined_request_keeps_reading():
    app = RecordingApp()
    reader = MockStreamReader([REQUEST + SECOND[:10], SECOND[10:]])
    writer = await run(make_handler(app), reader)

    assert [r.path for r in app.requests] == ['/hi', '/two']
    assert app.requests[1].body == b'abc'
    assert len(writer.buffer) == 2


@pytest.mark.asyncio
async def test_closes_after_buffer_is_drained():
    """No keep-alive: bytes arriving after the answered pipeline are never read"""
    app = RecordingApp()
    reader = MockStreamReader([REQUEST, SECOND])
    await run(make_handler(app), reader)

    assert [r.path for r in app.requests] == ['/hi']
    assert reader.reads == 1


@pytest.mark.asyncio
async def test_malformed_request():
    app = RecordingApp()
    handler = make_handler(app)
    reader = MockStreamReader([b'GET /hi HTTP/1.1\r\nBadHeaderNoColon\r\n\r\n', REQUEST])
    writer = await run(handler, reader)

    assert writer.output == (
        b'HTTP/1.1 400 Bad Request\r\nContent-Length: 11\r\n'
        b'Connection: close\r\n\r\nBad Request'
    )
    assert app.requests == []
    assert writer.closed
    assert reader.reads == 1
    assert status_count(handler, 400) == 1


@pytest.mark.asyncio
async def test_valid_then_malformed_in_one_read():
    app = RecordingApp()
    writer = await run(make_handler(app), MockStreamReader([REQUEST + b'BROKEN\r\n\r\n']))

    assert len(app.requests) == 1
    assert writer.buffer[0].startswith(b'HTTP/1.1 200 OK')
    assert writer.buffer[1].startswith(b'HTTP/1.1 400 Bad Request')


@pytest.mark.asyncio
async def test_payload_too_large():
    app = RecordingApp()
    handler = make_handler(app, max_buffer_bytes=32)
    writer = await run(handler, MockStreamReader([b'GET / HTTP/1.1\r\n', b'X-Fill: ' + b'a' * 40]))

    assert writer.output.startswith(b'HTTP/1.1 413 Payload Too Large\r\n')
    assert app.requests == []
    assert writer.closed
    assert status_count(handler, 413) == 1


@pytest.mark.asyncio
async def test_complete_request_over_limit_is_rejected():
    """The ceiling is checked before the framer runs"""
    app = RecordingApp()
    writer = await run(make_handler(app, max_buffer_bytes=len(REQUEST) - 1),
                       MockStreamReader([REQUEST]))
    assert writer.output.startswith(b'HTTP/1.1 413')
    assert app.requests == []


@pytest.mark.asyncio
async def test_idle_timeout():
    handler = make_handler(idle_timeout_ms=50, in_flight_timeout_ms=50)
    writer = await run(handler, MockStreamReader(hang=True))

    assert writer.output.startswith(b'HTTP/1.1 408 Request Timeout\r\n')
    assert writer.closed
    assert status_count(handler, 408) == 1


@pytest.mark.asyncio
async def test_in_flight_timeout_applies_to_partial_request():
    handler = make_handler(idle_timeout_ms=60000, in_flight_timeout_ms=50)
    writer = await run(handler, MockStreamReader([REQUEST[:20]], hang=True))

    assert writer.output.startswith(b'HTTP/1.1 408 Request Timeout\r\n')


def test_current_timeout_switches_with_buffer():
    handler = make_handler(idle_timeout_ms=2000, in_flight_timeout_ms=500)
    assert handler.current_timeout() == 2.0
    handler.buffer += b'GET'
    assert handler.current_timeout() == 0.5


@pytest.mark.asyncio
async def test_peer_eof_without_data():
    handler = make_handler()
    writer = await run(handler, MockStreamReader())

    assert writer.buffer == []
    assert writer.closed
    assert handler.state is ConnectionState.CLOSED


@pytest.mark.asyncio
async def test_peer_eof_with_partial_request():
    app = RecordingApp()
    writer = await run(make_handler(app), MockStreamReader([REQUEST[:-1]]))
    assert writer.buffer == []
    assert app.requests == []


@pytest.mark.asyncio
async def test_transport_error_closes_without_response():
    handler = make_handler()
    reader = MockStreamReader([REQUEST[:10]], error=ConnectionResetError())
    writer = await run(handler, reader)

    assert writer.buffer == []
    assert writer.closed
    assert handler.state is ConnectionState.CLOSED


@pytest.mark.asyncio
async def test_application_error_returns_500():
    def broken(request):
        raise RuntimeError('boom')

    handler = make_handler(broken)
    writer = await run(handler, MockStreamReader([REQUEST + SECOND]))

    assert writer.output.startswith(b'HTTP/1.1 500 Internal Server Error\r\n')
    assert len(writer.buffer) == 1
    assert writer.closed


@pytest.mark.asyncio
async def test_application_must_return_response():
    handler = make_handler(lambda request: 'not a response')
    writer = await run(handler, MockStreamReader([REQUEST]))
    assert writer.output.startswith(b'HTTP/1.1 500')


@pytest.mark.asyncio
async def test_unencodable_reason_returns_500():
    handler = make_handler(lambda request: Response(200, 'x', reason='OK ✓'))
    writer = await run(handler, MockStreamReader([REQUEST]))

    assert writer.output.startswith(b'HTTP/1.1 500 Internal Server Error\r\n')
    assert len(writer.buffer) == 1
    assert writer.closed
    assert status_count(handler, 500) == 1
    assert status_count(handler, 200) == 0


@pytest.mark.asyncio
async def test_coroutine_application():
    async def app(request):
        await asyncio.sleep(0)
        return Response(200, request.body)

    writer = await run(make_handler(app), MockStreamReader([REQUEST]))
    assert writer.output.endswith(b'\r\n\r\nhello')


@pytest.mark.asyncio
async def test_metrics_track_requests_and_connections():
    handler = make_handler()
    await run(handler, MockStreamReader([REQUEST + SECOND]))
    registry = handler.metrics.registry

    assert registry.get_sample_value('rawhttp_requests_total') == 2
    assert registry.get_sample_value('rawhttp_open_connections') == 0
    assert status_count(handler, 200) == 2
