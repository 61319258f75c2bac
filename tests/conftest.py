"""
Pytest configuration for stream_transport tests.

This file contains shared fixtures and configuration
for all tests in the project.
"""

import socket
import threading
from collections import deque
from typing import Callable, List

import pytest

from stream_transport.http_primitives import OutboundRequest
from stream_transport.network.mock import MockStreamOpener
from stream_transport.factory import RequestContextBuilder


class CannedHTTPServer:
    """
    Local HTTP server replaying canned responses.

    Each accepted connection gets the next canned response, after
    which the connection is closed. Raw request bytes are recorded.
    """

    def __init__(self, responses: List[bytes]) -> None:
        self._responses = deque(responses)
        self.requests: List[bytes] = []
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._sock.bind(("127.0.0.1", 0))
        self._sock.listen(5)
        self._sock.settimeout(5.0)
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    @property
    def port(self) -> int:
        return self._sock.getsockname()[1]

    def url(self, path: str = "/") -> str:
        return f"http://127.0.0.1:{self.port}{path}"

    def _serve(self) -> None:
        while self._responses:
            try:
                conn, _ = self._sock.accept()
            except OSError:
                return
            with conn:
                conn.settimeout(5.0)
                self.requests.append(self._read_request(conn))
                conn.sendall(self._responses.popleft())

    def _read_request(self, conn: socket.socket) -> bytes:
        data = b""
        while b"\r\n\r\n" not in data:
            chunk = conn.recv(4096)
            if not chunk:
                return data
            data += chunk

        head, _, body = data.partition(b"\r\n\r\n")
        length = 0
        for line in head.split(b"\r\n")[1:]:
            name, _, value = line.partition(b":")
            if name.strip().lower() == b"content-length":
                length = int(value.strip())

        while len(body) < length:
            chunk = conn.recv(4096)
            if not chunk:
                break
            body += chunk

        return head + b"\r\n\r\n" + body

    def close(self) -> None:
        self._sock.close()
        self._thread.join(timeout=5.0)


@pytest.fixture
def http_server():
    """Create local servers replaying canned responses."""
    servers: List[CannedHTTPServer] = []

    def _create_server(*responses: bytes) -> CannedHTTPServer:
        server = CannedHTTPServer(list(responses))
        servers.append(server)
        return server

    yield _create_server

    for server in servers:
        server.close()


@pytest.fixture
def unused_port() -> int:
    """A local port with nothing listening on it."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


@pytest.fixture
def mock_opener() -> MockStreamOpener:
    """Create a mock stream opener."""
    return MockStreamOpener()


@pytest.fixture
def builder(mock_opener) -> RequestContextBuilder:
    """Create a builder driving the mock opener."""
    return RequestContextBuilder(opener=mock_opener)


@pytest.fixture
def sample_headers():
    """Sample headers for testing."""
    return [
        ("Accept", "application/json"),
        ("Authorization", "Bearer token123"),
        ("User-Agent", "stream_transport/0.1.0"),
    ]


@pytest.fixture
def make_request() -> Callable[..., OutboundRequest]:
    """Create outbound requests with sensible defaults."""
    def _make_request(
        method: str = "GET",
        url: str = "http://example.com/path",
        **kwargs,
    ) -> OutboundRequest:
        return OutboundRequest.create(method, url, **kwargs)
    return _make_request


@pytest.fixture
def sample_response() -> bytes:
    """Sample raw HTTP/1.0 response."""
    return (
        b"HTTP/1.0 201 Created\r\n"
        b"Content-Type: application/json\r\n"
        b"Location: /v1/data/123\r\n"
        b"Content-Length: 11\r\n"
        b"\r\n"
        b'{"id": 123}'
    )
