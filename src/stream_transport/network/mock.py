"""
Mock stream opener for testing.

This module provides a mock StreamOpener and an in-memory socket that
can be used to test the request builder and response streams without
any network I/O.
"""

from collections import deque
from typing import Deque, List, Optional, Tuple

import h11

from ..context import HTTP_WRAPPER, StreamContext
from ..streams import ResponseStream
from .opener import OpenResult, StreamOpener
from .utils import response_header_lines


class MockSocket:
    """
    In-memory stand-in for a connected socket.

    Reads are served from the initial data; writes are recorded.
    """

    def __init__(self, data: bytes = b""):
        """
        Initialize the mock socket.

        Args:
            data: Data to be available for reading.
        """
        self._data = data
        self._position = 0
        self._closed = False
        self._write_buffer: List[bytes] = []

    def recv(self, max_bytes: int) -> bytes:
        if self._closed:
            raise OSError("Socket is closed")
        end = min(self._position + max_bytes, len(self._data))
        result = self._data[self._position:end]
        self._position = end
        return result

    def sendall(self, data: bytes) -> None:
        if self._closed:
            raise OSError("Socket is closed")
        self._write_buffer.append(data)

    def close(self) -> None:
        self._closed = True

    @property
    def closed(self) -> bool:
        """Check if the mock socket is closed."""
        return self._closed

    @property
    def written_data(self) -> bytes:
        """Get all data that was written to the socket."""
        return b"".join(self._write_buffer)


def create_response_stream(
    data: bytes,
    method: str = "GET",
    read_size: Optional[int] = None,
) -> Tuple[ResponseStream, List[str], MockSocket]:
    """
    Parse a canned response and return a stream positioned at its body.

    Args:
        data: Complete raw response (head and body)
        method: Method of the request the response answers
        read_size: Number of bytes requested per socket read

    Returns:
        Tuple of (stream, captured header lines, mock socket)

    Raises:
        h11.RemoteProtocolError: If the response head is malformed
    """
    sock = MockSocket(data)
    connection = h11.Connection(h11.CLIENT)
    connection.send(h11.Request(method=method, target="/", headers=[("Host", "mock")]))
    connection.send(h11.EndOfMessage())

    while True:
        event = connection.next_event()
        if event is h11.NEED_DATA:
            connection.receive_data(sock.recv(read_size or ResponseStream.DEFAULT_READ_SIZE))
            continue
        if isinstance(event, h11.Response):
            break

    header_lines = response_header_lines(
        event.http_version, event.status_code, event.reason, event.headers.raw_items()
    )
    return ResponseStream(sock, connection, read_size), header_lines, sock


class MockStreamOpener(StreamOpener):
    """
    Mock stream opener for testing.

    Records every open call. Queued results are returned first, in
    order; after that every call gets a stream over the default
    response.
    """

    DEFAULT_RESPONSE = b"HTTP/1.0 200 OK\r\nContent-Type: text/plain\r\nContent-Length: 2\r\n\r\nok"

    def __init__(self, response: Optional[bytes] = None):
        """
        Initialize the mock opener.

        Args:
            response: Raw response served when no result is queued.
        """
        self._response = response or self.DEFAULT_RESPONSE
        self._results: Deque[OpenResult] = deque()
        self.calls: List[Tuple[str, str, StreamContext]] = []

    def open(self, url: str, mode: str, context: StreamContext) -> OpenResult:
        """Record the call and return the next result."""
        self.calls.append((url, mode, context))

        if self._results:
            return self._results.popleft()

        method = str(context.get_option(HTTP_WRAPPER, "method", "GET"))
        stream, header_lines, _ = create_response_stream(self._response, method)
        return OpenResult(stream=stream, header_lines=header_lines)

    def queue_result(self, result: OpenResult) -> None:
        """Queue a result for a future open call."""
        self._results.append(result)

    def queue_response(self, data: bytes, method: str = "GET") -> None:
        """Queue a successful result built from a raw response."""
        stream, header_lines, _ = create_response_stream(data, method)
        self._results.append(OpenResult(stream=stream, header_lines=header_lines))

    def queue_error(self, error: str, header_lines: Optional[List[str]] = None) -> None:
        """Queue a failed result."""
        self._results.append(OpenResult.failed(error, header_lines))

    @property
    def last_call(self) -> Optional[Tuple[str, str, StreamContext]]:
        """The most recent open call, if any."""
        return self.calls[-1] if self.calls else None

    @property
    def call_count(self) -> int:
        """Number of open calls made."""
        return len(self.calls)
