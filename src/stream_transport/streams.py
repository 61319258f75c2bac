"""
Response streams for stream_transport.

This module provides the blocking ResponseStream that reads a response
body off an open connection, and the ResponseHandle returned by the
request builder, which pairs that stream with the originating request
and the raw response header lines captured while opening it.
"""

import logging
from dataclasses import dataclass
from typing import (
    Any,
    Iterator,
    List,
    Optional,
    Tuple,
    TYPE_CHECKING,
)

import h11

from .exceptions import ProtocolError, StreamError

if TYPE_CHECKING:
    import socket

    from .http_primitives import OutboundRequest

logger = logging.getLogger(__name__)


class ResponseStream:
    """
    Readable body of one HTTP response.

    Body data is pulled from the socket on demand and framed by the
    h11 connection that parsed the response head. The socket is closed
    once the body has been fully read or the stream is closed.
    """

    DEFAULT_READ_SIZE = 65536  # 64KB chunks

    def __init__(
        self,
        sock: "socket.socket",
        connection: h11.Connection,
        read_size: Optional[int] = None,
    ) -> None:
        """
        Initialize ResponseStream.

        Args:
            sock: Connected socket the response is read from
            connection: h11 client connection positioned after the
                response head
            read_size: Number of bytes requested per socket read
        """
        self._sock = sock
        self._h11 = connection
        self._read_size = read_size or self.DEFAULT_READ_SIZE
        self._buffer = bytearray()
        self._eof = False
        self._closed = False
        self._bytes_read = 0

    def _next_chunk(self) -> Optional[bytes]:
        """Get the next chunk of body data, or None at the end of the body."""
        while True:
            try:
                event = self._h11.next_event()
            except h11.RemoteProtocolError as e:
                raise ProtocolError(str(e), cause=e)

            if event is h11.NEED_DATA:
                try:
                    data = self._sock.recv(self._read_size)
                except OSError as e:
                    raise StreamError(f"Read failed: {e}", cause=e)
                self._h11.receive_data(data)
                continue

            if isinstance(event, h11.Data):
                self._bytes_read += len(event.data)
                return bytes(event.data)

            return None

    def _finish(self) -> None:
        self._eof = True
        self._release()
        logger.debug(f"Response body complete ({self._bytes_read} bytes)")

    def _release(self) -> None:
        try:
            self._sock.close()
        except OSError as e:
            logger.warning(f"Error closing socket: {e}")

    def _check_open(self) -> None:
        if self._closed:
            raise StreamError("Stream is closed")

    def read(self, max_bytes: Optional[int] = None) -> bytes:
        """
        Read data from the body.

        Args:
            max_bytes: Maximum number of bytes to read. If None, reads
                until the end of the body.

        Returns:
            The data read; empty bytes once the body is exhausted.

        Raises:
            StreamError: If the stream is closed or the socket fails.
            ProtocolError: If the response body is malformed.
        """
        self._check_open()

        if max_bytes is None:
            return self.readall()

        while len(self._buffer) < max_bytes and not self._eof:
            chunk = self._next_chunk()
            if chunk is None:
                self._finish()
                break
            self._buffer += chunk

        result = bytes(self._buffer[:max_bytes])
        del self._buffer[:max_bytes]
        return result

    def readall(self) -> bytes:
        """Read the rest of the body."""
        self._check_open()

        while not self._eof:
            chunk = self._next_chunk()
            if chunk is None:
                self._finish()
                break
            self._buffer += chunk

        result = bytes(self._buffer)
        self._buffer.clear()
        return result

    def __iter__(self) -> Iterator[bytes]:
        self._check_open()

        if self._buffer:
            buffered = bytes(self._buffer)
            self._buffer.clear()
            yield buffered

        while not self._eof:
            chunk = self._next_chunk()
            if chunk is None:
                self._finish()
                break
            if chunk:
                yield chunk

    def close(self) -> None:
        """Close the stream and the underlying socket."""
        if self._closed:
            return
        self._closed = True
        self._buffer.clear()
        if not self._eof:
            self._release()
        logger.debug("Response stream closed")

    @property
    def closed(self) -> bool:
        """Check if the stream is closed."""
        return self._closed

    @property
    def eof(self) -> bool:
        """Check if the whole body has been read off the connection."""
        return self._eof

    @property
    def bytes_read(self) -> int:
        """Number of body bytes received so far."""
        return self._bytes_read

    def __enter__(self) -> "ResponseStream":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


@dataclass(frozen=True)
class ResponseHandle:
    """
    Open response returned by the stream request builder.

    The handle owns the body stream; the caller must close it. The
    request is shared with the caller and the captured header lines
    are fixed when the handle is created.
    """

    stream: ResponseStream
    request: "OutboundRequest"
    response_headers: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.response_headers, tuple):
            object.__setattr__(self, "response_headers", tuple(self.response_headers))

    def get_custom_data(self, key: str, default: Any = None) -> Any:
        """Get side-channel data by name: ``request`` or ``response_headers``."""
        if key == "request":
            return self.request
        if key == "response_headers":
            return self.response_headers
        return default

    def _last_response_lines(self) -> Tuple[str, ...]:
        """Lines of the final response when redirects were followed."""
        start = None
        for index, line in enumerate(self.response_headers):
            if line.startswith("HTTP/"):
                start = index
        if start is None:
            return self.response_headers
        return self.response_headers[start:]

    @property
    def status_line(self) -> Optional[str]:
        """Status line of the final response, if one was captured."""
        lines = self._last_response_lines()
        if lines and lines[0].startswith("HTTP/"):
            return lines[0]
        return None

    @property
    def status_code(self) -> Optional[int]:
        """Status code of the final response, if one was captured."""
        status_line = self.status_line
        if status_line is None:
            return None
        parts = status_line.split(" ", 2)
        if len(parts) < 2:
            return None
        try:
            return int(parts[1])
        except ValueError:
            return None

    def header_items(self) -> List[Tuple[str, str]]:
        """Header name/value pairs of the final response."""
        items = []
        for line in self._last_response_lines():
            if line.startswith("HTTP/"):
                continue
            name, sep, value = line.partition(":")
            if sep:
                items.append((name.strip(), value.strip()))
        return items

    def get_header(self, name: str) -> Optional[str]:
        """Get a header value of the final response (case-insensitive)."""
        name_lower = name.lower()
        for header_name, header_value in self.header_items():
            if header_name.lower() == name_lower:
                return header_value
        return None

    def has_header(self, name: str) -> bool:
        """Check if the final response carried a header (case-insensitive)."""
        return self.get_header(name) is not None

    def read(self, max_bytes: Optional[int] = None) -> bytes:
        """Read from the body stream."""
        return self.stream.read(max_bytes)

    def close(self) -> None:
        """Close the body stream and release the connection."""
        self.stream.close()

    @property
    def closed(self) -> bool:
        """Check if the body stream is closed."""
        return self.stream.closed

    def __iter__(self) -> Iterator[bytes]:
        return iter(self.stream)

    def __enter__(self) -> "ResponseHandle":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
