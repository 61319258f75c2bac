"""
Blocking http/https stream wrapper for stream_transport.

This module implements H11StreamOpener, the default StreamOpener. It
opens one connection per attempt, sends the request described by the
"http" and "ssl" context options, reads the response head with h11 and
hands the connection over to a ResponseStream for the body.
"""

import logging
import socket
from typing import List, Optional, Tuple, Union
from urllib.parse import urljoin

import h11

from ..context import HTTP_WRAPPER, PROXY_OPTION, SSL_WRAPPER, StreamContext
from ..exceptions import ProtocolError, StreamTransportError
from ..http_primitives import URL
from ..streams import ResponseStream
from .opener import OpenResult, StreamOpener
from .utils import (
    basic_auth_header,
    create_ssl_context,
    has_header,
    parse_header_lines,
    parse_proxy_address,
    response_header_lines,
)

logger = logging.getLogger(__name__)

Headers = List[Tuple[str, str]]


class H11StreamOpener(StreamOpener):
    """
    HTTP stream wrapper driven by context options.

    Supports HTTP/1.0 and HTTP/1.1 request heads, https through the
    ``ssl`` module, plain and CONNECT-tunnelled proxies and redirect
    following. Failures are reported through ``OpenResult.error``.
    """

    # Default configuration
    DEFAULT_TIMEOUT = 60.0  # seconds
    DEFAULT_MAX_REDIRECTS = 20
    DEFAULT_READ_SIZE = 65536  # 64KB chunks

    SUPPORTED_SCHEMES = ("http", "https")
    READ_MODES = ("r", "rb")
    REDIRECT_CODES = (301, 302, 303, 307, 308)

    def __init__(
        self,
        timeout: Optional[float] = None,
        max_redirects: Optional[int] = None,
        read_size: Optional[int] = None,
    ):
        """
        Initialize the opener.

        Args:
            timeout: Socket timeout in seconds when the context sets none
            max_redirects: Redirect limit when the context sets none
            read_size: Number of bytes requested per socket read
        """
        self._timeout = timeout or self.DEFAULT_TIMEOUT
        self._max_redirects = (
            max_redirects if max_redirects is not None else self.DEFAULT_MAX_REDIRECTS
        )
        self._read_size = read_size or self.DEFAULT_READ_SIZE

    def open(self, url: str, mode: str, context: StreamContext) -> OpenResult:
        """
        Open a stream for an http or https URL.

        Response header lines of every response received, including
        followed redirects, are returned in order, each response
        starting with its status line.
        """
        if mode not in self.READ_MODES:
            return OpenResult.failed("HTTP wrapper does not support writeable connections")

        try:
            target = URL.from_string(url)
        except ValueError as e:
            return OpenResult.failed(str(e))

        method = str(context.get_option(HTTP_WRAPPER, "method", "GET"))
        content = context.get_option(HTTP_WRAPPER, "content")
        follow_location = bool(context.get_option(HTTP_WRAPPER, "follow_location", True))
        ignore_errors = bool(context.get_option(HTTP_WRAPPER, "ignore_errors", False))

        try:
            timeout, max_redirects = self._get_limits(context)
        except ValueError as e:
            logger.error(f"Invalid context options for {target.without_credentials()}: {e}")
            return OpenResult.failed(str(e))

        header_lines: List[str] = []
        redirects = 0

        while True:
            if target.scheme not in self.SUPPORTED_SCHEMES:
                return OpenResult.failed(
                    f"Unable to find the wrapper \"{target.scheme}\"", header_lines
                )

            logger.debug(f"Opening {method} {target.without_credentials()}")

            try:
                sock, connection, response = self._exchange(
                    target, method, content, timeout, context
                )
            except (OSError, ValueError, h11.ProtocolError, StreamTransportError) as e:
                error = self._describe_error(e)
                logger.error(f"Failed to open {target.without_credentials()}: {error}")
                return OpenResult.failed(error, header_lines)

            response_lines = response_header_lines(
                response.http_version,
                response.status_code,
                response.reason,
                response.headers.raw_items(),
            )
            status_line = response_lines[0]
            header_lines.extend(response_lines)
            context.notify(
                "response",
                url=str(target.without_credentials()),
                status_code=response.status_code,
            )

            location = self._get_location(response)
            if (
                follow_location
                and location is not None
                and response.status_code in self.REDIRECT_CODES
            ):
                sock.close()
                redirects += 1
                if redirects > max_redirects:
                    logger.error(f"Redirection limit ({max_redirects}) reached")
                    return OpenResult.failed(
                        "Redirection limit reached, aborting", header_lines
                    )

                try:
                    target = URL.from_string(urljoin(str(target), location))
                except ValueError as e:
                    return OpenResult.failed(str(e), header_lines)

                if response.status_code in (301, 302, 303) and method not in ("GET", "HEAD"):
                    method = "GET"
                    content = None

                logger.debug(f"Redirected ({response.status_code}) to {target.without_credentials()}")
                context.notify("redirected", url=str(target.without_credentials()))
                continue

            if response.status_code >= 400 and not ignore_errors:
                sock.close()
                return OpenResult.failed(f"HTTP request failed! {status_line}", header_lines)

            stream = ResponseStream(sock, connection, self._read_size)
            return OpenResult(stream=stream, header_lines=header_lines)

    def _exchange(
        self,
        target: URL,
        method: str,
        content: Optional[Union[bytes, str]],
        timeout: float,
        context: StreamContext,
    ) -> Tuple[socket.socket, h11.Connection, h11.Response]:
        """
        Connect, send one request and read the response head.

        Returns:
            The socket, the h11 connection positioned at the body, and
            the response event
        """
        proxy = self._get_proxy(context)

        if proxy:
            host, port = parse_proxy_address(proxy)
        else:
            host, port = target.host, target.default_port

        context.notify("connect", host=host, port=port)
        sock = socket.create_connection((host, port), timeout=timeout)

        try:
            request_target = target.target

            if target.scheme == "https":
                if proxy:
                    self._tunnel(sock, target)
                sock = self._wrap_tls(sock, target, context)
            elif proxy and context.get_option(HTTP_WRAPPER, "request_fulluri", True):
                request_target = f"{target.scheme}://{target.host_port}{target.target}"

            connection = h11.Connection(h11.CLIENT)
            self._send_request(sock, connection, target, request_target, method, content, context)
            response = self._receive_response(sock, connection)
        except Exception:
            sock.close()
            raise

        return sock, connection, response

    def _get_limits(self, context: StreamContext) -> Tuple[float, int]:
        """
        Read the timeout and redirect limit from the context.

        Raises:
            ValueError: If either option is not a number
        """
        timeout = context.get_option(HTTP_WRAPPER, "timeout", self._timeout)
        max_redirects = context.get_option(HTTP_WRAPPER, "max_redirects", self._max_redirects)

        try:
            timeout = float(timeout)
        except (TypeError, ValueError):
            raise ValueError(f"Invalid timeout option: {timeout!r}") from None

        try:
            max_redirects = int(max_redirects)
        except (TypeError, ValueError):
            raise ValueError(f"Invalid max_redirects option: {max_redirects!r}") from None

        return timeout, max_redirects

    def _get_proxy(self, context: StreamContext) -> Optional[str]:
        proxy = context.get_option(HTTP_WRAPPER, "proxy") or context.options.get(PROXY_OPTION)
        if isinstance(proxy, str) and proxy:
            return proxy
        return None

    def _build_headers(
        self,
        target: URL,
        content: Optional[bytes],
        context: StreamContext,
    ) -> Headers:
        headers = parse_header_lines(context.get_option(HTTP_WRAPPER, "header"))

        if not has_header(headers, "host"):
            headers.insert(0, ("Host", target.host_port))

        if not has_header(headers, "connection"):
            headers.append(("Connection", "close"))

        user_agent = context.get_option(HTTP_WRAPPER, "user_agent")
        if user_agent and not has_header(headers, "user-agent"):
            headers.append(("User-Agent", str(user_agent)))

        if target.username is not None and not has_header(headers, "authorization"):
            headers.append(("Authorization", basic_auth_header(target.username, target.password)))

        # Content-Length always follows the content actually sent; it may
        # have been overridden or dropped by a redirect to GET
        headers = [(n, v) for n, v in headers if n.lower() != "content-length"]
        if content:
            headers.append(("Content-Length", str(len(content))))

        return headers

    def _send_request(
        self,
        sock: socket.socket,
        connection: h11.Connection,
        target: URL,
        request_target: str,
        method: str,
        content: Optional[Union[bytes, str]],
        context: StreamContext,
    ) -> None:
        """
        Send the request head and body.

        h11 only serializes HTTP/1.1 heads. For HTTP/1.0 the head is
        written directly while h11 still records the request, so it can
        frame the response body.
        """
        if isinstance(content, str):
            content = content.encode("utf-8")

        headers = self._build_headers(target, content, context)
        head = connection.send(
            h11.Request(method=method, target=request_target, headers=headers)
        )

        protocol_version = str(context.get_option(HTTP_WRAPPER, "protocol_version", "1.0"))
        if protocol_version == "1.0":
            head = self._format_http10_head(method, request_target, headers)

        sock.sendall(head)

        if content:
            sock.sendall(connection.send(h11.Data(data=content)))

        trailer = connection.send(h11.EndOfMessage())
        if trailer:
            sock.sendall(trailer)

    def _format_http10_head(self, method: str, request_target: str, headers: Headers) -> bytes:
        lines = [f"{method} {request_target} HTTP/1.0"]
        lines.extend(f"{name}: {value}" for name, value in headers)
        return ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1")

    def _receive_response(self, sock: socket.socket, connection: h11.Connection) -> h11.Response:
        """Read events until the final (non-1xx) response head arrives."""
        while True:
            event = connection.next_event()

            if event is h11.NEED_DATA:
                connection.receive_data(sock.recv(self._read_size))
                continue

            if isinstance(event, h11.Response):
                return event

            if isinstance(event, h11.ConnectionClosed):
                raise ProtocolError("Connection closed before a response was received")

            if event is h11.PAUSED:
                raise ProtocolError("Unexpected end of the response")

    def _tunnel(self, sock: socket.socket, target: URL) -> None:
        """Open a CONNECT tunnel to the target through the proxy."""
        authority = f"{target.host}:{target.default_port}"
        if ":" in target.host:
            authority = f"[{target.host}]:{target.default_port}"

        connection = h11.Connection(h11.CLIENT)
        sock.sendall(
            connection.send(
                h11.Request(method="CONNECT", target=authority, headers=[("Host", authority)])
            )
        )
        connection.send(h11.EndOfMessage())

        response = self._receive_response(sock, connection)
        if not 200 <= response.status_code < 300:
            raise ProtocolError(
                f"Proxy refused CONNECT to {authority} ({response.status_code})"
            )
        logger.debug(f"Tunnel established to {authority}")

    def _wrap_tls(self, sock: socket.socket, target: URL, context: StreamContext) -> socket.socket:
        ssl_context = create_ssl_context(
            verify_peer=bool(context.get_option(SSL_WRAPPER, "verify_peer", True)),
            verify_peer_name=context.get_option(SSL_WRAPPER, "verify_peer_name"),
            cafile=context.get_option(SSL_WRAPPER, "cafile"),
            alpn_protocols=["http/1.1"],
        )
        server_hostname = context.get_option(SSL_WRAPPER, "peer_name") or target.host
        return ssl_context.wrap_socket(sock, server_hostname=server_hostname)

    def _get_location(self, response: h11.Response) -> Optional[str]:
        for name, value in response.headers:
            if name == b"location":
                return value.decode("latin-1")
        return None

    def _describe_error(self, error: Exception) -> str:
        if isinstance(error, socket.timeout):
            return "Connection timed out"
        if isinstance(error, StreamTransportError):
            return error.message
        return str(error) or type(error).__name__
