"""
Network utilities for stream_transport.

This module provides helper functions used by the stream wrappers:
SSL context setup, proxy address parsing, header line handling and
Basic auth encoding.
"""

import base64
import ssl
from typing import List, Optional, Sequence, Tuple, Union
from urllib.parse import urlsplit

# curl's default proxy port, used when a proxy address has none
DEFAULT_PROXY_PORT = 1080


def create_ssl_context(
    verify_peer: bool = True,
    verify_peer_name: Optional[bool] = None,
    cafile: Optional[str] = None,
    alpn_protocols: Optional[List[str]] = None,
) -> ssl.SSLContext:
    """
    Create an SSL context from ssl wrapper options.

    Args:
        verify_peer: Whether to verify the peer certificate chain
        verify_peer_name: Whether to verify the host name; follows
            verify_peer when None
        cafile: Path to a CA bundle used instead of the system store
        alpn_protocols: Optional list of ALPN protocols to negotiate

    Returns:
        Configured SSL context

    Raises:
        ssl.SSLError: If SSL context creation fails
        OSError: If the CA bundle cannot be read
    """
    context = ssl.create_default_context(cafile=cafile or None)

    if verify_peer_name is None:
        verify_peer_name = verify_peer

    # check_hostname must be off before verification can be turned off
    context.check_hostname = bool(verify_peer and verify_peer_name)
    context.verify_mode = ssl.CERT_REQUIRED if verify_peer else ssl.CERT_NONE

    # Set ALPN protocols if provided
    if alpn_protocols:
        context.set_alpn_protocols(alpn_protocols)

    context.options |= ssl.OP_NO_COMPRESSION

    # Disable legacy protocols
    context.minimum_version = ssl.TLSVersion.TLSv1_2

    return context


def parse_proxy_address(proxy: str) -> Tuple[str, int]:
    """
    Parse a proxy address into host and port.

    Accepts ``tcp://host:port``, ``http://host:port`` and ``host:port``.

    Args:
        proxy: Proxy address string

    Returns:
        Tuple of (host, port)

    Raises:
        ValueError: If the address has no host or an invalid port
    """
    if "://" not in proxy:
        proxy = f"tcp://{proxy}"
    parsed = urlsplit(proxy)

    host = parsed.hostname or ""
    if not host:
        raise ValueError(f"No hostname found in proxy address: {proxy}")

    port = parsed.port
    if port is None:
        port = DEFAULT_PROXY_PORT

    return host, port


def parse_header_lines(header: Union[str, Sequence[str], None]) -> List[Tuple[str, str]]:
    """
    Parse ``Name: value`` header lines into (name, value) tuples.

    Args:
        header: A list of lines, or a single CRLF-separated string

    Returns:
        List of (name, value) tuples; lines without a colon are skipped
    """
    if not header:
        return []
    if isinstance(header, str):
        lines = header.replace("\r\n", "\n").split("\n")
    else:
        lines = list(header)

    headers = []
    for line in lines:
        name, sep, value = line.partition(":")
        if not sep or not name.strip():
            continue
        headers.append((name.strip(), value.strip()))
    return headers


def has_header(headers: Sequence[Tuple[str, str]], name: str) -> bool:
    """Check if a header exists in a list of tuples (case-insensitive)."""
    name_lower = name.lower()
    return any(n.lower() == name_lower for n, _ in headers)


def basic_auth_header(username: str, password: Optional[str]) -> str:
    """
    Build the value of a Basic Authorization header.

    Args:
        username: User name
        password: Password, or None for a user name only

    Returns:
        The header value, ``Basic <base64>``
    """
    credentials = f"{username}:{password or ''}".encode("utf-8")
    return "Basic " + base64.b64encode(credentials).decode("ascii")


def format_status_line(http_version: bytes, status_code: int, reason: bytes) -> str:
    """Format a response status line such as ``HTTP/1.0 200 OK``."""
    line = f"HTTP/{http_version.decode('ascii')} {status_code}"
    if reason:
        line = f"{line} {reason.decode('latin-1')}"
    return line


def response_header_lines(
    http_version: bytes,
    status_code: int,
    reason: bytes,
    raw_headers: Sequence[Tuple[bytes, bytes]],
) -> List[str]:
    """
    Render a response head as raw lines.

    Returns:
        The status line followed by ``Name: value`` lines in received
        order and casing
    """
    lines = [format_status_line(http_version, status_code, reason)]
    lines.extend(
        f"{name.decode('latin-1')}: {value.decode('latin-1')}"
        for name, value in raw_headers
    )
    return lines
