"""
Network components for stream_transport.

This module provides the stream opener interface, the default
http/https stream wrapper and the mock implementations used in tests.
"""

from .opener import OpenResult, StreamOpener
from .http_wrapper import H11StreamOpener
from .mock import MockSocket, MockStreamOpener, create_response_stream
from .utils import (
    basic_auth_header,
    create_ssl_context,
    format_status_line,
    has_header,
    parse_header_lines,
    parse_proxy_address,
    response_header_lines,
)

__all__ = [
    "OpenResult",
    "StreamOpener",
    "H11StreamOpener",
    "MockSocket",
    "MockStreamOpener",
    "create_response_stream",
    "basic_auth_header",
    "create_ssl_context",
    "format_status_line",
    "has_header",
    "parse_header_lines",
    "parse_proxy_address",
    "response_header_lines",
]
