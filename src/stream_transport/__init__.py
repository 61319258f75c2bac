"""
stream_transport - Stream-based HTTP transport backend

Translates outbound HTTP requests into stream context options, opens
a blocking stream for them and returns the response body stream along
with the raw response header lines.
"""

__version__ = "0.1.0"
__author__ = "Developer"
__email__ = "dev@example.com"

# Import main components for easy access
from .http_primitives import (
    OutboundRequest,
    URL,
    PROXY,
    SSL_CA_INFO,
    SSL_VERIFY_PEER,
)
from .context import StreamContext
from .factory import RequestContextBuilder
from .streams import ResponseHandle, ResponseStream
from .network import H11StreamOpener, MockStreamOpener, OpenResult, StreamOpener
from .exceptions import (
    StreamTransportError,
    ConnectionError,
    ProtocolError,
    StreamError,
)

__all__ = [
    "OutboundRequest",
    "URL",
    "PROXY",
    "SSL_CA_INFO",
    "SSL_VERIFY_PEER",
    "StreamContext",
    "RequestContextBuilder",
    "ResponseHandle",
    "ResponseStream",
    "H11StreamOpener",
    "MockStreamOpener",
    "OpenResult",
    "StreamOpener",
    "StreamTransportError",
    "ConnectionError",
    "ProtocolError",
    "StreamError",
]
