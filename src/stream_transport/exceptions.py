"""
Custom exceptions for stream_transport.

This module defines the exception hierarchy used by the stream
request builder, the stream wrappers and the response streams.
"""

from typing import Optional


class StreamTransportError(Exception):
    """Base exception for all stream_transport errors."""
    
    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause


class ConnectionError(StreamTransportError):
    """Raised when a stream for a request cannot be opened."""
    
    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(f"Connection error: {message}", cause)


class ProtocolError(StreamTransportError):
    """Raised when a response body violates the HTTP protocol."""
    
    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(f"Protocol error: {message}", cause)


class StreamError(StreamTransportError):
    """Raised when there's an error with stream operations."""
    
    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(f"Stream error: {message}", cause)
