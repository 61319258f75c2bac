"""
Stream opener interface for stream_transport.

This module defines the StreamOpener interface: the "open a stream for
a URL with context options" primitive the request builder drives.
"""

from abc import ABC, abstractmethod
from typing import List, NamedTuple, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..context import StreamContext
    from ..streams import ResponseStream


class OpenResult(NamedTuple):
    """
    Outcome of one open attempt.

    Exactly one of ``stream`` and ``error`` is set. ``header_lines``
    holds the raw response header lines received during the attempt
    and may be non-empty even when ``error`` is set.
    """
    stream: Optional["ResponseStream"]
    header_lines: List[str]
    error: Optional[str] = None

    @classmethod
    def failed(cls, error: str, header_lines: Optional[List[str]] = None) -> "OpenResult":
        """Create a result for a failed attempt."""
        return cls(stream=None, header_lines=list(header_lines or []), error=error)

    @property
    def ok(self) -> bool:
        """Whether a stream was opened."""
        return self.error is None and self.stream is not None


class StreamOpener(ABC):
    """
    Interface for stream opener implementations.

    Implementations open a readable stream for a URL using the options
    of a StreamContext. Connection-level failures are reported through
    ``OpenResult.error`` rather than raised, together with any response
    header lines captured before the failure.
    """

    @abstractmethod
    def open(self, url: str, mode: str, context: "StreamContext") -> OpenResult:
        """
        Open a stream for a URL.

        Args:
            url: The absolute URL to open, possibly carrying userinfo.
            mode: The open mode. HTTP wrappers only support "r".
            context: Context options and params for this attempt.

        Returns:
            An OpenResult with either a stream or an error description.
        """
        pass
