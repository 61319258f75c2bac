"""
Stream request builder for stream_transport.

This module implements RequestContextBuilder, which translates an
OutboundRequest into stream context options and a resolved URL, opens
a stream for them through a StreamOpener and wraps the result in a
ResponseHandle.
"""

import logging
import warnings
from typing import Any, Callable, Mapping, Optional, Tuple

from .context import (
    StreamContext,
    add_body_options,
    add_proxy_options,
    add_ssl_options,
    create_default_options,
    merge_context_options,
    resolve_url,
)
from .exceptions import ConnectionError
from .http_primitives import OutboundRequest, URL
from .network import H11StreamOpener, StreamOpener
from .streams import ResponseHandle

logger = logging.getLogger(__name__)

BeforeSend = Callable[[OutboundRequest], None]


class RequestContextBuilder:
    """
    Builds stream contexts from requests and opens them.

    A builder keeps no per-call state, so one instance can serve
    concurrent calls. Each call makes a single attempt; there is no
    retry.
    """

    def __init__(self, opener: Optional[StreamOpener] = None):
        """
        Initialize the builder.

        Args:
            opener: Stream opener to use; defaults to H11StreamOpener
        """
        self._opener = opener or H11StreamOpener()

    @property
    def opener(self) -> StreamOpener:
        """The stream opener this builder drives."""
        return self._opener

    def build_context(
        self,
        request: OutboundRequest,
        options: Optional[Mapping[str, Any]] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Tuple[StreamContext, URL]:
        """
        Translate a request into a stream context and the URL to open.

        Steps run in a fixed order since later ones may overwrite
        options set by earlier ones: defaults, ssl, body, proxy, then
        the caller's overrides.

        Args:
            request: The request to translate
            options: Optional context options merged over the
                request-derived ones
            params: Optional context params

        Returns:
            Tuple of (context, resolved URL)
        """
        context_options = create_default_options(request)
        url = resolve_url(request)

        if request.scheme == "https":
            add_ssl_options(context_options, request)

        add_body_options(context_options, request)
        add_proxy_options(context_options, request)

        if options:
            merge_context_options(context_options, options)

        return StreamContext.create(context_options, params), url

    def build(
        self,
        request: OutboundRequest,
        options: Optional[Mapping[str, Any]] = None,
        params: Optional[Mapping[str, Any]] = None,
        before_send: Optional[BeforeSend] = None,
    ) -> ResponseHandle:
        """
        Open a stream for a request.

        Args:
            request: The request to send
            options: Optional context options overriding the
                request-derived ones, keyed by wrapper namespace
            params: Optional context params such as ``notification``
            before_send: Optional hook called with the request before it
                is translated; it may modify the request in place

        Returns:
            A ResponseHandle owning the open stream; the caller must
            close it

        Raises:
            ConnectionError: If the stream could not be opened
        """
        if before_send is not None:
            before_send(request)

        context, url = self.build_context(request, options, params)

        logger.debug(
            f"Opening stream: {context.get_option('http', 'method')} "
            f"{url.without_credentials()}"
        )

        # Warnings raised while opening would duplicate the error result
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            result = self._opener.open(str(url), "r", context)

        if result.error is not None or result.stream is None:
            message = result.error or "Unable to open stream"
            logger.error(f"Failed to open stream for {url.without_credentials()}: {message}")
            raise ConnectionError(message)

        logger.debug(f"Stream opened with {len(result.header_lines)} response header lines")

        return ResponseHandle(
            stream=result.stream,
            request=request,
            response_headers=tuple(result.header_lines),
        )

