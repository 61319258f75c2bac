"""
Stream context options for stream_transport.

This module builds the nested context options a stream wrapper reads
for one connection attempt, and the StreamContext object that carries
them together with the context params. Each ``add_*`` step mutates the
options it is given; later steps may overwrite keys set by earlier ones.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional

from .http_primitives import (
    OutboundRequest,
    URL,
    PROXY,
    SSL_CA_INFO,
    SSL_VERIFY_PEER,
)

logger = logging.getLogger(__name__)

ContextOptions = Dict[str, Any]
Notification = Callable[[str, Dict[str, Any]], None]

HTTP_WRAPPER = "http"
SSL_WRAPPER = "ssl"
PROXY_OPTION = "proxy"

# The stream wrappers are not expected to decode chunked transfer-encoding,
# so requests are sent as HTTP/1.0.
PROTOCOL_VERSION = "1.0"


def create_default_options(request: OutboundRequest) -> ContextOptions:
    """
    Create the default context options for a request.

    Non-2xx responses are not treated as transport failures
    (``ignore_errors``) so callers can inspect them.
    """
    return {
        HTTP_WRAPPER: {
            "method": request.method,
            "header": request.header_lines(),
            "protocol_version": PROTOCOL_VERSION,
            "ignore_errors": True,
        }
    }


def resolve_url(request: OutboundRequest) -> URL:
    """
    Resolve the URL to open, embedding Basic auth credentials.

    Credentials are injected only when both the username and the
    password are non-empty; otherwise the request URL is used as is.
    """
    url = request.url
    if request.username and request.password:
        url = url.with_credentials(request.username, request.password)
    return url


def add_ssl_options(options: ContextOptions, request: OutboundRequest) -> None:
    """Copy peer verification and CA bundle settings into the ssl wrapper."""
    if request.get_transport_option(SSL_VERIFY_PEER):
        options.setdefault(SSL_WRAPPER, {})["verify_peer"] = True

    cafile = request.get_transport_option(SSL_CA_INFO)
    if cafile:
        options.setdefault(SSL_WRAPPER, {})["cafile"] = cafile


def _is_content_length(line: str) -> bool:
    name, _, _ = line.partition(":")
    return name.strip().lower() == "content-length"


def add_body_options(options: ContextOptions, request: OutboundRequest) -> None:
    """
    Add the request content and its Content-Length header.

    Post fields take precedence over the raw body. A Content-Length
    line is appended only when the content is non-empty; any line the
    request already carried for it is replaced.
    """
    post_fields = request.encoded_post_fields()
    if post_fields:
        content = post_fields
    elif request.body is not None:
        content = request.encoded_body()
    else:
        return

    http_options = options.setdefault(HTTP_WRAPPER, {})
    http_options["content"] = content

    if len(content) > 0:
        header = [
            line for line in http_options.get("header", [])
            if not _is_content_length(line)
        ]
        header.append(f"Content-Length: {len(content)}")
        http_options["header"] = header


def add_proxy_options(options: ContextOptions, request: OutboundRequest) -> None:
    """Set the top-level proxy option when the request names a proxy."""
    proxy = request.get_transport_option(PROXY)
    if proxy:
        options[PROXY_OPTION] = proxy


def merge_context_options(
    options: ContextOptions,
    overrides: Mapping[str, Any],
) -> None:
    """
    Merge caller-supplied options into the context options.

    For every wrapper namespace in ``overrides`` each option replaces the
    one already present. The top-level ``proxy`` option is replaced as a
    whole; any other non-mapping value is ignored so it cannot wipe out
    a wrapper namespace. Merging the same overrides twice gives the same
    result as merging them once.
    """
    for wrapper, wrapper_options in overrides.items():
        if wrapper == PROXY_OPTION:
            options[PROXY_OPTION] = wrapper_options
            continue

        if not isinstance(wrapper_options, Mapping):
            logger.debug(f"Ignoring non-mapping options for wrapper {wrapper!r}")
            continue

        target = options.get(wrapper)
        if not isinstance(target, dict):
            target = options[wrapper] = {}

        for name, value in wrapper_options.items():
            target[name] = value


@dataclass(frozen=True)
class StreamContext:
    """
    Options and params handed to a stream opener for one attempt.

    The options are copied when the context is created, so later
    changes to the caller's mappings do not leak into an open call.
    """

    options: ContextOptions = field(default_factory=dict)
    params: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        options: Optional[ContextOptions] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> "StreamContext":
        """Create a context from options and params."""
        return cls(
            options=copy.deepcopy(dict(options or {})),
            params=dict(params or {}),
        )

    def get_option(self, wrapper: str, name: str, default: Any = None) -> Any:
        """Get one option of a wrapper namespace."""
        wrapper_options = self.options.get(wrapper)
        if isinstance(wrapper_options, Mapping):
            return wrapper_options.get(name, default)
        return default

    def notify(self, event: str, **details: Any) -> None:
        """Invoke the ``notification`` param, if one was given."""
        callback: Optional[Notification] = self.params.get("notification")
        if callback is not None:
            callback(event, details)
