"""
HTTP primitives for stream_transport.

This module defines the outbound request model consumed by the stream
request builder and the URL type the builder resolves credentials into.
URLs are immutable; requests are mutable so that a before-send hook can
adjust them in place before they are translated into context options.
"""

from typing import (
    Any,
    Dict,
    List,
    Mapping,
    Optional,
    Tuple,
    Union,
    NamedTuple,
)
from dataclasses import dataclass, field
from urllib.parse import quote, unquote, urlencode, urlsplit


# Type aliases for better readability
Headers = List[Tuple[str, str]]
Body = Union[bytes, str]
PostFields = Union[Mapping[str, Any], bytes, str]

# Keys of OutboundRequest.transport_options read by the builder
SSL_VERIFY_PEER = "ssl_verify_peer"
SSL_CA_INFO = "ssl_cainfo"
PROXY = "proxy"

DEFAULT_PORTS = {"http": 80, "https": 443}


class URL(NamedTuple):
    """Immutable representation of an absolute URL."""
    scheme: str
    host: str
    port: Optional[int] = None
    path: str = "/"
    query: str = ""
    fragment: str = ""
    username: Optional[str] = None
    password: Optional[str] = None

    @classmethod
    def from_string(cls, url: str) -> "URL":
        """Create a URL from a URL string."""
        if "://" not in url:
            url = f"http://{url}"
        parsed = urlsplit(url)
        if not parsed.hostname:
            raise ValueError(f"No hostname found in URL: {url}")

        return cls(
            scheme=parsed.scheme.lower(),
            host=parsed.hostname,
            port=parsed.port,
            path=parsed.path or "/",
            query=parsed.query,
            fragment=parsed.fragment,
            username=unquote(parsed.username) if parsed.username is not None else None,
            password=unquote(parsed.password) if parsed.password is not None else None,
        )

    def with_credentials(self, username: str, password: str) -> "URL":
        """Create a new URL carrying the given userinfo."""
        return self._replace(username=username, password=password)

    def without_credentials(self) -> "URL":
        """Create a new URL with the userinfo removed."""
        return self._replace(username=None, password=None)

    @property
    def default_port(self) -> int:
        """The port to connect to when none is given explicitly."""
        if self.port is not None:
            return self.port
        return DEFAULT_PORTS.get(self.scheme, 80)

    @property
    def host_port(self) -> str:
        """Host and optional port, as used in a Host header."""
        host = f"[{self.host}]" if ":" in self.host else self.host
        if self.port is None or self.port == DEFAULT_PORTS.get(self.scheme):
            return host
        return f"{host}:{self.port}"

    @property
    def target(self) -> str:
        """Origin-form request target (path and query)."""
        if self.query:
            return f"{self.path}?{self.query}"
        return self.path

    @property
    def netloc(self) -> str:
        """Authority component including any userinfo."""
        host = f"[{self.host}]" if ":" in self.host else self.host
        if self.port is not None:
            host = f"{host}:{self.port}"
        if self.username is None:
            return host
        userinfo = quote(self.username, safe="")
        if self.password is not None:
            userinfo = f"{userinfo}:{quote(self.password, safe='')}"
        return f"{userinfo}@{host}"

    def __str__(self) -> str:
        url = f"{self.scheme}://{self.netloc}{self.target}"
        if self.fragment:
            url = f"{url}#{self.fragment}"
        return url


def _to_str(value: Union[str, bytes]) -> str:
    if isinstance(value, bytes):
        return value.decode("latin-1")
    return value


@dataclass
class OutboundRequest:
    """
    Outbound HTTP request consumed by the stream request builder.

    Holds everything the builder copies into stream context options:
    method, URL, header collection, Basic auth credentials, the body or
    post fields, and transport options such as peer verification,
    CA bundle and proxy address.
    """

    method: str
    url: URL
    headers: Headers = field(default_factory=list)
    username: Optional[str] = None
    password: Optional[str] = None
    body: Optional[Body] = None
    post_fields: Optional[PostFields] = None
    transport_options: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate request data after initialization."""
        if not isinstance(self.method, str):
            raise ValueError("method must be str")

        if not isinstance(self.url, URL):
            raise ValueError("url must be a URL")

        if not isinstance(self.headers, list):
            raise ValueError("headers must be a list")

        for name, value in self.headers:
            if not isinstance(name, str) or not isinstance(value, str):
                raise ValueError("header names and values must be str")

        if self.body is not None and not isinstance(self.body, (bytes, bytearray, str)):
            raise ValueError("body must be bytes or str")

    @classmethod
    def create(
        cls,
        method: Union[str, bytes],
        url: Union[str, URL],
        headers: Optional[Union[Headers, Mapping[str, str]]] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        body: Optional[Body] = None,
        post_fields: Optional[PostFields] = None,
        transport_options: Optional[Dict[str, Any]] = None,
    ) -> "OutboundRequest":
        """
        Create an OutboundRequest with proper type conversion.

        Args:
            method: HTTP method (GET, POST, etc.)
            url: URL string or URL
            headers: Optional list of (name, value) tuples or a mapping
            username: Optional Basic auth user name
            password: Optional Basic auth password
            body: Optional raw request body
            post_fields: Optional form fields; take precedence over body
            transport_options: Optional transport settings keyed by
                SSL_VERIFY_PEER, SSL_CA_INFO and PROXY

        Returns:
            New OutboundRequest instance
        """
        method = _to_str(method).upper()

        if isinstance(url, str):
            url = URL.from_string(url)
        elif not isinstance(url, URL):
            raise ValueError("url must be string or URL")

        if headers is None:
            header_list: Headers = []
        elif isinstance(headers, Mapping):
            header_list = [(_to_str(k), _to_str(v)) for k, v in headers.items()]
        else:
            header_list = [(_to_str(k), _to_str(v)) for k, v in headers]

        return cls(
            method=method,
            url=url,
            headers=header_list,
            username=username,
            password=password,
            body=body,
            post_fields=post_fields,
            transport_options=dict(transport_options or {}),
        )

    @property
    def scheme(self) -> str:
        """Get the URL scheme."""
        return self.url.scheme

    def header_lines(self) -> List[str]:
        """Render the header collection as ``Name: value`` lines."""
        return [f"{name}: {value}" for name, value in self.headers]

    def add_header(self, name: str, value: str) -> None:
        """Append a header, keeping any existing ones with the same name."""
        self.headers.append((name, value))

    def set_header(self, name: str, value: str) -> None:
        """Replace all headers with this name by a single value."""
        self.remove_header(name)
        self.headers.append((name, value))

    def remove_header(self, name: str) -> None:
        """Remove all headers with this name (case-insensitive)."""
        name_lower = name.lower()
        self.headers[:] = [
            (n, v) for n, v in self.headers if n.lower() != name_lower
        ]

    def get_header(self, name: str) -> Optional[str]:
        """Get a header value by name (case-insensitive)."""
        name_lower = name.lower()
        for header_name, header_value in self.headers:
            if header_name.lower() == name_lower:
                return header_value
        return None

    def has_header(self, name: str) -> bool:
        """Check if a header exists (case-insensitive)."""
        return self.get_header(name) is not None

    def get_transport_option(self, name: str, default: Any = None) -> Any:
        """Look up a transport option such as SSL_VERIFY_PEER."""
        return self.transport_options.get(name, default)

    def encoded_post_fields(self) -> Optional[bytes]:
        """Post fields as bytes; mappings are form-urlencoded."""
        if self.post_fields is None:
            return None
        if isinstance(self.post_fields, Mapping):
            return urlencode(self.post_fields, doseq=True).encode("ascii")
        if isinstance(self.post_fields, str):
            return self.post_fields.encode("utf-8")
        return bytes(self.post_fields)

    def encoded_body(self) -> Optional[bytes]:
        """Body as bytes; text bodies are UTF-8 encoded."""
        if self.body is None:
            return None
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return bytes(self.body)
