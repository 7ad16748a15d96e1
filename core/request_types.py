"""Shared request data types."""

from dataclasses import dataclass, field
from typing import Literal

# Query parameters injected by Shopify into every app proxy request
PLATFORM_PARAMS = ("shop", "path_prefix", "timestamp", "signature", "logged_in_customer_id")


@dataclass(frozen=True)
class InboundRequest:
    """Request as received from the storefront, detached from the web framework."""

    method: str
    path: str
    query: dict[str, str] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    client_host: str = ""
    scheme: str = "https"

    def header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        name = name.lower()
        for key, value in self.headers.items():
            if key.lower() == name:
                return value
        return default


@dataclass(frozen=True)
class ProxyParameters:
    """Platform-injected query parameters."""

    shop: str | None = None
    path_prefix: str | None = None
    timestamp: str | None = None
    signature: str | None = None
    logged_in_customer_id: str | None = None

    @classmethod
    def from_query(cls, query: dict[str, str]) -> "ProxyParameters":
        return cls(**{name: query.get(name) for name in PLATFORM_PARAMS})


@dataclass(frozen=True)
class ForwardingTarget:
    """Resolved upstream destination for a request."""

    base_url: str
    path: str
    query: dict[str, str]

    @property
    def url(self) -> str:
        return f"{self.base_url}{self.path}"


@dataclass(frozen=True)
class UpstreamResponse:
    """A completed HTTP exchange with the backend, whatever its status code."""

    status_code: int
    headers: list[tuple[str, str]]
    body: bytes

    @property
    def content_type(self) -> str:
        for key, value in self.headers:
            if key.lower() == "content-type":
                return value
        return ""


FailureKind = Literal["timeout", "connection_refused", "connect", "too_many_redirects", "request"]


@dataclass(frozen=True)
class TransportFailure:
    """The upstream call did not produce an HTTP response."""

    kind: FailureKind
    message: str


UpstreamResult = UpstreamResponse | TransportFailure


@dataclass
class OutboundResponse:
    """Response relayed back to the storefront."""

    status_code: int
    headers: list[tuple[str, str]] = field(default_factory=list)
    body: bytes = b""
    media_type: str | None = None

    def header(self, name: str) -> str | None:
        name = name.lower()
        for key, value in self.headers:
            if key.lower() == name:
                return value
        return None

    def set_header(self, name: str, value: str) -> None:
        """Replace every occurrence of ``name`` with a single value."""
        lowered = name.lower()
        self.headers = [(k, v) for k, v in self.headers if k.lower() != lowered]
        self.headers.append((name, value))
