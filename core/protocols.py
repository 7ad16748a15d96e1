"""Shared protocol definitions."""

from typing import Any, Protocol

from core.config import Config
from core.headers import HeaderBuilder
from core.request_types import InboundRequest, OutboundResponse


class RequestLogger(Protocol):
    """Protocol for request logging (Dashboard)."""

    def log_forward(
        self,
        method: str,
        path: str,
        target_url: str,
        status: int,
        *,
        duration_ms: float,
    ) -> None: ...
    def log_rejected(self, method: str, path: str, reason: str) -> None: ...
    def log_error(self, route: str, status: int, message: str) -> None: ...


class ContentStrategy(Protocol):
    """Mode-specific behavior of the forwarding pipeline."""

    name: str
    preserve_identity: bool

    def extra_headers(self, request: InboundRequest, headers: HeaderBuilder) -> dict[str, str]: ...
    def transform(self, response: OutboundResponse) -> OutboundResponse: ...
    def render_error(
        self,
        status_code: int,
        error: str,
        message: str | None = None,
        hint: str | None = None,
    ) -> OutboundResponse: ...
    def health_payload(self, config: Config) -> dict[str, Any]: ...
