"""Header construction for upstream requests and relayed responses."""

from core.request_types import InboundRequest, ProxyParameters

DEFAULT_ACCEPT = "*/*"
DEFAULT_ACCEPT_LANGUAGE = "en-US,en;q=0.9"
DEFAULT_USER_AGENT = "Mozilla/5.0"

# Transport framing of the upstream hop; invalid once the body is re-served
FILTERED_RESPONSE_HEADERS = frozenset(
    {"content-encoding", "transfer-encoding", "connection", "content-length"}
)

BODYLESS_METHODS = frozenset({"GET", "HEAD"})


class HeaderBuilder:
    """Build upstream request headers and filter upstream response headers."""

    def build_upstream_headers(
        self,
        request: InboundRequest,
        params: ProxyParameters,
    ) -> dict[str, str]:
        """Fresh header set carrying only what the backend needs."""
        headers = {
            "accept": request.header("accept") or DEFAULT_ACCEPT,
            "accept-language": request.header("accept-language") or DEFAULT_ACCEPT_LANGUAGE,
            "user-agent": request.header("user-agent") or DEFAULT_USER_AGENT,
            "x-shopify-shop": params.shop or "",
            "x-shopify-customer-id": params.logged_in_customer_id or "",
        }
        content_type = request.header("content-type")
        if request.method.upper() not in BODYLESS_METHODS and content_type:
            headers["content-type"] = content_type
        return headers

    def forwarded_headers(self, request: InboundRequest) -> dict[str, str]:
        """``x-forwarded-*`` headers describing the original client."""
        return {
            "x-forwarded-for": request.client_host or "",
            "x-forwarded-proto": request.scheme or "https",
            "x-forwarded-host": request.header("host"),
        }

    def filter_response_headers(self, headers: list[tuple[str, str]]) -> list[tuple[str, str]]:
        """Drop hop-specific and empty headers from the upstream response."""
        return [
            (key, value)
            for key, value in headers
            if value and key.lower() not in FILTERED_RESPONSE_HEADERS
        ]
