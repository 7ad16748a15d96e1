"""HTTP client for the backend application."""

import asyncio
import errno

import httpx

from core.request_types import ForwardingTarget, TransportFailure, UpstreamResponse, UpstreamResult


def _is_connection_refused(exc: BaseException) -> bool:
    """Walk the exception chain looking for ECONNREFUSED."""
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, ConnectionRefusedError):
            return True
        if isinstance(current, OSError) and current.errno == errno.ECONNREFUSED:
            return True
        if "connection refused" in str(current).lower():
            return True
        current = current.__cause__ or current.__context__
    return False


class UpstreamClient:
    """Send a single request to the backend and capture the outcome."""

    def __init__(self, client: httpx.AsyncClient, timeout: float = 30.0) -> None:
        self._client = client
        self._timeout = timeout

    async def send(
        self,
        method: str,
        target: ForwardingTarget,
        headers: dict[str, str],
        body: bytes,
    ) -> UpstreamResult:
        """Issue the request. Every HTTP status is a response; only transport problems fail."""
        try:
            async with asyncio.timeout(self._timeout):
                response = await self._client.request(
                    method,
                    target.url,
                    params=target.query or None,
                    headers=headers,
                    content=body or None,
                )
        except (TimeoutError, httpx.TimeoutException):
            return TransportFailure("timeout", f"Upstream did not respond within {self._timeout:g}s")
        except httpx.TooManyRedirects as e:
            return TransportFailure("too_many_redirects", str(e))
        except httpx.ConnectError as e:
            if _is_connection_refused(e):
                return TransportFailure("connection_refused", str(e) or "Connection refused")
            return TransportFailure("connect", str(e) or "Connection failed")
        except httpx.RequestError as e:
            return TransportFailure("request", str(e) or type(e).__name__)

        return UpstreamResponse(
            status_code=response.status_code,
            headers=list(response.headers.multi_items()),
            body=response.content,
        )


def create_http_client(
    base_url: str,
    *,
    timeout: float = 30.0,
    max_redirects: int = 5,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create the shared connection pool used for all upstream calls."""
    limits = httpx.Limits(max_connections=100, max_keepalive_connections=20)
    return httpx.AsyncClient(
        base_url=base_url,
        timeout=timeout,
        limits=limits,
        follow_redirects=True,
        max_redirects=max_redirects,
        transport=transport,
    )
