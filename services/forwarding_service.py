"""Forwarding pipeline: inbound storefront request -> backend -> storefront response."""

import logging
import time

from core.config import Config
from core.headers import HeaderBuilder
from core.protocols import ContentStrategy, RequestLogger
from core.request_types import (
    InboundRequest,
    OutboundResponse,
    ProxyParameters,
    TransportFailure,
)
from core.router import TargetResolver
from core.transform import strategy_for
from services.upstream import UpstreamClient

logger = logging.getLogger(__name__)

PROXY_FAILED = "Proxy request failed"


class ForwardingService:
    """Forward one request to the backend and shape the response for the storefront."""

    def __init__(
        self,
        config: Config,
        upstream: UpstreamClient,
        request_logger: RequestLogger,
        header_builder: HeaderBuilder | None = None,
        strategy: ContentStrategy | None = None,
    ) -> None:
        self._config = config
        self._upstream = upstream
        self._logger = request_logger
        self._headers = header_builder or HeaderBuilder()
        self.strategy = strategy or strategy_for(config)
        self._resolver = TargetResolver(
            config.target.base_url,
            config.proxy.route_prefix,
            preserve_identity=self.strategy.preserve_identity,
        )

    async def forward(self, request: InboundRequest) -> OutboundResponse:
        """Run the pipeline. Never raises; failures become the fixed error response."""
        started = time.perf_counter()
        target_url = self._config.target.base_url
        try:
            params = ProxyParameters.from_query(request.query)
            target = self._resolver.resolve(request)
            target_url = target.url

            headers = self._headers.build_upstream_headers(request, params)
            headers.update(self.strategy.extra_headers(request, self._headers))

            result = await self._upstream.send(request.method, target, headers, request.body)
            if isinstance(result, TransportFailure):
                self._logger.log_error(target_url, 500, f"{result.kind}: {result.message}")
                return self.strategy.render_error(
                    500, PROXY_FAILED, result.message, self._hint_for(result)
                )

            response = OutboundResponse(
                status_code=result.status_code,
                headers=self._headers.filter_response_headers(result.headers),
                body=result.body,
            )
            response = self.strategy.transform(response)
        except Exception as e:
            logger.exception("Unexpected error forwarding %s %s", request.method, request.path)
            self._logger.log_error(target_url, 500, str(e))
            return self.strategy.render_error(500, PROXY_FAILED, str(e))

        duration_ms = (time.perf_counter() - started) * 1000
        self._logger.log_forward(
            request.method,
            request.path,
            target_url,
            response.status_code,
            duration_ms=duration_ms,
        )
        return response

    def target_url(self, request: InboundRequest) -> str:
        """Upstream URL (without query) the request is forwarded to."""
        return self._resolver.resolve(request).url

    def _hint_for(self, failure: TransportFailure) -> str | None:
        if failure.kind == "connection_refused":
            return f"Make sure the backend application is running at {self._config.target.base_url}"
        return None
