"""FastAPI route handlers."""

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from core.config import Config
from core.exceptions import RequestTooLarge
from core.protocols import RequestLogger
from core.request_types import InboundRequest, OutboundResponse
from core.signature import verify_signature
from ui.log_utils import write_request_log

MAX_BODY_SIZE = 50 * 1024 * 1024  # 50MB


def raw_path(request: Request) -> str:
    """Request path with its percent-encoding intact."""
    raw = request.scope.get("raw_path")
    if not raw:
        return request.url.path
    # Some servers include the query string in raw_path
    return raw.split(b"?", 1)[0].decode("latin-1")


async def read_inbound(request: Request) -> InboundRequest:
    """Detach the request from Starlette so the pipeline can work on plain data."""
    raw_body = await request.body()
    if len(raw_body) > MAX_BODY_SIZE:
        raise RequestTooLarge(len(raw_body), MAX_BODY_SIZE)

    return InboundRequest(
        method=request.method,
        path=raw_path(request),
        query=dict(request.query_params),
        headers=dict(request.headers),
        body=raw_body,
        client_host=request.client.host if request.client else "",
        scheme=request.url.scheme,
    )


def to_response(outbound: OutboundResponse) -> Response:
    """Convert an OutboundResponse into a Starlette response, keeping repeated headers."""
    response = Response(content=outbound.body, status_code=outbound.status_code)
    for key, value in outbound.headers:
        response.headers.append(key, value)
    if outbound.media_type and outbound.header("content-type") is None:
        response.headers["content-type"] = outbound.media_type
    return response


async def handle_proxy(
    request: Request,
    config: Config,
    logger: RequestLogger,
) -> Response:
    """Handle every request under the proxy route prefix."""
    service = request.app.state.forwarding_service
    strategy = service.strategy

    try:
        inbound = await read_inbound(request)
    except RequestTooLarge as e:
        logger.log_rejected(request.method, request.url.path, str(e))
        return to_response(strategy.render_error(413, "Request body too large"))

    target_url = None
    if config.enforce_signature and not verify_signature(inbound.query, config.shopify.api_secret):
        logger.log_rejected(inbound.method, inbound.path, "invalid signature")
        outbound = strategy.render_error(401, "Invalid request signature")
    else:
        target_url = service.target_url(inbound)
        outbound = await service.forward(inbound)

    if config.proxy.debug:
        write_request_log(
            inbound.method,
            inbound.path,
            inbound.query,
            inbound.headers,
            status=outbound.status_code,
            target_url=target_url,
        )
    return to_response(outbound)


async def handle_health(request: Request, config: Config) -> JSONResponse:
    """Report liveness and the effective proxy configuration."""
    strategy = request.app.state.forwarding_service.strategy
    return JSONResponse(strategy.health_payload(config))
