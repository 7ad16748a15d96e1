"""FastAPI application factory."""

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.handlers import handle_health, handle_proxy
from core.config import Config
from core.headers import HeaderBuilder
from core.protocols import RequestLogger
from core.transform import strategy_for
from services.forwarding_service import ForwardingService
from services.upstream import UpstreamClient, create_http_client

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


def create_app(
    config: Config,
    logger: RequestLogger,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = create_http_client(
            config.target.base_url,
            timeout=config.target.timeout,
            max_redirects=config.target.max_redirects,
            transport=transport,
        )
        app.state.forwarding_service = ForwardingService(
            config=config,
            upstream=UpstreamClient(client, timeout=config.target.timeout),
            request_logger=logger,
            header_builder=HeaderBuilder(),
            strategy=strategy_for(config),
        )
        try:
            yield
        finally:
            await client.aclose()

    app = FastAPI(title="Shopify App Proxy", version="0.1.0", lifespan=lifespan)
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

    prefix = config.proxy.route_prefix

    @app.api_route(prefix, methods=PROXY_METHODS)
    @app.api_route(prefix + "/{path:path}", methods=PROXY_METHODS)
    async def proxy(request: Request):
        return await handle_proxy(request, config, logger)

    @app.get("/health")
    async def health(request: Request):
        return await handle_health(request, config)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return JSONResponse(
                {"error": "Route not found", "path": request.url.path},
                status_code=404,
            )
        return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=exc.headers)

    @app.exception_handler(Exception)
    async def internal_error(request: Request, exc: Exception):
        logger.log_error(request.url.path, 500, str(exc))
        return JSONResponse(
            {"error": "Internal server error", "message": str(exc)},
            status_code=500,
        )

    return app
