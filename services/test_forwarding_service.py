import gzip
import json

import httpx
import pytest

from core.request_types import InboundRequest
from core.transform import LIQUID_CONTENT_TYPE
from services.forwarding_service import ForwardingService
from services.upstream import UpstreamClient, create_http_client

PLATFORM_QUERY = {
    "shop": "x.myshopify.com",
    "signature": "abc",
    "timestamp": "1",
    "path_prefix": "/apps/a",
    "foo": "bar",
}

HTML = b'<html><head><title>t</title></head><body><a href="/about">About</a></body></html>'


def _service(config, logger, handler) -> ForwardingService:
    http = create_http_client(config.target.base_url, transport=httpx.MockTransport(handler))
    return ForwardingService(config, UpstreamClient(http), logger)


def _request(**kwargs) -> InboundRequest:
    defaults = {
        "method": "GET",
        "path": "/proxy/campaigns/test",
        "query": dict(PLATFORM_QUERY),
        "headers": {"host": "gw.example.com", "accept": "text/html"},
        "client_host": "203.0.113.9",
    }
    defaults.update(kwargs)
    return InboundRequest(**defaults)


class Recorder:
    def __init__(self, response: httpx.Response):
        self.response = response
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.response


@pytest.mark.asyncio
class TestRewriteMode:
    async def test_upstream_request(self, rewrite_config, recording_logger):
        upstream = Recorder(httpx.Response(200, content=b"ok"))
        await _service(rewrite_config, recording_logger, upstream).forward(_request())

        sent = upstream.requests[0]
        assert str(sent.url) == "http://backend.test/campaigns/test?foo=bar"
        assert sent.headers["x-shopify-shop"] == "x.myshopify.com"
        assert sent.headers["x-shopify-customer-id"] == ""
        assert sent.headers["x-forwarded-for"] == "203.0.113.9"
        assert sent.headers["x-forwarded-host"] == "gw.example.com"
        assert sent.headers["x-forwarded-proto"] == "https"
        assert "x-shopify-proxy-path" not in sent.headers

    async def test_html_rewritten_and_headers_filtered(self, rewrite_config, recording_logger):
        upstream = Recorder(
            httpx.Response(
                200,
                headers={"content-type": "text/html; charset=utf-8", "x-backend": "nuxt"},
                content=HTML,
            )
        )
        response = await _service(rewrite_config, recording_logger, upstream).forward(_request())

        body = response.body.decode()
        assert response.status_code == 200
        assert 'href="/apps/a/about"' in body
        assert '<head><base href="/apps/a/">' in body
        assert response.header("x-backend") == "nuxt"
        assert recording_logger.forwarded == [
            ("GET", "/proxy/campaigns/test", "http://backend.test/campaigns/test", 200)
        ]

    async def test_content_encoding_not_relayed(self, rewrite_config, recording_logger):
        upstream = Recorder(
            httpx.Response(
                200,
                headers={"content-type": "text/plain", "content-encoding": "gzip"},
                content=gzip.compress(b"hello"),
            )
        )
        response = await _service(rewrite_config, recording_logger, upstream).forward(_request())

        assert response.header("content-encoding") is None
        assert response.body == b"hello"

    async def test_backend_status_relayed(self, rewrite_config, recording_logger):
        upstream = Recorder(httpx.Response(404, headers={"content-type": "text/plain"}, content=b"gone"))
        response = await _service(rewrite_config, recording_logger, upstream).forward(_request())
        assert response.status_code == 404
        assert response.body == b"gone"

    async def test_post_body_and_content_type(self, rewrite_config, recording_logger):
        upstream = Recorder(httpx.Response(200))
        request = _request(
            method="POST",
            headers={"content-type": "application/x-www-form-urlencoded"},
            body=b"email=a%40b.c",
        )
        await _service(rewrite_config, recording_logger, upstream).forward(request)

        sent = upstream.requests[0]
        assert sent.method == "POST"
        assert sent.content == b"email=a%40b.c"
        assert sent.headers["content-type"] == "application/x-www-form-urlencoded"

    async def test_connection_refused(self, rewrite_config, recording_logger):
        def refuse(request):
            raise httpx.ConnectError("Connection refused", request=request)

        response = await _service(rewrite_config, recording_logger, refuse).forward(_request())

        payload = json.loads(response.body)
        assert response.status_code == 500
        assert payload["error"] == "Proxy request failed"
        assert "http://backend.test" in payload["hint"]
        assert recording_logger.errors[0][1] == 500

    async def test_timeout_has_no_hint(self, rewrite_config, recording_logger):
        def slow(request):
            raise httpx.ReadTimeout("timed out", request=request)

        response = await _service(rewrite_config, recording_logger, slow).forward(_request())
        assert response.status_code == 500
        assert json.loads(response.body)["hint"] is None

    async def test_unexpected_error_contained(self, rewrite_config, recording_logger):
        def broken(request):
            raise RuntimeError("kaboom")

        response = await _service(rewrite_config, recording_logger, broken).forward(_request())
        assert response.status_code == 500
        assert json.loads(response.body)["message"] == "kaboom"


@pytest.mark.asyncio
class TestLiquidMode:
    async def test_identity_params_preserved(self, liquid_config, recording_logger):
        upstream = Recorder(httpx.Response(200))
        await _service(liquid_config, recording_logger, upstream).forward(_request())

        sent = upstream.requests[0]
        assert dict(sent.url.params) == {
            "shop": "x.myshopify.com",
            "path_prefix": "/apps/a",
            "foo": "bar",
        }
        assert sent.headers["x-shopify-proxy-path"] == "/apps/a"
        assert "x-forwarded-for" not in sent.headers

    async def test_html_relabeled(self, liquid_config, recording_logger):
        upstream = Recorder(httpx.Response(200, headers={"content-type": "text/html"}, content=HTML))
        response = await _service(liquid_config, recording_logger, upstream).forward(_request())

        assert response.body == HTML
        assert response.header("content-type") == LIQUID_CONTENT_TYPE

    async def test_failure_renders_fragment(self, liquid_config, recording_logger):
        def refuse(request):
            raise httpx.ConnectError("Connection refused", request=request)

        response = await _service(liquid_config, recording_logger, refuse).forward(_request())
        assert response.status_code == 500
        assert response.header("content-type") == LIQUID_CONTENT_TYPE
        assert b"Proxy request failed" in response.body
