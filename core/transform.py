"""Response content strategies.

A deployment runs exactly one strategy, chosen by ``proxy.mode``:

- ``rewrite``: root-relative references in HTML are rewritten to go back
  through the storefront mount path, and a ``<base>`` tag is injected.
- ``liquid``: bodies are left alone and ``text/html`` is relabeled as
  ``application/liquid`` so Shopify renders the response inside the theme.

The HTML rewrite applies all of its patterns in one regex pass. The Express
gateway this replaces ran them as four sequential replacements, which turned
``src="/_nuxt/x.js"`` into ``/apps/a/apps/a/_nuxt/x.js``; here such a
reference gets the mount path exactly once.
"""

import html
import json
import re
from datetime import UTC, datetime
from typing import Any

from core.config import Config
from core.headers import HeaderBuilder
from core.request_types import InboundRequest, OutboundResponse

LIQUID_CONTENT_TYPE = "application/liquid"

# "/_nuxt/ and '/_nuxt/ asset references, plus href="/ and src="/ roots
_ROOT_REFERENCE_PATTERN = re.compile(r"""(?P<quote>["'])/_nuxt/|(?P<attr>href|src)="/""")


def rewrite_html(text: str, external_path: str) -> str:
    """Point root-relative references at ``external_path``.

    Every match is rewritten in a single pass, so a reference is never
    prefixed twice within one response.
    """

    def _prefix(match: re.Match[str]) -> str:
        if match.group("quote"):
            return f"{match.group('quote')}{external_path}/_nuxt/"
        return f'{match.group("attr")}="{external_path}/'

    text = _ROOT_REFERENCE_PATTERN.sub(_prefix, text)
    if "<base" not in text:
        text = text.replace("<head>", f'<head><base href="{external_path}/">', 1)
    return text


class HtmlRewriteStrategy:
    """Rewrite HTML asset and link paths to resolve through the proxy."""

    name = "rewrite"
    preserve_identity = False

    def __init__(self, external_path: str):
        self.external_path = external_path

    def extra_headers(self, request: InboundRequest, headers: HeaderBuilder) -> dict[str, str]:
        return headers.forwarded_headers(request)

    def transform(self, response: OutboundResponse) -> OutboundResponse:
        content_type = response.header("content-type") or ""
        if "text/html" not in content_type:
            return response
        text = response.body.decode("utf-8", errors="replace")
        response.body = rewrite_html(text, self.external_path).encode("utf-8")
        return response

    def render_error(
        self,
        status_code: int,
        error: str,
        message: str | None = None,
        hint: str | None = None,
    ) -> OutboundResponse:
        payload: dict[str, Any] = {"error": error}
        if message is not None:
            payload["message"] = message
        if status_code >= 500:
            payload["hint"] = hint
        return OutboundResponse(
            status_code=status_code,
            body=json.dumps(payload).encode(),
            media_type="application/json",
        )

    def health_payload(self, config: Config) -> dict[str, Any]:
        return {
            "status": "ok",
            "timestamp": datetime.now(UTC).isoformat(),
            "config": {
                "targetDomain": config.target.base_url,
                "proxyPath": config.external_path,
            },
        }


class LiquidStrategy:
    """Serve backend HTML as Liquid so the storefront theme wraps it."""

    name = "liquid"
    preserve_identity = True

    def __init__(self, external_path: str):
        self.external_path = external_path

    def extra_headers(self, request: InboundRequest, headers: HeaderBuilder) -> dict[str, str]:
        return {"x-shopify-proxy-path": self.external_path}

    def transform(self, response: OutboundResponse) -> OutboundResponse:
        content_type = response.header("content-type") or ""
        if "text/html" in content_type:
            response.set_header("content-type", LIQUID_CONTENT_TYPE)
            response.media_type = LIQUID_CONTENT_TYPE
        return response

    def render_error(
        self,
        status_code: int,
        error: str,
        message: str | None = None,
        hint: str | None = None,
    ) -> OutboundResponse:
        details = f"<p>{html.escape(message)}</p>" if message else ""
        if hint:
            details += f"<p><small>{html.escape(hint)}</small></p>"
        fragment = (
            '<div class="app-proxy-error" style="max-width:640px;margin:40px auto;'
            "padding:24px;border:1px solid #e2e8f0;border-radius:8px;"
            'background:#fff5f5;color:#742a2a;font-family:inherit;text-align:center">'
            f"<h2>{html.escape(error)}</h2>{details}</div>"
        )
        return OutboundResponse(
            status_code=status_code,
            headers=[("content-type", LIQUID_CONTENT_TYPE)],
            body=fragment.encode("utf-8"),
            media_type=LIQUID_CONTENT_TYPE,
        )

    def health_payload(self, config: Config) -> dict[str, Any]:
        return {
            "status": "ok",
            "target": config.target.base_url,
            "proxyPath": config.external_path,
        }


STRATEGIES = {
    HtmlRewriteStrategy.name: HtmlRewriteStrategy,
    LiquidStrategy.name: LiquidStrategy,
}


def strategy_for(config: Config) -> HtmlRewriteStrategy | LiquidStrategy:
    """Instantiate the content strategy selected by configuration."""
    return STRATEGIES[config.proxy.mode](config.external_path)
