"""Upstream target resolution - path rewrite and query sanitization."""

from core.request_types import ForwardingTarget, InboundRequest

# Never forwarded, whatever the policy
INTERNAL_PARAMS = frozenset({"signature", "timestamp"})
# Stripped only under the strip-all policy
IDENTITY_PARAMS = frozenset({"shop", "path_prefix", "logged_in_customer_id"})


def rewrite_path(path: str, route_prefix: str) -> str:
    """Strip the proxy route prefix: ``/proxy/a/b`` -> ``/a/b``, ``/proxy`` -> ``/``."""
    if path.startswith(route_prefix):
        path = path[len(route_prefix):]
    if not path:
        return "/"
    if not path.startswith("/"):
        path = "/" + path
    return path


def sanitize_query(query: dict[str, str], *, preserve_identity: bool) -> dict[str, str]:
    """Drop platform parameters the backend must not see."""
    dropped = INTERNAL_PARAMS if preserve_identity else INTERNAL_PARAMS | IDENTITY_PARAMS
    return {name: value for name, value in query.items() if name not in dropped}


class TargetResolver:
    """Resolve the upstream URL and query for an inbound request."""

    def __init__(self, base_url: str, route_prefix: str, preserve_identity: bool = False):
        self.base_url = base_url.rstrip("/")
        self.route_prefix = route_prefix
        self.preserve_identity = preserve_identity

    def resolve(self, request: InboundRequest) -> ForwardingTarget:
        return ForwardingTarget(
            base_url=self.base_url,
            path=rewrite_path(request.path, self.route_prefix),
            query=sanitize_query(request.query, preserve_identity=self.preserve_identity),
        )
