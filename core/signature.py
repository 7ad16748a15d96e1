"""Shopify app proxy signature verification.

Shopify signs every proxied request by computing an HMAC-SHA256 over the
sorted query parameters (excluding ``signature`` itself) joined as
``name=value`` pairs with no separator, hex encoded. Values are used exactly
as received; no URL re-encoding is applied.
"""

import hashlib
import hmac
import logging
from collections.abc import Mapping

logger = logging.getLogger(__name__)


def canonicalize(query: Mapping[str, str]) -> str:
    """Build the string Shopify signs from the query parameters."""
    names = sorted((name for name in query if name != "signature"), key=lambda n: n.encode())
    return "".join(f"{name}={query[name]}" for name in names)


def compute_signature(query: Mapping[str, str], secret: str) -> str:
    """Return the lowercase hex HMAC-SHA256 of the canonical string."""
    return hmac.new(secret.encode(), canonicalize(query).encode(), hashlib.sha256).hexdigest()


def verify_signature(query: Mapping[str, str], secret: str | None) -> bool:
    """Check the ``signature`` query parameter against the shared secret.

    Without a secret, verification is skipped and the request is accepted.
    """
    if not secret:
        logger.warning("SHOPIFY_API_SECRET is not set, skipping signature verification")
        return True

    signature = query.get("signature")
    if not signature:
        return False

    return hmac.compare_digest(compute_signature(query, secret).encode(), signature.encode())
