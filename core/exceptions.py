"""Custom exception hierarchy for the app proxy gateway."""


class ProxyError(Exception):
    """Base exception for all proxy errors."""


class ConfigurationError(ProxyError):
    """Raised when configuration is missing or invalid."""


class RequestTooLarge(ProxyError):
    """Request body exceeds size limit."""

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(f"Request body of {size} bytes exceeds limit of {limit} bytes")
        self.size = size
        self.limit = limit
