"""Error types for the listings proxy."""

from typing import Optional


class BuildoutProxyError(Exception):
    """Base exception for the listings proxy."""
    pass


class UpstreamError(BuildoutProxyError):
    """Buildout request failed (network, timeout, 5xx, 429) after retries."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class ClientError(UpstreamError):
    """Buildout rejected the request with a non-retryable 4xx."""
    pass


class Unauthorized(BuildoutProxyError):
    """Refresh credential missing or wrong."""
    pass


class Cooldown(BuildoutProxyError):
    """Refresh attempted before the cooldown window elapsed."""

    def __init__(self, remaining_ms: int):
        super().__init__(f"Refresh allowed again in {remaining_ms}ms")
        self.remaining_ms = remaining_ms


class ParseError(BuildoutProxyError):
    """Cached JSON could not be decoded."""
    pass
