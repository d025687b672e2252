from __future__ import annotations

from typing import Optional


class ProxyError(Exception):
    """Base class for errors surfaced by spotproxy."""
    pass


class InvalidInput(ProxyError, ValueError):
    """Raised for malformed fills or an unusable reference price."""
    pass


class MissingCredentials(ProxyError):
    """Raised when a signed upstream call is attempted without key/secret."""
    pass


class UpstreamUnavailable(ProxyError):
    """Raised when the exchange cannot supply the requested data."""

    def __init__(self, message: str, endpoint: Optional[str] = None):
        super().__init__(message)
        self.endpoint = endpoint
