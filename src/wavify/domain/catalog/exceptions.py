"""Catalog-specific exceptions for error handling."""

from typing import Optional


class CatalogError(Exception):
    """Base exception for catalog operations."""

    pass


class SourceError(CatalogError):
    """Raised when the backend request fails (network, HTTP status, bad payload)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class AuthenticationError(SourceError):
    """Raised when the backend rejects credentials and refresh is impossible."""

    pass


class FetchCancelled(CatalogError):
    """Raised when the caller cancelled the request.

    Never converted into empty data: callers use it to drop results for
    abandoned requests.
    """

    pass
