"""
Transport-level error taxonomy for network requests.

These errors are never raised across the async boundary: NetworkService
catches them and hands them to its completion inside a failed TaskResult.
"""
from typing import Optional


class NetworkServiceError(Exception):
    """Base class for every failure a NetworkService can report."""


class InvalidURLError(NetworkServiceError):
    """The request URL could not be built."""


class EncodingError(NetworkServiceError):
    """The request body could not be serialized to JSON."""


class DecodingError(NetworkServiceError):
    """The response body did not match the expected shape."""


class NetworkError(NetworkServiceError):
    """The transport failed; the underlying exception is kept as ``cause``."""

    def __init__(self, cause: Optional[BaseException] = None):
        super().__init__(f"Network error: {cause}" if cause else "Network error")
        self.cause = cause


class NoInternetError(NetworkServiceError):
    """The connectivity probe reported no route to the internet."""


class UnknownError(NetworkServiceError):
    """The request completed without an error but also without a body."""
