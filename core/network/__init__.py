"""HTTP request plumbing: endpoints, connectivity probe, request operations."""

from .api import APICollection, HTTPMethod
from .errors import (
    DecodingError,
    EncodingError,
    InvalidURLError,
    NetworkError,
    NetworkServiceError,
    NoInternetError,
    UnknownError,
)
from .network_service import NetworkService
from .path_monitor import NetworkPathMonitor

__all__ = [
    'APICollection', 'HTTPMethod', 'NetworkService', 'NetworkPathMonitor',
    'NetworkServiceError', 'InvalidURLError', 'EncodingError', 'DecodingError',
    'NetworkError', 'NoInternetError', 'UnknownError',
]
