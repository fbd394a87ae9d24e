"""
Request descriptors for network requests.

An APICollection entry knows its base URL, path, HTTP method, headers,
query parameters and optional JSON body. Feature packages build entries for
their own endpoints.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class HTTPMethod(Enum):
    """HTTP methods supported for network requests."""
    GET = "GET"
    PUT = "PUT"
    POST = "POST"
    PATCH = "PATCH"
    DELETE = "DELETE"


@dataclass(frozen=True)
class APICollection:
    """Description of one request against a backend."""
    name: str
    base_url: str
    path: str
    method: HTTPMethod = HTTPMethod.GET
    headers: Dict[str, str] = field(default_factory=dict)
    query: Dict[str, Any] = field(default_factory=dict)
    body: Optional[Any] = None
