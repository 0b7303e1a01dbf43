r"""bcxapi - Client for the Basecamp BCX API.

This package turns logical Basecamp API calls (GET a resource, POST a
resource, upload a file) into authenticated, conditionally cached HTTP
exchanges built on top of the httpx library, and turns each HTTP result into
a typed outcome the caller can act on deterministically.

Key Features:
    - OAuth bearer-token lifecycle: authorization URL, code exchange, refresh
    - Conditional GET revalidation with ETag / Last-Modified validators
    - Typed outcomes for rate limits, expired tokens, denials and failures
    - Retry-After surfaced verbatim; retry scheduling stays with the caller
    - Multipart file upload returning one attachment token per file
    - Pluggable response cache and content-type lookup
    - Context manager API owning the underlying httpx client

Example:
    ```pycon
    >>> from bcxapi import BasecampClient, TokenExpiredError
    >>> from bcxapi.core.config import ClientConfig
    >>> config = ClientConfig(
    ...     client_id="id",
    ...     client_secret="secret",
    ...     redirect_uri="https://example.com/callback",
    ...     user_agent="MyApp (ops@example.com)",
    ... )
    >>> with BasecampClient(config, credential=saved_token) as client:  # doctest: +SKIP
    ...     try:
    ...         projects = client.get_projects(999)
    ...     except TokenExpiredError:
    ...         client.refresh_token()
    ...         projects = client.get_projects(999)
    ...

    ```
"""

from __future__ import annotations

__all__ = [
    "BasecampClient",
    "BcxApiError",
    "CacheEntry",
    "ClientConfig",
    "Credential",
    "ForbiddenError",
    "GeneralApiError",
    "InvalidEndpointError",
    "JsonShapeError",
    "JsonValue",
    "MemoryResponseCache",
    "MultipartUploader",
    "RateLimitExceededError",
    "RequestExecutor",
    "ResponseCache",
    "TokenExchanger",
    "TokenExpiredError",
    "TokenStore",
    "TransportFailureError",
    "UnauthorizedError",
    "__version__",
]

from importlib.metadata import PackageNotFoundError, version

from bcxapi.auth import Credential, TokenExchanger, TokenStore
from bcxapi.cache import CacheEntry, MemoryResponseCache, ResponseCache
from bcxapi.client import BasecampClient
from bcxapi.core.config import ClientConfig
from bcxapi.exceptions import (
    BcxApiError,
    ForbiddenError,
    GeneralApiError,
    InvalidEndpointError,
    JsonShapeError,
    RateLimitExceededError,
    TokenExpiredError,
    TransportFailureError,
    UnauthorizedError,
)
from bcxapi.executor import RequestExecutor
from bcxapi.json_value import JsonValue
from bcxapi.upload import MultipartUploader

try:
    __version__ = version(__name__)
except PackageNotFoundError:  # pragma: no cover
    # Package is not installed, fallback if needed
    __version__ = "0.0.0"
