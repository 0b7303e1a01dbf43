r"""Configuration and request validation shared by the executor, the
uploader and the client facade."""

from __future__ import annotations

__all__ = [
    "DEFAULT_API_URL",
    "DEFAULT_CONTENT_TYPE",
    "DEFAULT_LAUNCHPAD_URL",
    "DEFAULT_TIMEOUT",
    "TOKEN_EXPIRED_MARKER",
    "ClientConfig",
    "is_json_endpoint",
    "validate_endpoint",
    "validate_required",
    "validate_timeout",
]

from bcxapi.core.config import (
    DEFAULT_API_URL,
    DEFAULT_CONTENT_TYPE,
    DEFAULT_LAUNCHPAD_URL,
    DEFAULT_TIMEOUT,
    TOKEN_EXPIRED_MARKER,
    ClientConfig,
)
from bcxapi.core.validation import (
    is_json_endpoint,
    validate_endpoint,
    validate_required,
    validate_timeout,
)
