r"""Classification of HTTP failures into typed outcomes.

This module maps the status code and headers of an unsuccessful response
to one of the failure variants of ``bcxapi.outcomes``. It is shared by the
GET, POST and upload paths so that the three report failures identically.
"""

from __future__ import annotations

__all__ = ["classify_failure", "is_token_expired"]

import logging
from typing import TYPE_CHECKING

from bcxapi.core.config import TOKEN_EXPIRED_MARKER
from bcxapi.outcomes import (
    Forbidden,
    GeneralFailure,
    RateLimited,
    TokenExpired,
    Unauthorized,
)
from bcxapi.utils.retry_after import parse_retry_after

if TYPE_CHECKING:
    from collections.abc import Mapping

    from bcxapi.outcomes import Outcome

logger: logging.Logger = logging.getLogger(__name__)


def is_token_expired(www_authenticate: str | None) -> bool:
    """Indicate whether a ``WWW-Authenticate`` value reports an expired
    token.

    Example:
        ```pycon
        >>> from bcxapi.utils import is_token_expired
        >>> is_token_expired('Bearer realm="Basecamp", error="token_expired"')
        True
        >>> is_token_expired('Bearer realm="Basecamp"')
        False
        >>> is_token_expired(None)
        False

        ```
    """
    return www_authenticate is not None and TOKEN_EXPIRED_MARKER in www_authenticate


def classify_failure(status_code: int, headers: Mapping[str, str]) -> Outcome:
    """Classify an unsuccessful response.

    Args:
        status_code: The HTTP status code of the response.
        headers: The response headers. ``httpx.Headers`` is
            case-insensitive; plain mappings must use canonical names.

    Returns:
        ``RateLimited`` for 429, ``TokenExpired`` or ``Unauthorized`` for
        401, ``Forbidden`` for 403 and ``GeneralFailure`` for anything else.

    Example:
        ```pycon
        >>> from bcxapi.utils import classify_failure
        >>> classify_failure(429, {"Retry-After": "30"})
        RateLimited(retry_after=30, ok=False)
        >>> classify_failure(401, {"WWW-Authenticate": 'Bearer error="token_expired"'})
        TokenExpired(ok=False)
        >>> classify_failure(503, {})
        GeneralFailure(status_code=503, message='Try again later. Status code returned was 503', ok=False)

        ```
    """
    if status_code == 429:
        return RateLimited(retry_after=parse_retry_after(headers.get("Retry-After")))
    if status_code == 401:
        if is_token_expired(headers.get("WWW-Authenticate")):
            return TokenExpired()
        return Unauthorized()
    if status_code == 403:
        return Forbidden()
    logger.debug(f"Unclassified status {status_code}, reporting a general failure")
    return GeneralFailure(
        status_code=status_code,
        message=f"Try again later. Status code returned was {status_code}",
    )
