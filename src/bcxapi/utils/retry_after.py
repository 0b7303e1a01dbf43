r"""Retry-After header parsing utilities.

The service announces its rate-limit window as an integer number of
seconds. The value is surfaced to the caller verbatim; bcxapi never
sleeps on it.
"""

from __future__ import annotations

__all__ = ["parse_retry_after"]

import logging

logger: logging.Logger = logging.getLogger(__name__)


def parse_retry_after(retry_after_header: str | None) -> int | None:
    """Parse the Retry-After header value from an HTTP response.

    Args:
        retry_after_header: The value of the Retry-After header as a string,
            or None if the header is not present in the response.

    Returns:
        The number of seconds announced by the server, or None if:
        - The header is not present (retry_after_header is None)
        - The header value is not an integer number of seconds (HTTP-date
          values are not interpreted)

    Example:
        ```pycon
        >>> from bcxapi.utils import parse_retry_after
        >>> parse_retry_after("30")
        30
        >>> parse_retry_after(" 0 ")
        0
        >>> parse_retry_after(None) is None
        True
        >>> parse_retry_after("Wed, 21 Oct 2015 07:28:00 GMT") is None
        True

        ```
    """
    if retry_after_header is None:
        return None
    try:
        return int(retry_after_header.strip())
    except ValueError:
        logger.debug(f"Failed to parse Retry-After header: {retry_after_header!r}")
        return None
