r"""Parameter validation utilities.

This module provides the validation functions used before any request is
sent: the ``.json`` endpoint contract, the client identity fields and the
transport timeout.
"""

from __future__ import annotations

__all__ = ["is_json_endpoint", "validate_endpoint", "validate_required", "validate_timeout"]

from typing import TYPE_CHECKING

from bcxapi.exceptions import InvalidEndpointError

if TYPE_CHECKING:
    import httpx


def is_json_endpoint(url: str) -> bool:
    """Indicate whether a URL names a ``.json`` resource.

    The check is case-insensitive and ignores any query string.

    Args:
        url: The URL to check.

    Returns:
        ``True`` if the path part of the URL ends in ``.json``.

    Example:
        ```pycon
        >>> from bcxapi.core.validation import is_json_endpoint
        >>> is_json_endpoint("https://basecamp.com/1/api/v1/projects.json")
        True
        >>> is_json_endpoint("https://basecamp.com/1/api/v1/events.JSON?since=2012")
        True
        >>> is_json_endpoint("https://basecamp.com/1/api/v1/projects")
        False

        ```
    """
    path = url.split("?", 1)[0]
    return path.lower().endswith(".json")


def validate_endpoint(url: str) -> None:
    """Validate that a URL honours the ``.json`` endpoint contract.

    Args:
        url: The URL to validate.

    Raises:
        InvalidEndpointError: If the URL does not end in ``.json``
            (optionally followed by a query string).

    Example:
        ```pycon
        >>> from bcxapi.core.validation import validate_endpoint
        >>> validate_endpoint("https://basecamp.com/1/api/v1/people.json")
        >>> validate_endpoint("https://basecamp.com/1/api/v1/people")  # doctest: +SKIP
        Traceback (most recent call last):
        ...
        bcxapi.exceptions.InvalidEndpointError: Invalid URL. URLs must end in .json: '...'

        ```
    """
    if not is_json_endpoint(url):
        raise InvalidEndpointError(url)


def validate_required(**values: str | None) -> None:
    """Validate that every given value is a non-blank string.

    Args:
        **values: The values to check, keyed by parameter name.

    Raises:
        ValueError: If any value is ``None``, empty or whitespace only.

    Example:
        ```pycon
        >>> from bcxapi.core.validation import validate_required
        >>> validate_required(client_id="abc", client_secret="xyz")
        >>> validate_required(client_id=" ")  # doctest: +SKIP
        Traceback (most recent call last):
        ...
        ValueError: client_id must be a non-empty string, got ' '

        ```
    """
    for name, value in values.items():
        if value is None or not str(value).strip():
            msg = f"{name} must be a non-empty string, got {value!r}"
            raise ValueError(msg)


def validate_timeout(timeout: float | httpx.Timeout) -> None:
    """Validate timeout parameter.

    Args:
        timeout: Maximum seconds to wait for server responses.
            Must be > 0 if provided as a numeric value.

    Raises:
        ValueError: If timeout is a numeric value <= 0.

    Example:
        ```pycon
        >>> from bcxapi.core.validation import validate_timeout
        >>> validate_timeout(10.0)
        >>> validate_timeout(0)  # doctest: +SKIP
        Traceback (most recent call last):
        ...
        ValueError: timeout must be > 0, got 0

        ```
    """
    if isinstance(timeout, (int, float)) and timeout <= 0:
        msg = f"timeout must be > 0, got {timeout}"
        raise ValueError(msg)
