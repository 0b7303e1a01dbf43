r"""Exception taxonomy raised by bcxapi.

The request executor reports failures as typed outcomes (see
``bcxapi.outcomes``). These exceptions are their raising counterparts,
used by ``raise_for_outcome``, the token exchange and the
``BasecampClient`` facade.
"""

from __future__ import annotations

__all__ = [
    "BcxApiError",
    "ForbiddenError",
    "GeneralApiError",
    "InvalidEndpointError",
    "JsonShapeError",
    "RateLimitExceededError",
    "TokenExpiredError",
    "TransportFailureError",
    "UnauthorizedError",
]


class BcxApiError(RuntimeError):
    r"""Base class of every error raised by bcxapi.

    Args:
        message: A descriptive error message.
        method: The HTTP method of the failed exchange, if any.
        url: The URL of the failed exchange, if any.
        status_code: The HTTP status code, if a response was received.

    Example:
        ```pycon
        >>> from bcxapi.exceptions import BcxApiError
        >>> error = BcxApiError("boom", method="GET", url="https://x/y.json", status_code=500)
        >>> error.status_code
        500

        ```
    """

    def __init__(
        self,
        message: str,
        *,
        method: str | None = None,
        url: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.method = method
        self.url = url
        self.status_code = status_code


class InvalidEndpointError(BcxApiError, ValueError):
    r"""Raised when a resource URL does not end in ``.json``.

    This is a caller bug and is never worth retrying.

    Args:
        url: The offending URL.
    """

    def __init__(self, url: str) -> None:
        super().__init__(f"Invalid URL. URLs must end in .json: {url!r}", url=url)


class UnauthorizedError(BcxApiError):
    r"""The credential was rejected, or no credential is available.

    The caller must go through the authorization flow again; refreshing
    is not enough.
    """

    def __init__(
        self,
        message: str = "The access token is missing or was rejected.",
        *,
        method: str | None = None,
        url: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, method=method, url=url, status_code=status_code)


class TokenExpiredError(BcxApiError):
    r"""The access token expired; refresh it and retry the request once."""

    def __init__(
        self,
        message: str = "The access token has expired.",
        *,
        method: str | None = None,
        url: str | None = None,
    ) -> None:
        super().__init__(message, method=method, url=url, status_code=401)


class RateLimitExceededError(BcxApiError):
    r"""The service answered 429 Too Many Requests.

    Args:
        retry_after: Seconds to wait before retrying, as announced by the
            ``Retry-After`` header, or ``None`` if the header was missing.
    """

    def __init__(
        self,
        retry_after: int | None,
        *,
        method: str | None = None,
        url: str | None = None,
    ) -> None:
        if retry_after is None:
            message = "Rate limit exceeded."
        else:
            message = f"Rate limit exceeded. Retry after {retry_after} seconds."
        super().__init__(message, method=method, url=url, status_code=429)
        self.retry_after = retry_after


class ForbiddenError(BcxApiError):
    r"""The request was denied by policy or the account limit was reached."""

    def __init__(self, *, method: str | None = None, url: str | None = None) -> None:
        super().__init__(
            "You do not have access to perform this action or your account limit has been reached.",
            method=method,
            url=url,
            status_code=403,
        )


class GeneralApiError(BcxApiError):
    r"""Any other non-success status returned by the service."""


class TransportFailureError(BcxApiError):
    r"""The exchange could not complete at the connection level."""


class JsonShapeError(BcxApiError, TypeError):
    r"""A JSON value does not have the shape the caller asked for.

    Example:
        ```pycon
        >>> from bcxapi.json_value import JsonValue
        >>> JsonValue(3).as_str()
        Traceback (most recent call last):
            ...
        bcxapi.exceptions.JsonShapeError: Expected a string, got a number: 3

        ```
    """
