r"""Typed outcomes of an exchange with the service.

Every call into ``RequestExecutor`` or ``MultipartUploader`` returns exactly
one of these variants instead of raising, so that callers can branch on
the type (``isinstance``) rather than on error strings.

Example:
    ```pycon
    >>> from bcxapi.outcomes import RateLimited, Success, raise_for_outcome
    >>> from bcxapi.json_value import JsonValue
    >>> outcome = Success(JsonValue({"id": 1}), location="https://basecamp.com/1/api/v1/projects/1.json")
    >>> outcome.ok
    True
    >>> raise_for_outcome(outcome) is outcome
    True
    >>> raise_for_outcome(RateLimited(retry_after=30))  # doctest: +SKIP
    Traceback (most recent call last):
        ...
    bcxapi.exceptions.RateLimitExceededError: Rate limit exceeded. Retry after 30 seconds.

    ```
"""

from __future__ import annotations

__all__ = [
    "Forbidden",
    "GeneralFailure",
    "NotModified",
    "Outcome",
    "RateLimited",
    "Success",
    "TokenExpired",
    "TransportFailure",
    "Unauthorized",
    "raise_for_outcome",
]

from dataclasses import dataclass, field
from typing import Union

from bcxapi.exceptions import (
    BcxApiError,
    ForbiddenError,
    GeneralApiError,
    RateLimitExceededError,
    TokenExpiredError,
    TransportFailureError,
    UnauthorizedError,
)
from bcxapi.json_value import JsonValue


@dataclass(frozen=True)
class Success:
    """The exchange succeeded.

    Attributes:
        data: The decoded response body (null for 204 No Content).
        location: The ``Location`` header of a 201 Created response, if any.
    """

    data: JsonValue = field(default_factory=JsonValue)
    location: str | None = None
    ok: bool = field(default=True, init=False)


@dataclass(frozen=True)
class NotModified:
    """The cached representation is still current.

    Attributes:
        data: The cached body, decoded.
    """

    data: JsonValue
    ok: bool = field(default=True, init=False)


@dataclass(frozen=True)
class RateLimited:
    """429 Too Many Requests.

    Attributes:
        retry_after: The ``Retry-After`` header in seconds, verbatim, or
            ``None`` if the header was missing or not an integer.
    """

    retry_after: int | None
    ok: bool = field(default=False, init=False)


@dataclass(frozen=True)
class TokenExpired:
    """401 with the token-expired marker: refresh, then retry once."""

    ok: bool = field(default=False, init=False)


@dataclass(frozen=True)
class Unauthorized:
    """401 without the token-expired marker, or no credential at all."""

    ok: bool = field(default=False, init=False)


@dataclass(frozen=True)
class Forbidden:
    """403: denied by policy or account limits."""

    ok: bool = field(default=False, init=False)


@dataclass(frozen=True)
class GeneralFailure:
    """Any other non-success status."""

    status_code: int
    message: str
    ok: bool = field(default=False, init=False)


@dataclass(frozen=True)
class TransportFailure:
    """The exchange could not complete (connection, timeout, protocol)."""

    message: str
    ok: bool = field(default=False, init=False)


Outcome = Union[
    Success,
    NotModified,
    RateLimited,
    TokenExpired,
    Unauthorized,
    Forbidden,
    GeneralFailure,
    TransportFailure,
]


def raise_for_outcome(
    outcome: Outcome,
    *,
    method: str | None = None,
    url: str | None = None,
) -> Success | NotModified:
    r"""Raise the exception matching a failure outcome.

    Args:
        outcome: The outcome to inspect.
        method: The HTTP method, recorded on the raised exception.
        url: The URL, recorded on the raised exception.

    Returns:
        The outcome itself when it is a ``Success`` or ``NotModified``.

    Raises:
        UnauthorizedError: For ``Unauthorized``.
        TokenExpiredError: For ``TokenExpired``.
        RateLimitExceededError: For ``RateLimited``.
        ForbiddenError: For ``Forbidden``.
        GeneralApiError: For ``GeneralFailure``.
        TransportFailureError: For ``TransportFailure``.
    """
    if isinstance(outcome, (Success, NotModified)):
        return outcome
    error: BcxApiError
    if isinstance(outcome, Unauthorized):
        error = UnauthorizedError(method=method, url=url, status_code=401)
    elif isinstance(outcome, TokenExpired):
        error = TokenExpiredError(method=method, url=url)
    elif isinstance(outcome, RateLimited):
        error = RateLimitExceededError(outcome.retry_after, method=method, url=url)
    elif isinstance(outcome, Forbidden):
        error = ForbiddenError(method=method, url=url)
    elif isinstance(outcome, GeneralFailure):
        error = GeneralApiError(
            outcome.message, method=method, url=url, status_code=outcome.status_code
        )
    elif isinstance(outcome, TransportFailure):
        error = TransportFailureError(outcome.message, method=method, url=url)
    else:
        msg = f"Unknown outcome: {outcome!r}"
        raise TypeError(msg)
    raise error
