r"""Request execution pipeline for GET and POST exchanges.

``RequestExecutor`` signs each request with the bearer credential held by
a ``TokenStore``, revalidates cached GET responses with a conditional
probe, sends the request through an ``httpx.Client`` and returns a typed
outcome (see ``bcxapi.outcomes``). It never retries and never refreshes the
credential on its own.
"""

from __future__ import annotations

__all__ = ["RequestExecutor"]

import logging
from typing import TYPE_CHECKING, Any

import httpx

from bcxapi.cache import CacheEntry, MemoryResponseCache, ResponseCache, fingerprint
from bcxapi.core.validation import validate_endpoint, validate_required
from bcxapi.json_value import JsonValue, decode_json, encode_json
from bcxapi.outcomes import (
    GeneralFailure,
    NotModified,
    Success,
    TransportFailure,
    Unauthorized,
)
from bcxapi.utils.classifier import classify_failure
from bcxapi.utils.structured_logging import log_exchange

if TYPE_CHECKING:
    from bcxapi.auth import TokenStore
    from bcxapi.outcomes import Outcome

logger: logging.Logger = logging.getLogger(__name__)


def _validator(headers: httpx.Headers, name: str) -> str | None:
    # validators are sent back as request headers, which must be ASCII
    value = headers.get(name)
    if not value or not value.isascii():
        return None
    return value


class RequestExecutor:
    r"""Turn logical API calls into authenticated, cache-aware exchanges.

    Every exchange carries ``Authorization: Bearer <access token>`` and the
    application's ``User-Agent``. Every public method validates the
    ``.json`` endpoint contract before any I/O and returns ``Unauthorized``
    without I/O when no credential is available.

    Args:
        client: The ``httpx.Client`` used as transport. Timeouts and other
            transport policies are configured on it by the caller.
        tokens: The store providing the bearer credential.
        user_agent: Application name and contact, sent as ``User-Agent``.
        cache: The response cache used for conditional GETs. If ``None``,
            this executor creates its own in-memory cache.

    Example:
        ```pycon
        >>> import httpx
        >>> from bcxapi.auth import TokenStore
        >>> from bcxapi.executor import RequestExecutor
        >>> from bcxapi.outcomes import Success
        >>> with httpx.Client() as client:  # doctest: +SKIP
        ...     executor = RequestExecutor(
        ...         client, TokenStore({"access_token": "..."}), user_agent="MyApp (me@example.com)"
        ...     )
        ...     outcome = executor.get("https://basecamp.com/1/api/v1/projects.json")
        ...     if isinstance(outcome, Success):
        ...         names = [project["name"].as_str() for project in outcome.data]
        ...

        ```
    """

    def __init__(
        self,
        client: httpx.Client,
        tokens: TokenStore,
        *,
        user_agent: str,
        cache: ResponseCache | None = None,
    ) -> None:
        validate_required(user_agent=user_agent)
        self._client = client
        self._tokens = tokens
        self._user_agent = user_agent
        self._cache: ResponseCache = cache if cache is not None else MemoryResponseCache()

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    @property
    def is_authenticated(self) -> bool:
        return self._tokens.is_authenticated

    def _headers(self, content_type: str | None = None) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self._tokens.access_token}",
            "User-Agent": self._user_agent,
        }
        if content_type is not None:
            headers["Content-Type"] = content_type
        return headers

    def get(self, url: str) -> Outcome:
        """Fetch a resource, revalidating a cached copy when one exists.

        Args:
            url: The resource URL; must end in ``.json``, optionally
                followed by a query string.

        Returns:
            ``NotModified`` with the cached body when the conditional probe
            answers 304, ``Success`` for any 2xx, or a failure outcome.

        Raises:
            InvalidEndpointError: If the URL breaks the ``.json`` contract.
        """
        validate_endpoint(url)
        if not self._tokens.is_authenticated:
            logger.debug(f"GET {url} skipped: no access token")
            return Unauthorized()

        key = fingerprint(self._tokens.access_token, url)
        cached = self._revalidate(url, key)
        if cached is not None:
            return cached

        try:
            response = self._client.get(url, headers=self._headers())
        except httpx.RequestError as exc:
            return self._transport_failure("GET", url, exc)

        outcome: Outcome
        if response.is_success:
            outcome = self._decode_success(response)
            if isinstance(outcome, Success):
                self._store(key, response)
        else:
            outcome = classify_failure(response.status_code, response.headers)
        log_exchange(
            logger,
            method="GET",
            url=url,
            status_code=response.status_code,
            outcome=type(outcome).__name__,
        )
        return outcome

    def post(self, url: str, payload: Any = None) -> Outcome:
        """Send a JSON payload to a resource.

        Args:
            url: The resource URL; must end in ``.json``, optionally
                followed by a query string.
            payload: A pre-serialized JSON string, a ``JsonValue`` or a
                JSON-compatible Python value.

        Returns:
            ``Success`` with the decoded body and the ``Location`` header
            for 201, ``Success`` with a null body for 204, or a failure
            outcome. POST responses are never cached.

        Raises:
            InvalidEndpointError: If the URL breaks the ``.json`` contract.
            JsonShapeError: If the payload cannot be serialized.
        """
        validate_endpoint(url)
        body = payload if isinstance(payload, str) else encode_json(payload)
        if not self._tokens.is_authenticated:
            logger.debug(f"POST {url} skipped: no access token")
            return Unauthorized()

        try:
            response = self._client.post(
                url,
                headers=self._headers("application/json"),
                content=body.encode("utf-8"),
            )
        except httpx.RequestError as exc:
            return self._transport_failure("POST", url, exc)

        outcome: Outcome
        if response.status_code == 204:
            outcome = Success()
        elif response.is_success:
            outcome = self._decode_success(response, location=response.headers.get("Location"))
        else:
            outcome = classify_failure(response.status_code, response.headers)
        log_exchange(
            logger,
            method="POST",
            url=url,
            status_code=response.status_code,
            outcome=type(outcome).__name__,
        )
        return outcome

    def send(
        self,
        url: str,
        *,
        content: bytes,
        content_type: str,
    ) -> httpx.Response | TransportFailure:
        """Send a pre-encoded POST body and return the raw response.

        Used by ``MultipartUploader``, which interprets the response itself.
        The endpoint and the credential must have been checked by the
        caller.
        """
        try:
            return self._client.post(
                url,
                headers=self._headers(content_type),
                content=content,
            )
        except httpx.RequestError as exc:
            return self._transport_failure("POST", url, exc)

    def _revalidate(self, url: str, key: str) -> NotModified | None:
        """Probe the server with the validators of the cached entry.

        Any failure (cache provider, network, undecodable cached body)
        returns ``None`` so that the caller falls back to a full GET.
        """
        try:
            entry = self._cache.get(key)
        except Exception:  # noqa: BLE001
            logger.debug(f"Cache lookup for {url} failed, ignoring cache", exc_info=True)
            return None
        if entry is None or not entry.has_validator:
            return None

        try:
            headers = self._headers()
            if entry.last_modified:
                headers["If-Modified-Since"] = entry.last_modified
            if entry.etag:
                headers["If-None-Match"] = entry.etag
            response = self._client.head(url, headers=headers)
        except Exception as exc:  # noqa: BLE001
            logger.debug(f"Conditional probe of {url} failed: {type(exc).__name__}: {exc}")
            return None

        log_exchange(
            logger,
            method="HEAD",
            url=url,
            status_code=response.status_code,
            outcome="NotModified" if response.status_code == 304 else "Stale",
        )
        if response.status_code != 304:
            return None
        try:
            return NotModified(decode_json(entry.body))
        except ValueError:
            logger.debug(f"Cached body of {url} is not valid JSON, ignoring cache")
            return None

    def _store(self, key: str, response: httpx.Response) -> None:
        etag = _validator(response.headers, "ETag")
        last_modified = _validator(response.headers, "Last-Modified")
        body = response.text
        if (etag is None and last_modified is None) or not body.strip():
            return
        try:
            self._cache.set(key, CacheEntry(body=body, etag=etag, last_modified=last_modified))
        except Exception:  # noqa: BLE001
            logger.debug("Cache store failed, response not cached", exc_info=True)

    @staticmethod
    def _decode_success(
        response: httpx.Response, location: str | None = None
    ) -> Success | GeneralFailure:
        try:
            data: JsonValue = decode_json(response.text)
        except ValueError as exc:
            return GeneralFailure(
                status_code=response.status_code,
                message=f"Response body is not valid JSON: {exc}",
            )
        return Success(data=data, location=location)

    @staticmethod
    def _transport_failure(method: str, url: str, exc: httpx.RequestError) -> TransportFailure:
        error_type = type(exc).__name__
        logger.debug(f"{method} request to {url} encountered {error_type}: {exc}")
        log_exchange(logger, method=method, url=url, outcome="TransportFailure")
        return TransportFailure(message=f"{method} request to {url} failed: {error_type}: {exc}")
