r"""Bearer credential lifecycle.

``TokenStore`` holds the current ``Credential`` and is read by the
executor to sign requests. ``TokenExchanger`` talks to the OAuth endpoints
to acquire a credential from an authorization code, refresh it, and build
the URL users are redirected to in order to grant access.

Refreshing is always initiated by the caller, typically after receiving
``TokenExpired``; the executor never refreshes on its own.

Example:
    ```pycon
    >>> from bcxapi.auth import Credential, TokenStore
    >>> store = TokenStore()
    >>> store.is_authenticated
    False
    >>> store.replace(Credential.from_mapping({"access_token": "abc", "refresh_token": "def"}))
    >>> store.is_authenticated
    True

    ```
"""

from __future__ import annotations

__all__ = ["Credential", "TokenExchanger", "TokenStore"]

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any
from urllib.parse import urlencode

import httpx

from bcxapi.exceptions import JsonShapeError, UnauthorizedError
from bcxapi.json_value import decode_json

if TYPE_CHECKING:
    from collections.abc import Mapping

    from bcxapi.core.config import ClientConfig

logger: logging.Logger = logging.getLogger(__name__)


def _as_token(value: Any) -> str:
    return value if isinstance(value, str) else ""


@dataclass(frozen=True)
class Credential:
    """An OAuth credential as returned by the token endpoint.

    Attributes:
        access_token: The bearer token; empty when absent or not a
            string.
        refresh_token: The token used to obtain a new access token; empty
            when absent or not a string.
        raw: Every field of the token response, read-only.
    """

    access_token: str
    refresh_token: str = ""
    raw: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        object.__setattr__(self, "access_token", _as_token(self.access_token))
        object.__setattr__(self, "refresh_token", _as_token(self.refresh_token))

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> Credential:
        """Build a credential from a decoded token response.

        Missing or non-string token fields become empty strings; this
        never raises for a mapping.
        """
        return cls(
            access_token=mapping.get("access_token"),
            refresh_token=mapping.get("refresh_token"),
            raw=MappingProxyType(dict(mapping)),
        )

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token.strip())

    @property
    def expires_in(self) -> int | None:
        """The ``expires_in`` field of the token response, in seconds."""
        value = self.raw.get("expires_in")
        if isinstance(value, bool) or not isinstance(value, int):
            return None
        return value

    def __repr__(self) -> str:
        # tokens are secrets
        return f"Credential(authenticated={self.is_authenticated}, fields={sorted(self.raw)})"


class TokenStore:
    r"""Holder of the current credential.

    The credential is only ever replaced wholesale. Concurrent refreshes
    are not synchronized; callers running requests in parallel must
    serialize refreshes themselves.

    Args:
        credential: The initial credential, either a ``Credential`` or
            the decoded token response it should be built from.
    """

    def __init__(self, credential: Credential | Mapping[str, Any] | None = None) -> None:
        self._credential: Credential | None = None
        if credential is not None:
            self.replace(credential)

    @property
    def credential(self) -> Credential | None:
        return self._credential

    @property
    def access_token(self) -> str:
        return self._credential.access_token if self._credential is not None else ""

    @property
    def refresh_token(self) -> str:
        return self._credential.refresh_token if self._credential is not None else ""

    @property
    def is_authenticated(self) -> bool:
        """``True`` iff a credential with a non-blank access token is
        present."""
        return self._credential is not None and self._credential.is_authenticated

    def replace(self, credential: Credential | Mapping[str, Any]) -> None:
        if not isinstance(credential, Credential):
            credential = Credential.from_mapping(credential)
        self._credential = credential

    def clear(self) -> None:
        self._credential = None


class TokenExchanger:
    r"""Client of the OAuth authorization and token endpoints.

    Every failure of ``acquire`` or ``refresh`` (rejected code, network
    error, malformed response) is reported as ``UnauthorizedError``; the
    original error is chained as the cause.

    Args:
        config: The application configuration.
        tokens: The store updated by successful exchanges.
        client: The ``httpx.Client`` used to reach the token endpoint.
    """

    def __init__(self, config: ClientConfig, tokens: TokenStore, client: httpx.Client) -> None:
        self._config = config
        self._tokens = tokens
        self._client = client

    def authorization_url(self, extra_params: Mapping[str, str] | None = None) -> str:
        """Build the URL users must visit to grant the application access.

        Args:
            extra_params: Optional key/value pairs that the service passes
                back to the redirect URI in the query string.

        Returns:
            The authorization URL.

        Example:
            ```pycon
            >>> import httpx
            >>> from bcxapi.auth import TokenExchanger, TokenStore
            >>> from bcxapi.core.config import ClientConfig
            >>> config = ClientConfig("id", "secret", "https://example.com/cb", "MyApp")
            >>> exchanger = TokenExchanger(config, TokenStore(), httpx.Client())
            >>> exchanger.authorization_url({"state": "a b"})
            'https://launchpad.37signals.com/authorization/new?type=web_server&client_id=id&redirect_uri=https%3A%2F%2Fexample.com%2Fcb&state=a+b'

            ```
        """
        params = {
            "type": "web_server",
            "client_id": self._config.client_id,
            "redirect_uri": self._config.redirect_uri,
        }
        query = urlencode(params)
        if extra_params:
            query += "&" + urlencode(dict(extra_params))
        return f"{self._config.authorization_endpoint}?{query}"

    def acquire(self, code: str) -> Credential:
        """Exchange an authorization code for a credential and store it.

        Args:
            code: The code the service appended to the redirect URI.

        Returns:
            The new credential.

        Raises:
            UnauthorizedError: If the exchange fails for any reason.
        """
        params = {
            "type": "web_server",
            "client_id": self._config.client_id,
            "redirect_uri": self._config.redirect_uri,
            "client_secret": self._config.client_secret,
            "code": code,
        }
        credential = self._exchange(params=params)
        self._tokens.replace(credential)
        logger.debug("Acquired a new access token")
        return credential

    def refresh(self) -> Credential:
        """Obtain a new access token with the stored refresh token.

        The stored credential is replaced wholesale. When the response does
        not repeat the refresh token, the previous one is carried over into
        the new credential.

        Returns:
            The new credential.

        Raises:
            UnauthorizedError: If no refresh token is stored or the
                exchange fails for any reason.
        """
        refresh_token = self._tokens.refresh_token
        if not refresh_token:
            msg = "Cannot refresh the access token: no refresh token is stored."
            raise UnauthorizedError(msg)
        data = {
            "type": "refresh",
            "client_id": self._config.client_id,
            "redirect_uri": self._config.redirect_uri,
            "client_secret": self._config.client_secret,
            "refresh_token": refresh_token,
        }
        credential = self._exchange(data=data)
        if not credential.refresh_token:
            credential = Credential(
                access_token=credential.access_token,
                refresh_token=refresh_token,
                raw=credential.raw,
            )
        self._tokens.replace(credential)
        logger.debug("Refreshed the access token")
        return credential

    def _exchange(
        self,
        *,
        params: Mapping[str, str] | None = None,
        data: Mapping[str, str] | None = None,
    ) -> Credential:
        url = self._config.token_endpoint
        try:
            response = self._client.post(
                url,
                params=params,
                data=data,
                headers={"User-Agent": self._config.user_agent},
            )
        except httpx.RequestError as exc:
            logger.debug(f"Token exchange with {url} failed: {type(exc).__name__}: {exc}")
            msg = f"Token exchange failed: {exc}"
            raise UnauthorizedError(msg, method="POST", url=url) from exc

        if not response.is_success:
            logger.debug(f"Token exchange with {url} returned status {response.status_code}")
            msg = f"Token exchange was rejected with status {response.status_code}"
            raise UnauthorizedError(
                msg, method="POST", url=url, status_code=response.status_code
            )

        try:
            fields = {key: value.raw for key, value in decode_json(response.text).as_dict().items()}
        except (ValueError, JsonShapeError) as exc:
            msg = "Token exchange returned a malformed response"
            raise UnauthorizedError(
                msg, method="POST", url=url, status_code=response.status_code
            ) from exc

        credential = Credential.from_mapping(fields)
        if not credential.is_authenticated:
            msg = "Token exchange response did not contain an access token"
            raise UnauthorizedError(
                msg, method="POST", url=url, status_code=response.status_code
            )
        return credential
