r"""Configuration dataclass and defaults for BasecampClient.

This module provides the service URLs, the protocol constants shared by
the executor and the token exchange, and the ``ClientConfig`` dataclass
describing one registered application.
"""

from __future__ import annotations

__all__ = [
    "ClientConfig",
    "DEFAULT_API_URL",
    "DEFAULT_CONTENT_TYPE",
    "DEFAULT_LAUNCHPAD_URL",
    "DEFAULT_TIMEOUT",
    "TOKEN_EXPIRED_MARKER",
]

from dataclasses import dataclass, replace
from typing import Any

from bcxapi.core.validation import validate_required, validate_timeout

# Default timeout in seconds for the underlying httpx.Client
# Only used when bcxapi creates the client itself
DEFAULT_TIMEOUT = 10.0

# Resource URL template, formatted with the account id and the resource path
DEFAULT_API_URL = "https://basecamp.com/{account_id}/api/v1/{path}.json"

# Host of the OAuth authorization, token and account-listing endpoints
DEFAULT_LAUNCHPAD_URL = "https://launchpad.37signals.com"

# Marker found in the WWW-Authenticate header of a 401 when the access
# token is merely stale
TOKEN_EXPIRED_MARKER = 'error="token_expired"'

# Content type used for uploads whose extension is unknown
DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class ClientConfig:
    """Configuration of one application registered with the service.

    Args:
        client_id: The client id issued for the application.
        client_secret: The client secret issued for the application.
        redirect_uri: The redirect URI registered for the application;
            it must match exactly.
        user_agent: Application name and contact (URL or email). It is
            sent as the ``User-Agent`` header of every exchange, which the
            service requires.
        timeout: Timeout passed to the ``httpx.Client`` that bcxapi
            creates when none is supplied. Must be > 0.
        api_url: Resource URL template with ``{account_id}`` and
            ``{path}`` placeholders.
        launchpad_url: Base URL of the OAuth and account endpoints.

    Raises:
        ValueError: If an identity field is blank or timeout is not positive.

    Example:
        ```pycon
        >>> from bcxapi.core.config import ClientConfig
        >>> config = ClientConfig(
        ...     client_id="id",
        ...     client_secret="secret",
        ...     redirect_uri="https://example.com/callback",
        ...     user_agent="MyApp (ops@example.com)",
        ... )
        >>> config.timeout
        10.0
        >>> config.merge(timeout=30.0).timeout
        30.0

        ```
    """

    client_id: str
    client_secret: str
    redirect_uri: str
    user_agent: str
    timeout: float = DEFAULT_TIMEOUT
    api_url: str = DEFAULT_API_URL
    launchpad_url: str = DEFAULT_LAUNCHPAD_URL

    def __post_init__(self) -> None:
        validate_required(
            client_id=self.client_id,
            client_secret=self.client_secret,
            redirect_uri=self.redirect_uri,
            user_agent=self.user_agent,
        )
        validate_timeout(self.timeout)

    @property
    def authorization_endpoint(self) -> str:
        return f"{self.launchpad_url.rstrip('/')}/authorization/new"

    @property
    def token_endpoint(self) -> str:
        return f"{self.launchpad_url.rstrip('/')}/authorization/token"

    @property
    def accounts_endpoint(self) -> str:
        return f"{self.launchpad_url.rstrip('/')}/authorization.json"

    def resource_url(self, account_id: int, path: str) -> str:
        """Build the URL of a resource of an account.

        Example:
            ```pycon
            >>> from bcxapi.core.config import ClientConfig
            >>> config = ClientConfig("id", "secret", "https://example.com/cb", "MyApp")
            >>> config.resource_url(42, "projects/7/todolists")
            'https://basecamp.com/42/api/v1/projects/7/todolists.json'

            ```
        """
        return self.api_url.format(account_id=account_id, path=path)

    def merge(self, **overrides: Any) -> ClientConfig:
        """Create a new config with specified parameters overridden.

        Only non-None override values are applied; the original config is
        left unchanged.
        """
        filtered_overrides = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **filtered_overrides)
