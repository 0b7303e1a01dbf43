from __future__ import annotations

from unittest.mock import Mock

import httpx
import pytest

from bcxapi.auth import TokenStore
from bcxapi.cache import MemoryResponseCache
from bcxapi.core.config import ClientConfig
from bcxapi.executor import RequestExecutor
from tests.helpers import TEST_USER_AGENT


@pytest.fixture
def mock_client() -> httpx.Client:
    """Create a mock httpx.Client for testing."""
    return Mock(spec=httpx.Client)


@pytest.fixture
def config() -> ClientConfig:
    """Create a ClientConfig for a test application."""
    return ClientConfig(
        client_id="client-id",
        client_secret="client-secret",
        redirect_uri="https://example.com/callback",
        user_agent=TEST_USER_AGENT,
    )


@pytest.fixture
def tokens() -> TokenStore:
    """Create a TokenStore holding an authenticated credential."""
    return TokenStore({"access_token": "access-1", "refresh_token": "refresh-1"})


@pytest.fixture
def cache() -> MemoryResponseCache:
    """Create an empty in-memory response cache."""
    return MemoryResponseCache()


@pytest.fixture
def executor(
    mock_client: httpx.Client, tokens: TokenStore, cache: MemoryResponseCache
) -> RequestExecutor:
    """Create a RequestExecutor wired to the mock client."""
    return RequestExecutor(mock_client, tokens, user_agent=TEST_USER_AGENT, cache=cache)
