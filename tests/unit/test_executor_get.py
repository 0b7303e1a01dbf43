r"""Unit tests for the GET path of RequestExecutor.

This file covers endpoint validation, authentication, the conditional
revalidation of cached responses and the classification of responses.
"""

from __future__ import annotations

import logging
from unittest.mock import Mock

import httpx
import pytest

from bcxapi.auth import Credential, TokenStore
from bcxapi.cache import CacheEntry, MemoryResponseCache, ResponseCache, fingerprint
from bcxapi.exceptions import InvalidEndpointError
from bcxapi.executor import RequestExecutor
from bcxapi.json_value import JsonValue
from bcxapi.outcomes import (
    Forbidden,
    GeneralFailure,
    NotModified,
    RateLimited,
    Success,
    TokenExpired,
    TransportFailure,
    Unauthorized,
)
from tests.helpers import API_URL, TEST_USER_AGENT, make_response

TEST_URL = f"{API_URL}/projects.json"
PROJECTS = [{"id": 1, "name": "Launch"}]
LAST_MODIFIED = "Wed, 21 Oct 2015 07:28:00 GMT"


def expected_headers(**extra: str) -> dict[str, str]:
    return {"Authorization": "Bearer access-1", "User-Agent": TEST_USER_AGENT, **extra}


###################################################
#     Tests for RequestExecutor preconditions     #
###################################################


def test_executor_requires_user_agent(mock_client: httpx.Client, tokens: TokenStore) -> None:
    with pytest.raises(ValueError, match="user_agent must be a non-empty string"):
        RequestExecutor(mock_client, tokens, user_agent="")


def test_executor_creates_own_cache(mock_client: httpx.Client, tokens: TokenStore) -> None:
    first = RequestExecutor(mock_client, tokens, user_agent=TEST_USER_AGENT)
    second = RequestExecutor(mock_client, tokens, user_agent=TEST_USER_AGENT)
    assert isinstance(first.cache, MemoryResponseCache)
    assert first.cache is not second.cache


@pytest.mark.parametrize(
    "url",
    [
        f"{API_URL}/projects",
        f"{API_URL}/projects.xml",
        f"{API_URL}/projects?format=.json",
        "",
    ],
)
def test_get_invalid_endpoint(
    executor: RequestExecutor, mock_client: httpx.Client, url: str
) -> None:
    with pytest.raises(InvalidEndpointError, match="URLs must end in .json"):
        executor.get(url)

    assert mock_client.method_calls == []


@pytest.mark.parametrize(
    "url", [f"{API_URL}/projects.JSON", f"{API_URL}/events.json?since=2012-03-24T11:00:00-06:00"]
)
def test_get_valid_endpoint_variants(
    executor: RequestExecutor, mock_client: httpx.Client, url: str
) -> None:
    mock_client.get = Mock(return_value=make_response(200, json_body=[]))

    assert executor.get(url) == Success(JsonValue([]))


def test_get_unauthenticated(mock_client: httpx.Client, cache: MemoryResponseCache) -> None:
    executor = RequestExecutor(mock_client, TokenStore(), user_agent=TEST_USER_AGENT, cache=cache)

    assert executor.get(TEST_URL) == Unauthorized()
    assert mock_client.method_calls == []


def test_get_malformed_credential_unauthenticated(mock_client: httpx.Client) -> None:
    tokens = TokenStore(Credential(access_token=None))  # type: ignore[arg-type]
    executor = RequestExecutor(mock_client, tokens, user_agent=TEST_USER_AGENT)

    assert executor.get(TEST_URL) == Unauthorized()
    assert mock_client.method_calls == []


def test_get_invalid_endpoint_checked_before_authentication(mock_client: httpx.Client) -> None:
    executor = RequestExecutor(mock_client, TokenStore(), user_agent=TEST_USER_AGENT)

    with pytest.raises(InvalidEndpointError):
        executor.get(f"{API_URL}/projects")


#######################################
#     Tests for successful GETs       #
#######################################


def test_get_success(executor: RequestExecutor, mock_client: httpx.Client) -> None:
    mock_client.get = Mock(return_value=make_response(200, json_body=PROJECTS))

    outcome = executor.get(TEST_URL)

    assert outcome == Success(JsonValue(PROJECTS))
    assert outcome.location is None
    assert outcome.data[0]["name"].as_str() == "Launch"
    mock_client.get.assert_called_once_with(TEST_URL, headers=expected_headers())


def test_get_success_empty_body(executor: RequestExecutor, mock_client: httpx.Client) -> None:
    mock_client.get = Mock(return_value=make_response(200))

    outcome = executor.get(TEST_URL)

    assert isinstance(outcome, Success)
    assert outcome.data.is_null


def test_get_success_invalid_json(executor: RequestExecutor, mock_client: httpx.Client) -> None:
    mock_client.get = Mock(return_value=make_response(200, text="<html>oops</html>"))

    outcome = executor.get(TEST_URL)

    assert isinstance(outcome, GeneralFailure)
    assert outcome.status_code == 200
    assert "not valid JSON" in outcome.message


def test_get_invalid_json_not_cached(
    executor: RequestExecutor, mock_client: httpx.Client, cache: MemoryResponseCache
) -> None:
    mock_client.get = Mock(
        return_value=make_response(200, text="<html>", headers={"ETag": '"v1"'})
    )

    executor.get(TEST_URL)

    assert len(cache) == 0


##########################################
#     Tests for conditional caching      #
##########################################


def test_get_stores_entry_with_etag(
    executor: RequestExecutor, mock_client: httpx.Client, cache: MemoryResponseCache
) -> None:
    mock_client.get = Mock(
        return_value=make_response(200, json_body=PROJECTS, headers={"ETag": '"v1"'})
    )

    executor.get(TEST_URL)

    entry = cache.get(fingerprint("access-1", TEST_URL))
    assert entry is not None
    assert entry.etag == '"v1"'
    assert entry.last_modified is None
    assert entry.body == '[{"id": 1, "name": "Launch"}]'


def test_get_stores_entry_with_last_modified(
    executor: RequestExecutor, mock_client: httpx.Client, cache: MemoryResponseCache
) -> None:
    mock_client.get = Mock(
        return_value=make_response(200, json_body=PROJECTS, headers={"Last-Modified": LAST_MODIFIED})
    )

    executor.get(TEST_URL)

    entry = cache.get(fingerprint("access-1", TEST_URL))
    assert entry == CacheEntry(body='[{"id": 1, "name": "Launch"}]', last_modified=LAST_MODIFIED)


def test_get_not_modified_after_cached_get(
    executor: RequestExecutor, mock_client: httpx.Client
) -> None:
    mock_client.get = Mock(
        return_value=make_response(200, json_body=PROJECTS, headers={"ETag": '"v1"'})
    )
    mock_client.head = Mock(return_value=make_response(304))

    first = executor.get(TEST_URL)
    second = executor.get(TEST_URL)

    assert isinstance(second, NotModified)
    assert second.data == first.data
    assert second.ok
    mock_client.get.assert_called_once()
    mock_client.head.assert_called_once_with(
        TEST_URL, headers=expected_headers(**{"If-None-Match": '"v1"'})
    )


def test_get_probe_sends_both_validators(
    executor: RequestExecutor, mock_client: httpx.Client, cache: MemoryResponseCache
) -> None:
    cache.set(
        fingerprint("access-1", TEST_URL),
        CacheEntry(body="[]", etag='"v1"', last_modified=LAST_MODIFIED),
    )
    mock_client.head = Mock(return_value=make_response(304))

    assert executor.get(TEST_URL) == NotModified(JsonValue([]))
    mock_client.head.assert_called_once_with(
        TEST_URL,
        headers=expected_headers(
            **{"If-Modified-Since": LAST_MODIFIED, "If-None-Match": '"v1"'}
        ),
    )
    mock_client.get.assert_not_called()


def test_get_cache_key_ignores_url_case(
    executor: RequestExecutor, mock_client: httpx.Client, cache: MemoryResponseCache
) -> None:
    cache.set(fingerprint("access-1", TEST_URL), CacheEntry(body="[]", etag='"v1"'))
    mock_client.head = Mock(return_value=make_response(304))

    assert isinstance(executor.get("https://Basecamp.com/999/API/v1/Projects.JSON"), NotModified)


def test_get_cache_is_per_access_token(
    mock_client: httpx.Client, cache: MemoryResponseCache
) -> None:
    cache.set(fingerprint("other-token", TEST_URL), CacheEntry(body="[]", etag='"v1"'))
    executor = RequestExecutor(
        mock_client, TokenStore({"access_token": "access-1"}), user_agent=TEST_USER_AGENT, cache=cache
    )
    mock_client.get = Mock(return_value=make_response(200, json_body=PROJECTS))

    assert isinstance(executor.get(TEST_URL), Success)
    mock_client.head.assert_not_called()


def test_get_modified_resource_refetched(
    executor: RequestExecutor, mock_client: httpx.Client, cache: MemoryResponseCache
) -> None:
    cache.set(fingerprint("access-1", TEST_URL), CacheEntry(body="[]", etag='"v1"'))
    mock_client.head = Mock(return_value=make_response(200))
    mock_client.get = Mock(
        return_value=make_response(200, json_body=PROJECTS, headers={"ETag": '"v2"'})
    )

    outcome = executor.get(TEST_URL)

    assert outcome == Success(JsonValue(PROJECTS))
    assert cache.get(fingerprint("access-1", TEST_URL)).etag == '"v2"'


def test_get_without_validators_not_cached(
    executor: RequestExecutor, mock_client: httpx.Client, cache: MemoryResponseCache
) -> None:
    mock_client.get = Mock(return_value=make_response(200, json_body=PROJECTS))

    executor.get(TEST_URL)
    executor.get(TEST_URL)

    assert len(cache) == 0
    assert mock_client.get.call_count == 2
    mock_client.head.assert_not_called()


def test_get_blank_body_not_cached(
    executor: RequestExecutor, mock_client: httpx.Client, cache: MemoryResponseCache
) -> None:
    mock_client.get = Mock(return_value=make_response(200, headers={"ETag": '"v1"'}))

    executor.get(TEST_URL)

    assert len(cache) == 0


def test_get_entry_without_validator_skips_probe(
    executor: RequestExecutor, mock_client: httpx.Client, cache: MemoryResponseCache
) -> None:
    cache.set(fingerprint("access-1", TEST_URL), CacheEntry(body="[]"))
    mock_client.get = Mock(return_value=make_response(200, json_body=PROJECTS))

    assert executor.get(TEST_URL) == Success(JsonValue(PROJECTS))
    mock_client.head.assert_not_called()


def test_get_probe_transport_error_falls_through(
    executor: RequestExecutor, mock_client: httpx.Client, cache: MemoryResponseCache
) -> None:
    cache.set(fingerprint("access-1", TEST_URL), CacheEntry(body="[]", etag='"v1"'))
    mock_client.head = Mock(side_effect=httpx.ConnectError("Connection refused"))
    mock_client.get = Mock(return_value=make_response(200, json_body=PROJECTS))

    assert executor.get(TEST_URL) == Success(JsonValue(PROJECTS))
    mock_client.get.assert_called_once()


def make_transport_client(
    methods: list[str], headers: list[tuple[bytes, bytes]]
) -> httpx.Client:
    def handler(request: httpx.Request) -> httpx.Response:
        methods.append(request.method)
        if request.method == "HEAD":
            return httpx.Response(304)
        return httpx.Response(200, headers=headers, json=PROJECTS)

    return httpx.Client(transport=httpx.MockTransport(handler))


def test_get_non_ascii_cached_validator_falls_through(
    tokens: TokenStore, cache: MemoryResponseCache
) -> None:
    cache.set(fingerprint("access-1", TEST_URL), CacheEntry(body="[]", etag='W/"café"'))
    methods: list[str] = []
    with make_transport_client(methods, []) as client:
        executor = RequestExecutor(client, tokens, user_agent=TEST_USER_AGENT, cache=cache)

        assert executor.get(TEST_URL) == Success(JsonValue(PROJECTS))
    assert methods == ["GET"]


def test_get_non_ascii_validator_not_cached(tokens: TokenStore, cache: MemoryResponseCache) -> None:
    methods: list[str] = []
    etag = 'W/"café"'.encode()
    with make_transport_client(methods, [(b"ETag", etag)]) as client:
        executor = RequestExecutor(client, tokens, user_agent=TEST_USER_AGENT, cache=cache)

        assert executor.get(TEST_URL) == Success(JsonValue(PROJECTS))
        assert executor.get(TEST_URL) == Success(JsonValue(PROJECTS))
    assert methods == ["GET", "GET"]
    assert cache.get(fingerprint("access-1", TEST_URL)) is None


def test_get_non_ascii_etag_keeps_ascii_last_modified(
    tokens: TokenStore, cache: MemoryResponseCache
) -> None:
    methods: list[str] = []
    headers = [(b"ETag", 'W/"café"'.encode()), (b"Last-Modified", LAST_MODIFIED.encode())]
    with make_transport_client(methods, headers) as client:
        executor = RequestExecutor(client, tokens, user_agent=TEST_USER_AGENT, cache=cache)

        assert executor.get(TEST_URL) == Success(JsonValue(PROJECTS))
        assert executor.get(TEST_URL) == NotModified(JsonValue(PROJECTS))
    assert methods == ["GET", "HEAD"]
    entry = cache.get(fingerprint("access-1", TEST_URL))
    assert entry is not None
    assert entry.etag is None
    assert entry.last_modified == LAST_MODIFIED


def test_get_undecodable_cached_body_falls_through(
    executor: RequestExecutor, mock_client: httpx.Client, cache: MemoryResponseCache
) -> None:
    cache.set(fingerprint("access-1", TEST_URL), CacheEntry(body="{broken", etag='"v1"'))
    mock_client.head = Mock(return_value=make_response(304))
    mock_client.get = Mock(return_value=make_response(200, json_body=PROJECTS))

    assert executor.get(TEST_URL) == Success(JsonValue(PROJECTS))


def test_get_cache_lookup_failure_ignored(mock_client: httpx.Client, tokens: TokenStore) -> None:
    cache = Mock(spec=ResponseCache)
    cache.get.side_effect = RuntimeError("cache backend down")
    executor = RequestExecutor(mock_client, tokens, user_agent=TEST_USER_AGENT, cache=cache)
    mock_client.get = Mock(return_value=make_response(200, json_body=PROJECTS))

    assert executor.get(TEST_URL) == Success(JsonValue(PROJECTS))
    mock_client.head.assert_not_called()


def test_get_cache_store_failure_ignored(mock_client: httpx.Client, tokens: TokenStore) -> None:
    cache = Mock(spec=ResponseCache)
    cache.get.return_value = None
    cache.set.side_effect = RuntimeError("cache backend down")
    executor = RequestExecutor(mock_client, tokens, user_agent=TEST_USER_AGENT, cache=cache)
    mock_client.get = Mock(
        return_value=make_response(200, json_body=PROJECTS, headers={"ETag": '"v1"'})
    )

    assert executor.get(TEST_URL) == Success(JsonValue(PROJECTS))
    cache.set.assert_called_once()


##########################################
#     Tests for failure classification   #
##########################################


def test_get_rate_limited(executor: RequestExecutor, mock_client: httpx.Client) -> None:
    mock_client.get = Mock(return_value=make_response(429, headers={"Retry-After": "30"}))

    outcome = executor.get(TEST_URL)

    assert outcome == RateLimited(retry_after=30)
    assert outcome.retry_after == 30


def test_get_rate_limited_without_retry_after(
    executor: RequestExecutor, mock_client: httpx.Client
) -> None:
    mock_client.get = Mock(return_value=make_response(429))

    assert executor.get(TEST_URL) == RateLimited(retry_after=None)


def test_get_token_expired(executor: RequestExecutor, mock_client: httpx.Client) -> None:
    mock_client.get = Mock(
        return_value=make_response(
            401, headers={"WWW-Authenticate": 'Bearer realm="Basecamp", error="token_expired"'}
        )
    )

    assert executor.get(TEST_URL) == TokenExpired()


def test_get_unauthorized(executor: RequestExecutor, mock_client: httpx.Client) -> None:
    mock_client.get = Mock(
        return_value=make_response(401, headers={"WWW-Authenticate": 'Bearer realm="Basecamp"'})
    )

    assert executor.get(TEST_URL) == Unauthorized()


def test_get_forbidden(executor: RequestExecutor, mock_client: httpx.Client) -> None:
    mock_client.get = Mock(return_value=make_response(403))

    assert executor.get(TEST_URL) == Forbidden()


@pytest.mark.parametrize("status_code", [400, 404, 500, 503])
def test_get_general_failure(
    executor: RequestExecutor, mock_client: httpx.Client, status_code: int
) -> None:
    mock_client.get = Mock(return_value=make_response(status_code))

    outcome = executor.get(TEST_URL)

    assert isinstance(outcome, GeneralFailure)
    assert outcome.status_code == status_code
    assert str(status_code) in outcome.message


def test_get_failure_not_cached(
    executor: RequestExecutor, mock_client: httpx.Client, cache: MemoryResponseCache
) -> None:
    mock_client.get = Mock(return_value=make_response(500, text="[]", headers={"ETag": '"v1"'}))

    executor.get(TEST_URL)

    assert len(cache) == 0


@pytest.mark.parametrize(
    "error",
    [
        httpx.ConnectError("Connection refused"),
        httpx.ReadTimeout("timed out"),
        httpx.RemoteProtocolError("peer closed connection"),
    ],
)
def test_get_transport_failure(
    executor: RequestExecutor, mock_client: httpx.Client, error: httpx.RequestError
) -> None:
    mock_client.get = Mock(side_effect=error)

    outcome = executor.get(TEST_URL)

    assert isinstance(outcome, TransportFailure)
    assert type(error).__name__ in outcome.message
    assert TEST_URL in outcome.message


def test_get_logs_exchange(
    executor: RequestExecutor, mock_client: httpx.Client, caplog: pytest.LogCaptureFixture
) -> None:
    mock_client.get = Mock(return_value=make_response(200, json_body=PROJECTS))

    with caplog.at_level(logging.DEBUG, logger="bcxapi.executor"):
        executor.get(TEST_URL)

    assert f"GET {TEST_URL} completed with status 200: Success" in caplog.text
    assert "access-1" not in caplog.text
