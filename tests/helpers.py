r"""Shared test helpers for building responses.

Tests use real ``httpx.Response`` objects so that header lookups are
case-insensitive and ``is_success`` behaves as in production.
"""

from __future__ import annotations

__all__ = [
    "API_URL",
    "ACCOUNTS_URL",
    "TEST_USER_AGENT",
    "TOKEN_URL",
    "make_response",
    "parse_multipart",
]

import base64
import json
from typing import Any

import httpx

API_URL = "https://basecamp.com/999/api/v1"
ACCOUNTS_URL = "https://launchpad.37signals.com/authorization.json"
TOKEN_URL = "https://launchpad.37signals.com/authorization/token"
TEST_USER_AGENT = "TestApp (tests@example.com)"


def make_response(
    status_code: int = 200,
    *,
    json_body: Any = None,
    text: str | None = None,
    headers: dict[str, str] | None = None,
) -> httpx.Response:
    """Create an ``httpx.Response``.

    Args:
        status_code: The status code.
        json_body: A JSON-compatible body; ignored when ``text`` is given.
        text: A raw body.
        headers: The response headers.

    Returns:
        The response.
    """
    if text is None:
        text = "" if json_body is None else json.dumps(json_body)
    return httpx.Response(status_code=status_code, text=text, headers=headers)


def parse_multipart(body: bytes) -> tuple[dict[str, str], bytes]:
    """Split a single-part multipart body into its part headers and its
    decoded content."""
    lines = body.split(b"\r\n")
    separator = lines.index(b"")
    headers = {}
    for line in lines[1:separator]:
        name, _, value = line.decode().partition(": ")
        headers[name] = value
    return headers, base64.b64decode(lines[separator + 1])
