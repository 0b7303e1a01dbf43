r"""Response cache used for conditional GET requests.

A cache maps a fingerprint of (access token, URL) to the raw body of the
last successful response plus its validators (``ETag`` and
``Last-Modified``). Caching is an optimization only: the executor treats
every provider failure as a miss.

Example:
    ```pycon
    >>> from bcxapi.cache import CacheEntry, MemoryResponseCache, fingerprint
    >>> cache = MemoryResponseCache()
    >>> key = fingerprint("token", "https://basecamp.com/1/api/v1/projects.json")
    >>> cache.set(key, CacheEntry(body="[]", etag='"abc"'))
    >>> cache.get(key).etag
    '"abc"'

    ```
"""

from __future__ import annotations

__all__ = ["CacheEntry", "MemoryResponseCache", "ResponseCache", "fingerprint"]

import hashlib
import logging
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass

logger: logging.Logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """A cached response body and its validators.

    Attributes:
        body: The raw response body.
        etag: The ``ETag`` response header, if any.
        last_modified: The ``Last-Modified`` response header, if any.
    """

    body: str
    etag: str | None = None
    last_modified: str | None = None

    @property
    def has_validator(self) -> bool:
        return bool(self.etag) or bool(self.last_modified)


def fingerprint(access_token: str, url: str) -> str:
    """Compute the cache key of a request.

    The URL is lower-cased so that case variants of the same resource share
    one entry; the access token keeps users of a shared cache apart.

    Args:
        access_token: The bearer token the request is sent with.
        url: The request URL.

    Returns:
        A SHA-256 hex digest.

    Example:
        ```pycon
        >>> from bcxapi.cache import fingerprint
        >>> fingerprint("t", "https://X/a.json") == fingerprint("t", "https://x/A.JSON")
        True
        >>> fingerprint("t1", "https://x/a.json") == fingerprint("t2", "https://x/a.json")
        False

        ```
    """
    return hashlib.sha256((access_token + url.lower()).encode("utf-8")).hexdigest()


class ResponseCache(ABC):
    """Abstract base class for response cache providers.

    Implementations may evict entries at will; a missing entry is never an
    error. No eviction policy or locking discipline is required.
    """

    @abstractmethod
    def get(self, key: str) -> CacheEntry | None:
        """Return the entry stored under ``key``, or ``None``."""

    @abstractmethod
    def set(self, key: str, entry: CacheEntry) -> None:
        """Store ``entry`` under ``key``, replacing any previous entry."""


class MemoryResponseCache(ResponseCache):
    r"""In-process response cache.

    Each instance owns its storage, so two clients never share entries
    unless they are handed the same cache.

    Args:
        max_entries: Optional capacity. When set, the least recently used
            entry is evicted once the capacity is exceeded. Must be > 0.

    Raises:
        ValueError: If max_entries is not positive.

    Example:
        ```pycon
        >>> from bcxapi.cache import CacheEntry, MemoryResponseCache
        >>> cache = MemoryResponseCache(max_entries=1)
        >>> cache.set("a", CacheEntry(body="1", etag="x"))
        >>> cache.set("b", CacheEntry(body="2", etag="y"))
        >>> cache.get("a") is None
        True
        >>> len(cache)
        1

        ```
    """

    def __init__(self, max_entries: int | None = None) -> None:
        if max_entries is not None and max_entries <= 0:
            msg = f"max_entries must be > 0, got {max_entries}"
            raise ValueError(msg)
        self._max_entries = max_entries
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()

    def get(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is not None:
            self._entries.move_to_end(key)
        return entry

    def set(self, key: str, entry: CacheEntry) -> None:
        self._entries[key] = entry
        self._entries.move_to_end(key)
        if self._max_entries is not None:
            while len(self._entries) > self._max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Evicted cache entry {evicted}")

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
