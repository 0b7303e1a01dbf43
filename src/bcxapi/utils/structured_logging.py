r"""Structured logging utilities for machine-readable log output.

bcxapi logs through the standard ``logging`` module under the ``bcxapi``
logger hierarchy. This module adds an opt-in JSON formatter, correlation
IDs to tie together the exchanges issued for one logical operation, and
``log_exchange`` which the executor calls once per completed exchange.

Example:
    Enable structured logging for bcxapi:

    ```python
    import logging
    from bcxapi.utils.structured_logging import StructuredFormatter, set_correlation_id

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())
    logger = logging.getLogger("bcxapi")
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)

    set_correlation_id("sync-job-42")
    ```
"""

from __future__ import annotations

__all__ = [
    "StructuredFormatter",
    "clear_correlation_id",
    "get_correlation_id",
    "log_exchange",
    "set_correlation_id",
]

import contextvars
import json
import logging
import time
from typing import Any

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "bcxapi_correlation_id", default=None
)

# Attributes every LogRecord carries; anything else came in through ``extra``
_RESERVED_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


def get_correlation_id() -> str | None:
    """Get the correlation ID of the current context, if any."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID for the current context.

    Example:
        ```pycon
        >>> from bcxapi.utils.structured_logging import (
        ...     clear_correlation_id,
        ...     get_correlation_id,
        ...     set_correlation_id,
        ... )
        >>> set_correlation_id("job-1")
        >>> get_correlation_id()
        'job-1'
        >>> clear_correlation_id()
        >>> get_correlation_id() is None
        True

        ```
    """
    _correlation_id.set(correlation_id)


def clear_correlation_id() -> None:
    """Clear the correlation ID for the current context."""
    _correlation_id.set(None)


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Each record becomes one JSON object with the fields ``timestamp``
    (ISO 8601, UTC), ``level``, ``logger``, ``message``, ``module``,
    ``function`` and ``line``, plus ``correlation_id`` when one is set,
    ``exception`` when the record carries exception info, and every field
    passed through ``extra``.

    Example:
        ```pycon
        >>> import json, logging
        >>> from io import StringIO
        >>> from bcxapi.utils.structured_logging import StructuredFormatter
        >>> stream = StringIO()
        >>> handler = logging.StreamHandler(stream)
        >>> handler.setFormatter(StructuredFormatter())
        >>> logger = logging.getLogger("doctest_structured")
        >>> logger.addHandler(handler)
        >>> logger.warning("Cache miss", extra={"cache_key": "abc"})
        >>> json.loads(stream.getvalue())["cache_key"]
        'abc'

        ```
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        correlation_id = get_correlation_id()
        if correlation_id is not None:
            log_data["correlation_id"] = correlation_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        return json.dumps(log_data, default=str)

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:  # noqa: N802
        """Format the record timestamp as ISO 8601 with millisecond
        precision; ``datefmt`` is ignored."""
        return (
            time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(record.created))
            + f".{int(record.msecs):03d}Z"
        )


def log_exchange(
    logger: logging.Logger,
    *,
    method: str,
    url: str,
    outcome: str,
    status_code: int | None = None,
    level: int = logging.DEBUG,
) -> None:
    """Log one completed exchange with structured fields.

    Args:
        logger: Logger to use.
        method: The HTTP method (``GET``, ``HEAD``, ``POST``).
        url: The requested URL. Never include credentials in it.
        outcome: The name of the outcome variant (e.g. ``"Success"``).
        status_code: The HTTP status code, if a response was received.
        level: Log level, ``DEBUG`` by default.

    Example:
        ```pycon
        >>> import json, logging
        >>> from io import StringIO
        >>> from bcxapi.utils.structured_logging import StructuredFormatter, log_exchange
        >>> stream = StringIO()
        >>> handler = logging.StreamHandler(stream)
        >>> handler.setFormatter(StructuredFormatter())
        >>> logger = logging.getLogger("doctest_exchange")
        >>> logger.addHandler(handler)
        >>> logger.setLevel(logging.DEBUG)
        >>> log_exchange(logger, method="GET", url="https://x/p.json", outcome="Success", status_code=200)
        >>> json.loads(stream.getvalue())["outcome"]
        'Success'

        ```
    """
    if not logger.isEnabledFor(level):
        return
    status = "no response" if status_code is None else f"status {status_code}"
    logger.log(
        level,
        f"{method} {url} completed with {status}: {outcome}",
        extra={
            "http_method": method,
            "url": url,
            "status_code": status_code,
            "outcome": outcome,
        },
    )
