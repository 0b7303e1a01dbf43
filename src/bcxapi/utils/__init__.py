r"""Utility functions shared by the executor and the uploader.

This package provides the failure classifier, Retry-After parsing, the
upload content-type lookup and structured logging helpers.
"""

from __future__ import annotations

__all__ = [
    "StructuredFormatter",
    "classify_failure",
    "clear_correlation_id",
    "content_type_for",
    "get_correlation_id",
    "is_token_expired",
    "log_exchange",
    "parse_retry_after",
    "set_correlation_id",
]

from bcxapi.utils.classifier import classify_failure, is_token_expired
from bcxapi.utils.content_type import content_type_for
from bcxapi.utils.retry_after import parse_retry_after
from bcxapi.utils.structured_logging import (
    StructuredFormatter,
    clear_correlation_id,
    get_correlation_id,
    log_exchange,
    set_correlation_id,
)
