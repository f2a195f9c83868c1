"""
Exception Hierarchy

All errors raised by GraphenKG derive from GraphenError, which carries a
human-readable message plus optional structured details for logging.

Categories:
    ConfigurationError: Degenerate configuration (fatal, raised eagerly)
    DocumentTooLargeError: Chunk count / token estimate over the ceilings
    ParseError, UnsupportedFileTypeError, UploadValidationError: Format adapters
    RetryableError: Failures the CallDispatcher may retry
        RateLimitedError: HTTP 429 style throttling
        DispatchTimeoutError: An attempt exceeded its timeout
"""

from __future__ import annotations

import re
from typing import Any

_TIMEOUT_MESSAGE = re.compile(r"timeout|timed out", re.IGNORECASE)


class GraphenError(Exception):
    """Base exception for all GraphenKG errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ConfigurationError(GraphenError):
    """Raised when configuration values cannot work (e.g. chunk_size <= 0)."""


class DocumentTooLargeError(GraphenError):
    """Raised by the size guard before any extraction call is made."""


class ParseError(GraphenError):
    """Raised when a format adapter cannot produce text from the upload."""


class UnsupportedFileTypeError(ParseError):
    """Raised when no adapter exists for a file type."""

    def __init__(self, file_type: str) -> None:
        super().__init__(
            f"Unsupported file type: {file_type}",
            {"file_type": file_type},
        )


class UploadValidationError(GraphenError):
    """Raised when an uploaded file fails extension, size, or MIME checks."""


class RetryableError(GraphenError):
    """A failure that is safe to retry (rate limiting, timeouts)."""


class RateLimitedError(RetryableError):
    """The remote service asked us to slow down (HTTP 429)."""


class DispatchTimeoutError(RetryableError):
    """A single dispatched attempt exceeded its timeout."""

    def __init__(self, timeout: float) -> None:
        super().__init__(
            f"LLM request timeout after {timeout:g}s",
            {"timeout": timeout},
        )


def is_retryable(error: BaseException) -> bool:
    """
    Classify a failure as retryable.

    Rate-limit responses (status 429) and timeouts are retryable; every
    other failure should propagate immediately.
    """
    if isinstance(error, RetryableError):
        return True
    if isinstance(error, TimeoutError):
        return True

    status = getattr(error, "status_code", None)
    if status is None:
        status = getattr(error, "status", None)
    if isinstance(status, int):
        return status == 429

    return bool(_TIMEOUT_MESSAGE.search(str(error)))
