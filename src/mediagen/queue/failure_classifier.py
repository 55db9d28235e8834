"""Deterministic failure classification for queue retry policy."""

from __future__ import annotations

import httpx

from mediagen.queue.models import ClassifiedError, ErrorCategory

FAILURE_CLASSIFIER_VERSION = 1

RATE_LIMIT_DELAY_MS = 60_000
NETWORK_DELAY_MS = 30_000
UNKNOWN_DELAY_MS = 30_000

_RATE_LIMIT_PATTERNS: tuple[str, ...] = (
    "429",
    "too many requests",
    "rate limit",
)
_QUOTA_PATTERNS: tuple[str, ...] = (
    "quota",
    "resource exhausted",
    "resource_exhausted",
)
_NETWORK_PATTERNS: tuple[str, ...] = (
    "network",
    "timeout",
    "timed out",
    "econnreset",
    "connection reset",
    "connection refused",
)
_INVALID_INPUT_PATTERNS: tuple[str, ...] = (
    "invalid",
    "validation",
)


def classify_error(error: BaseException | object) -> ClassifiedError:
    """Map any raised failure onto a retry category. Never raises."""

    message = _error_message(error)
    haystack = message.lower()

    if _status_code(error) == 429:
        return ClassifiedError(
            category=ErrorCategory.RATE_LIMITED,
            message="Provider rate limit exceeded. Will retry after delay.",
            suggested_delay_ms=RATE_LIMIT_DELAY_MS,
            matched_pattern="status:429",
        )
    pattern = _first_match(haystack, _RATE_LIMIT_PATTERNS)
    if pattern is not None:
        return ClassifiedError(
            category=ErrorCategory.RATE_LIMITED,
            message="Provider rate limit exceeded. Will retry after delay.",
            suggested_delay_ms=RATE_LIMIT_DELAY_MS,
            matched_pattern=pattern,
        )

    pattern = _first_match(haystack, _QUOTA_PATTERNS)
    if pattern is not None:
        return ClassifiedError(
            category=ErrorCategory.QUOTA_EXHAUSTED,
            message="Provider quota exhausted. Check billing and usage limits.",
            matched_pattern=pattern,
        )

    pattern = _first_match(haystack, _NETWORK_PATTERNS)
    if pattern is not None or isinstance(error, (httpx.TransportError, ConnectionError)):
        return ClassifiedError(
            category=ErrorCategory.NETWORK,
            message=f"Network error: {message}",
            suggested_delay_ms=NETWORK_DELAY_MS,
            matched_pattern=pattern or type(error).__name__,
        )

    pattern = _first_match(haystack, _INVALID_INPUT_PATTERNS)
    if pattern is not None:
        return ClassifiedError(
            category=ErrorCategory.INVALID_INPUT,
            message=f"Invalid request parameters: {message}",
            matched_pattern=pattern,
        )

    return ClassifiedError(
        category=ErrorCategory.UNKNOWN,
        message=f"Unknown error: {message}",
        suggested_delay_ms=UNKNOWN_DELAY_MS,
    )


def _error_message(error: object) -> str:
    try:
        text = str(error)
    except Exception:  # noqa: BLE001
        text = ""
    if not text and isinstance(error, BaseException):
        return type(error).__name__
    return text


def _status_code(error: object) -> int | None:
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    for attr in ("status_code", "status", "code"):
        try:
            value = getattr(error, attr, None)
        except Exception:  # noqa: BLE001
            continue
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def _first_match(haystack: str, patterns: tuple[str, ...]) -> str | None:
    for pattern in patterns:
        if pattern in haystack:
            return pattern
    return None
