"""Retry delay policy and the bounded retry helper."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from mediagen.queue.failure_classifier import classify_error
from mediagen.queue.models import ClassifiedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_BASE_DELAY_MS = 1_000
DEFAULT_MAX_ATTEMPTS = 3


@dataclass(slots=True, frozen=True)
class BackoffPolicy:
    """Exponential backoff that defers to classifier-suggested delays."""

    base_delay_ms: int = DEFAULT_BASE_DELAY_MS
    max_attempts: int = DEFAULT_MAX_ATTEMPTS

    def next_delay_ms(self, attempt: int, classified: ClassifiedError) -> int:
        """Delay before retry number ``attempt`` (0-based)."""

        if classified.suggested_delay_ms is not None:
            return classified.suggested_delay_ms
        return self.base_delay_ms * (2 ** max(attempt, 0))

    def exhausted(self, attempt: int) -> bool:
        return attempt >= self.max_attempts


def retry_with_backoff(
    operation: Callable[[], T],
    *,
    policy: BackoffPolicy,
    sleep: Callable[[float], None],
    label: str = "operation",
) -> T:
    """Call ``operation`` up to ``policy.max_attempts`` times.

    Non-retryable failures are re-raised immediately. After the last
    attempt the original error propagates unchanged.
    """

    attempts = max(1, policy.max_attempts)
    for attempt in range(attempts):
        try:
            return operation()
        except Exception as error:
            classified = classify_error(error)
            logger.info(
                "%s attempt %d/%d failed (%s): %s",
                label,
                attempt + 1,
                attempts,
                classified.category.value,
                error,
            )
            if not classified.retryable:
                logger.info("%s error is not retryable, stopping attempts", label)
                raise
            if attempt + 1 >= attempts:
                raise
            delay_ms = policy.next_delay_ms(attempt, classified)
            logger.info("%s waiting %dms before next attempt", label, delay_ms)
            sleep(delay_ms / 1000.0)
    raise AssertionError("unreachable")  # pragma: no cover
