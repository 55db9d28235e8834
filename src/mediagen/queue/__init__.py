"""In-process media-generation queue.

One worker thread pulls one job at a time and runs its units strictly in
order: enrichment call, long-running generation job polled to completion,
artifact download and storage. The provider accepts roughly one request
per fixed window, so there is no fan-out across units or jobs; the
inter-unit delay is the main rate-limit defense and per-call retries only
absorb transient provider errors.

Failures are handled at two levels:

- unit level: any error is classified and recorded on that unit's result,
  and the job moves on to its next unit;
- job level: a failure to persist the result set (or any error outside the
  unit guard) re-enqueues the whole job at the tail after a backoff delay,
  up to a retry ceiling. Quota and validation failures are never retried.

The queue is best-effort and lives only in process memory.
"""

from mediagen.queue.backoff import BackoffPolicy, retry_with_backoff
from mediagen.queue.failure_classifier import classify_error
from mediagen.queue.generation import GenerationClient
from mediagen.queue.manager import QueueManager
from mediagen.queue.models import (
    ClassifiedError,
    ErrorCategory,
    QueueItem,
    QueueItemStatus,
    QueueSnapshot,
    StoredArtifact,
    SubmitResult,
    UnitResult,
)
from mediagen.queue.processor import JobProcessor
from mediagen.queue.scheduling import ManualScheduler, ThreadingScheduler

__all__ = [
    "BackoffPolicy",
    "ClassifiedError",
    "ErrorCategory",
    "GenerationClient",
    "JobProcessor",
    "ManualScheduler",
    "QueueItem",
    "QueueItemStatus",
    "QueueManager",
    "QueueSnapshot",
    "StoredArtifact",
    "SubmitResult",
    "ThreadingScheduler",
    "UnitResult",
    "classify_error",
    "retry_with_backoff",
]
