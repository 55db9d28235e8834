"""Job processor that drives one queue item through all of its units."""

from __future__ import annotations

import logging

from mediagen.queue.backoff import BackoffPolicy
from mediagen.queue.failure_classifier import classify_error
from mediagen.queue.generation import GenerationClient
from mediagen.queue.models import ClassifiedError, QueueItem, QueueItemStatus, UnitResult
from mediagen.queue.ports import RecordStore
from mediagen.queue.scheduling import Scheduler

logger = logging.getLogger(__name__)


class JobProcessor:
    """Processes units sequentially with rate limiting and per-unit isolation.

    ``process`` never raises. Unit failures become degraded ``UnitResult``
    rows; item failures become a status transition:

    - retryable: ``retry_count`` is incremented, and while it stays below
      ``retry_policy.max_attempts`` the item goes back to ``PENDING`` with
      ``next_retry_delay_ms`` set for the queue manager;
    - otherwise: ``FAILED`` (terminal).
    """

    def __init__(
        self,
        *,
        client: GenerationClient,
        record_store: RecordStore,
        scheduler: Scheduler,
        unit_delay_seconds: float = 35.0,
        retry_policy: BackoffPolicy | None = None,
    ) -> None:
        self.client = client
        self.record_store = record_store
        self.scheduler = scheduler
        self.unit_delay_seconds = unit_delay_seconds
        self.retry_policy = retry_policy or BackoffPolicy(max_attempts=3)

    @property
    def max_retries(self) -> int:
        return self.retry_policy.max_attempts

    def process(self, item: QueueItem) -> QueueItem:
        logger.info("Processing job %s with %d unit(s)", item.job_id, len(item.units))
        item.next_retry_delay_ms = None
        try:
            item.unit_results = self._run_units(item)
            self.record_store.persist_results(item.job_id, item.unit_results)
        except Exception as error:  # noqa: BLE001
            self._handle_item_failure(item, error)
            return item

        item.status = QueueItemStatus.COMPLETED
        item.last_error = None
        failed_units = sum(1 for result in item.unit_results if not result.succeeded)
        logger.info(
            "Completed job %s: units=%d failed_units=%d",
            item.job_id,
            len(item.unit_results),
            failed_units,
        )
        return item

    def _run_units(self, item: QueueItem) -> list[UnitResult]:
        results: list[UnitResult] = []
        for index, unit in enumerate(item.units):
            if index > 0 and self.unit_delay_seconds > 0:
                logger.debug(
                    "Rate limiting: waiting %.1fs before unit %d of %s",
                    self.unit_delay_seconds,
                    index + 1,
                    item.job_id,
                )
                self.scheduler.sleep(self.unit_delay_seconds)
            results.append(self._run_unit(item, unit=unit, index=index))
        return results

    def _run_unit(self, item: QueueItem, *, unit: str, index: int) -> UnitResult:
        try:
            outcome = self.client.generate(unit, job_id=item.job_id, unit_index=index)
        except Exception as error:  # noqa: BLE001
            classified = classify_error(error)
            logger.warning(
                "Unit %d/%d of %s failed (%s): %s",
                index + 1,
                len(item.units),
                item.job_id,
                classified.category.value,
                error,
            )
            return UnitResult(
                input=unit,
                refined_instruction="",
                artifacts=[],
                error_message=classified.message,
            )
        return UnitResult(
            input=unit,
            refined_instruction=outcome.refined_instruction,
            artifacts=list(outcome.artifacts),
        )

    def _handle_item_failure(self, item: QueueItem, error: Exception) -> None:
        classified = classify_error(error)
        item.last_error = classified
        if not classified.retryable:
            self._fail(item, classified, reason="non-retryable", error=error)
            return

        delay_ms = self.retry_policy.next_delay_ms(item.retry_count, classified)
        item.retry_count += 1
        if self.retry_policy.exhausted(item.retry_count):
            self._fail(item, classified, reason="max retries exceeded", error=error)
            return

        item.status = QueueItemStatus.PENDING
        item.next_retry_delay_ms = delay_ms
        logger.warning(
            "Job %s failed (%s), retry %d/%d in %dms: %s",
            item.job_id,
            classified.category.value,
            item.retry_count,
            self.max_retries,
            delay_ms,
            error,
        )

    def _fail(
        self,
        item: QueueItem,
        classified: ClassifiedError,
        *,
        reason: str,
        error: Exception,
    ) -> None:
        item.status = QueueItemStatus.FAILED
        logger.error(
            "Job %s failed permanently after %d retries (%s, %s): %s",
            item.job_id,
            item.retry_count,
            classified.category.value,
            reason,
            error,
        )
