from __future__ import annotations

from datetime import UTC, datetime

import allure
from fakes import (
    FakeArtifactStore,
    FakeDownloader,
    FakeEnrichment,
    FakeGeneration,
    FakeRecordStore,
    QueueHarness,
    make_settings,
)

from mediagen.queue.models import ErrorCategory, QueueItem, QueueItemStatus
from mediagen.queue.scheduling import ManualScheduler

pytestmark = [
    allure.epic("Generation Queue"),
    allure.feature("Job Processor"),
]


def _item(job_id: str, units: list[str], *, retry_count: int = 0) -> QueueItem:
    return QueueItem(
        job_id=job_id,
        units=units,
        enqueued_at=datetime(2026, 1, 1, tzinfo=UTC),
        status=QueueItemStatus.PROCESSING,
        retry_count=retry_count,
    )


def test_process_completes_and_persists_one_result_per_unit(harness: QueueHarness) -> None:
    item = _item("job-1", ["scene one", "scene two", "scene three"])

    processed = harness.manager.processor.process(item)

    assert processed.status == QueueItemStatus.COMPLETED
    assert len(processed.unit_results) == len(processed.units) == 3
    persisted = harness.records.persisted["job-1"]
    assert [result.input for result in persisted] == ["scene one", "scene two", "scene three"]
    assert all(result.artifacts for result in persisted)
    assert harness.enrichment.calls == ["scene one", "scene two", "scene three"]


def test_inter_unit_delay_is_applied_between_units_only(harness: QueueHarness) -> None:
    harness.manager.processor.process(_item("job-1", ["a", "b", "c"]))

    assert harness.scheduler.sleeps == [10.0, 35.0, 10.0, 35.0, 10.0]


def test_unit_failure_is_recorded_and_processing_continues(harness: QueueHarness) -> None:
    harness.enrichment.failures["broken"] = ValueError("Invalid description: validation failed")
    item = _item("job-1", ["broken", "fine"])

    processed = harness.manager.processor.process(item)

    assert processed.status == QueueItemStatus.COMPLETED
    failed, succeeded = processed.unit_results
    assert failed.input == "broken"
    assert failed.artifacts == []
    assert failed.error_message is not None
    assert "validation" in failed.error_message.lower()
    assert succeeded.error_message is None
    assert len(succeeded.artifacts) == 1


def test_empty_enrichment_yields_empty_instruction_without_error(harness: QueueHarness) -> None:
    harness.enrichment.responses["nothing"] = ""
    processed = harness.manager.processor.process(_item("job-1", ["nothing", "sunset"]))

    empty, next_unit = processed.unit_results
    assert empty.refined_instruction == ""
    assert empty.error_message is None
    assert empty.artifacts == []
    assert next_unit.refined_instruction == "refined: sunset"
    assert harness.generation.submitted == ["refined: sunset"]


def test_persist_failure_schedules_retry_with_classifier_delay(harness: QueueHarness) -> None:
    harness.records.persist_failures["job-1"] = [ConnectionError("network unreachable")]
    item = _item("job-1", ["scene"])

    processed = harness.manager.processor.process(item)

    assert processed.status == QueueItemStatus.PENDING
    assert processed.retry_count == 1
    assert processed.next_retry_delay_ms == 30_000
    assert processed.last_error is not None
    assert processed.last_error.category == ErrorCategory.NETWORK
    assert len(processed.unit_results) == 1


def test_unknown_persist_failure_uses_classifier_delay(harness: QueueHarness) -> None:
    item = _item("job-1", ["scene"], retry_count=1)
    harness.records.persist_failures["job-1"] = [RuntimeError("boom")]

    harness.manager.processor.process(item)

    assert item.status == QueueItemStatus.PENDING
    assert item.next_retry_delay_ms == 30_000
    assert item.retry_count == 2


def test_non_retryable_item_failure_is_terminal(harness: QueueHarness) -> None:
    harness.records.persist_failures["job-1"] = [RuntimeError("quota exceeded")]

    processed = harness.manager.processor.process(_item("job-1", ["scene"]))

    assert processed.status == QueueItemStatus.FAILED
    assert processed.retry_count == 0
    assert processed.next_retry_delay_ms is None


def test_retry_count_reaching_maximum_is_terminal(harness: QueueHarness) -> None:
    harness.records.persist_failures["job-1"] = [RuntimeError("network error")]

    processed = harness.manager.processor.process(_item("job-1", ["scene"], retry_count=2))

    assert harness.manager.processor.max_retries == 3
    assert processed.status == QueueItemStatus.FAILED
    assert processed.retry_count == 3
    assert processed.next_retry_delay_ms is None


def test_generation_job_that_never_finishes_becomes_failed_unit(harness: QueueHarness) -> None:
    harness.generation.never_finish.add("refined: stuck scene")

    processed = harness.manager.processor.process(_item("job-1", ["stuck scene", "next scene"]))

    assert processed.status == QueueItemStatus.COMPLETED
    stuck, following = processed.unit_results
    assert stuck.error_message is not None
    assert "did not finish" in stuck.error_message
    assert stuck.artifacts == []
    assert following.error_message is None
    assert len(following.artifacts) == 1
    assert harness.generation.poll_counts["op-1"] == 6
    assert harness.records.persisted["job-1"] == processed.unit_results


class _InterruptedDelayScheduler(ManualScheduler):
    def sleep(self, seconds: float) -> None:
        if seconds == 35.0:
            raise ConnectionResetError("connection reset while waiting between units")
        super().sleep(seconds)


def test_error_during_unit_delay_becomes_item_level_retry() -> None:
    harness = QueueHarness(
        scheduler=_InterruptedDelayScheduler(),
        records=FakeRecordStore(),
        enrichment=FakeEnrichment(),
        generation=FakeGeneration(),
        downloader=FakeDownloader(),
        artifacts=FakeArtifactStore(),
        settings=make_settings(),
    )

    processed = harness.manager.processor.process(_item("job-1", ["first", "second"]))

    assert processed.status == QueueItemStatus.PENDING
    assert processed.retry_count == 1
    assert processed.next_retry_delay_ms == 30_000
    assert processed.last_error is not None
    assert processed.last_error.category == ErrorCategory.NETWORK
    assert harness.enrichment.calls == ["first"]
    assert harness.records.persist_calls == []
