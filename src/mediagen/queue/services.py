"""Wiring helpers that assemble the queue engine from settings."""

from __future__ import annotations

from mediagen.config import Settings
from mediagen.queue.backoff import BackoffPolicy
from mediagen.queue.generation import GenerationClient
from mediagen.queue.manager import QueueManager
from mediagen.queue.ports import (
    ArtifactDownloader,
    ArtifactStore,
    EnrichmentProvider,
    GenerationProvider,
    RecordStore,
)
from mediagen.queue.processor import JobProcessor
from mediagen.queue.scheduling import Scheduler


def build_queue_manager(  # noqa: PLR0913
    *,
    settings: Settings,
    record_store: RecordStore,
    enrichment: EnrichmentProvider,
    generation: GenerationProvider,
    downloader: ArtifactDownloader,
    artifact_store: ArtifactStore,
    scheduler: Scheduler,
    background: bool = True,
) -> QueueManager:
    """Build a queue manager with the client and processor configured from settings."""

    gen = settings.generation
    client = GenerationClient(
        enrichment=enrichment,
        generation=generation,
        downloader=downloader,
        artifact_store=artifact_store,
        scheduler=scheduler,
        submit_policy=BackoffPolicy(
            base_delay_ms=gen.submit_base_delay_ms,
            max_attempts=gen.submit_max_attempts,
        ),
        poll_policy=BackoffPolicy(
            base_delay_ms=gen.poll_base_delay_ms,
            max_attempts=gen.poll_max_attempts,
        ),
        poll_interval_seconds=gen.poll_interval_seconds,
        poll_timeout_seconds=gen.poll_timeout_seconds,
    )
    processor = JobProcessor(
        client=client,
        record_store=record_store,
        scheduler=scheduler,
        unit_delay_seconds=settings.queue.unit_delay_seconds,
        retry_policy=BackoffPolicy(
            base_delay_ms=settings.queue.retry_base_delay_ms,
            max_attempts=settings.queue.max_retries,
        ),
    )
    return QueueManager(
        processor=processor,
        record_store=record_store,
        scheduler=scheduler,
        item_delay_seconds=settings.queue.item_delay_seconds,
        history_limit=settings.queue.history_limit,
        background=background,
    )
