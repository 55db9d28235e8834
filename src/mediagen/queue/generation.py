"""Generation client: enrich, submit, poll and store artifacts for one unit."""

from __future__ import annotations

import logging
import math

from mediagen.errors import GenerationTimeoutError
from mediagen.queue.backoff import BackoffPolicy, retry_with_backoff
from mediagen.queue.models import GenerationOutcome, StoredArtifact
from mediagen.queue.ports import (
    ArtifactDownloader,
    ArtifactStore,
    EnrichmentProvider,
    GenerationProvider,
    JobHandle,
    PollResult,
)
from mediagen.queue.scheduling import Scheduler

logger = logging.getLogger(__name__)

ARTIFACT_EXTENSION = "mp4"


class GenerationClient:
    """Runs the enrich -> submit -> poll -> store chain for a single unit."""

    def __init__(  # noqa: PLR0913
        self,
        *,
        enrichment: EnrichmentProvider,
        generation: GenerationProvider,
        downloader: ArtifactDownloader,
        artifact_store: ArtifactStore,
        scheduler: Scheduler,
        submit_policy: BackoffPolicy | None = None,
        poll_policy: BackoffPolicy | None = None,
        poll_interval_seconds: float = 10.0,
        poll_timeout_seconds: float = 600.0,
    ) -> None:
        self.enrichment = enrichment
        self.generation = generation
        self.downloader = downloader
        self.artifact_store = artifact_store
        self.scheduler = scheduler
        self.submit_policy = submit_policy or BackoffPolicy(base_delay_ms=5_000, max_attempts=4)
        self.poll_policy = poll_policy or BackoffPolicy(base_delay_ms=2_000, max_attempts=3)
        self.poll_interval_seconds = poll_interval_seconds
        self.poll_timeout_seconds = poll_timeout_seconds

    @property
    def max_poll_iterations(self) -> int:
        if self.poll_interval_seconds <= 0:
            return max(1, int(self.poll_timeout_seconds))
        return max(1, math.ceil(self.poll_timeout_seconds / self.poll_interval_seconds))

    def generate(self, unit: str, *, job_id: str, unit_index: int) -> GenerationOutcome:
        """Produce artifacts for ``unit``; raises the raw provider error on failure."""

        refined = self.enrichment.expand(unit)
        if not refined or not refined.strip():
            logger.info(
                "Unit %d of %s produced an empty instruction, skipping generation",
                unit_index + 1,
                job_id,
            )
            return GenerationOutcome(refined_instruction="")

        refined = refined.strip()
        handle = retry_with_backoff(
            lambda: self.generation.submit(refined),
            policy=self.submit_policy,
            sleep=self.scheduler.sleep,
            label=f"submit {job_id}#{unit_index + 1}",
        )
        logger.info("Submitted generation job %s for %s#%d", handle.name, job_id, unit_index + 1)

        result = self._wait_for_completion(handle, job_id=job_id, unit_index=unit_index)
        logger.info(
            "Generation job %s finished with %d artifact(s)",
            handle.name,
            len(result.artifact_uris),
        )
        return GenerationOutcome(
            refined_instruction=refined,
            artifacts=self._store_artifacts(result, job_id=job_id, unit_index=unit_index),
        )

    def _wait_for_completion(
        self,
        handle: JobHandle,
        *,
        job_id: str,
        unit_index: int,
    ) -> PollResult:
        result = PollResult(done=False)
        for _ in range(self.max_poll_iterations):
            self.scheduler.sleep(self.poll_interval_seconds)
            result = retry_with_backoff(
                lambda: self.generation.poll(handle),
                policy=self.poll_policy,
                sleep=self.scheduler.sleep,
                label=f"poll {handle.name}",
            )
            if result.done:
                return result
            logger.debug(
                "Generation job %s for %s#%d still running",
                handle.name,
                job_id,
                unit_index + 1,
            )
        raise GenerationTimeoutError(
            f"Generation job {handle.name} did not finish within "
            f"{self.poll_timeout_seconds:g}s timeout",
        )

    def _store_artifacts(
        self,
        result: PollResult,
        *,
        job_id: str,
        unit_index: int,
    ) -> list[StoredArtifact]:
        stored: list[StoredArtifact] = []
        for artifact_index, uri in enumerate(result.artifact_uris):
            if not uri:
                continue
            timestamp_ms = int(self.scheduler.now().timestamp() * 1000)
            storage_path = (
                f"{job_id}/unit_{unit_index + 1}_artifact_{artifact_index + 1}"
                f"_{timestamp_ms}.{ARTIFACT_EXTENSION}"
            )
            try:
                data = self.downloader.download(uri)
                public_url = self.artifact_store.store(data, storage_path)
            except Exception as error:  # noqa: BLE001
                logger.warning(
                    "Skipping artifact %d of %s#%d (%s): %s",
                    artifact_index + 1,
                    job_id,
                    unit_index + 1,
                    uri,
                    error,
                )
                continue
            stored.append(StoredArtifact(storage_path=storage_path, public_url=public_url))
        return stored
