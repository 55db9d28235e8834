"""Controllers for mediagen CLI commands."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from mediagen.backend import EchoEnrichmentProvider, EchoGenerationProvider, echo_transport
from mediagen.config import Settings
from mediagen.queue.models import QueueItemView, QueueSnapshot
from mediagen.queue.scheduling import ThreadingScheduler
from mediagen.queue.services import build_queue_manager
from mediagen.storage.artifacts import ArtifactFetcher, LocalArtifactStore
from mediagen.storage.records import SqlRecordStore

SUPPORTED_BACKENDS: tuple[str, ...] = ("echo",)


@dataclass(slots=True)
class JobAddCommand:
    """CLI input for storing a job's units."""

    db_path: Path | None
    job_id: str
    units: tuple[str, ...]


@dataclass(slots=True)
class JobShowCommand:
    """CLI input for job inspection."""

    db_path: Path | None
    job_id: str


@dataclass(slots=True)
class QueueRunCommand:
    """CLI input for submitting jobs and draining the queue."""

    db_path: Path | None
    job_ids: tuple[str, ...]
    backend: str = "echo"
    timeout_seconds: float | None = None
    echo_polls: int = 1


@dataclass(slots=True)
class QueueRunResult:
    """Queue run report to render in CLI."""

    lines: list[str]
    drained: bool


class QueueCliController:
    """Coordinates record-store and queue CLI operations."""

    def add_job(self, command: JobAddCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _record_store(settings) as store:
            store.upsert_job(command.job_id, command.units)
            stored_units = store.fetch_units(command.job_id)
        return [f"Job stored: job_id={command.job_id} units={len(stored_units)}"]

    def show_job(self, command: JobShowCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _record_store(settings) as store:
            units = store.fetch_units(command.job_id)
            results = store.load_results(command.job_id)

        lines = [f"Job: {command.job_id}", f"Units: {len(units)}"]
        for index, unit in enumerate(units, start=1):
            lines.append(f"  {index}. {unit}")
        if results is None:
            lines.append("Results: none")
            return lines
        failed = sum(1 for result in results if not result.succeeded)
        lines.append(f"Results: {len(results)} (failed={failed})")
        for index, result in enumerate(results, start=1):
            state = "ok" if result.succeeded else f"error={result.error_message}"
            lines.append(f"  {index}. artifacts={len(result.artifacts)} {state}")
            lines.extend(f"     {artifact.public_url}" for artifact in result.artifacts)
        return lines

    def run_queue(self, command: QueueRunCommand) -> QueueRunResult:
        if command.backend not in SUPPORTED_BACKENDS:
            raise ValueError(
                f"Unsupported backend {command.backend!r}. "
                f"Expected one of: {', '.join(SUPPORTED_BACKENDS)}.",
            )
        settings = Settings.from_env(db_path=command.db_path)
        settings.validate()

        with (
            _record_store(settings) as store,
            ArtifactFetcher(
                timeout_seconds=settings.generation.download_timeout_seconds,
                api_key=settings.generation.download_api_key,
                transport=echo_transport(),
            ) as fetcher,
        ):
            manager = build_queue_manager(
                settings=settings,
                record_store=store,
                enrichment=EchoEnrichmentProvider(),
                generation=EchoGenerationProvider(polls_until_done=command.echo_polls),
                downloader=fetcher,
                artifact_store=LocalArtifactStore(
                    settings.artifacts.root,
                    public_base_url=settings.artifacts.public_base_url,
                ),
                scheduler=ThreadingScheduler(),
            )
            submitted = manager.submit(command.job_ids)
            lines = [
                "Submitted: "
                f"admitted={submitted.admitted} queue_length={submitted.queue_length} "
                f"skipped={len(submitted.skipped)}",
            ]
            drained = manager.wait_until_drained(timeout=command.timeout_seconds)
            manager.close()
            lines.extend(render_snapshot_lines(manager.status()))
        return QueueRunResult(lines=lines, drained=drained)


def render_snapshot_lines(snapshot: QueueSnapshot) -> list[str]:
    """Render a queue snapshot as CLI lines."""

    lines = [
        f"Queue: length={snapshot.queue_length} processing={str(snapshot.is_processing).lower()}",
    ]
    lines.extend(_item_line(item) for item in snapshot.items)
    if snapshot.recent:
        lines.append("Finished:")
        lines.extend(_item_line(item) for item in snapshot.recent)
    return lines


def _item_line(item: QueueItemView) -> str:
    suffix = " scheduled" if item.scheduled else ""
    return (
        f"  {item.job_id} status={item.status.value} units={item.unit_count} "
        f"retries={item.retry_count} enqueued_at={item.enqueued_at.isoformat()}{suffix}"
    )


@contextmanager
def _record_store(settings: Settings) -> Iterator[SqlRecordStore]:
    store = SqlRecordStore(settings.db_path)
    store.init_schema()
    try:
        yield store
    finally:
        store.close()
