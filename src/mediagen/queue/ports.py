"""Collaborator interfaces consumed by the queue engine."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from mediagen.queue.models import UnitResult


@dataclass(slots=True, frozen=True)
class JobHandle:
    """Provider-side identifier of a submitted generation job."""

    name: str


@dataclass(slots=True, frozen=True)
class PollResult:
    """Provider job state returned by one poll."""

    done: bool
    artifact_uris: tuple[str, ...] = ()


class RecordStore(Protocol):
    def fetch_units(self, job_id: str) -> list[str]:
        """Return the ordered raw unit inputs for ``job_id``."""

    def persist_results(self, job_id: str, results: Sequence[UnitResult]) -> None:
        """Write the full result set for ``job_id``; raise on failure."""


class EnrichmentProvider(Protocol):
    def expand(self, raw_text: str) -> str:
        """Turn a raw unit description into a refined generation instruction."""


class GenerationProvider(Protocol):
    def submit(self, instruction: str) -> JobHandle:
        """Start a long-running generation job."""

    def poll(self, handle: JobHandle) -> PollResult:
        """Check job state."""


class ArtifactStore(Protocol):
    def store(self, data: bytes, path: str) -> str:
        """Persist ``data`` at ``path`` and return a public reference."""


class ArtifactDownloader(Protocol):
    def download(self, uri: str) -> bytes:
        """Fetch artifact bytes from a provider URI."""
