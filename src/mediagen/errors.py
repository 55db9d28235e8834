"""Exception types raised by mediagen components."""

from __future__ import annotations


class MediagenError(RuntimeError):
    """Base error for mediagen failures."""


class ConfigError(ValueError):
    """Invalid runtime configuration."""


class RecordNotFoundError(MediagenError):
    """Requested job does not exist in the record store."""

    def __init__(self, job_id: str) -> None:
        super().__init__(f"Job not found: {job_id}")
        self.job_id = job_id


class ArtifactDownloadError(MediagenError):
    """Generated artifact could not be downloaded."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class GenerationTimeoutError(MediagenError):
    """Generation job did not reach a terminal state within the poll budget."""
