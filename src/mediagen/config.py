"""Runtime configuration for the media-generation queue."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlparse

from mediagen.errors import ConfigError


@dataclass(slots=True)
class QueueSettings:
    """Item-level queue settings."""

    max_retries: int = 3
    retry_base_delay_ms: int = 1_000
    unit_delay_seconds: float = 35.0
    item_delay_seconds: float = 10.0
    history_limit: int = 50


@dataclass(slots=True)
class GenerationSettings:
    """Generation client retry and polling settings."""

    submit_max_attempts: int = 4
    submit_base_delay_ms: int = 5_000
    poll_max_attempts: int = 3
    poll_base_delay_ms: int = 2_000
    poll_interval_seconds: float = 10.0
    poll_timeout_seconds: float = 600.0
    download_timeout_seconds: float = 120.0
    download_api_key: str | None = None


@dataclass(slots=True)
class ArtifactSettings:
    """Artifact storage settings."""

    root: Path = Path(".mediagen-artifacts")
    public_base_url: str | None = None


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    db_path: Path = Path(".mediagen.db")
    queue: QueueSettings = field(default_factory=QueueSettings)
    generation: GenerationSettings = field(default_factory=GenerationSettings)
    artifacts: ArtifactSettings = field(default_factory=ArtifactSettings)

    @classmethod
    def from_env(cls, db_path: Path | None = None) -> Settings:
        """Load settings from environment with defaults suited for local runs."""

        return cls(
            db_path=db_path or Path(os.getenv("MEDIAGEN_DB_PATH", ".mediagen.db")),
            queue=QueueSettings(
                max_retries=int(os.getenv("MEDIAGEN_QUEUE_MAX_RETRIES", "3")),
                retry_base_delay_ms=int(os.getenv("MEDIAGEN_QUEUE_RETRY_BASE_MS", "1000")),
                unit_delay_seconds=float(os.getenv("MEDIAGEN_QUEUE_UNIT_DELAY_SECONDS", "35")),
                item_delay_seconds=float(os.getenv("MEDIAGEN_QUEUE_ITEM_DELAY_SECONDS", "10")),
                history_limit=int(os.getenv("MEDIAGEN_QUEUE_HISTORY_LIMIT", "50")),
            ),
            generation=GenerationSettings(
                submit_max_attempts=int(os.getenv("MEDIAGEN_SUBMIT_MAX_ATTEMPTS", "4")),
                submit_base_delay_ms=int(os.getenv("MEDIAGEN_SUBMIT_BASE_DELAY_MS", "5000")),
                poll_max_attempts=int(os.getenv("MEDIAGEN_POLL_MAX_ATTEMPTS", "3")),
                poll_base_delay_ms=int(os.getenv("MEDIAGEN_POLL_BASE_DELAY_MS", "2000")),
                poll_interval_seconds=float(os.getenv("MEDIAGEN_POLL_INTERVAL_SECONDS", "10")),
                poll_timeout_seconds=float(os.getenv("MEDIAGEN_POLL_TIMEOUT_SECONDS", "600")),
                download_timeout_seconds=float(
                    os.getenv("MEDIAGEN_DOWNLOAD_TIMEOUT_SECONDS", "120"),
                ),
                download_api_key=os.getenv("MEDIAGEN_DOWNLOAD_API_KEY") or None,
            ),
            artifacts=ArtifactSettings(
                root=Path(os.getenv("MEDIAGEN_ARTIFACT_ROOT", ".mediagen-artifacts")),
                public_base_url=os.getenv("MEDIAGEN_ARTIFACT_PUBLIC_BASE_URL") or None,
            ),
        )

    def validate(self) -> None:
        """Raise ``ConfigError`` when any setting is out of range."""

        if self.queue.max_retries < 0:
            raise ConfigError("MEDIAGEN_QUEUE_MAX_RETRIES must be >= 0.")
        if self.queue.retry_base_delay_ms <= 0:
            raise ConfigError("MEDIAGEN_QUEUE_RETRY_BASE_MS must be > 0.")
        if self.queue.unit_delay_seconds < 0 or self.queue.item_delay_seconds < 0:
            raise ConfigError("Queue delays must be >= 0 seconds.")
        if self.queue.history_limit <= 0:
            raise ConfigError("MEDIAGEN_QUEUE_HISTORY_LIMIT must be > 0.")
        if self.generation.submit_max_attempts <= 0:
            raise ConfigError("MEDIAGEN_SUBMIT_MAX_ATTEMPTS must be > 0.")
        if self.generation.poll_max_attempts <= 0:
            raise ConfigError("MEDIAGEN_POLL_MAX_ATTEMPTS must be > 0.")
        if self.generation.poll_interval_seconds <= 0:
            raise ConfigError("MEDIAGEN_POLL_INTERVAL_SECONDS must be > 0.")
        if self.generation.poll_timeout_seconds < self.generation.poll_interval_seconds:
            raise ConfigError(
                "MEDIAGEN_POLL_TIMEOUT_SECONDS must be >= MEDIAGEN_POLL_INTERVAL_SECONDS.",
            )
        if self.artifacts.public_base_url is not None:
            parsed = urlparse(self.artifacts.public_base_url)
            if parsed.scheme not in {"http", "https"} or not parsed.netloc:
                raise ConfigError(
                    "Invalid MEDIAGEN_ARTIFACT_PUBLIC_BASE_URL: "
                    f"{self.artifacts.public_base_url!r}. Expected an absolute http(s) URL.",
                )
