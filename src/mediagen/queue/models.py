"""Domain models for the media-generation queue."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class QueueItemStatus(str, Enum):
    """In-memory queue item lifecycle states."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ErrorCategory(str, Enum):
    """Normalized failure categories used by retry policy."""

    RATE_LIMITED = "rate_limited"
    QUOTA_EXHAUSTED = "quota_exhausted"
    NETWORK = "network"
    INVALID_INPUT = "invalid_input"
    UNKNOWN = "unknown"


NON_RETRYABLE_CATEGORIES: frozenset[ErrorCategory] = frozenset(
    {ErrorCategory.QUOTA_EXHAUSTED, ErrorCategory.INVALID_INPUT},
)


@dataclass(slots=True, frozen=True)
class ClassifiedError:
    """Classifier verdict for one raw failure."""

    category: ErrorCategory
    message: str
    suggested_delay_ms: int | None = None
    matched_pattern: str | None = None

    @property
    def retryable(self) -> bool:
        return self.category not in NON_RETRYABLE_CATEGORIES


@dataclass(slots=True, frozen=True)
class StoredArtifact:
    """One generated artifact persisted to the artifact store."""

    storage_path: str
    public_url: str

    def to_dict(self) -> dict[str, str]:
        return {"storage_path": self.storage_path, "public_url": self.public_url}


@dataclass(slots=True)
class GenerationOutcome:
    """Successful generation client result for one unit."""

    refined_instruction: str
    artifacts: list[StoredArtifact] = field(default_factory=list)


@dataclass(slots=True)
class UnitResult:
    """Per-unit outcome recorded for every processed unit, success or failure."""

    input: str
    refined_instruction: str
    artifacts: list[StoredArtifact] = field(default_factory=list)
    error_message: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error_message is None

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the record store."""

        return {
            "input": self.input,
            "refined_instruction": self.refined_instruction,
            "artifacts": [artifact.to_dict() for artifact in self.artifacts],
            "error_message": self.error_message,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> UnitResult:
        return cls(
            input=str(payload.get("input", "")),
            refined_instruction=str(payload.get("refined_instruction", "")),
            artifacts=[
                StoredArtifact(
                    storage_path=str(raw["storage_path"]),
                    public_url=str(raw["public_url"]),
                )
                for raw in payload.get("artifacts") or []
            ],
            error_message=payload.get("error_message"),
        )


@dataclass(slots=True)
class QueueItem:
    """Top-level unit of queued work: one job and its ordered units."""

    job_id: str
    units: list[str]
    enqueued_at: datetime
    status: QueueItemStatus = QueueItemStatus.PENDING
    retry_count: int = 0
    unit_results: list[UnitResult] = field(default_factory=list)
    last_error: ClassifiedError | None = None
    next_retry_delay_ms: int | None = None

    @property
    def in_flight(self) -> bool:
        return self.status in {QueueItemStatus.PENDING, QueueItemStatus.PROCESSING}


@dataclass(slots=True, frozen=True)
class QueueItemView:
    """Read-only queue item row for the status snapshot."""

    job_id: str
    status: QueueItemStatus
    unit_count: int
    retry_count: int
    enqueued_at: datetime
    scheduled: bool = False


@dataclass(slots=True, frozen=True)
class QueueSnapshot:
    """Point-in-time queue state returned by the status API."""

    queue_length: int
    is_processing: bool
    items: tuple[QueueItemView, ...]
    recent: tuple[QueueItemView, ...] = ()


@dataclass(slots=True, frozen=True)
class SubmitResult:
    """Submit API counters."""

    queue_length: int
    admitted: int
    skipped: tuple[str, ...] = ()


def clean_units(values: list[str] | tuple[str, ...]) -> list[str]:
    """Drop blank unit entries while preserving order."""

    return [value for value in values if isinstance(value, str) and value.strip()]
