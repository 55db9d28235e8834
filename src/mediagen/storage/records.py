"""SQLite-backed record store for job units and generation results."""

from __future__ import annotations

import json
from collections.abc import Sequence
from pathlib import Path

from sqlmodel import Session, col, select

from mediagen.errors import RecordNotFoundError
from mediagen.queue.models import UnitResult, clean_units
from mediagen.queue.scheduling import utc_now
from mediagen.storage.alembic_runner import upgrade_head
from mediagen.storage.common import DEFAULT_BUSY_TIMEOUT_MS, build_sqlite_engine
from mediagen.storage.sqlmodel_models import JobRecord


class SqlRecordStore:
    """Record store facade backed by SQLModel + SQLite."""

    def __init__(self, db_path: Path, *, busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS) -> None:
        self.db_path = db_path
        self.engine = build_sqlite_engine(db_path=db_path, busy_timeout_ms=busy_timeout_ms)

    def close(self) -> None:
        """Close underlying DB resources."""

        self.engine.dispose()

    def init_schema(self) -> None:
        """Run schema migrations."""

        upgrade_head(self.db_path)

    def upsert_job(self, job_id: str, units: Sequence[str]) -> None:
        """Create or replace the unit list of a job, keeping earlier results."""

        now = utc_now()
        payload = json.dumps(list(units), ensure_ascii=False)
        with Session(self.engine) as session:
            row = session.get(JobRecord, job_id)
            if row is None:
                row = JobRecord(job_id=job_id, units_json=payload, created_at=now, updated_at=now)
            else:
                row.units_json = payload
                row.updated_at = now
            session.add(row)
            session.commit()

    def list_job_ids(self) -> list[str]:
        with Session(self.engine) as session:
            rows = session.exec(select(JobRecord).order_by(col(JobRecord.created_at))).all()
            return [row.job_id for row in rows]

    def fetch_units(self, job_id: str) -> list[str]:
        """Return non-blank unit inputs in stored order."""

        with Session(self.engine) as session:
            row = session.get(JobRecord, job_id)
            if row is None:
                raise RecordNotFoundError(job_id)
            return clean_units(_decode_units(row.units_json))

    def persist_results(self, job_id: str, results: Sequence[UnitResult]) -> None:
        """Overwrite the stored result set for a job."""

        now = utc_now()
        payload = json.dumps([result.to_dict() for result in results], ensure_ascii=False)
        with Session(self.engine) as session:
            row = session.get(JobRecord, job_id)
            if row is None:
                raise RecordNotFoundError(job_id)
            row.results_json = payload
            row.results_updated_at = now
            row.updated_at = now
            session.add(row)
            session.commit()

    def load_results(self, job_id: str) -> list[UnitResult] | None:
        """Return persisted results, or ``None`` when the job was never processed."""

        with Session(self.engine) as session:
            row = session.get(JobRecord, job_id)
            if row is None:
                raise RecordNotFoundError(job_id)
            if row.results_json is None:
                return None
            return [UnitResult.from_dict(entry) for entry in json.loads(row.results_json)]


def _decode_units(raw: str) -> list[str]:
    """Accept plain strings or scene objects carrying a ``visuals`` field."""

    decoded = json.loads(raw or "[]")
    if not isinstance(decoded, list):
        return []
    units: list[str] = []
    for entry in decoded:
        if isinstance(entry, str):
            units.append(entry)
        elif isinstance(entry, dict) and isinstance(entry.get("visuals"), str):
            units.append(entry["visuals"])
    return units
