from __future__ import annotations

from pathlib import Path

import allure
import pytest
from click.testing import CliRunner

from mediagen.main import mediagen

pytestmark = [
    allure.epic("Generation Queue"),
    allure.feature("CLI"),
]


@pytest.fixture()
def fast_queue_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    artifact_root = tmp_path / "artifacts"
    monkeypatch.setenv("MEDIAGEN_QUEUE_UNIT_DELAY_SECONDS", "0")
    monkeypatch.setenv("MEDIAGEN_QUEUE_ITEM_DELAY_SECONDS", "0")
    monkeypatch.setenv("MEDIAGEN_POLL_INTERVAL_SECONDS", "0.01")
    monkeypatch.setenv("MEDIAGEN_POLL_TIMEOUT_SECONDS", "1")
    monkeypatch.setenv("MEDIAGEN_ARTIFACT_ROOT", str(artifact_root))
    monkeypatch.delenv("MEDIAGEN_ARTIFACT_PUBLIC_BASE_URL", raising=False)
    return artifact_root


def test_jobs_add_queue_run_and_show(tmp_path: Path, fast_queue_env: Path) -> None:
    db_path = tmp_path / "cli.db"
    runner = CliRunner()

    added = runner.invoke(
        mediagen,
        [
            "jobs",
            "add",
            "--db-path",
            str(db_path),
            "concept-1",
            "--unit",
            "harbor at dawn",
            "--unit",
            "   ",
            "--unit",
            "market street",
        ],
    )
    assert added.exit_code == 0, added.output
    assert "Job stored: job_id=concept-1 units=2" in added.output

    run = runner.invoke(
        mediagen,
        ["queue", "run", "--db-path", str(db_path), "--timeout", "30", "concept-1", "ghost"],
    )
    assert run.exit_code == 0, run.output
    assert "Submitted: admitted=1 " in run.output
    assert "skipped=1" in run.output
    assert "Queue: length=0 processing=false" in run.output
    assert "concept-1 status=completed units=2 retries=0" in run.output

    shown = runner.invoke(mediagen, ["jobs", "show", "--db-path", str(db_path), "concept-1"])
    assert shown.exit_code == 0, shown.output
    assert "Units: 2" in shown.output
    assert "Results: 2 (failed=0)" in shown.output
    stored = sorted(path.name for path in (fast_queue_env / "concept-1").iterdir())
    assert len(stored) == 2
    assert stored[0].startswith("unit_1_artifact_1_")
    assert stored[1].startswith("unit_2_artifact_1_")


def test_jobs_show_before_processing_reports_no_results(
    tmp_path: Path,
    fast_queue_env: Path,
) -> None:
    db_path = tmp_path / "cli.db"
    runner = CliRunner()
    runner.invoke(
        mediagen,
        ["jobs", "add", "--db-path", str(db_path), "concept-2", "--unit", "forest"],
    )

    shown = runner.invoke(mediagen, ["jobs", "show", "--db-path", str(db_path), "concept-2"])

    assert shown.exit_code == 0, shown.output
    assert "Results: none" in shown.output


def test_jobs_show_unknown_job_fails(tmp_path: Path) -> None:
    result = CliRunner().invoke(
        mediagen,
        ["jobs", "show", "--db-path", str(tmp_path / "cli.db"), "ghost"],
    )

    assert result.exit_code != 0
    assert "Job not found: ghost" in result.output


def test_queue_run_rejects_invalid_settings(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("MEDIAGEN_POLL_INTERVAL_SECONDS", "0")

    result = CliRunner().invoke(
        mediagen,
        ["queue", "run", "--db-path", str(tmp_path / "cli.db"), "concept-1"],
    )

    assert result.exit_code != 0
    assert "MEDIAGEN_POLL_INTERVAL_SECONDS must be > 0" in result.output
