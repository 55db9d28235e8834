from __future__ import annotations

from pathlib import Path

import allure
import pytest

from mediagen.config import ArtifactSettings, GenerationSettings, QueueSettings, Settings
from mediagen.errors import ConfigError

pytestmark = [
    allure.epic("Generation Queue"),
    allure.feature("Configuration"),
]


def test_defaults_match_documented_rate_limits() -> None:
    settings = Settings()

    assert settings.queue.max_retries == 3
    assert settings.queue.unit_delay_seconds == 35.0
    assert settings.queue.item_delay_seconds == 10.0
    assert settings.generation.submit_max_attempts == 4
    assert settings.generation.submit_base_delay_ms == 5_000
    assert settings.generation.poll_max_attempts == 3
    assert settings.generation.poll_base_delay_ms == 2_000
    assert settings.generation.poll_interval_seconds == 10.0
    assert settings.generation.poll_timeout_seconds == 600.0
    settings.validate()


def test_from_env_reads_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("MEDIAGEN_QUEUE_MAX_RETRIES", "5")
    monkeypatch.setenv("MEDIAGEN_QUEUE_UNIT_DELAY_SECONDS", "0")
    monkeypatch.setenv("MEDIAGEN_POLL_INTERVAL_SECONDS", "2.5")
    monkeypatch.setenv("MEDIAGEN_DOWNLOAD_API_KEY", "secret")
    monkeypatch.setenv("MEDIAGEN_ARTIFACT_ROOT", str(tmp_path / "artifacts"))
    monkeypatch.setenv("MEDIAGEN_ARTIFACT_PUBLIC_BASE_URL", "https://cdn.example.com")

    settings = Settings.from_env(db_path=tmp_path / "jobs.db")

    assert settings.db_path == tmp_path / "jobs.db"
    assert settings.queue.max_retries == 5
    assert settings.queue.unit_delay_seconds == 0.0
    assert settings.generation.poll_interval_seconds == 2.5
    assert settings.generation.download_api_key == "secret"
    assert settings.artifacts.root == tmp_path / "artifacts"
    assert settings.artifacts.public_base_url == "https://cdn.example.com"
    settings.validate()


def test_from_env_treats_empty_api_key_as_unset(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MEDIAGEN_DOWNLOAD_API_KEY", "")
    monkeypatch.setenv("MEDIAGEN_DB_PATH", "custom.db")

    settings = Settings.from_env()

    assert settings.generation.download_api_key is None
    assert settings.db_path == Path("custom.db")


@pytest.mark.parametrize(
    ("settings", "message"),
    [
        (Settings(queue=QueueSettings(max_retries=-1)), "MAX_RETRIES"),
        (Settings(queue=QueueSettings(retry_base_delay_ms=0)), "RETRY_BASE_MS"),
        (Settings(queue=QueueSettings(unit_delay_seconds=-1.0)), "Queue delays"),
        (Settings(queue=QueueSettings(history_limit=0)), "HISTORY_LIMIT"),
        (Settings(generation=GenerationSettings(submit_max_attempts=0)), "SUBMIT_MAX_ATTEMPTS"),
        (Settings(generation=GenerationSettings(poll_max_attempts=0)), "POLL_MAX_ATTEMPTS"),
        (Settings(generation=GenerationSettings(poll_interval_seconds=0)), "POLL_INTERVAL"),
        (
            Settings(
                generation=GenerationSettings(poll_interval_seconds=30, poll_timeout_seconds=10),
            ),
            "POLL_TIMEOUT",
        ),
        (
            Settings(artifacts=ArtifactSettings(public_base_url="ftp://cdn.example.com")),
            "Invalid MEDIAGEN_ARTIFACT_PUBLIC_BASE_URL",
        ),
    ],
)
def test_validate_rejects_out_of_range_values(settings: Settings, message: str) -> None:
    with pytest.raises(ConfigError, match=message):
        settings.validate()
