"""Shared test fixtures."""

from __future__ import annotations

import pytest
from fakes import (
    FakeArtifactStore,
    FakeDownloader,
    FakeEnrichment,
    FakeGeneration,
    FakeRecordStore,
    QueueHarness,
    make_settings,
)

from mediagen.queue.scheduling import ManualScheduler


@pytest.fixture()
def harness() -> QueueHarness:
    return QueueHarness(
        scheduler=ManualScheduler(),
        records=FakeRecordStore(),
        enrichment=FakeEnrichment(),
        generation=FakeGeneration(),
        downloader=FakeDownloader(),
        artifacts=FakeArtifactStore(),
        settings=make_settings(),
    )
