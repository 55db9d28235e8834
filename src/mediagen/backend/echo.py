"""Deterministic in-process providers for smoke runs and tests."""

from __future__ import annotations

import hashlib
import itertools
import threading

import httpx

from mediagen.queue.ports import JobHandle, PollResult

ECHO_ARTIFACT_HOST = "echo.mediagen.local"


class EchoEnrichmentProvider:
    """Returns the raw description wrapped in a fixed shot template."""

    def __init__(self, template: str = "Cinematic B-roll shot, no on-screen text: {text}") -> None:
        self.template = template

    def expand(self, raw_text: str) -> str:
        return self.template.format(text=raw_text.strip())


class EchoGenerationProvider:
    """Jobs finish after ``polls_until_done`` polls with one artifact each."""

    def __init__(self, *, polls_until_done: int = 1, artifacts_per_job: int = 1) -> None:
        self.polls_until_done = polls_until_done
        self.artifacts_per_job = artifacts_per_job
        self._ids = itertools.count(1)
        self._polls: dict[str, int] = {}
        self._lock = threading.Lock()

    def submit(self, instruction: str) -> JobHandle:
        digest = hashlib.sha256(instruction.encode("utf-8")).hexdigest()[:8]
        with self._lock:
            name = f"echo-{next(self._ids)}-{digest}"
            self._polls[name] = 0
        return JobHandle(name=name)

    def poll(self, handle: JobHandle) -> PollResult:
        with self._lock:
            count = self._polls.get(handle.name, 0) + 1
            self._polls[handle.name] = count
        if count < self.polls_until_done:
            return PollResult(done=False)
        uris = tuple(
            f"https://{ECHO_ARTIFACT_HOST}/artifacts/{handle.name}-{index + 1}.mp4"
            for index in range(self.artifacts_per_job)
        )
        return PollResult(done=True, artifact_uris=uris)


def echo_transport() -> httpx.MockTransport:
    """Transport that serves echo artifacts as small byte payloads."""

    def _handler(request: httpx.Request) -> httpx.Response:
        if request.url.host != ECHO_ARTIFACT_HOST:
            return httpx.Response(404)
        return httpx.Response(
            200,
            content=f"echo-artifact:{request.url.path}".encode(),
            headers={"content-type": "video/mp4"},
        )

    return httpx.MockTransport(_handler)
