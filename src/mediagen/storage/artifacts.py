"""Artifact download and local artifact storage."""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from urllib.parse import quote

import httpx

from mediagen.errors import ArtifactDownloadError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 120.0
DEFAULT_USER_AGENT = "mediagen/1.0"


class ArtifactFetcher:
    """HTTP client wrapper that downloads generated artifacts."""

    def __init__(
        self,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        api_key: str | None = None,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._client = httpx.Client(
            timeout=httpx.Timeout(timeout_seconds, connect=10.0),
            headers={"User-Agent": user_agent},
            transport=transport,
            follow_redirects=True,
        )

    def download(self, uri: str) -> bytes:
        """Fetch artifact bytes; raises ``ArtifactDownloadError`` on HTTP failure."""

        params = {"key": self._api_key} if self._api_key else None
        response = self._client.get(uri, params=params)
        if not response.is_success:
            raise ArtifactDownloadError(
                "Failed to download artifact: "
                f"HTTP {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )
        logger.debug("Downloaded %d bytes from %s", len(response.content), uri)
        return response.content

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> ArtifactFetcher:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()


class LocalArtifactStore:
    """Filesystem artifact store returning a public URL or ``file://`` URI."""

    def __init__(self, root: Path, *, public_base_url: str | None = None) -> None:
        self.root = root
        self.public_base_url = public_base_url.rstrip("/") if public_base_url else None

    def store(self, data: bytes, path: str) -> str:
        relative = PurePosixPath(path)
        if relative.is_absolute() or ".." in relative.parts or not relative.parts:
            raise ValueError(f"Invalid artifact storage path: {path!r}")
        target = self.root.joinpath(*relative.parts)
        target.parent.mkdir(parents=True, exist_ok=True)
        if target.exists():
            raise FileExistsError(f"Artifact already exists: {path}")
        target.write_bytes(data)
        logger.info("Stored artifact %s (%d bytes)", path, len(data))
        if self.public_base_url:
            return f"{self.public_base_url}/{quote(str(relative))}"
        return target.resolve().as_uri()
