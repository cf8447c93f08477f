"""Capabilities the embedding media player provides to a source."""

import logging
from pathlib import Path
from typing import Any, Protocol

import httpx

from ytsource.models.enums import Platform

logger = logging.getLogger(__name__)


class SourceHost(Protocol):
    """Protocol for host capabilities.

    This protocol enables dependency injection and testing.
    Implement this protocol to embed ytsource in a player.
    """

    platform: Platform

    async def fetch(
        self, url: str, headers: dict[str, str] | None = None
    ) -> httpx.Response:
        """Perform a GET request."""
        ...

    def write_cache_file(self, name: str, content: str) -> str:
        """Write a cache file and return its URI."""
        ...

    def log(self, *args: Any) -> None:
        """Emit a diagnostic message."""
        ...


class LocalHost:
    """Host backed by httpx and a local cache directory.

    Used by the CLI and by library users that don't embed ytsource
    in a player.
    """

    def __init__(
        self,
        cache_dir: Path,
        platform: Platform = Platform.ANDROID,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the host.

        Args:
            cache_dir: Directory for manifests and other cache files.
            platform: Platform to report to the source.
            client: Optional HTTP client. Creates one if not provided.
        """
        self.platform = platform
        self._cache_dir = cache_dir
        self._client = client or httpx.AsyncClient(follow_redirects=True, timeout=30.0)

    async def fetch(
        self, url: str, headers: dict[str, str] | None = None
    ) -> httpx.Response:
        return await self._client.get(url, headers=headers)

    def write_cache_file(self, name: str, content: str) -> str:
        self._cache_dir.mkdir(parents=True, exist_ok=True)
        path = self._cache_dir / name
        path.write_text(content, encoding="utf-8")
        logger.debug("Wrote cache file %s (%d bytes)", path, len(content))
        return path.resolve().as_uri()

    def log(self, *args: Any) -> None:
        logger.info(" ".join(str(arg) for arg in args))

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
