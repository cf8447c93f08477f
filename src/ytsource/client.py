"""Upstream session protocol and the per-client-type session pool."""

import asyncio
import logging
from collections.abc import Iterable
from typing import Any, Protocol

from ytsource.models.enums import ClientType
from ytsource.models.innertube import PlaybackFormat, VideoInfo

logger = logging.getLogger(__name__)


class Session(Protocol):
    """Protocol for upstream sessions.

    A session impersonates one client type. This protocol enables
    dependency injection and testing; implement it to create fake
    sessions for tests.
    """

    client_type: ClientType

    async def get_info(
        self, content_id: str, client: ClientType | None = None
    ) -> VideoInfo:
        """Fetch full player metadata, optionally as another client type."""
        ...

    async def get_basic_info(
        self, content_id: str, client: ClientType | None = None
    ) -> VideoInfo:
        """Fetch basic player metadata, optionally as another client type."""
        ...

    async def decipher(self, fmt: PlaybackFormat) -> str:
        """Resolve a format into a time-limited playable URL."""
        ...

    async def to_dash(self, info: VideoInfo) -> str:
        """Synthesize a segmented (DASH) manifest document."""
        ...

    async def search(self, query: str) -> list[dict[str, Any]]:
        """Search for videos."""
        ...

    async def get_search_suggestions(self, query: str) -> list[Any]:
        """Fetch query completions."""
        ...

    async def get_home_feed(self) -> list[dict[str, Any]]:
        """Fetch the home feed sections."""
        ...

    async def get_playlist(self, playlist_id: str) -> dict[str, Any]:
        """Fetch a playlist by ID."""
        ...

    async def get_album(self, album_id: str) -> dict[str, Any]:
        """Fetch an album by browse ID."""
        ...

    async def next(self, content_id: str) -> dict[str, Any]:
        """Fetch the raw watch-next response for a video."""
        ...


class SessionFactory(Protocol):
    """Creates a session for a client type."""

    async def __call__(self, client_type: ClientType) -> Session: ...


class ClientPool:
    """Lazily created sessions keyed by client type.

    Concurrent requests for the same client type share one in-flight
    creation. A creation only records its session while it is still the
    current in-flight creation for its key, so neither a forced
    recreation nor :meth:`dispose` is undone by a late finisher.
    """

    def __init__(
        self, factory: SessionFactory, default: ClientType = ClientType.MWEB
    ) -> None:
        self._factory = factory
        self._default = default
        self._sessions: dict[ClientType, Session] = {}
        self._pending: dict[ClientType, asyncio.Task[Session]] = {}

    async def get(
        self, client_type: ClientType | None = None, force_recreate: bool = False
    ) -> Session:
        """Return the session for a client type, creating it if needed.

        Args:
            client_type: Client type to use. Defaults to the pool default.
            force_recreate: Create a fresh session even if one exists.

        Returns:
            The session.

        Raises:
            Exception: Whatever the session factory raised. Every caller
                awaiting the same creation receives the same error.
        """
        client_type = client_type or self._default

        if not force_recreate:
            if session := self._sessions.get(client_type):
                return session
            if pending := self._pending.get(client_type):
                return await asyncio.shield(pending)

        task = asyncio.create_task(self._create(client_type))
        self._pending[client_type] = task
        return await asyncio.shield(task)

    async def _create(self, client_type: ClientType) -> Session:
        task = asyncio.current_task()
        logger.debug("Creating %s session", client_type)
        try:
            session = await self._factory(client_type)
        except Exception as e:
            logger.warning("Failed to create %s session: %s", client_type, e)
            if self._pending.get(client_type) is task:
                del self._pending[client_type]
            raise

        if self._pending.get(client_type) is task:
            del self._pending[client_type]
            self._sessions[client_type] = session
        else:
            logger.debug("Discarding superseded %s session", client_type)
        return session

    async def warm(self, client_types: Iterable[ClientType]) -> None:
        """Create sessions concurrently, tolerating individual failures."""
        client_types = list(client_types)
        results = await asyncio.gather(
            *(self.get(client_type) for client_type in client_types),
            return_exceptions=True,
        )
        for client_type, result in zip(client_types, results, strict=True):
            if isinstance(result, BaseException):
                logger.warning("Could not warm %s session: %s", client_type, result)

    def has_session(self, client_type: ClientType) -> bool:
        return client_type in self._sessions

    def dispose(self) -> None:
        """Forget all sessions and in-flight creations.

        In-flight network work is not cancelled; its result is dropped.
        """
        self._sessions.clear()
        self._pending.clear()
