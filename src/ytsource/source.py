"""YouTube media source: the surface a media player talks to."""

import logging
from types import TracebackType
from typing import Self

from ytsource.client import ClientPool, SessionFactory
from ytsource.config import SourceConfig
from ytsource.host import SourceHost
from ytsource.models.enums import ClientType, CollectionType
from ytsource.models.media import (
    SOURCE_ID,
    AudioPlaybackInfo,
    DownloadInfo,
    MediaCapabilities,
    MediaCollection,
    MediaFeedSection,
    MediaItem,
    QualityUrl,
    VideoPlaybackInfo,
)
from ytsource.services import normalizer
from ytsource.services.formats import FormatSelector
from ytsource.services.hls import HlsManifestProcessor
from ytsource.services.suggestions import SuggestionResolver
from ytsource.utils.logging import LogSink, forwards_host_logs

logger = logging.getLogger(__name__)

SOURCE_NAME = "YouTube Music"
SOURCE_VERSION = "1.0.0"


class YouTubeSource:
    """Resolves and normalizes YouTube content for a media player.

    Playback methods return None for unplayable videos; discovery methods
    that feed optional UI (suggestions, home feed) return empty lists on
    upstream failure. Search, collections and audio resolution raise.

    Use :func:`ytsource.create_source` to build one.
    """

    CAPABILITIES = MediaCapabilities(
        audio=True,
        video=True,
        search=True,
        feed=True,
        suggestions=True,
        playlists=True,
        movies=False,
        subtitles=False,
    )

    id = SOURCE_ID
    name = SOURCE_NAME
    version = SOURCE_VERSION

    def __init__(
        self,
        host: SourceHost,
        session_factory: SessionFactory,
        config: SourceConfig | None = None,
        log_sink: LogSink | None = None,
    ) -> None:
        """Initialize the source.

        Args:
            host: Host capabilities (HTTP, cache files, logging).
            session_factory: Creates one upstream session per client type.
            config: Optional configuration. Uses defaults if not provided.
            log_sink: Receives the records logged while this source's
                methods run. Nothing is forwarded when None.
        """
        self._host = host
        self.log_sink = log_sink
        self._config = config or SourceConfig()
        self._pool = ClientPool(session_factory, default=self._config.default_client)
        self._hls = HlsManifestProcessor(host, self._config)
        self._formats = FormatSelector(self._pool, host, self._config, self._hls)
        self._suggestions = SuggestionResolver(self._pool, self._config)

    @property
    def capabilities(self) -> MediaCapabilities:
        return self.CAPABILITIES

    # -- lifecycle ---------------------------------------------------------------

    @forwards_host_logs
    async def initialize(self) -> None:
        """Create the commonly used sessions ahead of time.

        Individual failures are logged; the session is retried on first use.
        """
        await self._pool.warm(self._config.warm_clients)
        logger.info("%s source ready", self.name)

    @forwards_host_logs
    async def dispose(self) -> None:
        """Drop sessions and cached metadata."""
        self._pool.dispose()
        self._formats.clear()
        self._hls.clear()

    async def __aenter__(self) -> Self:
        await self.initialize()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.dispose()

    # -- playback ----------------------------------------------------------------

    @forwards_host_logs
    async def get_audio_url(self, content_id: str) -> AudioPlaybackInfo:
        """Resolve the audio stream for playback.

        Raises:
            FormatNotFoundError: If the video has no audio format.
            APIError: If metadata cannot be fetched.
        """
        return await self._formats.resolve_audio(content_id)

    @forwards_host_logs
    async def get_direct_audio_url(self, content_id: str) -> AudioPlaybackInfo:
        """Resolve a direct audio stream, never an HLS manifest.

        Raises:
            FormatNotFoundError: If the video has no audio format.
            APIError: If metadata cannot be fetched.
        """
        return await self._formats.resolve_direct_audio(content_id)

    @forwards_host_logs
    async def get_download_info(self, content_id: str) -> DownloadInfo:
        """Resolve the audio stream for offline download.

        Raises:
            FormatNotFoundError: If the video has no audio format.
            APIError: If metadata cannot be fetched.
        """
        return await self._formats.resolve_download(content_id)

    @forwards_host_logs
    async def get_video_info(self, content_id: str) -> VideoPlaybackInfo | None:
        return await self._formats.resolve_video(content_id)

    @forwards_host_logs
    async def get_video_url_for_quality(
        self, content_id: str, height: int
    ) -> QualityUrl | None:
        return await self._formats.resolve_video_at_height(content_id, height)

    @forwards_host_logs
    def get_filtered_hls_url(self, height: int) -> str | None:
        """Write an HLS manifest holding only the ``height`` variant.

        Applies to the video of the most recent :meth:`get_video_info` call.
        """
        content_id = self._formats.current_content_id
        if content_id is None:
            return None
        return self._hls.filtered_manifest_url(height, content_id)

    # -- discovery ---------------------------------------------------------------

    @forwards_host_logs
    async def search(self, query: str) -> list[MediaItem]:
        """Search for videos.

        Raises:
            APIError: If the search request fails.
        """
        session = await self._pool.get(ClientType.WEB)
        results = await session.search(query)
        items = normalizer.parse_video_results(results)
        logger.debug("Search '%s' returned %d items", query, len(items))
        return items

    @forwards_host_logs
    async def get_search_suggestions(self, query: str) -> list[str]:
        try:
            session = await self._pool.get(ClientType.ANDROID_MUSIC)
            raw = await session.get_search_suggestions(query)
        except Exception as e:
            logger.warning("Search suggestions failed for '%s': %s", query, e)
            return []
        return normalizer.parse_search_suggestions(raw)

    @forwards_host_logs
    async def get_home_feed(self) -> list[MediaFeedSection]:
        try:
            session = await self._pool.get(ClientType.ANDROID_MUSIC)
            feed = await session.get_home_feed()
            return normalizer.parse_feed_sections(feed)
        except Exception as e:
            logger.warning("Home feed failed: %s", e)
            return []

    @forwards_host_logs
    async def get_collection(self, browse_id: str) -> MediaCollection:
        """Fetch a playlist or album; ``MPRE`` browse IDs are albums.

        Raises:
            APIError: If the request fails.
        """
        session = await self._pool.get(ClientType.ANDROID_MUSIC)
        kind = normalizer.collection_type_for(browse_id)
        if kind == CollectionType.ALBUM:
            raw = await session.get_album(browse_id)
        else:
            raw = await session.get_playlist(browse_id)
        return normalizer.parse_collection(raw, kind)

    @forwards_host_logs
    async def get_suggestions(self, content_id: str) -> list[MediaItem]:
        return await self._suggestions.get_suggestions(content_id)
