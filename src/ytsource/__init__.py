"""ytsource - Resolve and normalize YouTube content for media players.

This library turns YouTube and YouTube Music responses into a small,
stable content model: playable audio and video URLs with quality
ladders, search results, home feed shelves, playlists, albums and
related-track suggestions.

Designed to be embedded in a media player through the SourceHost
protocol, with a CLI for debugging and development.

Examples:
    Resolve a track's audio stream:
    ```python
    from pathlib import Path
    from ytsource import LocalHost, create_source

    host = LocalHost(cache_dir=Path("./cache"))
    async with create_source(host) as source:
        audio = await source.get_audio_url("dQw4w9WgXcQ")
        print(audio.url)
    ```

    Browse the home feed:
    ```python
    async with create_source(host) as source:
        for section in await source.get_home_feed():
            print(section.title, [item.title for item in section.items])
    ```
"""

from ytsource.client import ClientPool, Session, SessionFactory
from ytsource.config import SourceConfig
from ytsource.exceptions import (
    APIError,
    ContentParseError,
    DecipherError,
    FormatNotFoundError,
    ManifestError,
    SessionError,
    YTSourceError,
)
from ytsource.host import LocalHost, SourceHost
from ytsource.models.enums import (
    ClientType,
    CollectionType,
    ContentType,
    FeedItemType,
    FormatType,
    Platform,
)
from ytsource.models.media import (
    AudioPlaybackInfo,
    DownloadInfo,
    MediaCapabilities,
    MediaCollection,
    MediaFeedItem,
    MediaFeedSection,
    MediaItem,
    QualityUrl,
    VideoPlaybackInfo,
    VideoQuality,
)
from ytsource.session import create_session_factory
from ytsource.source import YouTubeSource
from ytsource.utils.logging import install_host_handler


def create_source(
    host: SourceHost,
    config: SourceConfig | None = None,
    session_factory: SessionFactory | None = None,
    forward_logs: bool = True,
) -> YouTubeSource:
    """Create a configured YouTube source.

    This is the recommended way to create a source for library usage.
    It wires the production sessions and forwards ytsource log records
    to ``host.log``.

    Args:
        host: Host capabilities (HTTP, cache files, logging).
        config: Optional configuration. Uses defaults if not provided.
        session_factory: Optional session factory. Uses the yt-dlp and
            ytmusicapi backed sessions if not provided.
        forward_logs: Send the records logged during this source's calls
            to ``host.log``, at INFO and above. Disable when the
            application already configures logging.

    Returns:
        A configured YouTubeSource instance.

    Examples:
        Basic usage:
        ```python
        source = create_source(host)
        await source.initialize()
        ```

        With authentication:
        ```python
        config = SourceConfig(cookies_path=Path("cookies.txt"))
        source = create_source(host, config)
        ```

        With fake sessions for tests:
        ```python
        source = create_source(host, session_factory=fake_factory)
        ```
    """
    config = config or SourceConfig()
    if session_factory is None:
        session_factory = create_session_factory(host, config)

    if not forward_logs:
        return YouTubeSource(host, session_factory, config)

    install_host_handler(ignore="ytsource.host")
    return YouTubeSource(host, session_factory, config, log_sink=host.log)


__all__ = [
    "APIError",
    "AudioPlaybackInfo",
    "ClientPool",
    "ClientType",
    "CollectionType",
    "ContentParseError",
    "ContentType",
    "DecipherError",
    "DownloadInfo",
    "FeedItemType",
    "FormatNotFoundError",
    "FormatType",
    "LocalHost",
    "ManifestError",
    "MediaCapabilities",
    "MediaCollection",
    "MediaFeedItem",
    "MediaFeedSection",
    "MediaItem",
    "Platform",
    "QualityUrl",
    "Session",
    "SessionError",
    "SessionFactory",
    "SourceConfig",
    "SourceHost",
    "VideoPlaybackInfo",
    "VideoQuality",
    "YTSourceError",
    "YouTubeSource",
    "create_source",
]
