"""Enumerations for ytsource models."""

from enum import StrEnum


class ClientType(StrEnum):
    """Upstream front-end a session impersonates."""

    WEB = "WEB"
    MWEB = "MWEB"
    ANDROID = "ANDROID"
    ANDROID_MUSIC = "ANDROID_MUSIC"
    IOS = "IOS"

    @property
    def player_client(self) -> str:
        """Name of the matching yt-dlp ``player_client`` extractor argument."""
        match self:
            case ClientType.WEB:
                return "web"
            case ClientType.MWEB:
                return "mweb"
            case ClientType.ANDROID:
                return "android"
            case ClientType.ANDROID_MUSIC:
                # yt-dlp no longer ships an android_music client
                return "web_music"
            case ClientType.IOS:
                return "ios"


class Platform(StrEnum):
    """Host platform the media player runs on."""

    IOS = "ios"
    ANDROID = "android"


class ContentType(StrEnum):
    """Kind of a playable media item."""

    TRACK = "track"
    MOVIE = "movie"
    SERIES = "series"
    EPISODE = "episode"


class FeedItemType(StrEnum):
    """Kind of a card in a feed section."""

    PLAYLIST = "playlist"
    ALBUM = "album"
    SONG = "song"
    ARTIST = "artist"
    MOVIE = "movie"
    SERIES = "series"
    EPISODE = "episode"
    CATEGORY = "category"
    UNKNOWN = "unknown"


class CollectionType(StrEnum):
    """Kind of a browsable collection."""

    PLAYLIST = "playlist"
    ALBUM = "album"
    SEASON = "season"
    SERIES = "series"
    CATEGORY = "category"


class FormatType(StrEnum):
    """Stream content requested from a format selection."""

    AUDIO = "audio"
    VIDEO = "video"
    VIDEO_AUDIO = "video+audio"
