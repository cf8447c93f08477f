"""Public content models consumed by media players.

These models are the stable output of ytsource. Everything parsed from
upstream responses ends up in one of them.
"""

from pydantic import BaseModel, ConfigDict, Field

from ytsource.models.enums import CollectionType, ContentType, FeedItemType

# Stamped on every item this source emits
SOURCE_ID = "youtube"

__all__ = [
    "AudioPlaybackInfo",
    "DownloadInfo",
    "MediaCapabilities",
    "MediaCollection",
    "MediaFeedItem",
    "MediaFeedSection",
    "MediaItem",
    "QualityUrl",
    "VideoPlaybackInfo",
    "VideoQuality",
]


class MediaModel(BaseModel):
    """Base model for public content models."""

    model_config = ConfigDict(frozen=True)


class MediaCapabilities(MediaModel):
    """What a source can do; players use it to route requests."""

    audio: bool
    video: bool
    search: bool
    feed: bool
    suggestions: bool
    playlists: bool
    movies: bool = False
    subtitles: bool = False


class MediaItem(MediaModel):
    """Source-agnostic playable item.

    Music fields (artist, album) and movie/episode fields are optional;
    only the ones relevant to the content type are populated.
    """

    id: str = Field(min_length=1)
    content_id: str = Field(min_length=1)
    title: str
    duration: int = 0
    artwork: str = ""
    type: ContentType = ContentType.TRACK
    source_id: str = SOURCE_ID
    backdrop: str | None = None

    artist: str | None = None
    album: str | None = None

    description: str | None = None
    year: int | None = None
    genres: list[str] | None = None
    rating: str | None = None
    trailer_url: str | None = None

    season_number: int | None = None
    episode_number: int | None = None
    series_id: str | None = None
    series_title: str | None = None


class AudioPlaybackInfo(MediaModel):
    """Resolved audio stream."""

    url: str
    headers: dict[str, str] = Field(default_factory=dict)
    expires_at: int | None = None


class DownloadInfo(MediaModel):
    """Resolved audio stream for offline download."""

    url: str
    content_length: int = 0
    headers: dict[str, str] = Field(default_factory=dict)


class VideoQuality(MediaModel):
    """One rung of a quality ladder."""

    label: str
    height: int
    has_audio: bool
    bitrate: int | None = None
    variant_url: str | None = None


class VideoPlaybackInfo(MediaModel):
    """Resolved video stream with its quality ladder."""

    url: str
    is_dash: bool = False
    is_hls: bool = False
    has_audio: bool = True
    qualities: list[VideoQuality] = Field(default_factory=list)
    default_height: int = 0
    headers: dict[str, str] | None = None


class QualityUrl(MediaModel):
    """Playable URL for one exact quality rung."""

    url: str
    has_audio: bool


class MediaFeedItem(MediaModel):
    """Card in a feed section."""

    id: str
    title: str
    subtitle: str = ""
    thumbnail: str = ""
    type: FeedItemType = FeedItemType.UNKNOWN
    track_id: str | None = None
    browse_id: str | None = None
    backdrop: str | None = None
    year: int | None = None
    rating: str | None = None


class MediaFeedSection(MediaModel):
    """Titled shelf of feed cards."""

    title: str
    type: str = "shelf"
    items: list[MediaFeedItem]
    source_id: str = SOURCE_ID


class MediaCollection(MediaModel):
    """Browsable collection such as a playlist or album."""

    title: str
    subtitle: str = ""
    thumbnail: str = ""
    backdrop: str | None = None
    description: str | None = None
    collection_type: CollectionType | None = None
    items: list[MediaItem] = Field(default_factory=list)
    children: list["MediaCollection"] | None = None
