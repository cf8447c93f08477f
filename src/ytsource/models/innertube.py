"""Models for parsing upstream YouTube responses.

Upstream trees arrive in several shapes for the same concept: already
parsed ytmusicapi dicts, raw innertube renderers (``musicTwoRowItemRenderer``
and friends) and typed node dicts carrying a ``type`` key. Each model here
accepts every known shape of one concept. All fields are optional and
values of the wrong type degrade to None or an empty list, so validation
never fails on an unfamiliar tree.
"""

from typing import Annotated, Any

from pydantic import (
    AliasChoices,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    model_validator,
)

from ytsource.utils.text import parse_duration

__all__ = [
    "ArtistRef",
    "CollectionHeader",
    "CollectionResponse",
    "CompactVideo",
    "Endpoint",
    "EndpointPayload",
    "FlatTrack",
    "FlexColumn",
    "PlaybackFormat",
    "ResponsiveListItem",
    "Section",
    "SectionHeader",
    "StreamingData",
    "Text",
    "TextRun",
    "ThumbnailRef",
    "TwoRowItem",
    "VideoDetails",
    "VideoInfo",
    "VideoResult",
]


def _mapping_or_none(value: Any) -> Any:
    return value if isinstance(value, dict | BaseModel) else None


def _mappings(value: Any) -> list[Any]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict | BaseModel)]


def _string_or_none(value: Any) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, int | float) and not isinstance(value, bool):
        return str(value)
    return None


def _int_or_none(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    return None


def _text_like(value: Any) -> Any:
    if isinstance(value, str):
        return {"text": value}
    return _mapping_or_none(value)


def _named(value: Any) -> Any:
    if isinstance(value, str):
        return {"name": value}
    if isinstance(value, list):
        value = next(iter(_mappings(value)), None)
    return _mapping_or_none(value)


def _mapping_or_empty(value: Any) -> Any:
    return value if isinstance(value, dict | BaseModel) else {}


def _string_or_empty(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _seconds(value: Any) -> int:
    if isinstance(value, dict):
        value = value.get("seconds", value.get("text"))
    if isinstance(value, str) and ":" in value:
        return parse_duration(value)
    return _int_or_none(value) or 0


Maybe = BeforeValidator(_mapping_or_none)
Items = BeforeValidator(_mappings)
OptStr = Annotated[str | None, BeforeValidator(_string_or_none)]
OptInt = Annotated[int | None, BeforeValidator(_int_or_none)]
Seconds = Annotated[int, BeforeValidator(_seconds)]


def _unwrap(data: Any, *renderer_keys: str) -> Any:
    """Unwrap a raw ``{"<name>Renderer": {...}}`` envelope."""
    if isinstance(data, dict):
        for key in renderer_keys:
            if isinstance(data.get(key), dict):
                return data[key]
    return data


class InnertubeModel(BaseModel):
    """Base model for upstream response fragments."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)


class EndpointPayload(InnertubeModel):
    """Navigation target ids."""

    browse_id: OptStr = Field(default=None, alias="browseId")
    video_id: OptStr = Field(default=None, alias="videoId")
    playlist_id: OptStr = Field(default=None, alias="playlistId")


class Endpoint(InnertubeModel):
    """Navigation endpoint, typed (``payload``) or raw (``browseEndpoint``)."""

    payload: Annotated[EndpointPayload | None, Maybe] = None
    browse_endpoint: Annotated[EndpointPayload | None, Maybe] = Field(
        default=None, alias="browseEndpoint"
    )
    watch_endpoint: Annotated[EndpointPayload | None, Maybe] = Field(
        default=None, alias="watchEndpoint"
    )

    @property
    def browse_id(self) -> str | None:
        if self.payload and self.payload.browse_id:
            return self.payload.browse_id
        return self.browse_endpoint.browse_id if self.browse_endpoint else None

    @property
    def video_id(self) -> str | None:
        if self.payload and self.payload.video_id:
            return self.payload.video_id
        return self.watch_endpoint.video_id if self.watch_endpoint else None


class TextRun(InnertubeModel):
    """One formatted run of a text fragment."""

    text: OptStr = None
    endpoint: Annotated[Endpoint | None, Maybe] = None
    navigation_endpoint: Annotated[Endpoint | None, Maybe] = Field(
        default=None, alias="navigationEndpoint"
    )

    @property
    def browse_id(self) -> str | None:
        for endpoint in (self.endpoint, self.navigation_endpoint):
            if endpoint and endpoint.browse_id:
                return endpoint.browse_id
        return None


class Text(InnertubeModel):
    """Display text in any of its shapes.

    Plain strings are accepted and stored in ``text``.
    """

    text: OptStr = None
    simple_text: OptStr = Field(default=None, alias="simpleText")
    content: OptStr = None
    runs: Annotated[list[TextRun], Items] = []

    @model_validator(mode="before")
    @classmethod
    def _wrap_plain(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"text": data}
        return data

    @property
    def value(self) -> str:
        """Full text: the first present form, else the joined runs."""
        for candidate in (self.text, self.simple_text, self.content):
            if candidate:
                return candidate
        return "".join(run.text or "" for run in self.runs)

    @property
    def first_run(self) -> str:
        """Text of the first run, falling back to the full text."""
        if self.simple_text:
            return self.simple_text
        if self.runs and self.runs[0].text:
            return self.runs[0].text
        return self.value


TextField = Annotated[Text | None, BeforeValidator(_text_like)]


def text_value(text: Text | None) -> str:
    """Display text of an optional text field."""
    return text.value if text else ""


class ThumbnailRef(InnertubeModel):
    """Image URL with optional dimensions."""

    url: OptStr = None
    width: OptInt = None
    height: OptInt = None


class ArtistRef(InnertubeModel):
    """Artist or author reference; plain strings become the name."""

    name: OptStr = None
    id: OptStr = None


ArtistField = Annotated[ArtistRef | None, BeforeValidator(_named)]


# ============================================================================
# FEED CARDS & LIST ITEMS
# ============================================================================


class TwoRowItem(InnertubeModel):
    """Feed card: typed ``MusicTwoRowItem``, raw renderer, or ytmusicapi item.

    ytmusicapi items reuse ``type`` for a display label ("Album", "Single"),
    while typed nodes store their node class there ("MusicTwoRowItem").
    """

    type: OptStr = None
    id: OptStr = None
    title: TextField = None
    subtitle: TextField = None
    endpoint: Annotated[Endpoint | None, Maybe] = None
    navigation_endpoint: Annotated[Endpoint | None, Maybe] = Field(
        default=None, alias="navigationEndpoint"
    )
    browse_id: OptStr = Field(default=None, alias="browseId")
    video_id: OptStr = Field(default=None, alias="videoId")
    playlist_id: OptStr = Field(default=None, alias="playlistId")
    artists: Annotated[list[ArtistRef], Items] = []
    author: ArtistField = None
    year: OptStr = None
    subscribers: OptStr = None
    description: OptStr = None
    count: OptStr = None

    @model_validator(mode="before")
    @classmethod
    def _unwrap_renderer(cls, data: Any) -> Any:
        return _unwrap(data, "musicTwoRowItemRenderer")

    @property
    def node_type(self) -> str | None:
        """Node class name for typed nodes, None for flat items."""
        if self.type and self.type.startswith("Music"):
            return self.type
        return None

    @property
    def title_text(self) -> str:
        return text_value(self.title)

    @property
    def subtitle_text(self) -> str:
        """Subtitle as shown on the card, composed for flat items."""
        if self.subtitle and self.subtitle.value:
            return self.subtitle.value
        parts: list[str] = []
        if self.type and not self.node_type:
            parts.append(self.type)
        names = [artist.name for artist in self.artists if artist.name]
        if isinstance(self.author, ArtistRef) and self.author.name:
            names.append(self.author.name)
        if names:
            parts.append(", ".join(names))
        if self.year:
            parts.append(self.year)
        if self.subscribers:
            parts.append(f"{self.subscribers} subscribers")
        if self.count:
            parts.append(f"{self.count} songs")
        if not parts and self.description:
            parts.append(self.description)
        return " • ".join(parts)

    @property
    def target_browse_id(self) -> str | None:
        for endpoint in (self.endpoint, self.navigation_endpoint):
            if endpoint and endpoint.browse_id:
                return endpoint.browse_id
        if self.browse_id:
            return self.browse_id
        if self.playlist_id and not self.video_id:
            return f"VL{self.playlist_id}"
        return None

    @property
    def endpoint_video_id(self) -> str | None:
        for endpoint in (self.endpoint, self.navigation_endpoint):
            if endpoint and endpoint.video_id:
                return endpoint.video_id
        return None


class FlexColumn(InnertubeModel):
    """Column of a list item: typed (``title``) or raw (``text``)."""

    title: TextField = None
    text: TextField = None

    @model_validator(mode="before")
    @classmethod
    def _unwrap_renderer(cls, data: Any) -> Any:
        return _unwrap(data, "musicResponsiveListItemFlexColumnRenderer")

    @property
    def _text(self) -> Text | None:
        return self.title or self.text

    @property
    def title_value(self) -> str:
        """Plain text, else the first run."""
        text = self._text
        if text is None:
            return ""
        return text.text or text.first_run

    @property
    def artist_value(self) -> str:
        """Plain text, else every non-separator run joined with commas."""
        text = self._text
        if text is None:
            return ""
        if text.text:
            return text.text
        return ", ".join(
            run.text for run in text.runs if run.text and run.text.strip() not in ("", "•")
        )


class ResponsiveListItem(InnertubeModel):
    """Row in a playlist or album: typed node or raw renderer."""

    type: OptStr = None
    id: OptStr = None
    title: TextField = None
    flex_columns: Annotated[list[FlexColumn], Items] = Field(
        default=[], validation_alias=AliasChoices("flex_columns", "flexColumns")
    )
    artists: Annotated[list[ArtistRef], Items] = []
    author: ArtistField = None
    album: ArtistField = None
    duration: Seconds = 0

    @model_validator(mode="before")
    @classmethod
    def _unwrap_renderer(cls, data: Any) -> Any:
        return _unwrap(data, "musicResponsiveListItemRenderer")

    @property
    def title_text(self) -> str:
        if self.flex_columns and self.flex_columns[0].title_value:
            return self.flex_columns[0].title_value
        return text_value(self.title)

    @property
    def artist_text(self) -> str:
        if len(self.flex_columns) > 1 and self.flex_columns[1].artist_value:
            return self.flex_columns[1].artist_value
        names = [artist.name for artist in self.artists if artist.name]
        if names:
            return ", ".join(names)
        if self.author and self.author.name:
            return self.author.name
        return ""


class FlatTrack(InnertubeModel):
    """Track as parsed by ytmusicapi (playlist, album or watch entries)."""

    video_id: OptStr = Field(default=None, alias="videoId")
    title: OptStr = None
    artists: Annotated[list[ArtistRef], Items] = []
    album: ArtistField = None
    duration_seconds: OptInt = None
    duration: OptStr = None

    @property
    def seconds(self) -> int:
        if self.duration_seconds is not None:
            return self.duration_seconds
        return parse_duration(self.duration)


# ============================================================================
# SECTIONS & COLLECTIONS
# ============================================================================


class SectionHeader(InnertubeModel):
    """Shelf header."""

    title: TextField = None
    strapline: TextField = None

    @model_validator(mode="before")
    @classmethod
    def _unwrap_renderer(cls, data: Any) -> Any:
        return _unwrap(data, "musicCarouselShelfBasicHeaderRenderer")


class Section(InnertubeModel):
    """Feed shelf: typed node, raw carousel renderer, or ytmusicapi row."""

    type: OptStr = None
    header: Annotated[SectionHeader | None, Maybe] = None
    title: TextField = None
    contents: Annotated[list[Any], Items] = []

    @model_validator(mode="before")
    @classmethod
    def _unwrap_renderer(cls, data: Any) -> Any:
        if isinstance(data, dict):
            if isinstance(data.get("musicTasteBuilderShelfRenderer"), dict):
                return {"type": "MusicTasteBuilderShelf"}
            if isinstance(data.get("musicCarouselShelfRenderer"), dict):
                return {"type": "MusicCarouselShelf", **data["musicCarouselShelfRenderer"]}
        return data

    @property
    def title_text(self) -> str:
        if self.header and self.header.title:
            return self.header.title.value
        return text_value(self.title)


class CollectionHeader(InnertubeModel):
    """Playlist or album header, typed or raw."""

    title: TextField = None
    subtitle: TextField = None
    strapline_text_one: TextField = Field(default=None, alias="straplineTextOne")
    description: TextField = None

    @model_validator(mode="before")
    @classmethod
    def _unwrap_renderer(cls, data: Any) -> Any:
        return _unwrap(
            data,
            "musicResponsiveHeaderRenderer",
            "musicDetailHeaderRenderer",
            "musicImmersiveHeaderRenderer",
        )


class CollectionResponse(InnertubeModel):
    """Playlist or album response."""

    type: OptStr = None
    header: Annotated[CollectionHeader | None, Maybe] = None
    title: TextField = None
    description: OptStr = None
    author: ArtistField = None
    artists: Annotated[list[ArtistRef], Items] = []
    year: OptStr = None
    track_count: OptInt = Field(default=None, alias="trackCount")

    @property
    def title_text(self) -> str:
        if self.header and self.header.title and self.header.title.value:
            return self.header.title.value
        return text_value(self.title)


# ============================================================================
# SEARCH & SUGGESTIONS
# ============================================================================


class VideoResult(InnertubeModel):
    """Video search result: typed ``Video`` node or yt-dlp flat entry."""

    id: OptStr = None
    video_id: OptStr = Field(default=None, alias="videoId")
    title: TextField = None
    author: ArtistField = None
    channel: OptStr = None
    uploader: OptStr = None
    duration: Seconds = 0
    best_thumbnail: Annotated[ThumbnailRef | None, Maybe] = None
    thumbnails: Annotated[list[ThumbnailRef], Items] = []

    @property
    def content_id(self) -> str | None:
        return self.id or self.video_id

    @property
    def artist(self) -> str:
        if self.author and self.author.name:
            return self.author.name
        return self.channel or self.uploader or ""

    @property
    def thumbnail(self) -> str:
        if self.best_thumbnail and self.best_thumbnail.url:
            return self.best_thumbnail.url
        sized = [t for t in self.thumbnails if t.url]
        if not sized:
            return ""
        best = max(sized, key=lambda t: (t.width or 0) * (t.height or 0))
        return best.url or ""


class CompactVideo(InnertubeModel):
    """Related video in the ``compactVideoRenderer`` shape."""

    video_id: OptStr = Field(default=None, alias="videoId")
    title: TextField = None
    long_byline_text: TextField = Field(default=None, alias="longBylineText")
    short_byline_text: TextField = Field(default=None, alias="shortBylineText")
    length_text: TextField = Field(default=None, alias="lengthText")

    @model_validator(mode="before")
    @classmethod
    def _unwrap_renderer(cls, data: Any) -> Any:
        return _unwrap(data, "compactVideoRenderer")

    @property
    def artist(self) -> str:
        for byline in (self.long_byline_text, self.short_byline_text):
            if byline and byline.first_run:
                return byline.first_run
        return ""


# ============================================================================
# PLAYBACK
# ============================================================================


def _codecs(mime_type: str) -> list[str]:
    if "codecs=" not in mime_type:
        return []
    raw = mime_type.split("codecs=", 1)[1].strip().strip('"')
    return [codec.strip() for codec in raw.split(",") if codec.strip()]


_AUDIO_CODEC_PREFIXES = ("mp4a", "opus", "vorbis", "ac-3", "ec-3")


class PlaybackFormat(InnertubeModel):
    """One encoding of a video.

    Accepts raw ``streamingData`` format dicts. When ``has_video`` and
    ``has_audio`` are absent they are derived from the MIME codecs.
    """

    itag: OptInt = None
    url: OptStr = None
    signature_cipher: OptStr = Field(
        default=None, validation_alias=AliasChoices("signature_cipher", "signatureCipher", "cipher")
    )
    mime_type: Annotated[str, BeforeValidator(_string_or_empty)] = Field(
        default="", alias="mimeType"
    )
    has_video: bool = False
    has_audio: bool = False
    height: OptInt = None
    width: OptInt = None
    bitrate: OptInt = None
    content_length: OptInt = Field(default=None, alias="contentLength")
    quality_label: OptStr = Field(default=None, alias="qualityLabel")
    init_range: OptStr = None
    index_range: OptStr = None
    approx_duration_ms: OptInt = Field(default=None, alias="approxDurationMs")

    @model_validator(mode="before")
    @classmethod
    def _derive(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for key, raw_key in (("init_range", "initRange"), ("index_range", "indexRange")):
            span = data.pop(raw_key, None)
            if isinstance(span, dict) and "start" in span and "end" in span:
                data.setdefault(key, f"{span['start']}-{span['end']}")
        mime_type = data.get("mimeType", data.get("mime_type"))
        if isinstance(mime_type, str) and "has_video" not in data:
            codecs = _codecs(mime_type)
            audio = [c for c in codecs if c.startswith(_AUDIO_CODEC_PREFIXES)]
            if mime_type.startswith("audio/"):
                data["has_audio"], data["has_video"] = True, False
            else:
                data["has_video"] = True
                data["has_audio"] = bool(audio)
        return data

    @property
    def is_muxed(self) -> bool:
        return self.has_video and self.has_audio

    @property
    def codecs(self) -> list[str]:
        return _codecs(self.mime_type)


class StreamingData(InnertubeModel):
    """Formats and manifests of one video."""

    formats: Annotated[list[PlaybackFormat], Items] = []
    adaptive_formats: Annotated[list[PlaybackFormat], Items] = Field(
        default=[], alias="adaptiveFormats"
    )
    hls_manifest_url: OptStr = Field(default=None, alias="hlsManifestUrl")
    expires_in_seconds: OptInt = Field(default=None, alias="expiresInSeconds")


class VideoDetails(InnertubeModel):
    """Basic metadata of one video."""

    id: OptStr = Field(default=None, validation_alias=AliasChoices("id", "videoId"))
    title: OptStr = None
    author: OptStr = None
    channel: OptStr = None
    duration: OptInt = Field(
        default=None, validation_alias=AliasChoices("duration", "lengthSeconds")
    )
    thumbnail: OptStr = None


class VideoInfo(InnertubeModel):
    """Player response: metadata plus streaming data."""

    basic_info: Annotated[VideoDetails, BeforeValidator(_mapping_or_empty)] = Field(
        default_factory=VideoDetails,
        validation_alias=AliasChoices("basic_info", "videoDetails"),
    )
    streaming_data: Annotated[StreamingData | None, Maybe] = Field(
        default=None, validation_alias=AliasChoices("streaming_data", "streamingData")
    )

    @property
    def all_formats(self) -> list[PlaybackFormat]:
        if not self.streaming_data:
            return []
        return [*self.streaming_data.formats, *self.streaming_data.adaptive_formats]
