"""Normalization of feed, collection and search responses.

Upstream trees arrive as typed nodes, raw innertube renderers or flat
ytmusicapi dicts. Everything here degrades to empty values on unfamiliar
shapes; an entry without an ID or title is dropped and the rest of the
list continues.

Pipeline Overview:
==================
1. parse_feed_sections() - Home feed shelves into MediaFeedSection
2. parse_feed_item() - One card: ID extraction, then classify_feed_item()
3. parse_collection() - Playlist or album header plus its rows
4. parse_list_item() - One playlist/album row into a MediaItem
5. parse_video_results() - Video search results into MediaItems
"""

import logging
import re
from collections.abc import Iterable
from typing import Any

from ytsource.models.enums import CollectionType, FeedItemType
from ytsource.models.innertube import (
    CollectionResponse,
    FlatTrack,
    ResponsiveListItem,
    Section,
    TwoRowItem,
    VideoResult,
    text_value,
)
from ytsource.models.media import (
    MediaCollection,
    MediaFeedItem,
    MediaFeedSection,
    MediaItem,
)
from ytsource.utils.artists import format_artists
from ytsource.utils.paths import dig, first_present
from ytsource.utils.text import text_of
from ytsource.utils.thumbnails import extract_header_thumbnail, extract_thumbnail

logger = logging.getLogger(__name__)

ALBUM_PREFIX = "MPRE"
EXCLUDED_ID_PREFIXES = ("VL", "MPR")
VIDEO_ID_LENGTH = 11
UNKNOWN = "Unknown"

# Subtitle keywords checked in order; the first hit decides the kind
SUBTITLE_KINDS: tuple[tuple[tuple[str, ...], FeedItemType], ...] = (
    (("album",), FeedItemType.ALBUM),
    (("artist", "subscriber"), FeedItemType.ARTIST),
    (("song", "single"), FeedItemType.SONG),
)

SKIPPED_SECTION_TYPES = frozenset({"MusicTasteBuilderShelf"})

TWO_ROW_RENDERER = "musicTwoRowItemRenderer"
RESPONSIVE_RENDERER = "musicResponsiveListItemRenderer"

_PLAY_BUTTON_VIDEO_ID = (
    "overlay.musicItemThumbnailOverlayRenderer.content"
    ".musicPlayButtonRenderer.playNavigationEndpoint.watchEndpoint.videoId"
)

# Video ID candidates of a feed card after its endpoints
CARD_VIDEO_ID_PATHS = (
    "overlay.content.payload.videoId",
    "on_tap.payload.videoId",
    _PLAY_BUTTON_VIDEO_ID,
    "videoId",
    "id",
)

# Video ID candidates of a responsive list row
ROW_VIDEO_ID_PATHS = (
    "overlay.content.endpoint.payload.videoId",
    _PLAY_BUTTON_VIDEO_ID,
    "playlistItemData.videoId",
    "flexColumns.0.musicResponsiveListItemFlexColumnRenderer.text.runs.0"
    ".navigationEndpoint.watchEndpoint.videoId",
    "videoId",
    "id",
)

# Row lists of a collection response, first list found wins
COLLECTION_ITEM_PATHS = (
    "contents",
    "music_shelf.contents",
    "section_list.contents.0.contents",
    "tracks",
)

_YEAR_PATTERN = re.compile(r"^\d{4}$")
_TRACK_COUNT_PATTERN = re.compile(r"^\d+\s*(song|track|bài)", re.IGNORECASE)


def _unwrap(raw: dict[str, Any], renderer_key: str) -> dict[str, Any]:
    node = raw.get(renderer_key)
    return node if isinstance(node, dict) else raw


def _node_type(raw: dict[str, Any]) -> str | None:
    if isinstance(raw.get(RESPONSIVE_RENDERER), dict):
        return "MusicResponsiveListItem"
    if isinstance(raw.get(TWO_ROW_RENDERER), dict):
        return "MusicTwoRowItem"
    node_type = raw.get("type")
    if isinstance(node_type, str) and node_type.startswith("Music"):
        return node_type
    return None


def _year(value: str | None) -> int | None:
    if value and _YEAR_PATTERN.match(value.strip()):
        return int(value)
    return None


# ============================================================================
# CLASSIFICATION
# ============================================================================


def is_video_id(value: str | None) -> bool:
    """Check for an 11-character ID that is not a playlist or album ID."""
    return (
        bool(value)
        and len(value) == VIDEO_ID_LENGTH
        and not value.startswith(EXCLUDED_ID_PREFIXES)
    )


def classify_feed_item(
    video_id: str | None, browse_id: str | None, subtitle: str
) -> FeedItemType:
    """Decide what kind of card this is from the available signals.

    A playable video ID always means a song, whatever the subtitle says.
    Otherwise a browse target is classified by subtitle keywords and
    defaults to a playlist. With neither signal the kind is unknown.
    """
    if is_video_id(video_id):
        return FeedItemType.SONG
    if browse_id:
        lower = subtitle.lower()
        for keywords, kind in SUBTITLE_KINDS:
            if any(keyword in lower for keyword in keywords):
                return kind
        return FeedItemType.PLAYLIST
    return FeedItemType.UNKNOWN


# ============================================================================
# FEED
# ============================================================================


def parse_feed_item(raw: Any) -> MediaFeedItem | None:
    """Parse one feed card.

    Accepts typed ``MusicTwoRowItem`` nodes, raw two-row renderers and
    flat ytmusicapi cards. Typed nodes of any other class are ignored.

    Returns:
        The card, or None if it has no title.
    """
    if not isinstance(raw, dict):
        return None
    node_type = _node_type(raw)
    if node_type is not None and node_type != "MusicTwoRowItem":
        return None

    node = _unwrap(raw, TWO_ROW_RENDERER)
    card = TwoRowItem.model_validate(raw)
    title = card.title_text
    subtitle = card.subtitle_text
    browse_id = card.target_browse_id
    video_id = card.endpoint_video_id or text_of(first_present(node, CARD_VIDEO_ID_PATHS))

    kind = classify_feed_item(video_id, browse_id, subtitle)
    if not title:
        return None
    return MediaFeedItem(
        id=browse_id or video_id or title,
        title=title,
        subtitle=subtitle,
        thumbnail=extract_thumbnail(node),
        type=kind,
        track_id=video_id if is_video_id(video_id) else None,
        browse_id=browse_id or None,
        year=_year(card.year),
    )


def parse_feed_sections(feed: Any) -> list[MediaFeedSection]:
    """Parse home feed shelves.

    Args:
        feed: A list of shelves, or a dict holding them under ``sections``.

    Returns:
        Titled sections that kept at least one card. Taste-builder
        shelves are skipped.
    """
    if isinstance(feed, dict):
        feed = feed.get("sections")
    if not isinstance(feed, list):
        return []

    sections: list[MediaFeedSection] = []
    for raw in feed:
        if not isinstance(raw, dict):
            continue
        section = Section.model_validate(raw)
        if section.type in SKIPPED_SECTION_TYPES:
            continue
        title = section.title_text
        if not title:
            continue

        items: list[MediaFeedItem] = []
        for raw_item in section.contents:
            try:
                item = parse_feed_item(raw_item)
            except Exception as e:
                logger.debug("Skipping malformed card in '%s': %s", title, e)
                continue
            if item:
                items.append(item)

        if not items:
            logger.debug("Skipping empty section '%s'", title)
            continue
        if section.type:
            sections.append(MediaFeedSection(title=title, type=section.type, items=items))
        else:
            sections.append(MediaFeedSection(title=title, items=items))
    return sections


# ============================================================================
# LIST ITEMS & COLLECTIONS
# ============================================================================


def _track(
    video_id: str | None,
    title: str,
    artist: str,
    fallback_artist: str,
    artwork: str,
    duration: int = 0,
    album: str | None = None,
) -> MediaItem | None:
    if not video_id or not title:
        return None
    return MediaItem(
        id=video_id,
        content_id=video_id,
        title=title,
        artist=artist or fallback_artist or UNKNOWN,
        album=album or None,
        artwork=artwork,
        duration=duration,
    )


def parse_list_item(raw: Any, fallback_artist: str = "") -> MediaItem | None:
    """Parse one playlist or album row into a track.

    Accepts responsive list rows (typed or raw), two-row cards and flat
    ytmusicapi tracks.

    Args:
        raw: Row in any supported shape.
        fallback_artist: Artist used when the row names none.

    Returns:
        The track, or None if the row has no video ID or no title.
    """
    if not isinstance(raw, dict):
        return None

    match _node_type(raw):
        case "MusicResponsiveListItem":
            node = _unwrap(raw, RESPONSIVE_RENDERER)
            row = ResponsiveListItem.model_validate(raw)
            return _track(
                text_of(first_present(node, ROW_VIDEO_ID_PATHS)),
                row.title_text,
                row.artist_text,
                fallback_artist,
                extract_thumbnail(node),
                row.duration,
                row.album.name if row.album else None,
            )
        case "MusicTwoRowItem":
            node = _unwrap(raw, TWO_ROW_RENDERER)
            card = TwoRowItem.model_validate(raw)
            video_id = card.endpoint_video_id or card.video_id or card.id
            return _track(
                video_id,
                card.title_text,
                card.subtitle_text,
                fallback_artist,
                extract_thumbnail(node),
            )
        case None if "videoId" in raw:
            track = FlatTrack.model_validate(raw)
            return _track(
                track.video_id,
                track.title or "",
                format_artists(track.artists),
                fallback_artist,
                extract_thumbnail(raw),
                track.seconds,
                track.album.name if track.album else None,
            )
        case _:
            return None


def extract_album_artist(response: CollectionResponse, subtitle: str) -> str:
    """Find the album artist.

    Order: the header strapline, a subtitle run linking to a non-album
    browse target, the flat ``artists`` list, then the first bullet
    segment of the subtitle that is not a year, a track count or the
    word "album".
    """
    header = response.header
    if header and header.strapline_text_one and header.strapline_text_one.value:
        return header.strapline_text_one.value
    if header and header.subtitle:
        for run in header.subtitle.runs:
            browse_id = run.browse_id
            if browse_id and not browse_id.startswith(ALBUM_PREFIX) and run.text:
                return run.text
    if artists := format_artists(response.artists):
        return artists
    if "•" in subtitle:
        for part in (segment.strip() for segment in subtitle.split("•")):
            if (
                part
                and not _YEAR_PATTERN.match(part)
                and not _TRACK_COUNT_PATTERN.match(part)
                and part.lower() != "album"
            ):
                return part
    return ""


def _compose_subtitle(response: CollectionResponse, kind: CollectionType) -> str:
    parts: list[str] = []
    if kind == CollectionType.ALBUM and response.type:
        parts.append(response.type)
    if names := format_artists(response.artists):
        parts.append(names)
    elif response.author and response.author.name:
        parts.append(response.author.name)
    if response.year:
        parts.append(response.year)
    if response.track_count:
        parts.append(f"{response.track_count} songs")
    return " • ".join(parts)


def _collection_rows(raw: dict[str, Any]) -> list[Any]:
    for path in COLLECTION_ITEM_PATHS:
        rows = dig(raw, path)
        if isinstance(rows, list):
            return rows
    return []


def parse_collection(raw: Any, kind: CollectionType) -> MediaCollection:
    """Parse a playlist or album response.

    Album rows take the album artist as fallback artist, and rows without
    artwork inherit the album cover.

    Args:
        raw: Playlist or album response, typed or flat.
        kind: Collection kind to emit.

    Returns:
        The collection; malformed rows are skipped.
    """
    if not isinstance(raw, dict):
        raw = {}
    response = CollectionResponse.model_validate(raw)
    is_album = kind == CollectionType.ALBUM

    title = response.title_text or ("Album" if is_album else "Playlist")
    header = response.header
    subtitle = text_value(header.subtitle) if header else ""
    if not subtitle:
        subtitle = _compose_subtitle(response, kind)
    thumbnail = extract_header_thumbnail(raw)
    description = (text_value(header.description) if header else "") or response.description
    fallback_artist = extract_album_artist(response, subtitle) if is_album else ""

    items: list[MediaItem] = []
    for row in _collection_rows(raw):
        try:
            item = parse_list_item(row, fallback_artist)
        except Exception as e:
            logger.debug("Skipping malformed row in '%s': %s", title, e)
            continue
        if item is None:
            continue
        if is_album and not item.artwork and thumbnail:
            item = item.model_copy(update={"artwork": thumbnail})
        items.append(item)

    logger.debug("Parsed %s '%s' with %d items", kind, title, len(items))
    return MediaCollection(
        title=title,
        subtitle=subtitle,
        thumbnail=thumbnail,
        description=description or None,
        collection_type=kind,
        items=items,
    )


def collection_type_for(browse_id: str) -> CollectionType:
    """Albums are routed by their ``MPRE`` prefix; everything else is a playlist."""
    if browse_id.startswith(ALBUM_PREFIX):
        return CollectionType.ALBUM
    return CollectionType.PLAYLIST


# ============================================================================
# SEARCH
# ============================================================================


def parse_video_result(raw: Any) -> MediaItem | None:
    """Parse one video search result; None if it has no ID."""
    if not isinstance(raw, dict):
        return None
    result = VideoResult.model_validate(raw)
    content_id = result.content_id
    if not content_id:
        return None
    return MediaItem(
        id=content_id,
        content_id=content_id,
        title=text_value(result.title) or UNKNOWN,
        artist=result.artist or UNKNOWN,
        artwork=result.thumbnail,
        duration=result.duration,
    )


def parse_video_results(
    results: Iterable[Any], exclude: str | None = None
) -> list[MediaItem]:
    """Parse video search results, skipping malformed entries and ``exclude``."""
    items: list[MediaItem] = []
    for raw in results:
        try:
            item = parse_video_result(raw)
        except Exception as e:
            logger.debug("Skipping malformed search result: %s", e)
            continue
        if item and item.content_id != exclude:
            items.append(item)
    return items


def parse_search_suggestions(raw: Any) -> list[str]:
    """Flatten search suggestions into plain strings.

    Accepts ``SearchSuggestionsSection`` shelves of ``SearchSuggestion``
    items, plain strings and ``{"text": ...}`` dicts. Empty strings are
    dropped.
    """
    if not isinstance(raw, list):
        return []
    suggestions: list[str] = []
    for entry in raw:
        if isinstance(entry, str):
            suggestions.append(entry)
        elif isinstance(entry, dict) and entry.get("type") == "SearchSuggestionsSection":
            for item in entry.get("contents") or []:
                if isinstance(item, dict) and item.get("type") == "SearchSuggestion":
                    suggestions.append(text_of(item.get("suggestion")))
        elif isinstance(entry, dict):
            suggestions.append(text_of(entry))
    return [suggestion for suggestion in suggestions if suggestion]
