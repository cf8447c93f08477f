"""Related-track suggestions.

Two strategies, tried in order:

1. The web watch-next response, whose sidebar holds related videos in
   either the lockup shape or the older compact video renderer.
2. A video search for the seed's title and channel.

Every failure is swallowed; a seed with no suggestions yields ``[]``.
"""

import logging
from typing import Any

from ytsource.client import ClientPool
from ytsource.config import SourceConfig
from ytsource.models.enums import ClientType
from ytsource.models.innertube import CompactVideo, text_value
from ytsource.models.media import MediaItem
from ytsource.services.normalizer import UNKNOWN, parse_video_results
from ytsource.utils.paths import dig, first_present
from ytsource.utils.text import parse_duration
from ytsource.utils.thumbnails import best_thumbnail

logger = logging.getLogger(__name__)

WATCH_NEXT_RESULTS_PATH = (
    "contents.twoColumnWatchNextResults.secondaryResults.secondaryResults.results"
)
LOCKUP_TITLE_PATH = "metadata.lockupMetadataViewModel.title.content"
LOCKUP_ROWS_PATH = (
    "metadata.lockupMetadataViewModel.metadata.contentMetadataViewModel.metadataRows"
)

# Image variants of a lockup, first present wins
LOCKUP_IMAGE_PATHS = (
    "collectionThumbnailViewModel.primaryThumbnail.thumbnailViewModel.image.sources",
    "thumbnailViewModel.image.sources",
    "decoratedThumbnailViewModel.thumbnail.thumbnailViewModel.image.sources",
)

FALLBACK_ARTWORK = "https://i.ytimg.com/vi/{content_id}/hqdefault.jpg"


def _first_metadata_part(lockup: dict[str, Any]) -> str:
    rows = dig(lockup, LOCKUP_ROWS_PATH)
    if not isinstance(rows, list):
        return ""
    for row in rows:
        parts = row.get("metadataParts") if isinstance(row, dict) else None
        for part in parts if isinstance(parts, list) else []:
            content = dig(part, "text.content")
            if isinstance(content, str) and content:
                return content
    return ""


def parse_lockup(lockup: Any) -> MediaItem | None:
    """Parse a ``lockupViewModel`` entry; None if it has no content ID."""
    if not isinstance(lockup, dict):
        return None
    content_id = lockup.get("contentId")
    if not isinstance(content_id, str) or not content_id:
        return None

    title = dig(lockup, LOCKUP_TITLE_PATH)
    artwork = best_thumbnail(first_present(lockup.get("contentImage"), LOCKUP_IMAGE_PATHS))
    return MediaItem(
        id=content_id,
        content_id=content_id,
        title=title if isinstance(title, str) and title else UNKNOWN,
        artist=_first_metadata_part(lockup) or UNKNOWN,
        artwork=artwork or FALLBACK_ARTWORK.format(content_id=content_id),
    )


def parse_compact_video(renderer: Any) -> MediaItem | None:
    """Parse a ``compactVideoRenderer`` entry; None if it has no video ID."""
    if not isinstance(renderer, dict):
        return None
    video = CompactVideo.model_validate(renderer)
    if not video.video_id:
        return None
    node = renderer.get("compactVideoRenderer", renderer)
    return MediaItem(
        id=video.video_id,
        content_id=video.video_id,
        title=(video.title.first_run if video.title else "") or UNKNOWN,
        artist=video.artist or UNKNOWN,
        artwork=best_thumbnail(dig(node, "thumbnail.thumbnails")),
        duration=parse_duration(text_value(video.length_text)),
    )


def parse_watch_next_results(response: Any, exclude: str | None = None) -> list[MediaItem]:
    """Collect related videos from a watch-next response.

    Args:
        response: Raw watch-next response.
        exclude: Content ID to leave out (the seed).

    Returns:
        Related videos in response order; malformed entries are skipped.
    """
    results = dig(response, WATCH_NEXT_RESULTS_PATH)
    if not isinstance(results, list):
        return []

    items: list[MediaItem] = []
    for entry in results:
        if not isinstance(entry, dict):
            continue
        try:
            if "lockupViewModel" in entry:
                item = parse_lockup(entry["lockupViewModel"])
            elif "compactVideoRenderer" in entry:
                item = parse_compact_video(entry)
            else:
                continue
        except Exception as e:
            logger.debug("Skipping malformed related entry: %s", e)
            continue
        if item and item.content_id != exclude:
            items.append(item)
    return items


class SuggestionResolver:
    """Finds tracks related to a seed video."""

    def __init__(self, pool: ClientPool, config: SourceConfig) -> None:
        self._pool = pool
        self._config = config

    async def get_suggestions(self, content_id: str) -> list[MediaItem]:
        """Return up to ``suggestion_limit`` tracks related to ``content_id``.

        The seed itself is never included. Never raises.
        """
        limit = self._config.suggestion_limit
        try:
            items = await self._from_watch_next(content_id)
            if items:
                logger.debug("Got %d related videos for %s", len(items), content_id)
                return items[:limit]
        except Exception as e:
            logger.debug("Watch-next suggestions failed for %s: %s", content_id, e)

        try:
            return (await self._from_search(content_id))[:limit]
        except Exception as e:
            logger.debug("Search suggestions failed for %s: %s", content_id, e)
        return []

    async def _from_watch_next(self, content_id: str) -> list[MediaItem]:
        session = await self._pool.get(ClientType.WEB)
        response = await session.next(content_id)
        return parse_watch_next_results(response, exclude=content_id)

    async def _from_search(self, content_id: str) -> list[MediaItem]:
        session = await self._pool.get(ClientType.WEB)
        query = content_id
        try:
            info = await session.get_basic_info(content_id)
            details = info.basic_info
            if details.title:
                query = f"{details.title} {details.channel or details.author or ''}".strip()
        except Exception as e:
            logger.debug("No basic info for %s, searching by ID: %s", content_id, e)

        results = await session.search(query)
        return parse_video_results(results, exclude=content_id)
