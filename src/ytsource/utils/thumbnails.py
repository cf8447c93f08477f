"""Thumbnail extraction from heterogeneous response fragments.

Upstream thumbnail lists are ordered smallest to largest, so the last
entry is taken as the best one.
"""

from typing import Any

from ytsource.utils.paths import dig

# Explicit thumbnail arrays, checked first
THUMBNAIL_ARRAY_PATHS = (
    "thumbnails",
    "thumbnail",
    "thumbnail.contents",
    "thumbnail.thumbnails",
)

# Nested renderer shapes, checked second
THUMBNAIL_RENDERER_PATHS = (
    "thumbnailRenderer.musicThumbnailRenderer.thumbnail.thumbnails",
    "thumbnail.musicThumbnailRenderer.thumbnail.thumbnails",
    "thumbnailRenderer.croppedSquareThumbnailRenderer.thumbnail.thumbnails",
    "thumbnail.croppedSquareThumbnailRenderer.thumbnail.thumbnails",
    "thumbnail.thumbnail.thumbnails",
    "thumbnail_renderer.thumbnail.thumbnails",
    "thumbnailRenderer.thumbnail.thumbnails",
    "thumbnail_renderer.contents",
    "thumbnailRenderer.contents",
    "thumbnail_renderer.thumbnails",
    "thumbnailRenderer.thumbnails",
)

HEADER_THUMBNAIL_PATHS = (
    "header.thumbnail.contents",
    "header.thumbnails",
    "header.thumbnail.musicThumbnailRenderer.thumbnail.thumbnails",
    "header.thumbnail.croppedSquareThumbnailRenderer.thumbnail.thumbnails",
    "background.contents",
    "thumbnails",
)


def _url_of(entry: Any) -> str:
    if isinstance(entry, dict) and isinstance(entry.get("url"), str):
        return entry["url"]
    return ""


def best_thumbnail(thumbnails: Any) -> str:
    """Return the URL of the last (highest resolution) thumbnail.

    Args:
        thumbnails: List of ``{"url": ...}`` entries.

    Returns:
        The URL, or an empty string if the list holds no usable entry.
    """
    if not isinstance(thumbnails, list):
        return ""
    for entry in reversed(thumbnails):
        if url := _url_of(entry):
            return url
    return ""


def _scan_value(value: Any) -> str:
    """Look for an image inside one value of a shallow key scan."""
    if isinstance(value, list):
        return next((u for u in map(_url_of, value) if u.startswith("http")), "")
    if not isinstance(value, dict):
        return ""
    url = best_thumbnail(value.get("thumbnails"))
    if url.startswith("http"):
        return url
    contents = value.get("contents")
    if isinstance(contents, list):
        for entry in contents:
            url = _url_of(entry)
            if url.startswith("http"):
                return url
            if isinstance(entry, dict) and (url := best_thumbnail(entry.get("thumbnails"))):
                return url
    return ""


def extract_thumbnail(item: Any) -> str:
    """Find the best image URL anywhere a feed or list item may keep one.

    Candidates in order: explicit thumbnail arrays, nested renderer
    shapes, then a shallow scan of the item's own keys in enumeration
    order. The first hit wins.

    Args:
        item: Raw item dict.

    Returns:
        Image URL, or an empty string.
    """
    if not isinstance(item, dict):
        return ""
    for path in (*THUMBNAIL_ARRAY_PATHS, *THUMBNAIL_RENDERER_PATHS):
        if url := best_thumbnail(dig(item, path)):
            return url
    for value in item.values():
        if url := _scan_value(value):
            return url
    return ""


def extract_header_thumbnail(response: Any) -> str:
    """Find a collection's cover image in its header or background."""
    for path in HEADER_THUMBNAIL_PATHS:
        if url := best_thumbnail(dig(response, path)):
            return url
    return ""
