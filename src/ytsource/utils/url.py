"""URL parsing utilities."""

import re
from urllib.parse import urlparse

from ytsource.exceptions import ContentParseError

PLAYLIST_ID_PATTERN = re.compile(r"list=([A-Za-z0-9_-]+)")
VIDEO_ID_PATTERN = re.compile(r"v=([A-Za-z0-9_-]{11})")
CONTENT_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]{11}")
BROWSE_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]{2,}")

# Path-based video ID patterns (youtu.be, shorts, live, embed)
_PATH_VIDEO_ID_PATTERN = re.compile(r"^/(?:shorts|live|embed|e|v|vi)/([A-Za-z0-9_-]{11})")

# Recognized YouTube hostnames for path-based ID extraction
_YOUTUBE_HOSTS = {
    "youtube.com",
    "www.youtube.com",
    "m.youtube.com",
    "music.youtube.com",
    "youtube-nocookie.com",
    "www.youtube-nocookie.com",
}

# Maximum URL length to prevent potential abuse (standard browser limit)
MAX_URL_LENGTH = 2048


def parse_content_id(value: str) -> str:
    """Extract a video ID from a bare ID or a YouTube URL.

    Args:
        value: 11-character video ID, watch URL, youtu.be URL, or
            path-based URL (/shorts/, /live/, /embed/).

    Returns:
        The video ID.

    Raises:
        ContentParseError: If no video ID can be extracted.
    """
    value = (value or "").strip()
    if not value or len(value) > MAX_URL_LENGTH:
        raise ContentParseError(f"Could not extract video ID from: {value}")
    if CONTENT_ID_PATTERN.fullmatch(value):
        return value
    if match := VIDEO_ID_PATTERN.search(value):
        return match.group(1)

    parsed = urlparse(value)
    host = parsed.hostname or ""
    path = parsed.path or ""
    if host == "youtu.be":
        candidate = path.strip("/").split("/")[0]
        if CONTENT_ID_PATTERN.fullmatch(candidate):
            return candidate
    elif host in _YOUTUBE_HOSTS:
        if match := _PATH_VIDEO_ID_PATTERN.match(path):
            return match.group(1)
    raise ContentParseError(f"Could not extract video ID from: {value}")


def parse_browse_id(value: str) -> str:
    """Extract a collection browse ID from a bare ID or a URL.

    Playlist URLs map to ``VL``-prefixed browse IDs; album and channel
    pages (``/browse/<id>``) keep their ID.

    Args:
        value: Browse ID, playlist URL, or music.youtube.com browse URL.

    Returns:
        The browse ID.

    Raises:
        ContentParseError: If no browse ID can be extracted.
    """
    value = (value or "").strip()
    if not value or len(value) > MAX_URL_LENGTH:
        raise ContentParseError(f"Could not extract browse ID from: {value}")
    if "://" not in value and BROWSE_ID_PATTERN.fullmatch(value):
        return value
    if match := PLAYLIST_ID_PATTERN.search(value):
        return f"VL{match.group(1)}"

    parsed = urlparse(value)
    host = parsed.hostname or ""
    segments = [s for s in (parsed.path or "").split("/") if s]
    if host in _YOUTUBE_HOSTS and len(segments) == 2 and segments[0] == "browse":
        return segments[1]
    raise ContentParseError(f"Could not extract browse ID from: {value}")
