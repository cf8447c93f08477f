"""Single-slot caches for the most recently resolved video."""

import logging
from dataclasses import dataclass
from typing import Generic, TypeVar

from ytsource.client import Session
from ytsource.models.innertube import VideoInfo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VideoInfoEntry:
    """Player metadata fetched for one content ID, with its session."""

    content_id: str
    info: VideoInfo
    session: Session


@dataclass(frozen=True)
class HlsManifestEntry:
    """Raw HLS master playlist fetched for one content ID."""

    content_id: str
    text: str
    source_url: str


T = TypeVar("T", VideoInfoEntry, HlsManifestEntry)


class SingleSlotCache(Generic[T]):
    """Holds at most one entry, valid only for the content ID it was stored for.

    Storing an entry for another ID replaces the previous one.
    """

    def __init__(self, name: str) -> None:
        self._name = name
        self._entry: T | None = None

    def get(self, content_id: str) -> T | None:
        """Return the entry if it belongs to ``content_id``."""
        entry = self._entry
        if entry is not None and entry.content_id == content_id:
            logger.debug("%s cache hit: %s", self._name, content_id)
            return entry
        return None

    def put(self, entry: T) -> None:
        self._entry = entry

    @property
    def content_id(self) -> str | None:
        """Content ID of the current entry, if any."""
        return self._entry.content_id if self._entry else None

    @property
    def current(self) -> T | None:
        return self._entry

    def clear(self) -> None:
        self._entry = None
