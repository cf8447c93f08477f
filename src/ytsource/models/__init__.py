"""Data models for ytsource.

Public API:
    MediaItem, MediaFeedSection, MediaCollection - Normalized content
    AudioPlaybackInfo, VideoPlaybackInfo, DownloadInfo - Resolved streams
    ClientType, Platform, FeedItemType - Enumerations

Internal (not exported):
    innertube.py - Models for parsing upstream YouTube responses
"""

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

__all__ = [
    "AudioPlaybackInfo",
    "ClientType",
    "CollectionType",
    "ContentType",
    "DownloadInfo",
    "FeedItemType",
    "FormatType",
    "MediaCapabilities",
    "MediaCollection",
    "MediaFeedItem",
    "MediaFeedSection",
    "MediaItem",
    "Platform",
    "QualityUrl",
    "VideoPlaybackInfo",
    "VideoQuality",
]
