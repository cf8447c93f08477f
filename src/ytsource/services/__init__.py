"""Content resolution services for ytsource.

Public API:
    FormatSelector - Audio and video stream resolution
    HlsManifestProcessor - HLS quality ladders and filtered manifests
    SuggestionResolver - Related tracks for a seed video

Internal (not exported):
    normalizer - Feed, collection and search response parsing
    SingleSlotCache - Most-recent-video caches owned by the source
"""

from ytsource.services.formats import FormatSelector
from ytsource.services.hls import HlsManifestProcessor
from ytsource.services.suggestions import SuggestionResolver

__all__ = [
    "FormatSelector",
    "HlsManifestProcessor",
    "SuggestionResolver",
]
