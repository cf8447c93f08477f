"""HLS master playlist parsing and single-resolution filtering."""

import logging
import re
from dataclasses import dataclass
from urllib.parse import urljoin

import httpx

from ytsource.config import SourceConfig
from ytsource.exceptions import ManifestError
from ytsource.host import SourceHost
from ytsource.models.media import VideoQuality
from ytsource.services.cache import HlsManifestEntry, SingleSlotCache

logger = logging.getLogger(__name__)

STREAM_INF_TAG = "#EXT-X-STREAM-INF:"

_CODECS_PATTERN = re.compile(r'CODECS="([^"]+)"')
_RESOLUTION_PATTERN = re.compile(r"RESOLUTION=(\d+)x(\d+)")
_BANDWIDTH_PATTERN = re.compile(r"BANDWIDTH=(\d+)")
_URI_ATTRIBUTE_PATTERN = re.compile(r'URI="([^"]+)"')


@dataclass(frozen=True)
class StreamInf:
    """Attributes of one ``#EXT-X-STREAM-INF`` line."""

    codecs: str | None
    width: int | None
    height: int | None
    bandwidth: int | None

    def is_compatible(self, codec_family: str) -> bool:
        """Variants without a codec list are assumed compatible."""
        return self.codecs is None or codec_family in self.codecs


@dataclass(frozen=True)
class Variant:
    """Stream-info header and the URI line that follows it."""

    header_index: int
    uri_index: int | None
    info: StreamInf


def parse_stream_inf(line: str) -> StreamInf:
    """Read codecs, resolution and bandwidth from a stream-info line."""
    codecs = _CODECS_PATTERN.search(line)
    resolution = _RESOLUTION_PATTERN.search(line)
    bandwidth = _BANDWIDTH_PATTERN.search(line)
    return StreamInf(
        codecs=codecs.group(1) if codecs else None,
        width=int(resolution.group(1)) if resolution else None,
        height=int(resolution.group(2)) if resolution else None,
        bandwidth=int(bandwidth.group(1)) if bandwidth else None,
    )


def _absolute_uri_attributes(line: str, base_url: str | None) -> str:
    """Resolve ``URI="..."`` attributes of tags such as ``#EXT-X-MEDIA``."""
    if not base_url or not line.lstrip().startswith("#"):
        return line
    return _URI_ATTRIBUTE_PATTERN.sub(
        lambda match: f'URI="{urljoin(base_url, match.group(1))}"', line
    )


def _is_uri(line: str) -> bool:
    stripped = line.strip()
    return bool(stripped) and not stripped.startswith("#")


def find_variants(lines: list[str]) -> list[Variant]:
    """Pair every stream-info header with its next non-comment line."""
    variants: list[Variant] = []
    for index, line in enumerate(lines):
        if not line.strip().startswith(STREAM_INF_TAG):
            continue
        uri_index = next(
            (j for j in range(index + 1, len(lines)) if _is_uri(lines[j])), None
        )
        variants.append(Variant(index, uri_index, parse_stream_inf(line.strip())))
    return variants


def parse_qualities_from_text(
    text: str, codec_family: str = "avc1", base_url: str | None = None
) -> list[VideoQuality]:
    """Build a quality ladder from a master playlist.

    One rung per height: incompatible codecs are skipped, variants without
    a resolution or bandwidth are skipped, and the highest bandwidth wins.

    Args:
        text: Master playlist text.
        codec_family: Codec family a variant must advertise.
        base_url: URL the playlist was fetched from, for relative URIs.

    Returns:
        Qualities sorted by ascending height.
    """
    lines = text.splitlines()
    best: dict[int, tuple[int, str | None]] = {}
    for variant in find_variants(lines):
        info = variant.info
        if not info.is_compatible(codec_family):
            continue
        if info.height is None or info.bandwidth is None:
            continue
        current = best.get(info.height)
        if current is not None and current[0] >= info.bandwidth:
            continue
        uri = lines[variant.uri_index].strip() if variant.uri_index is not None else None
        if uri and base_url:
            uri = urljoin(base_url, uri)
        best[info.height] = (info.bandwidth, uri)

    return [
        VideoQuality(
            label=f"{height}p",
            height=height,
            has_audio=True,
            bitrate=bandwidth,
            variant_url=uri,
        )
        for height, (bandwidth, uri) in sorted(best.items())
    ]


def filter_manifest(
    text: str, height: int, codec_family: str = "avc1", base_url: str | None = None
) -> str | None:
    """Re-emit a master playlist that only offers one resolution.

    Lines outside stream-info pairs pass through verbatim, except that
    relative ``URI`` attributes (renditions, I-frame playlists) are made
    absolute so the copy plays from the host cache. Of the
    compatible pairs at ``height`` only the highest-bandwidth one is kept;
    every other pair is dropped together with any comment lines between
    its header and URI.

    Args:
        text: Master playlist text.
        height: Resolution height to keep.
        codec_family: Codec family a variant must advertise.
        base_url: URL the playlist was fetched from, for relative URIs.

    Returns:
        Filtered playlist text, or None if no compatible pair has that height.
    """
    lines = text.splitlines()
    variants = find_variants(lines)

    keep: Variant | None = None
    for variant in variants:
        info = variant.info
        if variant.uri_index is None or info.height != height:
            continue
        if not info.is_compatible(codec_family):
            continue
        if keep is None or (info.bandwidth or 0) > (keep.info.bandwidth or 0):
            keep = variant
    if keep is None:
        return None

    dropped: set[int] = set()
    for variant in variants:
        end = variant.uri_index if variant.uri_index is not None else variant.header_index
        dropped.update(range(variant.header_index, end + 1))

    output: list[str] = []
    for index, line in enumerate(lines):
        if index == keep.header_index:
            output.append(line)
        elif index == keep.uri_index:
            uri = line.strip()
            output.append(urljoin(base_url, uri) if base_url else line)
        elif index not in dropped:
            output.append(_absolute_uri_attributes(line, base_url))
    filtered = "\n".join(output)
    return filtered + "\n" if text.endswith("\n") else filtered


class HlsManifestProcessor:
    """Fetches master playlists and serves single-resolution copies of them.

    The most recently fetched playlist is cached by content ID so a quality
    switch can be served without refetching.
    """

    def __init__(
        self,
        host: SourceHost,
        config: SourceConfig,
        cache: SingleSlotCache[HlsManifestEntry] | None = None,
    ) -> None:
        self._host = host
        self._config = config
        self._cache = cache or SingleSlotCache[HlsManifestEntry]("HLS manifest")

    async def parse_qualities(
        self, manifest_url: str, content_id: str
    ) -> list[VideoQuality]:
        """Fetch a master playlist and build its quality ladder.

        Args:
            manifest_url: HLS master playlist URL.
            content_id: Video the playlist belongs to.

        Returns:
            Qualities sorted by ascending height.

        Raises:
            ManifestError: If the playlist cannot be fetched.
        """
        try:
            response = await self._host.fetch(
                manifest_url, headers={"User-Agent": self._config.user_agent}
            )
        except httpx.HTTPError as e:
            raise ManifestError(f"Failed to fetch HLS manifest for {content_id}: {e}") from e
        if not response.is_success:
            raise ManifestError(
                f"HLS manifest request for {content_id} failed: "
                f"HTTP {response.status_code}"
            )

        text = response.text
        self._cache.put(HlsManifestEntry(content_id, text, manifest_url))
        qualities = parse_qualities_from_text(
            text, self._config.hls_codec_family, base_url=manifest_url
        )
        logger.debug("Parsed %d HLS qualities for %s", len(qualities), content_id)
        return qualities

    def filtered_manifest_url(self, height: int, content_id: str) -> str | None:
        """Write a single-resolution copy of the cached playlist.

        Args:
            height: Resolution height to keep.
            content_id: Video the caller is playing.

        Returns:
            URI of the written ``hls_<height>p.m3u8`` file, or None if no
            playlist is cached for ``content_id`` or it has no matching variant.
        """
        entry = self._cache.get(content_id)
        if entry is None:
            logger.debug("No cached HLS manifest for %s", content_id)
            return None
        text = filter_manifest(
            entry.text, height, self._config.hls_codec_family, base_url=entry.source_url
        )
        if text is None:
            logger.debug("No %dp variant in HLS manifest for %s", height, content_id)
            return None
        return self._host.write_cache_file(f"hls_{height}p.m3u8", text)

    def clear(self) -> None:
        self._cache.clear()
