"""Playback format selection and quality ladders."""

import logging
import time

from ytsource.client import ClientPool
from ytsource.config import SourceConfig
from ytsource.exceptions import FormatNotFoundError
from ytsource.host import SourceHost
from ytsource.models.enums import ClientType, FormatType, Platform
from ytsource.models.innertube import PlaybackFormat, VideoInfo
from ytsource.models.media import (
    AudioPlaybackInfo,
    DownloadInfo,
    QualityUrl,
    VideoPlaybackInfo,
    VideoQuality,
)
from ytsource.services.cache import SingleSlotCache, VideoInfoEntry
from ytsource.services.hls import HlsManifestProcessor

logger = logging.getLogger(__name__)

DASH_MANIFEST_NAME = "dash_manifest.mpd"


# ============================================================================
# PURE SELECTION
# ============================================================================


def stream_expiry(info: VideoInfo) -> int | None:
    """Unix time the stream URLs of ``info`` stop working, when known."""
    seconds = info.streaming_data.expires_in_seconds if info.streaming_data else None
    return int(time.time()) + seconds if seconds is not None else None


def _matches_type(fmt: PlaybackFormat, format_type: FormatType) -> bool:
    match format_type:
        case FormatType.AUDIO:
            return fmt.has_audio and not fmt.has_video
        case FormatType.VIDEO:
            return fmt.has_video and not fmt.has_audio
        case FormatType.VIDEO_AUDIO:
            return fmt.has_video and fmt.has_audio


def choose_format(
    info: VideoInfo,
    quality: str = "best",
    format_type: FormatType = FormatType.AUDIO,
) -> PlaybackFormat:
    """Pick the format that best matches a type and quality.

    Args:
        info: Player metadata.
        quality: ``"best"`` (highest bitrate), ``"bestefficiency"``
            (lowest bitrate) or a quality label such as ``"720p"``.
        format_type: Stream content to select.

    Returns:
        The selected format.

    Raises:
        FormatNotFoundError: If no format matches.
    """
    candidates = [f for f in info.all_formats if _matches_type(f, format_type)]
    if quality not in ("best", "bestefficiency"):
        candidates = [f for f in candidates if f.quality_label == quality]
    if not candidates:
        raise FormatNotFoundError(
            f"No {format_type} format with quality '{quality}' "
            f"for {info.basic_info.id or 'video'}"
        )
    if quality == "bestefficiency":
        return min(candidates, key=lambda f: f.bitrate or 0)
    return max(candidates, key=lambda f: f.bitrate or 0)


def _is_progressive_video(fmt: PlaybackFormat) -> bool:
    return fmt.has_video and bool(fmt.height) and fmt.mime_type.startswith("video/")


def formats_by_height(info: VideoInfo) -> dict[int, PlaybackFormat]:
    """Map each available height to the format that should serve it.

    Muxed formats claim their height first; audio-less adaptive formats
    only fill heights no muxed format covers. Within each group the
    highest bitrate wins.
    """
    candidates = [f for f in info.all_formats if _is_progressive_video(f)]
    muxed = sorted(
        (f for f in candidates if f.has_audio), key=lambda f: f.bitrate or 0, reverse=True
    )
    adaptive = sorted(
        (f for f in candidates if not f.has_audio),
        key=lambda f: f.bitrate or 0,
        reverse=True,
    )

    by_height: dict[int, PlaybackFormat] = {}
    for fmt in (*muxed, *adaptive):
        if fmt.height:
            by_height.setdefault(fmt.height, fmt)
    return by_height


def build_quality_ladder(info: VideoInfo) -> list[VideoQuality]:
    """Build the progressive quality ladder, sorted by ascending height."""
    return [
        VideoQuality(
            label=fmt.quality_label or f"{height}p",
            height=height,
            has_audio=fmt.has_audio,
            bitrate=fmt.bitrate,
        )
        for height, fmt in sorted(formats_by_height(info).items())
    ]


def pick_default_height(qualities: list[VideoQuality], preferred: int = 720) -> int:
    """Return the height closest to ``preferred``; the first rung wins ties.

    Returns 0 for an empty ladder.
    """
    if not qualities:
        return 0
    best = qualities[0]
    for quality in qualities[1:]:
        if abs(quality.height - preferred) < abs(best.height - preferred):
            best = quality
    return best.height


def find_format_at_height(info: VideoInfo, height: int) -> PlaybackFormat | None:
    """Return the format serving exactly ``height``, muxed first.

    No nearest-height substitution is made.
    """
    return formats_by_height(info).get(height)


# ============================================================================
# RESOLUTION
# ============================================================================


class FormatSelector:
    """Resolves content IDs into playable audio and video streams."""

    def __init__(
        self,
        pool: ClientPool,
        host: SourceHost,
        config: SourceConfig,
        hls: HlsManifestProcessor,
        video_cache: SingleSlotCache[VideoInfoEntry] | None = None,
    ) -> None:
        self._pool = pool
        self._host = host
        self._config = config
        self._hls = hls
        self._video_cache = video_cache or SingleSlotCache[VideoInfoEntry]("Video info")

    @property
    def _headers(self) -> dict[str, str]:
        return {"User-Agent": self._config.user_agent}

    @property
    def current_content_id(self) -> str | None:
        """Content ID of the most recent video-info request."""
        return self._video_cache.content_id

    async def _audio_format(
        self, content_id: str
    ) -> tuple[PlaybackFormat, str, int | None]:
        session = await self._pool.get()
        info = await session.get_info(content_id, self._config.audio_client)
        fmt = choose_format(info, "best", FormatType.AUDIO)
        url = await session.decipher(fmt)
        logger.info("Got direct URL for %s (%s)", content_id, fmt.mime_type)
        return fmt, url, stream_expiry(info)

    async def resolve_audio(self, content_id: str) -> AudioPlaybackInfo:
        """Resolve the audio stream a player should use.

        On iOS the HLS manifest is tried first; any failure there falls
        back to the best direct audio format.

        Raises:
            FormatNotFoundError: If the video has no audio format.
            APIError: If metadata cannot be fetched.
        """
        if self._host.platform == Platform.IOS:
            try:
                session = await self._pool.get()
                info = await session.get_basic_info(content_id, self._config.hls_client)
                hls_url = info.streaming_data.hls_manifest_url if info.streaming_data else None
                if hls_url:
                    logger.info("Got HLS URL for %s", content_id)
                    return AudioPlaybackInfo(
                        url=hls_url, headers=self._headers, expires_at=stream_expiry(info)
                    )
            except Exception as e:
                logger.warning(
                    "%s client failed for %s: %s", self._config.hls_client, content_id, e
                )
            logger.info("No HLS URL for %s, trying direct audio", content_id)

        return await self.resolve_direct_audio(content_id)

    async def resolve_direct_audio(self, content_id: str) -> AudioPlaybackInfo:
        """Resolve the best direct audio format, skipping HLS.

        Raises:
            FormatNotFoundError: If the video has no audio format.
            APIError: If metadata cannot be fetched.
        """
        _, url, expires_at = await self._audio_format(content_id)
        return AudioPlaybackInfo(url=url, headers=self._headers, expires_at=expires_at)

    async def resolve_download(self, content_id: str) -> DownloadInfo:
        """Resolve the best direct audio format with its size.

        Raises:
            FormatNotFoundError: If the video has no audio format.
            APIError: If metadata cannot be fetched.
        """
        fmt, url, _ = await self._audio_format(content_id)
        return DownloadInfo(
            url=url, content_length=fmt.content_length or 0, headers=self._headers
        )

    async def cached_info(self, content_id: str) -> VideoInfoEntry:
        """Return player metadata for ``content_id``, reusing the last fetch."""
        if entry := self._video_cache.get(content_id):
            return entry
        session = await self._pool.get()
        info = await session.get_info(content_id, self._config.audio_client)
        entry = VideoInfoEntry(content_id=content_id, info=info, session=session)
        self._video_cache.put(entry)
        return entry

    async def resolve_video(self, content_id: str) -> VideoPlaybackInfo | None:
        """Resolve a video stream and its quality ladder.

        Strategies run in order: HLS on iOS, a synthesized DASH manifest on
        Android, then the progressive ladder.

        Returns:
            Playback info, or None if the video is not playable.
        """
        try:
            entry = await self.cached_info(content_id)
            if not entry.info.streaming_data:
                logger.info("No streaming data for %s", content_id)
                return None

            if self._host.platform == Platform.IOS:
                if playback := await self._resolve_hls(entry):
                    return playback
            if self._host.platform == Platform.ANDROID:
                if playback := await self._resolve_dash(entry):
                    return playback
            return await self._resolve_progressive(entry)
        except Exception as e:
            logger.warning("Failed to fetch video info for %s: %s", content_id, e)
            return None

    async def _resolve_hls(self, entry: VideoInfoEntry) -> VideoPlaybackInfo | None:
        streaming_data = entry.info.streaming_data
        hls_url = streaming_data.hls_manifest_url if streaming_data else None
        if not hls_url:
            try:
                basic = await entry.session.get_basic_info(
                    entry.content_id, self._config.hls_client
                )
                if basic.streaming_data:
                    hls_url = basic.streaming_data.hls_manifest_url
            except Exception as e:
                logger.warning("%s client basic info failed: %s", self._config.hls_client, e)
        if not hls_url:
            return None

        qualities: list[VideoQuality] = []
        try:
            qualities = await self._hls.parse_qualities(hls_url, entry.content_id)
        except Exception as e:
            logger.warning("Quality parsing failed, using Auto: %s", e)
        return VideoPlaybackInfo(
            url=hls_url,
            is_hls=True,
            has_audio=True,
            qualities=qualities,
            default_height=0,
            headers=self._headers,
        )

    async def _resolve_dash(self, entry: VideoInfoEntry) -> VideoPlaybackInfo | None:
        try:
            manifest = await entry.session.to_dash(entry.info)
            uri = self._host.write_cache_file(DASH_MANIFEST_NAME, manifest)
        except Exception as e:
            logger.warning("DASH generation failed: %s", e)
            return None
        return VideoPlaybackInfo(
            url=uri, is_dash=True, has_audio=True, qualities=[], default_height=0
        )

    async def _resolve_progressive(
        self, entry: VideoInfoEntry
    ) -> VideoPlaybackInfo | None:
        by_height = formats_by_height(entry.info)
        qualities = build_quality_ladder(entry.info)
        if not qualities:
            return None
        default_height = pick_default_height(qualities, self._config.default_video_height)
        fmt = by_height[default_height]
        url = await entry.session.decipher(fmt)
        return VideoPlaybackInfo(
            url=url,
            has_audio=fmt.has_audio,
            qualities=qualities,
            default_height=default_height,
        )

    async def resolve_video_at_height(
        self, content_id: str, height: int
    ) -> QualityUrl | None:
        """Resolve the progressive stream of exactly ``height``.

        Returns:
            URL and audio flag, or None if that height is unavailable or
            resolution fails.
        """
        try:
            entry = await self.cached_info(content_id)
            if not entry.info.streaming_data:
                return None
            fmt = find_format_at_height(entry.info, height)
            if fmt is None:
                return None
            url = await entry.session.decipher(fmt)
            return QualityUrl(url=url, has_audio=fmt.has_audio)
        except Exception as e:
            logger.debug("No %dp stream for %s: %s", height, content_id, e)
            return None

    def clear(self) -> None:
        self._video_cache.clear()
