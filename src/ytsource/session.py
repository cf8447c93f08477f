"""Production upstream session.

Player metadata and video search go through yt-dlp, music browsing
(home feed, playlists, albums, search suggestions) through ytmusicapi,
and the raw watch-next request through httpx. Blocking library calls
run in worker threads.

yt-dlp resolves stream URLs itself and does not expose byte ranges, so
formats built here never carry a ``signatureCipher`` and synthesized
DASH manifests fall back to the full profile without ``SegmentBase``.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, urlsplit

import httpx
import yt_dlp
from ytmusicapi import YTMusic
from ytmusicapi.exceptions import YTMusicError

from ytsource.client import Session, SessionFactory
from ytsource.config import SourceConfig
from ytsource.dash import build_mpd
from ytsource.exceptions import APIError, DecipherError, SessionError
from ytsource.host import SourceHost
from ytsource.models.enums import ClientType
from ytsource.models.innertube import (
    PlaybackFormat,
    StreamingData,
    VideoDetails,
    VideoInfo,
)
from ytsource.signing import PlayerCache
from ytsource.utils.cookies import YT_ORIGIN, cookies_to_auth_headers

logger = logging.getLogger(__name__)

WATCH_URL = "https://www.youtube.com/watch?v={content_id}"
NEXT_URL = "https://www.youtube.com/youtubei/v1/next?prettyPrint=false"

# Client sent with the raw watch-next request
WEB_CLIENT_CONTEXT = {
    "clientName": "WEB",
    "clientVersion": "2.20250925.01.00",
}
WEB_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)

_QUALITY_LABEL_PATTERN = re.compile(r"^\d+p\d*")
_STREAM_PROTOCOLS = ("https", "http")


# ============================================================================
# YT-DLP CONVERSION
# ============================================================================


def _has_codec(value: Any) -> bool:
    return isinstance(value, str) and value not in ("", "none")


def _mime_type(fmt: dict[str, Any], has_video: bool) -> str:
    ext = fmt.get("ext") or "mp4"
    if has_video:
        container = f"video/{ext}"
    else:
        container = "audio/mp4" if ext == "m4a" else f"audio/{ext}"
    codecs = [c for c in (fmt.get("vcodec"), fmt.get("acodec")) if _has_codec(c)]
    if not codecs:
        return container
    return f'{container}; codecs="{", ".join(codecs)}"'


def format_from_ytdlp(fmt: dict[str, Any]) -> PlaybackFormat | None:
    """Convert one yt-dlp format dict.

    Returns None for formats that are not direct streams (HLS variants,
    storyboards).
    """
    has_video = _has_codec(fmt.get("vcodec"))
    has_audio = _has_codec(fmt.get("acodec"))
    if not (has_video or has_audio):
        return None
    if fmt.get("protocol") not in _STREAM_PROTOCOLS:
        return None

    format_id = str(fmt.get("format_id") or "")
    note = fmt.get("format_note") or ""
    quality_label = note if _QUALITY_LABEL_PATTERN.match(note) else None
    tbr = fmt.get("tbr")
    return PlaybackFormat(
        itag=int(format_id) if format_id.isdigit() else None,
        url=fmt.get("url"),
        mime_type=_mime_type(fmt, has_video),
        has_video=has_video,
        has_audio=has_audio,
        height=fmt.get("height") if has_video else None,
        width=fmt.get("width") if has_video else None,
        bitrate=int(tbr * 1000) if isinstance(tbr, int | float) else None,
        content_length=fmt.get("filesize") or fmt.get("filesize_approx"),
        quality_label=quality_label,
    )


def _expires_in(url: str | None) -> int | None:
    """Seconds left before a signed stream URL's ``expire`` timestamp."""
    if not url:
        return None
    expire = parse_qs(urlsplit(url).query).get("expire")
    if not expire or not expire[0].isdigit():
        return None
    return max(int(expire[0]) - int(time.time()), 0)


def info_from_ytdlp(info: dict[str, Any]) -> VideoInfo:
    """Convert a yt-dlp info dict into player metadata.

    Muxed formats become ``formats`` and single-stream formats become
    ``adaptive_formats``. The first HLS variant supplies the master
    playlist URL and the first signed format URL the expiry.
    """
    formats: list[PlaybackFormat] = []
    adaptive: list[PlaybackFormat] = []
    hls_manifest_url: str | None = None

    for raw in info.get("formats") or []:
        if not isinstance(raw, dict):
            continue
        protocol = str(raw.get("protocol") or "")
        if protocol.startswith("m3u8"):
            hls_manifest_url = hls_manifest_url or raw.get("manifest_url")
            continue
        fmt = format_from_ytdlp(raw)
        if fmt is None:
            continue
        (formats if fmt.is_muxed else adaptive).append(fmt)

    expires_in = next(
        (s for s in (_expires_in(f.url) for f in formats + adaptive) if s is not None), None
    )

    has_streams = bool(formats or adaptive or hls_manifest_url)
    return VideoInfo(
        basic_info=VideoDetails(
            id=info.get("id"),
            title=info.get("title"),
            author=info.get("uploader") or info.get("channel"),
            channel=info.get("channel"),
            duration=info.get("duration"),
            thumbnail=info.get("thumbnail"),
        ),
        streaming_data=StreamingData(
            formats=formats,
            adaptive_formats=adaptive,
            hls_manifest_url=hls_manifest_url,
            expires_in_seconds=expires_in,
        )
        if has_streams
        else None,
    )


# ============================================================================
# SESSION
# ============================================================================


class InnertubeSession:
    """Session impersonating one client type.

    Implements the Session protocol.
    """

    def __init__(
        self,
        client_type: ClientType,
        config: SourceConfig,
        player_cache: PlayerCache,
        ytmusic: YTMusic,
    ) -> None:
        self.client_type = client_type
        self._config = config
        self._player_cache = player_cache
        self._ytm = ytmusic

    @classmethod
    async def create(
        cls,
        client_type: ClientType,
        config: SourceConfig,
        player_cache: PlayerCache,
    ) -> InnertubeSession:
        """Create a session, authenticating with cookies when configured.

        Raises:
            SessionError: If the YouTube Music client cannot be created.
        """
        try:
            ytmusic = await asyncio.to_thread(_create_ytmusic, config)
        except Exception as e:
            raise SessionError(f"Failed to create {client_type} session: {e}") from e
        logger.debug("Created %s session", client_type)
        return cls(client_type, config, player_cache, ytmusic)

    # -- yt-dlp ----------------------------------------------------------------

    def _ydl_options(self, client: ClientType, **extra: Any) -> dict[str, Any]:
        opts: dict[str, Any] = {
            "quiet": True,
            "no_warnings": True,
            "skip_download": True,
            "noplaylist": True,
            "color": "never",  # Disable ANSI codes in error messages
            "extractor_args": {"youtube": {"player_client": [client.player_client]}},
            **extra,
        }
        cookies_path = self._config.cookies_path
        if cookies_path and cookies_path.exists():
            opts["cookiefile"] = str(cookies_path)
        return opts

    def _extract(self, url: str, opts: dict[str, Any]) -> dict[str, Any]:
        with yt_dlp.YoutubeDL(opts) as ydl:
            info = ydl.extract_info(url, download=False)
            return ydl.sanitize_info(info) or {}

    async def _extract_async(self, url: str, opts: dict[str, Any]) -> dict[str, Any]:
        try:
            return await asyncio.to_thread(self._extract, url, opts)
        except yt_dlp.utils.DownloadError as e:
            logger.warning("yt-dlp error for %s: %s", url, e)
            raise APIError(f"Failed to fetch {url}: {e}") from e

    async def get_info(
        self, content_id: str, client: ClientType | None = None
    ) -> VideoInfo:
        """Fetch player metadata as ``client`` (defaults to this session's type).

        Raises:
            APIError: If the request fails.
        """
        client = client or self.client_type
        logger.debug("Fetching info for %s as %s", content_id, client)
        raw = await self._extract_async(
            WATCH_URL.format(content_id=content_id), self._ydl_options(client)
        )
        return info_from_ytdlp(raw)

    async def get_basic_info(
        self, content_id: str, client: ClientType | None = None
    ) -> VideoInfo:
        return await self.get_info(content_id, client)

    async def search(self, query: str) -> list[dict[str, Any]]:
        """Search videos; returns flat yt-dlp entries.

        Raises:
            APIError: If the request fails.
        """
        opts = self._ydl_options(self.client_type, extract_flat=True, noplaylist=False)
        raw = await self._extract_async(f"ytsearch{self._config.search_limit}:{query}", opts)
        return [entry for entry in raw.get("entries") or [] if isinstance(entry, dict)]

    # -- deciphering -------------------------------------------------------------

    async def decipher(self, fmt: PlaybackFormat) -> str:
        """Return a playable URL for a format.

        Raises:
            DecipherError: If the format has no URL and cannot be deciphered.
        """
        if fmt.url:
            return fmt.url
        if not fmt.signature_cipher:
            raise DecipherError("Format has neither url nor signatureCipher")
        return await self._player_cache.decipher(fmt.signature_cipher)

    async def to_dash(self, info: VideoInfo) -> str:
        """Build a DASH manifest from the adaptive formats.

        Raises:
            ManifestError: If audio or video adaptive formats are missing.
            DecipherError: If a format URL cannot be resolved.
        """
        adaptive = info.streaming_data.adaptive_formats if info.streaming_data else []
        streams = [(fmt, await self.decipher(fmt)) for fmt in adaptive]
        duration = info.basic_info.duration or 0
        if not duration:
            duration = max((f.approx_duration_ms or 0 for f in adaptive), default=0) // 1000
        return build_mpd(streams, float(duration))

    # -- ytmusicapi --------------------------------------------------------------

    async def _music(self, operation: str, call: Callable[..., Any], *args: Any) -> Any:
        try:
            return await asyncio.to_thread(call, *args)
        except YTMusicError as e:
            logger.warning("YTMusic error for %s: %s", operation, e)
            raise APIError(f"Failed to fetch {operation}: {e}") from e
        except KeyError as e:
            logger.warning("Missing data in %s response: %s", operation, e)
            raise APIError(f"Malformed {operation} response: {e}") from e

    async def get_search_suggestions(self, query: str) -> list[Any]:
        return await self._music("search suggestions", self._ytm.get_search_suggestions, query)

    async def get_home_feed(self) -> list[dict[str, Any]]:
        return await self._music("home feed", self._ytm.get_home)

    async def get_playlist(self, playlist_id: str) -> dict[str, Any]:
        return await self._music(f"playlist {playlist_id}", self._ytm.get_playlist, playlist_id)

    async def get_album(self, album_id: str) -> dict[str, Any]:
        return await self._music(f"album {album_id}", self._ytm.get_album, album_id)

    # -- raw innertube -----------------------------------------------------------

    async def next(self, content_id: str) -> dict[str, Any]:
        """POST the watch-next request as the web client.

        Raises:
            APIError: If the request fails.
        """
        payload = {
            "context": {
                "client": {**WEB_CLIENT_CONTEXT, "hl": self._config.hl, "gl": self._config.gl}
            },
            "videoId": content_id,
        }
        headers = {"User-Agent": WEB_USER_AGENT, "Origin": YT_ORIGIN}
        if self._config.cookies_path:
            headers.update(cookies_to_auth_headers(self._config.cookies_path, YT_ORIGIN) or {})

        try:
            async with httpx.AsyncClient(timeout=30.0) as client:
                response = await client.post(NEXT_URL, json=payload, headers=headers)
                response.raise_for_status()
                return response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Watch-next request failed for %s: %s", content_id, e)
            raise APIError(f"Failed to fetch related videos for {content_id}: {e}") from e


def _create_ytmusic(config: SourceConfig) -> YTMusic:
    """Create a YTMusic instance with optional authentication."""
    cookies_path: Path | None = config.cookies_path
    if cookies_path:
        auth = cookies_to_auth_headers(cookies_path)
        if auth:
            logger.info("Using cookies for ytmusicapi requests")
            return YTMusic(auth=auth, language=config.hl, location=config.gl)
        logger.info("No valid cookies for ytmusicapi requests (missing SAPISID)")
    return YTMusic(language=config.hl, location=config.gl)


def create_session_factory(host: SourceHost, config: SourceConfig) -> SessionFactory:
    """Build the production session factory.

    All sessions share one player cache, so player code is fetched once.
    """
    player_cache = PlayerCache(host, config)

    async def factory(client_type: ClientType) -> Session:
        return await InnertubeSession.create(client_type, config, player_cache)

    return factory
