"""Test fixtures and fake collaborators."""

import asyncio
from typing import Any

import httpx
import pytest
from ytsource.client import ClientPool
from ytsource.config import SourceConfig
from ytsource.exceptions import SessionError
from ytsource.models.enums import ClientType, Platform
from ytsource.models.innertube import (
    PlaybackFormat,
    StreamingData,
    VideoDetails,
    VideoInfo,
)

AUDIO_MIME = 'audio/mp4; codecs="mp4a.40.2"'
MUXED_MIME = 'video/mp4; codecs="avc1.42001E, mp4a.40.2"'
VIDEO_MIME = 'video/mp4; codecs="avc1.640028"'


def make_format(**kwargs: Any) -> PlaybackFormat:
    """Create a playback format; ``url`` defaults to one derived from the itag."""
    kwargs.setdefault("url", f"https://cdn.example/{kwargs.get('itag', 0)}")
    return PlaybackFormat(**kwargs)


def audio_format(itag: int, bitrate: int, **kwargs: Any) -> PlaybackFormat:
    return make_format(
        itag=itag,
        mime_type=AUDIO_MIME,
        has_audio=True,
        has_video=False,
        bitrate=bitrate,
        **kwargs,
    )


def muxed_format(itag: int, height: int, bitrate: int = 500_000, **kwargs: Any) -> PlaybackFormat:
    return make_format(
        itag=itag,
        mime_type=MUXED_MIME,
        has_audio=True,
        has_video=True,
        height=height,
        bitrate=bitrate,
        **kwargs,
    )


def video_format(itag: int, height: int, bitrate: int = 1_000_000, **kwargs: Any) -> PlaybackFormat:
    return make_format(
        itag=itag,
        mime_type=VIDEO_MIME,
        has_audio=False,
        has_video=True,
        height=height,
        bitrate=bitrate,
        **kwargs,
    )


def make_info(
    content_id: str = "dQw4w9WgXcQ",
    formats: list[PlaybackFormat] | None = None,
    adaptive: list[PlaybackFormat] | None = None,
    hls_manifest_url: str | None = None,
    expires_in_seconds: int | None = None,
    title: str = "Test Video",
    author: str = "Test Channel",
    streaming: bool = True,
) -> VideoInfo:
    """Create player metadata with the given formats."""
    return VideoInfo(
        basic_info=VideoDetails(id=content_id, title=title, author=author, duration=212),
        streaming_data=StreamingData(
            formats=formats or [],
            adaptive_formats=adaptive or [],
            hls_manifest_url=hls_manifest_url,
            expires_in_seconds=expires_in_seconds,
        )
        if streaming
        else None,
    )


class FakeSession:
    """Session returning canned responses and recording every call.

    Set ``errors[<method name>]`` to make a method raise.
    """

    def __init__(self, client_type: ClientType = ClientType.MWEB) -> None:
        self.client_type = client_type
        self.info: VideoInfo = make_info()
        self.infos_by_client: dict[ClientType, VideoInfo] = {}
        self.search_results: list[dict[str, Any]] = []
        self.search_suggestions: list[Any] = []
        self.home_feed: Any = []
        self.playlist: dict[str, Any] = {}
        self.album: dict[str, Any] = {}
        self.next_response: dict[str, Any] = {}
        self.dash_manifest = "<MPD/>"
        self.errors: dict[str, Exception] = {}
        self.calls: list[tuple[Any, ...]] = []

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, *args))
        if name in self.errors:
            raise self.errors[name]

    def called(self, name: str) -> list[tuple[Any, ...]]:
        return [call for call in self.calls if call[0] == name]

    async def get_info(self, content_id: str, client: ClientType | None = None) -> VideoInfo:
        self._record("get_info", content_id, client)
        return self.infos_by_client.get(client, self.info) if client else self.info

    async def get_basic_info(
        self, content_id: str, client: ClientType | None = None
    ) -> VideoInfo:
        self._record("get_basic_info", content_id, client)
        return self.infos_by_client.get(client, self.info) if client else self.info

    async def decipher(self, fmt: PlaybackFormat) -> str:
        self._record("decipher", fmt.itag)
        return f"{fmt.url}&sig=ok"

    async def to_dash(self, info: VideoInfo) -> str:
        self._record("to_dash")
        return self.dash_manifest

    async def search(self, query: str) -> list[dict[str, Any]]:
        self._record("search", query)
        return self.search_results

    async def get_search_suggestions(self, query: str) -> list[Any]:
        self._record("get_search_suggestions", query)
        return self.search_suggestions

    async def get_home_feed(self) -> Any:
        self._record("get_home_feed")
        return self.home_feed

    async def get_playlist(self, playlist_id: str) -> dict[str, Any]:
        self._record("get_playlist", playlist_id)
        return self.playlist

    async def get_album(self, album_id: str) -> dict[str, Any]:
        self._record("get_album", album_id)
        return self.album

    async def next(self, content_id: str) -> dict[str, Any]:
        self._record("next", content_id)
        return self.next_response


class FakeSessionFactory:
    """Session factory recording the client types it was asked for.

    Returns one shared session unless ``shared`` is False. Creation blocks
    on ``gate`` when it is set, and fails for client types in ``fail``.
    """

    def __init__(
        self,
        session: FakeSession | None = None,
        shared: bool = True,
        fail: set[ClientType] | None = None,
    ) -> None:
        self.session = session or FakeSession()
        self.shared = shared
        self.fail = fail or set()
        self.gate: asyncio.Event | None = None
        self.created: list[ClientType] = []

    async def __call__(self, client_type: ClientType) -> FakeSession:
        self.created.append(client_type)
        if self.gate is not None:
            await self.gate.wait()
        if client_type in self.fail:
            raise SessionError(f"Cannot create {client_type} session")
        if self.shared:
            return self.session
        return FakeSession(client_type)


class FakeHost:
    """Host serving canned HTTP responses and keeping cache files in memory."""

    def __init__(self, platform: Platform = Platform.ANDROID) -> None:
        self.platform = platform
        self.responses: dict[str, httpx.Response] = {}
        self.fetched: list[tuple[str, dict[str, str] | None]] = []
        self.files: dict[str, str] = {}
        self.logs: list[str] = []

    def respond(self, url: str, text: str, status_code: int = 200) -> None:
        self.responses[url] = httpx.Response(
            status_code, text=text, request=httpx.Request("GET", url)
        )

    async def fetch(
        self, url: str, headers: dict[str, str] | None = None
    ) -> httpx.Response:
        self.fetched.append((url, headers))
        if url in self.responses:
            return self.responses[url]
        return httpx.Response(404, text="", request=httpx.Request("GET", url))

    def write_cache_file(self, name: str, content: str) -> str:
        self.files[name] = content
        return f"file:///cache/{name}"

    def log(self, *args: Any) -> None:
        self.logs.append(" ".join(str(arg) for arg in args))


@pytest.fixture
def config() -> SourceConfig:
    """Default configuration."""
    return SourceConfig()


@pytest.fixture
def session() -> FakeSession:
    """Shared fake session."""
    return FakeSession()


@pytest.fixture
def factory(session: FakeSession) -> FakeSessionFactory:
    """Factory handing out the shared fake session."""
    return FakeSessionFactory(session)


@pytest.fixture
def pool(factory: FakeSessionFactory) -> ClientPool:
    """Client pool over the fake factory."""
    return ClientPool(factory)


@pytest.fixture
def android_host() -> FakeHost:
    return FakeHost(Platform.ANDROID)


@pytest.fixture
def ios_host() -> FakeHost:
    return FakeHost(Platform.IOS)


@pytest.fixture
def master_playlist() -> str:
    """HLS master playlist with duplicate heights and a non-H.264 variant."""
    return "\n".join(
        [
            "#EXTM3U",
            "#EXT-X-INDEPENDENT-SEGMENTS",
            '#EXT-X-STREAM-INF:BANDWIDTH=300000,CODECS="avc1.4d400c,mp4a.40.5",RESOLUTION=256x144',
            "144/index.m3u8",
            (
                '#EXT-X-STREAM-INF:BANDWIDTH=1500000,CODECS="avc1.4d401f,mp4a.40.2",'
                "RESOLUTION=1280x720"
            ),
            "720-low/index.m3u8",
            (
                '#EXT-X-STREAM-INF:BANDWIDTH=2500000,CODECS="avc1.4d401f,mp4a.40.2",'
                "RESOLUTION=1280x720"
            ),
            "#EXT-X-COMMENT:variant note",
            "720-high/index.m3u8",
            (
                '#EXT-X-STREAM-INF:BANDWIDTH=4000000,CODECS="vp09.00.40.08,mp4a.40.2",'
                "RESOLUTION=1920x1080"
            ),
            "1080-vp9/index.m3u8",
            "#EXT-X-STREAM-INF:BANDWIDTH=900000,RESOLUTION=854x480",
            "https://other.example/480/index.m3u8",
        ]
    )
