"""Tests for format selection and stream resolution."""

import pytest
from conftest import (
    FakeHost,
    FakeSession,
    audio_format,
    make_format,
    make_info,
    muxed_format,
    video_format,
)
from ytsource.client import ClientPool
from ytsource.config import SourceConfig
from ytsource.exceptions import APIError, FormatNotFoundError, ManifestError
from ytsource.models.enums import ClientType, FormatType
from ytsource.models.innertube import VideoInfo
from ytsource.models.media import VideoQuality
from ytsource.services.formats import (
    DASH_MANIFEST_NAME,
    FormatSelector,
    build_quality_ladder,
    choose_format,
    find_format_at_height,
    pick_default_height,
)
from ytsource.services.hls import HlsManifestProcessor

UA = SourceConfig().user_agent


def _rung(height: int) -> VideoQuality:
    return VideoQuality(label=f"{height}p", height=height, has_audio=True)


@pytest.fixture
def ladder_info() -> VideoInfo:
    """Muxed 360p/720p plus adaptive 720p/1080p."""
    return make_info(
        formats=[muxed_format(18, 360), muxed_format(22, 720)],
        adaptive=[
            video_format(136, 720),
            video_format(137, 1080),
            audio_format(140, 128_000),
        ],
    )


class TestChooseFormat:
    """Tests for choose_format()."""

    def test_best_audio_is_highest_bitrate(self) -> None:
        """'best' should pick the highest-bitrate audio-only format."""
        info = make_info(adaptive=[audio_format(139, 48_000), audio_format(140, 128_000)])
        assert choose_format(info).itag == 140

    def test_best_efficiency_is_lowest_bitrate(self) -> None:
        """'bestefficiency' should pick the lowest bitrate."""
        info = make_info(adaptive=[audio_format(139, 48_000), audio_format(140, 128_000)])
        assert choose_format(info, "bestefficiency").itag == 139

    def test_quality_label_filters_formats(self) -> None:
        """A quality label should only match formats carrying it."""
        info = make_info(
            adaptive=[
                video_format(136, 720, quality_label="720p"),
                video_format(137, 1080, quality_label="1080p"),
            ]
        )
        assert choose_format(info, "720p", FormatType.VIDEO).itag == 136

    def test_muxed_type(self, ladder_info: VideoInfo) -> None:
        """video+audio should only consider muxed formats."""
        assert choose_format(ladder_info, "best", FormatType.VIDEO_AUDIO).itag in (18, 22)

    def test_no_match_raises(self) -> None:
        """No matching format should raise FormatNotFoundError."""
        info = make_info(formats=[muxed_format(18, 360)])
        with pytest.raises(FormatNotFoundError):
            choose_format(info, "best", FormatType.AUDIO)


class TestQualityLadder:
    """Tests for the progressive quality ladder."""

    def test_ladder_unions_muxed_and_adaptive(self, ladder_info: VideoInfo) -> None:
        """Muxed heights keep audio; adaptive-only heights have none."""
        ladder = build_quality_ladder(ladder_info)

        assert [(q.height, q.has_audio) for q in ladder] == [
            (360, True),
            (720, True),
            (1080, False),
        ]

    def test_label_falls_back_to_height(self) -> None:
        """Formats without a quality label should be labelled '<h>p'."""
        info = make_info(
            formats=[muxed_format(18, 360, quality_label="360p60")],
            adaptive=[video_format(137, 1080)],
        )
        assert [q.label for q in build_quality_ladder(info)] == ["360p60", "1080p"]

    def test_audio_only_formats_are_ignored(self) -> None:
        """A video with only audio formats should have an empty ladder."""
        info = make_info(adaptive=[audio_format(140, 128_000)])
        assert build_quality_ladder(info) == []

    def test_non_video_mime_is_ignored(self) -> None:
        """Formats whose MIME type is not video/* should not become rungs."""
        odd = make_format(
            itag=99,
            mime_type="application/x-mpegURL",
            has_audio=True,
            has_video=True,
            height=480,
        )
        assert build_quality_ladder(make_info(formats=[odd])) == []

    @pytest.mark.parametrize(
        ("heights", "expected"),
        [
            ([480, 1080], 480),
            ([360, 720, 1080], 720),
            ([600, 840], 600),
            ([1080], 1080),
            ([], 0),
        ],
        ids=["closer_below", "exact", "tie_first_wins", "single", "empty"],
    )
    def test_default_height(self, heights: list[int], expected: int) -> None:
        """Default rung should minimize distance to 720p."""
        assert pick_default_height([_rung(h) for h in heights]) == expected

    def test_exact_height_prefers_muxed(self, ladder_info: VideoInfo) -> None:
        """At a shared height the muxed format should serve."""
        fmt = find_format_at_height(ladder_info, 720)
        assert fmt is not None
        assert fmt.itag == 22

    def test_exact_height_has_no_substitution(self, ladder_info: VideoInfo) -> None:
        """A missing height should not fall back to a neighbour."""
        assert find_format_at_height(ladder_info, 480) is None


def _selector(session: FakeSession, host: FakeHost, config: SourceConfig) -> FormatSelector:
    async def factory(client_type: ClientType) -> FakeSession:
        return session

    pool = ClientPool(factory)
    return FormatSelector(pool, host, config, HlsManifestProcessor(host, config))


class TestResolveAudio:
    """Tests for audio resolution."""

    @pytest.mark.asyncio
    async def test_direct_audio_on_android(
        self, session: FakeSession, android_host: FakeHost, config: SourceConfig
    ) -> None:
        """Android should get the best audio format with the user agent."""
        session.info = make_info(
            adaptive=[audio_format(139, 48_000), audio_format(140, 128_000)]
        )
        selector = _selector(session, android_host, config)

        audio = await selector.resolve_audio("dQw4w9WgXcQ")

        assert audio.url == "https://cdn.example/140&sig=ok"
        assert audio.headers == {"User-Agent": UA}
        assert session.called("get_info") == [("get_info", "dQw4w9WgXcQ", ClientType.ANDROID)]

    @pytest.mark.asyncio
    async def test_ios_prefers_hls(
        self, session: FakeSession, ios_host: FakeHost, config: SourceConfig
    ) -> None:
        """iOS should return the HLS manifest from the iOS client type."""
        session.infos_by_client[ClientType.IOS] = make_info(
            hls_manifest_url="https://manifest.example/master.m3u8"
        )
        selector = _selector(session, ios_host, config)

        audio = await selector.resolve_audio("dQw4w9WgXcQ")

        assert audio.url == "https://manifest.example/master.m3u8"
        assert audio.headers == {"User-Agent": UA}
        assert not session.called("decipher")

    @pytest.mark.asyncio
    async def test_ios_falls_back_to_direct(
        self, session: FakeSession, ios_host: FakeHost, config: SourceConfig
    ) -> None:
        """A failing iOS basic-info call should fall back to direct audio."""
        session.info = make_info(adaptive=[audio_format(140, 128_000)])
        session.errors["get_basic_info"] = APIError("boom")
        selector = _selector(session, ios_host, config)

        audio = await selector.resolve_audio("dQw4w9WgXcQ")

        assert audio.url == "https://cdn.example/140&sig=ok"

    @pytest.mark.asyncio
    async def test_metadata_failure_propagates(
        self, session: FakeSession, android_host: FakeHost, config: SourceConfig
    ) -> None:
        """Metadata errors should reach the caller without a retry."""
        session.errors["get_info"] = APIError("unavailable")
        selector = _selector(session, android_host, config)

        with pytest.raises(APIError):
            await selector.resolve_audio("dQw4w9WgXcQ")
        assert len(session.called("get_info")) == 1

    @pytest.mark.asyncio
    async def test_no_audio_format_raises(
        self, session: FakeSession, android_host: FakeHost, config: SourceConfig
    ) -> None:
        """A video without audio-only formats should raise."""
        session.info = make_info(formats=[muxed_format(18, 360)])
        selector = _selector(session, android_host, config)

        with pytest.raises(FormatNotFoundError):
            await selector.resolve_direct_audio("dQw4w9WgXcQ")

    @pytest.mark.asyncio
    async def test_download_info_carries_size(
        self, session: FakeSession, android_host: FakeHost, config: SourceConfig
    ) -> None:
        """Download info should include the content length, 0 when unknown."""
        session.info = make_info(adaptive=[audio_format(140, 128_000, content_length=3_400_000)])
        selector = _selector(session, android_host, config)

        download = await selector.resolve_download("dQw4w9WgXcQ")

        assert download.content_length == 3_400_000
        assert download.url.startswith("https://cdn.example/140")

    @pytest.mark.asyncio
    async def test_expiry_comes_from_streaming_data(
        self,
        session: FakeSession,
        android_host: FakeHost,
        config: SourceConfig,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """expires_at should be the fetch time plus the stream lifetime."""
        monkeypatch.setattr("ytsource.services.formats.time.time", lambda: 1_700_000_000)
        session.info = make_info(adaptive=[audio_format(140, 128_000)], expires_in_seconds=21_540)
        selector = _selector(session, android_host, config)

        audio = await selector.resolve_direct_audio("dQw4w9WgXcQ")

        assert audio.expires_at == 1_700_021_540

    @pytest.mark.asyncio
    async def test_unknown_expiry_stays_none(
        self, session: FakeSession, android_host: FakeHost, config: SourceConfig
    ) -> None:
        session.info = make_info(adaptive=[audio_format(140, 128_000)])
        selector = _selector(session, android_host, config)

        audio = await selector.resolve_direct_audio("dQw4w9WgXcQ")

        assert audio.expires_at is None


class TestResolveVideo:
    """Tests for video resolution strategies."""

    @pytest.mark.asyncio
    async def test_android_writes_dash_manifest(
        self,
        session: FakeSession,
        android_host: FakeHost,
        config: SourceConfig,
        ladder_info: VideoInfo,
    ) -> None:
        """Android should get a synthesized DASH manifest."""
        session.info = ladder_info
        selector = _selector(session, android_host, config)

        video = await selector.resolve_video("dQw4w9WgXcQ")

        assert video is not None
        assert video.is_dash
        assert video.url == f"file:///cache/{DASH_MANIFEST_NAME}"
        assert video.qualities == []
        assert android_host.files[DASH_MANIFEST_NAME] == "<MPD/>"

    @pytest.mark.asyncio
    async def test_dash_failure_falls_through_to_progressive(
        self,
        session: FakeSession,
        android_host: FakeHost,
        config: SourceConfig,
        ladder_info: VideoInfo,
    ) -> None:
        """A failed DASH synthesis should use the progressive ladder."""
        session.info = ladder_info
        session.errors["to_dash"] = ManifestError("no adaptive audio")
        selector = _selector(session, android_host, config)

        video = await selector.resolve_video("dQw4w9WgXcQ")

        assert video is not None
        assert not video.is_dash
        assert video.default_height == 720
        assert video.has_audio
        assert video.url == "https://cdn.example/22&sig=ok"
        assert [q.height for q in video.qualities] == [360, 720, 1080]

    @pytest.mark.asyncio
    async def test_ios_uses_hls_ladder(
        self,
        session: FakeSession,
        ios_host: FakeHost,
        config: SourceConfig,
        master_playlist: str,
    ) -> None:
        """iOS should parse the HLS ladder and report auto quality."""
        url = "https://manifest.example/master.m3u8"
        session.info = make_info(hls_manifest_url=url)
        ios_host.respond(url, master_playlist)
        selector = _selector(session, ios_host, config)

        video = await selector.resolve_video("dQw4w9WgXcQ")

        assert video is not None
        assert video.is_hls and video.has_audio
        assert video.default_height == 0
        assert [q.height for q in video.qualities] == [144, 480, 720]

    @pytest.mark.asyncio
    async def test_ios_hls_parse_failure_keeps_auto(
        self, session: FakeSession, ios_host: FakeHost, config: SourceConfig
    ) -> None:
        """An unreachable manifest should still return HLS with no ladder."""
        session.info = make_info(hls_manifest_url="https://manifest.example/gone.m3u8")
        selector = _selector(session, ios_host, config)

        video = await selector.resolve_video("dQw4w9WgXcQ")

        assert video is not None
        assert video.is_hls
        assert video.qualities == []

    @pytest.mark.asyncio
    async def test_ios_without_hls_uses_progressive(
        self,
        session: FakeSession,
        ios_host: FakeHost,
        config: SourceConfig,
        ladder_info: VideoInfo,
    ) -> None:
        """iOS without any HLS URL should skip DASH and use progressive."""
        session.info = ladder_info
        selector = _selector(session, ios_host, config)

        video = await selector.resolve_video("dQw4w9WgXcQ")

        assert video is not None
        assert not video.is_hls and not video.is_dash
        assert not session.called("to_dash")

    @pytest.mark.asyncio
    async def test_missing_streaming_data_is_unplayable(
        self, session: FakeSession, android_host: FakeHost, config: SourceConfig
    ) -> None:
        """No streaming data should yield None."""
        session.info = make_info(streaming=False)
        selector = _selector(session, android_host, config)

        assert await selector.resolve_video("dQw4w9WgXcQ") is None

    @pytest.mark.asyncio
    async def test_metadata_failure_is_unplayable(
        self, session: FakeSession, android_host: FakeHost, config: SourceConfig
    ) -> None:
        """Errors in the video path should be converted to None."""
        session.errors["get_info"] = APIError("boom")
        selector = _selector(session, android_host, config)

        assert await selector.resolve_video("dQw4w9WgXcQ") is None


class TestVideoInfoCache:
    """Tests for metadata reuse across video calls."""

    @pytest.mark.asyncio
    async def test_same_id_reuses_metadata(
        self,
        session: FakeSession,
        android_host: FakeHost,
        config: SourceConfig,
        ladder_info: VideoInfo,
    ) -> None:
        """Repeated calls for one ID should fetch metadata once."""
        session.info = ladder_info
        selector = _selector(session, android_host, config)

        await selector.resolve_video("dQw4w9WgXcQ")
        await selector.resolve_video_at_height("dQw4w9WgXcQ", 1080)

        assert len(session.called("get_info")) == 1
        assert selector.current_content_id == "dQw4w9WgXcQ"

    @pytest.mark.asyncio
    async def test_other_id_invalidates(
        self,
        session: FakeSession,
        android_host: FakeHost,
        config: SourceConfig,
        ladder_info: VideoInfo,
    ) -> None:
        """An intervening different ID should force a refetch."""
        session.info = ladder_info
        selector = _selector(session, android_host, config)

        await selector.resolve_video("dQw4w9WgXcQ")
        await selector.resolve_video("9bZkp7q19f0")
        await selector.resolve_video("dQw4w9WgXcQ")

        assert [call[1] for call in session.called("get_info")] == [
            "dQw4w9WgXcQ",
            "9bZkp7q19f0",
            "dQw4w9WgXcQ",
        ]


class TestResolveVideoAtHeight:
    """Tests for exact-height resolution."""

    @pytest.mark.asyncio
    async def test_exact_height(
        self,
        session: FakeSession,
        android_host: FakeHost,
        config: SourceConfig,
        ladder_info: VideoInfo,
    ) -> None:
        """An adaptive-only height should resolve without audio."""
        session.info = ladder_info
        selector = _selector(session, android_host, config)

        quality = await selector.resolve_video_at_height("dQw4w9WgXcQ", 1080)

        assert quality is not None
        assert quality.url == "https://cdn.example/137&sig=ok"
        assert not quality.has_audio

    @pytest.mark.asyncio
    async def test_missing_height_returns_none(
        self,
        session: FakeSession,
        android_host: FakeHost,
        config: SourceConfig,
        ladder_info: VideoInfo,
    ) -> None:
        """No exact match should yield None even with neighbours available."""
        session.info = ladder_info
        selector = _selector(session, android_host, config)

        assert await selector.resolve_video_at_height("dQw4w9WgXcQ", 480) is None
