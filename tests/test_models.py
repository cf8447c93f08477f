"""Tests for public and upstream models."""

from typing import Any

import pytest
from pydantic import ValidationError
from ytsource.models.enums import ContentType
from ytsource.models.innertube import (
    PlaybackFormat,
    Text,
    TwoRowItem,
    VideoDetails,
    VideoInfo,
    VideoResult,
)
from ytsource.models.media import SOURCE_ID, MediaItem


class TestMediaItem:
    """Tests for the public item model."""

    def test_defaults(self) -> None:
        item = MediaItem(id="abc", content_id="abc", title="Song")

        assert item.type == ContentType.TRACK
        assert item.source_id == SOURCE_ID
        assert item.duration == 0
        assert item.artwork == ""

    @pytest.mark.parametrize("field", ["id", "content_id"])
    def test_empty_ids_rejected(self, field: str) -> None:
        data = {"id": "abc", "content_id": "abc", "title": "Song", field: ""}

        with pytest.raises(ValidationError):
            MediaItem(**data)

    def test_frozen(self) -> None:
        item = MediaItem(id="abc", content_id="abc", title="Song")

        with pytest.raises(ValidationError):
            item.title = "Other"  # type: ignore[misc]


class TestText:
    """Tests for lenient text parsing."""

    @pytest.mark.parametrize(
        ("raw", "value", "first_run"),
        [
            ("plain", "plain", "plain"),
            ({"simpleText": "simple"}, "simple", "simple"),
            ({"runs": [{"text": "Artist"}, {"text": " • 2020"}]}, "Artist • 2020", "Artist"),
            ({"runs": [{"text": None}, "junk"]}, "", ""),
        ],
        ids=["plain", "simple_text", "runs", "garbage_runs"],
    )
    def test_value(self, raw: Any, value: str, first_run: str) -> None:
        text = Text.model_validate(raw)

        assert text.value == value
        assert text.first_run == first_run


class TestLenientParsing:
    """Upstream shapes that change should degrade, never raise."""

    def test_garbage_types_become_defaults(self) -> None:
        card = TwoRowItem.model_validate(
            {"title": 42, "thumbnail": "not-a-dict", "videoId": ["x"], "subtitle": None}
        )

        assert card.title is None
        assert card.video_id is None

    def test_numbers_become_strings(self) -> None:
        details = VideoDetails.model_validate({"videoId": 12345, "lengthSeconds": "212"})

        assert details.id == "12345"
        assert details.duration == 212

    @pytest.mark.parametrize(
        ("duration", "expected"),
        [("3:32", 212), ({"seconds": 90}, 90), ("bad", 0), (True, 0)],
    )
    def test_video_result_durations(self, duration: Any, expected: int) -> None:
        result = VideoResult.model_validate({"id": "abc", "duration": duration})

        assert result.duration == expected

    def test_video_result_artist_fallbacks(self) -> None:
        assert VideoResult.model_validate({"author": "Name"}).artist == "Name"
        assert VideoResult.model_validate({"author": [{"name": "First"}]}).artist == "First"
        assert VideoResult.model_validate({"uploader": "Uploader"}).artist == "Uploader"


class TestPlaybackFormat:
    """Tests for raw format parsing."""

    def test_raw_audio_format(self) -> None:
        fmt = PlaybackFormat.model_validate(
            {
                "itag": 140,
                "mimeType": 'audio/mp4; codecs="mp4a.40.2"',
                "contentLength": "3433514",
                "initRange": {"start": "0", "end": "631"},
                "indexRange": {"start": "632", "end": "903"},
                "signatureCipher": "s=abc&url=x",
            }
        )

        assert fmt.has_audio and not fmt.has_video
        assert fmt.content_length == 3_433_514
        assert fmt.init_range == "0-631"
        assert fmt.index_range == "632-903"
        assert fmt.signature_cipher == "s=abc&url=x"

    @pytest.mark.parametrize(
        ("mime_type", "has_video", "has_audio"),
        [
            ('video/mp4; codecs="avc1.640028"', True, False),
            ('video/mp4; codecs="avc1.42001E, mp4a.40.2"', True, True),
            ('video/webm; codecs="vp9, opus"', True, True),
            ('audio/webm; codecs="opus"', False, True),
        ],
        ids=["video_only", "muxed_mp4", "muxed_webm", "audio_only"],
    )
    def test_derives_stream_kinds(self, mime_type: str, has_video: bool, has_audio: bool) -> None:
        fmt = PlaybackFormat.model_validate({"itag": 1, "mimeType": mime_type})

        assert (fmt.has_video, fmt.has_audio) == (has_video, has_audio)

    def test_explicit_flags_win(self) -> None:
        fmt = PlaybackFormat(
            itag=1, mime_type='video/mp4; codecs="avc1"', has_video=False, has_audio=True
        )

        assert not fmt.has_video
        assert fmt.has_audio


class TestVideoInfo:
    """Tests for player response parsing."""

    def test_accepts_raw_player_response(self) -> None:
        info = VideoInfo.model_validate(
            {
                "videoDetails": {"videoId": "dQw4w9WgXcQ", "title": "Song"},
                "streamingData": {
                    "formats": [{"itag": 18, "mimeType": 'video/mp4; codecs="avc1, mp4a"'}],
                    "adaptiveFormats": [{"itag": 140, "mimeType": "audio/mp4"}, "junk"],
                    "hlsManifestUrl": "https://manifest.example/master.m3u8",
                },
            }
        )

        assert info.basic_info.id == "dQw4w9WgXcQ"
        assert [f.itag for f in info.all_formats] == [18, 140]
        assert info.streaming_data is not None
        assert info.streaming_data.hls_manifest_url == "https://manifest.example/master.m3u8"

    def test_missing_sections(self) -> None:
        info = VideoInfo.model_validate({"videoDetails": "broken", "streamingData": []})

        assert info.basic_info.id is None
        assert info.streaming_data is None
        assert info.all_formats == []
