"""Tests for DASH manifest synthesis."""

import xml.etree.ElementTree as ET

import pytest
from conftest import audio_format, muxed_format, video_format
from ytsource.dash import FULL_PROFILE, MPD_NAMESPACE, ON_DEMAND_PROFILE, build_mpd
from ytsource.exceptions import ManifestError
from ytsource.models.innertube import PlaybackFormat

NS = {"mpd": MPD_NAMESPACE}


class TestBuildMpd:
    """Tests for build_mpd."""

    @pytest.fixture
    def document(self) -> ET.Element:
        streams = [
            (
                video_format(137, 1080, width=1920, init_range="0-700", index_range="701-2000"),
                "https://cdn.example/137",
            ),
            (video_format(136, 720, width=1280), "https://cdn.example/136"),
            (audio_format(140, 128_000), "https://cdn.example/140?a=1&b=2"),
            (muxed_format(18, 360), "https://cdn.example/18"),
        ]
        return ET.fromstring(build_mpd(streams, 212.5))

    def test_static_presentation(self, document: ET.Element) -> None:
        assert document.get("type") == "static"
        assert document.get("mediaPresentationDuration") == "PT212.500S"

    def test_one_adaptation_set_per_kind(self, document: ET.Element) -> None:
        """Audio and video should be split; muxed formats are left out."""
        sets = document.findall("mpd:Period/mpd:AdaptationSet", NS)

        assert [s.get("contentType") for s in sets] == ["audio", "video"]
        video_ids = [r.get("id") for r in sets[1].findall("mpd:Representation", NS)]
        assert sorted(video_ids) == ["136", "137"]

    def test_segment_base_only_with_ranges(self, document: ET.Element) -> None:
        representations = {
            r.get("id"): r for r in document.iter(f"{{{MPD_NAMESPACE}}}Representation")
        }

        segment = representations["137"].find("mpd:SegmentBase", NS)
        assert segment is not None
        assert segment.get("indexRange") == "701-2000"
        assert segment.find("mpd:Initialization", NS).get("range") == "0-700"
        assert representations["136"].find("mpd:SegmentBase", NS) is None

    def test_representation_attributes(self, document: ET.Element) -> None:
        representations = {
            r.get("id"): r for r in document.iter(f"{{{MPD_NAMESPACE}}}Representation")
        }

        video = representations["137"]
        assert (video.get("width"), video.get("height")) == ("1920", "1080")
        assert video.get("codecs") == "avc1.640028"
        audio = representations["140"]
        assert audio.get("bandwidth") == "128000"
        assert audio.find("mpd:BaseURL", NS).text == "https://cdn.example/140?a=1&b=2"
        assert audio.find("mpd:AudioChannelConfiguration", NS) is not None

    def test_full_profile_when_ranges_are_missing(self, document: ET.Element) -> None:
        assert document.get("profiles") == FULL_PROFILE

    def test_on_demand_profile_when_every_stream_has_ranges(self) -> None:
        ranges = {"init_range": "0-700", "index_range": "701-2000"}
        streams = [
            (video_format(137, 1080, **ranges), "https://cdn.example/137"),
            (audio_format(140, 128_000, **ranges), "https://cdn.example/140"),
        ]

        document = ET.fromstring(build_mpd(streams, 10.0))

        assert document.get("profiles") == ON_DEMAND_PROFILE
        assert len(list(document.iter(f"{{{MPD_NAMESPACE}}}SegmentBase"))) == 2

    @pytest.mark.parametrize(
        "streams",
        [
            pytest.param([(audio_format(140, 128_000), "a")], id="no_video"),
            pytest.param([(video_format(137, 1080), "v")], id="no_audio"),
            pytest.param([(muxed_format(18, 360), "m")], id="muxed_only"),
        ],
    )
    def test_missing_stream_kind_raises(self, streams: list[tuple[PlaybackFormat, str]]) -> None:
        with pytest.raises(ManifestError):
            build_mpd(streams, 10.0)
