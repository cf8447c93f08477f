"""DASH manifest synthesis from adaptive formats."""

import xml.etree.ElementTree as ET
from itertools import groupby

from ytsource.exceptions import ManifestError
from ytsource.models.innertube import PlaybackFormat

MPD_NAMESPACE = "urn:mpeg:dash:schema:mpd:2011"
ON_DEMAND_PROFILE = "urn:mpeg:dash:profile:isoff-on-demand:2011"
FULL_PROFILE = "urn:mpeg:dash:profile:full:2011"


def _container(fmt: PlaybackFormat) -> str:
    return fmt.mime_type.split(";", 1)[0].strip()


def _representation(
    parent: ET.Element, fmt: PlaybackFormat, url: str, fallback_id: str
) -> None:
    attributes = {
        "id": str(fmt.itag) if fmt.itag is not None else fallback_id,
        "bandwidth": str(fmt.bitrate or 0),
    }
    if fmt.codecs:
        attributes["codecs"] = ",".join(fmt.codecs)
    if fmt.has_video and fmt.width and fmt.height:
        attributes["width"] = str(fmt.width)
        attributes["height"] = str(fmt.height)

    representation = ET.SubElement(parent, "Representation", attributes)
    if not fmt.has_video:
        ET.SubElement(
            representation,
            "AudioChannelConfiguration",
            {
                "schemeIdUri": "urn:mpeg:dash:23003:3:audio_channel_configuration:2011",
                "value": "2",
            },
        )
    ET.SubElement(representation, "BaseURL").text = url
    if fmt.init_range and fmt.index_range:
        segment = ET.SubElement(representation, "SegmentBase", {"indexRange": fmt.index_range})
        ET.SubElement(segment, "Initialization", {"range": fmt.init_range})


def build_mpd(streams: list[tuple[PlaybackFormat, str]], duration: float) -> str:
    """Build a static MPD document.

    One adaptation set is emitted per container MIME type and kind
    (audio or video). Representations get a ``SegmentBase`` when the
    format exposes its init and index byte ranges. Raw ``streamingData``
    formats carry them; yt-dlp formats do not, and players then read the
    index from the stream itself. The on-demand profile is declared only
    when every representation has its ranges.

    Args:
        streams: Adaptive formats paired with their resolved URLs.
        duration: Presentation duration in seconds.

    Returns:
        The MPD document as a string.

    Raises:
        ManifestError: If there is no adaptive video or no adaptive audio.
    """
    adaptive = [(f, url) for f, url in streams if f.has_video != f.has_audio]
    if not any(f.has_video for f, _ in adaptive):
        raise ManifestError("No adaptive video formats for DASH manifest")
    if not any(f.has_audio for f, _ in adaptive):
        raise ManifestError("No adaptive audio formats for DASH manifest")

    has_ranges = all(f.init_range and f.index_range for f, _ in adaptive)
    profile = ON_DEMAND_PROFILE if has_ranges else FULL_PROFILE

    mpd = ET.Element(
        "MPD",
        {
            "xmlns": MPD_NAMESPACE,
            "type": "static",
            "minBufferTime": "PT1.500S",
            "mediaPresentationDuration": f"PT{duration:.3f}S",
            "profiles": profile,
        },
    )
    period = ET.SubElement(mpd, "Period")

    def key(stream: tuple[PlaybackFormat, str]) -> tuple[bool, str]:
        return (stream[0].has_video, _container(stream[0]))

    for set_id, ((is_video, container), group) in enumerate(
        groupby(sorted(adaptive, key=key), key=key)
    ):
        adaptation = ET.SubElement(
            period,
            "AdaptationSet",
            {
                "id": str(set_id),
                "mimeType": container,
                "contentType": "video" if is_video else "audio",
                "subsegmentAlignment": "true",
            },
        )
        for index, (fmt, url) in enumerate(group):
            _representation(adaptation, fmt, url, f"{set_id}-{index}")

    return ET.tostring(mpd, encoding="unicode", xml_declaration=True)
