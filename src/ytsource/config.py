"""Configuration for ytsource."""

from dataclasses import dataclass, field
from pathlib import Path

from ytsource.models.enums import ClientType

# Sent with every resolved stream URL; the CDN rejects mismatched agents
YT_USER_AGENT = "com.google.android.youtube/19.29.37 (Linux; U; Android 14) gzip"

PLAYER_MIRROR = (
    "https://raw.githubusercontent.com/lovegaoshi/my-express-api"
    "/refs/heads/ghactions/cachedPlayers"
)
PLAYER_FALLBACK = "https://ytb-cache.netlify.app/api?playerURL={player_id}"


@dataclass(frozen=True)
class SourceConfig:
    """Content resolution configuration.

    Attributes:
        user_agent: User-Agent attached to resolved playback URLs.
        default_video_height: Preferred rung when building a quality ladder.
        suggestion_limit: Maximum number of related items returned.
        search_limit: Maximum number of video search results.
        hls_codec_family: Video codec family HLS variants must advertise.
        audio_client: Client type used to fetch audio metadata.
        hls_client: Client type queried for HLS manifest URLs.
        default_client: Client type used when none is requested.
        warm_clients: Client types created concurrently on initialize.
        player_id: Player build whose transforms decipher signed formats.
            Discovered from the embed API when not set.
        player_mirror: Base URL of the cached player mirror.
        player_fallback: Last-resort player cache URL template.
        cookies_path: Optional cookies.txt used for authenticated requests.
        hl: Interface language sent to the upstream API.
        gl: Content region sent to the upstream API.
    """

    user_agent: str = YT_USER_AGENT
    default_video_height: int = 720
    suggestion_limit: int = 20
    search_limit: int = 20
    hls_codec_family: str = "avc1"
    audio_client: ClientType = ClientType.ANDROID
    hls_client: ClientType = ClientType.IOS
    default_client: ClientType = ClientType.MWEB
    warm_clients: tuple[ClientType, ...] = field(
        default=(ClientType.MWEB, ClientType.WEB, ClientType.ANDROID_MUSIC)
    )
    player_id: str | None = None
    player_mirror: str = PLAYER_MIRROR
    player_fallback: str = PLAYER_FALLBACK
    cookies_path: Path | None = None
    hl: str = "en"
    gl: str = "US"
