"""Player transforms for signed stream URLs.

Signed formats carry a scrambled signature (``s``) and a throttling
parameter (``n``) that must be passed through two functions exported by
the web player build. Player code is fetched from a mirror chain and the
two functions are run in yt-dlp's sandboxed JavaScript interpreter; no
other code from the player is executed.

Formats converted from yt-dlp already hold resolved URLs and never
reach this module. Sessions that parse raw player responses
(``VideoInfo.model_validate``) depend on it for every signed format.
"""

import asyncio
import logging
import re
from collections.abc import Callable
from typing import Any
from urllib.parse import parse_qs, urlencode, urlparse

import httpx
from yt_dlp.jsinterp import JSInterpreter

from ytsource.config import SourceConfig
from ytsource.exceptions import DecipherError
from ytsource.host import SourceHost

logger = logging.getLogger(__name__)

# Transform key -> function name exported by the cached player
TRANSFORMS = {
    "n": "nFunction",
    "sig": "sigFunction",
}
EXPORT_OBJECT = "exportedVars"

EMBED_API_URL = "https://www.youtube.com/iframe_api"
_PLAYER_ID_PATTERN = re.compile(r"player\\?/([0-9a-fA-F]{8})\\?/")


def _resolve_function(
    interpreter: JSInterpreter, name: str
) -> Callable[[list[Any]], Any]:
    try:
        return interpreter.extract_function(name)
    except Exception:
        return interpreter.extract_object(EXPORT_OBJECT)[name]


def evaluate_transforms(code: str, env: dict[str, str | None]) -> dict[str, str]:
    """Run the player's ``n`` and ``sig`` transforms.

    Args:
        code: Player source exporting ``nFunction`` and ``sigFunction``.
        env: Input values keyed by transform (``"n"``, ``"sig"``). Missing
            or empty values are skipped.

    Returns:
        Transformed values for every input that was provided.

    Raises:
        DecipherError: If a transform cannot be found or evaluated.
    """
    interpreter = JSInterpreter(code)
    results: dict[str, str] = {}
    for key, function_name in TRANSFORMS.items():
        value = env.get(key)
        if not value:
            continue
        try:
            function = _resolve_function(interpreter, function_name)
            results[key] = str(function([value]))
        except Exception as e:
            raise DecipherError(f"Player transform {function_name} failed: {e}") from e
    return results


def apply_cipher(signature_cipher: str, code: str) -> str:
    """Build a playable URL from a ``signatureCipher`` descriptor.

    Args:
        signature_cipher: Query string with ``url``, ``s`` and ``sp``.
        code: Player source.

    Returns:
        Stream URL carrying the deciphered signature and ``n`` value.

    Raises:
        DecipherError: If the descriptor has no URL or a transform fails.
    """
    cipher = parse_qs(signature_cipher)
    base_url = cipher.get("url", [None])[0]
    if not base_url:
        raise DecipherError("signatureCipher has no url")
    scrambled = cipher.get("s", [None])[0]
    param = cipher.get("sp", ["signature"])[0]

    parsed = urlparse(base_url)
    query = parse_qs(parsed.query, keep_blank_values=True)
    n_value = query.get("n", [None])[0]

    transformed = evaluate_transforms(code, {"n": n_value, "sig": scrambled})
    if "sig" in transformed:
        query[param] = [transformed["sig"]]
    if "n" in transformed:
        query["n"] = [transformed["n"]]
    return parsed._replace(query=urlencode(query, doseq=True)).geturl()


class PlayerCache:
    """Fetches player code through the mirror chain and keeps it in memory.

    Order: the mirror entry for the player ID, then the mirror's ``latest``
    pointer, then the fallback service.
    """

    def __init__(self, host: SourceHost, config: SourceConfig) -> None:
        self._host = host
        self._config = config
        self._code: dict[str, str] = {}
        self._player_id: str | None = config.player_id

    async def _get_text(self, url: str) -> str | None:
        try:
            response = await self._host.fetch(url)
        except httpx.HTTPError as e:
            logger.debug("Player fetch failed for %s: %s", url, e)
            return None
        if not response.is_success:
            logger.debug("Player fetch returned HTTP %d for %s", response.status_code, url)
            return None
        return response.text

    async def get(self, player_id: str) -> str | None:
        """Return player code for ``player_id``, or None if no mirror has it."""
        if player_id in self._code:
            return self._code[player_id]

        mirror = self._config.player_mirror
        code = await self._get_text(f"{mirror}/{player_id}")
        if code is None:
            latest = await self._get_text(f"{mirror}/latest")
            if latest and latest.strip():
                code = await self._get_text(f"{mirror}/{latest.strip()}")
        if code is None:
            code = await self._get_text(
                self._config.player_fallback.format(player_id=player_id)
            )
        if code is None:
            logger.warning("No mirror has player %s", player_id)
            return None

        self._code[player_id] = code
        return code

    async def player_id(self) -> str:
        """Configured player ID, else the one the embed API currently serves.

        Raises:
            DecipherError: If the player ID cannot be discovered.
        """
        if self._player_id:
            return self._player_id
        page = await self._get_text(EMBED_API_URL)
        match = _PLAYER_ID_PATTERN.search(page or "")
        if not match:
            raise DecipherError("Could not discover the current player ID")
        self._player_id = match.group(1)
        logger.debug("Using player %s", self._player_id)
        return self._player_id

    async def decipher(self, signature_cipher: str) -> str:
        """Resolve a ``signatureCipher`` with the current player.

        Raises:
            DecipherError: If player code is unavailable or a transform fails.
        """
        player_id = await self.player_id()
        code = await self.get(player_id)
        if code is None:
            raise DecipherError(f"Player {player_id} is unavailable")
        return await asyncio.to_thread(apply_cipher, signature_cipher, code)
