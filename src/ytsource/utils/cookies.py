"""Authenticated request headers from a browser cookie export.

A cookies.txt file is read once into :class:`Cookie` records. yt-dlp takes
the file path itself, while ytmusicapi and raw innertube calls get a
header set scoped to the origin they talk to.
"""

import hashlib
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

YTM_ORIGIN = "https://music.youtube.com"
YT_ORIGIN = "https://www.youtube.com"

HTTP_ONLY_PREFIX = "#HttpOnly_"

# Cookie name -> scheme label appended after the legacy SAPISIDHASH part
_SECURE_SAPISID_SCHEMES = (
    ("__Secure-1PAPISID", "SAPISID1PHASH"),
    ("__Secure-3PAPISID", "SAPISID3PHASH"),
)


@dataclass(frozen=True)
class Cookie:
    """One row of a cookies.txt export."""

    domain: str
    name: str
    value: str
    http_only: bool = False

    def applies_to(self, host: str) -> bool:
        domain = self.domain.lstrip(".").lower()
        host = host.lower()
        return host == domain or host.endswith("." + domain)


def _parse_row(raw: str) -> Cookie | None:
    row = raw.strip()
    http_only = row.startswith(HTTP_ONLY_PREFIX)
    if http_only:
        row = row[len(HTTP_ONLY_PREFIX) :]
    elif not row or row.startswith("#"):
        return None
    fields = row.split("\t")
    if len(fields) < 7:
        return None
    return Cookie(domain=fields[0], name=fields[5], value=fields[6], http_only=http_only)


def read_cookie_file(cookies_path: Path) -> list[Cookie]:
    """Read every well-formed row; an unreadable file yields an empty list."""
    try:
        content = cookies_path.read_text()
    except OSError as e:
        logger.warning("Failed to read cookies file: %s", e)
        return []
    return [cookie for raw in content.splitlines() if (cookie := _parse_row(raw))]


def parse_netscape_cookies(cookies_path: Path) -> dict[str, str]:
    """Map cookie names to values; later rows win on duplicate names."""
    return {cookie.name: cookie.value for cookie in read_cookie_file(cookies_path)}


def build_cookie_header(cookies: dict[str, str]) -> str:
    return "; ".join(f"{name}={value}" for name, value in cookies.items())


def get_sapisid(cookies: dict[str, str]) -> str | None:
    """Return the SAPISID value, preferring the ``__Secure-3PAPISID`` copy."""
    return cookies.get("__Secure-3PAPISID") or cookies.get("SAPISID")


def generate_sapisidhash(
    sapisid: str, origin: str = YTM_ORIGIN, scheme: str = "SAPISIDHASH"
) -> str:
    """Hash a SAPISID value for one origin.

    The digest is SHA-1 over ``"<unix time> <sapisid> <origin>"``
    (https://stackoverflow.com/a/32065323/5726546).
    """
    timestamp = str(int(time.time()))
    digest = hashlib.sha1(f"{timestamp} {sapisid} {origin}".encode()).hexdigest()
    return f"{scheme} {timestamp}_{digest}"


def build_authorization(cookies: dict[str, str], origin: str = YTM_ORIGIN) -> str | None:
    """Build the Authorization value from every SAPISID variant present.

    The legacy ``SAPISIDHASH`` part is always first; when only the
    ``__Secure-3PAPISID`` cookie exists its value stands in for it.
    """
    sapisid = get_sapisid(cookies)
    if not sapisid:
        return None
    parts = [generate_sapisidhash(cookies.get("SAPISID") or sapisid, origin)]
    for name, scheme in _SECURE_SAPISID_SCHEMES:
        if value := cookies.get(name):
            parts.append(generate_sapisidhash(value, origin, scheme))
    return " ".join(parts)


def cookies_to_auth_headers(
    cookies_path: Path, origin: str = YTM_ORIGIN
) -> dict[str, str] | None:
    """Convert cookies.txt to headers for requests sent from ``origin``.

    Only cookies whose domain covers the origin's host go into the Cookie
    header. With the default origin the result can be passed directly to
    ``YTMusic(auth=...)``.

    Returns:
        Header dict, or None if authentication is not possible.
    """
    if not cookies_path.exists():
        logger.debug("Cookies file not found: %s", cookies_path)
        return None

    host = urlsplit(origin).hostname or ""
    scoped = {
        cookie.name: cookie.value
        for cookie in read_cookie_file(cookies_path)
        if cookie.applies_to(host)
    }
    if not scoped:
        logger.debug("No cookies for %s in %s", host, cookies_path)
        return None

    authorization = build_authorization(scoped, origin)
    if authorization is None:
        logger.warning("No SAPISID cookie for %s, authentication not possible", host)
        return None

    return {
        "Accept": "*/*",
        "Authorization": authorization,
        "Content-Type": "application/json",
        "X-Goog-AuthUser": "0",
        "x-origin": origin,
        "Cookie": build_cookie_header(scoped),
    }
