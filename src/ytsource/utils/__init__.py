"""Utility functions for ytsource.

Available via `from ytsource.utils import ...` for power users.
Not re-exported at the top-level `ytsource` package.
"""

from ytsource.utils.cookies import cookies_to_auth_headers, parse_netscape_cookies
from ytsource.utils.paths import dig, first_present
from ytsource.utils.text import parse_duration, text_of
from ytsource.utils.thumbnails import (
    best_thumbnail,
    extract_header_thumbnail,
    extract_thumbnail,
)
from ytsource.utils.url import parse_browse_id, parse_content_id

__all__ = [
    "best_thumbnail",
    "cookies_to_auth_headers",
    "dig",
    "extract_header_thumbnail",
    "extract_thumbnail",
    "first_present",
    "parse_browse_id",
    "parse_content_id",
    "parse_duration",
    "parse_netscape_cookies",
    "text_of",
]
