"""Custom exceptions for ytsource.

All exceptions include an HTTP status_code attribute for easy
integration with web frameworks like FastAPI.
"""


class YTSourceError(Exception):
    """Base exception for ytsource.

    Attributes:
        status_code: HTTP status code for API error responses.
    """

    status_code: int = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class SessionError(YTSourceError):
    """Failed to create an upstream session.

    Raised when the client pool cannot construct a session for a client type.
    """

    status_code: int = 503  # Service Unavailable


class APIError(YTSourceError):
    """Upstream API error.

    Raised when a request to YouTube or YouTube Music fails.
    """

    status_code: int = 502  # Bad Gateway (upstream failure)


class DecipherError(YTSourceError):
    """Failed to turn a signed format into a playable URL.

    Raised when the player transforms cannot be fetched or evaluated.
    """

    status_code: int = 502  # Bad Gateway


class ManifestError(YTSourceError):
    """Failed to fetch or build a streaming manifest."""

    status_code: int = 502  # Bad Gateway


class FormatNotFoundError(YTSourceError):
    """No playback format matches the requested type and quality."""

    status_code: int = 404  # Not Found


class ContentParseError(YTSourceError):
    """Failed to parse a content or browse ID.

    Raised when the provided URL or ID doesn't contain a usable identifier.
    """

    status_code: int = 400  # Bad Request
