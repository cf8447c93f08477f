"""Artist formatting utilities."""

from ytsource.models.innertube import ArtistRef


def format_artists(artists: list[ArtistRef]) -> str:
    """Format artists list as 'Artist One, Artist Two'.

    Args:
        artists: List of artist references.

    Returns:
        Comma-separated artist names, skipping unnamed entries.
    """
    if not artists:
        return ""
    return ", ".join(a.name for a in artists if a.name)
