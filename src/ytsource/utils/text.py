"""Display text and duration helpers."""

from typing import Any


def text_of(value: Any) -> str:
    """Extract display text from any of the upstream text shapes.

    Accepts a plain string, ``{"text": ...}``, ``{"simpleText": ...}``,
    ``{"content": ...}`` or ``{"runs": [{"text": ...}, ...]}``.

    Args:
        value: Text fragment in any supported shape.

    Returns:
        The text, or an empty string for unrecognized shapes.
    """
    if isinstance(value, str):
        return value
    if not isinstance(value, dict):
        return ""
    for key in ("text", "simpleText", "content"):
        if isinstance(value.get(key), str):
            return value[key]
    runs = value.get("runs")
    if isinstance(runs, list):
        return "".join(
            run["text"]
            for run in runs
            if isinstance(run, dict) and isinstance(run.get("text"), str)
        )
    return ""


def parse_duration(text: str | None) -> int:
    """Parse a clock string into seconds.

    Args:
        text: Duration as ``H:MM:SS`` or ``MM:SS``.

    Returns:
        Duration in seconds, or 0 if the string is not a clock value.
    """
    if not text:
        return 0
    parts = text.strip().split(":")
    try:
        numbers = [int(part) for part in parts]
    except ValueError:
        return 0
    if len(numbers) == 3:
        hours, minutes, seconds = numbers
        return hours * 3600 + minutes * 60 + seconds
    if len(numbers) == 2:
        minutes, seconds = numbers
        return minutes * 60 + seconds
    return 0
