"""Optional-path access into loosely structured response trees."""

from collections.abc import Iterable
from typing import Any

_MISSING = object()


def dig(node: Any, path: str) -> Any:
    """Follow a dotted path through nested dicts and lists.

    Numeric segments index into lists. Any missing key, out-of-range
    index or type mismatch yields None instead of raising.

    Args:
        node: Root of the tree.
        path: Dotted path such as ``"header.title.runs.0.text"``.

    Returns:
        The value at the path, or None.
    """
    current = node
    for segment in path.split("."):
        if isinstance(current, dict):
            current = current.get(segment, _MISSING)
        elif isinstance(current, list) and segment.lstrip("-").isdigit():
            index = int(segment)
            current = current[index] if -len(current) <= index < len(current) else _MISSING
        else:
            return None
        if current is _MISSING:
            return None
    return current


def first_present(node: Any, paths: Iterable[str]) -> Any:
    """Return the value of the first candidate path that is present.

    Empty strings and empty lists count as absent.
    """
    for path in paths:
        value = dig(node, path)
        if value is not None and value != "" and value != []:
            return value
    return None
