"""Path helpers: tilde expansion, normalisation and joining."""

from __future__ import annotations

import os
from pathlib import Path

_ENCODED_SEPARATORS = ("%2F", "%2f", "%5C", "%5c")


def _clean(path: str) -> str:
    """Return the shortest lexically equivalent path ("." for an empty one)."""
    if not path:
        return "."
    cleaned = os.path.normpath(path)
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


def _join(*elements: str) -> str:
    """Join non-empty elements with the separator and clean the result.

    Unlike ``os.path.join``, an absolute element does not discard the
    elements before it.
    """
    parts = [element for element in elements if element]
    if not parts:
        return ""
    return _clean(os.sep.join(parts))


def expand_path(path: str) -> str:
    """Expand a leading ``~`` or ``~/`` to the home directory.

    ``~user`` forms are left untouched. Raises ``RuntimeError`` when the
    home directory cannot be determined.
    """
    if not path.startswith("~"):
        return path
    if len(path) == 1 or path[1] == "/":
        return _join(str(Path.home()), path[1:])
    return path


def expand_path_safe(path: str) -> str:
    """Sanitise URL-encoded separators, then expand ``~``; never raises."""
    if any(code in path for code in _ENCODED_SEPARATORS) or "%00" in path:
        for code in _ENCODED_SEPARATORS:
            path = path.replace(code, "_")
        path = path.replace("%00", "")
    try:
        return expand_path(path)
    except RuntimeError:
        return path


def normalize_path(path: str) -> str:
    """Expand ``~`` and turn the path into a clean absolute path."""
    if not path:
        return path
    expanded = expand_path_safe(path)
    if not os.path.isabs(expanded):
        return _clean(os.path.join(os.getcwd(), expanded))
    return _clean(expanded)


def ensure_directory(path: str) -> None:
    """Create the directory and any missing parents."""
    os.makedirs(normalize_path(path), mode=0o750, exist_ok=True)


def path_exists(path: str) -> bool:
    """Whether the (tilde-expanded) path exists."""
    return os.path.exists(expand_path_safe(path))


def is_directory(path: str) -> bool:
    """Whether the (tilde-expanded) path is an existing directory."""
    return os.path.isdir(expand_path_safe(path))


def join_path(base: str, *args: str) -> str:
    """Join the elements onto ``base`` and normalise the result."""
    return normalize_path(_join(base, _join(*args)))


def join_path_safe(base: str, *args: str) -> str:
    """Like :func:`join_path`, falling back to a plain join on error."""
    try:
        return join_path(base, *args)
    except OSError:
        return _join(base, _join(*args))