"""URL path and file name normalization.

Both normalizers are lossy and may return an empty string (or "."); callers
must treat that as "no usable name".
"""

from __future__ import annotations

import re

from .accents import fold_accents

# Joining characters that become a dash.
_SEPARATOR_PATTERN = re.compile(r"[ &_=+:]")
_PATH_ILLEGAL_PATTERN = re.compile(r"[^\w_~\-./]", re.ASCII)
_NAME_ILLEGAL_PATTERN = re.compile(r"[^A-Za-z0-9\-.]")


def clean_path(path: str) -> str:
    """Return the shortest lexically equivalent slash-separated path.

    Repeated separators and "." elements are removed and ".." elements are
    resolved against the element before them. A ".." at the root is dropped.
    The filesystem is never consulted. An empty path cleans to ".".
    """
    if not path:
        return "."
    rooted = path.startswith("/")
    parts: list[str] = []
    for part in path.split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            if parts and parts[-1] != "..":
                parts.pop()
            elif not rooted:
                parts.append(part)
            continue
        parts.append(part)
    cleaned = "/".join(parts)
    if rooted:
        cleaned = "/" + cleaned
    return cleaned or "."


def base_name(path: str) -> str:
    """Return the last element of `path`, ignoring trailing slashes."""
    if not path:
        return "."
    path = path.rstrip("/")
    if not path:
        return "/"
    return path.rsplit("/", 1)[-1]


def _tidy(text: str, illegal: re.Pattern[str]) -> str:
    text = text.strip(" ")
    text = _SEPARATOR_PATTERN.sub("-", text)
    return illegal.sub("", text)


def _collapse_dashes(text: str) -> str:
    # Single pass: "---" becomes "--".
    return text.replace("--", "-")


def normalize_path(text: str) -> str:
    """Make `text` safe to use as a URL path.

    The result never contains "..": dots joined by the character strip are
    removed again before the final clean.

    >>> normalize_path("../4 icon.*")
    '/4-icon.'
    >>> normalize_path("x/.*./etc")
    'x/etc'
    """
    path = text.lower().replace("..", "")
    path = fold_accents(clean_path(path))
    path = _tidy(path, _PATH_ILLEGAL_PATTERN)
    path = clean_path(path.replace("..", ""))
    return _collapse_dashes(path)


def normalize_name(text: str) -> str:
    """Make `text` safe to use as a file name; directories are discarded.

    Accents are not folded, so non-ASCII letters are removed. A name that
    would refer to a directory ("." or "..") comes back empty.

    >>> normalize_name("ReAd ME.md")
    'read-me.md'
    >>> normalize_name(".*.")
    ''
    """
    name = clean_path(base_name(text.lower()))
    name = _collapse_dashes(_tidy(name, _NAME_ILLEGAL_PATTERN))
    if name in (".", ".."):
        return ""
    return name
