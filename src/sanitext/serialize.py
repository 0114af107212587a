"""Serialization of kept tokens back to HTML."""

from __future__ import annotations

_HTML_ESCAPES = str.maketrans(
    {
        "&": "&amp;",
        "'": "&#39;",
        "<": "&lt;",
        ">": "&gt;",
        '"': "&#34;",
    }
)

# Void elements never have an end tag.
VOID_ELEMENTS = frozenset(
    {
        "area",
        "base",
        "br",
        "col",
        "embed",
        "hr",
        "img",
        "input",
        "link",
        "meta",
        "param",
        "source",
        "track",
        "wbr",
    }
)


def escape_html(text: str) -> str:
    """Escape the five HTML special characters (&, ', <, >, ")."""
    return text.translate(_HTML_ESCAPES)


def escape_text(text: str | None) -> str:
    if not text:
        return ""
    # Character references are left alone so they pass through undecoded;
    # only the characters that could open or close markup are escaped.
    return text.replace("<", "&lt;").replace(">", "&gt;")


def escape_attr_value(value: str | None) -> str:
    if value is None:
        return ""
    return value.replace("&", "&amp;").replace('"', "&#34;").replace("<", "&lt;").replace(">", "&gt;")


def serialize_start_tag(name: str, attrs: list[tuple[str, str]] | None, *, self_closing: bool = False) -> str:
    parts: list[str] = ["<", name]
    for key, value in attrs or ():
        parts.extend([" ", key, '="', escape_attr_value(value), '"'])
    parts.append("/>" if self_closing else ">")
    return "".join(parts)


def serialize_end_tag(name: str) -> str:
    return f"</{name}>"
