"""Markup stripping for plain-text output."""

from __future__ import annotations

from .entities import decode_entities_in_text
from .serialize import escape_html

# Literal, case-sensitive: "<BR>" is stripped like any other tag.
_LINE_BREAKS = ("</p>", "<br>", "</br>", "<br/>")

_TYPOGRAPHIC_ENTITIES = (
    ("&#8216;", "'"),
    ("&#8217;", "'"),
    ("&#8220;", '"'),
    ("&#8221;", '"'),
    ("&nbsp;", " "),
    ("&quot;", '"'),
    ("&apos;", "'"),
)

# Undone after escaping; note the trailing spaces on the ampersand forms.
_HARMLESS_ESCAPES = (
    ("&#34;", '"'),
    ("&#39;", "'"),
    ("&amp; ", "& "),
    ("&amp;amp; ", "& "),
)


def _remove_tags(text: str) -> str:
    out = []
    in_tag = False
    for c in text:
        if c == "<":
            in_tag = True
        elif c == ">":
            in_tag = False
        elif not in_tag:
            out.append(c)
    return "".join(out)


def strip_html(text: str) -> str:
    """Remove all markup from `text` and return plain text.

    This is a bracket scan, not a parser: everything between a "<" and the
    next ">" is dropped, so a ">" inside a quoted attribute ends the tag early
    and malformed input may lose text. "</p>" and the "<br>" forms become
    newlines; other newlines are removed first. The result is escaped, so
    any markup that survives is inert, with quotes, "& " and a few common
    entities turned back into plain characters.
    """
    if "<" in text or ">" in text:
        # Newlines carry no meaning outside tags, except in <pre>.
        text = text.replace("\n", "")
        for tag in _LINE_BREAKS:
            text = text.replace(tag, "\n")
        text = _remove_tags(text)

    for entity, plain in _TYPOGRAPHIC_ENTITIES:
        text = text.replace(entity, plain)

    text = escape_html(decode_entities_in_text(text))

    for entity, plain in _HARMLESS_ESCAPES:
        text = text.replace(entity, plain)
    return text
