"""Allow-list HTML sanitization.

`sanitize_html` tokenizes untrusted HTML and rebuilds it from the tokens an
allow-list permits:

- Tags in `allowed_tags` are re-serialized with only the attributes in
  `allowed_attributes`, after URL-valued attributes are checked for
  script-capable schemes.
- Tags in `UNSAFE_TAGS` (script, style, iframe, ...) are never kept. Opening
  one discards every token up to its matching end tag, text included.
- Everything else (unknown tags, comments, doctypes) is dropped while the
  text around it is kept.

The skip state holds a single tag name, not a stack: `<script><script>` is
closed by the first `</script>`.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Collection, Iterable
from dataclasses import dataclass

from .serialize import VOID_ELEMENTS, escape_text, serialize_end_tag, serialize_start_tag
from .tokenizer import _ASCII_LOWER_TABLE, Tokenizer, TokenizerOpts
from .tokens import CharacterTokens, EOFToken, Tag, TokenizationError

logger = logging.getLogger(__name__)

# Never allowed, whatever the policy says; their content is discarded too.
UNSAFE_TAGS: frozenset[str] = frozenset(
    {
        "title",
        "script",
        "style",
        "iframe",
        "frame",
        "frameset",
        "noframes",
        "noembed",
        "embed",
        "applet",
        "object",
        "base",
    }
)

DEFAULT_TAGS: tuple[str, ...] = (
    # Headings
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
    # Structure
    "div",
    "span",
    "hr",
    "p",
    "br",
    # Text formatting
    "b",
    "i",
    # Lists
    "ol",
    "ul",
    "li",
    # Links and images
    "a",
    "img",
)

DEFAULT_ATTRIBUTES: tuple[str, ...] = ("id", "class", "src", "href", "title", "alt", "name", "rel")

# Elements that are meaningless without one attribute; dropped when it does
# not survive cleaning.
REQUIRED_ATTRIBUTES: dict[str, str] = {"img": "src"}

# "javascript:" or "data:" anywhere in the value, with any whitespace between
# the letters.
_SCRIPT_SCHEME_PATTERN = re.compile(r"(?:d\s*a\s*t\s*a|j\s*a\s*v\s*a\s*s\s*c\s*r\s*i\s*p\s*t)\s*:")

# href must be a rooted path ("/x", not "//host" or "/\host") or an absolute
# mailto/http/https URL.
_SAFE_HREF_PATTERN = re.compile(r"\A(?:/(?![/\\])|mailto://|http://|https://)")


def _normalize_names(field_name: str, names: Collection[str]) -> frozenset[str]:
    if isinstance(names, str):
        raise TypeError(f"{field_name} must be a collection of names, not a string")
    return frozenset(str(name).translate(_ASCII_LOWER_TABLE) for name in names)


@dataclass(frozen=True, slots=True)
class SanitizationPolicy:
    """The allow-lists used by `sanitize_html`.

    Both collections are normalized to lowercase frozensets. Names in
    `UNSAFE_TAGS` are removed from `allowed_tags`.
    """

    allowed_tags: Collection[str] = DEFAULT_TAGS
    allowed_attributes: Collection[str] = DEFAULT_ATTRIBUTES

    def __post_init__(self) -> None:
        tags = _normalize_names("allowed_tags", self.allowed_tags)
        object.__setattr__(self, "allowed_tags", tags - UNSAFE_TAGS)
        object.__setattr__(
            self, "allowed_attributes", _normalize_names("allowed_attributes", self.allowed_attributes)
        )


DEFAULT_POLICY: SanitizationPolicy = SanitizationPolicy()


def clean_attributes(
    attrs: Iterable[tuple[str, str]], allowed_attributes: Collection[str]
) -> list[tuple[str, str]]:
    """Return the attributes of a kept tag that are safe to emit.

    Attributes whose key is not allowed are dropped. A value carrying a
    javascript: or data: scheme is blanked, as is an href that is not a
    rooted path or a mailto/http/https URL. Blank attributes are dropped.
    Input order is preserved.
    """
    cleaned = []
    for key, value in attrs:
        if key not in allowed_attributes:
            continue
        lowered = value.lower()
        if _SCRIPT_SCHEME_PATTERN.search(lowered):
            value = ""
        elif key == "href" and not _SAFE_HREF_PATTERN.match(lowered):
            value = ""
        if value:
            cleaned.append((key, value))
    return cleaned


def _serialize_kept_tag(tag: Tag, policy: SanitizationPolicy) -> str | None:
    attrs = clean_attributes(tag.attrs, policy.allowed_attributes)
    required = REQUIRED_ATTRIBUTES.get(tag.name)
    if required is not None and not any(key == required for key, _ in attrs):
        return None
    return serialize_start_tag(tag.name, attrs, self_closing=tag.self_closing)


def _sanitize_tokens(tokenizer: Tokenizer, policy: SanitizationPolicy) -> str:
    allowed_tags = policy.allowed_tags
    debug = logger.isEnabledFor(logging.DEBUG)
    parts: list[str] = []
    ignore: str | None = None

    while True:
        token = tokenizer.next_token()

        if isinstance(token, EOFToken):
            return "".join(parts)

        if isinstance(token, CharacterTokens):
            if ignore is None:
                parts.append(escape_text(token.data))
            continue

        # Comments and doctypes are always dropped.
        if not isinstance(token, Tag):
            continue

        name = token.name
        if token.kind == Tag.END:
            if ignore is None and name in allowed_tags:
                if name not in VOID_ELEMENTS:
                    parts.append(serialize_end_tag(name))
            elif name == ignore:
                if debug:
                    logger.debug("Leaving skip state at </%s>", name)
                ignore = None
            continue

        if ignore is None and name in allowed_tags:
            serialized = _serialize_kept_tag(token, policy)
            if serialized is not None:
                parts.append(serialized)
            elif debug:
                logger.debug("Dropping <%s> without its required attribute", name)
        elif token.self_closing and name == ignore:
            if debug:
                logger.debug("Leaving skip state at <%s/>", name)
            ignore = None
        elif name in UNSAFE_TAGS:
            if debug:
                logger.debug("Entering skip state at <%s>", name)
            ignore = name


def sanitize_html(
    html: str | bytes,
    allowed_tags: Collection[str] | None = None,
    allowed_attributes: Collection[str] | None = None,
    *,
    policy: SanitizationPolicy | None = None,
    tokenizer_opts: TokenizerOpts | None = None,
) -> str:
    """Return `html` reduced to the allowed tags and attributes.

    Either pass explicit allow-lists (a missing one falls back to the
    default) or a prebuilt `policy`, not both.

    Text is kept as written, character references included; only "<" and
    ">" are escaped. Raises `TokenizationError` when the input cannot be
    tokenized (invalid UTF-8 bytes, lone surrogates, or a token larger than
    `tokenizer_opts.max_buf`); no partial output is returned in that case.
    """
    if policy is None:
        if allowed_tags is None and allowed_attributes is None:
            policy = DEFAULT_POLICY
        else:
            policy = SanitizationPolicy(
                allowed_tags=DEFAULT_TAGS if allowed_tags is None else allowed_tags,
                allowed_attributes=DEFAULT_ATTRIBUTES if allowed_attributes is None else allowed_attributes,
            )
    elif allowed_tags is not None or allowed_attributes is not None:
        raise TypeError("pass either a policy or explicit allow-lists, not both")

    try:
        return _sanitize_tokens(Tokenizer(html, tokenizer_opts), policy)
    except TokenizationError as exc:
        logger.debug("Tokenization failed: %s", exc.error)
        raise
