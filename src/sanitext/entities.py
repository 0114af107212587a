"""HTML5 character reference decoding.

Decodes named references (&amp;, &nbsp;) and numeric references (&#60;,
&#x3C;) the way an HTML5 tokenizer does inside attribute values, with the
legacy no-semicolon forms honoured.
"""

import html.entities
import re

# Python's complete HTML5 entity list. Keys ending in ";" are the canonical
# forms; the legacy references that may omit the semicolon also appear
# without it.
_HTML5_ENTITIES = html.entities.html5

LEGACY_ENTITIES = {key: value for key, value in _HTML5_ENTITIES.items() if not key.endswith(";")}
_LONGEST_LEGACY = max(len(key) for key in LEGACY_ENTITIES)

# HTML5 numeric character reference replacements (C1 controls from windows-1252)
NUMERIC_REPLACEMENTS = {
    0x00: "\ufffd",  # NULL
    0x80: "\u20ac",  # EURO SIGN
    0x82: "\u201a",  # SINGLE LOW-9 QUOTATION MARK
    0x83: "\u0192",  # LATIN SMALL LETTER F WITH HOOK
    0x84: "\u201e",  # DOUBLE LOW-9 QUOTATION MARK
    0x85: "\u2026",  # HORIZONTAL ELLIPSIS
    0x86: "\u2020",  # DAGGER
    0x87: "\u2021",  # DOUBLE DAGGER
    0x88: "\u02c6",  # MODIFIER LETTER CIRCUMFLEX ACCENT
    0x89: "\u2030",  # PER MILLE SIGN
    0x8a: "\u0160",  # LATIN CAPITAL LETTER S WITH CARON
    0x8b: "\u2039",  # SINGLE LEFT-POINTING ANGLE QUOTATION MARK
    0x8c: "\u0152",  # LATIN CAPITAL LIGATURE OE
    0x8e: "\u017d",  # LATIN CAPITAL LETTER Z WITH CARON
    0x91: "\u2018",  # LEFT SINGLE QUOTATION MARK
    0x92: "\u2019",  # RIGHT SINGLE QUOTATION MARK
    0x93: "\u201c",  # LEFT DOUBLE QUOTATION MARK
    0x94: "\u201d",  # RIGHT DOUBLE QUOTATION MARK
    0x95: "\u2022",  # BULLET
    0x96: "\u2013",  # EN DASH
    0x97: "\u2014",  # EM DASH
    0x98: "\u02dc",  # SMALL TILDE
    0x99: "\u2122",  # TRADE MARK SIGN
    0x9a: "\u0161",  # LATIN SMALL LETTER S WITH CARON
    0x9b: "\u203a",  # SINGLE RIGHT-POINTING ANGLE QUOTATION MARK
    0x9c: "\u0153",  # LATIN SMALL LIGATURE OE
    0x9e: "\u017e",  # LATIN SMALL LETTER Z WITH CARON
    0x9f: "\u0178",  # LATIN CAPITAL LETTER Y WITH DIAERESIS
}

_REFERENCE_PATTERN = re.compile(r"&(?:#[xX]([0-9a-fA-F]+);?|#([0-9]+);?|([A-Za-z][A-Za-z0-9]*;?))")


def decode_numeric_entity(text, is_hex=False):
    """Decode the digits of a numeric character reference.

    Out of range code points and surrogates become U+FFFD.
    """
    codepoint = int(text, 16 if is_hex else 10)
    if codepoint in NUMERIC_REPLACEMENTS:
        return NUMERIC_REPLACEMENTS[codepoint]
    if codepoint > 0x10FFFF or 0xD800 <= codepoint <= 0xDFFF:
        return "\ufffd"
    return chr(codepoint)


def _decode_named(name, following, in_attribute):
    if name.endswith(";") and name in _HTML5_ENTITIES:
        return _HTML5_ENTITIES[name], len(name)

    # Longest legacy prefix wins: "&notit;" decodes "&not" and keeps "it;".
    bare = name.rstrip(";")
    for size in range(min(len(bare), _LONGEST_LEGACY), 0, -1):
        prefix = bare[:size]
        if prefix not in LEGACY_ENTITIES:
            continue
        if in_attribute:
            next_char = name[size] if size < len(name) else following
            if next_char and (next_char.isalnum() or next_char == "="):
                return None, 0
        return LEGACY_ENTITIES[prefix], size
    return None, 0


def decode_entities_in_text(text, in_attribute=False):
    """Decode all character references in `text`.

    Unknown references are left as-is. When `in_attribute` is true, a legacy
    reference followed by an alphanumeric or "=" is not decoded, so query
    strings such as "?a=1&copy=2" survive.
    """
    if "&" not in text:
        return text

    result = []
    pos = 0
    for match in _REFERENCE_PATTERN.finditer(text):
        start = match.start()
        result.append(text[pos:start])
        hex_digits, dec_digits, name = match.groups()
        if hex_digits is not None:
            result.append(decode_numeric_entity(hex_digits, is_hex=True))
            pos = match.end()
            continue
        if dec_digits is not None:
            result.append(decode_numeric_entity(dec_digits))
            pos = match.end()
            continue

        end = match.end()
        following = text[end] if end < len(text) else None
        decoded, consumed = _decode_named(name, following, in_attribute)
        if decoded is None:
            result.append(match.group(0))
            pos = end
        else:
            result.append(decoded)
            pos = start + 1 + consumed
    result.append(text[pos:])
    return "".join(result)
