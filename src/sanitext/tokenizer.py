"""Pull-based HTML tokenizer.

A reduced HTML5 tokenizer state machine. It covers what a fragment
sanitizer needs: tags with attributes, comments, doctypes, bogus comments,
raw text elements and plaintext. Tokens are produced one at a time by
`Tokenizer.next_token()`; iterating a tokenizer yields every token up to
(not including) the final `EOFToken`.

The input stream is preprocessed once: CRLF and CR become LF and NUL
becomes U+FFFD, so the states below never see either.
"""

import re
from collections import deque

from .entities import decode_entities_in_text
from .tokens import (
    CharacterTokens,
    CommentToken,
    DoctypeToken,
    EOFToken,
    ParseError,
    Tag,
    TokenizationError,
)

_WHITESPACE = ("\t", "\n", "\f", " ")
_ATTR_VALUE_DOUBLE_TERMINATORS = '"&'
_ATTR_VALUE_SINGLE_TERMINATORS = "'&"
_ATTR_VALUE_UNQUOTED_TERMINATORS = "\t\n\f >&\"'<=`"
_ATTR_NAME_TERMINATORS = "\t\n\f />=\"'<"
_TAG_NAME_TERMINATORS = "\t\n\f />"
_ASCII_LOWER_TABLE = str.maketrans({chr(code): chr(code + 32) for code in range(65, 91)})

_ATTR_VALUE_DOUBLE_PATTERN = re.compile(f"[{re.escape(_ATTR_VALUE_DOUBLE_TERMINATORS)}]")
_ATTR_VALUE_SINGLE_PATTERN = re.compile(f"[{re.escape(_ATTR_VALUE_SINGLE_TERMINATORS)}]")
_ATTR_VALUE_UNQUOTED_PATTERN = re.compile(f"[{re.escape(_ATTR_VALUE_UNQUOTED_TERMINATORS)}]")
_ATTR_NAME_TERMINATOR_PATTERN = re.compile(f"[{re.escape(_ATTR_NAME_TERMINATORS)}]")
_TAG_NAME_TERMINATOR_PATTERN = re.compile(f"[{re.escape(_TAG_NAME_TERMINATORS)}]")
_SURROGATE_PATTERN = re.compile("[\ud800-\udfff]")

# Elements whose content is text up to the matching end tag.
RAWTEXT_ELEMENTS = frozenset(
    {"iframe", "noembed", "noframes", "noscript", "script", "style", "textarea", "title", "xmp"}
)


def _is_ascii_alpha(c):
    return ("a" <= c <= "z") or ("A" <= c <= "Z")


class TokenizerOpts:
    __slots__ = ("discard_bom", "exact_errors", "max_buf")

    def __init__(self, exact_errors=False, discard_bom=True, max_buf=0):
        self.exact_errors = bool(exact_errors)
        self.discard_bom = bool(discard_bom)
        self.max_buf = int(max_buf or 0)


class Tokenizer:
    DATA = 0
    TAG_OPEN = 1
    END_TAG_OPEN = 2
    TAG_NAME = 3
    BEFORE_ATTRIBUTE_NAME = 4
    ATTRIBUTE_NAME = 5
    AFTER_ATTRIBUTE_NAME = 6
    BEFORE_ATTRIBUTE_VALUE = 7
    ATTRIBUTE_VALUE_DOUBLE = 8
    ATTRIBUTE_VALUE_SINGLE = 9
    ATTRIBUTE_VALUE_UNQUOTED = 10
    AFTER_ATTRIBUTE_VALUE_QUOTED = 11
    SELF_CLOSING_START_TAG = 12
    MARKUP_DECLARATION_OPEN = 13
    COMMENT = 14
    BOGUS_COMMENT = 15
    DOCTYPE = 16
    RAWTEXT = 17
    PLAINTEXT = 18

    __slots__ = (
        "buffer",
        "current_attr_name",
        "current_attr_names",
        "current_attr_value",
        "current_attr_value_has_amp",
        "current_comment",
        "current_tag_attrs",
        "current_tag_kind",
        "current_tag_name",
        "current_tag_self_closing",
        "errors",
        "finished",
        "length",
        "opts",
        "pending",
        "pos",
        "rawtext_tag_name",
        "reconsume",
        "current_char",
        "state",
        "text_buffer",
    )

    def __init__(self, html, opts=None):
        self.opts = opts or TokenizerOpts()
        self.errors = []

        if isinstance(html, (bytes, bytearray)):
            try:
                html = bytes(html).decode("utf-8")
            except UnicodeDecodeError as exc:
                raise TokenizationError(
                    ParseError("invalid-utf-8", message=f"invalid UTF-8 at byte {exc.start}")
                ) from exc
        html = html or ""
        if html and html[0] == "\ufeff" and self.opts.discard_bom:
            html = html[1:]
        if "\r" in html:
            html = html.replace("\r\n", "\n").replace("\r", "\n")
        if "\0" in html:
            self._emit_error("unexpected-null-character", html.index("\0"), html)
            html = html.replace("\0", "\ufffd")

        self.buffer = html
        self.length = len(html)
        surrogate = _SURROGATE_PATTERN.search(html)
        if surrogate:
            raise TokenizationError(self._error("surrogate-in-input-stream", surrogate.start()))

        self.pos = 0
        self.state = self.DATA
        self.reconsume = False
        self.current_char = ""
        self.finished = False
        self.pending = deque()

        self.text_buffer = []
        self.current_tag_kind = Tag.START
        self.current_tag_name = []
        self.current_tag_attrs = []
        self.current_tag_self_closing = False
        self.current_attr_names = set()
        self.current_attr_name = []
        self.current_attr_value = []
        self.current_attr_value_has_amp = False
        self.current_comment = []
        self.rawtext_tag_name = None

    def __iter__(self):
        while True:
            token = self.next_token()
            if isinstance(token, EOFToken):
                return
            yield token

    def next_token(self):
        """Return the next token, running the state machine as far as needed.

        Once the input is exhausted every further call returns an `EOFToken`.
        """
        pending = self.pending
        while not pending:
            if self.finished:
                return EOFToken()
            if self._step():
                self.finished = True
        return pending.popleft()

    def _step(self):
        state = self.state
        if state == self.DATA:
            return self._state_data()
        if state == self.TAG_OPEN:
            return self._state_tag_open()
        if state == self.END_TAG_OPEN:
            return self._state_end_tag_open()
        if state == self.TAG_NAME:
            return self._state_tag_name()
        if state == self.BEFORE_ATTRIBUTE_NAME:
            return self._state_before_attribute_name()
        if state == self.ATTRIBUTE_NAME:
            return self._state_attribute_name()
        if state == self.AFTER_ATTRIBUTE_NAME:
            return self._state_after_attribute_name()
        if state == self.BEFORE_ATTRIBUTE_VALUE:
            return self._state_before_attribute_value()
        if state == self.ATTRIBUTE_VALUE_DOUBLE:
            return self._state_attribute_value_quoted('"', _ATTR_VALUE_DOUBLE_PATTERN)
        if state == self.ATTRIBUTE_VALUE_SINGLE:
            return self._state_attribute_value_quoted("'", _ATTR_VALUE_SINGLE_PATTERN)
        if state == self.ATTRIBUTE_VALUE_UNQUOTED:
            return self._state_attribute_value_unquoted()
        if state == self.AFTER_ATTRIBUTE_VALUE_QUOTED:
            return self._state_after_attribute_value_quoted()
        if state == self.SELF_CLOSING_START_TAG:
            return self._state_self_closing_start_tag()
        if state == self.MARKUP_DECLARATION_OPEN:
            return self._state_markup_declaration_open()
        if state == self.COMMENT:
            return self._state_comment()
        if state == self.BOGUS_COMMENT:
            return self._state_bogus_comment()
        if state == self.DOCTYPE:
            return self._state_doctype()
        if state == self.RAWTEXT:
            return self._state_rawtext()
        if state == self.PLAINTEXT:
            return self._state_plaintext()
        # Unknown state fallback to data.
        self.state = self.DATA
        return False

    # ---------------------
    # State handlers
    # ---------------------

    def _state_data(self):
        if self.reconsume:
            self.reconsume = False
            self.pos -= 1
        buffer = self.buffer
        pos = self.pos
        lt_index = buffer.find("<", pos)
        if lt_index == -1:
            if pos < self.length:
                self.text_buffer.append(buffer[pos:])
            self.pos = self.length
            self._emit_eof()
            return True
        if lt_index > pos:
            self.text_buffer.append(buffer[pos:lt_index])
        self.pos = lt_index + 1
        self.state = self.TAG_OPEN
        return False

    def _state_tag_open(self):
        c = self._get_char()
        if c is None:
            self._emit_error("eof-before-tag-name")
            self.text_buffer.append("<")
            self._emit_eof()
            return True
        if c == "!":
            self.state = self.MARKUP_DECLARATION_OPEN
            return False
        if c == "/":
            self.state = self.END_TAG_OPEN
            return False
        if c == "?":
            self._emit_error("unexpected-question-mark-instead-of-tag-name")
            self.current_comment.clear()
            self._reconsume_current()
            self.state = self.BOGUS_COMMENT
            return False
        if _is_ascii_alpha(c):
            self._start_tag(Tag.START)
            self._reconsume_current()
            self.state = self.TAG_NAME
            return False

        self._emit_error("invalid-first-character-of-tag-name")
        self.text_buffer.append("<")
        self._reconsume_current()
        self.state = self.DATA
        return False

    def _state_end_tag_open(self):
        c = self._get_char()
        if c is None:
            self._emit_error("eof-before-tag-name")
            self.text_buffer.append("</")
            self._emit_eof()
            return True
        if _is_ascii_alpha(c):
            self._start_tag(Tag.END)
            self._reconsume_current()
            self.state = self.TAG_NAME
            return False
        if c == ">":
            self._emit_error("missing-end-tag-name")
            self.state = self.DATA
            return False

        self._emit_error("invalid-first-character-of-tag-name")
        self.current_comment.clear()
        self._reconsume_current()
        self.state = self.BOGUS_COMMENT
        return False

    def _state_tag_name(self):
        while True:
            if self._consume_run(_TAG_NAME_TERMINATOR_PATTERN, self.current_tag_name, lower=True):
                continue
            c = self._get_char()
            if c is None:
                # The incomplete tag is discarded, not emitted as text.
                self._emit_error("eof-in-tag")
                self._emit_eof()
                return True
            if c in _WHITESPACE:
                self.state = self.BEFORE_ATTRIBUTE_NAME
                return False
            if c == "/":
                self.state = self.SELF_CLOSING_START_TAG
                return False
            if c == ">":
                self._emit_current_tag()
                return False
            self.current_tag_name.append(c.translate(_ASCII_LOWER_TABLE))

    def _state_before_attribute_name(self):
        while True:
            c = self._get_char()
            if c is None:
                self._emit_error("eof-in-tag")
                self._emit_eof()
                return True
            if c in _WHITESPACE:
                continue
            if c == "/":
                self.state = self.SELF_CLOSING_START_TAG
                return False
            if c == ">":
                self._emit_current_tag()
                return False
            if c == "=":
                self._emit_error("unexpected-equals-sign-before-attribute-name")
                self._start_attribute()
                self.current_attr_name.append(c)
                self.state = self.ATTRIBUTE_NAME
                return False
            self._start_attribute()
            self._reconsume_current()
            self.state = self.ATTRIBUTE_NAME
            return False

    def _state_attribute_name(self):
        while True:
            if self._consume_run(_ATTR_NAME_TERMINATOR_PATTERN, self.current_attr_name, lower=True):
                continue
            c = self._get_char()
            if c is None:
                self._emit_error("eof-in-tag")
                self._emit_eof()
                return True
            if c in _WHITESPACE:
                self.state = self.AFTER_ATTRIBUTE_NAME
                return False
            if c == "/":
                self.state = self.SELF_CLOSING_START_TAG
                return False
            if c == "=":
                self.state = self.BEFORE_ATTRIBUTE_VALUE
                return False
            if c == ">":
                self._emit_current_tag()
                return False
            if c in ('"', "'", "<"):
                self._emit_error("unexpected-character-in-attribute-name")
            self.current_attr_name.append(c.translate(_ASCII_LOWER_TABLE))

    def _state_after_attribute_name(self):
        while True:
            c = self._get_char()
            if c is None:
                self._emit_error("eof-in-tag")
                self._emit_eof()
                return True
            if c in _WHITESPACE:
                continue
            if c == "/":
                self.state = self.SELF_CLOSING_START_TAG
                return False
            if c == "=":
                self.state = self.BEFORE_ATTRIBUTE_VALUE
                return False
            if c == ">":
                self._emit_current_tag()
                return False
            self._start_attribute()
            self._reconsume_current()
            self.state = self.ATTRIBUTE_NAME
            return False

    def _state_before_attribute_value(self):
        while True:
            c = self._get_char()
            if c is None:
                self._emit_error("eof-in-tag")
                self._emit_eof()
                return True
            if c in _WHITESPACE:
                continue
            if c == '"':
                self.state = self.ATTRIBUTE_VALUE_DOUBLE
                return False
            if c == "'":
                self.state = self.ATTRIBUTE_VALUE_SINGLE
                return False
            if c == ">":
                self._emit_error("missing-attribute-value")
                self._emit_current_tag()
                return False
            self._reconsume_current()
            self.state = self.ATTRIBUTE_VALUE_UNQUOTED
            return False

    def _state_attribute_value_quoted(self, quote, stop_pattern):
        while True:
            if self._consume_run(stop_pattern, self.current_attr_value):
                continue
            c = self._get_char()
            if c is None:
                self._emit_error("eof-in-tag")
                self._emit_eof()
                return True
            if c == quote:
                self.state = self.AFTER_ATTRIBUTE_VALUE_QUOTED
                return False
            if c == "&":
                self.current_attr_value_has_amp = True
            self.current_attr_value.append(c)

    def _state_attribute_value_unquoted(self):
        while True:
            if self._consume_run(_ATTR_VALUE_UNQUOTED_PATTERN, self.current_attr_value):
                continue
            c = self._get_char()
            if c is None:
                self._emit_error("eof-in-tag")
                self._emit_eof()
                return True
            if c in _WHITESPACE:
                self.state = self.BEFORE_ATTRIBUTE_NAME
                return False
            if c == ">":
                self._emit_current_tag()
                return False
            if c == "&":
                self.current_attr_value_has_amp = True
            elif c in ('"', "'", "<", "=", "`"):
                self._emit_error("unexpected-character-in-unquoted-attribute-value")
            self.current_attr_value.append(c)

    def _state_after_attribute_value_quoted(self):
        c = self._get_char()
        if c is None:
            self._emit_error("eof-in-tag")
            self._emit_eof()
            return True
        if c in _WHITESPACE:
            self.state = self.BEFORE_ATTRIBUTE_NAME
            return False
        if c == "/":
            self.state = self.SELF_CLOSING_START_TAG
            return False
        if c == ">":
            self._emit_current_tag()
            return False
        self._emit_error("missing-whitespace-between-attributes")
        self._reconsume_current()
        self.state = self.BEFORE_ATTRIBUTE_NAME
        return False

    def _state_self_closing_start_tag(self):
        c = self._get_char()
        if c is None:
            self._emit_error("eof-in-tag")
            self._emit_eof()
            return True
        if c == ">":
            self.current_tag_self_closing = True
            self._emit_current_tag()
            return False
        self._emit_error("unexpected-solidus-in-tag")
        self._reconsume_current()
        self.state = self.BEFORE_ATTRIBUTE_NAME
        return False

    def _state_markup_declaration_open(self):
        self.current_comment.clear()
        if self._consume_if("--"):
            self.state = self.COMMENT
            return False
        if self._consume_case_insensitive("DOCTYPE"):
            self.state = self.DOCTYPE
            return False
        if self._consume_if("[CDATA["):
            # CDATA is only meaningful in foreign content; here it is a bogus comment.
            self._emit_error("cdata-in-html-content")
            self.current_comment.append("[CDATA[")
            self.state = self.BOGUS_COMMENT
            return False
        self._emit_error("incorrectly-opened-comment")
        self.state = self.BOGUS_COMMENT
        return False

    def _state_comment(self):
        buffer = self.buffer
        pos = self.pos
        if buffer.startswith(">", pos) or buffer.startswith("->", pos):
            self._emit_error("abrupt-closing-of-empty-comment")
            self.pos = buffer.index(">", pos) + 1
            self._emit_comment()
            self.state = self.DATA
            return False

        end = buffer.find("--", pos)
        while end != -1:
            if buffer.startswith("-->", end):
                close = end + 3
                break
            if buffer.startswith("--!>", end):
                self._emit_error("incorrectly-closed-comment")
                close = end + 4
                break
            end = buffer.find("--", end + 1)
        if end == -1:
            self._emit_error("eof-in-comment")
            self.current_comment.append(buffer[pos:])
            self.pos = self.length
            self._emit_comment()
            self._emit_eof()
            return True
        self.current_comment.append(buffer[pos:end])
        self.pos = close
        self._emit_comment()
        self.state = self.DATA
        return False

    def _state_bogus_comment(self):
        buffer = self.buffer
        if self.reconsume:
            self.reconsume = False
            self.pos -= 1
        end = buffer.find(">", self.pos)
        if end == -1:
            self.current_comment.append(buffer[self.pos :])
            self.pos = self.length
            self._emit_comment()
            self._emit_eof()
            return True
        self.current_comment.append(buffer[self.pos : end])
        self.pos = end + 1
        self._emit_comment()
        self.state = self.DATA
        return False

    def _state_doctype(self):
        buffer = self.buffer
        end = buffer.find(">", self.pos)
        content = buffer[self.pos :] if end == -1 else buffer[self.pos : end]
        parts = content.split()
        name = parts[0].translate(_ASCII_LOWER_TABLE) if parts else None
        if name is None:
            self._emit_error("missing-doctype-name")
        self._emit_token(DoctypeToken(name))
        if end == -1:
            self._emit_error("eof-in-doctype")
            self.pos = self.length
            self._emit_eof()
            return True
        self.pos = end + 1
        self.state = self.DATA
        return False

    def _state_rawtext(self):
        buffer = self.buffer
        length = self.length
        name = self.rawtext_tag_name
        search = self.pos
        while True:
            lt_index = buffer.find("</", search)
            if lt_index == -1:
                if self.pos < length:
                    self.text_buffer.append(buffer[self.pos :])
                self.pos = length
                self._emit_eof()
                return True
            name_end = lt_index + 2 + len(name)
            candidate = buffer[lt_index + 2 : name_end]
            if candidate.translate(_ASCII_LOWER_TABLE) == name and (
                name_end >= length or buffer[name_end] in _WHITESPACE or buffer[name_end] in "/>"
            ):
                break
            search = lt_index + 1

        if lt_index > self.pos:
            self.text_buffer.append(buffer[self.pos : lt_index])
        self.rawtext_tag_name = None
        self._start_tag(Tag.END)
        self.pos = lt_index + 2
        self.state = self.TAG_NAME
        return False

    def _state_plaintext(self):
        if self.pos < self.length:
            self.text_buffer.append(self.buffer[self.pos :])
        self.pos = self.length
        self._emit_eof()
        return True

    # ---------------------
    # Low-level helpers
    # ---------------------

    def _get_char(self):
        if self.reconsume:
            self.reconsume = False
            return self.current_char
        if self.pos >= self.length:
            self.current_char = None
            return None
        c = self.buffer[self.pos]
        self.pos += 1
        self.current_char = c
        return c

    def _reconsume_current(self):
        self.reconsume = True

    def _consume_run(self, stop_pattern, target, lower=False):
        if self.reconsume:
            return False
        pos = self.pos
        if pos >= self.length:
            return False
        match = stop_pattern.search(self.buffer, pos)
        end = match.start() if match else self.length
        if end == pos:
            return False
        chunk = self.buffer[pos:end]
        target.append(chunk.translate(_ASCII_LOWER_TABLE) if lower else chunk)
        self.pos = end
        return True

    def _consume_if(self, literal):
        end = self.pos + len(literal)
        if self.buffer[self.pos : end] != literal:
            return False
        self.pos = end
        return True

    def _consume_case_insensitive(self, literal):
        end = self.pos + len(literal)
        if self.buffer[self.pos : end].lower() != literal.lower():
            return False
        self.pos = end
        return True

    def _start_tag(self, kind):
        self.current_tag_kind = kind
        self.current_tag_name.clear()
        self.current_tag_attrs = []
        self.current_attr_names = set()
        self.current_attr_name.clear()
        self.current_attr_value.clear()
        self.current_attr_value_has_amp = False
        self.current_tag_self_closing = False

    def _start_attribute(self):
        self._finish_attribute()
        self.current_attr_name.clear()
        self.current_attr_value.clear()
        self.current_attr_value_has_amp = False

    def _finish_attribute(self):
        if not self.current_attr_name:
            return
        name = "".join(self.current_attr_name)
        value = "".join(self.current_attr_value)
        if self.current_attr_value_has_amp:
            value = decode_entities_in_text(value, in_attribute=True)
        if name in self.current_attr_names:
            self._emit_error("duplicate-attribute")
        else:
            self.current_attr_names.add(name)
            self.current_tag_attrs.append((name, value))
        self.current_attr_name.clear()
        self.current_attr_value.clear()
        self.current_attr_value_has_amp = False

    def _emit_current_tag(self):
        self._finish_attribute()
        name = "".join(self.current_tag_name)
        kind = self.current_tag_kind
        if kind == Tag.END and (self.current_tag_attrs or self.current_tag_self_closing):
            self._emit_error("end-tag-with-attributes")
        tag = Tag(kind, name, self.current_tag_attrs, self.current_tag_self_closing)
        self.current_tag_attrs = []
        self.state = self.DATA
        if kind == Tag.START:
            if name in RAWTEXT_ELEMENTS:
                self.state = self.RAWTEXT
                self.rawtext_tag_name = name
            elif name == "plaintext":
                self.state = self.PLAINTEXT
        self._emit_token(tag)

    def _emit_comment(self):
        data = "".join(self.current_comment)
        self.current_comment.clear()
        self._emit_token(CommentToken(data))

    def _flush_text(self):
        if not self.text_buffer:
            return
        data = "".join(self.text_buffer)
        self.text_buffer.clear()
        if data:
            self._check_size(len(data))
            self.pending.append(CharacterTokens(data))

    def _emit_token(self, token):
        self._flush_text()
        if isinstance(token, Tag):
            self._check_size(len(token.name) + sum(len(k) + len(v) for k, v in token.attrs))
        elif isinstance(token, CommentToken):
            self._check_size(len(token.data))
        self.pending.append(token)

    def _emit_eof(self):
        self._flush_text()
        self.pending.append(EOFToken())

    def _check_size(self, size):
        max_buf = self.opts.max_buf
        if max_buf and size > max_buf:
            raise TokenizationError(self._error("max-buffer-exceeded", self.pos))

    def _error(self, code, pos, buffer=None):
        buffer = self.buffer if buffer is None else buffer
        line = buffer.count("\n", 0, pos) + 1
        column = pos - buffer.rfind("\n", 0, pos)
        return ParseError(code, line=line, column=column)

    def _emit_error(self, code, pos=None, buffer=None):
        if self.opts.exact_errors:
            self.errors.append(self._error(code, self.pos if pos is None else pos, buffer))
