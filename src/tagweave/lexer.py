"""Tokenizer for the markup inside one region.

The lexer is context sensitive: an identifier is a tag name right after `<`
or `</`, a prop name inside a tag's attribute list, and the start of a text
run anywhere else.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from tagweave.errors import MarkupLexError

logger = logging.getLogger("tagweave.lexer")

_QUOTES = ('"', "'")


class TokenKind(enum.Enum):
    OPEN_TAG = "open_tag"
    CLOSING_OPEN_TAG = "closing_open_tag"
    CLOSE_TAG = "close_tag"
    SELF_CLOSING_TAG = "self_closing_tag"
    TAG_NAME = "tag_name"
    PROP_NAME = "prop_name"
    EQUALS = "equals"
    STRING_LITERAL = "string_literal"
    CODE_BLOCK = "code_block"
    TEXT_CONTENT = "text_content"


@dataclass(frozen=True, slots=True)
class Token:
    kind: TokenKind
    value: str
    position: int = 0

    def __repr__(self) -> str:
        return f"Token({self.kind.name}, {self.value!r}, pos={self.position})"


def _is_ident_start(c: str) -> bool:
    return c.isalpha() or c == "_"


def _is_ident_char(c: str) -> bool:
    return c.isalnum() or c in ("_", "-")


def read_identifier(text: str, start: int) -> int:
    """Return the end offset of the identifier starting at `start`."""

    i = start
    while i < len(text) and _is_ident_char(text[i]):
        i += 1
    return i


def read_string(text: str, start: int) -> int:
    """Return the offset just past the string literal opening at `start`.

    A backslash escapes the following character. Raises `MarkupLexError` when
    the closing quote is missing.
    """

    quote = text[start]
    i = start + 1
    while i < len(text):
        c = text[i]
        if c == "\\":
            i += 2
            continue
        if c == quote:
            return i + 1
        i += 1
    raise MarkupLexError(f"unterminated string literal {text[start:]!r}", position=start)


def read_code_block(text: str, start: int) -> int:
    """Return the offset just past the `{...}` block opening at `start`.

    Braces inside quoted substrings do not count toward nesting. Raises
    `MarkupLexError` when the block never closes.
    """

    depth = 0
    i = start
    quote: str | None = None

    while i < len(text):
        c = text[i]

        if quote is not None:
            if c == "\\":
                i += 2
                continue
            if c == quote:
                quote = None
            i += 1
            continue

        if c in _QUOTES:
            quote = c
        elif c == "{":
            depth += 1
        elif c == "}":
            depth -= 1
            if depth == 0:
                return i + 1
        i += 1

    raise MarkupLexError(f"unterminated code block {text[start:]!r}", position=start)


def _read_text(text: str, start: int) -> int:
    i = start
    while i < len(text) and text[i] not in ("<", "{"):
        i += 1
    return i


class MarkupLexer:
    """Turns a region's markup into a flat token list."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0
        self.tokens: list[Token] = []
        self.expect_tag_name = False
        self.in_attributes = False

    def _emit(self, kind: TokenKind, value: str, position: int) -> None:
        self.tokens.append(Token(kind, value, position))

    def tokenize(self) -> list[Token]:
        text = self.text

        while self.pos < len(text):
            c = text[self.pos]
            start = self.pos

            if c.isspace():
                self.pos += 1
            elif c == "<":
                if text.startswith("</", start):
                    self._emit(TokenKind.CLOSING_OPEN_TAG, "</", start)
                    self.pos += 2
                else:
                    self._emit(TokenKind.OPEN_TAG, "<", start)
                    self.pos += 1
                self.expect_tag_name = True
            elif c == ">":
                self._emit(TokenKind.CLOSE_TAG, ">", start)
                self.pos += 1
                self.expect_tag_name = False
                self.in_attributes = False
            elif c == "/" and text.startswith("/>", start):
                self._emit(TokenKind.SELF_CLOSING_TAG, "/>", start)
                self.pos += 2
                self.expect_tag_name = False
                self.in_attributes = False
            elif c == "=":
                self._emit(TokenKind.EQUALS, "=", start)
                self.pos += 1
            elif c in _QUOTES:
                self.pos = read_string(text, start)
                self._emit(TokenKind.STRING_LITERAL, text[start : self.pos], start)
            elif c == "{":
                self.pos = read_code_block(text, start)
                self._emit(TokenKind.CODE_BLOCK, text[start : self.pos], start)
            elif _is_ident_start(c) and (self.expect_tag_name or self.in_attributes):
                self.pos = read_identifier(text, start)
                name = text[start : self.pos]
                if self.expect_tag_name:
                    self._emit(TokenKind.TAG_NAME, name, start)
                    self.expect_tag_name = False
                    self.in_attributes = True
                else:
                    self._emit(TokenKind.PROP_NAME, name, start)
            elif self.in_attributes:
                logger.debug("Skipping stray %r inside tag at offset %d", c, start)
                self.pos += 1
            else:
                self.pos = _read_text(text, start)
                chunk = text[start : self.pos].strip()
                if chunk:
                    self._emit(TokenKind.TEXT_CONTENT, chunk, start)

        return self.tokens


def tokenize(text: str) -> list[Token]:
    """Tokenize one region's markup (the text starting at its `<`)."""

    return MarkupLexer(text).tokenize()
