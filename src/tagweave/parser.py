"""Recursive-descent parser from a token list to an element tree.

Grammar (informal):

    element    -> "<" TAG_NAME attribute* ( "/>" | ">" child* "</" TAG_NAME ">" )
    attribute  -> PROP_NAME [ "=" ] ( STRING_LITERAL | CODE_BLOCK )
    child      -> TEXT_CONTENT | CODE_BLOCK | element

The closing tag must name the element it closes.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from tagweave.errors import MarkupSyntaxError
from tagweave.lexer import Token, TokenKind, tokenize


@dataclass(frozen=True, slots=True)
class TextNode:
    text: str


@dataclass(frozen=True, slots=True)
class CodeNode:
    code: str


@dataclass(slots=True)
class Element:
    tag_name: str
    string_props: dict[str, str] = field(default_factory=dict)
    code_props: dict[str, str] = field(default_factory=dict)
    children: list[ChildNode] = field(default_factory=list)


ChildNode = TextNode | Element | CodeNode


def strip_braces(value: str) -> str:
    """Strip one outer `{`/`}` pair (if present) and surrounding whitespace."""

    code = value.strip()
    if code.startswith("{") and code.endswith("}"):
        code = code[1:-1]
    return code.strip()


class MarkupParser:
    """Parses one region's tokens; `pos` is shared by every nested element."""

    def __init__(self, tokens: list[Token]) -> None:
        self.tokens = tokens
        self.pos = 0

    def _peek(self, offset: int = 0) -> Token | None:
        idx = self.pos + offset
        if idx < len(self.tokens):
            return self.tokens[idx]
        return None

    def _check(self, kind: TokenKind, offset: int = 0) -> bool:
        tok = self._peek(offset)
        return tok is not None and tok.kind is kind

    def _advance(self) -> Token:
        tok = self.tokens[self.pos]
        self.pos += 1
        return tok

    def _end_position(self) -> int | None:
        if not self.tokens:
            return None
        return self.tokens[-1].position

    def parse(self) -> Element:
        """Parse a single root element and require that nothing follows it."""

        root = self.parse_element()
        extra = self._peek()
        if extra is not None:
            raise MarkupSyntaxError(
                f"unexpected content after root element <{root.tag_name}>: {extra.value!r}",
                position=extra.position,
            )
        return root

    def parse_element(self) -> Element:
        start = self._peek()
        if start is None or start.kind is not TokenKind.OPEN_TAG:
            raise MarkupSyntaxError(
                "expected element start",
                position=start.position if start is not None else self._end_position(),
            )
        self._advance()

        name = self._peek()
        if name is None or name.kind is not TokenKind.TAG_NAME:
            raise MarkupSyntaxError("expected tag name after <", position=start.position)
        self._advance()

        element = Element(tag_name=name.value)
        self._parse_attributes(element)

        if self._check(TokenKind.SELF_CLOSING_TAG):
            self._advance()
            return element

        if not self._check(TokenKind.CLOSE_TAG):
            raise MarkupSyntaxError(
                f"unterminated start tag <{element.tag_name}>", position=start.position
            )
        self._advance()

        self._parse_children(element, start)
        return element

    def _parse_attributes(self, element: Element) -> None:
        while True:
            tok = self._peek()
            if tok is None or tok.kind in (TokenKind.CLOSE_TAG, TokenKind.SELF_CLOSING_TAG):
                return
            if tok.kind is not TokenKind.PROP_NAME:
                self._advance()
                continue

            prop = self._advance().value
            if self._check(TokenKind.EQUALS):
                self._advance()

            value = self._peek()
            if value is None:
                continue
            if value.kind is TokenKind.STRING_LITERAL:
                element.string_props[prop] = value.value
                self._advance()
            elif value.kind is TokenKind.CODE_BLOCK:
                element.code_props[prop] = strip_braces(value.value)
                self._advance()

    def _parse_children(self, element: Element, start: Token) -> None:
        while True:
            tok = self._peek()
            if tok is None:
                raise MarkupSyntaxError(
                    f"unclosed element <{element.tag_name}>", position=start.position
                )

            if tok.kind is TokenKind.CLOSING_OPEN_TAG:
                self._parse_closing_tag(element, tok)
                return

            if tok.kind is TokenKind.TEXT_CONTENT:
                element.children.append(TextNode(tok.value))
                self._advance()
            elif tok.kind is TokenKind.CODE_BLOCK:
                code = strip_braces(tok.value)
                if code:
                    element.children.append(CodeNode(code))
                self._advance()
            elif tok.kind is TokenKind.OPEN_TAG:
                element.children.append(self.parse_element())
            else:
                self._advance()

    def _parse_closing_tag(self, element: Element, tok: Token) -> None:
        name = self._peek(1)
        if name is None or name.kind is not TokenKind.TAG_NAME:
            raise MarkupSyntaxError(
                f"expected tag name in closing tag for <{element.tag_name}>",
                position=tok.position,
            )
        if name.value != element.tag_name:
            raise MarkupSyntaxError(
                f"mismatched closing tag </{name.value}>, expected </{element.tag_name}>",
                position=tok.position,
            )
        if not self._check(TokenKind.CLOSE_TAG, 2):
            raise MarkupSyntaxError(
                f"unterminated closing tag </{element.tag_name}", position=tok.position
            )
        self.pos += 3


def parse(tokens: list[Token]) -> Element:
    """Parse a complete token list into its root element."""

    return MarkupParser(tokens).parse()


def parse_markup(text: str) -> Element:
    """Tokenize and parse one region's markup."""

    return parse(tokenize(text))
