"""Locate parenthesized markup regions inside opaque host-language text.

A region starts at a `(` whose next non-whitespace character is `<` and ends
at the `)` that balances it. Nothing else about the host text is inspected.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger("tagweave.extractor")

_QUOTES = ('"', "'")


@dataclass(frozen=True, slots=True)
class Match:
    """A located markup region.

    `start` is the offset of the opening `(` and `end` the offset of the
    balancing `)`, both inclusive, in the text the match was extracted from.
    """

    full_expression: str
    content: str
    start: int
    end: int


def find_closing_paren(text: str, open_pos: int) -> int:
    """Return the index of the `)` balancing `text[open_pos]`, or -1."""

    depth = 1
    i = open_pos + 1
    quote: str | None = None

    while i < len(text) and depth > 0:
        c = text[i]

        if quote is not None:
            if c == quote and text[i - 1] != "\\":
                quote = None
            i += 1
            continue

        if c in _QUOTES:
            quote = c
        elif c == "(":
            depth += 1
        elif c == ")":
            depth -= 1
        i += 1

    return i - 1 if depth == 0 else -1


def extract_regions(text: str) -> list[Match]:
    """Return the ordered, non-overlapping markup regions found in `text`."""

    results: list[Match] = []
    pos = 0

    while pos < len(text):
        open_idx = text.find("(", pos)
        if open_idx == -1:
            break

        i = open_idx + 1
        while i < len(text) and text[i].isspace():
            i += 1

        if i < len(text) and text[i] == "<":
            close_idx = find_closing_paren(text, open_idx)
            if close_idx != -1:
                content_end = close_idx
                while content_end > i and text[content_end - 1].isspace():
                    content_end -= 1

                results.append(
                    Match(
                        full_expression=text[open_idx : close_idx + 1],
                        content=text[i:content_end],
                        start=open_idx,
                        end=close_idx,
                    )
                )
                pos = close_idx + 1
                continue

            logger.debug("Skipping unbalanced markup region at offset %d", open_idx)

        pos = open_idx + 1

    return results
