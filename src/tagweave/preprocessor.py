"""Fixpoint driver: extract regions, transform each one, splice, repeat.

A pass may expose regions that were hidden inside an outer region that failed
or was only partially rewritten, so passes repeat until one finds no region
or rewrites none.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field

from tagweave.config import CodegenConfig
from tagweave.extractor import Match, extract_regions
from tagweave.lexer import tokenize
from tagweave.parser import parse
from tagweave.renderer import render

logger = logging.getLogger("tagweave.preprocessor")


@dataclass(frozen=True, slots=True)
class Transformation:
    """Outcome for one region: either `generated` or `error` is set."""

    original: str
    generated: str | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class TransformResult:
    original_code: str
    transformed_code: str = ""
    transformations: list[Transformation] = field(default_factory=list)
    passes: int = 0

    @property
    def succeeded(self) -> list[Transformation]:
        return [t for t in self.transformations if t.success]

    @property
    def failed(self) -> list[Transformation]:
        return [t for t in self.transformations if not t.success]


def transform_markup(content: str, config: CodegenConfig) -> str:
    """Lex, parse and render one region's markup."""

    return render(parse(tokenize(content)), config)


def _splice(text: str, replacements: list[tuple[Match, str]]) -> str:
    # Offsets are from the pre-splice snapshot; shift by earlier length deltas.
    buf = text
    offset = 0
    for match, generated in replacements:
        start = match.start + offset
        end = match.end + offset + 1
        buf = buf[:start] + generated + buf[end:]
        offset += len(generated) - (end - start)
    return buf


def preprocess(
    source: str,
    config: CodegenConfig | None = None,
    matches: Sequence[Match] | None = None,
) -> TransformResult:
    """Rewrite every reachable markup region in `source`.

    `matches`, when given, replaces extraction on the first pass only; they
    must have been extracted from `source` itself. Failures are recorded per
    region in the result and never raised; a region that fails again on a
    later pass is reported once.
    """

    cfg = config if config is not None else CodegenConfig()
    result = TransformResult(original_code=source)
    current = source
    pending: Sequence[Match] | None = matches
    reported_failures: Counter[str] = Counter()

    while True:
        found = list(pending) if pending is not None else extract_regions(current)
        pending = None
        if not found:
            break

        result.passes += 1
        replacements: list[tuple[Match, str]] = []
        pass_failures: Counter[str] = Counter()
        for match in sorted(found, key=lambda m: m.start):
            try:
                generated = transform_markup(match.content, cfg)
            except Exception as e:
                original = match.full_expression
                pass_failures[original] += 1
                if pass_failures[original] > reported_failures[original]:
                    reported_failures[original] += 1
                    logger.info("Failed to transform %r: %s", original, e)
                    result.transformations.append(
                        Transformation(original=original, error=str(e) or repr(e))
                    )
                continue

            replacements.append((match, generated))
            result.transformations.append(
                Transformation(original=match.full_expression, generated=generated)
            )

        logger.debug(
            "Pass %d: %d region(s), %d rewritten",
            result.passes,
            len(found),
            len(replacements),
        )
        if not replacements:
            break
        current = _splice(current, replacements)

    result.transformed_code = current
    return result
