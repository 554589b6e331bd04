from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from tagweave.config import CodegenConfig
from tagweave.extractor import Match, extract_regions
from tagweave.lexer import Token, TokenKind, tokenize
from tagweave.parser import CodeNode, Element, TextNode, parse, parse_markup
from tagweave.preprocessor import TransformResult, Transformation, preprocess, transform_markup
from tagweave.renderer import render


def _package_version() -> str:
    try:
        return version("tagweave")
    except PackageNotFoundError:
        # Running from a source checkout, or otherwise not installed.
        return "0.0.0"


__version__ = _package_version()

__all__ = [
    "CodeNode",
    "CodegenConfig",
    "Element",
    "Match",
    "TextNode",
    "Token",
    "TokenKind",
    "TransformResult",
    "Transformation",
    "__version__",
    "extract_regions",
    "parse",
    "parse_markup",
    "preprocess",
    "render",
    "tokenize",
    "transform_markup",
]
