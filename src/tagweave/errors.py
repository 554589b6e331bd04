"""Tagweave exception hierarchy.

Keep this module small and dependency-free: it is imported broadly across the
project and by tests.
"""


class TagweaveError(Exception):
    """Base exception for all Tagweave errors."""


class TagweaveConfigError(TagweaveError):
    """Raised for invalid user configuration or an unlocatable project root."""


class TagweaveDiscoveryError(TagweaveError):
    """Raised when source discovery fails."""


class MarkupError(TagweaveError):
    """Base for failures local to one markup region.

    These never abort a run: the preprocessor records them per region and
    leaves the region's original text in place.
    """

    def __init__(self, message: str, *, position: int | None = None) -> None:
        self.message = message
        self.position = position
        if position is None:
            super().__init__(message)
        else:
            super().__init__(f"{message} (at offset {position})")


class MarkupLexError(MarkupError):
    """Raised for an unterminated string literal or code block."""


class MarkupSyntaxError(MarkupError):
    """Raised for a structurally invalid element (missing or mismatched tags)."""


class MarkupRenderError(MarkupError):
    """Raised when a parsed element cannot be rendered."""
