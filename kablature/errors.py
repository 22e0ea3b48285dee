"""Exception hierarchy shared by the lexer, parser and layout engine."""

from __future__ import annotations


class KablatureError(ValueError):
    """Base class for every fatal error raised while rendering a score."""


class _PositionedError(KablatureError):
    """An error pointing at a place in the notation source."""

    def __init__(self, message: str, line: int | None = None, column: int | None = None) -> None:
        self.cause = message
        self.line = line
        self.column = column
        if line is not None and column is not None:
            message = f"line {line}, column {column}: {message}"
        super().__init__(message)


class LexError(_PositionedError):
    """An unrecognised character outside comments and whitespace."""


class ParseError(_PositionedError):
    """A token sequence that does not form a valid symbol."""


class LayoutError(KablatureError):
    """Symbols that cannot be placed on the tablature."""
