"""Lexer: turns notation text into a flat stream of tokens."""

from __future__ import annotations

import io
import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Final, TextIO

from kablature.errors import LexError
from kablature.symbols import NOTE_NAMES

logger = logging.getLogger(__name__)

COMMENT_MARKER: Final[str] = "#"
REST_MARKER: Final[str] = "r"


class TokenKind(Enum):
    NOTE_LETTER = "NOTE_LETTER"
    DURATION_DIGIT = "DURATION_DIGIT"
    PAREN_OPEN = "PAREN_OPEN"
    PAREN_CLOSE = "PAREN_CLOSE"
    OCTAVE_UP = "OCTAVE_UP"
    OCTAVE_DOWN = "OCTAVE_DOWN"
    OCTAVE_RAISE_MARK = "OCTAVE_RAISE_MARK"
    DOT = "DOT"
    REST_MARK = "REST_MARK"


_SINGLE_CHAR_TOKENS: Final[dict[str, TokenKind]] = {
    "(": TokenKind.PAREN_OPEN,
    ")": TokenKind.PAREN_CLOSE,
    ">": TokenKind.OCTAVE_UP,
    "<": TokenKind.OCTAVE_DOWN,
    "'": TokenKind.OCTAVE_RAISE_MARK,
    ".": TokenKind.DOT,
    REST_MARKER: TokenKind.REST_MARK,
}


@dataclass(frozen=True)
class Token:
    """
    A single lexed token.

    ``line`` and ``column`` are 1-based and only used for error messages;
    they do not take part in equality.
    """

    kind: TokenKind
    text: str
    line: int | None = field(default=None, compare=False)
    column: int | None = field(default=None, compare=False)

    def __str__(self) -> str:
        return f'<{self.kind.value} "{self.text}">'


def is_note_letter(char: str) -> bool:
    """Return True if the character names one of the seven diatonic notes."""
    return len(char) == 1 and char.lower() in NOTE_NAMES


class Lexer:
    """
    Iterator over the tokens of a notation source.

    The source may be a string or any readable text stream. Whitespace and
    ``#`` comments (up to the end of the line) never produce tokens.
    """

    def __init__(self, source: str | TextIO) -> None:
        self._stream: TextIO = io.StringIO(source) if isinstance(source, str) else source
        self._line = 1
        self._column = 0

    def __iter__(self) -> Iterator[Token]:
        return self

    def __next__(self) -> Token:
        token = self.next_token()
        if token is None:
            raise StopIteration
        return token

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _read(self) -> tuple[str, int, int] | None:
        """Read one character together with its line and column."""
        char = self._stream.read(1)
        if not char:
            return None

        if char == "\n":
            self._line += 1
            self._column = 0
            return char, self._line - 1, 0
        self._column += 1
        return char, self._line, self._column

    def _skip_line(self) -> None:
        while True:
            item = self._read()
            if item is None or item[0] == "\n":
                return

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def next_token(self) -> Token | None:
        """
        Return the next token, or None once the input is exhausted.

        Raises:
            LexError: On any character that cannot start a token.
        """
        while True:
            item = self._read()
            if item is None:
                return None

            char, line, column = item
            if char.isspace():
                continue
            if char == COMMENT_MARKER:
                self._skip_line()
                continue
            break

        kind = _SINGLE_CHAR_TOKENS.get(char)
        if kind is None:
            if is_note_letter(char):
                kind = TokenKind.NOTE_LETTER
            elif char in "0123456789":
                kind = TokenKind.DURATION_DIGIT
            else:
                raise LexError(f"Unexpected character '{char}'.", line, column)

        return Token(kind=kind, text=char, line=line, column=column)


def tokenize(source: str | TextIO) -> list[Token]:
    """Lex a whole source into a list of tokens."""
    tokens = list(Lexer(source))
    logger.debug("Lexed %d token(s).", len(tokens))
    return tokens


def detokenize(tokens: Iterable[Token]) -> str:
    """Serialise tokens back to notation text that lexes to the same tokens."""
    return " ".join(token.text for token in tokens)
