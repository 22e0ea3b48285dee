"""Parser: converts the token stream into musical symbols."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from typing import TextIO

from kablature.errors import ParseError
from kablature.lexer import Lexer, Token, TokenKind
from kablature.symbols import (
    NOTE_LENGTHS,
    NOTE_NAMES,
    OCTAVE_LENGTH,
    QUARTER_NOTE,
    Chord,
    Duration,
    Note,
    Rest,
    Symbol,
)

logger = logging.getLogger(__name__)


def _error(message: str, token: Token | None = None) -> ParseError:
    if token is None:
        return ParseError(message)
    return ParseError(message, token.line, token.column)


class Parser:
    """
    Iterator over the symbols described by a token stream.

    A duration (digit plus optional dot) and the octave (``>``/``<``) are
    sticky: they apply to every following symbol until changed again.
    """

    def __init__(self, tokens: Iterable[Token]) -> None:
        self._tokens: Iterator[Token] = iter(tokens)
        self._peeked: Token | None = None
        self.duration = Duration(QUARTER_NOTE, dotted=False)
        self.octave = 0

    def __iter__(self) -> Iterator[Symbol]:
        return self

    def __next__(self) -> Symbol:
        symbol = self.next_symbol()
        if symbol is None:
            raise StopIteration
        return symbol

    # ------------------------------------------------------------------
    # Token buffer
    # ------------------------------------------------------------------

    def _next(self) -> Token | None:
        if self._peeked is not None:
            token, self._peeked = self._peeked, None
            return token
        return next(self._tokens, None)

    def _peek(self) -> Token | None:
        if self._peeked is None:
            self._peeked = next(self._tokens, None)
        return self._peeked

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    def _scan_pitch(self, token: Token) -> int:
        """Resolve a note letter, plus an optional raise mark, to a pitch."""
        index = NOTE_NAMES.find(token.text.lower())
        if len(token.text) != 1 or index < 0:
            raise _error(f"Note '{token.text}' doesn't exist.", token)

        pitch = index + self.octave * OCTAVE_LENGTH

        following = self._peek()
        if following is not None and following.kind is TokenKind.OCTAVE_RAISE_MARK:
            self._next()
            pitch += OCTAVE_LENGTH

        return pitch

    def _scan_chord(self, opening: Token) -> Chord:
        pitches: list[int] = []

        while True:
            token = self._next()
            if token is None:
                raise _error("Chord opened but never closed.", opening)

            if token.kind is TokenKind.PAREN_CLOSE:
                if not pitches:
                    raise _error("Empty chord.", opening)
                return Chord(duration=self.duration, pitches=tuple(pitches))
            if token.kind is TokenKind.NOTE_LETTER:
                pitches.append(self._scan_pitch(token))
            else:
                raise _error(f"Unexpected '{token.text}' inside chord.", token)

    def _take_length(self, token: Token) -> None:
        if not token.text.isdigit() or int(token.text) not in NOTE_LENGTHS:
            raise _error(f"Invalid note length {token.text}.", token)

        following = self._peek()
        dotted = following is not None and following.kind is TokenKind.DOT
        if dotted:
            self._next()

        self.duration = Duration(int(token.text), dotted=dotted)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def next_symbol(self) -> Symbol | None:
        """
        Return the next symbol, or None once the tokens are exhausted.

        Raises:
            ParseError: On an invalid note, length, octave shift or chord,
                or on any token that cannot start a symbol.
            LexError: Propagated from the underlying lexer.
        """
        while True:
            token = self._next()
            if token is None:
                return None

            kind = token.kind
            if kind is TokenKind.NOTE_LETTER:
                return Note(duration=self.duration, pitch=self._scan_pitch(token))
            if kind is TokenKind.PAREN_OPEN:
                return self._scan_chord(token)
            if kind is TokenKind.REST_MARK:
                return Rest(duration=self.duration)
            if kind is TokenKind.DURATION_DIGIT:
                self._take_length(token)
            elif kind is TokenKind.OCTAVE_UP:
                self.octave += 1
            elif kind is TokenKind.OCTAVE_DOWN:
                if self.octave == 0:
                    raise _error(f"Unexpected '{token.text}'; can't downshift from octave 0.", token)
                self.octave -= 1
            else:
                raise _error(f"Unexpected '{token.text}'.", token)


def parse(source: str | TextIO) -> list[Symbol]:
    """Lex and parse a whole notation source."""
    symbols = list(Parser(Lexer(source)))
    logger.debug("Parsed %d symbol(s).", len(symbols))
    return symbols
