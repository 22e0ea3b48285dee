"""Data models for the musical symbols produced by the parser."""

from __future__ import annotations

from dataclasses import dataclass
from fractions import Fraction
from typing import Final, Union

NOTE_NAMES: Final[str] = "cdefgab"
OCTAVE_LENGTH: Final[int] = len(NOTE_NAMES)

# Base lengths, counted in eighth beats
EIGHTH_NOTE: Final[int] = 1
QUARTER_NOTE: Final[int] = 2
HALF_NOTE: Final[int] = 4
WHOLE_NOTE: Final[int] = 8

NOTE_LENGTHS: Final[tuple[int, ...]] = (EIGHTH_NOTE, QUARTER_NOTE, HALF_NOTE, WHOLE_NOTE)


@dataclass(frozen=True)
class Duration:
    """A base length in eighth beats plus an optional dot (x1.5)."""

    length: int = QUARTER_NOTE
    dotted: bool = False

    def __post_init__(self) -> None:
        if self.length not in NOTE_LENGTHS:
            raise ValueError(f"Invalid note length {self.length}.")

    @property
    def beats(self) -> Fraction:
        """Effective length in eighth beats, dot accounted for."""
        if self.dotted:
            return Fraction(self.length) * Fraction(3, 2)
        return Fraction(self.length)


@dataclass(frozen=True)
class Note:
    """One single note."""

    duration: Duration
    pitch: int  # 0 = C, 4 = G, 7 = C one octave up, etc.

    def __str__(self) -> str:
        return f"<NOTE {self.duration.length} {self.duration.dotted} {self.pitch}>"


@dataclass(frozen=True)
class Chord:
    """A series of notes played at once."""

    duration: Duration
    pitches: tuple[int, ...]

    def __str__(self) -> str:
        return f"<CHORD {self.duration.length} {self.duration.dotted} {list(self.pitches)}>"


@dataclass(frozen=True)
class Rest:
    """A single rest."""

    duration: Duration

    def __str__(self) -> str:
        return f"<REST {self.duration.length} {self.duration.dotted}>"


Symbol = Union[Note, Chord, Rest]


def symbol_beats(symbol: Symbol) -> Fraction:
    """Return the effective length of a symbol in eighth beats."""
    return symbol.duration.beats
