"""
Layout engine: places symbols on paginated tablature.

The tablature runs bottom to top. Each page is a column of 17 vertical
lanes, one per diatonic step, with middle C on the centre line. Pages are
laid out left to right and every page holds a fixed number of measures.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass
from fractions import Fraction
from typing import Final

from kablature.errors import LayoutError
from kablature.surfaces import DrawingSurface, Number
from kablature.symbols import (
    EIGHTH_NOTE,
    HALF_NOTE,
    QUARTER_NOTE,
    WHOLE_NOTE,
    Chord,
    Duration,
    Note,
    Rest,
    Symbol,
    symbol_beats,
)

logger = logging.getLogger(__name__)

# ── Geometry ─────────────────────────────────────────────────────────────────
TAB_NOTES: Final[str] = "DBGECAFDCEGBDFACE"
NUM_NOTES: Final[int] = len(TAB_NOTES)
HALF_NOTES: Final[int] = NUM_NOTES // 2

TABNOTE_OFFSET_Y: Final[int] = 5  # Extra lane length per step away from the centre
TABNOTE_WIDTH: Final[int] = 15
TABNOTE_COLOR: Final[str] = "white"
TABNOTE_MARKED: Final[str] = "salmon"

TAB_WIDTH: Final[int] = TABNOTE_WIDTH * NUM_NOTES
TAB_MARGIN_X: Final[int] = 50
TAB_MARGIN_Y: Final[int] = 10

MEASURE_THICKNESS: Final[int] = 3
FONT_SIZE: Final[int] = 10
NOTE_RADIUS: Final[int] = 4
SYMBOL_HEIGHT: Final[int] = TABNOTE_WIDTH  # Vertical space of one eighth beat

TAB_CENTER: Final[int] = HALF_NOTES * TABNOTE_WIDTH + MEASURE_THICKNESS // 2
STEM_X: Final[int] = -20  # Stems start left of the lanes
TAPER_WIDTH: Final[int] = 5

# Pitch held by each lane, left to right
PITCH_LANES: Final[tuple[int, ...]] = (15, 13, 11, 9, 7, 5, 3, 1, 0, 2, 4, 6, 8, 10, 12, 14, 16)

# ── Styles ───────────────────────────────────────────────────────────────────
THIN_STYLE: Final[str] = "stroke-width:1;stroke:black"
MEASURE_STYLE: Final[str] = f"stroke-width:{MEASURE_THICKNESS};stroke:black"
TEXT_STYLE: Final[str] = f"font-size:{FONT_SIZE};fill:black"
REST_STROKE_STYLE: Final[str] = "stroke-width:2;stroke:black;fill:none"
FILL_STYLE: Final[str] = "fill:black"


@dataclass
class LayoutConfig:
    """Measure arithmetic and pagination settings."""

    beats_per_measure: int = 8
    measures_per_page: int = 7

    def __post_init__(self) -> None:
        if self.beats_per_measure <= 0:
            raise ValueError(f"beats_per_measure must be positive, got {self.beats_per_measure}.")
        if self.measures_per_page <= 0:
            raise ValueError(f"measures_per_page must be positive, got {self.measures_per_page}.")


def count_measures(symbols: Iterable[Symbol], config: LayoutConfig) -> int:
    """Count the measures needed to fit all the given symbols."""
    eighth_beats = sum((symbol_beats(sym) for sym in symbols), Fraction(0))
    return math.ceil(eighth_beats / config.beats_per_measure)


def find_note_position(pitch: int) -> int:
    """
    Return the x position of the lane holding a pitch.

    Raises:
        LayoutError: If the pitch is outside the tablature's range.
    """
    try:
        index = PITCH_LANES.index(pitch)
    except ValueError:
        raise LayoutError(f"Pitch {pitch} out of range.") from None

    return math.ceil((index + 0.5) * TABNOTE_WIDTH)


class TablatureLayout:
    """
    Stateful placement of symbols onto a drawing surface.

    ``total_measures`` must be known up front so every page, including a
    shorter last one, can be sized exactly.

    Beaming: a single eighth note stays pending until the next symbol. If
    that symbol is another single eighth note the two are joined by a beam;
    anything else (or a measure boundary, or the end of the score) turns
    the pending note into a lonely taper.
    """

    def __init__(
        self,
        surface: DrawingSurface,
        total_measures: int,
        config: LayoutConfig | None = None,
    ) -> None:
        self.surface = surface
        self.config = config or LayoutConfig()
        self.total_measures = total_measures

        self.page = 0
        self.page_started = False
        self.measures_left = 0
        self.measure = 0
        self.measure_beats = Fraction(0)
        self.current_y: Number = 0
        self.pending_eighth: Number | None = None

        width = self.total_pages * TAB_WIDTH + (self.total_pages + 1) * TAB_MARGIN_X
        height = self.max_page_height() + TAB_MARGIN_Y * 2 + HALF_NOTES * TABNOTE_OFFSET_Y + FONT_SIZE

        logger.debug(
            "Laying out %d measure(s) on %d page(s), canvas %dx%d.",
            total_measures,
            self.total_pages,
            width,
            height,
        )
        surface.start(width, height)
        surface.rect(0, 0, width, height, "fill:white")

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_measures / self.config.measures_per_page)

    def page_height(self, measures: int, with_end_symbol: bool) -> int:
        """Return the height of a page holding the given number of measures."""
        result = (self.config.beats_per_measure + 1) * measures * SYMBOL_HEIGHT
        if with_end_symbol:
            result += SYMBOL_HEIGHT
        return result

    def max_page_height(self) -> int:
        return self.page_height(self.config.measures_per_page, True)

    # ------------------------------------------------------------------
    # Pages and measures
    # ------------------------------------------------------------------

    def _draw_note_space(self, page_height: int, lane: int, offset_y: int, marked: bool) -> None:
        """Draw the space for one lane across the entire page."""
        x = lane * TABNOTE_WIDTH
        rect_height = page_height + offset_y * TABNOTE_OFFSET_Y
        fill = TABNOTE_MARKED if marked else TABNOTE_COLOR

        self.surface.rect(x, 0, TABNOTE_WIDTH, rect_height, f"{THIN_STYLE};fill:{fill}")
        self.surface.text(
            x + TABNOTE_WIDTH // 2,
            rect_height + FONT_SIZE,
            TAB_NOTES[lane],
            f"{TEXT_STYLE};text-anchor:middle",
        )

    def _new_page(self) -> None:
        if self.page_started:
            self.surface.end_group()

        remaining = self.total_measures - self.config.measures_per_page * self.page
        if remaining <= 0:
            raise LayoutError(f"Score holds more than the {self.total_measures} measure(s) counted.")
        last_page = remaining <= self.config.measures_per_page
        self.measures_left = min(remaining, self.config.measures_per_page)
        self.page += 1

        height = self.page_height(self.measures_left, last_page)
        offset_x = self.page * TAB_MARGIN_X + (self.page - 1) * TAB_WIDTH
        offset_y = TAB_MARGIN_Y + self.max_page_height() - height
        logger.debug("Starting page %d with %d measure(s).", self.page, self.measures_left)

        self.surface.begin_group(offset_x, offset_y)

        for lane in range(NUM_NOTES):
            # Lanes grow longer towards the centre
            offset = lane if lane < HALF_NOTES else NUM_NOTES - lane - 1
            self._draw_note_space(height, lane, offset, (lane + 1) % 3 == 0)

        line_height = height + HALF_NOTES * TABNOTE_OFFSET_Y
        self.surface.line(TAB_CENTER, 0, TAB_CENTER, line_height, MEASURE_STYLE)

        self.current_y = height
        self.page_started = True

    def _add_measure(self) -> None:
        bar_y = self.current_y - MEASURE_THICKNESS // 2
        self.measure += 1

        self.surface.line(0, bar_y, TAB_WIDTH, bar_y, MEASURE_STYLE)
        self.surface.text(
            TAB_WIDTH + 2,
            bar_y,
            str(self.measure),
            f"{TEXT_STYLE};dominant-baseline:central",
        )

        self.measures_left -= 1
        self.measure_beats = Fraction(0)
        self.current_y -= SYMBOL_HEIGHT

    # ------------------------------------------------------------------
    # Stems, beams and tapers
    # ------------------------------------------------------------------

    def _draw_taper(self, y: Number) -> None:
        stem_y = y - NOTE_RADIUS
        self.surface.line(STEM_X, stem_y, STEM_X + TAPER_WIDTH, stem_y - TAPER_WIDTH, THIN_STYLE)

    def _flush_pending_eighth(self) -> None:
        """Draw the pending eighth note, if any, as a lonely taper."""
        if self.pending_eighth is not None:
            self._draw_taper(self.pending_eighth)
            self.pending_eighth = None

    def _draw_stem(self, note_x: Number, length: int) -> None:
        if length == WHOLE_NOTE:
            return
        stem_y = self.current_y - NOTE_RADIUS
        self.surface.line(STEM_X, stem_y, note_x, stem_y, THIN_STYLE)

    def _draw_pitch(self, pitch: int, duration: Duration) -> int:
        """Draw a note head without any stem or taper and return its x position."""
        note_x = find_note_position(pitch)
        hollow = duration.length in (HALF_NOTE, WHOLE_NOTE)
        fill = "white" if hollow else "black"

        self.surface.circle(note_x, self.current_y, NOTE_RADIUS, f"{THIN_STYLE};fill:{fill}")
        if duration.dotted:
            self.surface.circle(
                note_x + NOTE_RADIUS + 2,
                self.current_y - NOTE_RADIUS - 3,
                2,
                FILL_STYLE,
            )
        return note_x

    # ------------------------------------------------------------------
    # Symbols
    # ------------------------------------------------------------------

    def _add_note(self, note: Note) -> None:
        length = note.duration.length
        if length != EIGHTH_NOTE:
            self._flush_pending_eighth()

        note_x = self._draw_pitch(note.pitch, note.duration)
        self._draw_stem(note_x, length)

        if length == EIGHTH_NOTE:
            if self.pending_eighth is None:
                self.pending_eighth = self.current_y
            else:
                stem_y = self.current_y - NOTE_RADIUS
                self.surface.line(STEM_X, stem_y, STEM_X, self.pending_eighth - NOTE_RADIUS, THIN_STYLE)
                self.pending_eighth = None

    def _add_chord(self, chord: Chord) -> None:
        self._flush_pending_eighth()

        rightmost_x = max(self._draw_pitch(pitch, chord.duration) for pitch in chord.pitches)
        self._draw_stem(rightmost_x, chord.duration.length)
        if chord.duration.length == EIGHTH_NOTE:
            self._draw_taper(self.current_y)

    def _add_rest(self, rest: Rest) -> None:
        self._flush_pending_eighth()

        y = self.current_y
        length = rest.duration.length
        if length == WHOLE_NOTE:
            # Block right of the centre line
            self.surface.rect(TAB_CENTER, y - NOTE_RADIUS // 2, NOTE_RADIUS // 2, NOTE_RADIUS, FILL_STYLE)
        elif length == HALF_NOTE:
            # Block left of the centre line
            self.surface.rect(
                TAB_CENTER - NOTE_RADIUS // 2,
                y - NOTE_RADIUS // 2,
                NOTE_RADIUS // 2,
                NOTE_RADIUS,
                FILL_STYLE,
            )
        elif length == QUARTER_NOTE:
            xs = [
                TAB_CENTER,
                TAB_CENTER + TABNOTE_WIDTH // 2,
                TAB_CENTER + TABNOTE_WIDTH,
                TAB_CENTER + TABNOTE_WIDTH * 4 // 3,
                TAB_CENTER + TABNOTE_WIDTH * 5 // 3,
                TAB_CENTER + 2 * TABNOTE_WIDTH,
            ]
            ys = [
                y,
                y - TABNOTE_WIDTH // 2,
                y,
                y - TABNOTE_WIDTH // 2,
                y,
                y - TABNOTE_WIDTH // 4,
            ]
            for i in range(len(xs) - 1):
                self.surface.line(xs[i], ys[i], xs[i + 1], ys[i + 1], REST_STROKE_STYLE)
        else:
            self.surface.line(
                TAB_CENTER + 3 * TABNOTE_WIDTH // 2,
                y - NOTE_RADIUS,
                TAB_CENTER + 5 * TABNOTE_WIDTH // 2,
                y + NOTE_RADIUS,
                REST_STROKE_STYLE,
            )
            self.surface.circle(
                TAB_CENTER + 7 * TABNOTE_WIDTH // 4,
                y + NOTE_RADIUS // 2,
                NOTE_RADIUS * 3 / 4,
                FILL_STYLE,
            )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def add_symbol(self, symbol: Symbol) -> None:
        """
        Add a symbol, starting new measures and pages when necessary.

        Raises:
            LayoutError: If the symbol overflows its measure or holds a
                pitch outside the tablature.
        """
        beats_per_measure = self.config.beats_per_measure
        if self.measure == 0 or self.measure_beats == beats_per_measure:
            self._flush_pending_eighth()
            if self.measures_left == 0:
                self._new_page()
            self._add_measure()

        length = symbol_beats(symbol)
        if self.measure_beats + length > beats_per_measure:
            raise LayoutError(
                f"Expected {beats_per_measure} beats in measure {self.measure}, "
                f"received {self.measure_beats + length}."
            )

        if isinstance(symbol, Note):
            self._add_note(symbol)
        elif isinstance(symbol, Chord):
            self._add_chord(symbol)
        elif isinstance(symbol, Rest):
            self._add_rest(symbol)
        else:
            raise LayoutError(f"Unrecognized symbol {symbol!r}.")

        # Leave room for the symbol before anything that follows it
        self.current_y -= length * SYMBOL_HEIGHT
        self.measure_beats += length

    def close(self) -> None:
        """Flush any lonely eighth, add the closing bar and finish the canvas."""
        if self.page_started:
            self._flush_pending_eighth()

            end_y = MEASURE_THICKNESS // 2
            self.surface.line(0, end_y, TAB_WIDTH, end_y, MEASURE_STYLE)
            end_y += SYMBOL_HEIGHT // 2
            self.surface.line(0, end_y, TAB_WIDTH, end_y, THIN_STYLE)

            self.surface.end_group()
            self.page_started = False

        self.surface.end()


def render_score(
    symbols: Iterable[Symbol],
    surface: DrawingSurface,
    config: LayoutConfig | None = None,
) -> TablatureLayout:
    """
    Lay out a complete score onto a surface.

    The symbols are buffered so the measure count is known before drawing.
    The surface is always closed, even when a symbol fails to lay out.
    """
    config = config or LayoutConfig()
    buffered = list(symbols)
    layout = TablatureLayout(surface, count_measures(buffered, config), config)

    try:
        for symbol in buffered:
            layout.add_symbol(symbol)
    finally:
        layout.close()

    return layout
