"""Unit tests for the tablature layout engine, drawn onto a recording surface."""

from fractions import Fraction
from typing import Any

import pytest

from kablature.errors import LayoutError
from kablature.layout import (
    NOTE_RADIUS,
    REST_STROKE_STYLE,
    STEM_X,
    TAB_CENTER,
    TAB_WIDTH,
    TAPER_WIDTH,
    LayoutConfig,
    TablatureLayout,
    count_measures,
    find_note_position,
    render_score,
)
from kablature.parser import parse
from kablature.surfaces import DrawingSurface


class RecordingSurface(DrawingSurface):
    """Keep every drawing command as a tuple instead of rendering it."""

    def __init__(self) -> None:
        self.calls: list[tuple[Any, ...]] = []

    def start(self, width, height) -> None:
        self.calls.append(("start", width, height))

    def end(self) -> None:
        self.calls.append(("end",))

    def rect(self, x, y, width, height, style="") -> None:
        self.calls.append(("rect", x, y, width, height, style))

    def line(self, x1, y1, x2, y2, style="") -> None:
        self.calls.append(("line", x1, y1, x2, y2, style))

    def circle(self, cx, cy, r, style="") -> None:
        self.calls.append(("circle", cx, cy, r, style))

    def text(self, x, y, content, style="") -> None:
        self.calls.append(("text", x, y, content, style))

    def begin_group(self, dx, dy) -> None:
        self.calls.append(("group", dx, dy))

    def end_group(self) -> None:
        self.calls.append(("end_group",))

    def of(self, kind: str) -> list[tuple[Any, ...]]:
        return [call[1:] for call in self.calls if call[0] == kind]


def _render(source: str, config: LayoutConfig | None = None) -> RecordingSurface:
    surface = RecordingSurface()
    render_score(parse(source), surface, config)
    return surface


def _beams(surface: RecordingSurface) -> list[tuple[Any, ...]]:
    return [args for args in surface.of("line") if args[0] == STEM_X and args[2] == STEM_X]


def _tapers(surface: RecordingSurface) -> list[tuple[Any, ...]]:
    return [
        args for args in surface.of("line") if args[0] == STEM_X and args[2] == STEM_X + TAPER_WIDTH
    ]


def _measure_labels(surface: RecordingSurface) -> list[str]:
    return [args[2] for args in surface.of("text") if args[0] == TAB_WIDTH + 2]


# ---------------------------------------------------------------------------
# Configuration and measure counting
# ---------------------------------------------------------------------------

def test_config_defaults() -> None:
    config = LayoutConfig()
    assert config.beats_per_measure == 8
    assert config.measures_per_page == 7


@pytest.mark.parametrize("beats, measures", [(0, 7), (8, 0), (-1, 7)])
def test_config_rejects_non_positive_values(beats: int, measures: int) -> None:
    with pytest.raises(ValueError):
        LayoutConfig(beats_per_measure=beats, measures_per_page=measures)


def test_count_measures_rounds_up_partial_measure() -> None:
    assert count_measures(parse("4 e 1 c 2 (c e g)"), LayoutConfig()) == 1
    assert count_measures(parse("c d e f g a b c"), LayoutConfig()) == 2
    assert count_measures(parse("c d e f g a b c"), LayoutConfig(beats_per_measure=4)) == 4
    assert count_measures([], LayoutConfig()) == 0


def test_find_note_position() -> None:
    assert find_note_position(0) == 128
    assert find_note_position(15) == 8
    assert find_note_position(16) == 248


@pytest.mark.parametrize("pitch", [17, 21, -1])
def test_find_note_position_out_of_range(pitch: int) -> None:
    with pytest.raises(LayoutError, match="out of range"):
        find_note_position(pitch)


# ---------------------------------------------------------------------------
# Measures and pages
# ---------------------------------------------------------------------------

def test_partial_single_measure_fits() -> None:
    surface = _render("4 e 1 c 2 (c e g)")
    assert _measure_labels(surface) == ["1"]
    assert len(surface.of("group")) == 1


def test_exact_measures_are_accepted() -> None:
    surface = _render("8 c 4 d 2 e f 1 g a b c 2 d e")
    assert _measure_labels(surface) == ["1", "2", "3"]


def test_measure_overflow_is_a_layout_error() -> None:
    with pytest.raises(LayoutError, match="Expected 8 beats in measure 1, received 9"):
        _render("4 c 2 d 2. e")


def test_overflow_respects_configured_beats() -> None:
    with pytest.raises(LayoutError):
        _render("2 c d 4 e", LayoutConfig(beats_per_measure=6))
    _render("2 c d e", LayoutConfig(beats_per_measure=6))


def test_pitch_outside_tablature_is_a_layout_error() -> None:
    _render("> > e")
    with pytest.raises(LayoutError, match="out of range"):
        _render("> > f")


def test_surface_is_closed_even_on_error() -> None:
    surface = RecordingSurface()
    with pytest.raises(LayoutError):
        render_score(parse("8 c 8. d"), surface)
    assert surface.calls[-1] == ("end",)
    assert ("end_group",) in surface.calls


def test_empty_score_still_produces_canvas() -> None:
    surface = _render("")
    assert surface.calls[0] == ("start", 50, 1030)
    assert surface.calls[-1] == ("end",)
    assert surface.of("group") == []


def test_pages_split_after_configured_measures() -> None:
    surface = _render("8 " + "c " * 8)
    assert surface.calls[0] == ("start", 660, 1030)
    # Full first page, then a single-measure last page carrying the end bars
    assert surface.of("group") == [(50, 25), (355, 820)]
    assert _measure_labels(surface) == [str(n) for n in range(1, 9)]


def test_measures_per_page_is_configurable() -> None:
    surface = _render("8 c d e", LayoutConfig(measures_per_page=2))
    assert len(surface.of("group")) == 2
    assert surface.calls.count(("end_group",)) == 2


def test_more_measures_than_counted_is_an_error() -> None:
    surface = RecordingSurface()
    layout = TablatureLayout(surface, total_measures=1)
    for symbol in parse("8 c"):
        layout.add_symbol(symbol)
    with pytest.raises(LayoutError, match="more than"):
        layout.add_symbol(parse("c")[0])


def test_first_symbol_sits_above_first_bar() -> None:
    surface = _render("8 c")
    # One-measure last page: 9 beats of height plus the end symbol
    assert ("line", 0, 149, TAB_WIDTH, 149, "stroke-width:3;stroke:black") in surface.calls
    assert surface.of("circle") == [(128, 135, 4, "stroke-width:1;stroke:black;fill:white")]


def test_symbols_advance_cursor_by_their_length() -> None:
    surface = _render("2 c 4 d 1 e")
    ys = [args[1] for args in surface.of("circle")]
    assert ys == [135, 105, 45]


# ---------------------------------------------------------------------------
# Note heads, stems and chords
# ---------------------------------------------------------------------------

def test_whole_note_has_no_stem() -> None:
    surface = _render("8 c")
    assert [args for args in surface.of("line") if args[0] == STEM_X] == []


def test_short_notes_are_filled_long_notes_hollow() -> None:
    surface = _render("1 c 2 c 4 c")
    fills = [args[3].rsplit(":", 1)[1] for args in surface.of("circle")]
    assert fills == ["black", "black", "white"]


def test_dotted_note_gets_a_dot() -> None:
    surface = _render("4. c")
    assert len(surface.of("circle")) == 2


def test_chord_shares_one_row_and_stems_to_rightmost_note() -> None:
    surface = _render("(c e g)")
    circles = surface.of("circle")
    assert [args[0] for args in circles] == [128, 143, 158]
    assert len({args[1] for args in circles}) == 1
    stems = [args for args in surface.of("line") if args[0] == STEM_X]
    assert [args[2] for args in stems] == [158]


# ---------------------------------------------------------------------------
# Beams and tapers
# ---------------------------------------------------------------------------

def test_two_eighths_share_a_beam() -> None:
    surface = _render("1 c d 2 e f g")
    assert len(_beams(surface)) == 1
    assert _tapers(surface) == []


def test_lonely_eighth_before_measure_boundary_gets_a_taper() -> None:
    surface = _render("2 c d e 1 r f 1 g")
    assert _beams(surface) == []
    assert len(_tapers(surface)) == 2


def test_eighth_followed_by_longer_note_gets_a_taper() -> None:
    surface = _render("1 c 2 d")
    assert _beams(surface) == []
    assert len(_tapers(surface)) == 1


def test_rest_breaks_a_pending_eighth() -> None:
    surface = _render("1 c r d")
    assert _beams(surface) == []
    assert len(_tapers(surface)) == 2


def test_odd_run_of_eighths_ends_with_a_taper() -> None:
    surface = _render("1 c d e")
    assert len(_beams(surface)) == 1
    assert len(_tapers(surface)) == 1


def test_beam_joins_the_two_stems() -> None:
    surface = _render("1 c d")
    (beam,) = _beams(surface)
    assert (beam[1], beam[3]) == (135 - 15 - 4, 135 - 4)


def test_eighth_chords_never_beam() -> None:
    surface = _render("1 c (d e) f")
    assert _beams(surface) == []
    assert len(_tapers(surface)) == 3


def test_dotted_eighths_share_a_beam() -> None:
    surface = _render("1. c d 1 e f 2 g")
    # c+d and e+f each pair up
    assert len(_beams(surface)) == 2
    assert _tapers(surface) == []
    heads = [args for args in surface.of("circle") if args[2] == NOTE_RADIUS]
    assert [args[1] for args in heads] == [135, Fraction(225, 2), 90, 75, 60]


def test_dotted_eighth_then_plain_eighth_beam() -> None:
    surface = _render("1. c 1 d")
    (beam,) = _beams(surface)
    assert (beam[1], beam[3]) == (Fraction(225, 2) - NOTE_RADIUS, 135 - NOTE_RADIUS)


# ---------------------------------------------------------------------------
# Rests
# ---------------------------------------------------------------------------

def test_whole_and_half_rests_are_blocks_around_centre() -> None:
    surface = _render("8 r 4 r")
    blocks = [args for args in surface.of("rect") if args[4] == "fill:black"]
    assert [args[0] for args in blocks] == [TAB_CENTER, TAB_CENTER - 2]


def test_quarter_rest_is_a_zigzag() -> None:
    surface = _render("2 r")
    assert len([args for args in surface.of("line") if args[4] == REST_STROKE_STYLE]) == 5


def test_eighth_rest_is_a_slash_with_dot() -> None:
    surface = _render("1 r")
    assert len([args for args in surface.of("line") if args[4] == REST_STROKE_STYLE]) == 1
    assert len(surface.of("circle")) == 1


def test_rests_count_towards_measures() -> None:
    assert _measure_labels(_render("4 r r 1 c")) == ["1", "2"]
    with pytest.raises(LayoutError):
        _render("4 r 2 r 4 r")
