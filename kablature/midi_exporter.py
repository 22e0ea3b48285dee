"""MidiExporter: writes a parsed melody as a single-track MIDI file."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Final

from midiutil import MIDIFile

from kablature.symbols import OCTAVE_LENGTH, Chord, Note, Rest, Symbol, symbol_beats

# In midiutil Format 1 MIDI, track 0 is the conductor/tempo track.
TRACK_CONDUCTOR = 0
TRACK_MELODY = 1
CHANNEL_MELODY = 0

MIDDLE_C_MIDI: Final[int] = 60  # Pitch 0 on the tablature
SEMITONES_PER_OCTAVE: Final[int] = 12

#: Semitone offset of each diatonic step within an octave (C major scale)
SCALE_STEPS: Final[tuple[int, ...]] = (0, 2, 4, 5, 7, 9, 11)


def pitch_to_midi(pitch: int) -> int:
    """
    Convert a diatonic pitch (0 = middle C, 7 = the C above) to a MIDI note.

    Args:
        pitch: Diatonic step count above middle C.

    Returns:
        MIDI note number.
    """
    octave, step = divmod(pitch, OCTAVE_LENGTH)
    return MIDDLE_C_MIDI + octave * SEMITONES_PER_OCTAVE + SCALE_STEPS[step]


class MidiExporter:
    """
    Writes a two-track MIDI file (conductor plus melody) from parsed symbols.

    Timing
    ------
    Symbol lengths are counted in eighth beats; MIDI beats are quarter
    notes, so every eighth beat is half a MIDI beat. Rests only advance
    time. All pitches of a chord share one start time and duration.
    """

    DEFAULT_TEMPO = 80     # BPM
    DEFAULT_VELOCITY = 80  # MIDI velocity (0-127)

    def __init__(
        self,
        tempo: int = DEFAULT_TEMPO,
        velocity: int = DEFAULT_VELOCITY,
    ) -> None:
        """
        Args:
            tempo:    Playback tempo in beats per minute.
            velocity: MIDI note-on velocity for every note.
        """
        self.tempo = tempo
        self.velocity = velocity

    def build(self, symbols: Iterable[Symbol]) -> MIDIFile:
        """Build the in-memory MIDI file for a sequence of symbols."""
        midi = MIDIFile(numTracks=2, removeDuplicates=False, deinterleave=False)

        # --- Track 0: conductor (tempo only, no notes) ---
        midi.addTempo(TRACK_CONDUCTOR, 0, self.tempo)

        # --- Track 1: melody ---
        midi.addTrackName(TRACK_MELODY, 0, "Melody")

        time = 0.0
        for symbol in symbols:
            duration = float(symbol_beats(symbol)) / 2

            if isinstance(symbol, Note):
                pitches: tuple[int, ...] = (symbol.pitch,)
            elif isinstance(symbol, Chord):
                pitches = symbol.pitches
            elif isinstance(symbol, Rest):
                pitches = ()
            else:
                raise TypeError(f"Unrecognized symbol {symbol!r}.")

            for pitch in pitches:
                midi.addNote(
                    track=TRACK_MELODY,
                    channel=CHANNEL_MELODY,
                    pitch=pitch_to_midi(pitch),
                    time=time,
                    duration=duration,
                    volume=self.velocity,
                )
            time += duration

        return midi

    def export(self, symbols: Iterable[Symbol], output_path: str) -> None:
        """
        Render symbols to a Standard MIDI File.

        Args:
            symbols:     Parsed symbols, in score order.
            output_path: Destination file path (e.g. "melody.mid").

        Raises:
            OSError: If the output file cannot be opened for writing.
        """
        midi = self.build(symbols)
        with open(output_path, "wb") as f:
            midi.writeFile(f)
