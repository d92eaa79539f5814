import math
import re
from typing import Optional

from .config import (ACCIDENTAL_OFFSETS, ENHARMONIC, LETTER_SEMITONES, NOTE_NAMES,
                     REFERENCE_MIDI, REFERENCE_PITCH_HZ)
from .pf_types import ExpectedNote, NoteObservation

# "Key: Db, octave: 4" style descriptions, then plain "Db4"
_DESCRIPTIVE = re.compile(r"Key:\s*([A-G])(#{1,2}|b{1,2}|x)?[^o]*octave:\s*(-?\d+)", re.IGNORECASE)
_SIMPLE = re.compile(r"^\s*([A-Ga-g])(#{1,2}|b{1,2}|x)?(-?\d+)\s*$")


def note_from_frequency(frequency: float, reference_hz: float = REFERENCE_PITCH_HZ) -> Optional[NoteObservation]:
    """Nearest equal-tempered note for ``frequency``.

    Returns None for non-positive frequencies and for anything that resolves
    below MIDI note 0.
    """
    if not frequency or frequency <= 0 or not math.isfinite(frequency):
        return None
    note_num = 12 * math.log2(frequency / reference_hz)
    midi = int(round(note_num)) + REFERENCE_MIDI
    if midi < 0:
        return None
    name = NOTE_NAMES[midi % 12]
    octave = midi // 12 - 1
    cents = 1200 * math.log2(frequency / frequency_of_midi(midi, reference_hz))
    return NoteObservation(letter=name[0], accidental=name[1:], octave=octave,
                           cents_offset=cents, frequency_hz=frequency)


def frequency_of_midi(midi: int, reference_hz: float = REFERENCE_PITCH_HZ) -> float:
    return reference_hz * 2 ** ((midi - REFERENCE_MIDI) / 12)


def midi_of(letter: str, accidental: str, octave: int) -> int:
    return (octave + 1) * 12 + LETTER_SEMITONES[letter] + ACCIDENTAL_OFFSETS[accidental]


def frequency_of(letter: str, accidental: str, octave: int, reference_hz: float = REFERENCE_PITCH_HZ) -> float:
    return frequency_of_midi(midi_of(letter, accidental, octave), reference_hz)


def normalize_pitch_class(pitch_class: str) -> str:
    """Map the five classical flats to their sharp spelling (Db -> C#)."""
    return ENHARMONIC.get(pitch_class, pitch_class)


def expected_from_midi(midi: int) -> ExpectedNote:
    name = NOTE_NAMES[midi % 12]
    return ExpectedNote(letter=name[0], accidental=name[1:], octave=midi // 12 - 1)


def make_expected(letter: str, accidental: str, octave: int) -> Optional[ExpectedNote]:
    """Build an ExpectedNote, respelling anything outside the sharp table and
    the five classical flats (Cb, E#, double accidentals) by MIDI number."""
    letter = letter.upper()
    accidental = accidental.replace("-", "b")
    if letter not in LETTER_SEMITONES or accidental not in ACCIDENTAL_OFFSETS:
        return None
    pitch_class = letter + accidental
    if pitch_class in NOTE_NAMES or pitch_class in ENHARMONIC:
        return ExpectedNote(letter=letter, accidental=accidental, octave=octave)
    midi = midi_of(letter, accidental, octave)
    if midi < 0:
        return None
    return expected_from_midi(midi)


def parse_pitch_name(text: str) -> Optional[ExpectedNote]:
    """Parse a pitch spelling as a score library might hand it over.

    Accepts "C#4", "Db4", "Bbb3" and descriptive strings like
    "Key: Eb, octave: 5". Returns None when no letter/octave can be derived.
    """
    if not text:
        return None
    m = _DESCRIPTIVE.search(text) or _SIMPLE.match(text)
    if not m:
        return None
    letter, accidental, octave = m.group(1), m.group(2) or "", int(m.group(3))
    return make_expected(letter, accidental, octave)
