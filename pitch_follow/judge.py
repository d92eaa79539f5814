from typing import Iterable, Optional

from .notes import normalize_pitch_class
from .pf_types import Decision, ExpectedNote, NoteObservation


def matches(note: NoteObservation, expected: ExpectedNote) -> bool:
    """Same pitch class after enharmonic normalization, same octave. Cents are ignored."""
    return (normalize_pitch_class(expected.pitch_class) == normalize_pitch_class(note.pitch_class)
            and expected.octave == note.octave)


def usable(expected: Iterable[Optional[ExpectedNote]]) -> list[ExpectedNote]:
    """Drop entries without a derivable letter; the rest still get judged."""
    return [e for e in expected if e is not None and e.letter]


class MatchEngine:
    def __init__(self):
        self.satisfied = False

    def enter_position(self):
        self.satisfied = False

    def evaluate(self, note: NoteObservation, expected: Iterable[Optional[ExpectedNote]]) -> Decision:
        if self.satisfied:
            return Decision.NO_DECISION
        candidates = usable(expected)
        if not candidates:
            return Decision.NO_DECISION
        if any(matches(note, e) for e in candidates):
            self.satisfied = True
            return Decision.HIT
        return Decision.MISS
