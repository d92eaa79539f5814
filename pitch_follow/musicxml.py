from collections import defaultdict
from typing import Optional

from music21 import chord, converter, note, stream, tempo
from music21.exceptions21 import Music21Exception

from .chart import ChartScore
from .config import DEFAULT_QUARTER_LENGTH
from .notes import make_expected
from .pf_types import ExpectedNote, ScoreLoadError, ScorePosition


def _expected_from_pitch(p) -> Optional[ExpectedNote]:
    modifier = p.accidental.modifier if p.accidental is not None else ""
    octave = p.octave if p.octave is not None else p.implicitOctave
    return make_expected(p.step, modifier, octave)


def _is_tie_continuation(n) -> bool:
    return n.tie is not None and n.tie.type in ("continue", "stop")


def _score_tempo(flat) -> Optional[float]:
    for mm in flat.getElementsByClass(tempo.MetronomeMark):
        bpm = mm.getQuarterBPM()
        if bpm:
            return float(bpm)
    return None


def chart_from_stream(s: stream.Stream) -> ChartScore:
    """Flatten a music21 stream into cursor positions.

    Everything starting at the same offset (chords, other voices and parts)
    forms one position. Grace notes are dropped and an offset holding only
    tie continuations lengthens the position the tie started from.
    """
    flat = s.flatten()
    by_offset: dict[float, list] = defaultdict(list)
    for el in flat.notesAndRests:
        if el.duration.isGrace:
            continue
        by_offset[float(el.offset)].append(el)

    offsets = sorted(by_offset)
    positions: list[ScorePosition] = []
    for i, offset in enumerate(offsets):
        notes: list[ExpectedNote] = []
        tied = False
        for el in by_offset[offset]:
            if isinstance(el, chord.Chord):
                fresh = [n for n in el.notes if not _is_tie_continuation(n)]
                tied = tied or len(fresh) < len(el.notes)
                pitches = [n.pitch for n in fresh]
            elif isinstance(el, note.Note):
                if _is_tie_continuation(el):
                    tied = True
                    pitches = []
                else:
                    pitches = [el.pitch]
            else:
                pitches = []
            for p in pitches:
                exp = _expected_from_pitch(p)
                if exp is None:
                    print(f"[WARN] Skipping pitch without usable spelling: {p.nameWithOctave}")
                elif exp not in notes:
                    notes.append(exp)
        if i + 1 < len(offsets):
            length = offsets[i + 1] - offset
        else:
            length = min(float(el.quarterLength) for el in by_offset[offset]) or DEFAULT_QUARTER_LENGTH
        if not notes and tied and positions and not positions[-1].is_rest:
            prev = positions[-1]
            positions[-1] = ScorePosition(prev.notes, (prev.quarter_length or DEFAULT_QUARTER_LENGTH) + length)
            continue
        positions.append(ScorePosition(tuple(notes), length))

    title = ""
    if s.metadata is not None and s.metadata.title:
        title = s.metadata.title
    return ChartScore(positions, tempo_bpm=_score_tempo(flat), title=title)


def load_musicxml(path: str) -> ChartScore:
    try:
        parsed = converter.parse(path)
    except Music21Exception as e:
        raise ScoreLoadError(f"Could not parse MusicXML '{path}': {e}") from e
    return chart_from_stream(parsed)
