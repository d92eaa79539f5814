import re
from collections import defaultdict
from pathlib import Path
from typing import Iterable, Optional, Sequence

from mido import MidiFile

from .config import DEFAULT_QUARTER_LENGTH, DRUM_CHANNEL, REST_MIN_QUARTERS
from .midi_time import file_bpm, ticks_to_quarters
from .notes import expected_from_midi, parse_pitch_name
from .pf_types import ExpectedNote, ScoreLoadError, ScorePosition
from .scheduler import position_duration_ms

MIDI_SUFFIXES = {".mid", ".midi"}
MUSICXML_SUFFIXES = {".xml", ".musicxml", ".mxl"}
TEXT_SUFFIXES = {".txt"}


class ChartScore:
    """Score cursor over a fixed list of positions.

    ``tempo_bpm`` is the tempo found in the source file, if any; the session
    tempo is configured separately.
    """

    def __init__(self, positions: Sequence[ScorePosition], tempo_bpm: Optional[float] = None, title: str = ""):
        self.positions = list(positions)
        self.tempo_bpm = tempo_bpm
        self.title = title
        self.cursor = 0

    def __len__(self):
        return len(self.positions)

    def is_end_reached(self) -> bool:
        return self.cursor >= len(self.positions)

    def current(self) -> Optional[ScorePosition]:
        if self.is_end_reached():
            return None
        return self.positions[self.cursor]

    def expected_notes_at_cursor(self) -> tuple[ExpectedNote, ...]:
        pos = self.current()
        return pos.notes if pos else ()

    def advance(self):
        if not self.is_end_reached():
            self.cursor += 1

    def reset(self):
        self.cursor = 0

    def duration_of_current_position(self, tempo_bpm: float) -> float:
        pos = self.current()
        return position_duration_ms(pos.quarter_length if pos else None, tempo_bpm)


# ---------------- text charts ----------------

_TOKEN = re.compile(r"\[[^\]]*\](?:/[\d.]+)?|\S+")


def _split_length(token: str) -> tuple[str, Optional[float]]:
    if "/" not in token:
        return token, None
    body, _, length = token.rpartition("/")
    try:
        return body, float(length)
    except ValueError:
        return token, None


def chart_from_names(text: str, tempo_bpm: Optional[float] = None) -> ChartScore:
    """Build a chart from a line like ``"C4 E4/2 [C4,E4,G4] r Bb3/0.5"``.

    ``/n`` is the length in quarter notes, ``r`` a rest, brackets a chord.
    Unparseable pitches are skipped with a warning.
    """
    positions = []
    for raw in _TOKEN.findall(text):
        token, length = _split_length(raw)
        if token.lower() == "r":
            positions.append(ScorePosition(notes=(), quarter_length=length))
            continue
        names = token.strip("[]").split(",") if token.startswith("[") else [token]
        notes = []
        for name in names:
            note = parse_pitch_name(name.strip())
            if note is None:
                print(f"[WARN] Skipping unparseable pitch '{name.strip()}'")
                continue
            notes.append(note)
        positions.append(ScorePosition(notes=tuple(notes), quarter_length=length))
    return ChartScore(positions, tempo_bpm=tempo_bpm)


# ---------------- MIDI charts ----------------

def _collect_notes(mid: MidiFile) -> list[tuple[int, int, int]]:
    """(start_tick, end_tick, midi_note) for every pitched note in the file."""
    notes = []
    for track in mid.tracks:
        abs_ticks = 0
        sounding: dict[tuple[int, int], list[int]] = defaultdict(list)
        for msg in track:
            abs_ticks += msg.time
            if msg.is_meta:
                continue
            if getattr(msg, "channel", None) == DRUM_CHANNEL:
                continue
            key = (getattr(msg, "channel", 0), getattr(msg, "note", -1))
            if msg.type == "note_on" and msg.velocity > 0:
                sounding[key].append(abs_ticks)
            elif msg.type in ("note_off", "note_on") and sounding.get(key):
                start = sounding[key].pop(0)
                notes.append((start, abs_ticks, key[1]))
        for (_, note), starts in sounding.items():
            for start in starts:
                notes.append((start, abs_ticks, note))
    return notes


def extract_chart(mid: MidiFile) -> ChartScore:
    tpq = mid.ticks_per_beat
    by_onset: dict[int, list[tuple[int, int]]] = defaultdict(list)
    for start, end, note in _collect_notes(mid):
        by_onset[start].append((end, note))

    onsets = sorted(by_onset)
    positions = []
    for i, onset in enumerate(onsets):
        group = by_onset[onset]
        notes = tuple(expected_from_midi(n) for n in sorted({n for _, n in group}))
        latest_end = max(end for end, _ in group)
        if i + 1 < len(onsets):
            nxt = onsets[i + 1]
            gap = ticks_to_quarters(nxt - latest_end, tpq)
            if gap >= REST_MIN_QUARTERS:
                positions.append(ScorePosition(notes, ticks_to_quarters(latest_end - onset, tpq)))
                positions.append(ScorePosition((), gap))
            else:
                positions.append(ScorePosition(notes, ticks_to_quarters(nxt - onset, tpq)))
        else:
            shortest = min(end for end, _ in group)
            length = ticks_to_quarters(shortest - onset, tpq) or DEFAULT_QUARTER_LENGTH
            positions.append(ScorePosition(notes, length))
    return ChartScore(positions, tempo_bpm=file_bpm(mid))


# ---------------- dispatch ----------------

def load_score(path: str) -> ChartScore:
    p = Path(path)
    suffix = p.suffix.lower()
    if not p.exists():
        raise ScoreLoadError(f"Score file not found: {path}")
    try:
        if suffix in MIDI_SUFFIXES:
            chart = extract_chart(MidiFile(str(p)))
        elif suffix in MUSICXML_SUFFIXES:
            from .musicxml import load_musicxml
            chart = load_musicxml(str(p))
        elif suffix in TEXT_SUFFIXES:
            chart = chart_from_names(p.read_text())
        else:
            raise ScoreLoadError(f"Unsupported score format '{suffix}' ({path})")
    except ScoreLoadError:
        raise
    except (OSError, ValueError, EOFError) as e:
        raise ScoreLoadError(f"Could not read score '{path}': {e}") from e
    chart.title = chart.title or p.stem
    return chart


def describe(notes: Iterable[ExpectedNote]) -> str:
    names = [n.name for n in notes]
    if not names:
        return "rest"
    return names[0] if len(names) == 1 else "[" + ",".join(names) + "]"
