import pytest
from mido import MidiFile, MidiTrack, MetaMessage, Message

from pitch_follow.chart import chart_from_names
from pitch_follow.notes import midi_of, note_from_frequency, frequency_of_midi, parse_pitch_name


class FakeClock:
    def __init__(self, t: float = 0.0):
        self.t = t

    def __call__(self) -> float:
        return self.t

    def advance(self, seconds: float):
        self.t += seconds

    def at_ms(self, ms: float):
        self.t = ms / 1000.0


class Recorder:
    """Collects every event in order."""

    def __init__(self):
        self.events = []

    def on_event(self, event):
        self.events.append(event)

    def of(self, cls):
        return [e for e in self.events if isinstance(e, cls)]

    def clear(self):
        self.events.clear()


def obs(name: str, cents: float = 0.0):
    """NoteObservation for a pitch name, optionally detuned."""
    e = parse_pitch_name(name)
    hz = frequency_of_midi(midi_of(e.letter, e.accidental, e.octave)) * 2 ** (cents / 1200)
    return note_from_frequency(hz)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def two_note_chart():
    # {C4} then {E4}, quarter notes
    return chart_from_names("C4 E4")


@pytest.fixture
def simple_midi(tmp_path):
    """
    Tiny MIDI at 120 BPM: C4 (1 beat), chord E4+G4 (1 beat), 1 beat of silence,
    A4 (half beat). A drum hit on channel 10 must be ignored.
    Returns path to the file.
    """
    path = tmp_path / "mini.mid"
    mid = MidiFile(ticks_per_beat=480)
    track = MidiTrack()
    mid.tracks.append(track)
    track.append(MetaMessage('set_tempo', tempo=500000, time=0))

    track.append(Message('note_on', channel=0, note=60, velocity=90, time=0))
    track.append(Message('note_on', channel=9, note=38, velocity=100, time=0))
    track.append(Message('note_off', channel=9, note=38, velocity=0, time=10))
    track.append(Message('note_off', channel=0, note=60, velocity=0, time=470))   # tick 480
    track.append(Message('note_on', channel=0, note=64, velocity=90, time=0))
    track.append(Message('note_on', channel=0, note=67, velocity=90, time=0))
    track.append(Message('note_off', channel=0, note=64, velocity=0, time=480))   # tick 960
    track.append(Message('note_on', channel=0, note=67, velocity=0, time=0))
    track.append(Message('note_on', channel=0, note=69, velocity=90, time=480))   # tick 1440
    track.append(Message('note_off', channel=0, note=69, velocity=0, time=240))

    mid.save(str(path))
    return str(path)
