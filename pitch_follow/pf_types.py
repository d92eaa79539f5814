from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Protocol, Union

import numpy as np


class PitchFollowError(Exception):
    """Base class for errors raised at the audio and score boundaries."""


class ScoreLoadError(PitchFollowError):
    pass


class AudioDeviceError(PitchFollowError):
    pass


@dataclass
class AudioFrame:
    samples: np.ndarray   # mono float32, fixed length
    sample_rate: int


@dataclass(frozen=True)
class PitchObservation:
    frequency_hz: float
    confidence: float     # clarity in [0, 1]
    loudness: float       # RMS


@dataclass(frozen=True)
class NoteObservation:
    letter: str           # C..B
    accidental: str       # "" or "#"
    octave: int
    cents_offset: float
    frequency_hz: float

    @property
    def pitch_class(self) -> str:
        return self.letter + self.accidental

    @property
    def name(self) -> str:
        return f"{self.pitch_class}{self.octave}"


@dataclass(frozen=True)
class ExpectedNote:
    letter: str
    accidental: str       # "", "#" or "b"
    octave: int

    @property
    def pitch_class(self) -> str:
        return self.letter + self.accidental

    @property
    def name(self) -> str:
        return f"{self.pitch_class}{self.octave}"


@dataclass(frozen=True)
class ScorePosition:
    notes: tuple[ExpectedNote, ...]
    quarter_length: Optional[float] = None   # None -> one quarter note

    @property
    def is_rest(self) -> bool:
        return not self.notes


@dataclass(frozen=True)
class Deadline:
    due_at: float         # clock seconds
    for_position: int


class SessionState(Enum):
    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"
    COMPLETE = "complete"


class Decision(Enum):
    HIT = "hit"
    MISS = "miss"
    NO_DECISION = "no_decision"


@dataclass
class SessionSummary:
    positions: int = 0
    hits: int = 0
    misses: int = 0
    rests: int = 0
    streak: int = 0
    max_streak: int = 0
    hit_names: list[str] = field(default_factory=list)

    @property
    def judged(self) -> int:
        return self.hits + self.misses

    @property
    def accuracy(self) -> float:
        return self.hits / self.judged if self.judged else 0.0


# ---- events (the only outputs a presentation layer renders from) ----

@dataclass(frozen=True)
class NoteDetected:
    note: Optional[NoteObservation]


@dataclass(frozen=True)
class PositionEntered:
    index: int
    expected: tuple[ExpectedNote, ...]
    duration_ms: float


@dataclass(frozen=True)
class PositionHit:
    index: int
    expected: tuple[ExpectedNote, ...]
    note: NoteObservation


@dataclass(frozen=True)
class PositionMissed:
    index: int
    expected: tuple[ExpectedNote, ...]


@dataclass(frozen=True)
class ScoreCompleted:
    summary: SessionSummary


@dataclass(frozen=True)
class SessionStateChanged:
    old: SessionState
    new: SessionState


Event = Union[NoteDetected, PositionEntered, PositionHit, PositionMissed, ScoreCompleted, SessionStateChanged]


class ScorePositionProvider(Protocol):
    def expected_notes_at_cursor(self) -> tuple[ExpectedNote, ...]: ...
    def advance(self) -> None: ...
    def reset(self) -> None: ...
    def duration_of_current_position(self, tempo_bpm: float) -> float: ...
    def is_end_reached(self) -> bool: ...


class AudioSource(Protocol):
    def read_frame(self) -> Optional[AudioFrame]: ...


class EventListener(Protocol):
    def on_event(self, event: Event) -> None: ...
