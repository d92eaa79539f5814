from typing import Optional, Union

import numpy as np

from .config import CLICK_HZ, CLICK_MS, REFERENCE_PITCH_HZ, SR, WINDOW_SIZE
from .notes import frequency_of, parse_pitch_name
from .pf_types import AudioFrame, ExpectedNote, PositionEntered


def sine_click(duration_ms=CLICK_MS, freq=CLICK_HZ, sr=SR):
    n = int(sr * (duration_ms/1000.0))
    t = np.arange(n)/sr
    wave = np.sin(2*np.pi*freq*t)
    env = np.linspace(1.0, 0.0, n)
    mono = (wave * env * 0.6).astype(np.float32)
    return mono


def sine_frame(freq: float, n: int = WINDOW_SIZE, sr: int = SR, amplitude: float = 0.5, phase: float = 0.0):
    t = np.arange(n)/sr
    return (amplitude * np.sin(2*np.pi*freq*t + phase)).astype(np.float32)


class SyntheticSource:
    """Stand-in for a microphone. Phase carries across frames."""

    def __init__(self, window_size: int = WINDOW_SIZE, sample_rate: int = SR, amplitude: float = 0.5,
                 noise: float = 0.0, reference_hz: float = REFERENCE_PITCH_HZ, seed: Optional[int] = None):
        self.window_size = window_size
        self.sample_rate = sample_rate
        self.amplitude = amplitude
        self.noise = noise
        self.reference_hz = reference_hz
        self.frequency: Optional[float] = None
        self._phase = 0.0
        self._rng = np.random.default_rng(seed)

    def play(self, note: Union[str, ExpectedNote]):
        if isinstance(note, str):
            parsed = parse_pitch_name(note)
            if parsed is None:
                raise ValueError(f"Not a pitch name: {note!r}")
            note = parsed
        self.play_frequency(frequency_of(note.letter, note.accidental, note.octave, self.reference_hz))

    def play_frequency(self, hz: float):
        if hz != self.frequency:
            self._phase = 0.0
        self.frequency = hz

    def silence(self):
        self.frequency = None

    def read_frame(self) -> Optional[AudioFrame]:
        n = self.window_size
        if self.frequency is None:
            samples = np.zeros(n, dtype=np.float32)
        else:
            samples = sine_frame(self.frequency, n, self.sample_rate, self.amplitude, self._phase)
            self._phase = (self._phase + 2*np.pi*self.frequency*n/self.sample_rate) % (2*np.pi)
        if self.noise > 0:
            samples = samples + (self.noise * self._rng.standard_normal(n)).astype(np.float32)
        return AudioFrame(samples=samples, sample_rate=self.sample_rate)


class AutoPlayer:
    # plays each position delay_ms after the cursor arrives; subscribe it and pass it as before_tick

    def __init__(self, source: SyntheticSource, clock, delay_ms: float = 200.0):
        self.source = source
        self.clock = clock
        self.delay = delay_ms / 1000.0
        self._target: Optional[ExpectedNote] = None
        self._entered_at: Optional[float] = None

    def on_event(self, event):
        if isinstance(event, PositionEntered):
            self._target = event.expected[0] if event.expected else None
            self._entered_at = self.clock()
            self.source.silence()

    def __call__(self, session):
        if self._entered_at is None or self.clock() - self._entered_at < self.delay:
            return
        if self._target is None:
            self.source.silence()
        else:
            self.source.play(self._target)
