import numpy as np
import simpleaudio as sa

from .audio import sine_click
from .config import MASTER_GAIN, SR
from .pf_types import PositionEntered


def play_mono(mono: np.ndarray, sr: int = SR):
    stereo = np.stack([mono, mono], axis=1)
    audio = (stereo * 32767 * MASTER_GAIN).astype(np.int16)
    return sa.play_buffer(audio, 2, 2, sr)


class ClickCue:
    """Short click at the start of every position with notes in it."""

    def __init__(self):
        self.click = sine_click()

    def on_event(self, event):
        if isinstance(event, PositionEntered) and event.expected:
            play_mono(self.click)
