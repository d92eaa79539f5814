import threading
from typing import Optional, Union

import numpy as np
import sounddevice as sd

from .config import SR, WINDOW_SIZE
from .pf_types import AudioDeviceError, AudioFrame


def list_input_devices() -> list[str]:
    return [f"{i}: {d['name']}" for i, d in enumerate(sd.query_devices()) if d["max_input_channels"] > 0]


class MicrophoneSource:
    """Keeps the most recent ``window_size`` samples from the default (or a
    named) input device. The PortAudio callback runs on its own thread, so
    only the ring buffer is shared and it is guarded by a lock."""

    def __init__(self, device: Optional[Union[str, int]] = None, window_size: int = WINDOW_SIZE, sample_rate: int = SR):
        self.device = device
        self.window_size = window_size
        self.sample_rate = sample_rate
        self._buffer = np.zeros(window_size, dtype=np.float32)
        self._filled = 0
        self._lock = threading.Lock()
        self._stream: Optional[sd.InputStream] = None

    def _callback(self, indata, frames, time_info, status):
        mono = indata[:, 0]
        with self._lock:
            n = min(mono.size, self.window_size)
            self._buffer = np.roll(self._buffer, -n)
            self._buffer[-n:] = mono[-n:]
            self._filled = min(self.window_size, self._filled + n)

    def start(self):
        if self._stream is not None:
            return
        label = self.device if self.device is not None else "default"
        try:
            self._stream = sd.InputStream(device=self.device, channels=1, samplerate=self.sample_rate,
                                          dtype="float32", callback=self._callback)
            self._stream.start()
        except (sd.PortAudioError, ValueError) as e:
            self._stream = None
            raise AudioDeviceError(f"Could not open input device '{label}': {e}") from e
        print(f"Listening on: {label} input @ {self.sample_rate} Hz")

    def read_frame(self) -> Optional[AudioFrame]:
        with self._lock:
            if self._stream is None or self._filled < self.window_size:
                return None
            samples = self._buffer.copy()
        return AudioFrame(samples=samples, sample_rate=self.sample_rate)

    def close(self):
        if self._stream is not None:
            try:
                self._stream.stop()
                self._stream.close()
            except sd.PortAudioError as e:
                print(f"[WARN] Closing input stream failed: {e}")
            self._stream = None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *exc):
        self.close()
        return False
