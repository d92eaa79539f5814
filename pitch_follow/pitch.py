"""Fundamental-frequency estimation for one analysis frame.

McLeod pitch method: normalized square difference function (NSDF) computed
via FFT autocorrelation, key-maximum peak picking and parabolic
interpolation. The interpolated NSDF peak height is the clarity reported as
confidence; it drops toward zero as the frame becomes less periodic.
"""

import numpy as np

from .config import MAX_FREQ_HZ, MIN_FREQ_HZ, PEAK_PICK_K, SR
from .pf_types import AudioFrame, PitchObservation


def rms(samples: np.ndarray) -> float:
    if samples.size == 0:
        return 0.0
    x = samples.astype(np.float64, copy=False)
    return float(np.sqrt(np.mean(np.square(x))))


def nsdf(samples: np.ndarray) -> np.ndarray:
    """n'(tau) = 2 r(tau) / m(tau) for tau in [0, N)."""
    x = samples.astype(np.float64, copy=False)
    n = x.size
    size = 1 << int(np.ceil(np.log2(2 * n)))
    spec = np.fft.rfft(x, n=size)
    acf = np.fft.irfft(spec * np.conj(spec), n=size)[:n]

    sq = np.square(x)
    csum = np.concatenate(([0.0], np.cumsum(sq)))
    total = csum[-1]
    tau = np.arange(n)
    head = csum[tau]              # sum of x[j]^2 for j < tau
    tail = total - csum[n - tau]  # sum of x[j]^2 for j >= n - tau
    m = 2.0 * total - head - tail

    out = np.zeros(n)
    ok = m > 1e-12
    out[ok] = 2.0 * acf[ok] / m[ok]
    return out


def _key_maxima(curve: np.ndarray) -> list[int]:
    """Highest index of each positive lobe, skipping the lobe at tau=0."""
    positive = curve > 0
    edges = np.flatnonzero(np.diff(positive.astype(np.int8))) + 1
    maxima = []
    start = None
    for i in edges:
        if positive[i]:
            start = i
        elif start is not None:
            maxima.append(start + int(np.argmax(curve[start:i])))
            start = None
    return maxima


def _parabolic(curve: np.ndarray, i: int) -> tuple[float, float]:
    if i <= 0 or i >= curve.size - 1:
        return float(i), float(curve[i])
    a, b, c = curve[i - 1], curve[i], curve[i + 1]
    denom = a - 2 * b + c
    if denom == 0:
        return float(i), float(b)
    shift = 0.5 * (a - c) / denom
    return i + shift, float(b - 0.25 * (a - c) * shift)


class PitchEstimator:
    def __init__(self, min_hz: float = MIN_FREQ_HZ, max_hz: float = MAX_FREQ_HZ, k: float = PEAK_PICK_K):
        self.min_hz = min_hz
        self.max_hz = max_hz
        self.k = k

    def find_pitch(self, samples: np.ndarray, sample_rate: int = SR) -> tuple[float, float]:
        """Return (frequency_hz, clarity); (0.0, 0.0) when nothing periodic is found."""
        if samples.size < 4 or not np.any(samples):
            return 0.0, 0.0
        x = samples.astype(np.float64) - float(np.mean(samples))
        curve = nsdf(x)

        min_lag = max(2, int(sample_rate / self.max_hz))
        max_lag = min(curve.size - 2, int(np.ceil(sample_rate / self.min_hz)))
        candidates = []
        for i in _key_maxima(curve):
            if min_lag <= i <= max_lag:
                candidates.append(_parabolic(curve, i))
        if not candidates:
            return 0.0, 0.0

        best = max(v for _, v in candidates)
        if best <= 0:
            return 0.0, 0.0
        threshold = self.k * best
        period, clarity = next((t, v) for t, v in candidates if v >= threshold)
        if period <= 0:
            return 0.0, 0.0
        return sample_rate / period, float(min(max(clarity, 0.0), 1.0))

    def estimate(self, frame: AudioFrame) -> PitchObservation:
        freq, clarity = self.find_pitch(frame.samples, frame.sample_rate)
        return PitchObservation(frequency_hz=freq, confidence=clarity, loudness=rms(frame.samples))
