import numpy as np
import pytest

from pitch_follow.audio import sine_frame
from pitch_follow.notes import expected_from_midi, frequency_of_midi, note_from_frequency
from pitch_follow.pf_types import AudioFrame
from pitch_follow.pitch import PitchEstimator, nsdf, rms

SR = 44100


@pytest.fixture
def estimator():
    return PitchEstimator()


def frame(samples):
    return AudioFrame(samples=samples, sample_rate=SR)


def test_silence_gives_zero_not_error(estimator):
    o = estimator.estimate(frame(np.zeros(2048, dtype=np.float32)))
    assert o.frequency_hz == 0.0
    assert o.confidence == 0.0
    assert o.loudness == 0.0


def test_loudness_is_rms():
    x = sine_frame(440.0, n=44100, amplitude=0.5)
    assert rms(x) == pytest.approx(0.5 / np.sqrt(2), rel=1e-3)
    assert rms(np.array([], dtype=np.float32)) == 0.0


@pytest.mark.parametrize("freq", [55.0, 110.0, 261.63, 440.0, 1046.5, 2093.0, 3520.0])
def test_sine_frequency_and_clarity(estimator, freq):
    o = estimator.estimate(frame(sine_frame(freq)))
    assert o.frequency_hz == pytest.approx(freq, rel=0.005)
    assert o.confidence > 0.9
    assert o.loudness > 0.3


def test_adjacent_semitones_are_distinguished(estimator):
    for midi in (22, 33, 45, 57, 69, 81, 93, 105, 107):
        names = set()
        for m in (midi - 1, midi, midi + 1):
            o = estimator.estimate(frame(sine_frame(frequency_of_midi(m))))
            names.add(note_from_frequency(o.frequency_hz).name)
        assert len(names) == 3


@pytest.mark.parametrize("midi", range(21, 109))
def test_every_piano_key_maps_back_to_its_name(estimator, midi):
    o = estimator.estimate(frame(sine_frame(frequency_of_midi(midi))))
    assert o.confidence > 0.8
    assert note_from_frequency(o.frequency_hz).name == expected_from_midi(midi).name


def test_confidence_drops_as_noise_is_added(estimator):
    rng = np.random.default_rng(1234)
    noise = rng.standard_normal(2048).astype(np.float32)
    clean = sine_frame(440.0)
    clarity = [estimator.estimate(frame(clean + level * noise)).confidence for level in (0.0, 0.1, 0.3)]
    assert clarity[0] > clarity[1] > clarity[2]


def test_white_noise_is_not_periodic(estimator):
    rng = np.random.default_rng(7)
    o = estimator.estimate(frame((0.3 * rng.standard_normal(2048)).astype(np.float32)))
    assert o.confidence < 0.5


def test_nsdf_is_one_at_zero_lag():
    curve = nsdf(sine_frame(440.0))
    assert curve[0] == pytest.approx(1.0)
    assert np.all(curve <= 1.0 + 1e-9)


def test_harmonic_tone_reports_fundamental(estimator):
    t = np.arange(2048) / SR
    tone = (0.4 * np.sin(2 * np.pi * 220 * t) + 0.3 * np.sin(2 * np.pi * 440 * t)
            + 0.2 * np.sin(2 * np.pi * 660 * t)).astype(np.float32)
    o = estimator.estimate(frame(tone))
    assert o.frequency_hz == pytest.approx(220.0, rel=0.005)
