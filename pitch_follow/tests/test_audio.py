import numpy as np
import pytest
from conftest import FakeClock

from pitch_follow.audio import AutoPlayer, SyntheticSource, sine_click
from pitch_follow.notes import parse_pitch_name
from pitch_follow.pf_types import PositionEntered
from pitch_follow.pitch import PitchEstimator


def test_synthetic_source_frames():
    src = SyntheticSource(window_size=1024, sample_rate=22050)
    f = src.read_frame()
    assert f.samples.shape == (1024,)
    assert f.sample_rate == 22050
    assert not np.any(f.samples)

    src.play("A4")
    assert src.frequency == pytest.approx(440.0)
    o = PitchEstimator().estimate(src.read_frame())
    assert o.frequency_hz == pytest.approx(440.0, rel=0.005)

    src.silence()
    assert not np.any(src.read_frame().samples)


def test_synthetic_frames_are_phase_continuous():
    src = SyntheticSource(window_size=256)
    src.play_frequency(1000.0)
    a = src.read_frame().samples
    b = src.read_frame().samples
    joined = np.concatenate([a, b])
    t = np.arange(512) / src.sample_rate
    assert np.allclose(joined, 0.5 * np.sin(2 * np.pi * 1000.0 * t), atol=1e-4)


def test_play_rejects_non_pitch():
    with pytest.raises(ValueError):
        SyntheticSource().play("banana")


def test_noise_is_added():
    src = SyntheticSource(noise=0.1, seed=3)
    assert np.std(src.read_frame().samples) == pytest.approx(0.1, rel=0.1)


def test_auto_player_waits_for_delay():
    clock = FakeClock()
    src = SyntheticSource()
    player = AutoPlayer(src, clock, delay_ms=200)
    player.on_event(PositionEntered(index=0, expected=(parse_pitch_name("E4"),), duration_ms=1000))
    clock.at_ms(150)
    player(None)
    assert src.frequency is None
    clock.at_ms(200)
    player(None)
    assert src.frequency == pytest.approx(329.6276, rel=1e-5)
    player.on_event(PositionEntered(index=1, expected=(), duration_ms=1000))
    assert src.frequency is None


def test_click_shape():
    click = sine_click()
    assert click.dtype == np.float32
    assert click.size == int(44100 * 0.035)
    assert abs(click[-1]) < 1e-3
