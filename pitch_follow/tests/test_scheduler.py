import pytest

from pitch_follow.scheduler import TimingScheduler, position_duration_ms


def test_duration_from_length_and_tempo():
    assert position_duration_ms(1.0, 60) == pytest.approx(1000.0)
    assert position_duration_ms(0.5, 120) == pytest.approx(250.0)
    assert position_duration_ms(2.0, 90) == pytest.approx(1333.333, rel=1e-4)
    assert position_duration_ms(4.0, 60) == pytest.approx(4000.0)


def test_unknown_length_is_one_quarter():
    assert position_duration_ms(None, 60) == pytest.approx(1000.0)
    assert position_duration_ms(0, 120) == pytest.approx(500.0)


def test_tempo_must_be_positive():
    with pytest.raises(ValueError):
        position_duration_ms(1.0, 0)


def test_deadline_fires_once_when_due(clock):
    s = TimingScheduler(clock)
    d = s.schedule(1000, for_position=3)
    assert d.due_at == pytest.approx(1.0)
    clock.at_ms(999)
    assert s.pop_expired() is None
    assert s.remaining_ms() == pytest.approx(1.0)
    clock.at_ms(1000)
    fired = s.pop_expired()
    assert fired.for_position == 3
    assert s.pop_expired() is None
    assert not s.active


def test_reschedule_replaces_and_cancel_clears(clock):
    s = TimingScheduler(clock)
    s.schedule(1000, 0)
    clock.at_ms(500)
    s.schedule(1000, 1)
    clock.at_ms(1200)
    assert s.pop_expired() is None
    s.cancel()
    clock.at_ms(5000)
    assert s.pop_expired() is None
    assert s.remaining_ms() is None
