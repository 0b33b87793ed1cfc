import pytest

from core.timing.sampler import Sampler


def test_default_rate_is_three_hertz():
    s = Sampler()
    assert s.interval == pytest.approx(1 / 3)
    assert s.rate_hz == pytest.approx(3.0)


def test_fires_once_interval_reached_and_resets():
    s = Sampler(interval=0.25)
    assert not s.advance(0.1)
    assert not s.advance(0.1)
    assert s.advance(0.05)
    assert s.accumulated == 0.0
    assert s.fired == 1


def test_long_tick_fires_once_without_catch_up():
    s = Sampler(interval=0.25)
    assert s.advance(5.0)
    assert s.accumulated == 0.0
    assert not s.advance(0.0)


def test_negative_delta_is_ignored():
    s = Sampler(interval=0.25)
    s.advance(-1.0)
    assert s.accumulated == 0.0


def test_reset_clears_state():
    s = Sampler(interval=0.25)
    s.advance(0.3)
    s.advance(0.1)
    s.reset()
    assert (s.accumulated, s.fired) == (0.0, 0)


def test_rejects_non_positive_interval():
    with pytest.raises(ValueError):
        Sampler(interval=0)
