"""
Unit tests for the simulated clock.

Run: pytest tests/unit/test_clock.py -v
"""

from datetime import datetime, timedelta, timezone

import pytest

from exceptions import InvalidClockSettingError
from services.clock import SimulatedClock, SystemClock


class FakeMonotonic:
    """Manually advanced monotonic source."""

    def __init__(self):
        self.value = 1000.0

    def __call__(self) -> float:
        return self.value

    def tick(self, seconds: float):
        self.value += seconds


@pytest.fixture
def monotonic() -> FakeMonotonic:
    return FakeMonotonic()


@pytest.fixture
def sim(now, monotonic) -> SimulatedClock:
    return SimulatedClock(start=now, speed=1, monotonic=monotonic, wall_clock=lambda: datetime(2026, 3, 1, 8, 0))


class TestSimulatedClock:
    """Tests for SimulatedClock"""

    def test_advances_in_real_time(self, sim, monotonic, now):
        monotonic.tick(30)

        assert sim.now() == now + timedelta(seconds=30)

    def test_speed_multiplies_elapsed_time(self, sim, monotonic, now):
        sim.set_speed(60)
        monotonic.tick(10)

        assert sim.now() == now + timedelta(minutes=10)

    def test_speed_change_does_not_jump(self, sim, monotonic, now):
        monotonic.tick(60)
        sim.set_speed(120)

        assert sim.now() == now + timedelta(minutes=1)

    @pytest.mark.parametrize("speed", [0, 0.5, 3601])
    def test_rejects_speed_out_of_range(self, sim, speed):
        with pytest.raises(InvalidClockSettingError):
            sim.set_speed(speed)

    def test_pause_freezes_and_resume_continues(self, sim, monotonic, now):
        monotonic.tick(5)
        sim.pause()
        monotonic.tick(100)

        assert sim.now() == now + timedelta(seconds=5)

        sim.resume()
        monotonic.tick(5)
        assert sim.now() == now + timedelta(seconds=10)

    def test_toggle_pause(self, sim):
        assert sim.toggle_pause() is True
        assert sim.paused
        assert sim.toggle_pause() is False

    def test_jump(self, sim, monotonic):
        target = datetime(2026, 1, 6, 18, 0)
        sim.jump(target)
        monotonic.tick(1)

        assert sim.now() == target + timedelta(seconds=1)

    def test_jump_converts_aware_datetimes(self, sim):
        sim.pause()
        sim.jump(datetime(2026, 1, 5, 11, 0, tzinfo=timezone.utc))

        # Vienna is UTC+1 in January
        assert sim.now() == datetime(2026, 1, 5, 12, 0)

    def test_advance_while_paused(self, sim, now):
        sim.pause()
        sim.advance(minutes=3)

        assert sim.now() == now + timedelta(minutes=3)

    def test_reset_returns_to_wall_time(self, sim):
        sim.set_speed(600)
        sim.pause()

        sim.reset()

        assert sim.now() == datetime(2026, 3, 1, 8, 0)
        assert sim.speed == 1.0
        assert not sim.paused

    def test_state(self, sim, now):
        sim.pause()

        state = sim.state()

        assert state.now == now
        assert state.paused
        assert state.simulated


class TestSystemClock:
    """Tests for SystemClock"""

    def test_reads_wall_clock(self, now):
        clock = SystemClock(wall_clock=lambda: now)

        assert clock.now() == now
        assert not clock.state().simulated
