"""
Time source for every scheduling function and reconciliation task.

Nothing in the scheduling core reads the wall clock directly: a Clock is
passed in. SimulatedClock supports accelerated time, pause/resume and
manual jumps so the reconciliation loops can be driven deterministically.

All instants are naive datetimes in the kitchens' local time zone.
"""

import threading
import time
from datetime import datetime, timedelta
from typing import Callable, Optional
from zoneinfo import ZoneInfo

import structlog

from config import settings
from exceptions import InvalidClockSettingError
from models.clock import ClockState

logger = structlog.get_logger(__name__)

MIN_SPEED = 1.0
MAX_SPEED = 3600.0  # One simulated hour per real second


def local_wall_time(tz_name: Optional[str] = None) -> datetime:
    """Current wall time in the configured zone, tz info stripped."""
    return datetime.now(ZoneInfo(tz_name or settings.timezone)).replace(tzinfo=None)


class Clock:
    """Base time source."""

    simulated = False

    def now(self) -> datetime:
        raise NotImplementedError

    def state(self) -> ClockState:
        return ClockState(now=self.now(), speed=1.0, paused=False, simulated=self.simulated)


class SystemClock(Clock):
    """Real local time."""

    def __init__(self, wall_clock: Optional[Callable[[], datetime]] = None):
        self._wall_clock = wall_clock or local_wall_time

    def now(self) -> datetime:
        return self._wall_clock()


class SimulatedClock(Clock):
    """
    Controllable clock.

    Simulated time advances as (real elapsed seconds * speed) from the last
    anchor. Every control call re-anchors, so changing speed or pausing
    never makes time jump.

    Usage:
        clock = SimulatedClock(start=datetime(2026, 1, 5, 12, 0), speed=60)
        clock.pause()
        clock.jump(datetime(2026, 1, 5, 12, 30))
    """

    simulated = True

    def __init__(
        self,
        start: Optional[datetime] = None,
        speed: float = 1.0,
        paused: bool = False,
        monotonic: Optional[Callable[[], float]] = None,
        wall_clock: Optional[Callable[[], datetime]] = None,
    ):
        self._monotonic = monotonic or time.monotonic
        self._wall_clock = wall_clock or local_wall_time
        self._lock = threading.Lock()
        self._check_speed(speed)
        self._speed = float(speed)
        self._paused = paused
        self._anchor_sim = start or self._wall_clock()
        self._anchor_real = self._monotonic()

    @staticmethod
    def _check_speed(speed: float) -> None:
        if not MIN_SPEED <= speed <= MAX_SPEED:
            raise InvalidClockSettingError(
                f"Speed must be between {MIN_SPEED:g} and {MAX_SPEED:g}",
                details={"speed": speed},
            )

    def _current(self) -> datetime:
        if self._paused:
            return self._anchor_sim
        elapsed = self._monotonic() - self._anchor_real
        return self._anchor_sim + timedelta(seconds=elapsed * self._speed)

    def _reanchor(self) -> None:
        self._anchor_sim = self._current()
        self._anchor_real = self._monotonic()

    def now(self) -> datetime:
        with self._lock:
            return self._current()

    @property
    def speed(self) -> float:
        return self._speed

    @property
    def paused(self) -> bool:
        return self._paused

    def set_speed(self, speed: float) -> None:
        self._check_speed(speed)
        with self._lock:
            self._reanchor()
            self._speed = float(speed)
        logger.info("clock_speed_changed", speed=speed)

    def pause(self) -> None:
        with self._lock:
            self._reanchor()
            self._paused = True
        logger.info("clock_paused", at=self._anchor_sim.isoformat())

    def resume(self) -> None:
        with self._lock:
            self._reanchor()
            self._paused = False
        logger.info("clock_resumed", at=self._anchor_sim.isoformat())

    def toggle_pause(self) -> bool:
        """Flip pause state; returns the new paused flag."""
        if self._paused:
            self.resume()
        else:
            self.pause()
        return self._paused

    def jump(self, to: datetime) -> None:
        if to.tzinfo is not None:
            to = to.astimezone(ZoneInfo(settings.timezone)).replace(tzinfo=None)
        with self._lock:
            self._anchor_sim = to
            self._anchor_real = self._monotonic()
        logger.info("clock_jumped", to=to.isoformat())

    def advance(self, minutes: float = 0, seconds: float = 0) -> None:
        """Move simulated time forward without waiting."""
        with self._lock:
            self._reanchor()
            self._anchor_sim += timedelta(minutes=minutes, seconds=seconds)

    def reset(self) -> None:
        """Back to wall time, real-time speed, running."""
        with self._lock:
            self._anchor_sim = self._wall_clock()
            self._anchor_real = self._monotonic()
            self._speed = 1.0
            self._paused = False
        logger.info("clock_reset")

    def state(self) -> ClockState:
        return ClockState(now=self.now(), speed=self._speed, paused=self._paused, simulated=True)


# Singleton instance
_clock: Optional[Clock] = None


def get_clock() -> Clock:
    """Get or create the process clock (simulated unless disabled in settings)."""
    global _clock
    if _clock is None:
        if settings.simulated_clock:
            _clock = SimulatedClock(speed=settings.clock_speed)
        else:
            _clock = SystemClock()
    return _clock


def set_clock(clock: Optional[Clock]) -> None:
    """Replace the process clock (None recreates it from settings on next use)."""
    global _clock
    _clock = clock
