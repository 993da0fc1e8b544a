"""
Clock API routes.

Drive the simulated clock used by every scheduling decision. Control
calls are rejected when the server runs on the real clock.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

import structlog

from models.clock import ClockJump, ClockSpeedUpdate, ClockState
from services.clock import SimulatedClock, get_clock
from exceptions import AppError, InvalidClockSettingError

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/clock", tags=["Clock"])


def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(status_code=e.status_code, content=e.to_dict())
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={"error": {"code": "INTERNAL_ERROR", "message": "An unexpected error occurred"}},
    )


def _simulated() -> SimulatedClock:
    clock = get_clock()
    if not isinstance(clock, SimulatedClock):
        raise InvalidClockSettingError("Server is running on the real clock")
    return clock


@router.get("", response_model=ClockState)
async def get_clock_state():
    """Current time, speed and pause state."""
    try:
        return get_clock().state()

    except Exception as e:
        return handle_error(e)


@router.post("/speed", response_model=ClockState)
async def set_speed(data: ClockSpeedUpdate):
    """Set simulated seconds per real second (1 to 3600)."""
    try:
        clock = _simulated()
        clock.set_speed(data.speed)
        return clock.state()

    except Exception as e:
        return handle_error(e)


@router.post("/pause", response_model=ClockState)
async def pause_clock():
    try:
        clock = _simulated()
        clock.pause()
        return clock.state()

    except Exception as e:
        return handle_error(e)


@router.post("/resume", response_model=ClockState)
async def resume_clock():
    try:
        clock = _simulated()
        clock.resume()
        return clock.state()

    except Exception as e:
        return handle_error(e)


@router.post("/toggle", response_model=ClockState)
async def toggle_clock():
    """Pause if running, resume if paused."""
    try:
        clock = _simulated()
        clock.toggle_pause()
        return clock.state()

    except Exception as e:
        return handle_error(e)


@router.post("/jump", response_model=ClockState)
async def jump_clock(data: ClockJump):
    """
    Jump to an instant.

    Aware datetimes are converted to the kitchens' local time.
    """
    try:
        clock = _simulated()
        clock.jump(data.to)
        return clock.state()

    except Exception as e:
        return handle_error(e)


@router.post("/reset", response_model=ClockState)
async def reset_clock():
    """Back to wall time at real-time speed."""
    try:
        clock = _simulated()
        clock.reset()
        return clock.state()

    except Exception as e:
        return handle_error(e)
