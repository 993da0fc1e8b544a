"""
Clock control schemas.
"""

from datetime import datetime

from pydantic import Field

from models.base import BaseSchema


class ClockState(BaseSchema):
    """Current reading of the time source."""

    now: datetime
    speed: float
    paused: bool
    simulated: bool


class ClockSpeedUpdate(BaseSchema):
    speed: float = Field(..., ge=1, le=3600, description="Simulated seconds per real second")


class ClockJump(BaseSchema):
    to: datetime = Field(..., description="Instant to jump to (location local time)")
