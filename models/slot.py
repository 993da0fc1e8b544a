"""
Slot schemas.

A slot is one calendar minute. Slots are derived from the day's orders and
never persisted.
"""

from enum import Enum
from typing import List, Optional

from pydantic import Field

from models.base import BaseSchema


class SlotStatus(str, Enum):
    """Occupancy classification of a single minute."""
    FREE = "free"
    BOOKED = "booked"    # Customer pickup minute
    BLOCKED = "blocked"  # System blocker minute
    PREP = "prep"        # Kitchen preparing an upcoming pickup
    PAST = "past"


class SlotInfo(BaseSchema):
    """Classification of one minute."""

    time: str = Field(..., description="Minute HH:MM")
    status: SlotStatus
    order_contact: Optional[str] = Field(None, description="Owner of a booked/blocked minute")
    is_system_blocker: bool = Field(default=False)
    prep_for_order: Optional[str] = Field(None, description="Contact of the order being prepared")


class SlotStats(BaseSchema):
    """Counts per status over a grid."""

    free: int = 0
    booked: int = 0
    blocked: int = 0
    prep: int = 0
    past: int = 0


class SlotGridResponse(BaseSchema):
    """Rolling minute grid around now."""

    location_id: str
    now: str
    slots: List[SlotInfo]
    stats: SlotStats


class AvailabilityReason(str, Enum):
    """Outcome of an availability query."""
    OK = "OK"
    CONFIG_MISSING = "CONFIG_MISSING"          # No location / no open day for today
    AFTER_CLOSE = "AFTER_CLOSE"                # Search starts after closing time
    CAPACITY_EXHAUSTED = "CAPACITY_EXHAUSTED"  # Reached close without an eligible minute


class AvailabilityResult(BaseSchema):
    """Earliest eligible pickup minute, or why there is none."""

    pickup_time: Optional[str] = None
    reason: AvailabilityReason = AvailabilityReason.OK
    prep_cost_minutes: Optional[int] = Field(None, description="Cost used at the returned minute")

    @property
    def available(self) -> bool:
        return self.pickup_time is not None


class UnavailableReason(str, Enum):
    """Why a single minute cannot be picked."""
    BUFFER = "BUFFER"                  # Earlier than now + buffer
    BOOKED = "BOOKED"
    BLOCKED = "BLOCKED"
    PREP = "PREP"                      # Minute is another order's prep time
    PREP_CONFLICT = "PREP_CONFLICT"    # Own prep window hits a booked/blocked minute
    BEFORE_OPEN = "BEFORE_OPEN"        # Own prep window starts before opening


class TimeOption(BaseSchema):
    """One selectable minute in the time picker."""

    time: str
    available: bool
    unavailable_reason: Optional[UnavailableReason] = None
    prep_cost_minutes: int = 0


class TimeOptionsResponse(BaseSchema):
    """Time picker view for a location and cart."""

    location_id: str
    reason: AvailabilityReason
    next_available: Optional[str] = None
    options: List[TimeOption] = Field(default_factory=list)
