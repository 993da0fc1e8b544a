"""
Result schemas for the reconciliation tasks (delay escalation, overdue rebooking).
"""

from datetime import date
from enum import Enum
from typing import List, Optional

from pydantic import Field

from models.base import BaseSchema
from models.order import Order


# Delay reported for orders left over from a previous day
FULLY_OVERDUE_MINUTES = 999


class PickupChange(BaseSchema):
    """A pickup_time write planned by the rebooker."""

    order_id: str
    location_id: str
    old_pickup_time: Optional[str]
    new_pickup_time: str
    pickup_day: date = Field(..., description="Day the new pickup minute belongs to")
    version: int = Field(..., description="Order version the change was planned against")


class EscalationPlan(BaseSchema):
    """Blockers to create for one location in one tick."""

    location_id: str
    max_delay_minutes: int = 0
    current_level: int = 0
    required_level: int = 0
    blockers: List[Order] = Field(default_factory=list)
    exhausted: bool = Field(default=False, description="Ran out of capacity before reaching required_level")

    @property
    def needs_escalation(self) -> bool:
        return self.required_level > self.current_level


class EscalationResult(BaseSchema):
    """Outcome of one escalation tick for one location."""

    location_id: str
    max_delay_minutes: int
    previous_level: int
    new_level: int
    created: List[Order] = Field(default_factory=list)
    exhausted: bool = False
    deferred: bool = Field(default=False, description="Store failed; retried next tick")


class RebookStopReason(str, Enum):
    NO_OVERDUE = "NO_OVERDUE"
    FIXED_POINT = "FIXED_POINT"              # Last pass changed nothing
    BUDGET_EXHAUSTED = "BUDGET_EXHAUSTED"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"


class RebookResult(BaseSchema):
    """Outcome of one rebooking run."""

    iterations: int = 0
    changes: List[PickupChange] = Field(default_factory=list)
    remaining_overdue: int = 0
    stop_reason: RebookStopReason = RebookStopReason.NO_OVERDUE
