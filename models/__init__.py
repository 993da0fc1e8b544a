"""
Pydantic models for validation and serialization.
"""

from models.base import BaseSchema
from models.location import (
    Weekday,
    OpenDay,
    Location,
    LocationListResponse,
)
from models.order import (
    OrderStatus,
    PaymentStatus,
    OrderItem,
    PrepDemand,
    Order,
    OrderCreate,
    OrderStatusUpdate,
    OrderListResponse,
    is_valid_status_transition,
    new_system_blocker,
)
from models.slot import (
    SlotStatus,
    SlotInfo,
    SlotStats,
    SlotGridResponse,
    AvailabilityReason,
    AvailabilityResult,
    UnavailableReason,
    TimeOption,
    TimeOptionsResponse,
)
from models.reconciliation import (
    PickupChange,
    EscalationPlan,
    EscalationResult,
    RebookStopReason,
    RebookResult,
)
from models.clock import (
    ClockState,
    ClockSpeedUpdate,
    ClockJump,
)

__all__ = [
    # Base
    "BaseSchema",

    # Location
    "Weekday",
    "OpenDay",
    "Location",
    "LocationListResponse",

    # Order
    "OrderStatus",
    "PaymentStatus",
    "OrderItem",
    "PrepDemand",
    "Order",
    "OrderCreate",
    "OrderStatusUpdate",
    "OrderListResponse",
    "is_valid_status_transition",
    "new_system_blocker",

    # Slots
    "SlotStatus",
    "SlotInfo",
    "SlotStats",
    "SlotGridResponse",
    "AvailabilityReason",
    "AvailabilityResult",
    "UnavailableReason",
    "TimeOption",
    "TimeOptionsResponse",

    # Reconciliation
    "PickupChange",
    "EscalationPlan",
    "EscalationResult",
    "RebookStopReason",
    "RebookResult",

    # Clock
    "ClockState",
    "ClockSpeedUpdate",
    "ClockJump",
]
