"""
Order schemas for validation and serialization.

Orders are created PENDING by the ordering flow, moved forward by staff,
and only have their pickup_time changed by the overdue rebooker. BLOCKED
orders (system blockers) are created by the delay escalator and never
change afterwards.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import Field, field_validator, model_validator

from models.base import BaseSchema, validate_hhmm


SYSTEM_BLOCKER_NAME = "System Blocker"
SYSTEM_CONTACT = "SYSTEM"


class OrderStatus(str, Enum):
    """Order status values."""
    PENDING = "PENDING"
    READY = "READY"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    BLOCKED = "BLOCKED"  # System blocker (escalator only)


class PaymentStatus(str, Enum):
    PAID = "Paid"
    UNPAID = "Unpaid"


# Allowed staff transitions. Terminal states map to nothing.
STATUS_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.READY, OrderStatus.COMPLETED, OrderStatus.CANCELLED},
    OrderStatus.READY: {OrderStatus.COMPLETED, OrderStatus.CANCELLED},
    OrderStatus.COMPLETED: set(),
    OrderStatus.CANCELLED: set(),
    OrderStatus.BLOCKED: set(),
}


def is_valid_status_transition(current: OrderStatus, new: OrderStatus) -> bool:
    """
    Check if a staff status transition is valid.

    Rules:
    - PENDING can move to READY, COMPLETED or CANCELLED
    - READY can move to COMPLETED or CANCELLED
    - COMPLETED and CANCELLED are terminal
    - BLOCKED is immutable, and nothing can move into BLOCKED
    """
    return new in STATUS_TRANSITIONS[current]


# ===================
# LINE ITEMS
# ===================

class OrderItem(BaseSchema):
    """One order line."""

    name: str = Field(..., min_length=1, max_length=255, description="Product name")
    quantity: int = Field(..., ge=1, le=999, description="Units ordered")
    prep_eligible: bool = Field(
        default=True,
        description="Whether the product consumes kitchen prep time"
    )
    extras: Optional[str] = Field(None, max_length=500, description="Selected add-ons")
    removed_ingredients: Optional[str] = Field(None, max_length=500, description="Removed ingredients")


class PrepDemand(BaseSchema):
    """Prospective cart line used to cost a slot before ordering."""

    quantity: int = Field(..., ge=1, le=999)
    prep_eligible: bool = Field(default=True)


# ===================
# ORDER SCHEMAS
# ===================

class Order(BaseSchema):
    """Order as held by the order store."""

    id: str = Field(..., description="Order id")
    location_id: str = Field(..., description="Location id")
    contact: str = Field(default="", max_length=255, description="Customer contact")
    created_at: datetime = Field(..., description="Creation instant (location local time)")
    updated_at: Optional[datetime] = Field(None, description="Last update")
    pickup_time: Optional[str] = Field(None, description="Pickup minute HH:MM")
    status: OrderStatus = Field(default=OrderStatus.PENDING)
    blocking_level: Optional[int] = Field(None, ge=1, description="Escalation level (BLOCKED only)")
    items: List[OrderItem] = Field(default_factory=list)
    price: Decimal = Field(default=Decimal("0"), ge=0)
    payment_status: PaymentStatus = Field(default=PaymentStatus.UNPAID)
    version: int = Field(default=1, ge=1, description="Incremented on every update")
    rebooked_on: Optional[date] = Field(
        None,
        description="Day the rebooker moved the pickup to (prior-day orders land on it)"
    )

    @field_validator("pickup_time")
    @classmethod
    def check_pickup(cls, v: Optional[str]) -> Optional[str]:
        return validate_hhmm(v)

    @model_validator(mode="after")
    def check_blocking_level(self) -> "Order":
        if self.status == OrderStatus.BLOCKED and self.blocking_level is None:
            raise ValueError("BLOCKED orders need a blocking_level")
        if self.status != OrderStatus.BLOCKED and self.blocking_level is not None:
            raise ValueError("blocking_level is only valid on BLOCKED orders")
        return self

    @property
    def is_system_blocker(self) -> bool:
        return self.status == OrderStatus.BLOCKED and any(
            item.name == SYSTEM_BLOCKER_NAME for item in self.items
        )

    @property
    def pickup_day(self) -> date:
        """Calendar day the pickup minute belongs to."""
        return self.rebooked_on or self.created_at.date()


class OrderCreate(BaseSchema):
    """
    Place a new customer order.

    pickup_time is optional: when omitted the earliest available slot for
    the cart is assigned.
    """

    location_id: str = Field(..., description="Location id")
    contact: str = Field(..., min_length=1, max_length=255, description="Customer contact")
    items: List[OrderItem] = Field(..., min_length=1, description="Order lines")
    pickup_time: Optional[str] = Field(None, description="Requested pickup minute HH:MM")
    price: Decimal = Field(default=Decimal("0"), ge=0)
    payment_status: PaymentStatus = Field(default=PaymentStatus.UNPAID)

    @field_validator("pickup_time")
    @classmethod
    def check_pickup(cls, v: Optional[str]) -> Optional[str]:
        return validate_hhmm(v)

    @field_validator("price")
    @classmethod
    def round_price(cls, v: Decimal) -> Decimal:
        """Round to 2 decimal places."""
        return round(v, 2)


class OrderStatusUpdate(BaseSchema):
    """Update only the status of an order (staff action)."""

    status: OrderStatus = Field(..., description="New status")


class OrderListResponse(BaseSchema):
    """List of orders."""

    data: List[Order]
    total: int


def new_system_blocker(
    order_id: str,
    location_id: str,
    pickup_time: str,
    level: int,
    created_at: datetime,
) -> Order:
    """Build the synthetic order that withdraws one future minute from sale."""
    return Order(
        id=order_id,
        location_id=location_id,
        contact=SYSTEM_CONTACT,
        created_at=created_at,
        pickup_time=pickup_time,
        status=OrderStatus.BLOCKED,
        blocking_level=level,
        items=[OrderItem(name=SYSTEM_BLOCKER_NAME, quantity=1, prep_eligible=False)],
        price=Decimal("0"),
        payment_status=PaymentStatus.UNPAID,
    )
