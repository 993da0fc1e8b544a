"""
Order Service — customer ordering and staff status actions.

Placing an order books a pickup minute through the availability query:
either the earliest slot for the cart, or a requested minute that the
time options list as available. Staff move orders through
PENDING -> READY -> COMPLETED (or CANCELLED). System blockers are never
touched here.
"""

import uuid
from datetime import datetime
from typing import Optional

import structlog

from exceptions import (
    BlockedOrderImmutableError,
    InvalidStatusTransitionError,
    SlotUnavailableError,
)
from models.order import (
    Order,
    OrderCreate,
    OrderStatus,
    is_valid_status_transition,
)
from models.slot import AvailabilityReason
from services.availability_service import find_next_available_slot, list_time_options
from services.clock import Clock, get_clock
from services.location_service import LocationCalendar, get_location_calendar
from services.order_store import OrderStore, get_order_store
from services.overdue import is_order_overdue
from services.slot_capacity import time_to_minutes

logger = structlog.get_logger(__name__)


def new_order_id() -> str:
    return str(uuid.uuid4())


class OrderService:
    """
    Order business logic.

    Reads and writes go through the order store; time comes from the
    injected clock.
    """

    def __init__(
        self,
        store: Optional[OrderStore] = None,
        calendar: Optional[LocationCalendar] = None,
        clock: Optional[Clock] = None,
    ):
        self.store = store or get_order_store()
        self.calendar = calendar or get_location_calendar()
        self.clock = clock or get_clock()

    # ===================
    # READ OPERATIONS
    # ===================

    def list_orders(
        self,
        location_id: Optional[str] = None,
        status: Optional[OrderStatus] = None,
    ) -> list[Order]:
        """
        All orders, optionally filtered, earliest pickup first.

        Orders without a pickup time sort last.
        """
        orders = [
            order for order in self.store.list()
            if (location_id is None or order.location_id == location_id)
            and (status is None or order.status == status)
        ]
        orders.sort(key=lambda o: (
            o.pickup_time is None,
            time_to_minutes(o.pickup_time) if o.pickup_time else 0,
            o.created_at,
        ))
        logger.debug("orders_listed", location_id=location_id, status=status, count=len(orders))
        return orders

    def get_order(self, order_id: str) -> Order:
        """
        Raises:
            OrderNotFoundError: If order doesn't exist
        """
        return self.store.get(order_id)

    def is_order_delayed(self, order: Order, now: Optional[datetime] = None) -> bool:
        """True if a PENDING order's pickup minute has passed."""
        return is_order_overdue(order, now or self.clock.now())

    # ===================
    # WRITE OPERATIONS
    # ===================

    def place_order(self, data: OrderCreate) -> Order:
        """
        Create a PENDING order on an available pickup minute.

        Args:
            data: Order payload; pickup_time None books the earliest slot

        Returns:
            Created order

        Raises:
            LocationNotFoundError: Unknown location
            SlotUnavailableError: Location closed/inactive, day full, or the
                requested minute is not available
        """
        location = self.calendar.get(data.location_id)
        now = self.clock.now()

        logger.info(
            "placing_order",
            location_id=data.location_id,
            requested_pickup=data.pickup_time,
            lines=len(data.items),
        )

        if not location.active:
            raise SlotUnavailableError(data.pickup_time, AvailabilityReason.CONFIG_MISSING.value)

        orders = self.store.list()

        if data.pickup_time is None:
            slot = find_next_available_slot(location, orders, now, demand=data.items)
            if not slot.available:
                logger.warning("order_rejected", location_id=location.id, reason=slot.reason.value)
                raise SlotUnavailableError(None, slot.reason.value)
            pickup_time = slot.pickup_time
        else:
            reason, options = list_time_options(location, orders, now, demand=data.items)
            if reason != AvailabilityReason.OK:
                raise SlotUnavailableError(data.pickup_time, reason.value)
            option = next((o for o in options if o.time == data.pickup_time), None)
            if option is None or not option.available:
                detail = option.unavailable_reason.value if option else "OUTSIDE_OPEN_HOURS"
                logger.warning(
                    "order_rejected",
                    location_id=location.id,
                    pickup_time=data.pickup_time,
                    reason=detail,
                )
                raise SlotUnavailableError(data.pickup_time, detail)
            pickup_time = data.pickup_time

        order = Order(
            id=new_order_id(),
            location_id=location.id,
            contact=data.contact,
            created_at=now,
            pickup_time=pickup_time,
            status=OrderStatus.PENDING,
            items=data.items,
            price=data.price,
            payment_status=data.payment_status,
        )
        created = self.store.create(order)

        logger.info(
            "order_placed",
            order_id=created.id,
            location_id=created.location_id,
            pickup_time=created.pickup_time,
        )
        return created

    def change_status(self, order_id: str, status: OrderStatus) -> Order:
        """
        Move an order to a new status.

        Raises:
            OrderNotFoundError: If order doesn't exist
            BlockedOrderImmutableError: Order is a system blocker
            InvalidStatusTransitionError: Transition not allowed
            OrderVersionConflictError: Order changed while updating
        """
        order = self.store.get(order_id)

        if order.status == OrderStatus.BLOCKED:
            raise BlockedOrderImmutableError(order_id)
        if not is_valid_status_transition(order.status, status):
            raise InvalidStatusTransitionError(order.status.value, status.value)

        updated = self.store.update(
            order_id,
            {"status": status},
            expected_version=order.version,
        )

        logger.info(
            "order_status_changed",
            order_id=order_id,
            old_status=order.status.value,
            new_status=status.value,
        )
        return updated

    def cancel_order(self, order_id: str) -> Order:
        return self.change_status(order_id, OrderStatus.CANCELLED)

    def clear_all(self) -> None:
        """Remove every order, blockers included."""
        self.store.clear_all()
        logger.info("all_orders_cleared")


# Singleton instance
_order_service: Optional[OrderService] = None


def get_order_service() -> OrderService:
    """Get or create OrderService instance."""
    global _order_service
    if _order_service is None:
        _order_service = OrderService()
    return _order_service


def reset_order_service() -> None:
    global _order_service
    _order_service = None
