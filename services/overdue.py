"""
Overdue definition shared by the delay escalator and the overdue rebooker.

A PENDING customer order is overdue when now has passed its pickup minute.
Orders created today measure their real delay in minutes; orders left over
from a prior day count as fully overdue. Orders dated in the future are
ignored.
"""

from datetime import datetime
from typing import Iterable, Optional

from models.order import Order, OrderStatus
from models.reconciliation import FULLY_OVERDUE_MINUTES
from services.slot_capacity import minute_of_day, time_to_minutes


def order_delay_minutes(order: Order, now: datetime) -> int:
    """Minutes an order is behind its pickup time (0 if not overdue)."""
    if order.status != OrderStatus.PENDING or order.pickup_time is None:
        return 0
    if order.is_system_blocker:
        return 0

    created = order.created_at.date()
    today = now.date()
    if created > today:
        return 0
    if created < today:
        return FULLY_OVERDUE_MINUTES

    return max(0, minute_of_day(now) - time_to_minutes(order.pickup_time))


def is_order_overdue(order: Order, now: datetime) -> bool:
    return order_delay_minutes(order, now) > 0


def overdue_orders(
    orders: Iterable[Order],
    now: datetime,
    location_id: Optional[str] = None,
) -> list[Order]:
    """Overdue orders, optionally for one location."""
    return [
        order for order in orders
        if (location_id is None or order.location_id == location_id)
        and is_order_overdue(order, now)
    ]


def max_delay_minutes(orders: Iterable[Order], location_id: str, now: datetime) -> int:
    """Largest delay among the location's overdue orders (0 if none)."""
    delays = [
        order_delay_minutes(order, now)
        for order in orders
        if order.location_id == location_id
    ]
    return max(delays, default=0)
