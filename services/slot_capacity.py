"""
Slot capacity model: per-minute occupancy of a kitchen day.

Pure functions over (location, orders, now). Nothing here reads a clock or
touches the store; callers pass the snapshot in.

Occupancy rules:
    - An order's pickup minute is exclusive: "booked" for customer orders,
      "blocked" for system blockers.
    - The prep_cost - 1 minutes immediately before a customer pickup are
      "prep". Prep from different orders may share a minute, but prep never
      overrides a booked/blocked minute.
    - Minutes before the day's open time are never marked.

Example (regular rate 60s/unit, 5 units picked up at 13:00):
    prep_cost = ceil(5 * 60 / 60) = 5
    12:56-12:59 -> prep, 13:00 -> booked
"""

from datetime import datetime
from math import ceil
from typing import Iterable, Optional

import structlog

from config import settings
from models.location import Location, OpenDay, Weekday
from models.order import Order, OrderStatus
from models.slot import SlotInfo, SlotStats, SlotStatus

logger = structlog.get_logger(__name__)

MINUTES_PER_DAY = 24 * 60


# ===================
# TIME HELPERS
# ===================

def time_to_minutes(time_str: str) -> int:
    """Convert HH:MM to minutes since midnight."""
    hours, minutes = time_str.split(":")
    return int(hours) * 60 + int(minutes)


def minutes_to_time(total_minutes: int) -> str:
    """Convert minutes since midnight to HH:MM."""
    hours = (total_minutes // 60) % 24
    minutes = total_minutes % 60
    return f"{hours:02d}:{minutes:02d}"


def minute_of_day(now: datetime) -> int:
    """Minutes since midnight, seconds dropped."""
    return now.hour * 60 + now.minute


# ===================
# LOCATION PARAMETERS
# ===================

def day_config_for(location: Location, now: datetime) -> Optional[OpenDay]:
    """Open-day entry for now's weekday, or None if not configured."""
    return location.day_config(Weekday.from_index(now.weekday()))


def buffer_minutes_for(location: Location) -> int:
    """Lead minutes; unset or 0 falls back to the configured default."""
    return location.buffer_minutes or settings.default_buffer_minutes


def prep_rates_for(location: Location) -> tuple[int, int]:
    """(regular, rush) prep seconds per unit, falling back to settings."""
    regular = location.regular_prep_seconds
    rush = location.rush_prep_seconds
    return (
        settings.default_regular_prep_seconds if regular is None else regular,
        settings.default_rush_prep_seconds if rush is None else rush,
    )


def is_rush_hour(day: Optional[OpenDay], minute: int) -> bool:
    """True if minute falls in [rush_start, rush_end)."""
    if day is None:
        return False
    return time_to_minutes(day.rush_start) <= minute < time_to_minutes(day.rush_end)


def prep_cost_minutes(
    items: Iterable,
    location: Location,
    day: Optional[OpenDay],
    pickup_minute: int,
) -> int:
    """
    Preparation cost of a set of lines picked up at pickup_minute.

    Args:
        items: Anything with quantity and prep_eligible (OrderItem, PrepDemand)
        location: Location providing the per-unit rates
        day: Today's open-day entry (rush window)
        pickup_minute: Pickup minute of day, decides rush vs regular rate

    Returns:
        ceil(sum(quantity * seconds_per_unit) / 60); non-eligible lines count zero
    """
    regular, rush = prep_rates_for(location)
    seconds_per_unit = rush if is_rush_hour(day, pickup_minute) else regular

    total_seconds = sum(
        item.quantity * seconds_per_unit
        for item in items
        if item.prep_eligible
    )
    return ceil(total_seconds / 60)


def order_prep_cost(order: Order, location: Location, day: Optional[OpenDay]) -> int:
    """Prep cost of an already scheduled order (0 for system blockers)."""
    if order.pickup_time is None or order.is_system_blocker:
        return 0
    return prep_cost_minutes(order.items, location, day, time_to_minutes(order.pickup_time))


# ===================
# SNAPSHOT FILTERS
# ===================

def todays_orders(
    orders: Iterable[Order],
    location_id: str,
    now: datetime,
    exclude_order_id: Optional[str] = None,
) -> list[Order]:
    """
    Orders that occupy capacity today.

    Non-cancelled, scheduled, for this location, with the pickup on now's
    calendar date (created today, or rebooked onto today). exclude_order_id
    drops the order being re-evaluated.
    """
    today = now.date()
    return [
        order for order in orders
        if order.location_id == location_id
        and order.status != OrderStatus.CANCELLED
        and order.pickup_time is not None
        and order.pickup_day == today
        and order.id != exclude_order_id
    ]


# ===================
# OCCUPANCY
# ===================

class SlotOccupancy:
    """
    Marked minutes of one location's day.

    Unmarked minutes are free. Built by build_occupancy().
    """

    def __init__(self, location_id: str, day: Optional[OpenDay]):
        self.location_id = location_id
        self.day = day
        self.open_minute = time_to_minutes(day.open_time) if day else 0
        self.close_minute = time_to_minutes(day.close_time) if day else MINUTES_PER_DAY - 1
        self._marks: dict[int, SlotInfo] = {}

    def mark_pickup(self, minute: int, order: Order) -> None:
        blocker = order.is_system_blocker
        self._marks[minute] = SlotInfo(
            time=minutes_to_time(minute),
            status=SlotStatus.BLOCKED if blocker else SlotStatus.BOOKED,
            order_contact=order.contact,
            is_system_blocker=blocker,
        )

    def mark_prep(self, minute: int, order: Order) -> bool:
        """Mark a prep minute unless it is a pickup or before opening."""
        if minute < self.open_minute:
            return False
        existing = self._marks.get(minute)
        if existing is not None and existing.status != SlotStatus.PREP:
            return False
        self._marks[minute] = SlotInfo(
            time=minutes_to_time(minute),
            status=SlotStatus.PREP,
            prep_for_order=order.contact,
        )
        return True

    def status_at(self, minute: int) -> SlotStatus:
        info = self._marks.get(minute)
        return info.status if info else SlotStatus.FREE

    def is_taken(self, minute: int) -> bool:
        """Booked or blocked (an exclusive pickup minute)."""
        return self.status_at(minute) in (SlotStatus.BOOKED, SlotStatus.BLOCKED)

    def classify(self, minute: int, now: datetime) -> SlotInfo:
        """Classification of minute as seen at now."""
        info = self._marks.get(minute)
        if minute < minute_of_day(now):
            return SlotInfo(
                time=minutes_to_time(minute),
                status=SlotStatus.PAST,
                order_contact=info.order_contact if info else None,
            )
        if info is None:
            return SlotInfo(time=minutes_to_time(minute), status=SlotStatus.FREE)
        return info

    def marked_minutes(self, status: Optional[SlotStatus] = None) -> list[int]:
        return sorted(
            minute for minute, info in self._marks.items()
            if status is None or info.status == status
        )


def build_occupancy(
    location: Location,
    orders: Iterable[Order],
    now: datetime,
    exclude_order_id: Optional[str] = None,
) -> SlotOccupancy:
    """
    Build today's occupancy for a location.

    Pickups are marked first so prep can never override them.
    """
    day = day_config_for(location, now)
    occupancy = SlotOccupancy(location.id, day)
    active = todays_orders(orders, location.id, now, exclude_order_id=exclude_order_id)

    for order in active:
        occupancy.mark_pickup(time_to_minutes(order.pickup_time), order)

    for order in active:
        if order.is_system_blocker:
            continue
        cost = order_prep_cost(order, location, day)
        pickup = time_to_minutes(order.pickup_time)
        for offset in range(1, cost):
            occupancy.mark_prep(pickup - offset, order)

    logger.debug(
        "occupancy_built",
        location_id=location.id,
        orders=len(active),
        booked=len(occupancy.marked_minutes(SlotStatus.BOOKED)),
        blocked=len(occupancy.marked_minutes(SlotStatus.BLOCKED)),
        prep=len(occupancy.marked_minutes(SlotStatus.PREP)),
    )
    return occupancy


# ===================
# VIEWS
# ===================

def slot_grid(
    location: Location,
    orders: Iterable[Order],
    now: datetime,
    minutes_before: int = 5,
    minutes_after: int = 60,
) -> list[SlotInfo]:
    """Rolling grid of minutes around now (past minutes first)."""
    occupancy = build_occupancy(location, orders, now)
    current = minute_of_day(now)

    slots = []
    for offset in range(-minutes_before, minutes_after):
        minute = current + offset
        if minute < 0 or minute >= MINUTES_PER_DAY:
            continue
        slots.append(occupancy.classify(minute, now))
    return slots


def slot_stats(slots: Iterable[SlotInfo]) -> SlotStats:
    """Count minutes per status."""
    stats = SlotStats()
    for slot in slots:
        field = slot.status.value
        setattr(stats, field, getattr(stats, field) + 1)
    return stats
