"""
Availability Query — earliest eligible pickup minute for a given prep cost.

Scans minutes from max(now, open_time) through close_time. A candidate
minute C is eligible when:
    - C >= now + buffer_minutes
    - C itself is free (not booked, blocked or another order's prep)
    - every minute C - i for i in [1, cost) is within today's open window
      and is not a booked/blocked pickup minute (prep may overlap prep)

Capacity problems are results, never exceptions: a missing calendar entry
is CONFIG_MISSING and a full day is CAPACITY_EXHAUSTED.
"""

from datetime import datetime, timedelta
from typing import Iterable, Iterator, Optional

import structlog

from exceptions import LocationNotFoundError
from models.location import Location
from models.order import Order
from models.slot import (
    AvailabilityReason,
    AvailabilityResult,
    SlotGridResponse,
    SlotStatus,
    TimeOption,
    TimeOptionsResponse,
    UnavailableReason,
)
from services.clock import Clock, get_clock
from services.location_service import LocationCalendar, get_location_calendar
from services.order_store import OrderStore, get_order_store
from services.slot_capacity import (
    SlotOccupancy,
    buffer_minutes_for,
    build_occupancy,
    day_config_for,
    minute_of_day,
    minutes_to_time,
    prep_cost_minutes,
    slot_grid,
    slot_stats,
    time_to_minutes,
)

logger = structlog.get_logger(__name__)


# ===================
# SCAN
# ===================

def _cost_at(
    location: Location,
    occupancy: SlotOccupancy,
    minute: int,
    prep_cost: Optional[int],
    demand: Optional[Iterable],
) -> int:
    if prep_cost is not None:
        return prep_cost
    if demand is not None:
        return prep_cost_minutes(demand, location, occupancy.day, minute)
    return 1


def _check_minute(
    occupancy: SlotOccupancy,
    minute: int,
    cost: int,
    earliest: datetime,
    midnight: datetime,
) -> Optional[UnavailableReason]:
    """Reason minute cannot be picked, or None if eligible."""
    if midnight + timedelta(minutes=minute) < earliest:
        return UnavailableReason.BUFFER

    status = occupancy.status_at(minute)
    if status == SlotStatus.BOOKED:
        return UnavailableReason.BOOKED
    if status == SlotStatus.BLOCKED:
        return UnavailableReason.BLOCKED
    if status == SlotStatus.PREP:
        return UnavailableReason.PREP

    for offset in range(1, cost):
        window_minute = minute - offset
        if window_minute < occupancy.open_minute:
            return UnavailableReason.BEFORE_OPEN
        if occupancy.is_taken(window_minute):
            return UnavailableReason.PREP_CONFLICT

    return None


def _scan(
    location: Location,
    orders: Iterable[Order],
    now: datetime,
    prep_cost: Optional[int],
    demand: Optional[list],
    exclude_order_id: Optional[str],
) -> tuple[AvailabilityReason, Iterator[TimeOption]]:
    day = day_config_for(location, now)
    if day is None or not day.is_open:
        return AvailabilityReason.CONFIG_MISSING, iter(())

    occupancy = build_occupancy(location, orders, now, exclude_order_id=exclude_order_id)
    start = max(minute_of_day(now), time_to_minutes(day.open_time))
    close = time_to_minutes(day.close_time)
    if start > close:
        return AvailabilityReason.AFTER_CLOSE, iter(())

    earliest = now + timedelta(minutes=buffer_minutes_for(location))
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)

    def options() -> Iterator[TimeOption]:
        for minute in range(start, close + 1):
            cost = _cost_at(location, occupancy, minute, prep_cost, demand)
            reason = _check_minute(occupancy, minute, cost, earliest, midnight)
            yield TimeOption(
                time=minutes_to_time(minute),
                available=reason is None,
                unavailable_reason=reason,
                prep_cost_minutes=cost,
            )

    return AvailabilityReason.OK, options()


def find_next_available_slot(
    location: Optional[Location],
    orders: Iterable[Order],
    now: datetime,
    prep_cost: Optional[int] = None,
    demand: Optional[list] = None,
    exclude_order_id: Optional[str] = None,
) -> AvailabilityResult:
    """
    Earliest eligible pickup minute for today.

    Args:
        location: Location to book at (None reports CONFIG_MISSING)
        orders: Order snapshot (all locations are fine, filtered here)
        now: Reference instant from the injected clock
        prep_cost: Fixed cost in minutes (system blockers use 1)
        demand: Lines to cost per candidate minute (rush rate depends on it)
        exclude_order_id: Order being re-evaluated; its own minutes don't count

    Returns:
        AvailabilityResult with pickup_time set, or the reason there is none
    """
    if location is None:
        return AvailabilityResult(reason=AvailabilityReason.CONFIG_MISSING)

    reason, options = _scan(location, orders, now, prep_cost, demand, exclude_order_id)
    if reason != AvailabilityReason.OK:
        logger.debug("no_slot_window", location_id=location.id, reason=reason.value)
        return AvailabilityResult(reason=reason)

    for option in options:
        if option.available:
            return AvailabilityResult(
                pickup_time=option.time,
                prep_cost_minutes=option.prep_cost_minutes,
            )

    logger.info("capacity_exhausted", location_id=location.id, now=now.isoformat())
    return AvailabilityResult(reason=AvailabilityReason.CAPACITY_EXHAUSTED)


def list_time_options(
    location: Optional[Location],
    orders: Iterable[Order],
    now: datetime,
    prep_cost: Optional[int] = None,
    demand: Optional[list] = None,
    exclude_order_id: Optional[str] = None,
) -> tuple[AvailabilityReason, list[TimeOption]]:
    """Every minute from the scan start through close with its availability."""
    if location is None:
        return AvailabilityReason.CONFIG_MISSING, []

    reason, options = _scan(location, orders, now, prep_cost, demand, exclude_order_id)
    return reason, list(options)


# ===================
# SERVICE
# ===================

class AvailabilityService:
    """
    Read-only slot views for pickers and dashboards.

    Loads the latest snapshot from the calendar and order store, reads the
    injected clock, and delegates to the pure functions above.
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

    def _load(self, location_id: str) -> tuple[Optional[Location], list[Order]]:
        try:
            location = self.calendar.get(location_id)
        except LocationNotFoundError:
            logger.warning("availability_unknown_location", location_id=location_id)
            return None, []
        if not location.active:
            return None, []
        return location, self.store.list()

    def next_available(
        self,
        location_id: str,
        demand: Optional[list] = None,
    ) -> AvailabilityResult:
        """Earliest pickup for a cart (or a 1-minute order when no cart)."""
        location, orders = self._load(location_id)
        return find_next_available_slot(location, orders, self.clock.now(), demand=demand)

    def time_options(
        self,
        location_id: str,
        demand: Optional[list] = None,
    ) -> TimeOptionsResponse:
        location, orders = self._load(location_id)
        reason, options = list_time_options(location, orders, self.clock.now(), demand=demand)
        next_available = next((o.time for o in options if o.available), None)
        if reason == AvailabilityReason.OK and next_available is None:
            reason = AvailabilityReason.CAPACITY_EXHAUSTED
        return TimeOptionsResponse(
            location_id=location_id,
            reason=reason,
            next_available=next_available,
            options=options,
        )

    def grid(
        self,
        location_id: str,
        minutes_before: int = 5,
        minutes_after: int = 60,
    ) -> SlotGridResponse:
        """Rolling occupancy grid for the live orders dashboard."""
        location = self.calendar.get(location_id)
        orders = self.store.list()
        now = self.clock.now()
        slots = slot_grid(location, orders, now, minutes_before, minutes_after)
        return SlotGridResponse(
            location_id=location_id,
            now=minutes_to_time(minute_of_day(now)),
            slots=slots,
            stats=slot_stats(slots),
        )


# Singleton instance
_availability_service: Optional[AvailabilityService] = None


def get_availability_service() -> AvailabilityService:
    """Get or create AvailabilityService instance."""
    global _availability_service
    if _availability_service is None:
        _availability_service = AvailabilityService()
    return _availability_service


def reset_availability_service() -> None:
    global _availability_service
    _availability_service = None
