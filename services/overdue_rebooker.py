"""
Overdue Rebooker.

Moves every overdue PENDING order to its next feasible pickup minute,
repeating until nothing is overdue, a pass changes nothing, or the
iteration budget runs out. Each pass:

    1. reload locations and orders from the store
    2. for each overdue order, ask the availability query for the next
       slot with the order's own lines as demand, excluding the order
       itself from occupancy
    3. write changed pickup times back with the version they were planned
       against; concurrently modified orders are skipped

Moved orders still count toward the delay escalator's level if they stay
overdue; blockers already placed are left alone.
"""

from datetime import datetime
from typing import Iterable, Optional

import structlog

from config import settings
from exceptions import (
    BlockedOrderImmutableError,
    OrderNotFoundError,
    OrderVersionConflictError,
    StoreUnavailableError,
)
from models.location import Location
from models.order import Order
from models.reconciliation import PickupChange, RebookResult, RebookStopReason
from services.availability_service import find_next_available_slot
from services.clock import Clock, get_clock
from services.location_service import LocationCalendar, get_location_calendar
from services.order_store import OrderStore, get_order_store
from services.overdue import overdue_orders

logger = structlog.get_logger(__name__)


def plan_rebook_pass(
    locations: dict[str, Location],
    orders: Iterable[Order],
    now: datetime,
) -> tuple[list[PickupChange], list[Order]]:
    """
    Plan one rebooking pass.

    Changes are applied to a working copy of the snapshot as they are
    planned, so later orders in the same pass see earlier moves. A moved
    order is pinned to today via rebooked_on, so orders left over from a
    previous day occupy their new minute too.

    Returns:
        (changes, working snapshot after the changes)
    """
    working = list(orders)
    changes: list[PickupChange] = []

    for order in overdue_orders(working, now):
        location = locations.get(order.location_id)
        if location is None or not location.active:
            logger.debug("rebook_skipped_no_location", order_id=order.id, location_id=order.location_id)
            continue

        slot = find_next_available_slot(
            location,
            working,
            now,
            demand=order.items,
            exclude_order_id=order.id,
        )
        if not slot.available:
            continue
        if slot.pickup_time == order.pickup_time and order.pickup_day == now.date():
            continue

        changes.append(PickupChange(
            order_id=order.id,
            location_id=order.location_id,
            old_pickup_time=order.pickup_time,
            new_pickup_time=slot.pickup_time,
            pickup_day=now.date(),
            version=order.version,
        ))
        moved = order.model_copy(update={"pickup_time": slot.pickup_time, "rebooked_on": now.date()})
        working = [moved if o.id == order.id else o for o in working]

    return changes, working


class OverdueRebooker:
    """Iterative rebooking against the store."""

    def __init__(
        self,
        store: Optional[OrderStore] = None,
        calendar: Optional[LocationCalendar] = None,
        clock: Optional[Clock] = None,
        max_iterations: Optional[int] = None,
    ):
        self.store = store or get_order_store()
        self.calendar = calendar or get_location_calendar()
        self.clock = clock or get_clock()
        self.max_iterations = max_iterations or settings.rebook_max_iterations

    def _apply(self, change: PickupChange) -> bool:
        """Write one change; False if the order moved on since planning."""
        try:
            self.store.update(
                change.order_id,
                {"pickup_time": change.new_pickup_time, "rebooked_on": change.pickup_day},
                expected_version=change.version,
            )
        except (OrderVersionConflictError, OrderNotFoundError, BlockedOrderImmutableError) as e:
            logger.info("rebook_skipped", order_id=change.order_id, reason=e.code)
            return False

        logger.info(
            "order_rebooked",
            order_id=change.order_id,
            location_id=change.location_id,
            old_pickup_time=change.old_pickup_time,
            new_pickup_time=change.new_pickup_time,
        )
        return True

    def run_once(self) -> RebookResult:
        """Rebook until no order is overdue or progress stops."""
        result = RebookResult()
        remaining = 0

        for _ in range(self.max_iterations):
            try:
                locations = self.calendar.by_id()
                orders = self.store.list()
            except StoreUnavailableError as e:
                logger.warning("rebook_deferred", iteration=result.iterations, error=e.message)
                result.stop_reason = RebookStopReason.STORE_UNAVAILABLE
                result.remaining_overdue = remaining
                return result

            now = self.clock.now()
            overdue = overdue_orders(orders, now)
            remaining = len(overdue)
            if not overdue:
                result.stop_reason = RebookStopReason.NO_OVERDUE
                result.remaining_overdue = 0
                return result

            result.iterations += 1
            changes, _ = plan_rebook_pass(locations, orders, now)

            applied = 0
            for change in changes:
                try:
                    if self._apply(change):
                        applied += 1
                        result.changes.append(change)
                except StoreUnavailableError as e:
                    logger.warning("rebook_deferred", order_id=change.order_id, error=e.message)
                    result.stop_reason = RebookStopReason.STORE_UNAVAILABLE
                    result.remaining_overdue = remaining
                    return result

            if applied == 0:
                logger.info("rebook_fixed_point", iterations=result.iterations, overdue=remaining)
                result.stop_reason = RebookStopReason.FIXED_POINT
                result.remaining_overdue = remaining
                return result

        logger.warning(
            "rebook_budget_exhausted",
            iterations=result.iterations,
            changes=len(result.changes),
        )
        result.stop_reason = RebookStopReason.BUDGET_EXHAUSTED
        result.remaining_overdue = self._count_overdue(remaining)
        return result

    def _count_overdue(self, fallback: int) -> int:
        try:
            orders = self.store.list()
        except StoreUnavailableError as e:
            logger.warning("rebook_recount_failed", error=e.message)
            return fallback
        return len(overdue_orders(orders, self.clock.now()))


# Singleton instance
_overdue_rebooker: Optional[OverdueRebooker] = None


def get_overdue_rebooker() -> OverdueRebooker:
    """Get or create OverdueRebooker instance."""
    global _overdue_rebooker
    if _overdue_rebooker is None:
        _overdue_rebooker = OverdueRebooker()
    return _overdue_rebooker


def reset_overdue_rebooker() -> None:
    global _overdue_rebooker
    _overdue_rebooker = None
