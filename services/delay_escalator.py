"""
Delay Detector & Escalator.

When the kitchen falls behind, future capacity is withdrawn by inserting
system blocker orders, one per minute of delay. Each blocker carries a
blocking_level; levels 1..N exist at most once per location and day, so
the number of withdrawn minutes tracks the largest delay:

    required_level = max delay among today's overdue orders
    current_level  = highest blocking_level already placed today
    -> create blockers for current_level+1 .. required_level

Blockers are booked with prep_cost=1 through the same availability query
as customers, so they land on the earliest free minutes after the buffer.
Blockers are never removed; levels restart with the next day's orders.
"""

import uuid
from datetime import datetime
from typing import Callable, Iterable, Optional

import structlog

from exceptions import BlockerLevelExistsError, StoreUnavailableError
from integrations.telegram import notify_kitchen_delay
from models.location import Location
from models.order import Order, OrderStatus, new_system_blocker
from models.reconciliation import EscalationPlan, EscalationResult
from services.availability_service import find_next_available_slot
from services.clock import Clock, get_clock
from services.location_service import LocationCalendar, get_location_calendar
from services.order_store import OrderStore, get_order_store
from services.overdue import max_delay_minutes

logger = structlog.get_logger(__name__)

BLOCKER_PREP_COST = 1


def new_blocker_id() -> str:
    return f"blk-{uuid.uuid4().hex[:12]}"


def current_blocking_level(orders: Iterable[Order], location_id: str, now: datetime) -> int:
    """Highest blocking level placed today for the location (0 if none)."""
    today = now.date()
    levels = [
        order.blocking_level
        for order in orders
        if order.status == OrderStatus.BLOCKED
        and order.location_id == location_id
        and order.created_at.date() == today
        and order.blocking_level is not None
    ]
    return max(levels, default=0)


def plan_escalation(
    location: Location,
    orders: Iterable[Order],
    now: datetime,
    id_factory: Callable[[], str] = new_blocker_id,
) -> EscalationPlan:
    """
    Blockers needed to bring the location's blocking level up to its delay.

    Each planned blocker is added to the working snapshot before the next
    level is placed, so levels never share a minute. Planning stops at the
    first level with no free minute left today.
    """
    working = list(orders)
    max_delay = max_delay_minutes(working, location.id, now)
    current = current_blocking_level(working, location.id, now)

    plan = EscalationPlan(
        location_id=location.id,
        max_delay_minutes=max_delay,
        current_level=current,
        required_level=max_delay,
    )
    if not plan.needs_escalation:
        return plan

    for level in range(current + 1, max_delay + 1):
        slot = find_next_available_slot(location, working, now, prep_cost=BLOCKER_PREP_COST)
        if not slot.available:
            logger.warning(
                "escalation_out_of_capacity",
                location_id=location.id,
                level=level,
                reason=slot.reason.value,
            )
            plan.exhausted = True
            break

        blocker = new_system_blocker(
            order_id=id_factory(),
            location_id=location.id,
            pickup_time=slot.pickup_time,
            level=level,
            created_at=now,
        )
        working.append(blocker)
        plan.blockers.append(blocker)

    return plan


class MinuteTrigger:
    """
    Fires once per minute transition of the observed clock.

    The first observation fires. Jumping the clock backwards also counts
    as a transition.
    """

    def __init__(self):
        self._last_minute: Optional[datetime] = None

    def should_fire(self, now: datetime) -> bool:
        minute = now.replace(second=0, microsecond=0)
        if minute == self._last_minute:
            return False
        self._last_minute = minute
        return True

    def reset(self) -> None:
        self._last_minute = None


class DelayEscalator:
    """
    Runs escalation ticks against the store.

    Blockers are written one at a time. A level that another writer created
    first (BlockerLevelExistsError) ends the location's tick; the next tick
    re-reads and continues from the new current level.
    """

    def __init__(
        self,
        store: Optional[OrderStore] = None,
        calendar: Optional[LocationCalendar] = None,
        clock: Optional[Clock] = None,
        notifier: Optional[Callable[[Location, EscalationResult], bool]] = None,
    ):
        self.store = store or get_order_store()
        self.calendar = calendar or get_location_calendar()
        self.clock = clock or get_clock()
        self.notifier = notifier or notify_kitchen_delay
        self.trigger = MinuteTrigger()

    def _locations(self, location_id: Optional[str]) -> list[Location]:
        if location_id is not None:
            return [self.calendar.get(location_id)]
        return [location for location in self.calendar.list() if location.active]

    def escalate_location(self, location: Location, now: datetime) -> EscalationResult:
        """One escalation tick for one location."""
        try:
            orders = self.store.list()
        except StoreUnavailableError as e:
            logger.warning("escalation_deferred", location_id=location.id, error=e.message)
            return EscalationResult(
                location_id=location.id,
                max_delay_minutes=0,
                previous_level=0,
                new_level=0,
                deferred=True,
            )

        plan = plan_escalation(location, orders, now)
        result = EscalationResult(
            location_id=location.id,
            max_delay_minutes=plan.max_delay_minutes,
            previous_level=plan.current_level,
            new_level=plan.current_level,
            exhausted=plan.exhausted,
        )
        if not plan.blockers:
            return result

        logger.info(
            "kitchen_delay_detected",
            location_id=location.id,
            max_delay_minutes=plan.max_delay_minutes,
            current_level=plan.current_level,
            required_level=plan.required_level,
        )

        for blocker in plan.blockers:
            try:
                created = self.store.create(blocker)
            except BlockerLevelExistsError:
                logger.info(
                    "blocker_level_taken",
                    location_id=location.id,
                    level=blocker.blocking_level,
                )
                break
            except StoreUnavailableError as e:
                logger.warning(
                    "escalation_deferred",
                    location_id=location.id,
                    level=blocker.blocking_level,
                    error=e.message,
                )
                result.deferred = True
                break
            result.created.append(created)
            result.new_level = created.blocking_level

        if result.created:
            logger.info(
                "blockers_created",
                location_id=location.id,
                levels=[order.blocking_level for order in result.created],
                pickup_times=[order.pickup_time for order in result.created],
            )
            self.notifier(location, result)

        return result

    def run_once(self, location_id: Optional[str] = None) -> list[EscalationResult]:
        """
        Escalate every active location (or just location_id).

        Raises:
            LocationNotFoundError: location_id is unknown
        """
        now = self.clock.now()
        try:
            locations = self._locations(location_id)
        except StoreUnavailableError as e:
            logger.warning("escalation_deferred", error=e.message)
            return []

        return [self.escalate_location(location, now) for location in locations]

    def on_tick(self) -> Optional[list[EscalationResult]]:
        """Poll hook: escalates only when the clock entered a new minute."""
        if not self.trigger.should_fire(self.clock.now()):
            return None
        return self.run_once()


# Singleton instance
_delay_escalator: Optional[DelayEscalator] = None


def get_delay_escalator() -> DelayEscalator:
    """Get or create DelayEscalator instance."""
    global _delay_escalator
    if _delay_escalator is None:
        _delay_escalator = DelayEscalator()
    return _delay_escalator


def reset_delay_escalator() -> None:
    global _delay_escalator
    _delay_escalator = None
