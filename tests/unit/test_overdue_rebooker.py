"""
Unit tests for the overdue rebooker.

Run: pytest tests/unit/test_overdue_rebooker.py -v
"""

from datetime import datetime, timedelta
from unittest.mock import MagicMock

from exceptions import OrderVersionConflictError, StoreUnavailableError
from models.reconciliation import RebookStopReason
from services.availability_service import find_next_available_slot
from services.overdue_rebooker import OverdueRebooker, plan_rebook_pass

from tests.factories import OrderFactory, MONDAY_NOON


def at(hh_mm: str) -> datetime:
    hour, minute = (int(part) for part in hh_mm.split(":"))
    return MONDAY_NOON.replace(hour=hour, minute=minute)


# ===================
# PLANNING
# ===================

class TestPlanRebookPass:
    """Tests for plan_rebook_pass()"""

    def test_overdue_order_moves_to_next_slot(self, location):
        order = OrderFactory.build(pickup_time="12:20")

        changes, working = plan_rebook_pass({"loc-1": location}, [order], at("12:30"))

        assert len(changes) == 1
        assert changes[0].order_id == order.id
        assert changes[0].old_pickup_time == "12:20"
        assert changes[0].new_pickup_time == "12:38"
        assert changes[0].version == 1
        assert working[0].pickup_time == "12:38"

    def test_later_orders_see_earlier_moves(self, location):
        """Two one-unit rush orders (2 minutes each) cannot share or overlap."""
        first = OrderFactory.build(pickup_time="12:10")
        second = OrderFactory.build(pickup_time="12:20")

        changes, _ = plan_rebook_pass({"loc-1": location}, [first, second], at("12:30"))

        assert [c.new_pickup_time for c in changes] == ["12:38", "12:40"]

    def test_not_overdue_orders_untouched(self, location):
        order = OrderFactory.build(pickup_time="12:45")

        changes, _ = plan_rebook_pass({"loc-1": location}, [order], at("12:30"))

        assert changes == []

    def test_prior_day_orders_take_distinct_minutes(self, location, now):
        """Left-over orders occupy the minute they are moved to, so nobody else gets it."""
        yesterday = now - timedelta(days=1)
        first = OrderFactory.build(pickup_time="18:00", created_at=yesterday)
        second = OrderFactory.build(pickup_time="18:05", created_at=yesterday)

        changes, working = plan_rebook_pass({"loc-1": location}, [first, second], now)
        customer = find_next_available_slot(location, working, now, prep_cost=1)

        assert [c.new_pickup_time for c in changes] == ["12:08", "12:10"]
        assert all(c.pickup_day == now.date() for c in changes)
        # 12:09 is prep for 12:10
        assert customer.pickup_time == "12:11"

    def test_unknown_location_skipped(self, location):
        order = OrderFactory.build(pickup_time="12:20", location_id="loc-9")

        changes, _ = plan_rebook_pass({"loc-1": location}, [order], at("12:30"))

        assert changes == []

    def test_no_capacity_no_change(self, location):
        order = OrderFactory.build(pickup_time="18:50")

        changes, _ = plan_rebook_pass({"loc-1": location}, [order], at("18:59"))

        assert changes == []


# ===================
# RUNNER
# ===================

class TestOverdueRebooker:
    """Tests for OverdueRebooker.run_once()"""

    def test_nothing_overdue(self, order_store, calendar, clock):
        order_store.create(OrderFactory.build(pickup_time="12:45"))

        result = OverdueRebooker(order_store, calendar, clock).run_once()

        assert result.stop_reason == RebookStopReason.NO_OVERDUE
        assert result.iterations == 0
        assert result.changes == []

    def test_rebooks_and_stops_when_clear(self, order_store, calendar, clock):
        clock.jump(at("12:30"))
        order = order_store.create(OrderFactory.build(pickup_time="12:20"))

        result = OverdueRebooker(order_store, calendar, clock).run_once()

        assert result.stop_reason == RebookStopReason.NO_OVERDUE
        assert result.iterations == 1
        assert result.remaining_overdue == 0
        stored = order_store.get(order.id)
        assert stored.pickup_time == "12:38"
        assert stored.version == 2

    def test_prior_day_order_reaches_fixed_point(self, order_store, calendar, clock):
        """Left-over orders stay overdue after the move, so the second pass changes nothing."""
        clock.jump(at("12:30"))
        order_store.create(OrderFactory.build(
            pickup_time="18:00",
            created_at=at("12:30") - timedelta(days=1),
        ))

        result = OverdueRebooker(order_store, calendar, clock).run_once()

        assert result.stop_reason == RebookStopReason.FIXED_POINT
        assert result.iterations == 2
        assert len(result.changes) == 1
        assert result.remaining_overdue == 1

    def test_prior_day_orders_stored_on_today(self, order_store, calendar, clock, now):
        yesterday = now - timedelta(days=1)
        first = order_store.create(OrderFactory.build(pickup_time="18:00", created_at=yesterday))
        second = order_store.create(OrderFactory.build(pickup_time="18:05", created_at=yesterday))

        result = OverdueRebooker(order_store, calendar, clock).run_once()

        assert result.stop_reason == RebookStopReason.FIXED_POINT
        assert order_store.get(first.id).pickup_time == "12:08"
        assert order_store.get(second.id).pickup_time == "12:10"
        assert order_store.get(second.id).rebooked_on == now.date()

    def test_budget_exhausted(self, order_store, calendar, clock):
        clock.jump(at("12:30"))
        order_store.create(OrderFactory.build(pickup_time="12:20"))

        result = OverdueRebooker(order_store, calendar, clock, max_iterations=1).run_once()

        assert result.stop_reason == RebookStopReason.BUDGET_EXHAUSTED
        assert result.iterations == 1
        assert result.remaining_overdue == 0

    def test_version_conflict_is_skipped(self, calendar, clock):
        clock.jump(at("12:30"))
        order = OrderFactory.build(pickup_time="12:20")
        store = MagicMock()
        store.list.return_value = [order]
        store.update.side_effect = OrderVersionConflictError(order.id, 1, 2)

        result = OverdueRebooker(store, calendar, clock).run_once()

        assert result.stop_reason == RebookStopReason.FIXED_POINT
        assert result.changes == []
        store.update.assert_called_once_with(
            order.id,
            {"pickup_time": "12:38", "rebooked_on": MONDAY_NOON.date()},
            expected_version=1,
        )

    def test_store_unavailable_on_read(self, calendar, clock):
        store = MagicMock()
        store.list.side_effect = StoreUnavailableError("select", "down")

        result = OverdueRebooker(store, calendar, clock).run_once()

        assert result.stop_reason == RebookStopReason.STORE_UNAVAILABLE
        assert result.iterations == 0

    def test_store_unavailable_on_write(self, calendar, clock):
        clock.jump(at("12:30"))
        store = MagicMock()
        store.list.return_value = [OrderFactory.build(pickup_time="12:20")]
        store.update.side_effect = StoreUnavailableError("update", "down")

        result = OverdueRebooker(store, calendar, clock).run_once()

        assert result.stop_reason == RebookStopReason.STORE_UNAVAILABLE
        assert result.remaining_overdue == 1
