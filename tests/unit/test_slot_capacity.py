"""
Unit tests for the slot capacity model.

Run: pytest tests/unit/test_slot_capacity.py -v
"""

from datetime import datetime, timedelta

import pytest

from models.order import OrderItem
from models.slot import SlotStatus
from services.slot_capacity import (
    build_occupancy,
    day_config_for,
    is_rush_hour,
    minutes_to_time,
    prep_cost_minutes,
    slot_grid,
    slot_stats,
    time_to_minutes,
    todays_orders,
)

from tests.factories import LocationFactory, OrderFactory


# ===================
# TIME HELPERS
# ===================

class TestTimeHelpers:
    """Tests for HH:MM conversion."""

    @pytest.mark.parametrize("text,minutes", [
        ("00:00", 0),
        ("11:00", 660),
        ("12:59", 779),
        ("23:59", 1439),
    ])
    def test_round_trip(self, text, minutes):
        assert time_to_minutes(text) == minutes
        assert minutes_to_time(minutes) == text


# ===================
# PREP COST
# ===================

class TestPrepCost:
    """Tests for prep_cost_minutes()"""

    def test_regular_rate_outside_rush(self, location, now):
        """5 units at 60s picked up at 13:00 cost 5 minutes (rush ends at 13:00)."""
        day = day_config_for(location, now)
        items = [OrderItem(name="Burger", quantity=5)]

        assert prep_cost_minutes(items, location, day, time_to_minutes("13:00")) == 5

    def test_rush_rate_inside_rush(self, location, now):
        """5 units at 90s = 450s, rounded up to 8 minutes."""
        day = day_config_for(location, now)
        items = [OrderItem(name="Burger", quantity=5)]

        assert prep_cost_minutes(items, location, day, time_to_minutes("12:30")) == 8

    def test_rush_start_is_inclusive(self, location, now):
        day = day_config_for(location, now)

        assert is_rush_hour(day, time_to_minutes("12:00"))
        assert not is_rush_hour(day, time_to_minutes("13:00"))

    def test_non_eligible_lines_cost_nothing(self, location, now):
        day = day_config_for(location, now)
        items = [
            OrderItem(name="Burger", quantity=2),
            OrderItem(name="Lemonade", quantity=3, prep_eligible=False),
        ]

        assert prep_cost_minutes(items, location, day, time_to_minutes("14:00")) == 2

    def test_only_drinks_cost_zero(self, location, now):
        day = day_config_for(location, now)
        items = [OrderItem(name="Lemonade", quantity=3, prep_eligible=False)]

        assert prep_cost_minutes(items, location, day, time_to_minutes("14:00")) == 0

    def test_missing_rates_fall_back_to_settings(self, now):
        """Location without rates uses the 60s / 90s defaults."""
        location = LocationFactory.build(regular_prep_seconds=None, rush_prep_seconds=None)
        day = day_config_for(location, now)
        items = [OrderItem(name="Burger", quantity=1)]

        assert prep_cost_minutes(items, location, day, time_to_minutes("14:00")) == 1
        assert prep_cost_minutes(items, location, day, time_to_minutes("12:10")) == 2


# ===================
# SNAPSHOT FILTER
# ===================

class TestTodaysOrders:
    """Tests for todays_orders()"""

    def test_filters_location_day_and_cancelled(self, now):
        keep = OrderFactory.build(pickup_time="13:00")
        orders = [
            keep,
            OrderFactory.build(pickup_time="13:05", status="CANCELLED"),
            OrderFactory.build(pickup_time="13:10", location_id="loc-2"),
            OrderFactory.build(pickup_time="13:15", created_at=now - timedelta(days=1)),
            OrderFactory.build(pickup_time=None),
        ]

        assert todays_orders(orders, "loc-1", now) == [keep]

    def test_exclude_order_id(self, now):
        order = OrderFactory.build(pickup_time="13:00")

        assert todays_orders([order], "loc-1", now, exclude_order_id=order.id) == []

    def test_prior_day_order_rebooked_onto_today(self, now):
        yesterday = now - timedelta(days=1)
        moved = OrderFactory.build(pickup_time="12:08", created_at=yesterday, rebooked_on=now.date())
        stale = OrderFactory.build(pickup_time="12:10", created_at=yesterday, rebooked_on=yesterday.date())

        assert todays_orders([moved, stale], "loc-1", now) == [moved]


# ===================
# OCCUPANCY
# ===================

class TestBuildOccupancy:
    """Tests for build_occupancy()"""

    def test_pickup_booked_and_prep_before_it(self, location, now):
        """5 units at 13:00: 12:56-12:59 prep, 13:00 booked."""
        order = OrderFactory.build(pickup_time="13:00", quantity=5)

        occupancy = build_occupancy(location, [order], now)

        assert occupancy.status_at(time_to_minutes("13:00")) == SlotStatus.BOOKED
        assert occupancy.marked_minutes(SlotStatus.PREP) == [
            time_to_minutes(t) for t in ("12:56", "12:57", "12:58", "12:59")
        ]
        assert occupancy.status_at(time_to_minutes("12:55")) == SlotStatus.FREE

    def test_prep_never_overrides_a_pickup(self, location, now):
        early = OrderFactory.build(pickup_time="12:58", quantity=1)
        big = OrderFactory.build(pickup_time="13:00", quantity=5)

        occupancy = build_occupancy(location, [big, early], now)

        assert occupancy.status_at(time_to_minutes("12:58")) == SlotStatus.BOOKED
        assert occupancy.status_at(time_to_minutes("12:57")) == SlotStatus.PREP
        assert occupancy.status_at(time_to_minutes("12:59")) == SlotStatus.PREP

    def test_prep_may_share_minutes(self, location, now):
        """Overlapping prep windows stay prep."""
        first = OrderFactory.build(pickup_time="15:00", quantity=5)
        second = OrderFactory.build(pickup_time="15:01", quantity=6)

        occupancy = build_occupancy(location, [first, second], now)

        for minute in ("14:56", "14:57", "14:58", "14:59"):
            assert occupancy.status_at(time_to_minutes(minute)) == SlotStatus.PREP
        assert occupancy.status_at(time_to_minutes("15:00")) == SlotStatus.BOOKED
        assert occupancy.status_at(time_to_minutes("15:01")) == SlotStatus.BOOKED

    def test_prep_clamped_at_open_time(self, location, now):
        order = OrderFactory.build(pickup_time="11:02", quantity=5)

        occupancy = build_occupancy(location, [order], now)

        assert occupancy.marked_minutes(SlotStatus.PREP) == [
            time_to_minutes("11:00"),
            time_to_minutes("11:01"),
        ]
        assert occupancy.status_at(time_to_minutes("10:59")) == SlotStatus.FREE

    def test_blocker_marks_blocked_without_prep(self, location, now):
        blocker = OrderFactory.blocker(pickup_time="12:40", level=1)

        occupancy = build_occupancy(location, [blocker], now)

        assert occupancy.status_at(time_to_minutes("12:40")) == SlotStatus.BLOCKED
        assert occupancy.marked_minutes(SlotStatus.PREP) == []
        assert occupancy.is_taken(time_to_minutes("12:40"))

    def test_only_drinks_has_no_prep(self, location, now):
        order = OrderFactory.build(pickup_time="14:00", quantity=3, prep_eligible=False)

        occupancy = build_occupancy(location, [order], now)

        assert occupancy.marked_minutes() == [time_to_minutes("14:00")]


# ===================
# GRID
# ===================

class TestSlotGrid:
    """Tests for slot_grid() and slot_stats()"""

    def test_grid_window_and_past_minutes(self, location, now):
        slots = slot_grid(location, [], now)

        assert len(slots) == 65
        assert slots[0].time == "11:55"
        assert slots[-1].time == "12:59"
        assert all(s.status == SlotStatus.PAST for s in slots[:5])
        assert slots[5].status == SlotStatus.FREE

    def test_stats_count_statuses(self, location, now):
        orders = [
            OrderFactory.build(pickup_time="12:30", quantity=1),   # rush: 2 min
            OrderFactory.blocker(pickup_time="12:40", level=1),
        ]

        stats = slot_stats(slot_grid(location, orders, now))

        assert stats.past == 5
        assert stats.booked == 1
        assert stats.blocked == 1
        assert stats.prep == 1
        assert stats.free == 65 - 5 - 3

    def test_booked_slot_carries_contact(self, location, now):
        order = OrderFactory.build(pickup_time="12:10", contact="+43 1 234")

        slots = slot_grid(location, [order], now)
        booked = next(s for s in slots if s.time == "12:10")

        assert booked.status == SlotStatus.BOOKED
        assert booked.order_contact == "+43 1 234"
        assert not booked.is_system_blocker
