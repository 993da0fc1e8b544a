"""
Shared test fixtures.

Scheduling tests run against the JSON file store in a temp directory and
a paused simulated clock at Monday 2026-01-05 12:00.
"""

import json
import sys
from pathlib import Path

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

import pytest
from unittest.mock import MagicMock, patch
from datetime import datetime
from typing import Generator

from tests.factories import MONDAY_NOON, LocationFactory


# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data: list = None, count: int = None):
        self.data = data or []
        self.count = count if count is not None else len(self.data)


class MockSupabaseQuery:
    """Mock Supabase query builder with chainable methods."""

    def __init__(self, data: list = None, count: int = None):
        self._data = data or []
        self._count = count
        self._pending_update = None

    def select(self, *args, **kwargs):
        return self

    def insert(self, data):
        # Echo the inserted rows back, like PostgREST with return=representation
        if isinstance(data, dict):
            data = [data]
        self._data = [dict(item) for item in data]
        return self

    def update(self, data):
        # Applied on execute(), after the filters narrowed the rows
        self._pending_update = data
        return self

    def delete(self):
        return self

    def eq(self, column, value):
        self._data = [item for item in self._data if item.get(column) == value]
        return self

    def neq(self, column, value):
        return self

    def order(self, column, **kwargs):
        return self

    def execute(self) -> MockSupabaseResponse:
        data = self._data
        if self._pending_update is not None:
            data = [{**item, **self._pending_update} for item in data]
        return MockSupabaseResponse(
            data=data,
            count=self._count if self._count is not None else len(self._data)
        )


class MockSupabaseTable:
    """Mock Supabase table with configurable responses."""

    def __init__(self, data: list = None, count: int = None):
        self._data = data or []
        self._count = count

    def select(self, *args, **kwargs):
        return MockSupabaseQuery(self._data.copy(), self._count)

    def insert(self, data):
        return MockSupabaseQuery([], self._count).insert(data)

    def update(self, data):
        return MockSupabaseQuery(self._data.copy(), self._count).update(data)

    def delete(self):
        return MockSupabaseQuery(self._data.copy(), self._count)


class MockSupabaseClient:
    """Mock Supabase client."""

    def __init__(self):
        self._tables = {}

    def set_table_data(self, table_name: str, data: list, count: int = None):
        """Configure mock data for a table."""
        self._tables[table_name] = {"data": data, "count": count}

    def table(self, name: str) -> MockSupabaseTable:
        """Get mock table."""
        config = self._tables.get(name, {"data": [], "count": None})
        return MockSupabaseTable(config["data"], config["count"])


# ===================
# FIXTURES
# ===================

@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("orders", [
                {"id": "1", "location_id": "loc-1", ...}
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch the database client with mock.

    Usage:
        def test_something(mock_db, mock_supabase):
            mock_supabase.set_table_data("orders", [...])
            # Now SupabaseOrderStore() / SupabaseLocationCalendar() get the mock
    """
    with patch("config.database.get_supabase_client", return_value=mock_supabase):
        with patch("services.order_store.get_supabase_client", return_value=mock_supabase):
            with patch("services.order_store.get_admin_client", return_value=None):
                with patch("services.location_service.get_supabase_client", return_value=mock_supabase):
                    yield mock_supabase


@pytest.fixture
def now() -> datetime:
    """Monday 2026-01-05 12:00 (rush hour)."""
    return MONDAY_NOON


@pytest.fixture
def location():
    """Default weekly profile, buffer 8, 60s regular / 90s rush."""
    return LocationFactory.build(id="loc-1", name="Neusiedl am See")


@pytest.fixture
def order_store(tmp_path):
    """Empty JSON file order store."""
    from services.order_store import JsonFileOrderStore

    return JsonFileOrderStore(tmp_path / "orders.json")


@pytest.fixture
def calendar(tmp_path, location):
    """File calendar holding the default test location."""
    from services.location_service import FileLocationCalendar

    path = tmp_path / "locations.json"
    path.write_text(json.dumps([location.model_dump(mode="json")]), encoding="utf-8")
    return FileLocationCalendar(path, seed_default=False)


@pytest.fixture
def clock(now):
    """Paused simulated clock at Monday noon."""
    from services.clock import SimulatedClock

    return SimulatedClock(start=now, paused=True)


@pytest.fixture
def notifier() -> MagicMock:
    """Stand-in for the Telegram delay alert."""
    return MagicMock(return_value=True)


def _reset_singletons():
    from services.availability_service import reset_availability_service
    from services.clock import set_clock
    from services.delay_escalator import reset_delay_escalator
    from services.location_service import set_location_calendar
    from services.order_service import reset_order_service
    from services.order_store import set_order_store
    from services.overdue_rebooker import reset_overdue_rebooker

    set_order_store(None)
    set_location_calendar(None)
    set_clock(None)
    reset_availability_service()
    reset_order_service()
    reset_delay_escalator()
    reset_overdue_rebooker()


@pytest.fixture
def wired(order_store, calendar, clock) -> Generator:
    """
    Install the temp store, calendar and paused clock as process singletons.

    Services created through get_*() during the test use them.
    """
    from services.clock import set_clock
    from services.location_service import set_location_calendar
    from services.order_store import set_order_store

    _reset_singletons()
    set_order_store(order_store)
    set_location_calendar(calendar)
    set_clock(clock)
    yield {"store": order_store, "calendar": calendar, "clock": clock}
    _reset_singletons()


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client(wired):
    """
    Create FastAPI test client on the temp store and paused clock.

    The lifespan (and with it the background reconciliation loops) is not
    started, so reconciliation only runs through its routes.

    Usage:
        def test_endpoint(test_client):
            response = test_client.get("/api/orders")
            assert response.status_code == 200
    """
    from fastapi.testclient import TestClient
    from main import app

    with patch("services.delay_escalator.notify_kitchen_delay", return_value=False):
        yield TestClient(app)
