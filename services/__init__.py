"""
Business logic services.

Each service handles one domain area.
"""

from services.clock import Clock, SystemClock, SimulatedClock, get_clock, set_clock
from services.order_store import (
    OrderStore,
    JsonFileOrderStore,
    SupabaseOrderStore,
    get_order_store,
    set_order_store,
)
from services.location_service import (
    LocationCalendar,
    FileLocationCalendar,
    SupabaseLocationCalendar,
    get_location_calendar,
    set_location_calendar,
)
from services.availability_service import (
    AvailabilityService,
    get_availability_service,
    find_next_available_slot,
    list_time_options,
)
from services.delay_escalator import DelayEscalator, get_delay_escalator, plan_escalation
from services.overdue_rebooker import OverdueRebooker, get_overdue_rebooker, plan_rebook_pass
from services.order_service import OrderService, get_order_service
from services.reconciliation_scheduler import (
    ReconciliationScheduler,
    get_reconciliation_scheduler,
)

__all__ = [
    "Clock",
    "SystemClock",
    "SimulatedClock",
    "get_clock",
    "set_clock",
    "OrderStore",
    "JsonFileOrderStore",
    "SupabaseOrderStore",
    "get_order_store",
    "set_order_store",
    "LocationCalendar",
    "FileLocationCalendar",
    "SupabaseLocationCalendar",
    "get_location_calendar",
    "set_location_calendar",
    "AvailabilityService",
    "get_availability_service",
    "find_next_available_slot",
    "list_time_options",
    "DelayEscalator",
    "get_delay_escalator",
    "plan_escalation",
    "OverdueRebooker",
    "get_overdue_rebooker",
    "plan_rebook_pass",
    "OrderService",
    "get_order_service",
    "ReconciliationScheduler",
    "get_reconciliation_scheduler",
]
