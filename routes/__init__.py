"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.orders import router as orders_router
from routes.locations import router as locations_router
from routes.slots import router as slots_router
from routes.clock import router as clock_router
from routes.reconciliation import router as reconciliation_router

__all__ = [
    "orders_router",
    "locations_router",
    "slots_router",
    "clock_router",
    "reconciliation_router",
]
