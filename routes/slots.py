"""
Slot API routes.

Pickup pickers call next-available and options with the cart size; the
live orders dashboard polls the grid.
"""

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
from typing import Optional

import structlog

from models.order import PrepDemand
from models.slot import AvailabilityResult, SlotGridResponse, TimeOptionsResponse
from services.availability_service import get_availability_service
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/slots", tags=["Slots"])


def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(status_code=e.status_code, content=e.to_dict())
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={"error": {"code": "INTERNAL_ERROR", "message": "An unexpected error occurred"}},
    )


def _demand(quantity: Optional[int]) -> Optional[list[PrepDemand]]:
    if quantity is None:
        return None
    return [PrepDemand(quantity=quantity)]


@router.get("/{location_id}/next-available", response_model=AvailabilityResult)
async def next_available(
    location_id: str,
    quantity: Optional[int] = Query(None, ge=1, le=999, description="Prep-eligible units in the cart"),
):
    """
    Earliest pickup minute for a cart of `quantity` units.

    Without a quantity the slot is costed as a 1-minute order. A result
    without pickup_time carries the reason (CONFIG_MISSING, AFTER_CLOSE,
    CAPACITY_EXHAUSTED).
    """
    try:
        service = get_availability_service()
        return service.next_available(location_id, demand=_demand(quantity))

    except Exception as e:
        return handle_error(e)


@router.post("/{location_id}/next-available", response_model=AvailabilityResult)
async def next_available_for_cart(location_id: str, demand: list[PrepDemand]):
    """Earliest pickup minute for a full cart (mixed prep-eligible lines)."""
    try:
        service = get_availability_service()
        return service.next_available(location_id, demand=demand)

    except Exception as e:
        return handle_error(e)


@router.get("/{location_id}/options", response_model=TimeOptionsResponse)
async def time_options(
    location_id: str,
    quantity: Optional[int] = Query(None, ge=1, le=999, description="Prep-eligible units in the cart"),
):
    """Every remaining minute of today with its availability."""
    try:
        service = get_availability_service()
        return service.time_options(location_id, demand=_demand(quantity))

    except Exception as e:
        return handle_error(e)


@router.get("/{location_id}/grid", response_model=SlotGridResponse)
async def slot_grid(
    location_id: str,
    minutes_before: int = Query(5, ge=0, le=120),
    minutes_after: int = Query(60, ge=1, le=240),
):
    """
    Rolling per-minute occupancy around now.

    Raises:
        404: Location not found
    """
    try:
        service = get_availability_service()
        return service.grid(location_id, minutes_before=minutes_before, minutes_after=minutes_after)

    except Exception as e:
        return handle_error(e)
