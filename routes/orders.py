"""
Order API routes.

Customers place orders on a pickup minute; staff move them through
their statuses. System blockers show up in listings but reject every
change.
"""

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
from typing import Optional

import structlog

from models.order import (
    Order,
    OrderCreate,
    OrderListResponse,
    OrderStatus,
    OrderStatusUpdate,
)
from services.order_service import get_order_service
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/orders", tags=["Orders"])


# ===================
# EXCEPTION HANDLER
# ===================


def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(status_code=e.status_code, content=e.to_dict())
    # Unexpected error
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={"error": {"code": "INTERNAL_ERROR", "message": "An unexpected error occurred"}},
    )


# ===================
# LIST ROUTES
# ===================


@router.get("", response_model=OrderListResponse)
async def list_orders(
    location_id: Optional[str] = Query(None, description="Filter by location"),
    status: Optional[OrderStatus] = Query(None, description="Filter by status"),
):
    """
    List orders, earliest pickup first.

    Includes system blockers (status BLOCKED).
    """
    try:
        service = get_order_service()
        orders = service.list_orders(location_id=location_id, status=status)
        return OrderListResponse(data=orders, total=len(orders))

    except Exception as e:
        return handle_error(e)


@router.get("/{order_id}", response_model=Order)
async def get_order(order_id: str):
    """
    Get a single order.

    Raises:
        404: Order not found
    """
    try:
        service = get_order_service()
        return service.get_order(order_id)

    except Exception as e:
        return handle_error(e)


# ===================
# WRITE ROUTES
# ===================


@router.post("", response_model=Order, status_code=201)
async def place_order(data: OrderCreate):
    """
    Place an order.

    Without pickup_time the earliest slot for the cart is booked.

    Raises:
        404: Location not found
        409: Requested pickup time not available, or the day is full
    """
    try:
        service = get_order_service()
        return service.place_order(data)

    except Exception as e:
        return handle_error(e)


@router.patch("/{order_id}/status", response_model=Order)
async def update_order_status(order_id: str, data: OrderStatusUpdate):
    """
    Move an order to a new status.

    Raises:
        422: Invalid status transition
        404: Order not found
        409: Order is a system blocker, or was modified concurrently
    """
    try:
        service = get_order_service()
        return service.change_status(order_id, data.status)

    except Exception as e:
        return handle_error(e)


@router.post("/{order_id}/cancel", response_model=Order)
async def cancel_order(order_id: str):
    """Cancel a PENDING or READY order."""
    try:
        service = get_order_service()
        return service.cancel_order(order_id)

    except Exception as e:
        return handle_error(e)


@router.delete("", status_code=204)
async def clear_orders():
    """
    Delete every order, system blockers included.

    Used to reset a simulated day.
    """
    try:
        service = get_order_service()
        service.clear_all()
        return None

    except Exception as e:
        return handle_error(e)
