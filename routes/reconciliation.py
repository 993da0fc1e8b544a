"""
Reconciliation API routes.

Manual triggers for the background tasks, used by staff tooling and the
simulation script while the clock is paused.
"""

import asyncio

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
from typing import Optional

import structlog

from models.reconciliation import EscalationResult, RebookResult
from services.delay_escalator import get_delay_escalator
from services.overdue_rebooker import get_overdue_rebooker
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/reconciliation", tags=["Reconciliation"])


def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(status_code=e.status_code, content=e.to_dict())
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={"error": {"code": "INTERNAL_ERROR", "message": "An unexpected error occurred"}},
    )


@router.post("/escalate", response_model=list[EscalationResult])
async def run_escalation(
    location_id: Optional[str] = Query(None, description="Only this location"),
):
    """
    Run one escalation tick now.

    Creates system blockers until each location's blocking level matches
    its largest delay.

    Raises:
        404: Location not found
    """
    try:
        logger.info("manual_escalation_requested", location_id=location_id)
        # Telegram alerts block; keep them off the event loop
        return await asyncio.to_thread(get_delay_escalator().run_once, location_id=location_id)

    except Exception as e:
        return handle_error(e)


@router.post("/rebook", response_model=RebookResult)
async def run_rebook():
    """Rebook overdue orders now."""
    try:
        logger.info("manual_rebook_requested")
        return await asyncio.to_thread(get_overdue_rebooker().run_once)

    except Exception as e:
        return handle_error(e)
