"""
Location API routes (read-only).
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

import structlog

from models.location import Location, LocationListResponse
from services.location_service import get_location_calendar
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/locations", tags=["Locations"])


def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(status_code=e.status_code, content=e.to_dict())
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={"error": {"code": "INTERNAL_ERROR", "message": "An unexpected error occurred"}},
    )


@router.get("", response_model=LocationListResponse)
async def list_locations():
    """List all configured locations with their open days."""
    try:
        locations = get_location_calendar().list()
        return LocationListResponse(data=locations, total=len(locations))

    except Exception as e:
        return handle_error(e)


@router.get("/active", response_model=Location)
async def get_active_location():
    """The location new orders go to by default."""
    try:
        location = get_location_calendar().get_active()
        if location is None:
            return JSONResponse(
                status_code=404,
                content={"error": {"code": "NO_LOCATIONS", "message": "No locations configured"}},
            )
        return location

    except Exception as e:
        return handle_error(e)


@router.get("/{location_id}", response_model=Location)
async def get_location(location_id: str):
    """
    Get a single location.

    Raises:
        404: Location not found
    """
    try:
        return get_location_calendar().get(location_id)

    except Exception as e:
        return handle_error(e)
