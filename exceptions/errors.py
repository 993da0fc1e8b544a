"""
Custom exception classes for the application.

Capacity conditions (no slot, closed location) are reported as results by
the scheduling core, not raised. The errors here cover the store, the
ordering flow and staff actions.
"""

from typing import Optional, Any
from datetime import datetime


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "ORDER_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Conflict with existing resource (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class DuplicateError(ConflictError):
    """Duplicate resource (409)."""

    def __init__(
        self,
        resource: str,
        field: str,
        value: str
    ):
        super().__init__(
            code=f"{resource.upper()}_{field.upper()}_EXISTS",
            message=f"{resource} with this {field} already exists",
            details={field: value}
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# STORE ERRORS
# ===================

class StoreUnavailableError(DatabaseError):
    """A read or write against the order/location store failed."""

    def __init__(self, operation: str, message: str, details: Optional[dict] = None):
        super().__init__(operation=operation, message=message, details=details)
        self.code = "STORE_UNAVAILABLE"
        self.status_code = 503


class OrderVersionConflictError(ConflictError):
    """Order changed since it was read."""

    def __init__(self, order_id: str, expected_version: int, actual_version: int):
        super().__init__(
            code="ORDER_VERSION_CONFLICT",
            message="Order was modified concurrently",
            details={
                "id": order_id,
                "expected_version": expected_version,
                "actual_version": actual_version,
            }
        )


class BlockerLevelExistsError(DuplicateError):
    """A system blocker for this location, day and level already exists."""

    def __init__(self, location_id: str, day: str, level: int):
        super().__init__(
            resource="Blocker",
            field="level",
            value=f"{location_id}/{day}/{level}"
        )


# ===================
# ORDER ERRORS
# ===================

class OrderNotFoundError(NotFoundError):
    """Order not found."""

    def __init__(self, order_id: str):
        super().__init__(
            resource="Order",
            identifier=order_id,
            code="ORDER_NOT_FOUND"
        )


class InvalidStatusTransitionError(ValidationError):
    """Invalid status transition."""

    def __init__(self, current_status: str, new_status: str):
        super().__init__(
            code="INVALID_STATUS_TRANSITION",
            message=f"Cannot transition from {current_status} to {new_status}",
            details={
                "current_status": current_status,
                "new_status": new_status,
                "reason": "COMPLETED and CANCELLED are terminal, BLOCKED orders are immutable"
            }
        )


class BlockedOrderImmutableError(ConflictError):
    """System blockers are never modified after creation."""

    def __init__(self, order_id: str):
        super().__init__(
            code="BLOCKED_ORDER_IMMUTABLE",
            message="System blocker orders cannot be modified",
            details={"id": order_id}
        )


class SlotUnavailableError(ConflictError):
    """Requested pickup time cannot be booked."""

    def __init__(self, pickup_time: Optional[str], reason: str):
        super().__init__(
            code="SLOT_UNAVAILABLE",
            message="No pickup slot available" if pickup_time is None
            else f"Pickup time {pickup_time} is not available",
            details={"pickup_time": pickup_time, "reason": reason}
        )


# ===================
# LOCATION ERRORS
# ===================

class LocationNotFoundError(NotFoundError):
    """Location not found."""

    def __init__(self, location_id: str):
        super().__init__(
            resource="Location",
            identifier=location_id,
            code="LOCATION_NOT_FOUND"
        )


class InvalidClockSettingError(ValidationError):
    """Clock control request rejected."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code="INVALID_CLOCK_SETTING",
            message=message,
            details=details
        )


# ===================
# NOTIFICATION ERRORS
# ===================

class TelegramError(AppError):
    """Telegram API error."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code="TELEGRAM_ERROR",
            message=message,
            status_code=500,
            details=details
        )
