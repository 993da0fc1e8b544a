"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    DuplicateError,
    DatabaseError,

    # Store
    StoreUnavailableError,
    OrderVersionConflictError,
    BlockerLevelExistsError,

    # Orders
    OrderNotFoundError,
    InvalidStatusTransitionError,
    BlockedOrderImmutableError,
    SlotUnavailableError,

    # Locations
    LocationNotFoundError,

    # Clock
    InvalidClockSettingError,

    # Notifications
    TelegramError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "DuplicateError",
    "DatabaseError",

    # Store
    "StoreUnavailableError",
    "OrderVersionConflictError",
    "BlockerLevelExistsError",

    # Orders
    "OrderNotFoundError",
    "InvalidStatusTransitionError",
    "BlockedOrderImmutableError",
    "SlotUnavailableError",

    # Locations
    "LocationNotFoundError",

    # Clock
    "InvalidClockSettingError",

    # Notifications
    "TelegramError",
]
