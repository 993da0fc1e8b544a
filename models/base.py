"""
Base schema and shared validators for all models.
"""

import re

from pydantic import BaseModel, ConfigDict
from typing import Optional


HHMM_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class BaseSchema(BaseModel):
    """
    Base for all schemas.

    Features:
        - Auto-trim whitespace from strings
        - Validate on attribute assignment
        - Allow ORM objects (from_attributes)
    """
    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
        validate_assignment=True
    )


def validate_hhmm(value: Optional[str]) -> Optional[str]:
    """Validate a wall-clock minute in HH:MM form (None passes through)."""
    if value is None:
        return value
    if not HHMM_PATTERN.match(value):
        raise ValueError(f"Time must be HH:MM, got {value!r}")
    return value
