"""
Location calendar: read-only source of per-location open hours and rates.

Backends:
    FileLocationCalendar     - data/locations.json, seeded with the default
                               location on first use
    SupabaseLocationCalendar - "locations" table, open_days in a JSON column
"""

import json
from pathlib import Path
from typing import Optional

import structlog
from pydantic import ValidationError as PydanticValidationError

from config import settings, get_supabase_client
from exceptions import LocationNotFoundError, StoreUnavailableError
from models.location import DEFAULT_LOCATION, Location

logger = structlog.get_logger(__name__)


class LocationCalendar:
    """Base calendar."""

    def list(self) -> list[Location]:
        raise NotImplementedError

    def get(self, location_id: str) -> Location:
        for location in self.list():
            if location.id == location_id:
                return location
        raise LocationNotFoundError(location_id)

    def get_active(self) -> Optional[Location]:
        """First active location, falling back to the first configured one."""
        locations = self.list()
        for location in locations:
            if location.active:
                return location
        return locations[0] if locations else None

    def by_id(self) -> dict[str, Location]:
        return {location.id: location for location in self.list()}


class FileLocationCalendar(LocationCalendar):
    """Locations kept in a JSON file."""

    def __init__(self, path: Optional[Path] = None, seed_default: bool = True):
        self.path = Path(path) if path else Path(settings.data_dir) / "locations.json"
        self.seed_default = seed_default

    def _seed(self) -> None:
        logger.info("seeding_default_location", path=str(self.path))
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps([DEFAULT_LOCATION], indent=2), encoding="utf-8")
        except OSError as e:
            raise StoreUnavailableError("write", str(e))

    def list(self) -> list[Location]:
        if not self.path.exists():
            if not self.seed_default:
                return []
            self._seed()
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8") or "[]")
            return [Location.model_validate(row) for row in raw]
        except (OSError, json.JSONDecodeError, PydanticValidationError) as e:
            logger.error("location_file_read_failed", path=str(self.path), error=str(e))
            raise StoreUnavailableError("select", str(e))


class SupabaseLocationCalendar(LocationCalendar):
    """Locations in the Supabase "locations" table."""

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "locations"

    def _row_to_location(self, row: dict) -> Location:
        return Location(
            id=row["id"],
            name=row["name"],
            address=row.get("address"),
            buffer_minutes=row.get("buffer_minutes"),
            regular_prep_seconds=row.get("regular_prep_seconds"),
            rush_prep_seconds=row.get("rush_prep_seconds"),
            active=row.get("active", True),
            open_days=row.get("open_days") or [],
        )

    def list(self) -> list[Location]:
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .order("name")
                .execute()
            )
            return [self._row_to_location(row) for row in result.data]

        except Exception as e:
            logger.error("list_locations_failed", error=str(e))
            raise StoreUnavailableError("select", str(e))


# Singleton instance
_calendar: Optional[LocationCalendar] = None


def get_location_calendar() -> LocationCalendar:
    """Get or create the configured LocationCalendar."""
    global _calendar
    if _calendar is None:
        if settings.storage_backend == "supabase":
            _calendar = SupabaseLocationCalendar()
        else:
            _calendar = FileLocationCalendar()
    return _calendar


def set_location_calendar(calendar: Optional[LocationCalendar]) -> None:
    """Replace the process calendar (None recreates it from settings on next use)."""
    global _calendar
    _calendar = calendar
