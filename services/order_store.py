"""
Order store backends. Single source of truth for orders.

Contract consumed by the scheduling core:
    list() -> list[Order]
    create(order) -> Order
    update(order_id, fields, expected_version=None) -> Order
    delete(order_id)
    clear_all()

There are no transactions across read, decide and write. Each write is
atomic for a single order. update() increments the order's version and,
when expected_version is given, refuses to overwrite a newer version
(OrderVersionConflictError). Backend failures surface as
StoreUnavailableError so reconciliation ticks can defer.

Backends:
    JsonFileOrderStore  - data/orders.json, replaced atomically per write
    SupabaseOrderStore  - "orders" table, items in a JSON column
"""

import contextlib
import json
import os
import tempfile
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import structlog
from pydantic import ValidationError as PydanticValidationError

from config import settings, get_supabase_client, get_admin_client
from exceptions import (
    BlockedOrderImmutableError,
    BlockerLevelExistsError,
    DuplicateError,
    InvalidStatusTransitionError,
    OrderNotFoundError,
    OrderVersionConflictError,
    StoreUnavailableError,
)
from models.order import Order, OrderStatus

logger = structlog.get_logger(__name__)

# Fields the store never takes from an update payload
PROTECTED_FIELDS = {"id", "version", "created_at", "updated_at"}


def apply_update(
    order: Order,
    fields: dict[str, Any],
    expected_version: Optional[int] = None,
) -> Order:
    """
    Merge fields into order, enforcing the store's write rules.

    Raises:
        BlockedOrderImmutableError: Order is a system blocker
        InvalidStatusTransitionError: fields would turn the order into a blocker
        OrderVersionConflictError: expected_version is stale
    """
    if order.status == OrderStatus.BLOCKED:
        raise BlockedOrderImmutableError(order.id)
    if fields.get("status") == OrderStatus.BLOCKED or fields.get("blocking_level") is not None:
        # Blockers only come into existence through create()
        raise InvalidStatusTransitionError(order.status.value, OrderStatus.BLOCKED.value)
    if expected_version is not None and expected_version != order.version:
        raise OrderVersionConflictError(order.id, expected_version, order.version)

    changes = {k: v for k, v in fields.items() if k not in PROTECTED_FIELDS}
    data = order.model_dump()
    data.update(changes)
    data["version"] = order.version + 1
    data["updated_at"] = datetime.utcnow()
    return Order.model_validate(data)


def check_blocker_unique(orders: list[Order], new: Order) -> None:
    """At most one BLOCKED order per (location, day, level)."""
    if new.status != OrderStatus.BLOCKED:
        return
    for order in orders:
        if (
            order.status == OrderStatus.BLOCKED
            and order.location_id == new.location_id
            and order.created_at.date() == new.created_at.date()
            and order.blocking_level == new.blocking_level
        ):
            raise BlockerLevelExistsError(
                new.location_id, new.created_at.date().isoformat(), new.blocking_level
            )


class OrderStore:
    """Base order store."""

    def list(self) -> list[Order]:
        raise NotImplementedError

    def get(self, order_id: str) -> Order:
        for order in self.list():
            if order.id == order_id:
                return order
        raise OrderNotFoundError(order_id)

    def create(self, order: Order) -> Order:
        raise NotImplementedError

    def update(
        self,
        order_id: str,
        fields: dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> Order:
        raise NotImplementedError

    def delete(self, order_id: str) -> None:
        raise NotImplementedError

    def clear_all(self) -> None:
        raise NotImplementedError


# ===================
# JSON FILE BACKEND
# ===================

class JsonFileOrderStore(OrderStore):
    """
    Orders kept in one JSON file.

    A process-wide lock serialises writers; each write replaces the file
    atomically, so readers never see a half-written list.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else Path(settings.data_dir) / "orders.json"
        self._lock = threading.RLock()

    def _read(self) -> list[Order]:
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8") or "[]")
            return [Order.model_validate(row) for row in raw]
        except (OSError, json.JSONDecodeError, PydanticValidationError) as e:
            logger.error("order_file_read_failed", path=str(self.path), error=str(e))
            raise StoreUnavailableError("select", str(e))

    def _write(self, orders: list[Order]) -> None:
        payload = json.dumps(
            [order.model_dump(mode="json") for order in orders],
            indent=2,
            ensure_ascii=False,
        )
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name is not None:
                with contextlib.suppress(FileNotFoundError):
                    os.unlink(tmp_name)
            logger.error("order_file_write_failed", path=str(self.path), error=str(e))
            raise StoreUnavailableError("write", str(e))

    def list(self) -> list[Order]:
        with self._lock:
            return self._read()

    def create(self, order: Order) -> Order:
        with self._lock:
            orders = self._read()
            if any(existing.id == order.id for existing in orders):
                raise DuplicateError(resource="Order", field="id", value=order.id)
            check_blocker_unique(orders, order)
            orders.append(order)
            self._write(orders)

        logger.info(
            "order_created",
            order_id=order.id,
            location_id=order.location_id,
            status=order.status.value,
            pickup_time=order.pickup_time,
            blocking_level=order.blocking_level,
        )
        return order

    def update(
        self,
        order_id: str,
        fields: dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> Order:
        with self._lock:
            orders = self._read()
            for index, order in enumerate(orders):
                if order.id == order_id:
                    updated = apply_update(order, fields, expected_version)
                    orders[index] = updated
                    self._write(orders)
                    break
            else:
                raise OrderNotFoundError(order_id)

        logger.info(
            "order_updated",
            order_id=order_id,
            fields=sorted(fields),
            version=updated.version,
        )
        return updated

    def delete(self, order_id: str) -> None:
        with self._lock:
            orders = self._read()
            remaining = [order for order in orders if order.id != order_id]
            if len(remaining) == len(orders):
                raise OrderNotFoundError(order_id)
            self._write(remaining)
        logger.info("order_deleted", order_id=order_id)

    def clear_all(self) -> None:
        with self._lock:
            self._write([])
        logger.info("orders_cleared", backend="file")


# ===================
# SUPABASE BACKEND
# ===================

class SupabaseOrderStore(OrderStore):
    """
    Orders in the Supabase "orders" table.

    Updates are conditional on the version column, so a concurrent writer
    makes the second update match zero rows instead of overwriting.
    The table carries a unique index on (location_id, created_on,
    blocking_level) where status = 'BLOCKED'.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "orders"

    def _row_to_order(self, row: dict) -> Order:
        return Order(
            id=row["id"],
            location_id=row["location_id"],
            contact=row.get("contact") or "",
            created_at=row["created_at"],
            updated_at=row.get("updated_at"),
            pickup_time=row.get("pickup_time"),
            status=row["status"],
            blocking_level=row.get("blocking_level"),
            items=row.get("items") or [],
            price=row.get("price") or 0,
            payment_status=row.get("payment_status") or "Unpaid",
            version=row.get("version") or 1,
            rebooked_on=row.get("rebooked_on"),
        )

    def _order_to_row(self, order: Order) -> dict:
        row = order.model_dump(mode="json")
        row["created_on"] = order.created_at.date().isoformat()
        return row

    def list(self) -> list[Order]:
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .order("created_at")
                .execute()
            )
            return [self._row_to_order(row) for row in result.data]

        except Exception as e:
            logger.error("list_orders_failed", error=str(e))
            raise StoreUnavailableError("select", str(e))

    def get(self, order_id: str) -> Order:
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("id", order_id)
                .execute()
            )
        except Exception as e:
            logger.error("get_order_failed", order_id=order_id, error=str(e))
            raise StoreUnavailableError("select", str(e))

        if not result.data:
            raise OrderNotFoundError(order_id)
        return self._row_to_order(result.data[0])

    def create(self, order: Order) -> Order:
        try:
            result = self.db.table(self.table).insert(self._order_to_row(order)).execute()
        except Exception as e:
            message = str(e)
            logger.error("create_order_failed", order_id=order.id, error=message)
            if "duplicate" in message.lower() or "23505" in message:
                if order.status == OrderStatus.BLOCKED:
                    raise BlockerLevelExistsError(
                        order.location_id,
                        order.created_at.date().isoformat(),
                        order.blocking_level,
                    )
                raise DuplicateError(resource="Order", field="id", value=order.id)
            raise StoreUnavailableError("insert", message)

        created = self._row_to_order(result.data[0]) if result.data else order
        logger.info(
            "order_created",
            order_id=created.id,
            location_id=created.location_id,
            status=created.status.value,
            pickup_time=created.pickup_time,
            blocking_level=created.blocking_level,
        )
        return created

    def update(
        self,
        order_id: str,
        fields: dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> Order:
        current = self.get(order_id)
        updated = apply_update(current, fields, expected_version)

        payload = self._order_to_row(updated)
        payload.pop("id", None)
        payload.pop("created_at", None)

        try:
            result = (
                self.db.table(self.table)
                .update(payload)
                .eq("id", order_id)
                .eq("version", current.version)
                .execute()
            )
        except Exception as e:
            logger.error("update_order_failed", order_id=order_id, error=str(e))
            raise StoreUnavailableError("update", str(e))

        if not result.data:
            # Someone else bumped the version between our read and write
            latest = self.get(order_id)
            raise OrderVersionConflictError(order_id, current.version, latest.version)

        logger.info(
            "order_updated",
            order_id=order_id,
            fields=sorted(fields),
            version=updated.version,
        )
        return self._row_to_order(result.data[0])

    def delete(self, order_id: str) -> None:
        self.get(order_id)
        try:
            self.db.table(self.table).delete().eq("id", order_id).execute()
        except Exception as e:
            logger.error("delete_order_failed", order_id=order_id, error=str(e))
            raise StoreUnavailableError("delete", str(e))
        logger.info("order_deleted", order_id=order_id)

    def clear_all(self) -> None:
        client = get_admin_client() or self.db
        try:
            # PostgREST refuses an unfiltered delete
            client.table(self.table).delete().neq("id", "").execute()
        except Exception as e:
            logger.error("clear_orders_failed", error=str(e))
            raise StoreUnavailableError("delete", str(e))
        logger.info("orders_cleared", backend="supabase")


# Singleton instance
_order_store: Optional[OrderStore] = None


def get_order_store() -> OrderStore:
    """Get or create the configured OrderStore."""
    global _order_store
    if _order_store is None:
        if settings.storage_backend == "supabase":
            _order_store = SupabaseOrderStore()
        else:
            _order_store = JsonFileOrderStore()
    return _order_store


def set_order_store(store: Optional[OrderStore]) -> None:
    """Replace the process store (None recreates it from settings on next use)."""
    global _order_store
    _order_store = store
