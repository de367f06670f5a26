"""
stores.py — Order Record Stores

Two independently persisted views of the same orders:

    • CustomerHistoryStore   ('purchase_history') — what the customer sees.
    • AdminManagementStore   ('order_management') — what the shop admin manages.

Both keep an ordered list of order records, newest first, in a single storage
slot. Neither store knows about the other; keeping them aligned is the job of
OrderSyncEngine and OrderRepository.
"""

import json
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import ValidationError

from .exceptions import InvalidImport, StorageUnavailable
from .models import Order, OrderFilters, OrderStatus, to_money

PURCHASE_HISTORY_KEY = "purchase_history"
ORDER_MANAGEMENT_KEY = "order_management"


def _aware(value: datetime) -> datetime:
    # Naive filter dates are taken as UTC; stored timestamps are always aware.
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _matches(order: Order, filters: OrderFilters) -> bool:
    if filters.status and order.status != filters.status:
        return False

    if filters.start_date and filters.end_date:
        if not (_aware(filters.start_date) <= order.created_at <= _aware(filters.end_date)):
            return False

    if filters.search_term:
        term = filters.search_term.lower()
        haystack = [order.id, order.customer.name, order.customer.email]
        haystack.extend(item.product_title for item in order.items)
        if not any(term in value.lower() for value in haystack):
            return False

    if filters.customer_email:
        if filters.customer_email.lower() not in order.customer.email.lower():
            return False

    return True


def _count_by_status(orders: List[Order]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for order in orders:
        counts[order.status.value] = counts.get(order.status.value, 0) + 1
    return counts


def _newest_first(orders: List[Order]) -> List[Order]:
    return sorted(orders, key=lambda o: o.created_at, reverse=True)


class OrderRecordStore:
    """
    Durable list of orders kept in one storage slot.

    Args:
        storage (Storage): Backend holding the slot.
        key (str): Slot name.
        name (str): Human-readable store name, used in logs and sync errors.
    """

    key = None
    name = "orders"

    def __init__(self, storage, key=None, name=None):
        self.storage = storage
        if key is not None:
            self.key = key
        if name is not None:
            self.name = name

    def _load(self) -> List[Order]:
        raw = self.storage.get(self.key) or []
        if not isinstance(raw, list):
            raise StorageUnavailable(self.key, "slot does not hold a list of orders")
        try:
            return [Order.model_validate(record) for record in raw]
        except ValidationError as e:
            # A record that no longer fits the schema is treated like an unreadable slot.
            raise StorageUnavailable(self.key, f"invalid order record ({e.error_count()} errors)") from e

    def _save(self, orders: List[Order]) -> None:
        self.storage.set(self.key, [order.model_dump(mode="json") for order in orders])

    def list_orders(self, filters: Optional[OrderFilters] = None) -> List[Order]:
        """Returns the stored orders, newest first, optionally filtered."""
        orders = self._load()
        if filters:
            orders = [order for order in orders if _matches(order, filters)]
        return _newest_first(orders)

    def get_order(self, order_id: str) -> Optional[Order]:
        return next((order for order in self._load() if order.id == order_id), None)

    def contains(self, order_id: str) -> bool:
        return self.get_order(order_id) is not None

    def add_order(self, order: Order) -> None:
        """Upserts an order: replaces a record with the same id in place, else inserts it first."""
        orders = self._load()
        for index, existing in enumerate(orders):
            if existing.id == order.id:
                orders[index] = order
                break
        else:
            orders.insert(0, order)
        self._save(orders)

    def remove_order(self, order_id: str) -> bool:
        """Drops a single record. Only used to undo a failed dual write."""
        orders = self._load()
        remaining = [order for order in orders if order.id != order_id]
        if len(remaining) == len(orders):
            return False
        self._save(remaining)
        return True

    def update_status(self, order_id: str, status: OrderStatus, updated_at: datetime) -> Optional[Order]:
        """
        Writes a new status and timestamp to an existing record.

        Returns:
            Order | None: The updated record, or None when the order is not in this store.
        """
        orders = self._load()
        for index, existing in enumerate(orders):
            if existing.id == order_id:
                updated = existing.model_copy(update={"status": OrderStatus(status), "updated_at": updated_at})
                orders[index] = updated
                self._save(orders)
                return updated
        return None

    def replace_all(self, orders: List[Order]) -> None:
        self._save(list(orders))

    def clear(self) -> None:
        self.storage.remove(self.key)

    def export_orders(self) -> str:
        return json.dumps([order.model_dump(mode="json") for order in self._load()], indent=2, ensure_ascii=False)

    def import_orders(self, orders_json: str) -> int:
        """
        Replaces the store content with orders from a JSON export.

        Raises:
            InvalidImport: If the text is not a JSON list of valid order records.
        """
        try:
            raw = json.loads(orders_json)
        except json.JSONDecodeError as e:
            raise InvalidImport("Invalid JSON format") from e
        if not isinstance(raw, list):
            raise InvalidImport("Invalid orders format")
        try:
            orders = [Order.model_validate(record) for record in raw]
        except ValidationError as e:
            raise InvalidImport(f"Invalid order record ({e.error_count()} errors)") from e
        self.replace_all(orders)
        return len(orders)


class CustomerHistoryStore(OrderRecordStore):
    """Customer-facing purchase history."""

    key = PURCHASE_HISTORY_KEY
    name = "purchase_history"

    def get_stats(self) -> dict:
        orders = self._load()
        total_spent = to_money(sum((order.total for order in orders), Decimal("0")))
        newest = _newest_first(orders)
        return {
            "total_orders": len(orders),
            "total_spent": total_spent,
            "orders_by_status": _count_by_status(orders),
            "average_order_value": to_money(total_spent / len(orders)) if orders else Decimal("0.00"),
            "last_order_date": newest[0].created_at if newest else None,
        }


class AdminManagementStore(OrderRecordStore):
    """Admin-facing order management list."""

    key = ORDER_MANAGEMENT_KEY
    name = "order_management"

    def get_pending_orders(self) -> List[Order]:
        return [o for o in self.list_orders() if o.status in (OrderStatus.PENDING, OrderStatus.PAID)]

    def get_orders_needing_action(self) -> List[Order]:
        return [o for o in self.list_orders() if o.status in (OrderStatus.PAID, OrderStatus.SHIPPED)]

    def get_orders_by_customer(self, customer_email: str) -> List[Order]:
        email = customer_email.lower()
        return [o for o in self.list_orders() if o.customer.email.lower() == email]

    def get_orders_by_date_range(self, start: datetime, end: datetime) -> List[Order]:
        return self.list_orders(OrderFilters(start_date=start, end_date=end))

    def get_stats(self) -> dict:
        orders = self._load()
        # Cancelled orders do not count as revenue but still count as orders.
        revenue = to_money(sum(
            (order.total for order in orders if order.status != OrderStatus.CANCELLED),
            Decimal("0"),
        ))
        return {
            "total_orders": len(orders),
            "total_revenue": revenue,
            "orders_by_status": _count_by_status(orders),
            "average_order_value": to_money(revenue / len(orders)) if orders else Decimal("0.00"),
            "pending_orders": sum(1 for o in orders if o.status in (OrderStatus.PENDING, OrderStatus.PAID)),
            "orders_needing_action": sum(1 for o in orders if o.status in (OrderStatus.PAID, OrderStatus.SHIPPED)),
            "recent_orders": _newest_first(orders)[:5],
        }
