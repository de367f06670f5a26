"""
repository.py — Order Repository Facade

Single entry point for every order write. Callers never decide on their own
to write to one store or both:

    • add_order()            — initial creation, written to both stores.
                               If the second write fails, the first one is
                               undone, so creation is all-or-nothing.
    • update_status(),
      advance(), cancel(),
      bulk_update_status()   — status changes, validated against the
                               lifecycle and replicated by OrderSyncEngine.
"""

from typing import Iterable, List, Optional

from .exceptions import InvalidStatusTransition, OrderNotFound, StorageUnavailable, SyncFailure
from .lifecycle import can_transition, next_status
from .logging_config import get_logger
from .models import BulkUpdateResult, Order, OrderFilters, OrderStatus

log = get_logger(__name__)


class OrderRepository:
    """
    Fans order writes out to the customer and admin stores.

    Args:
        history_store (CustomerHistoryStore): Customer-facing store.
        management_store (AdminManagementStore): Admin-facing store.
        sync_engine (OrderSyncEngine): Replicates status changes across both stores.
    """

    def __init__(self, history_store, management_store, sync_engine):
        self.history = history_store
        self.management = management_store
        self.sync = sync_engine

    def add_order(self, order: Order) -> None:
        """
        Persists a new order in both stores (customer store first).

        Raises:
            StorageUnavailable: If either write fails. Neither store keeps the
                record afterwards.
        """
        log_prefix = f"[Order: {order.id}]"
        previous = self.history.get_order(order.id)
        self.history.add_order(order)
        try:
            self.management.add_order(order)
        except StorageUnavailable:
            log.error(f"{log_prefix} Write to {self.management.name} failed. Rolling back {self.history.name}.")
            if previous is None:
                self.history.remove_order(order.id)
            else:
                self.history.add_order(previous)
            raise
        log.info(f"{log_prefix} Saved to {self.history.name} and {self.management.name}.")

    def get_order(self, order_id: str) -> Optional[Order]:
        return self.sync.get_authoritative_copy(order_id)

    def list_customer_orders(self, filters: Optional[OrderFilters] = None) -> List[Order]:
        return self.history.list_orders(filters)

    def list_admin_orders(self, filters: Optional[OrderFilters] = None) -> List[Order]:
        return self.management.list_orders(filters)

    def update_status(self, order_id: str, status, origin: str = "admin") -> Order:
        """
        Moves an order one step along the lifecycle (or cancels it) in both stores.

        Raises:
            OrderNotFound: If no store holds the order.
            InvalidStatusTransition: If `status` is not the next status or 'cancelled'.
            SyncFailure: If a store cannot be written; the caller may retry.
        """
        status = OrderStatus(status)
        current = self.get_order(order_id)
        if current is None:
            raise OrderNotFound(order_id)
        if not can_transition(current.status, status):
            raise InvalidStatusTransition(current.status.value, status.value)
        return self.sync.sync_order_status(order_id, status, origin)

    def advance(self, order_id: str, origin: str = "admin") -> Order:
        current = self.get_order(order_id)
        if current is None:
            raise OrderNotFound(order_id)
        target = next_status(current.status)
        if target is None:
            raise InvalidStatusTransition(current.status.value, "next")
        return self.sync.sync_order_status(order_id, target, origin)

    def cancel(self, order_id: str, origin: str = "admin") -> Order:
        return self.update_status(order_id, OrderStatus.CANCELLED, origin)

    def bulk_update_status(self, order_ids: Iterable[str], status, origin: str = "admin") -> BulkUpdateResult:
        """
        Applies one status to several orders. Each order is validated and
        synced on its own; rejected ids are reported, not raised.

        Raises:
            SyncFailure: A store failure stops the batch; earlier orders stay updated.
        """
        result = BulkUpdateResult()
        for order_id in order_ids:
            try:
                self.update_status(order_id, status, origin)
            except (OrderNotFound, InvalidStatusTransition) as e:
                log.warning(f"[Order: {order_id}] Bulk update skipped: {e}")
                result.rejected[order_id] = str(e)
                continue
            except SyncFailure:
                log.error(f"[Order: {order_id}] Bulk update aborted after {len(result.updated)} orders.")
                raise
            result.updated.append(order_id)
        log.info(f"[Bulk] {len(result.updated)} orders set to {OrderStatus(status).value}, {len(result.rejected)} rejected.")
        return result

    def clear_all(self) -> None:
        """Administrative reset of both stores."""
        self.history.clear()
        self.management.clear()
        log.warning("[Orders] All orders cleared from both stores.")
