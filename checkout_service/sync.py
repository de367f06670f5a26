"""
sync.py — Order Synchronization between Customer and Admin Stores

The customer purchase history and the admin order management list are
persisted independently. OrderSyncEngine reconciles them:

    • sync_order_status() — replicates a status change to every store that
      holds the order and copies the record into a store that misses it.
    • sync_all() — full reconciliation pass (copy-if-missing both ways,
      newer `updated_at` wins for records present in both).
    • get_authoritative_copy() — read-only: the copy with the later
      `updated_at`.

Writes are issued sequentially, admin store first. There is no cross-store
transaction: a failure between the two writes leaves the stores diverged
until the next sync, and is reported to the caller as SyncFailure.
"""

from typing import Optional

from .exceptions import InvalidStatusTransition, OrderNotFound, StorageUnavailable, SyncFailure
from .lifecycle import can_reach
from .logging_config import get_logger
from .models import Order, OrderStatus, SyncReport, utcnow

log = get_logger(__name__)


class OrderSyncEngine:
    """
    Keeps CustomerHistoryStore and AdminManagementStore consistent.

    Args:
        history_store (CustomerHistoryStore): Customer-facing store.
        management_store (AdminManagementStore): Admin-facing store.
    """

    def __init__(self, history_store, management_store):
        self.history = history_store
        self.management = management_store

    def _read(self, store, order_id) -> Optional[Order]:
        try:
            return store.get_order(order_id)
        except StorageUnavailable as e:
            raise SyncFailure(order_id, store.name, str(e)) from e

    def _write(self, store, order: Order) -> None:
        try:
            store.add_order(order)
        except StorageUnavailable as e:
            raise SyncFailure(order.id, store.name, str(e)) from e

    def _apply_status(self, store, current: Optional[Order], status, now) -> Optional[Order]:
        if current is None:
            return None
        if current.status == status:
            # Same status again is not a mutation: updated_at stays put.
            return current
        updated = current.model_copy(update={"status": status, "updated_at": now})
        self._write(store, updated)
        return updated

    def sync_order_status(self, order_id: str, status, origin: str = "admin") -> Order:
        """
        Applies `status` to the order in both stores.

        If the order exists in only one store, the updated record is copied
        into the other one (self-healing for a missed initial write).

        Args:
            order_id (str): Order to update.
            status (OrderStatus | str): New status.
            origin (str): Who triggered the change ('admin', 'customer', 'system'); logged only.

        Returns:
            Order: The record as stored after the sync.

        Raises:
            OrderNotFound: If neither store holds the order.
            InvalidStatusTransition: If a stored copy cannot move forward to `status`.
            SyncFailure: If a store cannot be read or written.
        """
        status = OrderStatus(status)
        log_prefix = f"[Order: {order_id}]"
        log.info(f"{log_prefix} Syncing status -> {status.value} (by {origin}).")

        managed_current = self._read(self.management, order_id)
        history_current = self._read(self.history, order_id)
        if managed_current is None and history_current is None:
            raise OrderNotFound(order_id)

        # Validate both copies before touching either store.
        for current in (managed_current, history_current):
            if current is not None and current.status != status and not can_reach(current.status, status):
                raise InvalidStatusTransition(current.status.value, status.value)

        now = utcnow()
        managed = self._apply_status(self.management, managed_current, status, now)
        history = self._apply_status(self.history, history_current, status, now)

        if history is None:
            self._write(self.history, managed)
            log.info(f"{log_prefix} Copied missing record into {self.history.name}.")
        elif managed is None:
            self._write(self.management, history)
            log.info(f"{log_prefix} Copied missing record into {self.management.name}.")

        log.info(f"{log_prefix} Status sync completed.")
        return managed or history

    def sync_all(self) -> SyncReport:
        """
        Full reconciliation of both stores.

        Orders missing from one store are copied from the other; for orders
        present in both, the copy with the later `updated_at` replaces the
        older one.
        """
        log.info("[Sync] Syncing all orders between stores...")
        try:
            managed = {order.id: order for order in self.management.list_orders()}
        except StorageUnavailable as e:
            raise SyncFailure("*", self.management.name, str(e)) from e
        try:
            history = {order.id: order for order in self.history.list_orders()}
        except StorageUnavailable as e:
            raise SyncFailure("*", self.history.name, str(e)) from e

        report = SyncReport()
        for order_id, order in managed.items():
            other = history.get(order_id)
            if other is None:
                self._write(self.history, order)
                report.copied_to_history += 1
            elif order.updated_at > other.updated_at:
                self._write(self.history, order)
                report.updated += 1

        for order_id, order in history.items():
            other = managed.get(order_id)
            if other is None:
                self._write(self.management, order)
                report.copied_to_management += 1
            elif order.updated_at > other.updated_at:
                self._write(self.management, order)
                report.updated += 1

        log.info(
            f"[Sync] Done: {report.copied_to_history} copied to {self.history.name}, "
            f"{report.copied_to_management} copied to {self.management.name}, {report.updated} updated."
        )
        return report

    def get_authoritative_copy(self, order_id: str) -> Optional[Order]:
        """Returns the most recently updated copy of an order (admin copy on ties), without writing."""
        managed = self._read(self.management, order_id)
        history = self._read(self.history, order_id)
        if managed and history:
            return history if history.updated_at > managed.updated_at else managed
        return managed or history
