"""
lifecycle.py — Order Status State Machine

    pending → paid → shipped → delivered        (forward-only happy path)
    pending | paid | shipped → cancelled        (one-way cancellation)
    delivered, cancelled                         (terminal)

The guided admin UI only ever offers the single forward successor of the
current status, plus "cancel" while the order is not terminal. Skipping
forward (e.g. pending → shipped) is rejected.
"""

from datetime import datetime
from typing import Dict, List, Optional

from .exceptions import InvalidStatusTransition
from .models import Order, OrderStatus, utcnow

NEXT_STATUS: Dict[OrderStatus, Optional[OrderStatus]] = {
    OrderStatus.PENDING: OrderStatus.PAID,
    OrderStatus.PAID: OrderStatus.SHIPPED,
    OrderStatus.SHIPPED: OrderStatus.DELIVERED,
    OrderStatus.DELIVERED: None,
    OrderStatus.CANCELLED: None,
}

TERMINAL_STATES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

STATUS_LABELS: Dict[OrderStatus, str] = {
    OrderStatus.PENDING: "Pendente",
    OrderStatus.PAID: "Pago",
    OrderStatus.SHIPPED: "Enviado",
    OrderStatus.DELIVERED: "Entregue",
    OrderStatus.CANCELLED: "Cancelado",
}


def next_status(current) -> Optional[OrderStatus]:
    """Returns the forward successor of a status, or None when it is terminal."""
    return NEXT_STATUS[OrderStatus(current)]


def is_terminal(status) -> bool:
    return OrderStatus(status) in TERMINAL_STATES


def can_transition(current, target) -> bool:
    current, target = OrderStatus(current), OrderStatus(target)
    if current in TERMINAL_STATES:
        return False
    return target == NEXT_STATUS[current] or target == OrderStatus.CANCELLED


def can_reach(current, target) -> bool:
    """
    True if `target` lies on a forward walk from `current` (one or more steps).

    Used when replicating a status to a copy that may lag behind by several
    steps; it never allows leaving a terminal state or moving backwards.
    """
    current, target = OrderStatus(current), OrderStatus(target)
    if current in TERMINAL_STATES:
        return False
    if target == OrderStatus.CANCELLED:
        return True
    step = NEXT_STATUS[current]
    while step is not None:
        if step == target:
            return True
        step = NEXT_STATUS[step]
    return False


def available_actions(status) -> List[OrderStatus]:
    """Statuses a guided UI may offer for an order in `status`."""
    if is_terminal(status):
        return []
    return [next_status(status), OrderStatus.CANCELLED]


def transition(order: Order, target, now: Optional[datetime] = None) -> Order:
    """
    Moves an order to `target`.

    Args:
        order (Order): Current order record.
        target (OrderStatus | str): Requested status.
        now (datetime | None): Timestamp to record; defaults to the current UTC time.

    Returns:
        Order: A copy with the new status and refreshed `updated_at`. No other field changes.

    Raises:
        InvalidStatusTransition: If `target` is not reachable from the current status.
    """
    target = OrderStatus(target)
    if not can_transition(order.status, target):
        raise InvalidStatusTransition(order.status.value, target.value)
    return order.model_copy(update={"status": target, "updated_at": now or utcnow()})
