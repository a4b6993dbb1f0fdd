# inventory_ledger/core/order_status.py
from typing import Dict, FrozenSet, Iterable, Union
import enum

from inventory_ledger.models import PurchaseOrderStatus, SalesOrderStatus
from inventory_ledger.exceptions import InvalidTransitionError, ValidationError

PO = PurchaseOrderStatus
SO = SalesOrderStatus

# Allowed successor states. Cancellation is reachable from every
# non-terminal state; terminal states have no successors.
PURCHASE_ORDER_TRANSITIONS: Dict[PurchaseOrderStatus, FrozenSet[PurchaseOrderStatus]] = {
    PO.PENDING: frozenset({PO.APPROVED, PO.CANCELLED}),
    PO.APPROVED: frozenset({PO.SENT, PO.RECEIVED, PO.CANCELLED}),
    PO.SENT: frozenset({PO.RECEIVED, PO.CANCELLED}),
    PO.RECEIVED: frozenset({PO.COMPLETED, PO.CANCELLED}),
    PO.COMPLETED: frozenset(),
    PO.CANCELLED: frozenset(),
}

SALES_ORDER_TRANSITIONS: Dict[SalesOrderStatus, FrozenSet[SalesOrderStatus]] = {
    SO.QUOTATION: frozenset({SO.CONFIRMED, SO.CANCELLED}),
    SO.CONFIRMED: frozenset({SO.PROCESSING, SO.CANCELLED}),
    SO.PROCESSING: frozenset({SO.SHIPPED, SO.CANCELLED}),
    SO.SHIPPED: frozenset({SO.DELIVERED, SO.CANCELLED}),
    SO.DELIVERED: frozenset({SO.COMPLETED, SO.CANCELLED}),
    SO.COMPLETED: frozenset(),
    SO.CANCELLED: frozenset(),
}

# Statuses that may be set through update_status. The others have a
# dedicated operation with side effects (approve, receive, process).
PURCHASE_ORDER_ADMIN_STATUSES = frozenset({PO.SENT, PO.COMPLETED, PO.CANCELLED})
SALES_ORDER_ADMIN_STATUSES = frozenset({SO.SHIPPED, SO.DELIVERED, SO.COMPLETED, SO.CANCELLED})

def is_terminal(status: enum.Enum) -> bool:
    """Check whether a purchase or sales order status is terminal."""
    transitions = PURCHASE_ORDER_TRANSITIONS if isinstance(status, PurchaseOrderStatus) else SALES_ORDER_TRANSITIONS
    return not transitions[status]

def can_transition(current: enum.Enum, new: enum.Enum) -> bool:
    """Check whether an order may move from current to new status."""
    transitions = PURCHASE_ORDER_TRANSITIONS if isinstance(current, PurchaseOrderStatus) else SALES_ORDER_TRANSITIONS
    return new in transitions.get(current, frozenset())

def require_status(order_label: str, order_id: int, current: enum.Enum, allowed: Iterable[enum.Enum]):
    """Raise InvalidTransitionError unless the order is in one of the allowed statuses.

    Args:
        order_label: Human readable order kind, e.g. 'Sales order'
        order_id: Order ID
        current: Current status
        allowed: Statuses the operation is valid from
    """
    allowed = list(allowed)
    if current not in allowed:
        expected = '/'.join(status.value for status in allowed)
        raise InvalidTransitionError(
            f"{order_label} {order_id} is not in {expected} status",
            details={'order_id': order_id, 'status': current.value, 'expected': [s.value for s in allowed]}
        )

def require_transition(order_label: str, order_id: int, current: enum.Enum, new: enum.Enum):
    """Raise InvalidTransitionError if current -> new is not allowed."""
    if is_terminal(current):
        raise InvalidTransitionError(
            f"{order_label} {order_id} is already {current.value}",
            details={'order_id': order_id, 'status': current.value, 'new_status': new.value, 'terminal': True}
        )
    if not can_transition(current, new):
        raise InvalidTransitionError(
            f"{order_label} {order_id} cannot move from {current.value} to {new.value}",
            details={'order_id': order_id, 'status': current.value, 'new_status': new.value}
        )

def parse_status(enum_cls, value: Union[str, enum.Enum]):
    """Convert a raw status value to the given status enum.

    Raises:
        ValidationError if the value is not a member
    """
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls.from_string(value)
    except ValueError as e:
        raise ValidationError(str(e), details={'status': value})
