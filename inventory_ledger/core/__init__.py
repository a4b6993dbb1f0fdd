from .fifo import aggregate_requested, plan_depletion, total_quantity, first_shortfall
from .order_status import (
    PURCHASE_ORDER_TRANSITIONS, SALES_ORDER_TRANSITIONS,
    PURCHASE_ORDER_ADMIN_STATUSES, SALES_ORDER_ADMIN_STATUSES,
    is_terminal, can_transition, require_status, require_transition, parse_status
)

__all__ = [
    'aggregate_requested',
    'plan_depletion',
    'total_quantity',
    'first_shortfall',
    'PURCHASE_ORDER_TRANSITIONS',
    'SALES_ORDER_TRANSITIONS',
    'PURCHASE_ORDER_ADMIN_STATUSES',
    'SALES_ORDER_ADMIN_STATUSES',
    'is_terminal',
    'can_transition',
    'require_status',
    'require_transition',
    'parse_status'
]
