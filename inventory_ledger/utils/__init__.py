from .validation import (
    OrderLine, ReceivedLine, ReturnLine,
    validate_order_items, validate_received_items, validate_return_items,
    validate_quantity, require_text, parse_int, parse_price, order_total, MAX_INT, MAX_AMOUNT,
    optional_text, validate_email
)

__all__ = [
    'OrderLine',
    'ReceivedLine',
    'ReturnLine',
    'validate_order_items',
    'validate_received_items',
    'validate_return_items',
    'validate_quantity',
    'require_text',
    'parse_int',
    'parse_price',
    'order_total',
    'MAX_INT',
    'MAX_AMOUNT',
    'optional_text',
    'validate_email'
]
