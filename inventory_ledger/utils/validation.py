import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from inventory_ledger.exceptions import (
    ValidationError, EmptyItemsError, InvalidQuantityError, InvalidPriceError
)

@dataclass(frozen=True)
class OrderLine:
    """A validated purchase or sales order line."""
    product_id: int
    quantity: int
    unit_price: Decimal

@dataclass(frozen=True)
class ReceivedLine:
    """A validated line of a purchase order receipt."""
    product_id: int
    quantity_received: int
    warehouse_id: Optional[int] = None
    batch_number: Optional[str] = None
    serial_number: Optional[str] = None

@dataclass(frozen=True)
class ReturnLine:
    """A validated line of a sales order return."""
    product_id: int
    quantity: int

# Integer columns are 32-bit, money columns are Numeric(12, 2)
MAX_INT = 2 ** 31 - 1
MAX_AMOUNT = Decimal('9999999999.99')

def parse_int(value: Any) -> Optional[int]:
    """Parse an integer from JSON-ish input.

    Returns:
        The integer, or None if the value is not an integer or does not
        fit a 32-bit column
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        number = value
    elif isinstance(value, str) and value.strip().lstrip('-').isdigit():
        number = int(value.strip())
    else:
        return None
    if not -MAX_INT - 1 <= number <= MAX_INT:
        return None
    return number

def parse_price(value: Any) -> Optional[Decimal]:
    """Parse a unit price with at most two decimal places."""
    if value is None or isinstance(value, bool):
        return None
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not price.is_finite() or price.as_tuple().exponent < -2 or abs(price) > MAX_AMOUNT:
        return None
    return price

def order_total(lines: List[OrderLine]) -> Decimal:
    """Sum quantity x unit price over validated lines.

    Raises:
        ValidationError: If the total does not fit a money column
    """
    total = sum((line.unit_price * line.quantity for line in lines), Decimal('0'))
    if total > MAX_AMOUNT:
        raise ValidationError(
            "Order total exceeds the maximum amount",
            details={'total_amount': str(total), 'maximum': str(MAX_AMOUNT)}
        )
    return total

def _require_items(items) -> List[Dict[str, Any]]:
    if items is None or not isinstance(items, (list, tuple)) or len(items) == 0:
        raise EmptyItemsError()
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"Item {index} must be an object", details={f'items[{index}]': 'Item must be an object'})
    return list(items)

def _raise_for(errors: Dict[str, str], first_error_cls):
    if errors:
        raise first_error_cls(details=errors)

def validate_order_items(items) -> List[OrderLine]:
    """Validate purchase/sales order line items.

    Args:
        items: List of dicts with product_id, quantity and unit_price

    Returns:
        List of OrderLine

    Raises:
        EmptyItemsError, InvalidQuantityError, InvalidPriceError, ValidationError
    """
    errors = {}
    first_error_cls = None
    lines = []

    for index, item in enumerate(_require_items(items)):
        product_id = parse_int(item.get('product_id'))
        quantity = parse_int(item.get('quantity'))
        unit_price = parse_price(item.get('unit_price'))

        if product_id is None:
            errors[f'items[{index}].product_id'] = 'Product ID must be an integer'
            first_error_cls = first_error_cls or ValidationError

        if quantity is None or quantity < 1:
            errors[f'items[{index}].quantity'] = 'Quantity must be a positive integer'
            first_error_cls = first_error_cls or InvalidQuantityError

        if unit_price is None or unit_price < 0:
            errors[f'items[{index}].unit_price'] = 'Unit price must be a valid non-negative decimal'
            first_error_cls = first_error_cls or InvalidPriceError

        if not errors:
            lines.append(OrderLine(product_id, quantity, unit_price))

    _raise_for(errors, first_error_cls)
    return lines

def validate_received_items(items) -> List[ReceivedLine]:
    """Validate the items of a purchase order receipt.

    quantity_received may be zero; such lines are skipped by the ledger.
    """
    errors = {}
    first_error_cls = None
    lines = []

    for index, item in enumerate(_require_items(items)):
        product_id = parse_int(item.get('product_id'))
        quantity = parse_int(item.get('quantity_received'))
        warehouse_id = item.get('warehouse_id')

        if product_id is None:
            errors[f'items[{index}].product_id'] = 'Product ID must be an integer'
            first_error_cls = first_error_cls or ValidationError

        if quantity is None or quantity < 0:
            errors[f'items[{index}].quantity_received'] = 'Quantity received must be a non-negative integer'
            first_error_cls = first_error_cls or InvalidQuantityError

        if warehouse_id is not None:
            warehouse_id = parse_int(warehouse_id)
            if warehouse_id is None:
                errors[f'items[{index}].warehouse_id'] = 'Warehouse ID must be an integer'
                first_error_cls = first_error_cls or ValidationError

        for field in ('batch_number', 'serial_number'):
            if item.get(field) is not None and not isinstance(item.get(field), str):
                errors[f'items[{index}].{field}'] = f'{field} must be a string'
                first_error_cls = first_error_cls or ValidationError

        if not errors:
            lines.append(ReceivedLine(
                product_id=product_id,
                quantity_received=quantity,
                warehouse_id=warehouse_id,
                batch_number=item.get('batch_number'),
                serial_number=item.get('serial_number')
            ))

    _raise_for(errors, first_error_cls)
    return lines

def validate_return_items(items) -> List[ReturnLine]:
    """Validate the items of a sales order return."""
    errors = {}
    first_error_cls = None
    lines = []

    for index, item in enumerate(_require_items(items)):
        product_id = parse_int(item.get('product_id'))
        quantity = parse_int(item.get('quantity'))

        if product_id is None:
            errors[f'items[{index}].product_id'] = 'Product ID must be an integer'
            first_error_cls = first_error_cls or ValidationError

        if quantity is None or quantity < 1:
            errors[f'items[{index}].quantity'] = 'Quantity must be a positive integer'
            first_error_cls = first_error_cls or InvalidQuantityError

        if not errors:
            lines.append(ReturnLine(product_id, quantity))

    _raise_for(errors, first_error_cls)
    return lines

def validate_quantity(quantity, field='quantity') -> int:
    """Validate a single non-negative integer quantity."""
    value = parse_int(quantity)
    if value is None or value < 0:
        raise InvalidQuantityError(
            f"{field.capitalize()} must be a non-negative integer",
            details={field: quantity}
        )
    return value

def require_text(value, field) -> str:
    """Validate a required, non-blank string field."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field.replace('_', ' ').capitalize()} is required", details={field: 'required'})
    return value.strip()

EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')

def optional_text(value, field) -> Optional[str]:
    """Validate an optional string field. Blank becomes None."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field.replace('_', ' ').capitalize()} must be a string", details={field: 'must be a string'})
    return value.strip() or None

def validate_email(value, field='email') -> Optional[str]:
    """Validate an optional email address."""
    email = optional_text(value, field)
    if email is not None and not EMAIL_PATTERN.match(email):
        raise ValidationError("Must be a valid email", details={field: email})
    return email
