# inventory_ledger/core/fifo.py
from collections import OrderedDict
from typing import Dict, Iterable, List, Sequence, Tuple

def aggregate_requested(lines: Iterable) -> "OrderedDict[int, int]":
    """Sum requested quantities per product, keeping first-seen line order.

    Args:
        lines: Objects with product_id and quantity attributes

    Returns:
        Ordered mapping of product_id to total requested quantity
    """
    requested = OrderedDict()
    for line in lines:
        requested[line.product_id] = requested.get(line.product_id, 0) + line.quantity
    return requested

def plan_depletion(records: Sequence, quantity: int) -> List[Tuple[object, int]]:
    """Plan a FIFO depletion of quantity across records.

    Records must already be in depletion order (oldest last_updated first).
    Each record gives min(remaining, record.quantity); empty records are
    skipped.

    Args:
        records: Inventory records with a quantity attribute
        quantity: Amount to deplete

    Returns:
        List of (record, amount) pairs with amount > 0. The amounts sum to
        quantity when enough stock exists, otherwise to the total available.
    """
    plan = []
    remaining = quantity

    for record in records:
        if remaining <= 0:
            break
        if record.quantity <= 0:
            continue

        take = min(remaining, record.quantity)
        plan.append((record, take))
        remaining -= take

    return plan

def total_quantity(records: Iterable) -> int:
    """Sum the quantity of a set of records."""
    return sum(record.quantity for record in records)

def first_shortfall(requested: Dict[int, int], available: Dict[int, int]):
    """Find the first product whose available stock is below the requested amount.

    Returns:
        (product_id, available, required) or None when everything is covered
    """
    for product_id, required in requested.items():
        on_hand = available.get(product_id, 0)
        if on_hand < required:
            return product_id, on_hand, required
    return None
