# inventory_ledger/services/fulfillment_service.py
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from inventory_ledger.models import InventoryRecord
from inventory_ledger.exceptions import InsufficientStockError
from inventory_ledger.core.fifo import aggregate_requested, plan_depletion, total_quantity, first_shortfall
from inventory_ledger.db import atomic
from inventory_ledger.logging_setup import get_logger
from inventory_ledger.services.inventory_service import InventoryService

logger = get_logger('fulfillment_service')

class FulfillmentService:
    """Allocates and depletes stock for a set of order lines.

    Either every line is covered and depleted, or nothing changes.
    """

    def __init__(self, session: Session, inventory_service: Optional[InventoryService] = None):
        """Initialize the fulfillment service.

        Args:
            session: Database session
            inventory_service: Optional inventory service on the same session
        """
        self.session = session
        self.inventory = inventory_service or InventoryService(session)

    def check_availability(self, requested: Dict[int, int]) -> Dict[int, List[InventoryRecord]]:
        """Lock the requested products and their records, and verify coverage.

        Args:
            requested: Ordered mapping of product_id to required quantity

        Returns:
            The locked records per product, in FIFO order

        Raises:
            InsufficientStockError: For the first product (in line order) whose
                total stock is below the required quantity
        """
        self.inventory.lock_products(requested.keys())

        records = {}
        available = {}
        for product_id in requested:
            records[product_id] = self.inventory.list_records(product_id, for_update=True)
            available[product_id] = total_quantity(records[product_id])

        shortfall = first_shortfall(requested, available)
        if shortfall is not None:
            product_id, on_hand, required = shortfall
            logger.warning(f"Insufficient stock for product {product_id}: available {on_hand}, required {required}")
            raise InsufficientStockError(product_id, on_hand, required)

        return records

    def deplete(self, requested: Dict[int, int], records: Dict[int, List[InventoryRecord]]) -> List[Dict]:
        """Deplete each product oldest record first.

        Returns:
            List of depletions: record_id, product_id, warehouse_id, quantity
        """
        depletions = []

        for product_id, quantity in requested.items():
            for record, amount in plan_depletion(records[product_id], quantity):
                self.inventory.decrement(record, amount)
                depletions.append({
                    'record_id': record.id,
                    'product_id': product_id,
                    'warehouse_id': record.warehouse_id,
                    'quantity': amount
                })

        return depletions

    def fulfill(self, lines: Iterable) -> List[Dict]:
        """Check and deplete stock for order lines in one savepoint.

        Args:
            lines: Objects with product_id and quantity attributes

        Returns:
            List of depletions

        Raises:
            InsufficientStockError: If any product is short; nothing is changed
        """
        requested = aggregate_requested(lines)

        with atomic(self.session, 'fulfill'):
            records = self.check_availability(requested)
            depletions = self.deplete(requested, records)

        logger.info(f"Fulfilled {len(requested)} products in {len(depletions)} depletions")
        return depletions
