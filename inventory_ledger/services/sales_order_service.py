# inventory_ledger/services/sales_order_service.py
from typing import Any, Dict, List, Optional
from datetime import datetime

from sqlalchemy.orm import Session

from inventory_ledger.models import (
    Customer, SalesOrder, SalesOrderItem, SalesOrderStatus, ReturnType
)
from inventory_ledger.exceptions import NotFoundError, ValidationError
from inventory_ledger.core.fifo import aggregate_requested
from inventory_ledger.core.order_status import (
    SALES_ORDER_ADMIN_STATUSES, parse_status, require_status, require_transition
)
from inventory_ledger.db import atomic
from inventory_ledger.logging_setup import get_logger
from inventory_ledger.utils.validation import validate_order_items, order_total, validate_return_items, require_text, parse_int
from inventory_ledger.services.audit_service import AuditService
from inventory_ledger.services.inventory_service import InventoryService
from inventory_ledger.services.fulfillment_service import FulfillmentService

logger = get_logger('sales_order_service')

class SalesOrderService:
    """Service for customer orders: creation, approval, fulfillment and returns."""

    def __init__(self, session: Session, inventory_service: Optional[InventoryService] = None,
                 fulfillment_service: Optional[FulfillmentService] = None,
                 audit: Optional[AuditService] = None):
        """Initialize the sales order service.

        Args:
            session: Database session
            inventory_service: Optional inventory service on the same session
            fulfillment_service: Optional fulfillment service on the same session
            audit: Optional audit service on the same session
        """
        self.session = session
        self.audit = audit or AuditService(session)
        self.inventory = inventory_service or InventoryService(session, self.audit)
        self.fulfillment = fulfillment_service or FulfillmentService(session, self.inventory)

    def get_order(self, order_id: int, for_update: bool = False) -> SalesOrder:
        """Get a sales order by ID.

        Raises:
            NotFoundError: If the order does not exist
        """
        query = self.session.query(SalesOrder).filter(SalesOrder.id == order_id)
        if for_update:
            query = query.with_for_update().populate_existing()

        order = query.one_or_none()
        if order is None:
            raise NotFoundError(f"Sales order with ID {order_id} not found")
        return order

    def get_order_items(self, order_id: int) -> List[SalesOrderItem]:
        return self.get_order(order_id).items

    def list_orders(self, status=None, customer_id: Optional[int] = None) -> List[SalesOrder]:
        query = self.session.query(SalesOrder)

        if status is not None:
            query = query.filter(SalesOrder.status == parse_status(SalesOrderStatus, status))
        if customer_id is not None:
            query = query.filter(SalesOrder.customer_id == customer_id)

        return query.order_by(SalesOrder.order_date.desc(), SalesOrder.id.desc()).all()

    def get_order_details(self, order_id: int) -> Dict[str, Any]:
        details = self.get_order(order_id).to_dict()
        details['items'] = [item.to_dict() for item in self.get_order_items(order_id)]
        return details

    def create(self, customer_id: int, items, user_id: Optional[int] = None) -> SalesOrder:
        """Create a sales order in quotation status.

        Args:
            customer_id: Customer ID
            items: List of dicts with product_id, quantity and unit_price
            user_id: Acting user ID

        Raises:
            EmptyItemsError, InvalidQuantityError, InvalidPriceError: On bad items
            NotFoundError: If the customer or a product does not exist
        """
        lines = validate_order_items(items)
        total_amount = order_total(lines)

        with atomic(self.session, 'create_sales_order'):
            if self.session.get(Customer, customer_id) is None:
                raise NotFoundError(f"Customer with ID {customer_id} not found")
            self.inventory.lock_products(line.product_id for line in lines)

            order = SalesOrder(
                customer_id=customer_id,
                status=SalesOrderStatus.QUOTATION,
                total_amount=total_amount,
                order_date=datetime.now()
            )
            self.session.add(order)
            self.session.flush()

            for line in lines:
                self.session.add(SalesOrderItem(
                    sales_order_id=order.id,
                    product_id=line.product_id,
                    quantity=line.quantity,
                    unit_price=line.unit_price
                ))
            self.session.flush()

            self.audit.log_activity(user_id, 'SALES_ORDER_CREATED', {
                'sales_order_id': order.id,
                'total_amount': str(total_amount)
            })

        self.session.commit()
        logger.info(f"Created sales order {order.id} for customer {customer_id}: {len(lines)} items, total {total_amount}")
        return order

    def approve(self, order_id: int, approver_id: Optional[int]) -> SalesOrder:
        """Confirm a quotation.

        Raises:
            NotFoundError: If the order does not exist
            InvalidTransitionError: If the order is not a quotation
        """
        with atomic(self.session, 'approve_sales_order'):
            order = self.get_order(order_id, for_update=True)
            require_status('Sales order', order_id, order.status, [SalesOrderStatus.QUOTATION])

            order.status = SalesOrderStatus.CONFIRMED
            order.approved_by = approver_id
            order.approved_at = datetime.now()
            self.session.flush()

            self.audit.log_activity(approver_id, 'SALES_ORDER_APPROVED', {'sales_order_id': order_id})

        self.session.commit()
        logger.info(f"Sales order {order_id} approved by user {approver_id}")
        return order

    def process(self, order_id: int, user_id: Optional[int] = None) -> Dict[str, Any]:
        """Fulfill a confirmed order: deplete stock and move it to processing.

        The order row is locked first, so a second concurrent call sees the
        new status and fails instead of depleting twice.

        Returns:
            Dictionary with the new status and the depletions made

        Raises:
            NotFoundError: If the order does not exist
            InvalidTransitionError: If the order is not confirmed
            InsufficientStockError: If any product is short; nothing changes
        """
        with atomic(self.session, 'process_sales_order'):
            order = self.get_order(order_id, for_update=True)
            require_status('Sales order', order_id, order.status, [SalesOrderStatus.CONFIRMED])

            depletions = self.fulfillment.fulfill(order.items)

            order.status = SalesOrderStatus.PROCESSING
            self.session.flush()

            self.audit.log_activity(user_id, 'SALES_ORDER_PROCESSED', {
                'sales_order_id': order_id,
                'depletions': depletions
            })

        self.session.commit()
        logger.info(f"Processed sales order {order_id}: {len(depletions)} depletions")

        return {
            'status': SalesOrderStatus.PROCESSING.value,
            'depletions': depletions
        }

    def update_status(self, order_id: int, new_status, user_id: Optional[int] = None) -> SalesOrder:
        """Move a sales order to shipped, delivered, completed or cancelled.

        No stock moves here. Cancelling an order that already depleted stock
        leaves the stock depleted.

        Raises:
            ValidationError: If the status is unknown or needs its own operation
            NotFoundError: If the order does not exist
            InvalidTransitionError: If the state machine forbids the move
        """
        new_status = parse_status(SalesOrderStatus, new_status)
        if new_status not in SALES_ORDER_ADMIN_STATUSES:
            raise ValidationError(
                f"Status {new_status.value} cannot be set directly",
                details={'status': new_status.value, 'allowed': sorted(s.value for s in SALES_ORDER_ADMIN_STATUSES)}
            )

        with atomic(self.session, 'update_sales_order_status'):
            order = self.get_order(order_id, for_update=True)
            old_status = order.status
            require_transition('Sales order', order_id, old_status, new_status)

            order.status = new_status
            self.session.flush()

            self.audit.log_activity(user_id, 'SALES_ORDER_STATUS_UPDATED', {
                'sales_order_id': order_id,
                'old_status': old_status.value,
                'new_status': new_status.value
            })

        self.session.commit()

        if new_status == SalesOrderStatus.CANCELLED and old_status in (
                SalesOrderStatus.PROCESSING, SalesOrderStatus.SHIPPED, SalesOrderStatus.DELIVERED):
            logger.warning(f"Sales order {order_id} cancelled after fulfillment; depleted stock was not restored")
        else:
            logger.info(f"Sales order {order_id} status {old_status.value} -> {new_status.value}")

        return order

    def create_return(self, order_id: int, items, reason: str, return_type, warehouse_id,
                      user_id: Optional[int] = None) -> Dict[str, Any]:
        """Put returned goods from a delivered or completed order back into stock.

        Exchanges are reinstated the same way as returns; the replacement
        shipment is not allocated here.

        Args:
            order_id: Sales order ID
            items: List of dicts with product_id and quantity
            reason: Return reason
            return_type: 'return' or 'exchange'
            warehouse_id: Warehouse receiving the goods
            user_id: Acting user ID

        Returns:
            Dictionary with status 'ok' and the reinstated records

        Raises:
            ValidationError: On bad items, a blank reason, an unknown type, or
                a product/quantity not covered by the order
            NotFoundError: If the order or warehouse does not exist
            InvalidTransitionError: If the order is not delivered or completed
        """
        lines = validate_return_items(items)
        reason = require_text(reason, 'reason')

        try:
            return_type = ReturnType(return_type) if not isinstance(return_type, ReturnType) else return_type
        except ValueError:
            raise ValidationError("Type must be return or exchange", details={'type': return_type})

        parsed_warehouse_id = parse_int(warehouse_id)
        if parsed_warehouse_id is None:
            raise ValidationError("Target warehouse is required", details={'warehouse_id': warehouse_id})

        with atomic(self.session, 'sales_order_return'):
            order = self.get_order(order_id, for_update=True)
            require_status('Sales order', order_id, order.status,
                           [SalesOrderStatus.DELIVERED, SalesOrderStatus.COMPLETED])

            ordered = aggregate_requested(order.items)
            returned = aggregate_requested(lines)
            for product_id, quantity in returned.items():
                if product_id not in ordered:
                    raise ValidationError(
                        f"Product {product_id} is not on sales order {order_id}",
                        details={'product_id': product_id}
                    )
                if quantity > ordered[product_id]:
                    raise ValidationError(
                        f"Return quantity {quantity} exceeds ordered quantity {ordered[product_id]} for product {product_id}",
                        details={'product_id': product_id, 'quantity': quantity, 'ordered': ordered[product_id]}
                    )

            self.inventory.lock_products(returned.keys())

            records = []
            for line in lines:
                record = self.inventory.create_or_increment(line.product_id, parsed_warehouse_id, line.quantity)
                records.append(record)

            self.audit.log_activity(user_id, f'SALES_ORDER_{return_type.value.upper()}', {
                'sales_order_id': order_id,
                'reason': reason,
                'warehouse_id': parsed_warehouse_id,
                'items': [{'product_id': line.product_id, 'quantity': line.quantity} for line in lines]
            })

        self.session.commit()
        logger.info(f"Sales order {order_id} {return_type.value}: {len(lines)} items into warehouse {parsed_warehouse_id}")

        return {
            'status': 'ok',
            'type': return_type.value,
            'records': records
        }
