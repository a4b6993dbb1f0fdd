# inventory_ledger/services/purchase_order_service.py
from typing import Any, Dict, List, Optional
from datetime import datetime

from sqlalchemy.orm import Session

from inventory_ledger.models import (
    PurchaseOrder, PurchaseOrderItem, PurchaseOrderStatus, Receipt, ReceiptItem, Supplier
)
from inventory_ledger.exceptions import NotFoundError, ValidationError
from inventory_ledger.core.order_status import (
    PURCHASE_ORDER_ADMIN_STATUSES, parse_status, require_status, require_transition
)
from inventory_ledger.db import atomic
from inventory_ledger.logging_setup import get_logger
from inventory_ledger.utils.validation import validate_order_items, order_total, validate_received_items, parse_int
from inventory_ledger.services.audit_service import AuditService
from inventory_ledger.services.inventory_service import InventoryService

logger = get_logger('purchase_order_service')

class PurchaseOrderService:
    """Service for supplier orders and the receipts that bring stock in."""

    def __init__(self, session: Session, inventory_service: Optional[InventoryService] = None,
                 audit: Optional[AuditService] = None):
        """Initialize the purchase order service.

        Args:
            session: Database session
            inventory_service: Optional inventory service on the same session
            audit: Optional audit service on the same session
        """
        self.session = session
        self.audit = audit or AuditService(session)
        self.inventory = inventory_service or InventoryService(session, self.audit)

    def get_order(self, order_id: int, for_update: bool = False) -> PurchaseOrder:
        """Get a purchase order by ID.

        Raises:
            NotFoundError: If the order does not exist
        """
        query = self.session.query(PurchaseOrder).filter(PurchaseOrder.id == order_id)
        if for_update:
            query = query.with_for_update().populate_existing()

        order = query.one_or_none()
        if order is None:
            raise NotFoundError(f"Purchase order with ID {order_id} not found")
        return order

    def get_order_items(self, order_id: int) -> List[PurchaseOrderItem]:
        return self.get_order(order_id).items

    def get_receipts(self, order_id: int) -> List[Receipt]:
        """Receipts posted against an order, oldest first."""
        self.get_order(order_id)
        return (
            self.session.query(Receipt)
            .filter(Receipt.purchase_order_id == order_id)
            .order_by(Receipt.id)
            .all()
        )

    def list_orders(self, status=None, supplier_id: Optional[int] = None) -> List[PurchaseOrder]:
        """List purchase orders, newest first.

        Args:
            status: Optional status filter
            supplier_id: Optional supplier filter
        """
        query = self.session.query(PurchaseOrder)

        if status is not None:
            query = query.filter(PurchaseOrder.status == parse_status(PurchaseOrderStatus, status))
        if supplier_id is not None:
            query = query.filter(PurchaseOrder.supplier_id == supplier_id)

        return query.order_by(PurchaseOrder.order_date.desc(), PurchaseOrder.id.desc()).all()

    def create(self, supplier_id: int, items, user_id: Optional[int] = None) -> PurchaseOrder:
        """Create a pending purchase order with its line items.

        Args:
            supplier_id: Supplier ID
            items: List of dicts with product_id, quantity and unit_price
            user_id: Acting user ID

        Returns:
            The new PurchaseOrder

        Raises:
            EmptyItemsError, InvalidQuantityError, InvalidPriceError: On bad items
            NotFoundError: If the supplier or a product does not exist
        """
        lines = validate_order_items(items)
        total_amount = order_total(lines)

        with atomic(self.session, 'create_purchase_order'):
            if self.session.get(Supplier, supplier_id) is None:
                raise NotFoundError(f"Supplier with ID {supplier_id} not found")
            self.inventory.lock_products(line.product_id for line in lines)

            order = PurchaseOrder(
                supplier_id=supplier_id,
                status=PurchaseOrderStatus.PENDING,
                total_amount=total_amount,
                order_date=datetime.now()
            )
            self.session.add(order)
            self.session.flush()

            for line in lines:
                self.session.add(PurchaseOrderItem(
                    purchase_order_id=order.id,
                    product_id=line.product_id,
                    quantity=line.quantity,
                    unit_price=line.unit_price
                ))
            self.session.flush()

            self.audit.log_activity(user_id, 'PURCHASE_ORDER_CREATED', {
                'purchase_order_id': order.id,
                'total_amount': str(total_amount)
            })

        self.session.commit()
        logger.info(f"Created purchase order {order.id} for supplier {supplier_id}: {len(lines)} items, total {total_amount}")
        return order

    def approve(self, order_id: int, approver_id: Optional[int]) -> PurchaseOrder:
        """Approve a pending purchase order.

        Raises:
            NotFoundError: If the order does not exist
            InvalidTransitionError: If the order is not pending
        """
        with atomic(self.session, 'approve_purchase_order'):
            order = self.get_order(order_id, for_update=True)
            require_status('Purchase order', order_id, order.status, [PurchaseOrderStatus.PENDING])

            order.status = PurchaseOrderStatus.APPROVED
            order.approved_by = approver_id
            order.approved_at = datetime.now()
            self.session.flush()

            self.audit.log_activity(approver_id, 'PURCHASE_ORDER_APPROVED', {'purchase_order_id': order_id})

        self.session.commit()
        logger.info(f"Purchase order {order_id} approved by user {approver_id}")
        return order

    def receive(self, order_id: int, receiver_id: Optional[int], items, warehouse_id: Optional[int] = None) -> Receipt:
        """Receive goods against an approved or sent purchase order.

        Creates one receipt, one receipt item per line with a positive
        quantity, increments stock in the target warehouse and moves the order
        to received. All of it or nothing.

        Args:
            order_id: Purchase order ID
            receiver_id: Acting user ID
            items: List of dicts with product_id, quantity_received and
                optional warehouse_id, batch_number, serial_number
            warehouse_id: Target warehouse for lines without their own

        Returns:
            The Receipt

        Raises:
            ValidationError: On bad items, a missing warehouse, or a product
                that is not on the order
            NotFoundError: If the order or a warehouse does not exist
            InvalidTransitionError: If the order is not approved or sent
        """
        lines = validate_received_items(items)

        if warehouse_id is not None:
            parsed = parse_int(warehouse_id)
            if parsed is None:
                raise ValidationError("Warehouse ID must be an integer", details={'warehouse_id': warehouse_id})
            warehouse_id = parsed

        missing = [index for index, line in enumerate(lines) if line.warehouse_id is None and warehouse_id is None]
        if missing:
            raise ValidationError(
                "Target warehouse is required",
                details={f'items[{index}].warehouse_id': 'required' for index in missing}
            )

        with atomic(self.session, 'receive_purchase_order'):
            order = self.get_order(order_id, for_update=True)
            require_status('Purchase order', order_id, order.status,
                           [PurchaseOrderStatus.APPROVED, PurchaseOrderStatus.SENT])

            ordered_products = {item.product_id for item in order.items}
            for line in lines:
                if line.product_id not in ordered_products:
                    raise ValidationError(
                        f"Product {line.product_id} is not on purchase order {order_id}",
                        details={'product_id': line.product_id}
                    )

            self.inventory.lock_products(line.product_id for line in lines)

            receipt = Receipt(
                purchase_order_id=order_id,
                received_by=receiver_id,
                received_date=datetime.now()
            )
            self.session.add(receipt)
            self.session.flush()

            for line in lines:
                if line.quantity_received <= 0:
                    continue

                target = line.warehouse_id if line.warehouse_id is not None else warehouse_id
                self.inventory.create_or_increment(
                    line.product_id, target, line.quantity_received,
                    batch_number=line.batch_number,
                    serial_number=line.serial_number
                )
                self.session.add(ReceiptItem(
                    receipt_id=receipt.id,
                    product_id=line.product_id,
                    warehouse_id=target,
                    quantity_received=line.quantity_received,
                    batch_number=line.batch_number,
                    serial_number=line.serial_number
                ))

            order.status = PurchaseOrderStatus.RECEIVED
            self.session.flush()

            self.audit.log_activity(receiver_id, 'PURCHASE_ORDER_RECEIVED', {
                'purchase_order_id': order_id,
                'receipt_id': receipt.id
            })

        self.session.commit()
        logger.info(f"Received purchase order {order_id} as receipt {receipt.id}")
        return receipt

    def update_status(self, order_id: int, new_status, user_id: Optional[int] = None) -> PurchaseOrder:
        """Move a purchase order to sent, completed or cancelled.

        Raises:
            ValidationError: If the status is unknown or needs its own operation
            NotFoundError: If the order does not exist
            InvalidTransitionError: If the state machine forbids the move
        """
        new_status = parse_status(PurchaseOrderStatus, new_status)
        if new_status not in PURCHASE_ORDER_ADMIN_STATUSES:
            raise ValidationError(
                f"Status {new_status.value} cannot be set directly",
                details={'status': new_status.value, 'allowed': sorted(s.value for s in PURCHASE_ORDER_ADMIN_STATUSES)}
            )

        with atomic(self.session, 'update_purchase_order_status'):
            order = self.get_order(order_id, for_update=True)
            old_status = order.status
            require_transition('Purchase order', order_id, old_status, new_status)

            order.status = new_status
            self.session.flush()

            self.audit.log_activity(user_id, 'PURCHASE_ORDER_STATUS_UPDATED', {
                'purchase_order_id': order_id,
                'old_status': old_status.value,
                'new_status': new_status.value
            })

        self.session.commit()
        logger.info(f"Purchase order {order_id} status {old_status.value} -> {new_status.value}")
        return order

    def get_order_details(self, order_id: int) -> Dict[str, Any]:
        """Get an order with its items and receipts as a dictionary."""
        details = self.get_order(order_id).to_dict()
        details['items'] = [item.to_dict() for item in self.get_order_items(order_id)]
        details['receipts'] = [receipt.to_dict() for receipt in self.get_receipts(order_id)]
        return details
