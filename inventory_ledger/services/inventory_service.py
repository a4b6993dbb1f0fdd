# inventory_ledger/services/inventory_service.py
from dataclasses import dataclass, fields
from typing import Any, Dict, Iterable, List, Optional
from datetime import datetime

from sqlalchemy import func, and_, or_
from sqlalchemy.orm import Session

from inventory_ledger.models import InventoryRecord, LowStockAlert, Product, Warehouse
from inventory_ledger.exceptions import (
    ValidationError, NotFoundError, InvalidQuantityError,
    InsufficientStockError, DuplicateCombinationError
)
from inventory_ledger.db import atomic
from inventory_ledger.logging_setup import get_logger
from inventory_ledger.utils.validation import validate_quantity, require_text
from inventory_ledger.utils.pagination import Page, paginate
from inventory_ledger.services.audit_service import AuditService
from inventory_ledger.services.threshold_service import ThresholdService

logger = get_logger('inventory_service')

@dataclass(frozen=True)
class InventoryPatch:
    """Typed partial update of an inventory record.

    A field left as None is not changed.
    """
    quantity: Optional[int] = None
    batch_number: Optional[str] = None
    serial_number: Optional[str] = None

    def changes(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}

class InventoryService:
    """Service for the inventory record store.

    Mutations that are part of a larger operation (create_or_increment,
    decrement) expect the caller to hold the product lock and to own the
    transaction. The standalone operations (adjust, add_record) take their
    own locks and commit.
    """

    def __init__(self, session: Session, audit: Optional[AuditService] = None):
        """Initialize the inventory service.

        Args:
            session: Database session
            audit: Optional audit service (defaults to one on the same session)
        """
        self.session = session
        self.audit = audit or AuditService(session)
        self.thresholds = ThresholdService(session, self.audit)

    def get_record(self, record_id: int) -> InventoryRecord:
        """Get an inventory record by ID.

        Raises:
            NotFoundError: If the record does not exist
        """
        record = self.session.get(InventoryRecord, record_id)
        if record is None:
            raise NotFoundError(f"Inventory record with ID {record_id} not found")
        return record

    def get_warehouse(self, warehouse_id: int) -> Warehouse:
        warehouse = self.session.get(Warehouse, warehouse_id)
        if warehouse is None:
            raise NotFoundError(f"Warehouse with ID {warehouse_id} not found")
        return warehouse

    def get_warehouses(self) -> List[Warehouse]:
        return self.session.query(Warehouse).order_by(Warehouse.name).all()

    def create_warehouse(self, name: str, location: Optional[str] = None, user_id: Optional[int] = None) -> Warehouse:
        """Create a warehouse.

        Raises:
            ValidationError: If the name is blank or already used
        """
        name = require_text(name, 'name')

        with atomic(self.session, 'create_warehouse'):
            if self.session.query(Warehouse).filter(Warehouse.name == name).first() is not None:
                raise ValidationError(f"Warehouse '{name}' already exists", details={'name': name})

            warehouse = Warehouse(name=name, location=location)
            self.session.add(warehouse)
            self.session.flush()

            self.audit.log_activity(user_id, 'WAREHOUSE_CREATED', {'warehouse_id': warehouse.id, 'name': name})

        self.session.commit()
        return warehouse

    def lock_products(self, product_ids: Iterable[int]) -> List[Product]:
        """Take the per-product lock for each product, in ascending ID order.

        Every stock mutation path locks its products this way before reading
        inventory, so concurrent operations serialize per product and cannot
        deadlock on each other.

        Raises:
            NotFoundError: If a product does not exist
        """
        products = []
        for product_id in sorted(set(product_ids)):
            product = self.session.query(Product).filter(
                Product.id == product_id
            ).with_for_update().one_or_none()

            if product is None:
                raise NotFoundError(f"Product with ID {product_id} not found", details={'product_id': product_id})
            products.append(product)

        return products

    def list_records(self, product_id: int, for_update: bool = False) -> List[InventoryRecord]:
        """List a product's records in FIFO depletion order (oldest first).

        Args:
            product_id: Product ID
            for_update: Lock the rows for the rest of the transaction
        """
        query = self.session.query(InventoryRecord).filter(
            InventoryRecord.product_id == product_id
        ).order_by(
            InventoryRecord.last_updated.asc(), InventoryRecord.id.asc()
        )

        if for_update:
            query = query.with_for_update().populate_existing()

        return query.all()

    def get_available(self, product_id: int) -> int:
        """Total quantity of a product across all warehouses."""
        total = self.session.query(
            func.coalesce(func.sum(InventoryRecord.quantity), 0)
        ).filter(
            InventoryRecord.product_id == product_id
        ).scalar()

        return int(total)

    def find_record(self, product_id: int, warehouse_id: int, batch_number: Optional[str] = None,
                    serial_number: Optional[str] = None) -> Optional[InventoryRecord]:
        """Find the record for an exact product/warehouse/batch/serial combination."""
        query = self.session.query(InventoryRecord).filter(
            InventoryRecord.product_id == product_id,
            InventoryRecord.warehouse_id == warehouse_id
        )

        for column, value in ((InventoryRecord.batch_number, batch_number),
                              (InventoryRecord.serial_number, serial_number)):
            query = query.filter(column.is_(None) if value is None else column == value)

        return query.order_by(InventoryRecord.id.asc()).with_for_update().first()

    def create_or_increment(self, product_id: int, warehouse_id: int, delta: int,
                            batch_number: Optional[str] = None,
                            serial_number: Optional[str] = None) -> InventoryRecord:
        """Add delta units to the matching record, creating it if absent.

        Used by receipts and returns. The caller must hold the product lock.

        Raises:
            InvalidQuantityError: If delta is negative
            NotFoundError: If the warehouse does not exist
        """
        if delta < 0:
            raise InvalidQuantityError("Increment must be non-negative", details={'delta': delta})

        self.get_warehouse(warehouse_id)

        record = self.find_record(product_id, warehouse_id, batch_number, serial_number)
        now = datetime.now()

        if record is None:
            record = InventoryRecord(
                product_id=product_id,
                warehouse_id=warehouse_id,
                quantity=delta,
                batch_number=batch_number,
                serial_number=serial_number,
                last_updated=now
            )
            self.session.add(record)
        else:
            record.quantity += delta
            record.last_updated = now

        self.session.flush()
        return record

    def decrement(self, record: InventoryRecord, delta: int) -> InventoryRecord:
        """Remove delta units from a record. The caller must hold the product lock.

        Raises:
            InvalidQuantityError: If delta is negative
            InsufficientStockError: If delta exceeds the record quantity
        """
        if delta < 0:
            raise InvalidQuantityError("Decrement must be non-negative", details={'delta': delta})
        if delta > record.quantity:
            raise InsufficientStockError(record.product_id, record.quantity, delta)

        record.quantity -= delta
        record.last_updated = datetime.now()
        self.session.flush()
        return record

    def add_record(self, product_id: int, warehouse_id: int, quantity, batch_number: Optional[str] = None,
                   serial_number: Optional[str] = None, user_id: Optional[int] = None) -> InventoryRecord:
        """Create a new product/warehouse combination.

        Raises:
            InvalidQuantityError: If quantity is negative
            NotFoundError: If the product or warehouse does not exist
            DuplicateCombinationError: If the combination already exists
        """
        quantity = validate_quantity(quantity)

        with atomic(self.session, 'add_inventory_record'):
            self.lock_products([product_id])
            self.get_warehouse(warehouse_id)

            if self.find_record(product_id, warehouse_id, batch_number, serial_number) is not None:
                raise DuplicateCombinationError(details={
                    'product_id': product_id,
                    'warehouse_id': warehouse_id,
                    'batch_number': batch_number,
                    'serial_number': serial_number
                })

            record = InventoryRecord(
                product_id=product_id,
                warehouse_id=warehouse_id,
                quantity=quantity,
                batch_number=batch_number,
                serial_number=serial_number,
                last_updated=datetime.now()
            )
            self.session.add(record)
            self.session.flush()

            self.audit.log_activity(user_id, 'INVENTORY_ADDED', {
                'inventory_id': record.id,
                'product_id': product_id,
                'warehouse_id': warehouse_id,
                'quantity': quantity
            })

        self.session.commit()
        logger.info(f"Added inventory record {record.id}: product {product_id} at warehouse {warehouse_id}, qty {quantity}")
        return record

    def _apply_patch(self, record: InventoryRecord, patch: InventoryPatch):
        changes = patch.changes()

        batch_number = changes.get('batch_number', record.batch_number)
        serial_number = changes.get('serial_number', record.serial_number)
        if (batch_number, serial_number) != (record.batch_number, record.serial_number):
            existing = self.find_record(record.product_id, record.warehouse_id, batch_number, serial_number)
            if existing is not None and existing.id != record.id:
                raise DuplicateCombinationError(details={
                    'product_id': record.product_id,
                    'warehouse_id': record.warehouse_id,
                    'batch_number': batch_number,
                    'serial_number': serial_number
                })

        for name, value in changes.items():
            setattr(record, name, value)
        record.last_updated = datetime.now()
        self.session.flush()

    def adjust(self, record_id: int, new_quantity, reason: str, user_id: Optional[int] = None,
               batch_number: Optional[str] = None, serial_number: Optional[str] = None) -> Dict[str, Any]:
        """Set a record to an absolute quantity (stock count correction).

        Args:
            record_id: Inventory record ID
            new_quantity: New absolute quantity
            reason: Reason for the adjustment, kept in the audit log
            user_id: Acting user ID
            batch_number: Optional new batch number
            serial_number: Optional new serial number

        Returns:
            Dictionary with record, old_quantity, new_quantity and adjustment

        Raises:
            NotFoundError: If the record does not exist
            InvalidQuantityError: If new_quantity is negative
            ValidationError: If reason is blank
        """
        new_quantity = validate_quantity(new_quantity)
        reason = require_text(reason, 'reason')

        with atomic(self.session, 'adjust_inventory'):
            record = self.get_record(record_id)
            self.lock_products([record.product_id])
            record = self.session.query(InventoryRecord).filter(
                InventoryRecord.id == record_id
            ).with_for_update().populate_existing().one()

            old_quantity = record.quantity
            self._apply_patch(record, InventoryPatch(
                quantity=new_quantity,
                batch_number=batch_number,
                serial_number=serial_number
            ))

            adjustment = new_quantity - old_quantity
            self.audit.log_activity(user_id, 'INVENTORY_ADJUSTED', {
                'inventory_id': record.id,
                'product_id': record.product_id,
                'warehouse_id': record.warehouse_id,
                'old_quantity': old_quantity,
                'new_quantity': new_quantity,
                'adjustment': adjustment,
                'reason': reason
            })

        self.session.commit()
        logger.info(f"Adjusted inventory record {record_id}: {old_quantity} -> {new_quantity} ({reason})")

        return {
            'record': record,
            'old_quantity': old_quantity,
            'new_quantity': new_quantity,
            'adjustment': adjustment
        }

    def get_product_inventory(self, product_id: int) -> List[Dict[str, Any]]:
        """Get a product's stock per record, with warehouse and threshold details.

        Raises:
            NotFoundError: If the product does not exist
        """
        if self.session.get(Product, product_id) is None:
            raise NotFoundError(f"Product with ID {product_id} not found")

        records = self.session.query(InventoryRecord).join(Warehouse).filter(
            InventoryRecord.product_id == product_id
        ).order_by(Warehouse.name, InventoryRecord.id).all()

        result = []
        for record in records:
            threshold = self.thresholds.get_threshold(record.product_id, record.warehouse_id)
            entry = record.to_dict()
            entry.update({
                'warehouse_name': record.warehouse.name,
                'low_stock_threshold': threshold,
                'is_low_stock': record.quantity <= threshold
            })
            result.append(entry)

        return result

    def list_inventory(self, page: Page, warehouse_id: Optional[int] = None, search: Optional[str] = None,
                       low_stock: bool = False):
        """List inventory records, most recently updated first.

        Args:
            page: Page request
            warehouse_id: Only records at this warehouse
            search: Substring of product name or SKU, case-insensitive
            low_stock: Only records at or below their effective threshold

        Returns:
            (list of record dicts with product, warehouse and threshold
            fields, pagination dict)
        """
        effective = func.coalesce(LowStockAlert.threshold, self.thresholds.default_threshold)
        query = self.session.query(
            InventoryRecord, Product, Warehouse, effective
        ).join(
            Product, Product.id == InventoryRecord.product_id
        ).join(
            Warehouse, Warehouse.id == InventoryRecord.warehouse_id
        ).outerjoin(
            LowStockAlert,
            and_(
                LowStockAlert.product_id == InventoryRecord.product_id,
                LowStockAlert.warehouse_id == InventoryRecord.warehouse_id
            )
        )

        if warehouse_id is not None:
            query = query.filter(InventoryRecord.warehouse_id == warehouse_id)
        if search:
            pattern = f'%{search}%'
            query = query.filter(or_(Product.name.ilike(pattern), Product.sku.ilike(pattern)))
        if low_stock:
            query = query.filter(InventoryRecord.quantity <= effective)

        query = query.order_by(InventoryRecord.last_updated.desc(), InventoryRecord.id.desc())
        rows, pagination = paginate(query, page)

        inventory = []
        for record, product, warehouse, threshold in rows:
            entry = record.to_dict()
            entry.update({
                'product_name': product.name,
                'sku': product.sku,
                'brand': product.brand,
                'warehouse_name': warehouse.name,
                'location': warehouse.location,
                'low_stock_threshold': threshold,
                'is_low_stock': record.quantity <= threshold
            })
            inventory.append(entry)

        return inventory, pagination

    def low_stock_records(self) -> List[Dict[str, Any]]:

        """List records at or below their effective threshold, lowest quantity first."""
        result = []
        for record, threshold in self.thresholds.low_stock_records():
            entry = record.to_dict()
            entry.update({
                'product_name': record.product.name,
                'sku': record.product.sku,
                'warehouse_name': record.warehouse.name,
                'threshold': threshold
            })
            result.append(entry)
        return result

    def reorder_suggestions(self) -> List[Dict[str, Any]]:
        """Suggest reorder quantities for low-stock records.

        Out of stock records get three times the threshold, other low records
        twice the threshold.
        """
        suggestions = []
        for entry in self.low_stock_records():
            multiplier = 3 if entry['quantity'] == 0 else 2
            entry['suggested_order_quantity'] = entry['threshold'] * multiplier
            suggestions.append(entry)
        return suggestions
