# inventory_ledger/models.py
from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, Enum, Numeric, JSON,
    CheckConstraint, UniqueConstraint, Index
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func
import enum

Base = declarative_base()

class PurchaseOrderStatus(enum.Enum):
    """Lifecycle of a supplier order.

    Values:
        PENDING: Created, waiting for approval
        APPROVED: Approved by a manager
        SENT: Sent to the supplier
        RECEIVED: Goods received, stock increased
        COMPLETED: Closed by an operator
        CANCELLED: Abandoned
    """
    PENDING = 'pending'
    APPROVED = 'approved'
    SENT = 'sent'
    RECEIVED = 'received'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'

    def __str__(self):
        """Return the string value of the enum."""
        return self.value

    @classmethod
    def from_string(cls, value: str) -> 'PurchaseOrderStatus':
        """Create a PurchaseOrderStatus from a string value.

        Raises:
            ValueError if the string value is not valid
        """
        try:
            return cls(value)
        except ValueError:
            valid = ', '.join(status.value for status in cls)
            raise ValueError(f"Invalid purchase order status: {value}. Valid values are: {valid}")

class SalesOrderStatus(enum.Enum):
    """Lifecycle of a customer order.

    Stock is only decremented on the confirmed -> processing transition.
    """
    QUOTATION = 'quotation'
    CONFIRMED = 'confirmed'
    PROCESSING = 'processing'
    SHIPPED = 'shipped'
    DELIVERED = 'delivered'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'

    def __str__(self):
        return self.value

    @classmethod
    def from_string(cls, value: str) -> 'SalesOrderStatus':
        try:
            return cls(value)
        except ValueError:
            valid = ', '.join(status.value for status in cls)
            raise ValueError(f"Invalid sales order status: {value}. Valid values are: {valid}")

class ReturnType(enum.Enum):
    RETURN = 'return'
    EXCHANGE = 'exchange'

    def __str__(self):
        return self.value

def _enum_values(enum_cls):
    return [member.value for member in enum_cls]

class Product(Base):
    __tablename__ = 'products'

    id = Column(Integer, primary_key=True)
    sku = Column(String(50), nullable=False, unique=True)
    name = Column(String(200), nullable=False)
    brand = Column(String(100))
    created_at = Column(DateTime, default=func.now())

    inventory_records = relationship("InventoryRecord", back_populates="product")

    def to_dict(self):
        return {
            'id': self.id,
            'sku': self.sku,
            'name': self.name,
            'brand': self.brand,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }

class Warehouse(Base):
    __tablename__ = 'warehouses'

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False, unique=True)
    location = Column(String(255))

    inventory_records = relationship("InventoryRecord", back_populates="warehouse")

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'location': self.location}

class Supplier(Base):
    __tablename__ = 'suppliers'

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    contact_person = Column(String(100))
    email = Column(String(255))

    purchase_orders = relationship("PurchaseOrder", back_populates="supplier")

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'contact_person': self.contact_person,
            'email': self.email
        }

class Customer(Base):
    __tablename__ = 'customers'

    id = Column(Integer, primary_key=True)
    company_name = Column(String(200), nullable=False)
    contact_person = Column(String(100))
    email = Column(String(255))

    sales_orders = relationship("SalesOrder", back_populates="customer")

    def to_dict(self):
        return {
            'id': self.id,
            'company_name': self.company_name,
            'contact_person': self.contact_person,
            'email': self.email
        }

class InventoryRecord(Base):
    """Stock of one product at one warehouse, optionally tagged by batch/serial."""
    __tablename__ = 'inventory'

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey('products.id'), nullable=False)
    warehouse_id = Column(Integer, ForeignKey('warehouses.id'), nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    batch_number = Column(String(100))
    serial_number = Column(String(100))
    last_updated = Column(DateTime, nullable=False, default=func.now())

    product = relationship("Product", back_populates="inventory_records")
    warehouse = relationship("Warehouse", back_populates="inventory_records")

    __table_args__ = (
        CheckConstraint('quantity >= 0', name='ck_inventory_quantity_non_negative'),
        UniqueConstraint('product_id', 'warehouse_id', 'batch_number', 'serial_number',
                         name='uq_inventory_product_warehouse_batch_serial'),
        # FIFO depletion reads by product ordered by last_updated
        Index('ix_inventory_product_last_updated', 'product_id', 'last_updated'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'product_id': self.product_id,
            'warehouse_id': self.warehouse_id,
            'quantity': self.quantity,
            'batch_number': self.batch_number,
            'serial_number': self.serial_number,
            'last_updated': self.last_updated.isoformat() if self.last_updated else None
        }

class LowStockAlert(Base):
    """Reorder threshold for a product at a warehouse.

    A NULL threshold means the configured system default applies.
    """
    __tablename__ = 'low_stock_alerts'

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey('products.id'), nullable=False)
    warehouse_id = Column(Integer, ForeignKey('warehouses.id'), nullable=False)
    threshold = Column(Integer)
    alert_sent_at = Column(DateTime)

    __table_args__ = (
        UniqueConstraint('product_id', 'warehouse_id', name='uq_low_stock_alerts_product_warehouse'),
        CheckConstraint('threshold IS NULL OR threshold >= 0', name='ck_low_stock_threshold_non_negative'),
    )

    def to_dict(self):
        return {
            'product_id': self.product_id,
            'warehouse_id': self.warehouse_id,
            'threshold': self.threshold,
            'alert_sent_at': self.alert_sent_at.isoformat() if self.alert_sent_at else None
        }

class PurchaseOrder(Base):
    __tablename__ = 'purchase_orders'

    id = Column(Integer, primary_key=True)
    supplier_id = Column(Integer, ForeignKey('suppliers.id'), nullable=False)
    status = Column(Enum(PurchaseOrderStatus, values_callable=_enum_values, name='purchase_order_status'),
                    nullable=False, default=PurchaseOrderStatus.PENDING)
    total_amount = Column(Numeric(12, 2), nullable=False, default=0)
    order_date = Column(DateTime, default=func.now())
    approved_by = Column(Integer)
    approved_at = Column(DateTime)

    supplier = relationship("Supplier", back_populates="purchase_orders")
    items = relationship("PurchaseOrderItem", back_populates="purchase_order", order_by="PurchaseOrderItem.id")
    receipts = relationship("Receipt", back_populates="purchase_order", order_by="Receipt.id")

    def to_dict(self):
        return {
            'id': self.id,
            'supplier_id': self.supplier_id,
            'status': self.status.value,
            'total_amount': str(self.total_amount),
            'order_date': self.order_date.isoformat() if self.order_date else None,
            'approved_by': self.approved_by,
            'approved_at': self.approved_at.isoformat() if self.approved_at else None
        }

class PurchaseOrderItem(Base):
    __tablename__ = 'purchase_order_items'

    id = Column(Integer, primary_key=True)
    purchase_order_id = Column(Integer, ForeignKey('purchase_orders.id'), nullable=False)
    product_id = Column(Integer, ForeignKey('products.id'), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)

    purchase_order = relationship("PurchaseOrder", back_populates="items")

    __table_args__ = (
        CheckConstraint('quantity > 0', name='ck_purchase_order_items_quantity_positive'),
        CheckConstraint('unit_price >= 0', name='ck_purchase_order_items_price_non_negative'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'product_id': self.product_id,
            'quantity': self.quantity,
            'unit_price': str(self.unit_price)
        }

class Receipt(Base):
    """A physical receiving event against a purchase order."""
    __tablename__ = 'receipts'

    id = Column(Integer, primary_key=True)
    purchase_order_id = Column(Integer, ForeignKey('purchase_orders.id'), nullable=False)
    received_by = Column(Integer)
    received_date = Column(DateTime, default=func.now())

    purchase_order = relationship("PurchaseOrder", back_populates="receipts")
    items = relationship("ReceiptItem", back_populates="receipt", order_by="ReceiptItem.id")

    def to_dict(self):
        return {
            'id': self.id,
            'purchase_order_id': self.purchase_order_id,
            'received_by': self.received_by,
            'received_date': self.received_date.isoformat() if self.received_date else None,
            'items': [item.to_dict() for item in self.items]
        }

class ReceiptItem(Base):
    __tablename__ = 'receipt_items'

    id = Column(Integer, primary_key=True)
    receipt_id = Column(Integer, ForeignKey('receipts.id'), nullable=False)
    product_id = Column(Integer, ForeignKey('products.id'), nullable=False)
    warehouse_id = Column(Integer, ForeignKey('warehouses.id'), nullable=False)
    quantity_received = Column(Integer, nullable=False)
    batch_number = Column(String(100))
    serial_number = Column(String(100))

    receipt = relationship("Receipt", back_populates="items")

    __table_args__ = (
        CheckConstraint('quantity_received >= 0', name='ck_receipt_items_quantity_non_negative'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'product_id': self.product_id,
            'warehouse_id': self.warehouse_id,
            'quantity_received': self.quantity_received,
            'batch_number': self.batch_number,
            'serial_number': self.serial_number
        }

class SalesOrder(Base):
    __tablename__ = 'sales_orders'

    id = Column(Integer, primary_key=True)
    customer_id = Column(Integer, ForeignKey('customers.id'), nullable=False)
    status = Column(Enum(SalesOrderStatus, values_callable=_enum_values, name='sales_order_status'),
                    nullable=False, default=SalesOrderStatus.QUOTATION)
    total_amount = Column(Numeric(12, 2), nullable=False, default=0)
    order_date = Column(DateTime, default=func.now())
    approved_by = Column(Integer)
    approved_at = Column(DateTime)

    customer = relationship("Customer", back_populates="sales_orders")
    items = relationship("SalesOrderItem", back_populates="sales_order", order_by="SalesOrderItem.id")

    def to_dict(self):
        return {
            'id': self.id,
            'customer_id': self.customer_id,
            'status': self.status.value,
            'total_amount': str(self.total_amount),
            'order_date': self.order_date.isoformat() if self.order_date else None,
            'approved_by': self.approved_by,
            'approved_at': self.approved_at.isoformat() if self.approved_at else None
        }

class SalesOrderItem(Base):
    __tablename__ = 'sales_order_items'

    id = Column(Integer, primary_key=True)
    sales_order_id = Column(Integer, ForeignKey('sales_orders.id'), nullable=False)
    product_id = Column(Integer, ForeignKey('products.id'), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)

    sales_order = relationship("SalesOrder", back_populates="items")

    __table_args__ = (
        CheckConstraint('quantity > 0', name='ck_sales_order_items_quantity_positive'),
        CheckConstraint('unit_price >= 0', name='ck_sales_order_items_price_non_negative'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'product_id': self.product_id,
            'quantity': self.quantity,
            'unit_price': str(self.unit_price)
        }

class AuditLog(Base):
    __tablename__ = 'audit_logs'

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer)
    action = Column(String(100), nullable=False)
    details = Column(JSON)
    created_at = Column(DateTime, default=func.now())
