"""
Shared fixtures for ledger tests: an in-memory database and seed helpers.
"""
import itertools
import unittest
from datetime import datetime

from sqlalchemy.orm import sessionmaker

from inventory_ledger.db import create_db_engine
from inventory_ledger.models import (
    Base, Product, Warehouse, Supplier, Customer, InventoryRecord, AuditLog
)

_sku_counter = itertools.count(1)

class LedgerTestCase(unittest.TestCase):
    """Test case with a fresh in-memory SQLite database per test."""

    def setUp(self):
        self.engine = create_db_engine('sqlite://')
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(bind=self.engine, expire_on_commit=False)
        self.session = self.Session()

    def tearDown(self):
        self.session.close()
        Base.metadata.drop_all(self.engine)
        self.engine.dispose()

    def add_product(self, product_id=None, sku=None, name=None):
        product = Product(id=product_id, sku=sku or f"SKU-{next(_sku_counter):05d}", name=name or 'Brake Pad')
        self.session.add(product)
        self.session.commit()
        return product

    def add_warehouse(self, name='Main', location='Dock 1'):
        warehouse = Warehouse(name=name, location=location)
        self.session.add(warehouse)
        self.session.commit()
        return warehouse

    def add_supplier(self, name='Moto Supply Co'):
        supplier = Supplier(name=name)
        self.session.add(supplier)
        self.session.commit()
        return supplier

    def add_customer(self, company_name='Ride Shop'):
        customer = Customer(company_name=company_name)
        self.session.add(customer)
        self.session.commit()
        return customer

    def add_record(self, product, warehouse, quantity, last_updated=None, batch_number=None, serial_number=None):
        record = InventoryRecord(
            product_id=product.id,
            warehouse_id=warehouse.id,
            quantity=quantity,
            batch_number=batch_number,
            serial_number=serial_number,
            last_updated=last_updated or datetime(2024, 1, 1)
        )
        self.session.add(record)
        self.session.commit()
        return record

    def quantity_of(self, record):
        self.session.expire_all()
        return self.session.get(InventoryRecord, record.id).quantity

    def total_stock(self, product_id):
        self.session.expire_all()
        return sum(r.quantity for r in self.session.query(InventoryRecord).filter_by(product_id=product_id))

    def audit_actions(self):
        return [entry.action for entry in self.session.query(AuditLog).order_by(AuditLog.id)]
