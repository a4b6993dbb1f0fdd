"""
Tests for the inventory record store.
"""
import unittest
from datetime import datetime

from inventory_ledger.tests.helpers import LedgerTestCase
from inventory_ledger.models import InventoryRecord, AuditLog, LowStockAlert
from inventory_ledger.services.inventory_service import InventoryService, InventoryPatch
from inventory_ledger.exceptions import (
    NotFoundError, InvalidQuantityError, ValidationError,
    InsufficientStockError, DuplicateCombinationError
)


class TestInventoryService(LedgerTestCase):
    def setUp(self):
        super().setUp()
        self.product = self.add_product(name='Chain 520')
        self.main = self.add_warehouse('Main')
        self.north = self.add_warehouse('North')
        self.service = InventoryService(self.session)

    def test_get_available_sums_all_warehouses(self):
        self.add_record(self.product, self.main, 4)
        self.add_record(self.product, self.north, 6)
        self.assertEqual(self.service.get_available(self.product.id), 10)

    def test_get_available_absent_is_zero(self):
        self.assertEqual(self.service.get_available(self.product.id), 0)

    def test_list_records_oldest_first(self):
        newer = self.add_record(self.product, self.main, 1, last_updated=datetime(2024, 5, 1))
        older = self.add_record(self.product, self.north, 1, last_updated=datetime(2024, 2, 1))
        self.assertEqual([r.id for r in self.service.list_records(self.product.id)], [older.id, newer.id])

    def test_adjust_sets_absolute_quantity_and_audits(self):
        record = self.add_record(self.product, self.main, 10)

        result = self.service.adjust(record.id, 7, 'cycle count', user_id=3)

        self.assertEqual(result['old_quantity'], 10)
        self.assertEqual(result['new_quantity'], 7)
        self.assertEqual(result['adjustment'], -3)
        self.assertEqual(self.quantity_of(record), 7)

        entry = self.session.query(AuditLog).filter_by(action='INVENTORY_ADJUSTED').one()
        self.assertEqual(entry.user_id, 3)
        self.assertEqual(entry.details['reason'], 'cycle count')
        self.assertEqual(entry.details['adjustment'], -3)

    def test_adjust_updates_last_updated(self):
        record = self.add_record(self.product, self.main, 10, last_updated=datetime(2020, 1, 1))
        self.service.adjust(record.id, 11, 'found one')
        self.session.expire_all()
        self.assertGreater(self.session.get(InventoryRecord, record.id).last_updated, datetime(2020, 1, 1))

    def test_adjust_can_change_batch(self):
        record = self.add_record(self.product, self.main, 10)
        self.service.adjust(record.id, 10, 'relabel', batch_number='B-7')
        self.session.expire_all()
        self.assertEqual(self.session.get(InventoryRecord, record.id).batch_number, 'B-7')

    def test_adjust_rejects_negative(self):
        record = self.add_record(self.product, self.main, 10)
        with self.assertRaises(InvalidQuantityError):
            self.service.adjust(record.id, -1, 'oops')
        self.assertEqual(self.quantity_of(record), 10)

    def test_adjust_requires_reason(self):
        record = self.add_record(self.product, self.main, 10)
        with self.assertRaises(ValidationError):
            self.service.adjust(record.id, 5, '')

    def test_adjust_missing_record(self):
        with self.assertRaises(NotFoundError):
            self.service.adjust(999, 5, 'count')

    def test_create_or_increment_creates_then_increments(self):
        self.service.lock_products([self.product.id])
        first = self.service.create_or_increment(self.product.id, self.main.id, 5)
        second = self.service.create_or_increment(self.product.id, self.main.id, 3)
        self.session.commit()

        self.assertEqual(first.id, second.id)
        self.assertEqual(self.quantity_of(first), 8)
        self.assertEqual(self.session.query(InventoryRecord).count(), 1)

    def test_create_or_increment_keeps_batches_apart(self):
        self.service.create_or_increment(self.product.id, self.main.id, 5, batch_number='A')
        self.service.create_or_increment(self.product.id, self.main.id, 2, batch_number='B')
        self.service.create_or_increment(self.product.id, self.main.id, 1, batch_number='A')
        self.session.commit()

        quantities = {r.batch_number: r.quantity for r in self.session.query(InventoryRecord)}
        self.assertEqual(quantities, {'A': 6, 'B': 2})

    def test_create_or_increment_untagged_matches_only_untagged(self):
        tagged = self.add_record(self.product, self.main, 4, batch_number='A', serial_number='S1')

        record = self.service.create_or_increment(self.product.id, self.main.id, 3)
        self.service.create_or_increment(self.product.id, self.main.id, 2, batch_number='A')
        self.session.commit()

        self.assertNotEqual(record.id, tagged.id)
        self.assertEqual(self.quantity_of(tagged), 4)
        self.assertEqual(self.quantity_of(record), 3)
        keys = {(r.batch_number, r.serial_number): r.quantity for r in self.session.query(InventoryRecord)}
        self.assertEqual(keys, {('A', 'S1'): 4, (None, None): 3, ('A', None): 2})

    def test_create_or_increment_unknown_warehouse(self):
        with self.assertRaises(NotFoundError):
            self.service.create_or_increment(self.product.id, 999, 1)

    def test_add_record_rejects_duplicate(self):
        self.service.add_record(self.product.id, self.main.id, 5)
        with self.assertRaises(DuplicateCombinationError):
            self.service.add_record(self.product.id, self.main.id, 2)
        self.assertEqual(self.session.query(InventoryRecord).count(), 1)

    def test_add_record_allows_distinct_batch(self):
        self.service.add_record(self.product.id, self.main.id, 5)
        record = self.service.add_record(self.product.id, self.main.id, 2, batch_number='LOT-9')
        self.assertEqual(record.batch_number, 'LOT-9')
        self.assertIn('INVENTORY_ADDED', self.audit_actions())

    def test_add_record_unknown_product(self):
        with self.assertRaises(NotFoundError):
            self.service.add_record(999, self.main.id, 1)

    def test_decrement(self):
        record = self.add_record(self.product, self.main, 5)
        self.service.decrement(record, 5)
        self.assertEqual(record.quantity, 0)

        with self.assertRaises(InsufficientStockError) as ctx:
            self.service.decrement(record, 1)
        self.assertEqual(ctx.exception.available, 0)
        self.assertEqual(ctx.exception.required, 1)

    def test_lock_products_sorted_and_checked(self):
        other = self.add_product(name='Sprocket')
        locked = self.service.lock_products([other.id, self.product.id, other.id])
        self.assertEqual([p.id for p in locked], sorted([self.product.id, other.id]))

        with self.assertRaises(NotFoundError):
            self.service.lock_products([self.product.id, 999])

    def test_inventory_patch_changes(self):
        self.assertEqual(InventoryPatch(quantity=0).changes(), {'quantity': 0})
        self.assertEqual(InventoryPatch(serial_number='S1').changes(), {'serial_number': 'S1'})

    def test_product_inventory_and_low_stock(self):
        self.add_record(self.product, self.main, 3)
        self.add_record(self.product, self.north, 50)
        self.session.add(LowStockAlert(product_id=self.product.id, warehouse_id=self.north.id, threshold=60))
        self.session.commit()

        inventory = self.service.get_product_inventory(self.product.id)
        self.assertEqual([e['warehouse_name'] for e in inventory], ['Main', 'North'])
        self.assertEqual(inventory[0]['low_stock_threshold'], 10)
        self.assertTrue(inventory[1]['is_low_stock'])

        low = self.service.low_stock_records()
        self.assertEqual([e['quantity'] for e in low], [3, 50])

    def test_reorder_suggestions(self):
        self.add_record(self.product, self.main, 0)
        self.add_record(self.product, self.north, 4)

        suggestions = {e['warehouse_name']: e['suggested_order_quantity'] for e in self.service.reorder_suggestions()}
        self.assertEqual(suggestions, {'Main': 30, 'North': 20})

    def test_create_warehouse(self):
        warehouse = self.service.create_warehouse('South', 'Bay 4', user_id=1)
        self.assertIsNotNone(warehouse.id)
        with self.assertRaises(ValidationError):
            self.service.create_warehouse('South')


if __name__ == '__main__':
    unittest.main()
