"""
Tests for the fulfillment engine and the savepoint helper it runs in.
"""
import unittest
from unittest.mock import patch
from datetime import datetime
from types import SimpleNamespace

from sqlalchemy.exc import OperationalError

from inventory_ledger.tests.helpers import LedgerTestCase
from inventory_ledger.db import atomic
from inventory_ledger.models import Warehouse
from inventory_ledger.services.fulfillment_service import FulfillmentService
from inventory_ledger.exceptions import InsufficientStockError, TransactionFailureError, NotFoundError


def line(product_id, quantity):
    return SimpleNamespace(product_id=product_id, quantity=quantity)


class TestFulfillmentService(LedgerTestCase):
    def setUp(self):
        super().setUp()
        self.warehouse = self.add_warehouse()
        self.north = self.add_warehouse('North')
        self.service = FulfillmentService(self.session)

    def test_fulfill_across_products(self):
        brake = self.add_product(name='Brake Pad')
        chain = self.add_product(name='Chain')
        b1 = self.add_record(brake, self.warehouse, 3, last_updated=datetime(2024, 1, 1))
        b2 = self.add_record(brake, self.north, 3, last_updated=datetime(2024, 1, 2))
        c1 = self.add_record(chain, self.north, 10)

        depletions = self.service.fulfill([line(brake.id, 4), line(chain.id, 10)])
        self.session.commit()

        self.assertEqual(self.quantity_of(b1), 0)
        self.assertEqual(self.quantity_of(b2), 2)
        self.assertEqual(self.quantity_of(c1), 0)
        self.assertEqual(sum(d['quantity'] for d in depletions), 14)

    def test_same_timestamp_breaks_tie_on_id(self):
        product = self.add_product()
        same = datetime(2024, 6, 1)
        first = self.add_record(product, self.warehouse, 2, last_updated=same)
        second = self.add_record(product, self.north, 2, last_updated=same)

        self.service.fulfill([line(product.id, 3)])

        self.assertEqual(self.quantity_of(first), 0)
        self.assertEqual(self.quantity_of(second), 1)

    def test_skips_empty_records(self):
        product = self.add_product()
        empty = self.add_record(product, self.warehouse, 0, last_updated=datetime(2023, 1, 1))
        stocked = self.add_record(product, self.north, 5)

        depletions = self.service.fulfill([line(product.id, 5)])

        self.assertEqual([d['record_id'] for d in depletions], [stocked.id])
        self.assertEqual(self.quantity_of(empty), 0)

    def test_exact_stock_leaves_zero_records_in_place(self):
        product = self.add_product()
        record = self.add_record(product, self.warehouse, 6)
        self.service.fulfill([line(product.id, 6)])
        self.session.commit()
        self.assertEqual(self.quantity_of(record), 0)

    def test_shortfall_raises_before_any_depletion(self):
        product = self.add_product()
        record = self.add_record(product, self.warehouse, 2)

        with patch.object(self.service.inventory, 'decrement') as decrement:
            with self.assertRaises(InsufficientStockError):
                self.service.fulfill([line(product.id, 3)])
            decrement.assert_not_called()
        self.assertEqual(self.quantity_of(record), 2)

    def test_unknown_product(self):
        with self.assertRaises(NotFoundError):
            self.service.fulfill([line(999, 1)])

    def test_store_failure_rolls_back_earlier_decrements(self):
        first = self.add_product()
        second = self.add_product()
        r1 = self.add_record(first, self.warehouse, 5)
        r2 = self.add_record(second, self.warehouse, 5)
        real_decrement = self.service.inventory.decrement
        calls = []

        def failing_decrement(record, delta):
            calls.append(record.id)
            if len(calls) == 2:
                raise OperationalError('UPDATE inventory', {}, Exception('disk I/O error'))
            return real_decrement(record, delta)

        with patch.object(self.service.inventory, 'decrement', side_effect=failing_decrement):
            with self.assertRaises(TransactionFailureError) as ctx:
                self.service.fulfill([line(first.id, 2), line(second.id, 2)])

        self.assertEqual(ctx.exception.message, 'Internal server error')
        self.assertNotIn('disk', str(ctx.exception))
        self.assertEqual(self.quantity_of(r1), 5)
        self.assertEqual(self.quantity_of(r2), 5)


class TestAtomic(LedgerTestCase):
    def test_commits_savepoint_on_success(self):
        with atomic(self.session, 'create'):
            self.session.add(Warehouse(name='A'))
        self.session.commit()
        self.assertEqual(self.session.query(Warehouse).count(), 1)

    def test_rolls_back_only_its_own_work(self):
        self.session.add(Warehouse(name='Kept'))
        self.session.flush()

        with self.assertRaises(InsufficientStockError):
            with atomic(self.session):
                self.session.add(Warehouse(name='Dropped'))
                self.session.flush()
                raise InsufficientStockError(1, 0, 1)

        self.session.commit()
        self.assertEqual([w.name for w in self.session.query(Warehouse)], ['Kept'])


if __name__ == '__main__':
    unittest.main()
