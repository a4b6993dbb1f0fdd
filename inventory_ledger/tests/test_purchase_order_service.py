"""
Tests for purchase orders and receiving.
"""
import unittest
from decimal import Decimal

from inventory_ledger.tests.helpers import LedgerTestCase
from inventory_ledger.models import PurchaseOrderStatus, Receipt, ReceiptItem, InventoryRecord
from inventory_ledger.services.purchase_order_service import PurchaseOrderService
from inventory_ledger.exceptions import (
    EmptyItemsError, InvalidPriceError, InvalidTransitionError, NotFoundError, ValidationError
)


class TestPurchaseOrderService(LedgerTestCase):
    def setUp(self):
        super().setUp()
        self.supplier = self.add_supplier()
        self.product = self.add_product(name='Clutch Cable')
        self.other = self.add_product(name='Throttle Cable')
        self.warehouse = self.add_warehouse()
        self.service = PurchaseOrderService(self.session)

    def create_order(self, quantity=5):
        return self.service.create(self.supplier.id, [
            {'product_id': self.product.id, 'quantity': quantity, 'unit_price': '12.50'},
            {'product_id': self.other.id, 'quantity': 2, 'unit_price': '3.25'}
        ], user_id=1)

    def approved_order(self, quantity=5):
        order = self.create_order(quantity)
        return self.service.approve(order.id, approver_id=9)

    def test_create_computes_total(self):
        order = self.create_order()
        self.assertEqual(order.status, PurchaseOrderStatus.PENDING)
        self.assertEqual(Decimal(order.total_amount), Decimal('69.00'))
        self.assertEqual(len(self.service.get_order_items(order.id)), 2)
        self.assertIn('PURCHASE_ORDER_CREATED', self.audit_actions())

    def test_create_rejects_bad_items(self):
        with self.assertRaises(EmptyItemsError):
            self.service.create(self.supplier.id, [])
        with self.assertRaises(InvalidPriceError):
            self.service.create(self.supplier.id, [{'product_id': self.product.id, 'quantity': 1, 'unit_price': '-2'}])
        self.assertEqual(self.service.list_orders(), [])

    def test_create_unknown_supplier_or_product(self):
        with self.assertRaises(NotFoundError):
            self.service.create(999, [{'product_id': self.product.id, 'quantity': 1, 'unit_price': 1}])
        with self.assertRaises(NotFoundError):
            self.service.create(self.supplier.id, [{'product_id': 999, 'quantity': 1, 'unit_price': 1}])
        self.assertEqual(self.service.list_orders(), [])

    def test_approve_only_from_pending(self):
        order = self.approved_order()
        self.assertEqual(order.status, PurchaseOrderStatus.APPROVED)
        self.assertEqual(order.approved_by, 9)
        self.assertIsNotNone(order.approved_at)

        with self.assertRaises(InvalidTransitionError):
            self.service.approve(order.id, approver_id=9)
        self.assertEqual(self.service.get_order(order.id).status, PurchaseOrderStatus.APPROVED)

    def test_receive_adds_exact_quantity_and_one_receipt(self):
        order = self.approved_order()
        before = self.total_stock(self.product.id)

        receipt = self.service.receive(order.id, 4, [
            {'product_id': self.product.id, 'quantity_received': 5}
        ], warehouse_id=self.warehouse.id)

        self.assertEqual(self.total_stock(self.product.id), before + 5)
        self.assertEqual(self.session.query(Receipt).count(), 1)
        self.assertEqual(self.session.query(ReceiptItem).count(), 1)
        self.assertEqual(receipt.received_by, 4)
        self.assertEqual(self.service.get_order(order.id).status, PurchaseOrderStatus.RECEIVED)

    def test_receive_increments_existing_record(self):
        existing = self.add_record(self.product, self.warehouse, 7)
        order = self.approved_order()

        self.service.receive(order.id, 4, [{'product_id': self.product.id, 'quantity_received': 3}],
                             warehouse_id=self.warehouse.id)

        self.assertEqual(self.quantity_of(existing), 10)
        self.assertEqual(self.session.query(InventoryRecord).count(), 1)

    def test_receive_skips_zero_lines(self):
        order = self.approved_order()
        self.service.receive(order.id, 4, [
            {'product_id': self.product.id, 'quantity_received': 0},
            {'product_id': self.other.id, 'quantity_received': 2}
        ], warehouse_id=self.warehouse.id)

        self.assertEqual(self.session.query(ReceiptItem).count(), 1)
        self.assertEqual(self.total_stock(self.product.id), 0)
        self.assertEqual(self.total_stock(self.other.id), 2)

    def test_receive_per_item_warehouse_and_batch(self):
        second = self.add_warehouse('Overflow')
        order = self.approved_order()

        self.service.receive(order.id, 4, [
            {'product_id': self.product.id, 'quantity_received': 5, 'warehouse_id': second.id, 'batch_number': 'L1'}
        ])

        record = self.session.query(InventoryRecord).one()
        self.assertEqual(record.warehouse_id, second.id)
        self.assertEqual(record.batch_number, 'L1')

    def test_receive_requires_warehouse(self):
        order = self.approved_order()
        with self.assertRaises(ValidationError):
            self.service.receive(order.id, 4, [{'product_id': self.product.id, 'quantity_received': 5}])
        self.assertEqual(self.service.get_order(order.id).status, PurchaseOrderStatus.APPROVED)

    def test_receive_from_pending_is_rejected(self):
        order = self.create_order()
        with self.assertRaises(InvalidTransitionError):
            self.service.receive(order.id, 4, [{'product_id': self.product.id, 'quantity_received': 5}],
                                 warehouse_id=self.warehouse.id)
        self.assertEqual(self.total_stock(self.product.id), 0)
        self.assertEqual(self.session.query(Receipt).count(), 0)

    def test_receive_rolls_back_on_unknown_warehouse(self):
        order = self.approved_order()
        with self.assertRaises(NotFoundError):
            self.service.receive(order.id, 4, [
                {'product_id': self.product.id, 'quantity_received': 5},
                {'product_id': self.other.id, 'quantity_received': 2, 'warehouse_id': 999}
            ], warehouse_id=self.warehouse.id)

        self.assertEqual(self.total_stock(self.product.id), 0)
        self.assertEqual(self.session.query(Receipt).count(), 0)
        self.assertEqual(self.service.get_order(order.id).status, PurchaseOrderStatus.APPROVED)

    def test_receive_rejects_product_not_on_order(self):
        stranger = self.add_product(name='Mirror')
        order = self.approved_order()
        with self.assertRaises(ValidationError):
            self.service.receive(order.id, 4, [{'product_id': stranger.id, 'quantity_received': 1}],
                                 warehouse_id=self.warehouse.id)

    def test_receive_after_sent(self):
        order = self.approved_order()
        self.service.update_status(order.id, 'sent', user_id=1)
        self.service.receive(order.id, 4, [{'product_id': self.product.id, 'quantity_received': 1}],
                             warehouse_id=self.warehouse.id)
        self.assertEqual(self.service.get_order(order.id).status, PurchaseOrderStatus.RECEIVED)

    def test_update_status(self):
        order = self.approved_order()
        self.service.update_status(order.id, 'sent')
        self.service.receive(order.id, 4, [{'product_id': self.product.id, 'quantity_received': 1}],
                             warehouse_id=self.warehouse.id)
        order = self.service.update_status(order.id, 'completed')
        self.assertEqual(order.status, PurchaseOrderStatus.COMPLETED)

        with self.assertRaises(InvalidTransitionError):
            self.service.update_status(order.id, 'cancelled')

    def test_update_status_rejects_side_effect_statuses(self):
        order = self.create_order()
        for status in ('approved', 'received'):
            with self.assertRaises(ValidationError):
                self.service.update_status(order.id, status)
        with self.assertRaises(ValidationError):
            self.service.update_status(order.id, 'shipped')

    def test_cancel_pending(self):
        order = self.create_order()
        order = self.service.update_status(order.id, 'cancelled')
        self.assertEqual(order.status, PurchaseOrderStatus.CANCELLED)
        with self.assertRaises(InvalidTransitionError):
            self.service.approve(order.id, approver_id=1)

    def test_list_and_details(self):
        first = self.create_order()
        self.approved_order()

        self.assertEqual(len(self.service.list_orders()), 2)
        self.assertEqual([o.id for o in self.service.list_orders(status='pending')], [first.id])

        details = self.service.get_order_details(first.id)
        self.assertEqual(len(details['items']), 2)
        self.assertEqual(details['receipts'], [])

        with self.assertRaises(NotFoundError):
            self.service.get_order(999)

    def test_receipts_in_details(self):
        order = self.approved_order()
        receipt = self.service.receive(order.id, 4, [
            {'product_id': self.product.id, 'quantity_received': 3, 'batch_number': 'B7'}
        ], warehouse_id=self.warehouse.id)

        self.assertEqual([r.id for r in self.service.get_receipts(order.id)], [receipt.id])
        details = self.service.get_order_details(order.id)
        self.assertEqual(details['receipts'][0]['received_by'], 4)
        self.assertEqual(len(details['receipts'][0]['items']), 1)
        with self.assertRaises(NotFoundError):
            self.service.get_receipts(999)


if __name__ == '__main__':
    unittest.main()
