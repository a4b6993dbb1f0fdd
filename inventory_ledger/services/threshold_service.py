# inventory_ledger/services/threshold_service.py
from typing import Callable, Dict, List, Optional, Tuple
from datetime import datetime, timedelta

from sqlalchemy import and_, func
from sqlalchemy.orm import Session

from inventory_ledger.models import InventoryRecord, LowStockAlert, Product, Warehouse
from inventory_ledger.exceptions import InvalidThresholdError, NotFoundError
from inventory_ledger.config import config
from inventory_ledger.db import atomic
from inventory_ledger.logging_setup import get_logger
from inventory_ledger.utils.validation import parse_int
from inventory_ledger.services.audit_service import AuditService

logger = get_logger('threshold_service')

class ThresholdService:
    """Service for low-stock thresholds and alert bookkeeping."""

    def __init__(self, session: Session, audit: Optional[AuditService] = None):
        """Initialize the threshold service.

        Args:
            session: Database session
            audit: Optional audit service (defaults to one on the same session)
        """
        self.session = session
        self.audit = audit or AuditService(session)

        rules = config.inventory_rules
        self.default_threshold = rules['default_low_stock_threshold']
        self.alert_cooldown = timedelta(days=rules['alert_cooldown_days'])

    def _get_alert(self, product_id: int, warehouse_id: int) -> Optional[LowStockAlert]:
        return self.session.query(LowStockAlert).filter(
            LowStockAlert.product_id == product_id,
            LowStockAlert.warehouse_id == warehouse_id
        ).first()

    def _get_or_create_alert(self, product_id: int, warehouse_id: int) -> LowStockAlert:
        alert = self._get_alert(product_id, warehouse_id)
        if alert is None:
            alert = LowStockAlert(product_id=product_id, warehouse_id=warehouse_id)
            self.session.add(alert)
        return alert

    def set_threshold(self, product_id: int, warehouse_id: int, threshold, user_id: Optional[int] = None) -> LowStockAlert:
        """Create or replace the threshold for a product at a warehouse.

        Args:
            product_id: Product ID
            warehouse_id: Warehouse ID
            threshold: Non-negative integer
            user_id: Acting user ID

        Returns:
            The LowStockAlert row

        Raises:
            InvalidThresholdError: If threshold is negative or not an integer
            NotFoundError: If the product or warehouse does not exist
        """
        value = parse_int(threshold)
        if value is None or value < 0:
            raise InvalidThresholdError(details={'threshold': threshold})

        with atomic(self.session, 'set_threshold'):
            if self.session.get(Product, product_id) is None:
                raise NotFoundError(f"Product with ID {product_id} not found")
            if self.session.get(Warehouse, warehouse_id) is None:
                raise NotFoundError(f"Warehouse with ID {warehouse_id} not found")

            alert = self._get_or_create_alert(product_id, warehouse_id)
            alert.threshold = value
            self.session.flush()

            self.audit.log_activity(user_id, 'LOW_STOCK_THRESHOLD_SET', {
                'product_id': product_id,
                'warehouse_id': warehouse_id,
                'threshold': value
            })

        self.session.commit()
        return alert

    def get_threshold(self, product_id: int, warehouse_id: int) -> int:
        """Get the effective threshold: the stored one, else the configured default."""
        alert = self._get_alert(product_id, warehouse_id)
        if alert is None or alert.threshold is None:
            return self.default_threshold
        return alert.threshold

    def is_low_stock(self, record: InventoryRecord) -> bool:
        return record.quantity <= self.get_threshold(record.product_id, record.warehouse_id)

    def mark_alerted(self, product_id: int, warehouse_id: int, when: Optional[datetime] = None) -> LowStockAlert:
        """Record that an alert went out for a product at a warehouse.

        A row without a threshold is created if none exists, so the default
        threshold keeps applying.
        """
        alert = self._get_or_create_alert(product_id, warehouse_id)
        alert.alert_sent_at = when or datetime.now()
        self.session.flush()
        return alert

    def is_alert_due(self, product_id: int, warehouse_id: int, now: Optional[datetime] = None) -> bool:
        """Check whether the alert cooldown has elapsed for a product at a warehouse."""
        alert = self._get_alert(product_id, warehouse_id)
        if alert is None or alert.alert_sent_at is None:
            return True
        now = now or datetime.now()
        return now - alert.alert_sent_at >= self.alert_cooldown

    def low_stock_records(self) -> List[Tuple[InventoryRecord, int]]:
        """Find all records at or below their effective threshold.

        Returns:
            List of (record, effective threshold), lowest quantity first
        """
        effective = func.coalesce(LowStockAlert.threshold, self.default_threshold)
        rows = self.session.query(InventoryRecord, effective).outerjoin(
            LowStockAlert,
            and_(
                LowStockAlert.product_id == InventoryRecord.product_id,
                LowStockAlert.warehouse_id == InventoryRecord.warehouse_id
            )
        ).filter(
            InventoryRecord.quantity <= effective
        ).order_by(
            InventoryRecord.quantity.asc(), InventoryRecord.id.asc()
        ).all()

        return [(record, threshold) for record, threshold in rows]

    def check_low_stock_alerts(self, notifier: Optional[Callable] = None, user_id: Optional[int] = None,
                               now: Optional[datetime] = None) -> Dict:
        """Send alerts for low-stock records whose cooldown has elapsed.

        Args:
            notifier: Callable(record, threshold, message) delivering the alert
            user_id: Acting user ID
            now: Reference time (defaults to now)

        Returns:
            Dictionary with alerts_sent and low_stock_items counts
        """
        now = now or datetime.now()
        low_stock = [
            (record, threshold) for record, threshold in self.low_stock_records()
            if self.is_alert_due(record.product_id, record.warehouse_id, now)
        ]

        alerted = set()
        alerts_sent = 0

        for record, threshold in low_stock:
            key = (record.product_id, record.warehouse_id)
            if key in alerted:
                continue

            message = (
                f"Low stock alert: {record.product.name} ({record.product.sku}) in "
                f"{record.warehouse.name} has only {record.quantity} units remaining "
                f"(threshold: {threshold})"
            )
            if notifier is not None:
                notifier(record, threshold, message)
            else:
                logger.warning(message)

            self.mark_alerted(record.product_id, record.warehouse_id, now)
            alerted.add(key)
            alerts_sent += 1

        self.audit.log_activity(user_id, 'LOW_STOCK_ALERTS_SENT', {'alerts_sent': alerts_sent})
        self.session.commit()

        logger.info(f"Low stock check: {alerts_sent} alerts sent, {len(low_stock)} items due")
        return {
            'alerts_sent': alerts_sent,
            'low_stock_items': len(low_stock)
        }
