from .audit_service import AuditService
from .threshold_service import ThresholdService
from .inventory_service import InventoryService, InventoryPatch
from .fulfillment_service import FulfillmentService
from .purchase_order_service import PurchaseOrderService
from .sales_order_service import SalesOrderService
from .catalog_service import CatalogService

__all__ = [
    'AuditService',
    'ThresholdService',
    'InventoryService',
    'InventoryPatch',
    'FulfillmentService',
    'PurchaseOrderService',
    'SalesOrderService',
    'CatalogService'
]
