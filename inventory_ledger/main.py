import argparse
import sys

from inventory_ledger.config import config
from inventory_ledger.db import db, session_scope
from inventory_ledger.exceptions import LedgerError
from inventory_ledger.logging_setup import logger, get_logger

def init_application():
    """Initialize application components."""
    db.initialize()

    log = logger.app_logger
    log.info("Inventory Ledger initialized")
    log.info(f"Using database: {config.get('DATABASE', 'engine')} at {config.get('DATABASE', 'host')}:{config.get('DATABASE', 'port')}")

    return True

def setup_database(drop_existing=False):
    """Create the schema, optionally dropping existing tables first."""
    log = get_logger('setup_db')

    if drop_existing:
        log.warning("Dropping all tables")
        db.drop_all_tables()

    db.create_all_tables()
    log.info("Database tables created")
    return True

def check_low_stock(args):
    """Send low-stock alerts whose cooldown has elapsed."""
    from inventory_ledger.services.threshold_service import ThresholdService

    log = get_logger('low_stock')

    with session_scope() as session:
        result = ThresholdService(session).check_low_stock_alerts(user_id=args.user_id)

    log.info(f"Alerts sent: {result['alerts_sent']}, low stock items: {result['low_stock_items']}")
    print(f"Alerts sent: {result['alerts_sent']}")
    print(f"Low stock items: {result['low_stock_items']}")
    return True

def show_low_stock(args):
    """Print low-stock records with their reorder suggestions."""
    from inventory_ledger.services.inventory_service import InventoryService

    with session_scope() as session:
        suggestions = InventoryService(session).reorder_suggestions()

    if not suggestions:
        print("No low stock items")
        return True

    print(f"{'SKU':<20} {'Product':<30} {'Warehouse':<20} {'Qty':>6} {'Thr':>6} {'Order':>6}")
    for entry in suggestions:
        print(f"{entry['sku']:<20} {entry['product_name'][:30]:<30} {entry['warehouse_name'][:20]:<20} "
              f"{entry['quantity']:>6} {entry['threshold']:>6} {entry['suggested_order_quantity']:>6}")
    return True

def process_order(args):
    """Fulfill a confirmed sales order."""
    from inventory_ledger.services.sales_order_service import SalesOrderService

    with session_scope() as session:
        result = SalesOrderService(session).process(args.order_id, user_id=args.user_id)

    print(f"Sales order {args.order_id} is now {result['status']}")
    for depletion in result['depletions']:
        print(f"  record {depletion['record_id']} (product {depletion['product_id']}, "
              f"warehouse {depletion['warehouse_id']}): -{depletion['quantity']}")
    return True

def adjust_inventory(args):
    """Set an inventory record to an absolute quantity."""
    from inventory_ledger.services.inventory_service import InventoryService

    with session_scope() as session:
        result = InventoryService(session).adjust(
            args.record_id, args.quantity, args.reason, user_id=args.user_id
        )

    print(f"Inventory record {args.record_id}: {result['old_quantity']} -> {result['new_quantity']} "
          f"(adjustment {result['adjustment']:+d})")
    return True

def add_product(args):
    """Create a product in the catalog."""
    from inventory_ledger.services.catalog_service import CatalogService

    with session_scope() as session:
        product = CatalogService(session).create_product(args.sku, args.name, args.brand, user_id=args.user_id)
        product_id = product.id

    print(f"Created product {product_id} ({args.sku})")
    return True

def serve(args):

    """Run the API server."""
    from inventory_ledger.api import create_app

    api = config.api_config
    app = create_app()
    app.run(host=args.host or api['host'], port=args.port or api['port'], debug=args.debug)
    return True

def main():
    """Main application entry point."""
    parser = argparse.ArgumentParser(description='Inventory Ledger')
    parser.add_argument('--user-id', type=int, default=None,
                        help='Acting user ID recorded in the audit log')

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    init_parser = subparsers.add_parser('init-db', help='Create the database schema')
    init_parser.add_argument('--drop', action='store_true',
                             help='Drop existing tables before setup')

    serve_parser = subparsers.add_parser('serve', help='Run the API server')
    serve_parser.add_argument('--host', type=str, help='Bind address')
    serve_parser.add_argument('--port', type=int, help='Port')
    serve_parser.add_argument('--debug', action='store_true', help='Enable Flask debug mode')

    subparsers.add_parser('check-low-stock', help='Send low stock alerts')
    subparsers.add_parser('low-stock', help='Show low stock items and reorder suggestions')

    process_parser = subparsers.add_parser('process-order', help='Fulfill a confirmed sales order')
    process_parser.add_argument('order_id', type=int, help='Sales order ID')

    adjust_parser = subparsers.add_parser('adjust', help='Set an inventory record to a counted quantity')
    adjust_parser.add_argument('record_id', type=int, help='Inventory record ID')
    adjust_parser.add_argument('quantity', type=int, help='New quantity')
    adjust_parser.add_argument('--reason', required=True, help='Reason for the adjustment')

    product_parser = subparsers.add_parser('add-product', help='Add a product to the catalog')
    product_parser.add_argument('sku', help='Stock keeping unit, must be unique')
    product_parser.add_argument('name', help='Product name')
    product_parser.add_argument('--brand', help='Brand')

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        return 1

    init_application()

    commands = {
        'init-db': lambda a: setup_database(a.drop),
        'serve': serve,
        'check-low-stock': check_low_stock,
        'low-stock': show_low_stock,
        'process-order': process_order,
        'adjust': adjust_inventory,
        'add-product': add_product
    }

    try:
        commands[args.command](args)
    except LedgerError as e:
        get_logger('cli').error(f"{args.command} failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0

if __name__ == "__main__":
    sys.exit(main())
