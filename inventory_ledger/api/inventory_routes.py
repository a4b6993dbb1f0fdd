"""
Routes for the inventory record store and low-stock thresholds.
"""
from flask import Blueprint, jsonify, request

from inventory_ledger.api.common import (
    get_session, current_user_id, json_body, require_int, query_int, query_flag, query_page
)
from inventory_ledger.services.inventory_service import InventoryService
from inventory_ledger.services.threshold_service import ThresholdService

inventory_bp = Blueprint('inventory', __name__, url_prefix='/api/inventory')

@inventory_bp.route('', methods=['GET'])
def list_inventory():
    """List inventory with pagination, warehouse, search and low-stock filters."""
    inventory, pagination = InventoryService(get_session()).list_inventory(
        query_page(),
        warehouse_id=query_int('warehouse_id'),
        search=request.args.get('search', '').strip() or None,
        low_stock=query_flag('low_stock')
    )
    return jsonify({
        'success': True,
        'inventory': inventory,
        'pagination': pagination
    })

@inventory_bp.route('/product/<int:product_id>', methods=['GET'])
def get_product_inventory(product_id):
    """Get stock of a product in every warehouse."""
    inventory = InventoryService(get_session()).get_product_inventory(product_id)
    return jsonify({
        'success': True,
        'inventory': inventory
    })

@inventory_bp.route('', methods=['POST'])
def add_inventory():
    """Add a new product/warehouse combination."""
    body = json_body()
    record = InventoryService(get_session()).add_record(
        require_int(body, 'product_id'),
        require_int(body, 'warehouse_id'),
        body.get('quantity'),
        batch_number=body.get('batch_number'),
        serial_number=body.get('serial_number'),
        user_id=current_user_id()
    )
    return jsonify({
        'success': True,
        'message': 'Inventory added successfully',
        'inventory': record.to_dict()
    }), 201

@inventory_bp.route('/<int:record_id>', methods=['PUT'])
def adjust_inventory(record_id):
    """Set a record to an absolute quantity."""
    body = json_body()
    result = InventoryService(get_session()).adjust(
        record_id,
        body.get('quantity'),
        body.get('reason'),
        user_id=current_user_id(),
        batch_number=body.get('batch_number'),
        serial_number=body.get('serial_number')
    )
    return jsonify({
        'success': True,
        'message': 'Inventory updated successfully',
        'inventory': result['record'].to_dict(),
        'adjustment': result['adjustment']
    })

@inventory_bp.route('/low-stock', methods=['GET'])
def get_low_stock():
    items = InventoryService(get_session()).low_stock_records()
    return jsonify({
        'success': True,
        'low_stock_items': items,
        'count': len(items)
    })

@inventory_bp.route('/alerts/threshold', methods=['POST'])
def set_threshold():
    """Create or replace a low-stock threshold."""
    body = json_body()
    alert = ThresholdService(get_session()).set_threshold(
        require_int(body, 'product_id'),
        require_int(body, 'warehouse_id'),
        body.get('threshold'),
        user_id=current_user_id()
    )
    return jsonify({
        'success': True,
        'message': 'Low stock threshold set successfully',
        'alert': alert.to_dict()
    })

@inventory_bp.route('/reorder-suggestions', methods=['GET'])
def get_reorder_suggestions():
    suggestions = InventoryService(get_session()).reorder_suggestions()
    return jsonify({
        'success': True,
        'suggestions': suggestions
    })

@inventory_bp.route('/warehouses', methods=['GET'])
def get_warehouses():
    warehouses = InventoryService(get_session()).get_warehouses()
    return jsonify({
        'success': True,
        'warehouses': [w.to_dict() for w in warehouses]
    })

@inventory_bp.route('/warehouses', methods=['POST'])
def create_warehouse():
    body = json_body()
    warehouse = InventoryService(get_session()).create_warehouse(
        body.get('name'),
        body.get('location'),
        user_id=current_user_id()
    )
    return jsonify({
        'success': True,
        'warehouse': warehouse.to_dict()
    }), 201
