"""
Routes for sales orders, fulfillment and returns.
"""
from flask import Blueprint, jsonify, request

from inventory_ledger.api.common import get_session, current_user_id, json_body, require_int
from inventory_ledger.services.sales_order_service import SalesOrderService
from inventory_ledger.utils.validation import parse_int

sales_order_bp = Blueprint('sales_orders', __name__, url_prefix='/api/sales-orders')

@sales_order_bp.route('', methods=['GET'])
def list_sales_orders():
    orders = SalesOrderService(get_session()).list_orders(
        status=request.args.get('status'),
        customer_id=parse_int(request.args.get('customer_id'))
    )
    return jsonify({
        'success': True,
        'sales_orders': [order.to_dict() for order in orders],
        'count': len(orders)
    })

@sales_order_bp.route('/<int:order_id>', methods=['GET'])
def get_sales_order(order_id):
    return jsonify({
        'success': True,
        'sales_order': SalesOrderService(get_session()).get_order_details(order_id)
    })

@sales_order_bp.route('', methods=['POST'])
def create_sales_order():
    body = json_body()
    order = SalesOrderService(get_session()).create(
        require_int(body, 'customer_id'),
        body.get('items'),
        user_id=current_user_id()
    )
    return jsonify({
        'success': True,
        'message': 'Sales order created successfully',
        'sales_order': order.to_dict()
    }), 201

@sales_order_bp.route('/<int:order_id>/status', methods=['PUT'])
def update_sales_order_status(order_id):
    order = SalesOrderService(get_session()).update_status(
        order_id, json_body().get('status'), user_id=current_user_id()
    )
    return jsonify({
        'success': True,
        'message': 'Sales order status updated successfully',
        'sales_order': order.to_dict()
    })

@sales_order_bp.route('/<int:order_id>/approve', methods=['PUT'])
def approve_sales_order(order_id):
    order = SalesOrderService(get_session()).approve(order_id, current_user_id())
    return jsonify({
        'success': True,
        'message': 'Sales order approved successfully',
        'sales_order': order.to_dict()
    })

@sales_order_bp.route('/<int:order_id>/process', methods=['PUT'])
def process_sales_order(order_id):
    """Deplete stock for a confirmed order and move it to processing."""
    result = SalesOrderService(get_session()).process(order_id, user_id=current_user_id())
    return jsonify({
        'success': True,
        'message': 'Sales order processed successfully, inventory updated',
        'status': result['status'],
        'depletions': result['depletions']
    })

@sales_order_bp.route('/<int:order_id>/return', methods=['POST'])
def create_sales_order_return(order_id):
    """Reinstate returned or exchanged goods into a warehouse."""
    body = json_body()
    result = SalesOrderService(get_session()).create_return(
        order_id,
        body.get('items'),
        body.get('reason'),
        body.get('type'),
        body.get('warehouse_id'),
        user_id=current_user_id()
    )
    return jsonify({
        'success': True,
        'message': f"Sales order {result['type']} processed successfully",
        'status': result['status']
    })
