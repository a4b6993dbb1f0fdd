"""
Routes for purchase orders and receiving.
"""
from flask import Blueprint, jsonify, request

from inventory_ledger.api.common import get_session, current_user_id, json_body, require_int
from inventory_ledger.services.purchase_order_service import PurchaseOrderService
from inventory_ledger.utils.validation import parse_int

purchase_order_bp = Blueprint('purchase_orders', __name__, url_prefix='/api/purchase-orders')

@purchase_order_bp.route('', methods=['GET'])
def list_purchase_orders():
    orders = PurchaseOrderService(get_session()).list_orders(
        status=request.args.get('status'),
        supplier_id=parse_int(request.args.get('supplier_id'))
    )
    return jsonify({
        'success': True,
        'purchase_orders': [order.to_dict() for order in orders],
        'count': len(orders)
    })

@purchase_order_bp.route('/<int:order_id>', methods=['GET'])
def get_purchase_order(order_id):
    """Get a purchase order with its items and receipts."""
    return jsonify({
        'success': True,
        'purchase_order': PurchaseOrderService(get_session()).get_order_details(order_id)
    })

@purchase_order_bp.route('', methods=['POST'])
def create_purchase_order():
    body = json_body()
    order = PurchaseOrderService(get_session()).create(
        require_int(body, 'supplier_id'),
        body.get('items'),
        user_id=current_user_id()
    )
    return jsonify({
        'success': True,
        'message': 'Purchase order created successfully',
        'purchase_order': order.to_dict()
    }), 201

@purchase_order_bp.route('/<int:order_id>/status', methods=['PUT'])
def update_purchase_order_status(order_id):
    order = PurchaseOrderService(get_session()).update_status(
        order_id, json_body().get('status'), user_id=current_user_id()
    )
    return jsonify({
        'success': True,
        'message': 'Purchase order status updated successfully',
        'purchase_order': order.to_dict()
    })

@purchase_order_bp.route('/<int:order_id>/approve', methods=['PUT'])
def approve_purchase_order(order_id):
    order = PurchaseOrderService(get_session()).approve(order_id, current_user_id())
    return jsonify({
        'success': True,
        'message': 'Purchase order approved successfully',
        'purchase_order': order.to_dict()
    })

@purchase_order_bp.route('/<int:order_id>/receive', methods=['POST'])
def receive_purchase_order(order_id):
    """Receive goods into a warehouse against an approved or sent order."""
    body = json_body()
    receipt = PurchaseOrderService(get_session()).receive(
        order_id,
        current_user_id(),
        body.get('items'),
        warehouse_id=body.get('warehouse_id')
    )
    return jsonify({
        'success': True,
        'message': 'Purchase order received successfully',
        'receipt_id': receipt.id
    })
