"""
Routes for low-stock notifications.
"""
from flask import Blueprint, jsonify

from inventory_ledger.api.common import get_session, current_user_id
from inventory_ledger.services.threshold_service import ThresholdService

notification_bp = Blueprint('notifications', __name__, url_prefix='/api/notifications')

@notification_bp.route('/check-low-stock', methods=['POST'])
def check_low_stock():
    """Send alerts for low-stock items whose cooldown has elapsed."""
    result = ThresholdService(get_session()).check_low_stock_alerts(user_id=current_user_id())
    return jsonify({
        'success': True,
        'message': 'Low stock alerts checked and sent',
        'alerts_sent': result['alerts_sent'],
        'low_stock_items': result['low_stock_items']
    })
