"""
Flask application for the Inventory Ledger API.
"""
from flask import Flask, g, jsonify
from werkzeug.exceptions import HTTPException

from inventory_ledger.db import db
from inventory_ledger.exceptions import LedgerError
from inventory_ledger.logging_setup import get_logger, log_exception
from inventory_ledger.api.inventory_routes import inventory_bp
from inventory_ledger.api.purchase_order_routes import purchase_order_bp
from inventory_ledger.api.sales_order_routes import sales_order_bp
from inventory_ledger.api.notification_routes import notification_bp
from inventory_ledger.api.catalog_routes import catalog_bp

logger = get_logger('api')

def create_app(session_factory=None):
    """Create the Flask application.

    Args:
        session_factory: Callable returning a new session. Defaults to the
            global scoped session.

    Returns:
        Flask application
    """
    app = Flask(__name__)
    app.config['SESSION_FACTORY'] = session_factory or db.session

    app.register_blueprint(inventory_bp)
    app.register_blueprint(purchase_order_bp)
    app.register_blueprint(sales_order_bp)
    app.register_blueprint(notification_bp)
    app.register_blueprint(catalog_bp)

    @app.teardown_request
    def close_session(exc):
        session = g.pop('db_session', None)
        if session is not None:
            if exc is not None:
                session.rollback()
            session.close()

    @app.errorhandler(LedgerError)
    def handle_ledger_error(e):
        if e.http_status >= 500:
            logger.error(f"Request failed: {e}")
        else:
            logger.info(f"Request rejected: {e}")

        body = e.to_dict()
        body['success'] = False
        return jsonify(body), e.http_status

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        if isinstance(e, HTTPException):
            return e

        log_exception('api', e, "Unhandled error")
        return jsonify({
            'success': False,
            'error': 'Internal server error'
        }), 500

    return app

__all__ = ['create_app']
