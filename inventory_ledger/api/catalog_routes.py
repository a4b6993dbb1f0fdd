"""
Routes for products, customers and suppliers.
"""
from flask import Blueprint, jsonify, request

from inventory_ledger.api.common import get_session, current_user_id, json_body, query_page
from inventory_ledger.services.catalog_service import CatalogService

catalog_bp = Blueprint('catalog', __name__, url_prefix='/api')

def _search():
    return request.args.get('search', '').strip() or None

@catalog_bp.route('/products', methods=['GET'])
def list_products():
    products, pagination = CatalogService(get_session()).list_products(
        query_page(),
        search=_search(),
        brand=request.args.get('brand', '').strip() or None
    )
    return jsonify({
        'success': True,
        'products': products,
        'pagination': pagination
    })

@catalog_bp.route('/products/<int:product_id>', methods=['GET'])
def get_product(product_id):
    """Get a product with its stock per warehouse."""
    return jsonify({
        'success': True,
        'product': CatalogService(get_session()).get_product_details(product_id)
    })

@catalog_bp.route('/products', methods=['POST'])
def create_product():
    body = json_body()
    product = CatalogService(get_session()).create_product(
        body.get('sku'),
        body.get('name'),
        body.get('brand'),
        user_id=current_user_id()
    )
    return jsonify({
        'success': True,
        'message': 'Product created successfully',
        'product': product.to_dict()
    }), 201

@catalog_bp.route('/customers', methods=['GET'])
def list_customers():
    customers, pagination = CatalogService(get_session()).list_customers(query_page(), search=_search())
    return jsonify({
        'success': True,
        'customers': customers,
        'pagination': pagination
    })

@catalog_bp.route('/customers/<int:customer_id>', methods=['GET'])
def get_customer(customer_id):
    return jsonify({
        'success': True,
        'customer': CatalogService(get_session()).get_customer(customer_id).to_dict()
    })

@catalog_bp.route('/customers', methods=['POST'])
def create_customer():
    body = json_body()
    customer = CatalogService(get_session()).create_customer(
        body.get('company_name'),
        body.get('contact_person'),
        body.get('email'),
        user_id=current_user_id()
    )
    return jsonify({
        'success': True,
        'message': 'Customer created successfully',
        'customer': customer.to_dict()
    }), 201

@catalog_bp.route('/suppliers', methods=['GET'])
def list_suppliers():
    suppliers, pagination = CatalogService(get_session()).list_suppliers(query_page(), search=_search())
    return jsonify({
        'success': True,
        'suppliers': suppliers,
        'pagination': pagination
    })

@catalog_bp.route('/suppliers/<int:supplier_id>', methods=['GET'])
def get_supplier(supplier_id):
    return jsonify({
        'success': True,
        'supplier': CatalogService(get_session()).get_supplier(supplier_id).to_dict()
    })

@catalog_bp.route('/suppliers', methods=['POST'])
def create_supplier():
    body = json_body()
    supplier = CatalogService(get_session()).create_supplier(
        body.get('name'),
        body.get('contact_person'),
        body.get('email'),
        user_id=current_user_id()
    )
    return jsonify({
        'success': True,
        'message': 'Supplier created successfully',
        'supplier': supplier.to_dict()
    }), 201
