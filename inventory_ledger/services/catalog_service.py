# inventory_ledger/services/catalog_service.py
from typing import Any, Dict, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from inventory_ledger.models import Product, Customer, Supplier, InventoryRecord
from inventory_ledger.exceptions import NotFoundError, DuplicateSkuError
from inventory_ledger.db import atomic
from inventory_ledger.logging_setup import get_logger
from inventory_ledger.utils.validation import require_text, optional_text, validate_email
from inventory_ledger.utils.pagination import Page, paginate
from inventory_ledger.services.audit_service import AuditService

logger = get_logger('catalog_service')

class CatalogService:
    """Master data: products, customers and suppliers.

    Creation is audited and committed. Listings are paginated and return the
    ``pagination`` block alongside the rows.
    """

    def __init__(self, session: Session, audit: Optional[AuditService] = None):
        """Initialize the catalog service.

        Args:
            session: Database session
            audit: Optional audit service (defaults to one on the same session)
        """
        self.session = session
        self.audit = audit or AuditService(session)

    # Products

    def get_product(self, product_id: int) -> Product:
        product = self.session.get(Product, product_id)
        if product is None:
            raise NotFoundError(f"Product with ID {product_id} not found")
        return product

    def get_product_details(self, product_id: int) -> Dict[str, Any]:
        """Product with total stock and stock per warehouse."""
        details = self.get_product(product_id).to_dict()

        rows = self.session.query(
            InventoryRecord.warehouse_id, func.sum(InventoryRecord.quantity)
        ).filter(
            InventoryRecord.product_id == product_id
        ).group_by(InventoryRecord.warehouse_id).order_by(InventoryRecord.warehouse_id).all()

        details['warehouse_stock'] = [
            {'warehouse_id': warehouse_id, 'quantity': int(quantity)} for warehouse_id, quantity in rows
        ]
        details['total_stock'] = sum(entry['quantity'] for entry in details['warehouse_stock'])
        return details

    def create_product(self, sku, name, brand=None, user_id: Optional[int] = None) -> Product:
        """Create a product.

        Raises:
            ValidationError: If sku or name is blank
            DuplicateSkuError: If the SKU is already used
        """
        sku = require_text(sku, 'sku')
        name = require_text(name, 'name')
        brand = optional_text(brand, 'brand')

        with atomic(self.session, 'create_product'):
            if self.session.query(Product.id).filter(Product.sku == sku).first() is not None:
                raise DuplicateSkuError(f"SKU '{sku}' already exists", details={'sku': sku})

            product = Product(sku=sku, name=name, brand=brand)
            self.session.add(product)
            self.session.flush()

            self.audit.log_activity(user_id, 'PRODUCT_CREATED', {'product_id': product.id, 'sku': sku})

        self.session.commit()
        logger.info(f"Created product {product.id} ({sku})")
        return product

    def list_products(self, page: Page, search: Optional[str] = None, brand: Optional[str] = None):
        """List products newest first, with total stock.

        Args:
            page: Page request
            search: Substring of name or SKU, case-insensitive
            brand: Substring of brand, case-insensitive

        Returns:
            (list of product dicts, pagination dict)
        """
        total_stock = func.coalesce(func.sum(InventoryRecord.quantity), 0)
        query = self.session.query(Product, total_stock).outerjoin(
            InventoryRecord, InventoryRecord.product_id == Product.id
        ).group_by(Product.id)

        if search:
            pattern = f'%{search}%'
            query = query.filter(or_(Product.name.ilike(pattern), Product.sku.ilike(pattern)))
        if brand:
            query = query.filter(Product.brand.ilike(f'%{brand}%'))

        query = query.order_by(Product.created_at.desc(), Product.id.desc())
        rows, pagination = paginate(query, page)

        products = []
        for product, stock in rows:
            entry = product.to_dict()
            entry['total_stock'] = int(stock)
            products.append(entry)
        return products, pagination

    # Customers

    def get_customer(self, customer_id: int) -> Customer:
        customer = self.session.get(Customer, customer_id)
        if customer is None:
            raise NotFoundError(f"Customer with ID {customer_id} not found")
        return customer

    def create_customer(self, company_name, contact_person=None, email=None,
                        user_id: Optional[int] = None) -> Customer:
        """Create a customer.

        Raises:
            ValidationError: If company_name is blank or email is malformed
        """
        company_name = require_text(company_name, 'company_name')
        contact_person = optional_text(contact_person, 'contact_person')
        email = validate_email(email)

        with atomic(self.session, 'create_customer'):
            customer = Customer(company_name=company_name, contact_person=contact_person, email=email)
            self.session.add(customer)
            self.session.flush()

            self.audit.log_activity(user_id, 'CUSTOMER_CREATED', {'customer_id': customer.id})

        self.session.commit()
        return customer

    def list_customers(self, page: Page, search: Optional[str] = None):
        """List customers by company name. search matches name, contact or email."""
        query = self.session.query(Customer)
        if search:
            pattern = f'%{search}%'
            query = query.filter(or_(
                Customer.company_name.ilike(pattern),
                Customer.contact_person.ilike(pattern),
                Customer.email.ilike(pattern)
            ))

        rows, pagination = paginate(query.order_by(Customer.company_name, Customer.id), page)
        return [customer.to_dict() for customer in rows], pagination

    # Suppliers

    def get_supplier(self, supplier_id: int) -> Supplier:
        supplier = self.session.get(Supplier, supplier_id)
        if supplier is None:
            raise NotFoundError(f"Supplier with ID {supplier_id} not found")
        return supplier

    def create_supplier(self, name, contact_person=None, email=None, user_id: Optional[int] = None) -> Supplier:
        """Create a supplier.

        Raises:
            ValidationError: If name is blank or email is malformed
        """
        name = require_text(name, 'name')
        contact_person = optional_text(contact_person, 'contact_person')
        email = validate_email(email)

        with atomic(self.session, 'create_supplier'):
            supplier = Supplier(name=name, contact_person=contact_person, email=email)
            self.session.add(supplier)
            self.session.flush()

            self.audit.log_activity(user_id, 'SUPPLIER_CREATED', {'supplier_id': supplier.id})

        self.session.commit()
        return supplier

    def list_suppliers(self, page: Page, search: Optional[str] = None):
        query = self.session.query(Supplier)
        if search:
            pattern = f'%{search}%'
            query = query.filter(or_(
                Supplier.name.ilike(pattern),
                Supplier.contact_person.ilike(pattern),
                Supplier.email.ilike(pattern)
            ))

        rows, pagination = paginate(query.order_by(Supplier.name, Supplier.id), page)
        return [supplier.to_dict() for supplier in rows], pagination
