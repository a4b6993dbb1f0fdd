# inventory_ledger/api/common.py
from flask import current_app, g, request

from inventory_ledger.config import config
from inventory_ledger.exceptions import ValidationError
from inventory_ledger.utils.validation import parse_int
from inventory_ledger.utils.pagination import parse_page

def get_session():
    """Get the database session bound to the current request."""
    if 'db_session' not in g:
        g.db_session = current_app.config['SESSION_FACTORY']()
    return g.db_session

def current_user_id():
    """Acting user ID from the configured request header, or None."""
    return parse_int(request.headers.get(config.api_config['user_header']))

def json_body():
    body = request.get_json(silent=True)
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body

def require_int(body, field):
    """Get a required integer field from a request body."""
    value = parse_int(body.get(field))
    if value is None:
        raise ValidationError(f"{field} must be an integer", details={field: body.get(field)})
    return value

def query_int(name):
    """Optional integer query parameter."""
    raw = request.args.get(name)
    if raw in (None, ''):
        return None
    value = parse_int(raw)
    if value is None:
        raise ValidationError(f"{name} must be an integer", details={name: raw})
    return value

def query_flag(name):
    """True only for ?name=true."""
    return request.args.get(name, '').lower() == 'true'

def query_page():
    return parse_page(request.args.get('page'), request.args.get('limit'))
