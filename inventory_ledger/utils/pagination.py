import math
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from sqlalchemy.orm import Query

from inventory_ledger.exceptions import ValidationError
from inventory_ledger.utils.validation import parse_int

DEFAULT_LIMIT = 20
MAX_LIMIT = 100

@dataclass(frozen=True)
class Page:
    """A validated page request, numbered from 1."""
    page: int = 1
    limit: int = DEFAULT_LIMIT

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

def parse_page(page=None, limit=None) -> Page:
    """Validate raw page and limit query values.

    Raises:
        ValidationError: If page is below 1 or limit is outside 1..MAX_LIMIT
    """
    errors = {}

    number = 1 if page in (None, '') else parse_int(page)
    if number is None or number < 1:
        errors['page'] = 'Page must be a positive integer'

    size = DEFAULT_LIMIT if limit in (None, '') else parse_int(limit)
    if size is None or not 1 <= size <= MAX_LIMIT:
        errors['limit'] = f'Limit must be between 1 and {MAX_LIMIT}'

    if errors:
        raise ValidationError("Invalid pagination parameters", details=errors)
    return Page(number, size)

def paginate(query: Query, page: Page) -> Tuple[List[Any], Dict[str, int]]:
    """Run one page of an ordered query.

    Returns:
        (rows, {page, limit, total, pages})
    """
    total = query.order_by(None).count()
    rows = query.limit(page.limit).offset(page.offset).all()

    return rows, {
        'page': page.page,
        'limit': page.limit,
        'total': total,
        'pages': math.ceil(total / page.limit)
    }
