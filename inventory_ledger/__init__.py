from .config import config
from .db import db, session_scope, atomic
from .logging_setup import logger, get_logger
from .exceptions import (
    LedgerError, ValidationError, NotFoundError, InvalidTransitionError,
    InsufficientStockError, DuplicateCombinationError, DuplicateSkuError, TransactionFailureError,
    ConfigError, DatabaseError
)

__all__ = [
    'config',
    'db',
    'session_scope',
    'atomic',
    'logger',
    'get_logger',
    'LedgerError',
    'ValidationError',
    'NotFoundError',
    'InvalidTransitionError',
    'InsufficientStockError',
    'DuplicateCombinationError',
    'DuplicateSkuError',
    'TransactionFailureError',
    'ConfigError',
    'DatabaseError'
]
