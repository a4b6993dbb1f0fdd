class LedgerError(Exception):
    """Base exception for Inventory Ledger errors."""

    http_status = 500

    def __init__(self, message=None, code=None, details=None):
        """Initialize the exception.

        Args:
            message: Error message
            code: Error code
            details: Additional error details
        """
        self.message = message or "An error occurred in the Inventory Ledger"
        self.code = code
        self.details = details
        super().__init__(self.message)

    def __str__(self):
        """String representation of the error."""
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def to_dict(self):
        """Convert the exception to a dictionary."""
        error_dict = {
            'error': self.__class__.__name__,
            'message': self.message,
        }

        if self.code:
            error_dict['code'] = self.code

        if self.details:
            error_dict['details'] = self.details

        return error_dict


class ConfigError(LedgerError):
    """Exception raised for configuration errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Configuration error"
        super().__init__(message, code or 'CONFIG_ERROR', details)


class DatabaseError(LedgerError):
    """Exception raised for database connection errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Database error"
        super().__init__(message, code or 'DATABASE_ERROR', details)


class ValidationError(LedgerError):
    """Exception raised for malformed input. No mutation is attempted."""

    http_status = 400

    def __init__(self, message=None, code=None, details=None):
        message = message or "Validation error"
        super().__init__(message, code or 'VALIDATION_ERROR', details)


class EmptyItemsError(ValidationError):
    """Exception raised when an order or receipt has no line items."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Items array is required and must not be empty"
        super().__init__(message, code or 'EMPTY_ITEMS', details)


class InvalidQuantityError(ValidationError):
    """Exception raised for a negative or non-integer quantity."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Invalid quantity"
        super().__init__(message, code or 'INVALID_QUANTITY', details)


class InvalidPriceError(ValidationError):
    """Exception raised for a negative or non-decimal unit price."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Invalid unit price"
        super().__init__(message, code or 'INVALID_PRICE', details)


class InvalidThresholdError(ValidationError):
    """Exception raised for a negative low-stock threshold."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Threshold must be a non-negative integer"
        super().__init__(message, code or 'INVALID_THRESHOLD', details)


class NotFoundError(LedgerError):
    """Exception raised when a requested resource is not found."""

    http_status = 404

    def __init__(self, message=None, code=None, details=None):
        message = message or "Resource not found"
        super().__init__(message, code or 'NOT_FOUND', details)


class InvalidTransitionError(LedgerError):
    """Exception raised for an order status-machine violation."""

    http_status = 409

    def __init__(self, message=None, code=None, details=None):
        message = message or "Invalid status transition"
        super().__init__(message, code or 'INVALID_TRANSITION', details)


class InsufficientStockError(LedgerError):
    """Exception raised when stock cannot cover a requested quantity."""

    http_status = 409

    def __init__(self, product_id, available, required, message=None, code=None):
        self.product_id = product_id
        self.available = available
        self.required = required
        message = message or (
            f"Insufficient inventory for product ID {product_id}. "
            f"Available: {available}, Required: {required}"
        )
        details = {
            'product_id': product_id,
            'available': available,
            'required': required
        }
        super().__init__(message, code or 'INSUFFICIENT_STOCK', details)


class DuplicateCombinationError(LedgerError):
    """Exception raised when an inventory record already exists for a product and warehouse."""

    http_status = 409

    def __init__(self, message=None, code=None, details=None):
        message = message or "Inventory record already exists for this product-warehouse combination"
        super().__init__(message, code or 'DUPLICATE_COMBINATION', details)


class DuplicateSkuError(LedgerError):
    """Exception raised when a product SKU is already in use."""

    http_status = 409

    def __init__(self, message=None, code=None, details=None):
        message = message or "SKU already exists"
        super().__init__(message, code or 'DUPLICATE_SKU', details)



class TransactionFailureError(LedgerError):
    """Exception raised when the store fails during a multi-step operation.

    The operation has been rolled back. The message never carries the
    underlying store diagnostics.
    """

    http_status = 500

    def __init__(self, message=None, code=None, details=None):
        message = message or "Internal server error"
        super().__init__(message, code or 'TRANSACTION_FAILURE', details)
