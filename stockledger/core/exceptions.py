"""
Stock Ledger Exceptions

Every ledger failure is recoverable at the API boundary; ``status_code`` is
the HTTP status the application reports for it.
"""


class StockLedgerException(Exception):
    """Base exception for the stock ledger"""
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class NotFoundError(StockLedgerException):
    """Unknown record, or a record owned by someone else"""
    status_code = 404


class InvalidReferenceError(NotFoundError):
    """Raised when a category or brand reference does not resolve for the owner"""
    pass


class InvalidArgumentError(StockLedgerException):
    """Raised when request data fails validation"""
    status_code = 400


class InvalidQuantityError(InvalidArgumentError):
    """Raised when a batch count or item quantity is out of range"""
    pass


class InvalidAmountError(InvalidArgumentError):
    """Raised when a usage amount is not positive"""
    pass


class InvalidTransitionError(StockLedgerException):
    """Raised when a lifecycle action is illegal in the item's current state"""
    status_code = 409


class WrongKindError(StockLedgerException):
    """Raised when a lifecycle action does not apply to the item's kind"""
    status_code = 400


class ExceedsStockError(StockLedgerException):
    """Raised when usage of a durable item exceeds its remaining stock"""
    status_code = 409


class ConflictError(StockLedgerException):
    """Raised on uniqueness conflicts"""
    status_code = 409
