"""Custom exceptions for the POS application."""


class PosError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        return rv


class BusinessLogicError(PosError):
    """Exception raised for business logic violations."""
    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)


class NotFoundError(PosError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)


class AlreadyFinalizedError(BusinessLogicError):
    """Raised when finalizing an order that is already COMPLETED."""
    def __init__(self, order_number):
        super().__init__(
            f"Order {order_number} is already completed",
            status_code=409,
            payload={'order_number': order_number}
        )


def _fmt_qty(value):
    return f"{int(value)}" if value % 1 == 0 else f"{value:.2f}".rstrip('0').rstrip('.')


class InsufficientStockError(BusinessLogicError):
    """
    Raised when a commit would drive one or more products below zero.

    `shortages` is a list of dicts with product_id, name, required, available.
    """
    def __init__(self, shortages):
        self.shortages = shortages
        parts = [
            f"{s['name']}: requires {_fmt_qty(s['required'])}, available {_fmt_qty(s['available'])}"
            for s in shortages
        ]
        message = "Insufficient stock for " + "; ".join(parts)
        payload = {
            'shortages': [
                {
                    'product_id': s['product_id'],
                    'name': s['name'],
                    'required': _fmt_qty(s['required']),
                    'available': _fmt_qty(s['available']),
                }
                for s in shortages
            ]
        }
        super().__init__(message, status_code=409, payload=payload)


class TransactionAbortedError(PosError):
    """The unit of work failed or timed out for infrastructure reasons; safe to retry."""
    def __init__(self, message="The transaction was aborted, please retry"):
        super().__init__(message, 503)


class UnauthorizedError(PosError):
    """Raised when no authenticated staff user is present."""
    def __init__(self, message="Authentication required"):
        super().__init__(message, 401)


class ForbiddenError(PosError):
    """Raised when a user lacks permission for an action."""
    def __init__(self, message="You do not have permission for this action"):
        super().__init__(message, 403)
