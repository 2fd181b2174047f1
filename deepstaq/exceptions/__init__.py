"""Custom exceptions for the DeepStaq inventory application."""


class DeepstaqError(Exception):
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


class InvalidPayloadError(DeepstaqError):
    """Raised for a missing field, a non-positive quantity or a malformed date/type."""
    def __init__(self, message="Invalid payload", payload=None):
        super().__init__(message, 400, payload)


class NotFoundError(DeepstaqError):
    """Raised when a resource is absent or owned by another tenant (never distinguishable)."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)


class NegativeStockError(DeepstaqError):
    """Raised when a ledger mutation would drive a product's running balance below zero."""
    def __init__(self, message="Operation would result in negative stock", failing_date=None, balance=None):
        payload = {}
        if failing_date is not None:
            payload['date'] = failing_date.isoformat()
        if balance is not None:
            payload['balance'] = float(balance)
        super().__init__(message, 400, payload)
        self.failing_date = failing_date
        self.balance = balance


class UnauthenticatedError(DeepstaqError):
    """Raised when the bearer credential is missing or cannot be verified."""
    def __init__(self, message="Unauthorized"):
        super().__init__(message, 401)


class ConcurrentUpdateError(DeepstaqError):
    """Raised when another writer changed a product's ledger between read and write."""
    def __init__(self, message="Stock ledger was modified concurrently, please retry"):
        super().__init__(message, 409)


class DatastoreError(DeepstaqError):
    """Raised when the datastore fails in a way the caller cannot recover from."""
    def __init__(self, message="Datastore error"):
        super().__init__(message, 500)
