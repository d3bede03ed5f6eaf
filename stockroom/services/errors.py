"""Error taxonomy surfaced by the inventory ledger and its collaborators."""


class LedgerError(Exception):
    """Base class for all errors shown to the presentation layer."""
    status_code = 400

    def __init__(self, message: str = "Inventory operation failed", status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class NotAuthenticatedError(LedgerError):
    """No acting identity is available."""
    status_code = 401

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class UnknownUserError(LedgerError):
    """The identity is authenticated but not provisioned in the user directory."""
    status_code = 403

    def __init__(self, user_id: str):
        super().__init__(f"User {user_id} is not registered in the system")
        self.user_id = user_id


class UnknownProductError(LedgerError):
    status_code = 404

    def __init__(self, product_id):
        super().__init__(f"Product with ID {product_id} not found")
        self.product_id = product_id


class UnknownMovementError(LedgerError):
    status_code = 404

    def __init__(self, movement_id):
        super().__init__(f"Movement with ID {movement_id} not found")
        self.movement_id = movement_id


class StoreWriteFailedError(LedgerError):
    """The data store rejected a write."""
    status_code = 502


class ValidationFailedError(LedgerError):
    """Malformed or missing input."""
    status_code = 422


class RecordNotFound(Exception):
    """Raised by a data store when a lookup by id matches nothing."""

    def __init__(self, table: str, record_id):
        super().__init__(f"{table}: no record with id {record_id!r}")
        self.table = table
        self.record_id = record_id


class StoreWriteError(Exception):
    """Raised by a data store when an insert, update or delete is rejected."""
