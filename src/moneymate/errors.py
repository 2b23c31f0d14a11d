"""Exception types raised by moneymate."""


class MoneymateError(Exception):
    """Base class for moneymate errors."""


class RowStoreError(MoneymateError):
    """A backend operation failed."""

    def __init__(self, table: str, operation: str, message: str) -> None:
        super().__init__(f"{operation} on {table} failed: {message}")
        self.table = table
        self.operation = operation


class NotFoundError(RowStoreError):
    """The requested row does not exist."""

    def __init__(self, table: str, row_id: str) -> None:
        super().__init__(table, "lookup", f"no row with id {row_id}")
        self.row_id = row_id


class ValidationError(MoneymateError, ValueError):
    """User-supplied data was rejected."""
