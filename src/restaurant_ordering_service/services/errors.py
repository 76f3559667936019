"""Exceptions raised by the ordering services.

The HTTP layer maps each class to one status code. Messages for rejected
writes and missing rows are generic.
"""


class OrderingServiceError(Exception):
    """Base class for service errors."""


class RowNotFoundError(OrderingServiceError):
    """The row does not exist or is not visible to the caller."""

    def __init__(self, table: str) -> None:
        super().__init__(f"No matching {table} row")
        self.table = table


class WriteRejectedError(OrderingServiceError):
    """A row policy rejected a write."""

    def __init__(self) -> None:
        super().__init__("Operation not permitted")


class IntegrityConflictError(OrderingServiceError):
    """A write would break a data invariant (uniqueness, status transition, ...)."""


class StorageUnavailableError(OrderingServiceError):
    """The store did not accept a write."""
