"""Exceptions raised by the data-access layer.

Callers can tell an empty lookup (``None`` / ``[]``) apart from a failed
query, and a failed query apart from a rejected write.
"""


class StoreError(Exception):
    """Base class for every data-access failure."""


class NotFoundError(StoreError):
    """A row that has to exist is missing."""


class ConstraintViolationError(StoreError):
    """The database rejected a write (unique, foreign key, not null, check)."""


class ConnectionFailureError(StoreError):
    """No usable connection to the database."""


class QueryFailedError(StoreError):
    """Any other failure while executing a statement."""
