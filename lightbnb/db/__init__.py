"""Database access layer (DAL) for LightBnB.

This sub-package encapsulates low-level DB interactions so that the web layer
only deals with pydantic records and `StoreError` subclasses.
"""

from .connection import Database
from .errors import (
    ConnectionFailureError,
    ConstraintViolationError,
    NotFoundError,
    QueryFailedError,
    StoreError,
)
from .repositories import PropertyRepository, ReservationRepository, UserRepository

__all__ = [
    "Database",
    "StoreError",
    "NotFoundError",
    "ConstraintViolationError",
    "ConnectionFailureError",
    "QueryFailedError",
    "UserRepository",
    "ReservationRepository",
    "PropertyRepository",
]
