"""
Application Interfaces

Contracts the builder depends on, implemented by the infrastructure layer.
"""

from .driver import IDatabaseDriver, Row
from .exceptions import (
    ConnectionError,
    IntegrityError,
    RepositoryError,
    TimeoutError,
    TransactionError,
)

__all__ = [
    "IDatabaseDriver",
    "Row",
    "RepositoryError",
    "ConnectionError",
    "IntegrityError",
    "TimeoutError",
    "TransactionError",
]
