"""
Storage Services Package

Provides the abstract account storage interface and a SQLite implementation.
"""

from potbalancer.services.storage.interface import (
    AccountStorageInterface,
    NotFoundError,
    StorageError,
)
from potbalancer.services.storage.sqlite import SQLiteAccountStorage

__all__ = [
    # Interfaces
    "AccountStorageInterface",
    # Exceptions
    "NotFoundError",
    "StorageError",
    # SQLite implementation
    "SQLiteAccountStorage",
]
