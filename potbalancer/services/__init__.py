"""Services package."""

from potbalancer.services.ledger import (
    LedgerAuthenticationError,
    LedgerConnectionError,
    LedgerError,
    LedgerReader,
    LedgerRequestError,
    LedgerWriter,
    MonzoClient,
)
from potbalancer.services.storage import (
    AccountStorageInterface,
    NotFoundError,
    SQLiteAccountStorage,
    StorageError,
)

__all__ = [
    # Ledger services
    "LedgerAuthenticationError",
    "LedgerConnectionError",
    "LedgerError",
    "LedgerReader",
    "LedgerRequestError",
    "LedgerWriter",
    "MonzoClient",
    # Storage services
    "AccountStorageInterface",
    "NotFoundError",
    "SQLiteAccountStorage",
    "StorageError",
]
