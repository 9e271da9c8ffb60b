"""
Ledger Services Package

Abstract read/write interfaces to the bank, plus the Monzo implementation.
"""

from potbalancer.services.ledger.interface import (
    LedgerAuthenticationError,
    LedgerConnectionError,
    LedgerError,
    LedgerReader,
    LedgerRequestError,
    LedgerWriter,
)
from potbalancer.services.ledger.monzo import MonzoClient, TokenRefreshCallback

__all__ = [
    # Interfaces
    "LedgerReader",
    "LedgerWriter",
    # Exceptions
    "LedgerAuthenticationError",
    "LedgerConnectionError",
    "LedgerError",
    "LedgerRequestError",
    # Monzo implementation
    "MonzoClient",
    "TokenRefreshCallback",
]
