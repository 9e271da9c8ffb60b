"""
Abstract Ledger Interfaces

DESIGN DECISION: The balancer sees the bank through two narrow interfaces:
1. LedgerReader - balances, pots and transactions (no side effects)
2. LedgerWriter - pot deposits and withdrawals (moves money)

Splitting them makes it obvious which code paths can move money, and lets
tests count reads and writes separately. Token refresh and HTTP retry are
the implementation's business; callers only ever see the errors below.
"""

from abc import ABC, abstractmethod
from typing import Optional

from potbalancer.models.ledger import AccountBalance, Pot, Transaction


class LedgerReader(ABC):
    """Read-only access to account and pot state."""

    @abstractmethod
    async def get_balance(self, account_id: str) -> AccountBalance:
        """
        Get the current balance of a main account.

        Raises:
            LedgerError: If the request fails
        """
        pass

    @abstractmethod
    async def get_pots(self, account_id: str) -> list[Pot]:
        """
        List the pots attached to a current account.

        Deleted pots may be included; check Pot.deleted.

        Raises:
            LedgerError: If the request fails
        """
        pass

    @abstractmethod
    async def get_transaction(self, transaction_id: str) -> Transaction:
        """
        Fetch a single transaction.

        Raises:
            LedgerError: If the request fails
        """
        pass


class LedgerWriter(ABC):
    """Money movement between a current account and its pots."""

    @abstractmethod
    async def deposit_into_pot(
        self,
        pot_id: str,
        *,
        amount: int,
        dedupe_id: str,
        source_account_id: str,
    ) -> None:
        """
        Move `amount` minor units from the account into the pot.

        Repeated calls with the same dedupe_id have a single effect.

        Raises:
            LedgerError: If the request fails
        """
        pass

    @abstractmethod
    async def withdraw_from_pot(
        self,
        pot_id: str,
        *,
        amount: int,
        dedupe_id: str,
        destination_account_id: str,
    ) -> None:
        """
        Move `amount` minor units from the pot back to the account.

        Repeated calls with the same dedupe_id have a single effect.

        Raises:
            LedgerError: If the request fails
        """
        pass


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class LedgerConnectionError(LedgerError):
    """The ledger could not be reached."""
    pass


class LedgerRequestError(LedgerError):
    """The ledger answered with a non-success status."""

    def __init__(self, status_code: int, message: str, body: Optional[str] = None):
        self.status_code = status_code
        self.body = body
        super().__init__(f"{message} (status {status_code})")


class LedgerAuthenticationError(LedgerRequestError):
    """Credentials were rejected and could not be refreshed."""

    def __init__(self, message: str, body: Optional[str] = None):
        super().__init__(401, message, body)
