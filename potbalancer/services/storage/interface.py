"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for account storage.
This allows us to:
1. Swap SQLite for a hosted database later
2. Use in-memory storage for testing
3. Keep the webhook flow decoupled from the storage implementation

The interface is intentionally small - just what the webhook flow and the
setup screens need.
"""

from abc import ABC, abstractmethod
from typing import Optional

from potbalancer.models.account import AccountRecord, UserRecord


class AccountStorageInterface(ABC):
    """
    Abstract interface for user and account storage.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    async def get_account(self, monzo_account_id: str) -> Optional[AccountRecord]:
        """
        Retrieve an account with its owner's tokens joined in.

        Args:
            monzo_account_id: Monzo's ID for the current account

        Returns:
            The account if configured, None otherwise
        """
        pass

    @abstractmethod
    async def save_user(self, user: UserRecord) -> None:
        """
        Insert or update a user and their tokens.

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def save_account(self, account: AccountRecord) -> None:
        """
        Insert or update an account's balancing settings.

        Tokens on the record are ignored; they belong to the user.

        Raises:
            NotFoundError: If the owning user doesn't exist
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def save_tokens(
        self,
        user_id: str,
        access_token: str,
        refresh_token: str,
    ) -> None:
        """
        Replace a user's tokens after a refresh.

        Raises:
            NotFoundError: If the user doesn't exist
            StorageError: If save fails
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass
