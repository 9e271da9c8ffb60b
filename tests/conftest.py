"""
Shared test doubles.

No real API calls in tests: the ledger is an in-memory fake that records
every read and write, and the logger captures events instead of printing.
"""

import asyncio
from typing import Any, Optional

import pytest

from potbalancer.audit import CorrectionLogger
from potbalancer.models.account import AccountRecord, UserRecord
from potbalancer.models.correction import CorrectionConfig
from potbalancer.models.ledger import AccountBalance, Pot, Transaction
from potbalancer.services.ledger import LedgerReader, LedgerWriter
from potbalancer.services.storage import AccountStorageInterface, NotFoundError


ACCOUNT_ID = "acc_123"
POT_ID = "pot_456"
USER_ID = "user_789"


class FakeLedger(LedgerReader, LedgerWriter):
    """In-memory ledger recording every call."""

    def __init__(
        self,
        balance: int = 0,
        pots: Optional[list[Pot]] = None,
        transactions: Optional[dict[str, Transaction]] = None,
    ):
        self.balance = balance
        self.pots = pots if pots is not None else []
        self.transactions = transactions or {}
        self.reads: list[str] = []
        self.deposits: list[dict[str, Any]] = []
        self.withdrawals: list[dict[str, Any]] = []
        self.entered = 0
        self.exited = 0

    @property
    def mutations(self) -> list[dict[str, Any]]:
        return self.deposits + self.withdrawals

    async def __aenter__(self) -> "FakeLedger":
        self.entered += 1
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.exited += 1

    async def get_balance(self, account_id: str) -> AccountBalance:
        self.reads.append("balance")
        await asyncio.sleep(0)
        return AccountBalance(balance=self.balance)

    async def get_pots(self, account_id: str) -> list[Pot]:
        self.reads.append("pots")
        await asyncio.sleep(0)
        return list(self.pots)

    async def get_transaction(self, transaction_id: str) -> Transaction:
        self.reads.append("transaction")
        await asyncio.sleep(0)
        return self.transactions[transaction_id]

    async def deposit_into_pot(self, pot_id, *, amount, dedupe_id, source_account_id):
        await asyncio.sleep(0)
        self.deposits.append({
            "pot_id": pot_id,
            "amount": amount,
            "dedupe_id": dedupe_id,
            "source_account_id": source_account_id,
        })

    async def withdraw_from_pot(self, pot_id, *, amount, dedupe_id, destination_account_id):
        await asyncio.sleep(0)
        self.withdrawals.append({
            "pot_id": pot_id,
            "amount": amount,
            "dedupe_id": dedupe_id,
            "destination_account_id": destination_account_id,
        })


class CapturingLogger(CorrectionLogger):
    """Records (level, event, fields) tuples; bound children share the list."""

    def __init__(self, records: Optional[list] = None, context: Optional[dict] = None):
        self.records = records if records is not None else []
        self._context = context or {}

    def _record(self, level: str, event: str, fields: dict) -> None:
        self.records.append((level, event, {**self._context, **fields}))

    def info(self, event: str, **fields: Any) -> None:
        self._record("info", event, fields)

    def warning(self, event: str, **fields: Any) -> None:
        self._record("warning", event, fields)

    def error(self, event: str, **fields: Any) -> None:
        self._record("error", event, fields)

    def bind(self, **fields: Any) -> "CapturingLogger":
        return CapturingLogger(self.records, {**self._context, **fields})

    def events(self, level: Optional[str] = None) -> list[str]:
        return [event for lvl, event, _ in self.records if level is None or lvl == level]


class InMemoryAccountStorage(AccountStorageInterface):
    """Dict-backed storage for webhook flow tests."""

    def __init__(self):
        self.users: dict[str, UserRecord] = {}
        self.accounts: dict[str, AccountRecord] = {}

    async def get_account(self, monzo_account_id: str) -> Optional[AccountRecord]:
        account = self.accounts.get(monzo_account_id)
        if account is None:
            return None
        user = self.users[account.user_id]
        return account.model_copy(update={
            "access_token": user.access_token,
            "refresh_token": user.refresh_token,
        })

    async def save_user(self, user: UserRecord) -> None:
        self.users[user.user_id] = user

    async def save_account(self, account: AccountRecord) -> None:
        if account.user_id not in self.users:
            raise NotFoundError(f"User {account.user_id} not found")
        self.accounts[account.monzo_account_id] = account

    async def save_tokens(self, user_id: str, access_token: str, refresh_token: str) -> None:
        if user_id not in self.users:
            raise NotFoundError(f"User {user_id} not found")
        self.users[user_id] = self.users[user_id].model_copy(update={
            "access_token": access_token,
            "refresh_token": refresh_token,
        })


@pytest.fixture
def config() -> CorrectionConfig:
    return CorrectionConfig(
        account_id=ACCOUNT_ID,
        pot_id=POT_ID,
        target_balance=1000,  # £10.00
        dry_run=False,
    )


@pytest.fixture
def dry_run_config(config: CorrectionConfig) -> CorrectionConfig:
    return config.model_copy(update={"dry_run": True})


@pytest.fixture
def capturing_logger() -> CapturingLogger:
    return CapturingLogger()


def make_pot(balance: int, pot_id: str = POT_ID, deleted: bool = False) -> Pot:
    return Pot(id=pot_id, name="Buffer", balance=balance, deleted=deleted)
