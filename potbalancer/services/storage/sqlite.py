"""
SQLite Storage Implementation

Users (with tokens) and accounts (with balancing settings) live in two
tables, joined on read. One connection per operation; the volume here is a
handful of writes per webhook at most.
"""

import sqlite3
from contextlib import closing
from datetime import datetime, timezone
from typing import Optional

from potbalancer.config import get_settings
from potbalancer.models.account import AccountRecord, UserRecord
from potbalancer.services.storage.interface import (
    AccountStorageInterface,
    NotFoundError,
    StorageError,
)


SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    user_id TEXT PRIMARY KEY,
    access_token TEXT NOT NULL,
    refresh_token TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS monzo_accounts (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL REFERENCES users(user_id),
    monzo_account_id TEXT NOT NULL UNIQUE,
    monzo_pot_id TEXT NOT NULL,
    target_balance INTEGER NOT NULL,
    dry_run INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""


class SQLiteAccountStorage(AccountStorageInterface):
    """SQLite implementation of account storage."""

    def __init__(self, database_path: Optional[str] = None):
        self._database_path = database_path or get_settings().storage.database_path
        self._initialized = False

    def _connect(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(self._database_path)
        except sqlite3.Error as e:
            raise StorageError(f"Failed to open database {self._database_path}: {e}")
        conn.row_factory = sqlite3.Row
        if not self._initialized:
            conn.executescript(SCHEMA)
            self._initialized = True
        return conn

    async def get_account(self, monzo_account_id: str) -> Optional[AccountRecord]:
        with closing(self._connect()) as conn:
            row = conn.execute(
                """SELECT ma.*, u.access_token, u.refresh_token
                   FROM monzo_accounts ma
                   JOIN users u ON ma.user_id = u.user_id
                   WHERE ma.monzo_account_id = ?""",
                (monzo_account_id,),
            ).fetchone()

        if row is None:
            return None

        return AccountRecord(
            id=row["id"],
            user_id=row["user_id"],
            monzo_account_id=row["monzo_account_id"],
            monzo_pot_id=row["monzo_pot_id"],
            target_balance=row["target_balance"],
            dry_run=bool(row["dry_run"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
            access_token=row["access_token"],
            refresh_token=row["refresh_token"],
        )

    async def save_user(self, user: UserRecord) -> None:
        try:
            with closing(self._connect()) as conn, conn:
                conn.execute(
                    """INSERT INTO users
                       (user_id, access_token, refresh_token, created_at, updated_at)
                       VALUES (?, ?, ?, ?, ?)
                       ON CONFLICT(user_id) DO UPDATE SET
                           access_token = excluded.access_token,
                           refresh_token = excluded.refresh_token,
                           updated_at = excluded.updated_at""",
                    (
                        user.user_id,
                        user.access_token,
                        user.refresh_token,
                        user.created_at.isoformat(),
                        user.updated_at.isoformat(),
                    ),
                )
        except sqlite3.Error as e:
            raise StorageError(f"Failed to save user {user.user_id}: {e}")

    async def save_account(self, account: AccountRecord) -> None:
        try:
            with closing(self._connect()) as conn, conn:
                owner = conn.execute(
                    "SELECT 1 FROM users WHERE user_id = ?", (account.user_id,)
                ).fetchone()
                if owner is None:
                    raise NotFoundError(f"User {account.user_id} not found")

                conn.execute(
                    """INSERT INTO monzo_accounts
                       (id, user_id, monzo_account_id, monzo_pot_id,
                        target_balance, dry_run, created_at, updated_at)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                       ON CONFLICT(monzo_account_id) DO UPDATE SET
                           user_id = excluded.user_id,
                           monzo_pot_id = excluded.monzo_pot_id,
                           target_balance = excluded.target_balance,
                           dry_run = excluded.dry_run,
                           updated_at = excluded.updated_at""",
                    (
                        account.id,
                        account.user_id,
                        account.monzo_account_id,
                        account.monzo_pot_id,
                        account.target_balance,
                        int(account.dry_run),
                        account.created_at.isoformat(),
                        account.updated_at.isoformat(),
                    ),
                )
        except sqlite3.Error as e:
            raise StorageError(f"Failed to save account {account.monzo_account_id}: {e}")

    async def save_tokens(
        self,
        user_id: str,
        access_token: str,
        refresh_token: str,
    ) -> None:
        try:
            with closing(self._connect()) as conn, conn:
                cursor = conn.execute(
                    """UPDATE users
                       SET access_token = ?, refresh_token = ?, updated_at = ?
                       WHERE user_id = ?""",
                    (
                        access_token,
                        refresh_token,
                        datetime.now(timezone.utc).isoformat(),
                        user_id,
                    ),
                )
        except sqlite3.Error as e:
            raise StorageError(f"Failed to save tokens for user {user_id}: {e}")

        if cursor.rowcount == 0:
            raise NotFoundError(f"User {user_id} not found")
