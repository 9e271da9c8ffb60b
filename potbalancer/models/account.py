"""
Account Storage Models

DESIGN DECISION: Tokens belong to the user, balancing settings belong to
the account. One user can connect several accounts, and a token refresh
must update every one of them at once.
"""

from datetime import datetime, timezone
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from potbalancer.models.correction import CorrectionConfig


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserRecord(BaseModel):
    """A person who authorised the app, with their OAuth tokens."""

    user_id: str = Field(..., min_length=1)
    access_token: str = Field(..., min_length=1)
    refresh_token: str = Field(..., min_length=1)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class AccountRecord(BaseModel):
    """
    A connected current account and its balancing settings.

    access_token/refresh_token are joined in from the owning user when the
    record is read back; they are never written through this model.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str = Field(..., min_length=1)
    monzo_account_id: str = Field(..., min_length=1)
    monzo_pot_id: str = Field(..., min_length=1)
    target_balance: int = Field(..., ge=0, description="Target in pennies")
    dry_run: bool = False
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    access_token: str = Field(default="", repr=False)
    refresh_token: str = Field(default="", repr=False)

    def to_correction_config(self) -> CorrectionConfig:
        """Runtime config for the corrector. Carries no tokens."""
        return CorrectionConfig(
            account_id=self.monzo_account_id,
            pot_id=self.monzo_pot_id,
            target_balance=self.target_balance,
            dry_run=self.dry_run,
        )
