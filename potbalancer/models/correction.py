"""
Balance Correction Models

These models describe one correction call end to end:
- CorrectionConfig: what the account should look like (owned by the caller)
- TriggerEvent: what just happened (one per webhook delivery)
- PotSnapshot: what the pot held when we last looked
- TransferIntent: what we decided to move
- CorrectionResult: what the corrector ended up doing

DESIGN DECISION: All amounts are integers in minor currency units (pennies).
Floats never appear in balance arithmetic.
"""

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


IDEMPOTENCY_KEY_PREFIX = "balance-correction-"


def build_idempotency_key(triggering_id: str) -> str:
    """
    Derive the dedupe key for a correction from its triggering transaction.

    Redelivery of the same webhook yields the same key, so the ledger
    collapses the repeated transfer into one.
    """
    return f"{IDEMPOTENCY_KEY_PREFIX}{triggering_id}"


# =============================================================================
# ENUMS
# =============================================================================

class TransferDirection(str, Enum):
    """Which way money moves between the account and the pot."""
    DEPOSIT_TO_POT = "deposit_to_pot"
    WITHDRAW_FROM_POT = "withdraw_from_pot"


class CorrectionOutcome(str, Enum):
    """Terminal state of one correction call."""
    NO_OP = "no_op"                      # Nothing to move
    SKIPPED_DRY_RUN = "skipped_dry_run"  # Decided, but dry run blocked the call
    EXECUTED = "executed"                # Transfer issued to the ledger


# =============================================================================
# INPUTS
# =============================================================================

class CorrectionConfig(BaseModel):
    """
    Balancing configuration for one (account, pot) pair.

    Immutable for the duration of a correction call.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    account_id: str = Field(
        ...,
        min_length=1,
        description="Current account being kept on target"
    )
    pot_id: str = Field(
        ...,
        min_length=1,
        description="Pot that absorbs excess and covers deficit"
    )
    target_balance: int = Field(
        ...,
        ge=0,
        description="Desired account balance in minor units"
    )
    dry_run: bool = Field(
        default=False,
        description="Decide and log, but never move money"
    )


class KnownAmount(BaseModel):
    """The triggering transaction's signed amount is known."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["known"] = "known"
    amount: int = Field(
        ...,
        description="Signed minor units: positive = money in, negative = money out"
    )


class UnknownAmount(BaseModel):
    """No authoritative amount; derive the correction from a balance snapshot."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["unknown"] = "unknown"


Trigger = Annotated[
    Union[KnownAmount, UnknownAmount],
    Field(discriminator="kind"),
]


class TriggerEvent(BaseModel):
    """A completed transaction that may have moved the balance off target."""
    model_config = ConfigDict(frozen=True)

    triggering_id: str = Field(
        ...,
        min_length=1,
        description="Transaction ID; the idempotency key is derived from it"
    )
    trigger: Trigger = Field(default_factory=UnknownAmount)

    @classmethod
    def from_amount(cls, triggering_id: str, amount: Optional[int]) -> "TriggerEvent":
        """Build an event, choosing the variant from whether an amount is present."""
        trigger = UnknownAmount() if amount is None else KnownAmount(amount=amount)
        return cls(triggering_id=triggering_id, trigger=trigger)

    @property
    def idempotency_key(self) -> str:
        return build_idempotency_key(self.triggering_id)


# =============================================================================
# LEDGER STATE & DECISIONS
# =============================================================================

class PotSnapshot(BaseModel):
    """Pot balance as read from the ledger. Stale the moment it is read."""
    model_config = ConfigDict(frozen=True)

    pot_id: str
    available_balance: int = Field(..., ge=0)


class TransferIntent(BaseModel):
    """A single corrective transfer. Never built for a zero amount."""
    model_config = ConfigDict(frozen=True)

    direction: TransferDirection
    amount: int = Field(..., gt=0, description="Minor units, always positive")
    idempotency_key: str = Field(..., min_length=1)
    account_id: str
    pot_id: str


class CorrectionResult(BaseModel):
    """What one correction call decided and did."""
    model_config = ConfigDict(frozen=True)

    outcome: CorrectionOutcome
    intent: Optional[TransferIntent] = None
    partial: bool = Field(
        default=False,
        description="True when the pot could only cover part of the deficit"
    )

    @model_validator(mode='after')
    def validate_intent_presence(self) -> 'CorrectionResult':
        """A no-op carries no intent; every other outcome does."""
        if self.outcome == CorrectionOutcome.NO_OP and self.intent is not None:
            raise ValueError("A no-op correction cannot carry a transfer intent")
        if self.outcome != CorrectionOutcome.NO_OP and self.intent is None:
            raise ValueError(f"Outcome {self.outcome.value} requires a transfer intent")
        return self

    @property
    def executed(self) -> bool:
        return self.outcome == CorrectionOutcome.EXECUTED

    @classmethod
    def no_op(cls) -> "CorrectionResult":
        return cls(outcome=CorrectionOutcome.NO_OP)
