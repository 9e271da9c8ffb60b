"""
Data Models Package

This package contains all Pydantic models used by Pot Balancer.
"""

from potbalancer.models.account import AccountRecord, UserRecord
from potbalancer.models.correction import (
    IDEMPOTENCY_KEY_PREFIX,
    CorrectionConfig,
    CorrectionOutcome,
    CorrectionResult,
    KnownAmount,
    PotSnapshot,
    TransferDirection,
    TransferIntent,
    Trigger,
    TriggerEvent,
    UnknownAmount,
    build_idempotency_key,
)
from potbalancer.models.ledger import AccountBalance, Pot, Transaction
from potbalancer.models.webhook import (
    TRANSACTION_CREATED,
    TransactionData,
    WebhookEvent,
    WebhookResponse,
)

__all__ = [
    # Correction models
    "IDEMPOTENCY_KEY_PREFIX",
    "CorrectionConfig",
    "CorrectionOutcome",
    "CorrectionResult",
    "KnownAmount",
    "PotSnapshot",
    "TransferDirection",
    "TransferIntent",
    "Trigger",
    "TriggerEvent",
    "UnknownAmount",
    "build_idempotency_key",
    # Ledger models
    "AccountBalance",
    "Pot",
    "Transaction",
    # Storage models
    "AccountRecord",
    "UserRecord",
    # Webhook models
    "TRANSACTION_CREATED",
    "TransactionData",
    "WebhookEvent",
    "WebhookResponse",
]
