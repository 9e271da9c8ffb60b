"""
Webhook Payload Models

Monzo posts one JSON document per event. We only act on
"transaction.created"; every other type is acknowledged and ignored.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


TRANSACTION_CREATED = "transaction.created"


class TransactionData(BaseModel):
    """The "data" object of a transaction webhook."""
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    account_id: Optional[str] = None
    amount: Optional[int] = Field(
        default=None,
        description="Signed minor units; absent on some deliveries"
    )
    description: Optional[str] = None
    decline_reason: Optional[str] = Field(
        default=None,
        description="Set when the transaction was declined; the balance did not move"
    )
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_declined(self) -> bool:
        return self.decline_reason is not None

    @property
    def pot_id(self) -> Optional[str]:
        value = self.metadata.get("pot_id")
        return str(value) if value is not None else None


class WebhookEvent(BaseModel):
    """Envelope of a webhook delivery."""
    model_config = ConfigDict(extra="ignore")

    type: str
    data: TransactionData = Field(default_factory=TransactionData)

    @property
    def is_transaction_created(self) -> bool:
        return self.type == TRANSACTION_CREATED


class WebhookResponse(BaseModel):
    """What the HTTP layer should send back."""

    status_code: int
    message: str

    @classmethod
    def ok(cls, message: str = "OK") -> "WebhookResponse":
        return cls(status_code=200, message=message)

    @classmethod
    def bad_request(cls, message: str) -> "WebhookResponse":
        return cls(status_code=400, message=f"Bad Request: {message}")

    @classmethod
    def server_error(cls) -> "WebhookResponse":
        return cls(status_code=500, message="Internal Server Error")
