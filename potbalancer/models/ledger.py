"""
Ledger Read Models

Shapes of the data read back from the banking API. Only the fields the
balancer needs are declared; everything else in the payload is ignored.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AccountBalance(BaseModel):
    """Current balance of a main account."""
    model_config = ConfigDict(extra="ignore")

    balance: int = Field(..., description="Balance in minor units")
    currency: str = Field(default="GBP")


class Pot(BaseModel):
    """A pot attached to a current account."""
    model_config = ConfigDict(extra="ignore")

    id: str
    name: Optional[str] = None
    balance: int = Field(..., description="Pot balance in minor units")
    currency: str = Field(default="GBP")
    deleted: bool = False


class Transaction(BaseModel):
    """A single account transaction."""
    model_config = ConfigDict(extra="ignore")

    id: str
    account_id: Optional[str] = None
    amount: int = Field(..., description="Signed minor units")
    currency: str = Field(default="GBP")
    description: Optional[str] = None
    metadata: dict[str, str] = Field(default_factory=dict)
