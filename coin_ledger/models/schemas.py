from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

DIRECTION_INCOMING = "incoming"
DIRECTION_OUTGOING = "outgoing"

MAX_INT64 = 2**63 - 1

class AccountResponse(BaseModel):
    number: int = Field(..., ge=0, description="Account number")
    balance: int = Field(..., description="Balance in minor units (e.g. cents)")

class AccountListResponse(BaseModel):
    accounts: list[AccountResponse]

class TransferRequest(BaseModel):
    id: UUID = Field(..., description="Client supplied transfer id, used as idempotency key")
    source: int = Field(..., ge=0, le=MAX_INT64)
    dest: int = Field(..., ge=0, le=MAX_INT64)
    amount: int = Field(..., ge=0, le=MAX_INT64, description="Amount in minor units")

class TransferResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: UUID
    account: int = Field(..., description="Account the listing was requested for")
    from_account: Optional[int] = Field(
        default=None,
        alias="fromAccount",
        description="Counter-party of an incoming transfer",
    )
    to_account: Optional[int] = Field(
        default=None,
        alias="toAccount",
        description="Counter-party of an outgoing transfer",
    )
    amount: int
    direction: Literal["incoming", "outgoing"]
    created_at: datetime = Field(..., alias="createdAt")

class TransferListResponse(BaseModel):
    transfers: list[TransferResponse]
