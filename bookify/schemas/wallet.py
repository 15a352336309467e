"""Wallet and points Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class WalletResponse(BaseModel):
    """Schema for a wallet balance."""

    model_config = ConfigDict(from_attributes=True)

    account_id: str
    balance: int
    currency: str


class PointsResponse(BaseModel):
    """Schema for a points balance."""

    model_config = ConfigDict(from_attributes=True)

    account_id: str
    balance: int


class LedgerEntryResponse(BaseModel):
    """Schema for a wallet or points ledger entry."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    type: str
    delta: int
    amount: int
    status: str
    note: str | None
    meta: dict = Field(default_factory=dict, serialization_alias="metadata")
    balance_after: int
    created_at: datetime | None


class TopUpRequest(BaseModel):
    """Schema for an admin wallet top-up."""

    account_id: str = Field(..., min_length=1, max_length=128)
    amount: int = Field(..., gt=0)
    note: str | None = Field(None, max_length=500)


class WithdrawRequest(BaseModel):
    """Schema for paying money out of the caller's wallet."""

    amount: int = Field(..., gt=0)
    method: str = Field(default="bank", min_length=1, max_length=20)
    note: str | None = Field(None, max_length=500)


class TransferRequest(BaseModel):
    """Schema for sending money to another wallet."""

    recipient_id: str = Field(..., min_length=1, max_length=128)
    amount: int = Field(..., gt=0)
    note: str | None = Field(None, max_length=500)
