"""Wallet schemas - Request/Response DTOs for the cash-float wallet."""

from datetime import datetime

from pydantic import BaseModel, Field, HttpUrl

from akasia.models.wallet import WalletEntrySource, WalletEntryType


class WalletEntryCreate(BaseModel):
    """Request to create a manual wallet entry."""

    type: WalletEntryType
    amount: int = Field(gt=0, description="Amount is required")
    description: str | None = Field(default=None, max_length=255)
    occurred_at: datetime | None = None
    attachment_url: HttpUrl | None = None


class WalletResponse(BaseModel):
    """Wallet response."""

    id: int
    name: str
    created_at: datetime

    class Config:
        from_attributes = True


class WalletEntryResponse(BaseModel):
    """Wallet entry response."""

    id: int
    wallet_id: int
    type: WalletEntryType
    source: WalletEntrySource
    amount: int
    description: str | None = None
    occurred_at: datetime
    attachment_url: str | None = None
    task_id: int | None = None
    cashback_id: int | None = None
    created_by: str
    created_at: datetime

    class Config:
        from_attributes = True


class WalletOverview(BaseModel):
    """Wallet, balance and most recent entries."""

    wallet: WalletResponse
    balance: int
    entries: list[WalletEntryResponse]
