"""Akasia Operations Ledger - Wallet models.

The wallet is a revolving cash float tracked independently of the main
ledger. Entries are immutable; corrections are offsetting entries.
"""

from datetime import datetime
from enum import Enum

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from akasia.utils.helpers import utcnow


class WalletEntryType(str, Enum):
    """Fund flow direction."""

    CREDIT = "CREDIT"  # Increase balance
    DEBIT = "DEBIT"  # Decrease balance


class WalletEntrySource(str, Enum):
    """Where a wallet entry came from."""

    CASHBACK = "CASHBACK"  # Created with a cashback
    CASHBACK_REVERSAL = "CASHBACK_REVERSAL"  # Offsets a cashback whose receipt was deleted
    MANUAL = "MANUAL"  # Entered by hand


class Wallet(SQLModel, table=True):
    """Cash-float wallet. One is expected process-wide (unique name)."""

    __tablename__ = "wallets"

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(max_length=100, unique=True, index=True)
    created_at: datetime = Field(default_factory=utcnow)


class WalletEntry(SQLModel, table=True):
    """Wallet entry - immutable credit or debit.

    ``task_id`` and ``cashback_id`` are plain references, not foreign keys:
    the wallet is a separate store and its history outlives deleted receipts.

    Attributes:
        id: Auto-increment primary key
        wallet_id: Owning wallet
        type: CREDIT or DEBIT
        source: CASHBACK / CASHBACK_REVERSAL / MANUAL
        amount: Positive amount in the smallest currency unit
        description: Optional description
        occurred_at: When the money moved
        attachment_url: Optional proof URL
        task_id: Linked spending task (if any)
        cashback_id: Linked cashback (if any)
        created_by: Opaque id of the recording user
    """

    __tablename__ = "wallet_entries"

    id: int | None = Field(default=None, primary_key=True)
    wallet_id: int = Field(foreign_key="wallets.id", index=True)
    type: WalletEntryType = Field(index=True)
    source: WalletEntrySource = Field(index=True)
    amount: int = Field(sa_column=sa.Column(sa.BigInteger, nullable=False))
    description: str | None = Field(default=None, max_length=255)
    occurred_at: datetime = Field(index=True)
    attachment_url: str | None = Field(default=None, max_length=512)

    task_id: int | None = Field(default=None, index=True)
    cashback_id: int | None = Field(default=None, index=True)

    created_by: str = Field(max_length=64)
    created_at: datetime = Field(default_factory=utcnow)
