"""Akasia Operations Ledger - Ledger models.

This module defines the money-movement ledger:
1. Ledger Entry - one income, expense or fuel purchase with a running
   balance snapshot (balance_before / balance_after)
2. Expense Item - line items of an EXPENSE entry
3. Fuel Purchase - fuel detail of a FUEL_PURCHASE entry
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import assert_never

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from akasia.utils.helpers import utcnow

# =============================================================================
# 1. Ledger Entry
# =============================================================================


class LedgerEntryKind(str, Enum):
    """Ledger entry kind."""

    INCOME = "INCOME"  # Adds to the running balance
    EXPENSE = "EXPENSE"  # Subtracts from the running balance
    FUEL_PURCHASE = "FUEL_PURCHASE"  # Subtracts; excluded from operating totals


OPERATING_KINDS: tuple[LedgerEntryKind, ...] = (LedgerEntryKind.INCOME, LedgerEntryKind.EXPENSE)


def signed_amount(kind: LedgerEntryKind, amount: int) -> int:
    """Signed effect of an entry on the running balance."""
    if kind is LedgerEntryKind.INCOME:
        return amount
    elif kind is LedgerEntryKind.EXPENSE:
        return -amount
    elif kind is LedgerEntryKind.FUEL_PURCHASE:
        return -amount
    else:
        assert_never(kind)


class LedgerEntry(SQLModel, table=True):
    """Ledger entry - one money movement.

    Entries are never hard-deleted. The balance snapshot is written at
    insert time from the latest entry by ``occurred_at`` and rewritten by a
    full recompute pass; backdated inserts leave later snapshots stale until
    that pass runs.

    Attributes:
        id: Auto-increment primary key
        kind: INCOME / EXPENSE / FUEL_PURCHASE
        amount: Positive amount in the smallest currency unit
        description: Human-readable description (income source, expense title)
        notes: Optional free text
        receipt_url: Optional receipt attachment URL
        occurred_at: When the money moved (drives ordering)
        balance_before: Running balance before this entry
        balance_after: Running balance after this entry
        owner_user_id: Opaque id of the user who recorded it
        created_at: Record creation time
        deleted_at: Soft-delete marker
    """

    __tablename__ = "ledger_entries"

    id: int | None = Field(default=None, primary_key=True)
    kind: LedgerEntryKind = Field(index=True, description="Entry kind")
    amount: int = Field(
        sa_column=sa.Column(sa.BigInteger, nullable=False),
        description="Positive amount in the smallest currency unit",
    )
    description: str = Field(max_length=255)
    notes: str | None = Field(default=None, max_length=500)
    receipt_url: str | None = Field(default=None, max_length=512)

    occurred_at: datetime = Field(index=True, description="When the money moved")
    balance_before: int = Field(
        sa_column=sa.Column(sa.BigInteger, nullable=False),
        description="Balance before this entry",
    )
    balance_after: int = Field(
        sa_column=sa.Column(sa.BigInteger, nullable=False),
        description="Balance after this entry",
    )

    owner_user_id: str = Field(max_length=64, index=True)
    created_at: datetime = Field(default_factory=utcnow, index=True)
    deleted_at: datetime | None = Field(default=None, index=True)


# =============================================================================
# 2. Expense Item
# =============================================================================


class ExpenseItem(SQLModel, table=True):
    """Line item of an EXPENSE entry.

    Attributes:
        id: Auto-increment primary key
        entry_id: Owning ledger entry
        description: Item description
        quantity: Units bought (>= 1)
        unit_price: Price per unit in the smallest currency unit
        total: quantity * unit_price at creation time
        vehicle_id: Vehicle the item was bought for (if any)
    """

    __tablename__ = "expense_items"

    id: int | None = Field(default=None, primary_key=True)
    entry_id: int = Field(foreign_key="ledger_entries.id", index=True)
    description: str = Field(max_length=255)
    quantity: int
    unit_price: int = Field(sa_column=sa.Column(sa.BigInteger, nullable=False))
    total: int = Field(sa_column=sa.Column(sa.BigInteger, nullable=False))
    vehicle_id: int | None = Field(default=None, foreign_key="vehicles.id", index=True)


# =============================================================================
# 3. Fuel Purchase
# =============================================================================


class FuelPurchase(SQLModel, table=True):
    """Fuel detail of a FUEL_PURCHASE entry.

    Attributes:
        id: Auto-increment primary key
        entry_id: Owning ledger entry (1:1)
        vehicle_id: Vehicle that was fuelled
        liter_amount: Liters bought
        price_per_liter: Price per liter in the smallest currency unit
        total_amount: Rounded liters * price, equal to the entry amount
    """

    __tablename__ = "fuel_purchases"

    id: int | None = Field(default=None, primary_key=True)
    entry_id: int = Field(foreign_key="ledger_entries.id", unique=True, index=True)
    vehicle_id: int = Field(foreign_key="vehicles.id", index=True)
    liter_amount: Decimal = Field(
        sa_column=sa.Column(sa.DECIMAL(10, 2), nullable=False),
        description="Liters bought",
    )
    price_per_liter: int = Field(sa_column=sa.Column(sa.BigInteger, nullable=False))
    total_amount: int = Field(sa_column=sa.Column(sa.BigInteger, nullable=False))
    notes: str | None = Field(default=None, max_length=500)
