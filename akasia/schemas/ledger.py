"""Ledger schemas - Request/Response DTOs for ledger entries."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from akasia.models.ledger import LedgerEntryKind

# =============================================================================
# Ledger Entry Schemas
# =============================================================================


class LedgerEntryResponse(BaseModel):
    """Ledger entry response."""

    id: int
    kind: LedgerEntryKind
    amount: int
    description: str
    notes: str | None = None
    receipt_url: str | None = None

    occurred_at: datetime
    balance_before: int
    balance_after: int

    owner_user_id: str
    created_at: datetime
    deleted_at: datetime | None = None

    class Config:
        from_attributes = True


class LedgerEntryListResponse(BaseModel):
    """Ledger entry list response."""

    items: list[LedgerEntryResponse]
    total: int


class AppendEntryRequest(BaseModel):
    """Raw ledger append request."""

    kind: LedgerEntryKind
    amount: int = Field(gt=0, description="Positive amount in the smallest currency unit")
    occurred_at: datetime
    description: str = Field(min_length=1, max_length=255)


class IncomeCreate(BaseModel):
    """Request to record an income."""

    source: str = Field(min_length=1, max_length=255, description="Income source")
    amount: int = Field(gt=0, description="Amount must be a positive number")
    occurred_at: datetime
    notes: str | None = Field(default=None, max_length=500)


class ExpenseItemCreate(BaseModel):
    """Expense line item."""

    description: str = Field(min_length=1, max_length=255)
    quantity: int = Field(gt=0)
    unit_price: int = Field(gt=0)
    vehicle_id: int | None = None


class ExpenseCreate(BaseModel):
    """Request to record an expense with line items."""

    description: str = Field(min_length=1, max_length=255)
    items: list[ExpenseItemCreate] = Field(min_length=1, description="At least one item")
    occurred_at: datetime
    notes: str | None = Field(default=None, max_length=500)
    receipt_url: str | None = Field(default=None, max_length=512)


class FuelPurchaseCreate(BaseModel):
    """Request to record a fuel purchase."""

    vehicle_id: int
    liter_amount: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    price_per_liter: int = Field(gt=0)
    occurred_at: datetime
    notes: str | None = Field(default=None, max_length=500)


class LedgerQueryParams(BaseModel):
    """Query parameters for ledger listing."""

    kinds: list[LedgerEntryKind] | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    limit: int | None = Field(default=None, ge=1, le=500)


# =============================================================================
# Balance / Totals Schemas
# =============================================================================


class BalanceResponse(BaseModel):
    """Current balance."""

    balance: int
    include_fuel: bool = False


class MonthlyTotals(BaseModel):
    """INCOME/EXPENSE totals of a window plus opening/closing balance."""

    total_income: int
    total_expense: int
    opening_balance: int
    closing_balance: int


class RecomputeSummary(BaseModel):
    """Outcome of a full balance recompute pass."""

    entries: int
    updated: int
    final_balance: int


class ConsistencyReport(BaseModel):
    """Stored vs recomputed running balance."""

    entries: int
    last_stored_balance: int | None = None
    calculated_balance: int
    drifted: int = 0
    is_consistent: bool


# =============================================================================
# Vehicle Schemas
# =============================================================================


class VehicleCreate(BaseModel):
    """Request to register a vehicle."""

    name: str = Field(min_length=1, max_length=100)
    license_plate: str = Field(min_length=1, max_length=20)


class VehicleResponse(BaseModel):
    """Vehicle response."""

    id: int
    name: str
    license_plate: str
    created_at: datetime

    class Config:
        from_attributes = True
