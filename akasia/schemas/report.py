"""Report schemas - Response DTOs for period reports."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from akasia.models.spending import SettlementStatus, SpendingTaskStatus
from akasia.schemas.ledger import LedgerEntryResponse

# =============================================================================
# Monthly Ledger Report
# =============================================================================


class WindowResponse(BaseModel):
    """Resolved reporting window."""

    hijri_year: int
    hijri_month: int
    label: str
    start: datetime
    end: datetime
    used_fallback: bool


class VehicleFuelBreakdown(BaseModel):
    """Fuel purchases of one vehicle inside a window."""

    vehicle_id: int
    vehicle_name: str
    license_plate: str
    purchase_count: int
    total_liters: Decimal
    total_amount: int


class MonthlyLedgerReport(BaseModel):
    """Monthly ledger report for a Hijri month."""

    window: WindowResponse
    opening_balance: int
    total_income: int
    total_expense: int
    closing_balance: int
    total_fuel: int
    fuel_by_vehicle: list[VehicleFuelBreakdown]
    entries: list[LedgerEntryResponse]


# =============================================================================
# Spending Report
# =============================================================================


class ReportPeriod(BaseModel):
    year: int
    month: int
    start: datetime
    end: datetime


class ReportFunding(BaseModel):
    amount: int
    received_at: datetime
    source: str
    notes: str | None = None


class ReportSettlement(BaseModel):
    status: SettlementStatus
    amount: int
    done_at: datetime | None = None


class SpendingReportTask(BaseModel):
    """One funded task, with dues recomputed from its current receipts."""

    id: int
    title: str
    created_at: datetime
    created_by: str
    status: SpendingTaskStatus
    funding: ReportFunding | None = None
    receipts_total: int
    diff: int
    refund_due: int
    reimburse_due: int
    refund_settlement: ReportSettlement | None = None
    reimburse_settlement: ReportSettlement | None = None


class UnfundedTask(BaseModel):
    id: int
    title: str
    created_at: datetime
    created_by: str


class SpendingReportTotals(BaseModel):
    total_funding: int = 0
    total_receipts: int = 0
    total_refund_due: int = 0
    total_reimburse_due: int = 0
    tasks_without_receipts: int = 0
    task_count: int = 0
    unfunded_count: int = 0


class SpendingReport(BaseModel):
    """Spending report for a Gregorian month."""

    period: ReportPeriod
    totals: SpendingReportTotals
    tasks: list[SpendingReportTask]
    unfunded_tasks: list[UnfundedTask]
