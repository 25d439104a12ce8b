"""Reports API - Monthly ledger and spending reports."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from akasia.api.deps import ERROR_RESPONSES, unwrap_or_raise
from akasia.db.engine import get_db
from akasia.schemas.report import MonthlyLedgerReport, SpendingReport
from akasia.services.calendar_service import current_hijri_month
from akasia.services.report_service import ReportService

router = APIRouter(prefix="/reports", tags=["Reports"], responses=ERROR_RESPONSES)


def get_report_service(db=Depends(get_db)) -> ReportService:
    """Get report service instance."""
    return ReportService(db)


@router.get("/ledger", response_model=MonthlyLedgerReport)
async def monthly_ledger_report(
    service: Annotated[ReportService, Depends(get_report_service)],
    hijri_year: int | None = Query(None, description="Hijri year, defaults to current"),
    hijri_month: int | None = Query(None, description="Hijri month, defaults to current"),
) -> MonthlyLedgerReport:
    """Monthly ledger report for a Hijri month.

    An unconvertible month yields the current Gregorian month with
    ``window.used_fallback = true``.
    """
    if hijri_year is None or hijri_month is None:
        hijri_year, hijri_month = current_hijri_month()
    return unwrap_or_raise(await service.monthly_ledger_report(hijri_year, hijri_month))


@router.get("/spending", response_model=SpendingReport)
async def spending_report(
    service: Annotated[ReportService, Depends(get_report_service)],
    year: int = Query(..., description="Gregorian year"),
    month: int = Query(..., ge=1, le=12, description="Gregorian month"),
) -> SpendingReport:
    """Spending tasks funded in a Gregorian month and unfunded tasks created in it."""
    return unwrap_or_raise(await service.spending_report(year, month))
