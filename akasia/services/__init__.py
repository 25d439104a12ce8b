"""Services module - core business logic."""

from akasia.services.calendar_service import MonthWindow, current_hijri_month, resolve_month_window
from akasia.services.ledger_service import LedgerService
from akasia.services.report_service import ReportService
from akasia.services.spending_service import SpendingService
from akasia.services.wallet_service import WalletService

__all__ = [
    "MonthWindow",
    "resolve_month_window",
    "current_hijri_month",
    "LedgerService",
    "SpendingService",
    "WalletService",
    "ReportService",
]
