"""Report Service - Period reports over the ledger and spending tasks.

Reports only read. Each part is queried independently and merged; nothing
is trusted from cached status fields when a value can be recomputed.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from akasia.core.config import get_settings
from akasia.core.results import ErrorCode, ServiceResult, persistence_guard
from akasia.models.spending import (
    Receipt,
    SettlementType,
    SpendingTask,
    TaskFunding,
    TaskSettlement,
)
from akasia.schemas.ledger import LedgerEntryResponse
from akasia.schemas.report import (
    MonthlyLedgerReport,
    ReportFunding,
    ReportPeriod,
    ReportSettlement,
    SpendingReport,
    SpendingReportTask,
    SpendingReportTotals,
    UnfundedTask,
    WindowResponse,
)
from akasia.services.calendar_service import (
    gregorian_month_window,
    next_day_start,
    resolve_month_window,
)
from akasia.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)


class ReportService:
    """Service for report generation."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.ledger = LedgerService(db)

    @persistence_guard
    async def monthly_ledger_report(
        self, hijri_year: int, hijri_month: int
    ) -> ServiceResult[MonthlyLedgerReport]:
        """Opening/closing balance, INCOME/EXPENSE totals and fuel per vehicle.

        A failed Hijri conversion still produces a report for the current
        Gregorian month; ``window.used_fallback`` tells the caller.
        """
        window = resolve_month_window(hijri_year, hijri_month)

        results = (
            await self.ledger.monthly_totals(window),
            await self.ledger.fuel_purchase_total(window),
            await self.ledger.fuel_by_vehicle(window),
            await self.ledger.list_entries(window=window, ascending=True),
        )
        for result in results:
            if not result.success:
                return ServiceResult.from_error(result.error)
        totals, fuel_total, fuel_by_vehicle, entries = (result.unwrap() for result in results)

        return ServiceResult.ok(
            MonthlyLedgerReport(
                window=WindowResponse(
                    hijri_year=window.hijri_year,
                    hijri_month=window.hijri_month,
                    label=window.label,
                    start=window.start,
                    end=window.end,
                    used_fallback=window.used_fallback,
                ),
                opening_balance=totals.opening_balance,
                total_income=totals.total_income,
                total_expense=totals.total_expense,
                closing_balance=totals.closing_balance,
                total_fuel=fuel_total,
                fuel_by_vehicle=fuel_by_vehicle,
                entries=[LedgerEntryResponse.model_validate(entry) for entry in entries],
            )
        )

    @persistence_guard
    async def spending_report(self, year: int, month: int) -> ServiceResult[SpendingReport]:
        """Tasks funded in a Gregorian month, plus tasks created in it without funding.

        The two lists may overlap in time but not in tasks: a task is either
        funded or unfunded.
        """
        settings = get_settings()
        if not 1 <= month <= 12:
            return ServiceResult.fail(ErrorCode.VALIDATION_FAILED, "Invalid month", field="month")
        if not settings.calendar_min_year <= year <= settings.calendar_max_year:
            return ServiceResult.fail(ErrorCode.VALIDATION_FAILED, "Invalid year", field="year")

        start, end = gregorian_month_window(year, month)
        until = next_day_start(end)

        funded = await self.db.execute(
            select(SpendingTask, TaskFunding)
            .join(TaskFunding, TaskFunding.task_id == SpendingTask.id)
            .where(TaskFunding.received_at >= start, TaskFunding.received_at < until)
            .order_by(TaskFunding.received_at.desc(), SpendingTask.id.desc())
        )
        rows = funded.all()
        task_ids = [task.id for task, _ in rows]

        receipts_by_task: dict[int, int] = {}
        settlements_by_task: dict[int, dict[SettlementType, TaskSettlement]] = {}
        if task_ids:
            receipts = await self.db.execute(
                select(Receipt.task_id, Receipt.total_amount).where(Receipt.task_id.in_(task_ids))
            )
            for task_id, total_amount in receipts.all():
                receipts_by_task[task_id] = receipts_by_task.get(task_id, 0) + total_amount

            settlements = await self.db.execute(
                select(TaskSettlement).where(TaskSettlement.task_id.in_(task_ids))
            )
            for settlement in settlements.scalars().all():
                settlements_by_task.setdefault(settlement.task_id, {})[settlement.type] = settlement

        totals = SpendingReportTotals()
        tasks: list[SpendingReportTask] = []
        for task, funding in rows:
            receipts_total = receipts_by_task.get(task.id, 0)
            diff = funding.amount - receipts_total
            by_type = settlements_by_task.get(task.id, {})
            report_task = SpendingReportTask(
                id=task.id,
                title=task.title,
                created_at=task.created_at,
                created_by=task.created_by,
                status=task.status,
                funding=ReportFunding(
                    amount=funding.amount,
                    received_at=funding.received_at,
                    source=funding.source,
                    notes=funding.notes,
                ),
                receipts_total=receipts_total,
                diff=diff,
                refund_due=max(diff, 0),
                reimburse_due=max(-diff, 0),
                refund_settlement=_settlement_view(by_type.get(SettlementType.REFUND)),
                reimburse_settlement=_settlement_view(by_type.get(SettlementType.REIMBURSE)),
            )
            tasks.append(report_task)

            totals.total_funding += funding.amount
            totals.total_receipts += receipts_total
            totals.total_refund_due += report_task.refund_due
            totals.total_reimburse_due += report_task.reimburse_due
            if receipts_total == 0:
                totals.tasks_without_receipts += 1

        unfunded = await self.db.execute(
            select(SpendingTask)
            .outerjoin(TaskFunding, TaskFunding.task_id == SpendingTask.id)
            .where(
                TaskFunding.id.is_(None),
                SpendingTask.created_at >= start,
                SpendingTask.created_at < until,
            )
            .order_by(SpendingTask.created_at.desc(), SpendingTask.id.desc())
        )
        unfunded_tasks = [
            UnfundedTask(
                id=task.id,
                title=task.title,
                created_at=task.created_at,
                created_by=task.created_by,
            )
            for task in unfunded.scalars().all()
        ]

        totals.task_count = len(tasks)
        totals.unfunded_count = len(unfunded_tasks)
        logger.info(
            f"Spending report {year:04d}-{month:02d}: {totals.task_count} funded, "
            f"{totals.unfunded_count} unfunded"
        )
        return ServiceResult.ok(
            SpendingReport(
                period=ReportPeriod(year=year, month=month, start=start, end=end),
                totals=totals,
                tasks=tasks,
                unfunded_tasks=unfunded_tasks,
            )
        )


def _settlement_view(settlement: TaskSettlement | None) -> ReportSettlement | None:
    if settlement is None:
        return None
    return ReportSettlement(
        status=settlement.status, amount=settlement.amount, done_at=settlement.done_at
    )
