"""Spending Service - Business logic for spending tasks.

A task moves through funding, receipts and settlement. Its money summary
and lifecycle status are derived from the funding, receipt and settlement
rows on every read or mutation; the stored status is only a cache.

Status rule (first match wins, after every mutation):
1. No funding -> DRAFT
2. No receipt total -> FUNDED
3. refund due -> NEEDS_REFUND
4. reimburse due -> NEEDS_REIMBURSE
5. otherwise -> SETTLED
A DONE settlement locks the task and forces SETTLED.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from sqlalchemy import delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from akasia.core.config import get_settings
from akasia.core.results import ErrorCode, ServiceResult, persistence_guard, validate_payload
from akasia.models.spending import (
    Cashback,
    Receipt,
    ReceiptAttachment,
    ReceiptItem,
    SettlementStatus,
    SettlementType,
    SpendingTask,
    SpendingTaskStatus,
    TaskFunding,
    TaskSettlement,
)
from akasia.models.wallet import WalletEntry, WalletEntrySource, WalletEntryType
from akasia.schemas.spending import (
    AttachmentResponse,
    CashbackCreate,
    CashbackResponse,
    FundingCreate,
    FundingResponse,
    ReceiptCreate,
    ReceiptItemResponse,
    ReceiptResponse,
    SettlementResponse,
    TaskCreate,
    TaskDetail,
    TaskResponse,
    TaskSummary,
    TaskUpdate,
    TaskWithSummary,
)
from akasia.services.wallet_service import WalletService
from akasia.utils.helpers import utcnow
from akasia.utils.pagination import PaginatedResult, PaginationParams, paginate_query

logger = logging.getLogger(__name__)

TASK_NOT_FOUND = "Spending task not found"
RECEIPT_NOT_FOUND = "Receipt not found"
TASK_LOCKED_MESSAGE = "Spending task is locked by a completed settlement"


# =============================================================================
# Pure derivations
# =============================================================================


def calculate_summary(
    funding_amount: int | None,
    receipt_totals: Iterable[int],
    settlement_statuses: Iterable[SettlementStatus],
) -> TaskSummary:
    """Derive the money summary of a task."""
    budget = funding_amount or 0
    total_receipts = sum(receipt_totals)
    diff = budget - total_receipts
    return TaskSummary(
        budget=budget,
        total_receipts=total_receipts,
        diff=diff,
        refund_due=max(diff, 0),
        reimburse_due=max(-diff, 0),
        is_locked=any(status == SettlementStatus.DONE for status in settlement_statuses),
    )


def derive_status(has_funding: bool, summary: TaskSummary) -> SpendingTaskStatus:
    """Lifecycle status as a pure function of the summary.

    SPENDING is never produced.
    """
    if summary.is_locked:
        return SpendingTaskStatus.SETTLED
    if not has_funding:
        return SpendingTaskStatus.DRAFT
    if summary.total_receipts == 0:
        return SpendingTaskStatus.FUNDED
    if summary.refund_due > 0:
        return SpendingTaskStatus.NEEDS_REFUND
    if summary.reimburse_due > 0:
        return SpendingTaskStatus.NEEDS_REIMBURSE
    return SpendingTaskStatus.SETTLED


class SpendingService:
    """Service for spending task business logic."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # =========================================================================
    # Loaders
    # =========================================================================

    async def _get_funding(self, task_id: int) -> TaskFunding | None:
        result = await self.db.execute(select(TaskFunding).where(TaskFunding.task_id == task_id))
        return result.scalars().first()

    async def _get_receipts(self, task_id: int) -> list[Receipt]:
        result = await self.db.execute(
            select(Receipt)
            .where(Receipt.task_id == task_id)
            .order_by(Receipt.created_at.desc(), Receipt.id.desc())
        )
        return list(result.scalars().all())

    async def _get_settlements(self, task_id: int) -> list[TaskSettlement]:
        result = await self.db.execute(
            select(TaskSettlement)
            .where(TaskSettlement.task_id == task_id)
            .order_by(TaskSettlement.type)
        )
        return list(result.scalars().all())

    async def _summarize(self, task_id: int) -> tuple[TaskFunding | None, TaskSummary]:
        funding = await self._get_funding(task_id)
        receipts = await self._get_receipts(task_id)
        settlements = await self._get_settlements(task_id)
        summary = calculate_summary(
            funding.amount if funding else None,
            (receipt.total_amount for receipt in receipts),
            (settlement.status for settlement in settlements),
        )
        return funding, summary

    # =========================================================================
    # Recompute
    # =========================================================================

    async def _upsert_settlement(
        self,
        task_id: int,
        settlement_type: SettlementType,
        amount: int,
        status: SettlementStatus,
        notes: str | None = None,
    ) -> TaskSettlement:
        """Insert or update the (task, type) settlement. Flushes, does not commit."""
        result = await self.db.execute(
            select(TaskSettlement).where(
                TaskSettlement.task_id == task_id, TaskSettlement.type == settlement_type
            )
        )
        settlement = result.scalars().first()
        if settlement is None:
            settlement = TaskSettlement(task_id=task_id, type=settlement_type, amount=amount)

        settlement.amount = amount
        settlement.status = status
        settlement.updated_at = utcnow()
        if status == SettlementStatus.DONE:
            settlement.done_at = utcnow()
            settlement.notes = notes
        else:
            settlement.done_at = None

        self.db.add(settlement)
        await self.db.flush()
        return settlement

    async def _sync_pending(
        self,
        task_id: int,
        settlement_type: SettlementType,
        due: int,
        existing: TaskSettlement | None,
    ) -> None:
        if due > 0:
            await self._upsert_settlement(task_id, settlement_type, due, SettlementStatus.PENDING)
        elif existing is not None and existing.status == SettlementStatus.PENDING:
            await self.db.delete(existing)
            await self.db.flush()

    async def _recompute(self, task: SpendingTask) -> TaskSummary:
        """Recompute summary and status, sync pending settlements. Does not commit."""
        funding, summary = await self._summarize(task.id)

        if not summary.is_locked and funding is not None:
            by_type = {s.type: s for s in await self._get_settlements(task.id)}
            await self._sync_pending(
                task.id, SettlementType.REFUND, summary.refund_due, by_type.get(SettlementType.REFUND)
            )
            await self._sync_pending(
                task.id,
                SettlementType.REIMBURSE,
                summary.reimburse_due,
                by_type.get(SettlementType.REIMBURSE),
            )

        next_status = derive_status(funding is not None, summary)
        if task.status != next_status:
            logger.info(f"Task {task.id} status {task.status.value} -> {next_status.value}")
            task.status = next_status
            task.updated_at = utcnow()
            self.db.add(task)
            await self.db.flush()
        return summary

    @persistence_guard
    async def recompute_task(self, task_id: int) -> ServiceResult[TaskSummary]:
        """Recompute and persist a task's status. Safe to run at any time."""
        task = await self.db.get(SpendingTask, task_id)
        if task is None:
            return ServiceResult.fail(ErrorCode.NOT_FOUND, TASK_NOT_FOUND)
        summary = await self._recompute(task)
        await self.db.commit()
        return ServiceResult.ok(summary)

    # =========================================================================
    # Tasks
    # =========================================================================

    @persistence_guard
    async def create_task(
        self, data: TaskCreate | Mapping[str, Any], created_by: str
    ) -> ServiceResult[SpendingTask]:
        """Create a DRAFT task."""
        validated = validate_payload(TaskCreate, data)
        if not validated.success:
            return ServiceResult.from_error(validated.error)
        payload = validated.unwrap()

        task = SpendingTask(
            title=payload.title,
            description=payload.description,
            created_by=created_by,
        )
        self.db.add(task)
        await self.db.commit()
        await self.db.refresh(task)
        logger.info(f"Spending task {task.id} created by {created_by}: {task.title}")
        return ServiceResult.ok(task)

    @persistence_guard
    async def update_task(
        self, task_id: int, data: TaskUpdate | Mapping[str, Any]
    ) -> ServiceResult[SpendingTask]:
        """Update title and description of an unlocked task."""
        task = await self.db.get(SpendingTask, task_id)
        if task is None:
            return ServiceResult.fail(ErrorCode.NOT_FOUND, TASK_NOT_FOUND)
        _, summary = await self._summarize(task_id)
        if summary.is_locked:
            return ServiceResult.fail(ErrorCode.TASK_LOCKED, TASK_LOCKED_MESSAGE)

        validated = validate_payload(TaskUpdate, data)
        if not validated.success:
            return ServiceResult.from_error(validated.error)
        payload = validated.unwrap()

        task.title = payload.title
        task.description = payload.description
        task.updated_at = utcnow()
        self.db.add(task)
        await self.db.commit()
        return ServiceResult.ok(task)

    @persistence_guard
    async def get_task_summary(self, task_id: int) -> ServiceResult[TaskSummary]:
        """Summary recomputed from the current records."""
        task = await self.db.get(SpendingTask, task_id)
        if task is None:
            return ServiceResult.fail(ErrorCode.NOT_FOUND, TASK_NOT_FOUND)
        _, summary = await self._summarize(task_id)
        return ServiceResult.ok(summary)

    @persistence_guard
    async def list_tasks(
        self,
        status: SpendingTaskStatus | None = None,
        params: PaginationParams | None = None,
    ) -> ServiceResult[PaginatedResult[TaskWithSummary]]:
        """Tasks newest first, each with a freshly derived summary.

        The status filter applies to the stored (cached) status.
        """
        params = params or PaginationParams(page=1, page_size=get_settings().ledger_list_limit)
        query = select(SpendingTask)
        if status is not None:
            query = query.where(SpendingTask.status == status)
        query = query.order_by(SpendingTask.created_at.desc(), SpendingTask.id.desc())

        page: PaginatedResult[SpendingTask] = await paginate_query(self.db, query, params)
        summaries = await self._summaries_for([task.id for task in page.items])
        return ServiceResult.ok(
            page.map(
                lambda task: TaskWithSummary(
                    task=TaskResponse.model_validate(task), summary=summaries[task.id]
                )
            )
        )

    async def _summaries_for(self, task_ids: list[int]) -> dict[int, TaskSummary]:
        """Summaries of many tasks with one query per record type."""
        if not task_ids:
            return {}

        fundings = await self.db.execute(
            select(TaskFunding.task_id, TaskFunding.amount).where(TaskFunding.task_id.in_(task_ids))
        )
        budget_by_task = {task_id: amount for task_id, amount in fundings.all()}

        receipts = await self.db.execute(
            select(Receipt.task_id, func.coalesce(func.sum(Receipt.total_amount), 0))
            .where(Receipt.task_id.in_(task_ids))
            .group_by(Receipt.task_id)
        )
        receipts_by_task = {task_id: int(total) for task_id, total in receipts.all()}

        settlements = await self.db.execute(
            select(TaskSettlement.task_id, TaskSettlement.status).where(
                TaskSettlement.task_id.in_(task_ids)
            )
        )
        statuses_by_task: dict[int, list[SettlementStatus]] = {}
        for task_id, settlement_status in settlements.all():
            statuses_by_task.setdefault(task_id, []).append(SettlementStatus(settlement_status))

        return {
            task_id: calculate_summary(
                budget_by_task.get(task_id),
                [receipts_by_task.get(task_id, 0)],
                statuses_by_task.get(task_id, []),
            )
            for task_id in task_ids
        }

    @persistence_guard
    async def get_task_detail(self, task_id: int) -> ServiceResult[TaskDetail]:
        """Task with funding, receipts (items, attachments, cashbacks) and settlements."""
        task = await self.db.get(SpendingTask, task_id)
        if task is None:
            return ServiceResult.fail(ErrorCode.NOT_FOUND, TASK_NOT_FOUND)

        funding, summary = await self._summarize(task_id)
        receipts = await self._get_receipts(task_id)
        settlements = await self._get_settlements(task_id)

        return ServiceResult.ok(
            TaskDetail(
                task=TaskResponse.model_validate(task),
                summary=summary,
                funding=FundingResponse.model_validate(funding) if funding else None,
                receipts=await self._receipt_responses(receipts),
                settlements=[SettlementResponse.model_validate(s) for s in settlements],
            )
        )

    async def _receipt_responses(self, receipts: list[Receipt]) -> list[ReceiptResponse]:
        receipt_ids = [receipt.id for receipt in receipts]
        if not receipt_ids:
            return []

        items = await self.db.execute(
            select(ReceiptItem).where(ReceiptItem.receipt_id.in_(receipt_ids)).order_by(ReceiptItem.id)
        )
        attachments = await self.db.execute(
            select(ReceiptAttachment)
            .where(ReceiptAttachment.receipt_id.in_(receipt_ids))
            .order_by(ReceiptAttachment.id)
        )
        cashbacks = await self.db.execute(
            select(Cashback)
            .where(Cashback.receipt_id.in_(receipt_ids))
            .order_by(Cashback.occurred_at.desc(), Cashback.id.desc())
        )

        items_by_receipt: dict[int, list[ReceiptItemResponse]] = {}
        for item in items.scalars().all():
            items_by_receipt.setdefault(item.receipt_id, []).append(
                ReceiptItemResponse.model_validate(item)
            )
        attachments_by_receipt: dict[int, list[AttachmentResponse]] = {}
        for attachment in attachments.scalars().all():
            attachments_by_receipt.setdefault(attachment.receipt_id, []).append(
                AttachmentResponse.model_validate(attachment)
            )
        cashbacks_by_receipt: dict[int, list[CashbackResponse]] = {}
        for cashback in cashbacks.scalars().all():
            cashbacks_by_receipt.setdefault(cashback.receipt_id, []).append(
                CashbackResponse.model_validate(cashback)
            )

        return [
            ReceiptResponse(
                id=receipt.id,
                task_id=receipt.task_id,
                vendor=receipt.vendor,
                receipt_no=receipt.receipt_no,
                receipt_date=receipt.receipt_date,
                notes=receipt.notes,
                total_amount=receipt.total_amount,
                created_at=receipt.created_at,
                items=items_by_receipt.get(receipt.id, []),
                attachments=attachments_by_receipt.get(receipt.id, []),
                cashbacks=cashbacks_by_receipt.get(receipt.id, []),
            )
            for receipt in receipts
        ]

    # =========================================================================
    # Funding
    # =========================================================================

    @persistence_guard
    async def create_funding(
        self, task_id: int, data: FundingCreate | Mapping[str, Any]
    ) -> ServiceResult[TaskFunding]:
        """Create the task's funding. Funding is create-once."""
        task = await self.db.get(SpendingTask, task_id)
        if task is None:
            return ServiceResult.fail(ErrorCode.NOT_FOUND, TASK_NOT_FOUND)
        existing, summary = await self._summarize(task_id)
        if summary.is_locked:
            return ServiceResult.fail(ErrorCode.TASK_LOCKED, TASK_LOCKED_MESSAGE)
        if existing is not None:
            return ServiceResult.fail(
                ErrorCode.FUNDING_ALREADY_EXISTS, "Funding already exists for this task"
            )

        validated = validate_payload(FundingCreate, data)
        if not validated.success:
            return ServiceResult.from_error(validated.error)
        payload = validated.unwrap()

        funding = TaskFunding(
            task_id=task_id,
            amount=payload.amount,
            received_at=payload.received_at or utcnow(),
            source=payload.source or get_settings().default_funding_source,
            notes=payload.notes,
        )
        self.db.add(funding)
        await self.db.flush()
        await self._recompute(task)
        await self.db.commit()
        logger.info(f"Task {task_id} funded: {funding.amount} from {funding.source}")
        return ServiceResult.ok(funding)

    @persistence_guard
    async def update_funding(
        self, task_id: int, data: FundingCreate | Mapping[str, Any]
    ) -> ServiceResult[TaskFunding]:
        """Update the task's funding in place."""
        task = await self.db.get(SpendingTask, task_id)
        if task is None:
            return ServiceResult.fail(ErrorCode.NOT_FOUND, TASK_NOT_FOUND)
        funding, summary = await self._summarize(task_id)
        if summary.is_locked:
            return ServiceResult.fail(ErrorCode.TASK_LOCKED, TASK_LOCKED_MESSAGE)

        validated = validate_payload(FundingCreate, data)
        if not validated.success:
            return ServiceResult.from_error(validated.error)
        payload = validated.unwrap()

        if funding is None:
            return ServiceResult.fail(ErrorCode.NOT_FOUND, "Task has no funding yet", field="funding")

        funding.amount = payload.amount
        funding.received_at = payload.received_at or utcnow()
        funding.source = payload.source or get_settings().default_funding_source
        funding.notes = payload.notes
        funding.updated_at = utcnow()
        self.db.add(funding)
        await self.db.flush()
        await self._recompute(task)
        await self.db.commit()
        logger.info(f"Task {task_id} funding updated: {funding.amount}")
        return ServiceResult.ok(funding)

    # =========================================================================
    # Receipts
    # =========================================================================

    @persistence_guard
    async def create_receipt(
        self, task_id: int, data: ReceiptCreate | Mapping[str, Any]
    ) -> ServiceResult[ReceiptResponse]:
        """Add a receipt with items and attachment URLs.

        The declared total must equal the exact sum of quantity x unit price.
        """
        task = await self.db.get(SpendingTask, task_id)
        if task is None:
            return ServiceResult.fail(ErrorCode.NOT_FOUND, TASK_NOT_FOUND)
        _, summary = await self._summarize(task_id)
        if summary.is_locked:
            return ServiceResult.fail(ErrorCode.TASK_LOCKED, TASK_LOCKED_MESSAGE)
        if summary.budget <= 0:
            return ServiceResult.fail(
                ErrorCode.VALIDATION_FAILED, "Funding is required before adding receipts", field="funding"
            )

        validated = validate_payload(ReceiptCreate, data)
        if not validated.success:
            return ServiceResult.from_error(validated.error)
        payload = validated.unwrap()

        items_total = sum(item.quantity * item.unit_price for item in payload.items)
        if items_total != payload.total_amount:
            return ServiceResult.fail(
                ErrorCode.RECEIPT_TOTAL_MISMATCH,
                f"Receipt total must equal the sum of its items ({items_total})",
                field="total_amount",
            )

        receipt = Receipt(
            task_id=task_id,
            vendor=payload.vendor,
            receipt_no=payload.receipt_no,
            receipt_date=payload.receipt_date,
            notes=payload.notes,
            total_amount=payload.total_amount,
        )
        self.db.add(receipt)
        await self.db.flush()

        for item in payload.items:
            self.db.add(
                ReceiptItem(
                    receipt_id=receipt.id,
                    description=item.description,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    total=item.quantity * item.unit_price,
                )
            )
        for attachment in payload.attachments:
            self.db.add(ReceiptAttachment(receipt_id=receipt.id, **attachment.model_dump()))
        await self.db.flush()

        await self._recompute(task)
        await self.db.commit()
        logger.info(f"Receipt {receipt.id} added to task {task_id}: {receipt.total_amount}")
        responses = await self._receipt_responses([receipt])
        return ServiceResult.ok(responses[0])

    @persistence_guard
    async def delete_receipt(
        self, receipt_id: int, deleted_by: str | None = None
    ) -> ServiceResult[TaskSummary]:
        """Delete a receipt and its children, then recompute the task.

        Each cashback of the receipt is offset by a wallet DEBIT
        (CASHBACK_REVERSAL); existing wallet entries are never edited.
        """
        receipt = await self.db.get(Receipt, receipt_id)
        if receipt is None:
            return ServiceResult.fail(ErrorCode.NOT_FOUND, RECEIPT_NOT_FOUND)
        task = await self.db.get(SpendingTask, receipt.task_id)
        if task is None:
            return ServiceResult.fail(ErrorCode.NOT_FOUND, TASK_NOT_FOUND)
        _, summary = await self._summarize(task.id)
        if summary.is_locked:
            return ServiceResult.fail(ErrorCode.TASK_LOCKED, TASK_LOCKED_MESSAGE)

        cashbacks = await self.db.execute(select(Cashback).where(Cashback.receipt_id == receipt_id))
        wallet = WalletService(self.db)
        for cashback in cashbacks.scalars().all():
            await wallet.add_entry(
                WalletEntryType.DEBIT,
                WalletEntrySource.CASHBACK_REVERSAL,
                cashback.amount,
                deleted_by or cashback.created_by,
                description=f"Cashback reversal - receipt {receipt_id} deleted",
                task_id=task.id,
                cashback_id=cashback.id,
            )

        await self.db.execute(delete(Cashback).where(Cashback.receipt_id == receipt_id))
        await self.db.execute(delete(ReceiptItem).where(ReceiptItem.receipt_id == receipt_id))
        await self.db.execute(
            delete(ReceiptAttachment).where(ReceiptAttachment.receipt_id == receipt_id)
        )
        await self.db.delete(receipt)
        await self.db.flush()

        summary = await self._recompute(task)
        await self.db.commit()
        logger.info(f"Receipt {receipt_id} deleted from task {task.id}")
        return ServiceResult.ok(summary)

    # =========================================================================
    # Cashback
    # =========================================================================

    @persistence_guard
    async def create_cashback(
        self, receipt_id: int, data: CashbackCreate | Mapping[str, Any], created_by: str
    ) -> ServiceResult[tuple[Cashback, WalletEntry]]:
        """Record a cashback and its wallet CREDIT in one transaction."""
        validated = validate_payload(CashbackCreate, data)
        if not validated.success:
            return ServiceResult.from_error(validated.error)
        payload = validated.unwrap()

        receipt = await self.db.get(Receipt, receipt_id)
        if receipt is None:
            return ServiceResult.fail(ErrorCode.NOT_FOUND, RECEIPT_NOT_FOUND)
        _, summary = await self._summarize(receipt.task_id)
        if summary.is_locked:
            return ServiceResult.fail(ErrorCode.TASK_LOCKED, TASK_LOCKED_MESSAGE)

        occurred_at = payload.occurred_at or utcnow()
        cashback = Cashback(
            receipt_id=receipt_id,
            amount=payload.amount,
            vendor=payload.vendor or receipt.vendor,
            notes=payload.notes,
            occurred_at=occurred_at,
            created_by=created_by,
        )
        self.db.add(cashback)
        await self.db.flush()

        entry = await WalletService(self.db).add_entry(
            WalletEntryType.CREDIT,
            WalletEntrySource.CASHBACK,
            payload.amount,
            created_by,
            description=payload.vendor or receipt.vendor or payload.notes,
            occurred_at=occurred_at,
            task_id=receipt.task_id,
            cashback_id=cashback.id,
        )
        await self.db.commit()
        logger.info(
            f"Cashback {cashback.id} on receipt {receipt_id}: {cashback.amount} "
            f"(wallet entry {entry.id})"
        )
        return ServiceResult.ok((cashback, entry))

    # =========================================================================
    # Settlements
    # =========================================================================

    async def _mark_done(
        self, task_id: int, settlement_type: SettlementType, notes: str | None
    ) -> ServiceResult[TaskSettlement]:
        task = await self.db.get(SpendingTask, task_id)
        if task is None:
            return ServiceResult.fail(ErrorCode.NOT_FOUND, TASK_NOT_FOUND)

        _, summary = await self._summarize(task_id)
        if summary.is_locked:
            for settlement in await self._get_settlements(task_id):
                if settlement.type == settlement_type and settlement.status == SettlementStatus.DONE:
                    return ServiceResult.ok(settlement)
            return ServiceResult.fail(ErrorCode.TASK_LOCKED, TASK_LOCKED_MESSAGE)

        due = summary.refund_due if settlement_type == SettlementType.REFUND else summary.reimburse_due
        if due <= 0:
            return ServiceResult.fail(
                ErrorCode.SETTLEMENT_NOT_REQUIRED,
                f"No {settlement_type.value.lower()} is due for this task",
            )

        settlement = await self._upsert_settlement(
            task_id, settlement_type, due, SettlementStatus.DONE, notes=notes
        )
        await self._recompute(task)
        await self.db.commit()
        logger.info(f"Task {task_id} {settlement_type.value} settled: {due}, task locked")
        return ServiceResult.ok(settlement)

    @persistence_guard
    async def mark_refund_done(
        self, task_id: int, notes: str | None = None
    ) -> ServiceResult[TaskSettlement]:
        """Freeze the current refund due as a DONE settlement and lock the task."""
        return await self._mark_done(task_id, SettlementType.REFUND, notes)

    @persistence_guard
    async def mark_reimburse_done(
        self, task_id: int, notes: str | None = None
    ) -> ServiceResult[TaskSettlement]:
        """Freeze the current reimburse due as a DONE settlement and lock the task."""
        return await self._mark_done(task_id, SettlementType.REIMBURSE, notes)
