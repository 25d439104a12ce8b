"""Tests for the spending task service."""

import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import select

from akasia.core.results import ErrorCode
from akasia.models.spending import (
    Cashback,
    Receipt,
    ReceiptAttachment,
    ReceiptItem,
    SettlementStatus,
    SettlementType,
    SpendingTaskStatus,
    TaskSettlement,
)
from akasia.models.wallet import WalletEntry, WalletEntrySource, WalletEntryType
from akasia.schemas.spending import TaskSummary
from akasia.services.spending_service import SpendingService, calculate_summary, derive_status
from akasia.services.wallet_service import WalletService
from akasia.utils.pagination import PaginationParams
from tests.conftest import USER_ID


def receipt_payload(total: int, vendor: str | None = "Toko Jaya", **extra) -> dict:
    """Single-item receipt whose declared total matches its item."""
    return {
        "vendor": vendor,
        "total_amount": total,
        "items": [{"description": "Supplies", "quantity": 1, "unit_price": total}],
        **extra,
    }


async def funded_task(service: SpendingService, budget: int = 1_000_000, title: str = "Workshop"):
    task = (await service.create_task({"title": title}, USER_ID)).unwrap()
    (await service.create_funding(task.id, {"amount": budget})).unwrap()
    return task


async def settlements_of(db_session, task_id: int) -> dict[SettlementType, TaskSettlement]:
    result = await db_session.execute(select(TaskSettlement).where(TaskSettlement.task_id == task_id))
    return {settlement.type: settlement for settlement in result.scalars().all()}


class TestDerivations:
    def test_summary_of_unfunded_task(self):
        summary = calculate_summary(None, [], [])

        assert summary == TaskSummary()

    def test_summary_dues_are_exclusive(self):
        for budget, receipts in [(1000, [400, 100]), (1000, [1200]), (1000, [1000]), (0, [])]:
            summary = calculate_summary(budget, receipts, [])
            assert summary.diff == budget - sum(receipts)
            assert min(summary.refund_due, summary.reimburse_due) == 0
            assert summary.refund_due - summary.reimburse_due == summary.diff

    def test_summary_locked_by_any_done_settlement(self):
        summary = calculate_summary(1000, [800], [SettlementStatus.PENDING, SettlementStatus.DONE])

        assert summary.is_locked

    @pytest.mark.parametrize(
        "has_funding,summary,expected",
        [
            (False, TaskSummary(), SpendingTaskStatus.DRAFT),
            (True, TaskSummary(budget=10, diff=10, refund_due=10), SpendingTaskStatus.FUNDED),
            (
                True,
                TaskSummary(budget=10, total_receipts=8, diff=2, refund_due=2),
                SpendingTaskStatus.NEEDS_REFUND,
            ),
            (
                True,
                TaskSummary(budget=10, total_receipts=12, diff=-2, reimburse_due=2),
                SpendingTaskStatus.NEEDS_REIMBURSE,
            ),
            (True, TaskSummary(budget=10, total_receipts=10), SpendingTaskStatus.SETTLED),
            (
                True,
                TaskSummary(budget=10, total_receipts=8, diff=2, refund_due=2, is_locked=True),
                SpendingTaskStatus.SETTLED,
            ),
        ],
    )
    def test_derive_status(self, has_funding, summary, expected):
        assert derive_status(has_funding, summary) == expected


class TestTaskLifecycle:
    @pytest.mark.asyncio
    async def test_underspend_then_refund_locks_task(self, db_session):
        service = SpendingService(db_session)
        task = (await service.create_task({"title": "Office supplies"}, USER_ID)).unwrap()
        assert task.status == SpendingTaskStatus.DRAFT

        (await service.create_funding(task.id, {"amount": 1_000_000})).unwrap()
        assert task.status == SpendingTaskStatus.FUNDED

        (await service.create_receipt(task.id, receipt_payload(800_000))).unwrap()
        summary = (await service.get_task_summary(task.id)).unwrap()
        assert task.status == SpendingTaskStatus.NEEDS_REFUND
        assert (summary.refund_due, summary.reimburse_due) == (200_000, 0)

        pending = await settlements_of(db_session, task.id)
        assert pending[SettlementType.REFUND].status == SettlementStatus.PENDING
        assert pending[SettlementType.REFUND].amount == 200_000

        settlement = (await service.mark_refund_done(task.id, notes="Returned in cash")).unwrap()
        summary = (await service.get_task_summary(task.id)).unwrap()

        assert settlement.status == SettlementStatus.DONE
        assert settlement.amount == 200_000
        assert settlement.done_at is not None
        assert settlement.notes == "Returned in cash"
        assert summary.is_locked
        assert task.status == SpendingTaskStatus.SETTLED

    @pytest.mark.asyncio
    async def test_overspend_then_reimburse(self, db_session):
        service = SpendingService(db_session)
        task = await funded_task(service)

        (await service.create_receipt(task.id, receipt_payload(1_200_000))).unwrap()
        assert task.status == SpendingTaskStatus.NEEDS_REIMBURSE
        summary = (await service.get_task_summary(task.id)).unwrap()
        assert (summary.refund_due, summary.reimburse_due) == (0, 200_000)

        settlement = (await service.mark_reimburse_done(task.id)).unwrap()

        assert settlement.type == SettlementType.REIMBURSE
        assert settlement.amount == 200_000
        assert task.status == SpendingTaskStatus.SETTLED

    @pytest.mark.asyncio
    async def test_exact_spend_settles_without_lock(self, db_session):
        service = SpendingService(db_session)
        task = await funded_task(service)

        (await service.create_receipt(task.id, receipt_payload(1_000_000))).unwrap()
        summary = (await service.get_task_summary(task.id)).unwrap()

        assert task.status == SpendingTaskStatus.SETTLED
        assert not summary.is_locked
        assert await settlements_of(db_session, task.id) == {}

        refund = await service.mark_refund_done(task.id)
        reimburse = await service.mark_reimburse_done(task.id)
        assert refund.error.code == ErrorCode.SETTLEMENT_NOT_REQUIRED
        assert reimburse.error.code == ErrorCode.SETTLEMENT_NOT_REQUIRED

        # Still open: another receipt is accepted
        assert (await service.create_receipt(task.id, receipt_payload(5_000))).success
        assert task.status == SpendingTaskStatus.NEEDS_REIMBURSE

    @pytest.mark.asyncio
    async def test_pending_settlement_follows_the_due(self, db_session):
        service = SpendingService(db_session)
        task = await funded_task(service, budget=1_000)

        await service.create_receipt(task.id, receipt_payload(1_200))
        assert set(await settlements_of(db_session, task.id)) == {SettlementType.REIMBURSE}

        (await service.update_funding(task.id, {"amount": 1_500})).unwrap()
        pending = await settlements_of(db_session, task.id)
        assert set(pending) == {SettlementType.REFUND}
        assert pending[SettlementType.REFUND].amount == 300
        assert task.status == SpendingTaskStatus.NEEDS_REFUND

        await service.create_receipt(task.id, receipt_payload(300))
        assert await settlements_of(db_session, task.id) == {}
        assert task.status == SpendingTaskStatus.SETTLED

    @pytest.mark.asyncio
    async def test_recompute_repairs_cached_status(self, db_session):
        service = SpendingService(db_session)
        task = await funded_task(service)
        task.status = SpendingTaskStatus.DRAFT
        db_session.add(task)
        await db_session.commit()

        summary = (await service.recompute_task(task.id)).unwrap()

        assert summary.budget == 1_000_000
        assert task.status == SpendingTaskStatus.FUNDED


class TestTasks:
    @pytest.mark.asyncio
    async def test_title_too_short(self, db_session):
        result = await SpendingService(db_session).create_task({"title": "ab"}, USER_ID)

        assert result.error.code == ErrorCode.VALIDATION_FAILED
        assert result.error.field == "title"

    @pytest.mark.asyncio
    async def test_update_task(self, db_session):
        service = SpendingService(db_session)
        task = (await service.create_task({"title": "Original"}, USER_ID)).unwrap()

        updated = (
            await service.update_task(task.id, {"title": "Renamed", "description": "Now with details"})
        ).unwrap()

        assert updated.title == "Renamed"
        assert updated.description == "Now with details"

    @pytest.mark.asyncio
    async def test_unknown_task(self, db_session):
        service = SpendingService(db_session)

        assert (await service.get_task_summary(404)).error.code == ErrorCode.NOT_FOUND
        assert (await service.get_task_detail(404)).error.code == ErrorCode.NOT_FOUND
        assert (await service.create_funding(404, {"amount": 1})).error.code == ErrorCode.NOT_FOUND
        assert (await service.mark_refund_done(404)).error.code == ErrorCode.NOT_FOUND

    @pytest.mark.asyncio
    async def test_list_tasks_filters_by_status(self, db_session):
        service = SpendingService(db_session)
        draft = (await service.create_task({"title": "Draft task"}, USER_ID)).unwrap()
        funded = await funded_task(service, budget=500, title="Funded task")

        everything = (await service.list_tasks()).unwrap()
        only_funded = (await service.list_tasks(status=SpendingTaskStatus.FUNDED)).unwrap()
        first_page = (await service.list_tasks(params=PaginationParams(page=1, page_size=1))).unwrap()

        assert everything.total == 2
        assert [item.task.id for item in only_funded.items] == [funded.id]
        assert only_funded.items[0].summary.budget == 500
        assert first_page.total == 2
        assert first_page.total_pages == 2
        assert len(first_page.items) == 1
        assert {item.task.id for item in everything.items} == {draft.id, funded.id}

    @pytest.mark.asyncio
    async def test_task_detail(self, db_session):
        service = SpendingService(db_session)
        task = await funded_task(service)
        receipt = (
            await service.create_receipt(
                task.id,
                receipt_payload(
                    600_000,
                    receipt_no="INV-17",
                    attachments=[{"file_url": "https://files.example.com/inv-17.jpg"}],
                ),
            )
        ).unwrap()
        await service.create_cashback(receipt.id, {"amount": 10_000}, USER_ID)

        detail = (await service.get_task_detail(task.id)).unwrap()

        assert detail.funding.amount == 1_000_000
        assert detail.funding.source == "Yayasan"
        assert detail.summary.refund_due == 400_000
        assert len(detail.receipts) == 1
        assert detail.receipts[0].receipt_no == "INV-17"
        assert len(detail.receipts[0].items) == 1
        assert detail.receipts[0].attachments[0].file_url.endswith("inv-17.jpg")
        assert detail.receipts[0].cashbacks[0].amount == 10_000
        assert [s.type for s in detail.settlements] == [SettlementType.REFUND]


class TestFundingAndReceipts:
    @pytest.mark.asyncio
    async def test_funding_is_create_once(self, db_session):
        service = SpendingService(db_session)
        task = await funded_task(service)

        result = await service.create_funding(task.id, {"amount": 5})

        assert result.error.code == ErrorCode.FUNDING_ALREADY_EXISTS

    @pytest.mark.asyncio
    async def test_funding_amount_must_be_positive(self, db_session):
        service = SpendingService(db_session)
        task = (await service.create_task({"title": "No money"}, USER_ID)).unwrap()

        result = await service.create_funding(task.id, {"amount": 0})

        assert result.error.code == ErrorCode.VALIDATION_FAILED
        assert result.error.field == "amount"

    @pytest.mark.asyncio
    async def test_update_funding_without_funding(self, db_session):
        service = SpendingService(db_session)
        task = (await service.create_task({"title": "No money"}, USER_ID)).unwrap()

        result = await service.update_funding(task.id, {"amount": 10})

        assert result.error.code == ErrorCode.NOT_FOUND
        assert result.error.field == "funding"

    @pytest.mark.asyncio
    async def test_receipt_requires_funding(self, db_session):
        service = SpendingService(db_session)
        task = (await service.create_task({"title": "No money"}, USER_ID)).unwrap()

        result = await service.create_receipt(task.id, receipt_payload(100))

        assert result.error.code == ErrorCode.VALIDATION_FAILED
        assert result.error.field == "funding"

    @pytest.mark.asyncio
    async def test_receipt_total_must_match_items(self, db_session):
        service = SpendingService(db_session)
        task = await funded_task(service)

        result = await service.create_receipt(
            task.id,
            {
                "total_amount": 100_000,
                "items": [
                    {"description": "Paint", "quantity": 3, "unit_price": 30_000},
                    {"description": "Brush", "quantity": 1, "unit_price": 5_000},
                ],
            },
        )
        receipts = (await db_session.execute(select(Receipt))).scalars().all()

        assert result.error.code == ErrorCode.RECEIPT_TOTAL_MISMATCH
        assert result.error.field == "total_amount"
        assert receipts == []
        assert task.status == SpendingTaskStatus.FUNDED

    @pytest.mark.asyncio
    async def test_receipt_needs_items(self, db_session):
        service = SpendingService(db_session)
        task = await funded_task(service)

        result = await service.create_receipt(task.id, {"total_amount": 10, "items": []})

        assert result.error.code == ErrorCode.VALIDATION_FAILED
        assert result.error.field == "items"

    @pytest.mark.asyncio
    async def test_delete_receipt_reverses_cashback(self, db_session):
        service = SpendingService(db_session)
        task = await funded_task(service)
        receipt = (
            await service.create_receipt(
                task.id,
                receipt_payload(
                    400_000, attachments=[{"file_url": "https://files.example.com/a.png"}]
                ),
            )
        ).unwrap()
        await service.create_cashback(receipt.id, {"amount": 25_000}, USER_ID)
        assert (await WalletService(db_session).balance()).unwrap() == 25_000

        summary = (await service.delete_receipt(receipt.id, deleted_by="admin")).unwrap()

        assert summary.total_receipts == 0
        assert task.status == SpendingTaskStatus.FUNDED
        # Back to a full refund due on the untouched budget
        pending = await settlements_of(db_session, task.id)
        assert pending[SettlementType.REFUND].amount == 1_000_000
        for model in (Receipt, ReceiptItem, ReceiptAttachment, Cashback):
            assert (await db_session.execute(select(model))).scalars().all() == []

        entries = (
            await db_session.execute(select(WalletEntry).order_by(WalletEntry.id))
        ).scalars().all()
        assert [(e.type, e.source) for e in entries] == [
            (WalletEntryType.CREDIT, WalletEntrySource.CASHBACK),
            (WalletEntryType.DEBIT, WalletEntrySource.CASHBACK_REVERSAL),
        ]
        assert entries[1].created_by == "admin"
        assert (await WalletService(db_session).balance()).unwrap() == 0

    @pytest.mark.asyncio
    async def test_delete_unknown_receipt(self, db_session):
        result = await SpendingService(db_session).delete_receipt(404)

        assert result.error.code == ErrorCode.NOT_FOUND


class TestCashback:
    @pytest.mark.asyncio
    async def test_cashback_credits_wallet(self, db_session):
        service = SpendingService(db_session)
        task = await funded_task(service)
        receipt = (await service.create_receipt(task.id, receipt_payload(300_000))).unwrap()

        cashback, entry = (
            await service.create_cashback(receipt.id, {"amount": 50_000}, USER_ID)
        ).unwrap()

        assert cashback.vendor == "Toko Jaya"
        assert entry.type == WalletEntryType.CREDIT
        assert entry.source == WalletEntrySource.CASHBACK
        assert entry.amount == 50_000
        assert entry.cashback_id == cashback.id
        assert entry.task_id == task.id
        assert entry.occurred_at == cashback.occurred_at
        assert (await WalletService(db_session).balance()).unwrap() == 50_000
        # The task summary does not move
        summary = (await service.get_task_summary(task.id)).unwrap()
        assert summary.total_receipts == 300_000

    @pytest.mark.asyncio
    async def test_invalid_cashback_writes_nothing(self, db_session):
        service = SpendingService(db_session)
        task = await funded_task(service)
        receipt = (await service.create_receipt(task.id, receipt_payload(300_000))).unwrap()

        result = await service.create_cashback(receipt.id, {"amount": 0}, USER_ID)

        assert result.error.code == ErrorCode.VALIDATION_FAILED
        assert (await db_session.execute(select(Cashback))).scalars().all() == []
        assert (await db_session.execute(select(WalletEntry))).scalars().all() == []

    @pytest.mark.asyncio
    async def test_wallet_failure_rolls_back_cashback(self, db_session, monkeypatch):
        service = SpendingService(db_session)
        task = await funded_task(service)
        receipt = (await service.create_receipt(task.id, receipt_payload(300_000))).unwrap()

        async def failing_add_entry(self, *args, **kwargs):
            raise OperationalError("INSERT INTO wallet_entries", {}, Exception("disk I/O error"))

        monkeypatch.setattr(WalletService, "add_entry", failing_add_entry)
        result = await service.create_cashback(receipt.id, {"amount": 50_000}, USER_ID)
        monkeypatch.undo()

        assert result.error.code == ErrorCode.PERSISTENCE_FAILURE
        assert (await db_session.execute(select(Cashback))).scalars().all() == []
        assert (await db_session.execute(select(WalletEntry))).scalars().all() == []

    @pytest.mark.asyncio
    async def test_cashback_on_unknown_receipt(self, db_session):
        result = await SpendingService(db_session).create_cashback(404, {"amount": 1}, USER_ID)

        assert result.error.code == ErrorCode.NOT_FOUND


class TestLockedTask:
    async def _locked(self, service: SpendingService):
        task = await funded_task(service)
        receipt = (await service.create_receipt(task.id, receipt_payload(700_000))).unwrap()
        (await service.mark_refund_done(task.id)).unwrap()
        return task, receipt

    @pytest.mark.asyncio
    async def test_every_mutation_is_rejected(self, db_session):
        service = SpendingService(db_session)
        task, receipt = await self._locked(service)

        results = [
            await service.update_task(task.id, {"title": "Renamed"}),
            await service.create_funding(task.id, {"amount": 1}),
            await service.update_funding(task.id, {"amount": 2_000_000}),
            await service.create_receipt(task.id, receipt_payload(100)),
            await service.delete_receipt(receipt.id),
            await service.create_cashback(receipt.id, {"amount": 1_000}, USER_ID),
            await service.mark_reimburse_done(task.id),
        ]

        assert [r.error.code for r in results] == [ErrorCode.TASK_LOCKED] * len(results)
        summary = (await service.get_task_summary(task.id)).unwrap()
        assert summary.budget == 1_000_000
        assert summary.total_receipts == 700_000
        assert summary.is_locked
        assert task.status == SpendingTaskStatus.SETTLED

    @pytest.mark.asyncio
    async def test_repeating_the_same_settlement_is_a_no_op(self, db_session):
        service = SpendingService(db_session)
        task, _ = await self._locked(service)
        first = (await settlements_of(db_session, task.id))[SettlementType.REFUND]

        again = (await service.mark_refund_done(task.id, notes="twice")).unwrap()

        assert again.id == first.id
        assert again.amount == 300_000
        assert again.notes is None

    @pytest.mark.asyncio
    async def test_recompute_keeps_lock(self, db_session):
        service = SpendingService(db_session)
        task, _ = await self._locked(service)

        summary = (await service.recompute_task(task.id)).unwrap()

        assert summary.is_locked
        assert task.status == SpendingTaskStatus.SETTLED
        settlements = await settlements_of(db_session, task.id)
        assert settlements[SettlementType.REFUND].status == SettlementStatus.DONE
