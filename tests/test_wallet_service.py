"""Tests for the wallet sub-ledger."""

from datetime import datetime

import pytest
from sqlmodel import select

from akasia.core.results import ErrorCode
from akasia.models.wallet import Wallet, WalletEntrySource, WalletEntryType
from akasia.services.wallet_service import WalletService
from tests.conftest import USER_ID


class TestWallet:
    @pytest.mark.asyncio
    async def test_get_or_create_is_idempotent(self, db_session):
        service = WalletService(db_session)

        first = (await service.get_or_create_wallet()).unwrap()
        second = (await service.get_or_create_wallet()).unwrap()
        wallets = (await db_session.execute(select(Wallet))).scalars().all()

        assert first.id == second.id
        assert first.name == "Global Wallet"
        assert len(wallets) == 1

    @pytest.mark.asyncio
    async def test_empty_wallet_balance(self, db_session):
        assert (await WalletService(db_session).balance()).unwrap() == 0

    @pytest.mark.asyncio
    async def test_balance_is_credits_minus_debits(self, db_session):
        service = WalletService(db_session)
        await service.create_entry(WalletEntryType.CREDIT, 50_000, USER_ID)
        await service.create_entry(WalletEntryType.CREDIT, 20_000, USER_ID)
        await service.create_entry(WalletEntryType.DEBIT, 30_000, USER_ID)

        assert (await service.balance()).unwrap() == 40_000

    @pytest.mark.asyncio
    async def test_debit_may_overdraw(self, db_session):
        service = WalletService(db_session)

        entry = (await service.create_entry(WalletEntryType.DEBIT, 10_000, USER_ID)).unwrap()

        assert entry.source == WalletEntrySource.MANUAL
        assert (await service.balance()).unwrap() == -10_000

    @pytest.mark.asyncio
    async def test_entry_amount_must_be_positive(self, db_session):
        result = await WalletService(db_session).create_entry(WalletEntryType.CREDIT, 0, USER_ID)

        assert result.error.code == ErrorCode.VALIDATION_FAILED
        assert result.error.field == "amount"

    @pytest.mark.asyncio
    async def test_manual_entry_with_proof(self, db_session):
        service = WalletService(db_session)

        entry = (
            await service.create_manual_entry(
                {
                    "type": "DEBIT",
                    "amount": 15_000,
                    "description": "Parking",
                    "attachment_url": "https://files.example.com/parking.jpg",
                },
                USER_ID,
            )
        ).unwrap()

        assert entry.type == WalletEntryType.DEBIT
        assert entry.source == WalletEntrySource.MANUAL
        assert entry.attachment_url == "https://files.example.com/parking.jpg"
        assert entry.created_by == USER_ID

    @pytest.mark.asyncio
    async def test_manual_entry_rejects_bad_url(self, db_session):
        result = await WalletService(db_session).create_manual_entry(
            {"type": "CREDIT", "amount": 1, "attachment_url": "not a url"}, USER_ID
        )

        assert result.error.code == ErrorCode.VALIDATION_FAILED
        assert result.error.field == "attachment_url"

    @pytest.mark.asyncio
    async def test_overview_lists_newest_first(self, db_session):
        service = WalletService(db_session)
        for day, amount in [(3, 300), (1, 100), (2, 200)]:
            await service.create_entry(
                WalletEntryType.CREDIT, amount, USER_ID, occurred_at=datetime(2025, 3, day)
            )

        overview = (await service.overview()).unwrap()
        limited = (await service.overview(limit=2)).unwrap()

        assert overview.balance == 600
        assert [entry.amount for entry in overview.entries] == [300, 200, 100]
        assert [entry.amount for entry in limited.entries] == [300, 200]
        assert limited.balance == 600
