"""Wallet Service - Business logic for the cash-float wallet.

The wallet is a sub-ledger independent from the main ledger: entries are
immutable credits and debits, the balance is always summed, and there is
no negative-balance guard.
"""

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from akasia.core.config import get_settings
from akasia.core.results import ServiceResult, persistence_guard, validate_payload
from akasia.models.wallet import Wallet, WalletEntry, WalletEntrySource, WalletEntryType
from akasia.schemas.wallet import (
    WalletEntryCreate,
    WalletEntryResponse,
    WalletOverview,
    WalletResponse,
)
from akasia.utils.helpers import utcnow

logger = logging.getLogger(__name__)


class WalletService:
    """Service for wallet-related business logic."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ============ Wallet ============

    async def ensure_wallet(self) -> Wallet:
        """Return the singleton wallet, creating it if needed. Does not commit.

        Creation runs in a savepoint; if a concurrent writer inserted the
        same name first, the unique constraint fails and the row is re-read.
        """
        result = await self.db.execute(select(Wallet).order_by(Wallet.id).limit(1))
        wallet = result.scalars().first()
        if wallet is not None:
            return wallet

        name = get_settings().default_wallet_name
        try:
            async with self.db.begin_nested():
                wallet = Wallet(name=name)
                self.db.add(wallet)
        except IntegrityError:
            result = await self.db.execute(select(Wallet).where(Wallet.name == name))
            return result.scalars().one()

        logger.info(f"Wallet created: {wallet.id} ({name})")
        return wallet

    @persistence_guard
    async def get_or_create_wallet(self) -> ServiceResult[Wallet]:
        """Idempotent accessor for the singleton wallet."""
        wallet = await self.ensure_wallet()
        await self.db.commit()
        return ServiceResult.ok(wallet)

    # ============ Balance ============

    async def _balance(self, wallet_id: int) -> int:
        result = await self.db.execute(
            select(WalletEntry.type, func.coalesce(func.sum(WalletEntry.amount), 0))
            .where(WalletEntry.wallet_id == wallet_id)
            .group_by(WalletEntry.type)
        )
        sums = {WalletEntryType(entry_type): int(total) for entry_type, total in result.all()}
        return sums.get(WalletEntryType.CREDIT, 0) - sums.get(WalletEntryType.DEBIT, 0)

    @persistence_guard
    async def balance(self) -> ServiceResult[int]:
        """Sum of credits minus sum of debits."""
        wallet = await self.ensure_wallet()
        balance = await self._balance(wallet.id)
        await self.db.commit()
        return ServiceResult.ok(balance)

    # ============ Entries ============

    async def add_entry(
        self,
        entry_type: WalletEntryType,
        source: WalletEntrySource,
        amount: int,
        created_by: str,
        description: str | None = None,
        occurred_at: datetime | None = None,
        attachment_url: str | None = None,
        task_id: int | None = None,
        cashback_id: int | None = None,
    ) -> WalletEntry:
        """Add an entry to the singleton wallet. Flushes, does not commit.

        Used by callers that need the entry inside their own transaction.
        """
        wallet = await self.ensure_wallet()
        entry = WalletEntry(
            wallet_id=wallet.id,
            type=entry_type,
            source=source,
            amount=amount,
            description=description,
            occurred_at=occurred_at or utcnow(),
            attachment_url=attachment_url,
            task_id=task_id,
            cashback_id=cashback_id,
            created_by=created_by,
        )
        self.db.add(entry)
        await self.db.flush()
        return entry

    @persistence_guard
    async def create_entry(
        self,
        entry_type: WalletEntryType,
        amount: int,
        created_by: str,
        source: WalletEntrySource = WalletEntrySource.MANUAL,
        description: str | None = None,
        occurred_at: datetime | None = None,
        task_id: int | None = None,
        cashback_id: int | None = None,
    ) -> ServiceResult[WalletEntry]:
        """Append a wallet entry. No locking, no negative-balance guard."""
        validated = validate_payload(
            WalletEntryCreate,
            {
                "type": entry_type,
                "amount": amount,
                "description": description,
                "occurred_at": occurred_at,
            },
        )
        if not validated.success:
            return ServiceResult.from_error(validated.error)
        data = validated.unwrap()

        entry = await self.add_entry(
            data.type,
            source,
            data.amount,
            created_by,
            description=data.description,
            occurred_at=data.occurred_at,
            task_id=task_id,
            cashback_id=cashback_id,
        )
        await self.db.commit()
        logger.info(f"Wallet entry {entry.id}: {entry.type.value} {entry.amount} ({source.value})")
        return ServiceResult.ok(entry)

    @persistence_guard
    async def create_manual_entry(
        self, data: WalletEntryCreate | Mapping[str, Any], created_by: str
    ) -> ServiceResult[WalletEntry]:
        """Record a MANUAL wallet entry, optionally with a proof URL."""
        validated = validate_payload(WalletEntryCreate, data)
        if not validated.success:
            return ServiceResult.from_error(validated.error)
        payload = validated.unwrap()

        entry = await self.add_entry(
            payload.type,
            WalletEntrySource.MANUAL,
            payload.amount,
            created_by,
            description=payload.description,
            occurred_at=payload.occurred_at,
            attachment_url=str(payload.attachment_url) if payload.attachment_url else None,
        )
        await self.db.commit()
        logger.info(f"Manual wallet entry {entry.id}: {entry.type.value} {entry.amount}")
        return ServiceResult.ok(entry)

    @persistence_guard
    async def overview(self, limit: int | None = None) -> ServiceResult[WalletOverview]:
        """Wallet, balance and the most recent entries (newest first)."""
        limit = limit or get_settings().wallet_overview_limit
        wallet = await self.ensure_wallet()
        balance = await self._balance(wallet.id)
        result = await self.db.execute(
            select(WalletEntry)
            .where(WalletEntry.wallet_id == wallet.id)
            .order_by(WalletEntry.occurred_at.desc(), WalletEntry.id.desc())
            .limit(limit)
        )
        entries = result.scalars().all()
        await self.db.commit()
        return ServiceResult.ok(
            WalletOverview(
                wallet=WalletResponse.model_validate(wallet),
                balance=balance,
                entries=[WalletEntryResponse.model_validate(entry) for entry in entries],
            )
        )
