"""Ledger Service - Business logic for the money-movement ledger.

Every entry carries a balance snapshot (balance_before / balance_after)
taken from the latest entry by ``occurred_at`` at insert time. The snapshot
is advisory: the authoritative balance is always summed from amounts, and
``recompute_all`` rewrites the snapshots when they drift (backdated
inserts, imports).
"""

import logging
from collections.abc import Mapping, Sequence
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from akasia.core.results import ErrorCode, ServiceResult, persistence_guard, validate_payload
from akasia.models.ledger import (
    OPERATING_KINDS,
    ExpenseItem,
    FuelPurchase,
    LedgerEntry,
    LedgerEntryKind,
    signed_amount,
)
from akasia.models.vehicle import Vehicle
from akasia.schemas.ledger import (
    AppendEntryRequest,
    ConsistencyReport,
    ExpenseCreate,
    FuelPurchaseCreate,
    IncomeCreate,
    MonthlyTotals,
    RecomputeSummary,
    VehicleCreate,
)
from akasia.schemas.report import VehicleFuelBreakdown
from akasia.services.calendar_service import MonthWindow
from akasia.utils.helpers import utcnow

logger = logging.getLogger(__name__)


def fuel_total(liter_amount: Decimal, price_per_liter: int) -> int:
    """Liters x price, rounded half-up to the smallest currency unit."""
    return int((liter_amount * price_per_liter).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class LedgerService:
    """Service for ledger-related business logic."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # =========================================================================
    # Append
    # =========================================================================

    async def _latest_entry(self) -> LedgerEntry | None:
        """Most recent non-deleted entry by occurred_at (ties: last inserted)."""
        result = await self.db.execute(
            select(LedgerEntry)
            .where(LedgerEntry.deleted_at.is_(None))
            .order_by(LedgerEntry.occurred_at.desc(), LedgerEntry.id.desc())
            .limit(1)
        )
        return result.scalars().first()

    async def _append(
        self,
        kind: LedgerEntryKind,
        amount: int,
        occurred_at: datetime,
        owner_user_id: str,
        description: str,
        notes: str | None = None,
        receipt_url: str | None = None,
    ) -> LedgerEntry:
        """Add an entry with its balance snapshot. Flushes, does not commit."""
        latest = await self._latest_entry()
        balance_before = latest.balance_after if latest else 0

        entry = LedgerEntry(
            kind=kind,
            amount=amount,
            description=description,
            notes=notes,
            receipt_url=receipt_url,
            occurred_at=occurred_at,
            balance_before=balance_before,
            balance_after=balance_before + signed_amount(kind, amount),
            owner_user_id=owner_user_id,
        )
        self.db.add(entry)
        await self.db.flush()
        return entry

    @persistence_guard
    async def append(
        self,
        kind: LedgerEntryKind,
        amount: int,
        occurred_at: datetime,
        owner_user_id: str,
        description: str,
    ) -> ServiceResult[LedgerEntry]:
        """Append a bare ledger entry.

        A negative resulting balance is allowed. Backdated entries get a
        snapshot from the latest-dated entry and stay stale until
        ``recompute_all`` runs.
        """
        validated = validate_payload(
            AppendEntryRequest,
            {
                "kind": kind,
                "amount": amount,
                "occurred_at": occurred_at,
                "description": description,
            },
        )
        if not validated.success:
            return ServiceResult.from_error(validated.error)
        data = validated.unwrap()

        entry = await self._append(
            data.kind, data.amount, data.occurred_at, owner_user_id, data.description
        )
        await self.db.commit()
        logger.info(
            f"Ledger entry {entry.id} appended: {entry.kind.value} {entry.amount} "
            f"(balance {entry.balance_before} -> {entry.balance_after})"
        )
        return ServiceResult.ok(entry)

    @persistence_guard
    async def record_income(
        self, data: IncomeCreate | Mapping[str, Any], owner_user_id: str
    ) -> ServiceResult[LedgerEntry]:
        """Record an INCOME entry described by its source."""
        validated = validate_payload(IncomeCreate, data)
        if not validated.success:
            return ServiceResult.from_error(validated.error)
        income = validated.unwrap()

        entry = await self._append(
            LedgerEntryKind.INCOME,
            income.amount,
            income.occurred_at,
            owner_user_id,
            income.source,
            notes=income.notes,
        )
        await self.db.commit()
        logger.info(f"Income recorded: entry {entry.id}, {entry.amount} from {income.source}")
        return ServiceResult.ok(entry)

    @persistence_guard
    async def record_expense(
        self, data: ExpenseCreate | Mapping[str, Any], owner_user_id: str
    ) -> ServiceResult[LedgerEntry]:
        """Record an EXPENSE entry with its line items.

        The entry amount is the sum of quantity x unit price.
        """
        validated = validate_payload(ExpenseCreate, data)
        if not validated.success:
            return ServiceResult.from_error(validated.error)
        expense = validated.unwrap()

        vehicle_ids = {item.vehicle_id for item in expense.items if item.vehicle_id is not None}
        if vehicle_ids:
            found = await self.db.execute(select(Vehicle.id).where(Vehicle.id.in_(vehicle_ids)))
            missing = vehicle_ids - set(found.scalars().all())
            if missing:
                return ServiceResult.fail(
                    ErrorCode.NOT_FOUND,
                    f"Vehicle {min(missing)} not found",
                    field="items.vehicle_id",
                )

        total = sum(item.quantity * item.unit_price for item in expense.items)
        entry = await self._append(
            LedgerEntryKind.EXPENSE,
            total,
            expense.occurred_at,
            owner_user_id,
            expense.description,
            notes=expense.notes,
            receipt_url=expense.receipt_url,
        )
        for item in expense.items:
            self.db.add(
                ExpenseItem(
                    entry_id=entry.id,
                    description=item.description,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    total=item.quantity * item.unit_price,
                    vehicle_id=item.vehicle_id,
                )
            )
        await self.db.commit()
        logger.info(f"Expense recorded: entry {entry.id}, {total} in {len(expense.items)} items")
        return ServiceResult.ok(entry)

    @persistence_guard
    async def record_fuel_purchase(
        self, data: FuelPurchaseCreate | Mapping[str, Any], owner_user_id: str
    ) -> ServiceResult[LedgerEntry]:
        """Record a FUEL_PURCHASE entry for a vehicle."""
        validated = validate_payload(FuelPurchaseCreate, data)
        if not validated.success:
            return ServiceResult.from_error(validated.error)
        purchase = validated.unwrap()

        vehicle = await self.db.get(Vehicle, purchase.vehicle_id)
        if vehicle is None or vehicle.deleted_at is not None:
            return ServiceResult.fail(ErrorCode.NOT_FOUND, "Vehicle not found", field="vehicle_id")

        total = fuel_total(purchase.liter_amount, purchase.price_per_liter)
        entry = await self._append(
            LedgerEntryKind.FUEL_PURCHASE,
            total,
            purchase.occurred_at,
            owner_user_id,
            f"Fuel purchase - {vehicle.name} ({vehicle.license_plate})",
            notes=purchase.notes,
        )
        self.db.add(
            FuelPurchase(
                entry_id=entry.id,
                vehicle_id=vehicle.id,
                liter_amount=purchase.liter_amount,
                price_per_liter=purchase.price_per_liter,
                total_amount=total,
                notes=purchase.notes,
            )
        )
        await self.db.commit()
        logger.info(
            f"Fuel purchase recorded: entry {entry.id}, {purchase.liter_amount} L "
            f"for vehicle {vehicle.id}, total {total}"
        )
        return ServiceResult.ok(entry)

    @persistence_guard
    async def delete_entry(self, entry_id: int) -> ServiceResult[LedgerEntry]:
        """Soft-delete an entry. Snapshots of later entries are left as they are."""
        entry = await self.db.get(LedgerEntry, entry_id)
        if entry is None or entry.deleted_at is not None:
            return ServiceResult.fail(ErrorCode.NOT_FOUND, "Ledger entry not found")

        entry.deleted_at = utcnow()
        self.db.add(entry)
        await self.db.commit()
        logger.info(f"Ledger entry {entry_id} soft-deleted")
        return ServiceResult.ok(entry)

    # =========================================================================
    # Reads
    # =========================================================================

    @persistence_guard
    async def current_balance(self, include_fuel: bool = False) -> ServiceResult[int]:
        """Sum of signed amounts over non-deleted entries.

        The operating balance counts INCOME and EXPENSE only; fuel purchases
        are included on request.
        """
        kinds = list(LedgerEntryKind) if include_fuel else list(OPERATING_KINDS)
        return ServiceResult.ok(await self._sum_signed(kinds))

    async def _sum_signed(
        self,
        kinds: Sequence[LedgerEntryKind],
        before: datetime | None = None,
        window: MonthWindow | None = None,
    ) -> int:
        query = (
            select(LedgerEntry.kind, func.coalesce(func.sum(LedgerEntry.amount), 0))
            .where(LedgerEntry.deleted_at.is_(None), LedgerEntry.kind.in_(kinds))
            .group_by(LedgerEntry.kind)
        )
        if before is not None:
            query = query.where(LedgerEntry.occurred_at < before)
        if window is not None:
            query = query.where(
                LedgerEntry.occurred_at >= window.start, LedgerEntry.occurred_at < window.next_start
            )
        result = await self.db.execute(query)
        return sum(signed_amount(LedgerEntryKind(kind), int(total)) for kind, total in result.all())

    async def _sum_kind(self, kind: LedgerEntryKind, window: MonthWindow) -> int:
        return abs(await self._sum_signed([kind], window=window))

    @persistence_guard
    async def monthly_totals(self, window: MonthWindow) -> ServiceResult[MonthlyTotals]:
        """INCOME/EXPENSE totals inside the window and the balances around it."""
        opening = await self._sum_signed(OPERATING_KINDS, before=window.start)
        total_income = await self._sum_kind(LedgerEntryKind.INCOME, window)
        total_expense = await self._sum_kind(LedgerEntryKind.EXPENSE, window)
        return ServiceResult.ok(
            MonthlyTotals(
                total_income=total_income,
                total_expense=total_expense,
                opening_balance=opening,
                closing_balance=opening + total_income - total_expense,
            )
        )

    @persistence_guard
    async def fuel_purchase_total(self, window: MonthWindow) -> ServiceResult[int]:
        """Total fuel purchases inside the window."""
        return ServiceResult.ok(await self._sum_kind(LedgerEntryKind.FUEL_PURCHASE, window))

    @persistence_guard
    async def fuel_by_vehicle(
        self, window: MonthWindow
    ) -> ServiceResult[list[VehicleFuelBreakdown]]:
        """Non-deleted fuel purchases inside the window grouped by vehicle."""
        result = await self.db.execute(
            select(
                Vehicle.id,
                Vehicle.name,
                Vehicle.license_plate,
                func.count(FuelPurchase.id),
                func.coalesce(func.sum(FuelPurchase.liter_amount), 0),
                func.coalesce(func.sum(FuelPurchase.total_amount), 0),
            )
            .join(LedgerEntry, LedgerEntry.id == FuelPurchase.entry_id)
            .join(Vehicle, Vehicle.id == FuelPurchase.vehicle_id)
            .where(
                LedgerEntry.deleted_at.is_(None),
                LedgerEntry.occurred_at >= window.start,
                LedgerEntry.occurred_at < window.next_start,
            )
            .group_by(Vehicle.id, Vehicle.name, Vehicle.license_plate)
            .order_by(Vehicle.name)
        )
        return ServiceResult.ok(
            [
                VehicleFuelBreakdown(
                    vehicle_id=vehicle_id,
                    vehicle_name=name,
                    license_plate=plate,
                    purchase_count=count,
                    total_liters=Decimal(str(liters)).quantize(Decimal("0.01")),
                    total_amount=int(amount),
                )
                for vehicle_id, name, plate, count, liters, amount in result.all()
            ]
        )

    @persistence_guard
    async def list_entries(
        self,
        window: MonthWindow | None = None,
        kinds: Sequence[LedgerEntryKind] | None = None,
        limit: int | None = None,
        ascending: bool = False,
    ) -> ServiceResult[list[LedgerEntry]]:
        """Non-deleted entries, newest first unless ``ascending``.

        Defaults to INCOME and EXPENSE; pass ``kinds`` to include fuel.
        ``limit=None`` returns every matching entry.
        """
        query = select(LedgerEntry).where(
            LedgerEntry.deleted_at.is_(None),
            LedgerEntry.kind.in_(list(kinds or OPERATING_KINDS)),
        )
        if window is not None:
            query = query.where(
                LedgerEntry.occurred_at >= window.start, LedgerEntry.occurred_at < window.next_start
            )
        if ascending:
            query = query.order_by(LedgerEntry.occurred_at.asc(), LedgerEntry.id.asc())
        else:
            query = query.order_by(LedgerEntry.occurred_at.desc(), LedgerEntry.id.desc())
        if limit is not None:
            query = query.limit(limit)

        result = await self.db.execute(query)
        return ServiceResult.ok(list(result.scalars().all()))

    # =========================================================================
    # Recompute / Consistency
    # =========================================================================

    async def _ordered_entries(self) -> list[LedgerEntry]:
        result = await self.db.execute(
            select(LedgerEntry)
            .where(LedgerEntry.deleted_at.is_(None))
            .order_by(LedgerEntry.occurred_at.asc(), LedgerEntry.id.asc())
        )
        return list(result.scalars().all())

    @persistence_guard
    async def recompute_all(self) -> ServiceResult[RecomputeSummary]:
        """Rewrite every snapshot from a running total in occurred_at order.

        All kinds, fuel included, share the running total. Idempotent.
        """
        entries = await self._ordered_entries()
        running = 0
        updated = 0
        for entry in entries:
            before = running
            running += signed_amount(entry.kind, entry.amount)
            if entry.balance_before != before or entry.balance_after != running:
                entry.balance_before = before
                entry.balance_after = running
                self.db.add(entry)
                updated += 1

        await self.db.commit()
        logger.info(f"Ledger recomputed: {len(entries)} entries, {updated} updated, balance {running}")
        return ServiceResult.ok(
            RecomputeSummary(entries=len(entries), updated=updated, final_balance=running)
        )

    @persistence_guard
    async def check_consistency(self) -> ServiceResult[ConsistencyReport]:
        """Walk the snapshots against a running total in occurred_at order.

        Read-only counterpart of ``recompute_all``: every entry whose stored
        before/after differs from the running total counts as drifted, even
        when the last stored balance happens to match.
        """
        entries = await self._ordered_entries()
        running = 0
        drifted = 0
        for entry in entries:
            before = running
            running += signed_amount(entry.kind, entry.amount)
            if entry.balance_before != before or entry.balance_after != running:
                drifted += 1

        last_stored = entries[-1].balance_after if entries else None
        report = ConsistencyReport(
            entries=len(entries),
            last_stored_balance=last_stored,
            calculated_balance=running,
            drifted=drifted,
            is_consistent=drifted == 0,
        )
        if not report.is_consistent:
            logger.warning(
                f"Ledger inconsistent: {drifted} drifted snapshots, stored {last_stored}, "
                f"calculated {running}; run recompute_all()"
            )
        return ServiceResult.ok(report)

    # =========================================================================
    # Vehicles
    # =========================================================================

    @persistence_guard
    async def create_vehicle(self, data: VehicleCreate | Mapping[str, Any]) -> ServiceResult[Vehicle]:
        """Register a vehicle that fuel purchases can reference."""
        validated = validate_payload(VehicleCreate, data)
        if not validated.success:
            return ServiceResult.from_error(validated.error)
        payload = validated.unwrap()

        vehicle = Vehicle(name=payload.name, license_plate=payload.license_plate)
        self.db.add(vehicle)
        await self.db.commit()
        await self.db.refresh(vehicle)
        logger.info(f"Vehicle {vehicle.id} registered: {vehicle.name} ({vehicle.license_plate})")
        return ServiceResult.ok(vehicle)

    @persistence_guard
    async def list_vehicles(self) -> ServiceResult[list[Vehicle]]:
        result = await self.db.execute(
            select(Vehicle).where(Vehicle.deleted_at.is_(None)).order_by(Vehicle.name)
        )
        return ServiceResult.ok(list(result.scalars().all()))
