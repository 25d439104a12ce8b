"""Ledger API - Ledger entry, balance and vehicle endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from akasia.api.deps import ERROR_RESPONSES, CurrentUserId, unwrap_or_raise
from akasia.core.config import get_settings
from akasia.db.engine import get_db
from akasia.models.ledger import LedgerEntryKind
from akasia.schemas.ledger import (
    AppendEntryRequest,
    BalanceResponse,
    ConsistencyReport,
    ExpenseCreate,
    FuelPurchaseCreate,
    IncomeCreate,
    LedgerEntryListResponse,
    LedgerEntryResponse,
    MonthlyTotals,
    RecomputeSummary,
    VehicleCreate,
    VehicleResponse,
)
from akasia.services.calendar_service import current_hijri_month, resolve_month_window
from akasia.services.ledger_service import LedgerService

router = APIRouter(prefix="/ledger", tags=["Ledger"], responses=ERROR_RESPONSES)


def get_ledger_service(db=Depends(get_db)) -> LedgerService:
    """Get ledger service instance."""
    return LedgerService(db)


LedgerServiceDep = Annotated[LedgerService, Depends(get_ledger_service)]


# =============================================================================
# Entries
# =============================================================================


@router.get("/entries", response_model=LedgerEntryListResponse)
async def list_entries(
    service: LedgerServiceDep,
    kind: list[LedgerEntryKind] | None = Query(None, description="Filter by kind (repeatable)"),
    hijri_year: int | None = Query(None, description="Hijri year of the window"),
    hijri_month: int | None = Query(None, ge=1, le=12, description="Hijri month of the window"),
    limit: int | None = Query(None, ge=1, le=500, description="Max entries"),
) -> LedgerEntryListResponse:
    """List non-deleted entries, newest first.

    Only INCOME and EXPENSE are listed unless ``kind`` is given.
    """
    window = None
    if hijri_year is not None and hijri_month is not None:
        window = resolve_month_window(hijri_year, hijri_month)

    entries = unwrap_or_raise(
        await service.list_entries(
            window=window,
            kinds=kind,
            limit=limit or get_settings().ledger_list_limit,
        )
    )
    return LedgerEntryListResponse(
        items=[LedgerEntryResponse.model_validate(entry) for entry in entries],
        total=len(entries),
    )


@router.post("/entries", response_model=LedgerEntryResponse, status_code=status.HTTP_201_CREATED)
async def append_entry(
    user_id: CurrentUserId,
    data: AppendEntryRequest,
    service: LedgerServiceDep,
) -> LedgerEntryResponse:
    """Append a bare ledger entry."""
    entry = unwrap_or_raise(
        await service.append(data.kind, data.amount, data.occurred_at, user_id, data.description)
    )
    return LedgerEntryResponse.model_validate(entry)


@router.post("/income", response_model=LedgerEntryResponse, status_code=status.HTTP_201_CREATED)
async def record_income(
    user_id: CurrentUserId,
    data: IncomeCreate,
    service: LedgerServiceDep,
) -> LedgerEntryResponse:
    """Record an income."""
    return LedgerEntryResponse.model_validate(
        unwrap_or_raise(await service.record_income(data, user_id))
    )


@router.post("/expense", response_model=LedgerEntryResponse, status_code=status.HTTP_201_CREATED)
async def record_expense(
    user_id: CurrentUserId,
    data: ExpenseCreate,
    service: LedgerServiceDep,
) -> LedgerEntryResponse:
    """Record an expense with line items."""
    return LedgerEntryResponse.model_validate(
        unwrap_or_raise(await service.record_expense(data, user_id))
    )


@router.post("/fuel", response_model=LedgerEntryResponse, status_code=status.HTTP_201_CREATED)
async def record_fuel_purchase(
    user_id: CurrentUserId,
    data: FuelPurchaseCreate,
    service: LedgerServiceDep,
) -> LedgerEntryResponse:
    """Record a fuel purchase for a vehicle."""
    return LedgerEntryResponse.model_validate(
        unwrap_or_raise(await service.record_fuel_purchase(data, user_id))
    )


@router.delete("/entries/{entry_id}", response_model=LedgerEntryResponse)
async def delete_entry(
    entry_id: int,
    user_id: CurrentUserId,
    service: LedgerServiceDep,
) -> LedgerEntryResponse:
    """Soft-delete an entry."""
    return LedgerEntryResponse.model_validate(unwrap_or_raise(await service.delete_entry(entry_id)))


# =============================================================================
# Balance
# =============================================================================


@router.get("/balance", response_model=BalanceResponse)
async def get_balance(
    service: LedgerServiceDep,
    include_fuel: bool = Query(False, description="Include fuel purchases"),
) -> BalanceResponse:
    """Current balance summed from amounts."""
    balance = unwrap_or_raise(await service.current_balance(include_fuel=include_fuel))
    return BalanceResponse(balance=balance, include_fuel=include_fuel)


@router.get("/monthly-totals", response_model=MonthlyTotals)
async def get_monthly_totals(
    service: LedgerServiceDep,
    hijri_year: int | None = Query(None, description="Hijri year, defaults to current"),
    hijri_month: int | None = Query(None, ge=1, le=12, description="Hijri month, defaults to current"),
) -> MonthlyTotals:
    """INCOME/EXPENSE totals of a Hijri month."""
    if hijri_year is None or hijri_month is None:
        hijri_year, hijri_month = current_hijri_month()
    return unwrap_or_raise(await service.monthly_totals(resolve_month_window(hijri_year, hijri_month)))


@router.post("/recompute", response_model=RecomputeSummary)
async def recompute_balances(
    user_id: CurrentUserId,
    service: LedgerServiceDep,
) -> RecomputeSummary:
    """Rewrite every balance snapshot from a full running total."""
    return unwrap_or_raise(await service.recompute_all())


@router.get("/consistency", response_model=ConsistencyReport)
async def check_consistency(service: LedgerServiceDep) -> ConsistencyReport:
    """Compare the stored balance snapshot with the recomputed total."""
    return unwrap_or_raise(await service.check_consistency())


# =============================================================================
# Vehicles
# =============================================================================


@router.get("/vehicles", response_model=list[VehicleResponse])
async def list_vehicles(service: LedgerServiceDep) -> list[VehicleResponse]:
    """List vehicles."""
    vehicles = unwrap_or_raise(await service.list_vehicles())
    return [VehicleResponse.model_validate(vehicle) for vehicle in vehicles]


@router.post("/vehicles", response_model=VehicleResponse, status_code=status.HTTP_201_CREATED)
async def create_vehicle(
    user_id: CurrentUserId,
    data: VehicleCreate,
    service: LedgerServiceDep,
) -> VehicleResponse:
    """Register a vehicle."""
    return VehicleResponse.model_validate(unwrap_or_raise(await service.create_vehicle(data)))
