"""Wallet API - Cash-float wallet endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from akasia.api.deps import ERROR_RESPONSES, CurrentUserId, unwrap_or_raise
from akasia.db.engine import get_db
from akasia.schemas.wallet import WalletEntryCreate, WalletEntryResponse, WalletOverview
from akasia.services.wallet_service import WalletService

router = APIRouter(prefix="/wallet", tags=["Wallet"], responses=ERROR_RESPONSES)


def get_wallet_service(db=Depends(get_db)) -> WalletService:
    """Get wallet service instance."""
    return WalletService(db)


@router.get("", response_model=WalletOverview)
async def get_wallet_overview(
    service: Annotated[WalletService, Depends(get_wallet_service)],
    limit: int | None = Query(None, ge=1, le=200, description="Recent entries to include"),
) -> WalletOverview:
    """Wallet, balance and recent entries."""
    return unwrap_or_raise(await service.overview(limit))


@router.post("/entries", response_model=WalletEntryResponse, status_code=status.HTTP_201_CREATED)
async def create_wallet_entry(
    user_id: CurrentUserId,
    data: WalletEntryCreate,
    service: Annotated[WalletService, Depends(get_wallet_service)],
) -> WalletEntryResponse:
    """Record a manual credit or debit."""
    entry = unwrap_or_raise(await service.create_manual_entry(data, user_id))
    return WalletEntryResponse.model_validate(entry)
