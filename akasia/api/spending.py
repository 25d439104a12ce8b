"""Spending API - Spending task, funding, receipt, cashback and settlement endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel

from akasia.api.deps import ERROR_RESPONSES, CurrentUserId, unwrap_or_raise
from akasia.db.engine import get_db
from akasia.models.spending import SpendingTaskStatus
from akasia.schemas.spending import (
    CashbackCreate,
    CashbackResponse,
    FundingCreate,
    FundingResponse,
    ReceiptCreate,
    ReceiptResponse,
    SettlementRequest,
    SettlementResponse,
    TaskCreate,
    TaskDetail,
    TaskListResponse,
    TaskResponse,
    TaskSummary,
    TaskUpdate,
)
from akasia.schemas.wallet import WalletEntryResponse
from akasia.services.spending_service import SpendingService
from akasia.utils.pagination import PaginationParams

router = APIRouter(prefix="/spending", tags=["Spending"], responses=ERROR_RESPONSES)


def get_spending_service(db=Depends(get_db)) -> SpendingService:
    """Get spending service instance."""
    return SpendingService(db)


SpendingServiceDep = Annotated[SpendingService, Depends(get_spending_service)]


class CashbackCreatedResponse(BaseModel):
    """Cashback together with the wallet credit it produced."""

    cashback: CashbackResponse
    wallet_entry: WalletEntryResponse


# =============================================================================
# Tasks
# =============================================================================


@router.get("/tasks", response_model=TaskListResponse)
async def list_tasks(
    service: SpendingServiceDep,
    task_status: SpendingTaskStatus | None = Query(None, alias="status", description="Filter by status"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Page size"),
) -> TaskListResponse:
    """List spending tasks with their summaries."""
    result = unwrap_or_raise(
        await service.list_tasks(task_status, PaginationParams(page=page, page_size=page_size))
    )
    return TaskListResponse(
        items=result.items,
        total=result.total,
        page=result.page,
        page_size=result.page_size,
    )


@router.post("/tasks", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    user_id: CurrentUserId,
    data: TaskCreate,
    service: SpendingServiceDep,
) -> TaskResponse:
    """Create a spending task."""
    return TaskResponse.model_validate(unwrap_or_raise(await service.create_task(data, user_id)))


@router.get("/tasks/{task_id}", response_model=TaskDetail)
async def get_task(task_id: int, service: SpendingServiceDep) -> TaskDetail:
    """Task with funding, receipts, settlements and summary."""
    return unwrap_or_raise(await service.get_task_detail(task_id))


@router.put("/tasks/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: int,
    user_id: CurrentUserId,
    data: TaskUpdate,
    service: SpendingServiceDep,
) -> TaskResponse:
    """Update title and description."""
    return TaskResponse.model_validate(unwrap_or_raise(await service.update_task(task_id, data)))


@router.get("/tasks/{task_id}/summary", response_model=TaskSummary)
async def get_task_summary(task_id: int, service: SpendingServiceDep) -> TaskSummary:
    """Money summary recomputed from the current records."""
    return unwrap_or_raise(await service.get_task_summary(task_id))


@router.post("/tasks/{task_id}/recompute", response_model=TaskSummary)
async def recompute_task(
    task_id: int,
    user_id: CurrentUserId,
    service: SpendingServiceDep,
) -> TaskSummary:
    """Recompute status and pending settlements."""
    return unwrap_or_raise(await service.recompute_task(task_id))


# =============================================================================
# Funding
# =============================================================================


@router.post(
    "/tasks/{task_id}/funding",
    response_model=FundingResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_funding(
    task_id: int,
    user_id: CurrentUserId,
    data: FundingCreate,
    service: SpendingServiceDep,
) -> FundingResponse:
    """Fund a task (once)."""
    return FundingResponse.model_validate(unwrap_or_raise(await service.create_funding(task_id, data)))


@router.put("/tasks/{task_id}/funding", response_model=FundingResponse)
async def update_funding(
    task_id: int,
    user_id: CurrentUserId,
    data: FundingCreate,
    service: SpendingServiceDep,
) -> FundingResponse:
    """Update a task's funding."""
    return FundingResponse.model_validate(unwrap_or_raise(await service.update_funding(task_id, data)))


# =============================================================================
# Receipts / Cashback
# =============================================================================


@router.post(
    "/tasks/{task_id}/receipts",
    response_model=ReceiptResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_receipt(
    task_id: int,
    user_id: CurrentUserId,
    data: ReceiptCreate,
    service: SpendingServiceDep,
) -> ReceiptResponse:
    """Add a receipt; attachments are URLs from the attachment store."""
    return unwrap_or_raise(await service.create_receipt(task_id, data))


@router.delete("/receipts/{receipt_id}", response_model=TaskSummary)
async def delete_receipt(
    receipt_id: int,
    user_id: CurrentUserId,
    service: SpendingServiceDep,
) -> TaskSummary:
    """Delete a receipt; returns the task's new summary."""
    return unwrap_or_raise(await service.delete_receipt(receipt_id, deleted_by=user_id))


@router.post(
    "/receipts/{receipt_id}/cashbacks",
    response_model=CashbackCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_cashback(
    receipt_id: int,
    user_id: CurrentUserId,
    data: CashbackCreate,
    service: SpendingServiceDep,
) -> CashbackCreatedResponse:
    """Record a cashback; the wallet is credited in the same transaction."""
    cashback, entry = unwrap_or_raise(await service.create_cashback(receipt_id, data, user_id))
    return CashbackCreatedResponse(
        cashback=CashbackResponse.model_validate(cashback),
        wallet_entry=WalletEntryResponse.model_validate(entry),
    )


# =============================================================================
# Settlements
# =============================================================================


@router.post("/tasks/{task_id}/refund", response_model=SettlementResponse)
async def mark_refund_done(
    task_id: int,
    user_id: CurrentUserId,
    service: SpendingServiceDep,
    data: SettlementRequest | None = None,
) -> SettlementResponse:
    """Mark the refund done; locks the task."""
    notes = data.notes if data else None
    return SettlementResponse.model_validate(
        unwrap_or_raise(await service.mark_refund_done(task_id, notes))
    )


@router.post("/tasks/{task_id}/reimburse", response_model=SettlementResponse)
async def mark_reimburse_done(
    task_id: int,
    user_id: CurrentUserId,
    service: SpendingServiceDep,
    data: SettlementRequest | None = None,
) -> SettlementResponse:
    """Mark the reimbursement done; locks the task."""
    notes = data.notes if data else None
    return SettlementResponse.model_validate(
        unwrap_or_raise(await service.mark_reimburse_done(task_id, notes))
    )
