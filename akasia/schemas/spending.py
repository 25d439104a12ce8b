"""Spending schemas - Request/Response DTOs for spending tasks."""

from datetime import datetime

from pydantic import BaseModel, Field

from akasia.models.spending import SettlementStatus, SettlementType, SpendingTaskStatus

# =============================================================================
# Task Schemas
# =============================================================================


class TaskCreate(BaseModel):
    """Request to create a spending task."""

    title: str = Field(min_length=3, max_length=200, description="Title, at least 3 characters")
    description: str | None = Field(default=None, max_length=1000)


class TaskUpdate(TaskCreate):
    """Request to update a spending task."""


class TaskSummary(BaseModel):
    """Derived money summary of a task. Never stored."""

    budget: int = 0
    total_receipts: int = 0
    diff: int = 0
    refund_due: int = 0
    reimburse_due: int = 0
    is_locked: bool = False


class TaskResponse(BaseModel):
    """Spending task response."""

    id: int
    title: str
    description: str | None = None
    status: SpendingTaskStatus
    created_by: str
    created_at: datetime

    class Config:
        from_attributes = True


class TaskWithSummary(BaseModel):
    """Task plus its recomputed summary."""

    task: TaskResponse
    summary: TaskSummary


class TaskListResponse(BaseModel):
    """Paginated task list response."""

    items: list[TaskWithSummary]
    total: int
    page: int
    page_size: int


# =============================================================================
# Funding Schemas
# =============================================================================


class FundingCreate(BaseModel):
    """Request to create or update a task funding."""

    amount: int = Field(gt=0, description="Amount must be greater than 0")
    received_at: datetime | None = None
    source: str | None = Field(default=None, max_length=100)
    notes: str | None = Field(default=None, max_length=500)


class FundingResponse(BaseModel):
    """Task funding response."""

    id: int
    task_id: int
    amount: int
    received_at: datetime
    source: str
    notes: str | None = None

    class Config:
        from_attributes = True


# =============================================================================
# Receipt Schemas
# =============================================================================


class ReceiptItemCreate(BaseModel):
    """Receipt line item."""

    description: str = Field(min_length=1, max_length=255)
    quantity: int = Field(ge=1, description="Quantity at least 1")
    unit_price: int = Field(ge=0, description="Unit price at least 0")


class AttachmentCreate(BaseModel):
    """Attachment already stored in the external attachment store."""

    file_url: str = Field(min_length=1, max_length=512)
    file_name: str | None = Field(default=None, max_length=255)
    mime_type: str | None = Field(default=None, max_length=100)
    size_bytes: int | None = Field(default=None, ge=0)


class ReceiptCreate(BaseModel):
    """Request to add a receipt to a task."""

    vendor: str | None = Field(default=None, max_length=200)
    receipt_no: str | None = Field(default=None, max_length=100)
    receipt_date: datetime | None = None
    notes: str | None = Field(default=None, max_length=500)
    total_amount: int = Field(gt=0, description="Total is required")
    items: list[ReceiptItemCreate] = Field(min_length=1, description="At least 1 item")
    attachments: list[AttachmentCreate] = Field(default_factory=list)


class ReceiptItemResponse(BaseModel):
    id: int
    description: str
    quantity: int
    unit_price: int
    total: int

    class Config:
        from_attributes = True


class AttachmentResponse(BaseModel):
    id: int
    file_url: str
    file_name: str | None = None
    mime_type: str | None = None
    size_bytes: int | None = None

    class Config:
        from_attributes = True


class CashbackResponse(BaseModel):
    """Cashback response."""

    id: int
    receipt_id: int
    amount: int
    vendor: str | None = None
    notes: str | None = None
    occurred_at: datetime
    created_by: str

    class Config:
        from_attributes = True


class ReceiptResponse(BaseModel):
    """Receipt response with its children."""

    id: int
    task_id: int
    vendor: str | None = None
    receipt_no: str | None = None
    receipt_date: datetime | None = None
    notes: str | None = None
    total_amount: int
    created_at: datetime

    items: list[ReceiptItemResponse] = []
    attachments: list[AttachmentResponse] = []
    cashbacks: list[CashbackResponse] = []


# =============================================================================
# Cashback Schemas
# =============================================================================


class CashbackCreate(BaseModel):
    """Request to record a cashback against a receipt."""

    amount: int = Field(gt=0, description="Amount is required")
    vendor: str | None = Field(default=None, max_length=200)
    notes: str | None = Field(default=None, max_length=500)
    occurred_at: datetime | None = None


# =============================================================================
# Settlement Schemas
# =============================================================================


class SettlementRequest(BaseModel):
    """Request to mark a settlement done."""

    notes: str | None = Field(default=None, max_length=500)


class SettlementResponse(BaseModel):
    """Task settlement response."""

    id: int
    task_id: int
    type: SettlementType
    status: SettlementStatus
    amount: int
    done_at: datetime | None = None
    notes: str | None = None

    class Config:
        from_attributes = True


class TaskDetail(BaseModel):
    """Full task view."""

    task: TaskResponse
    summary: TaskSummary
    funding: FundingResponse | None = None
    receipts: list[ReceiptResponse] = []
    settlements: list[SettlementResponse] = []
