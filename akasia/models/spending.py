"""Akasia Operations Ledger - Spending task models.

A spending task is a budget envelope for a discretionary purchase:
1. Spending Task - the envelope, with a cached lifecycle status
2. Task Funding - the money received for it (at most one per task)
3. Receipt / Receipt Item / Receipt Attachment - what was spent
4. Cashback - money returned by a vendor against a receipt
5. Task Settlement - refund of leftover budget or reimbursement of overspend

Entities reference each other by id only; summaries and lock state are
derived on demand by the spending service.
"""

from datetime import datetime
from enum import Enum

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from akasia.utils.helpers import utcnow

# =============================================================================
# 1. Spending Task
# =============================================================================


class SpendingTaskStatus(str, Enum):
    """Spending task lifecycle status (cached, always recomputable)."""

    DRAFT = "DRAFT"  # No funding yet
    FUNDED = "FUNDED"  # Funded, no receipts
    SPENDING = "SPENDING"  # Not produced by the transition rule; kept for stored data
    NEEDS_REFUND = "NEEDS_REFUND"  # Budget left over
    NEEDS_REIMBURSE = "NEEDS_REIMBURSE"  # Overspent
    SETTLED = "SETTLED"  # Balanced or locked


class SpendingTask(SQLModel, table=True):
    """Spending task - budget envelope.

    Attributes:
        id: Auto-increment primary key
        title: Short title (min 3 chars)
        description: Optional details
        status: Cached lifecycle status
        created_by: Opaque id of the creating user
        created_at: Record creation time
    """

    __tablename__ = "spending_tasks"

    id: int | None = Field(default=None, primary_key=True)
    title: str = Field(max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    status: SpendingTaskStatus = Field(default=SpendingTaskStatus.DRAFT, index=True)
    created_by: str = Field(max_length=64, index=True)
    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)


# =============================================================================
# 2. Task Funding
# =============================================================================


class TaskFunding(SQLModel, table=True):
    """Funding received for a task (1:1, create-once, update-in-place)."""

    __tablename__ = "task_fundings"

    id: int | None = Field(default=None, primary_key=True)
    task_id: int = Field(foreign_key="spending_tasks.id", unique=True, index=True)
    amount: int = Field(sa_column=sa.Column(sa.BigInteger, nullable=False))
    received_at: datetime = Field(index=True)
    source: str = Field(max_length=100)
    notes: str | None = Field(default=None, max_length=500)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


# =============================================================================
# 3. Receipts
# =============================================================================


class Receipt(SQLModel, table=True):
    """Receipt for money spent on a task.

    ``total_amount`` equals the sum of its items at creation time.
    """

    __tablename__ = "receipts"

    id: int | None = Field(default=None, primary_key=True)
    task_id: int = Field(foreign_key="spending_tasks.id", index=True)
    vendor: str | None = Field(default=None, max_length=200)
    receipt_no: str | None = Field(default=None, max_length=100)
    receipt_date: datetime | None = Field(default=None)
    notes: str | None = Field(default=None, max_length=500)
    total_amount: int = Field(sa_column=sa.Column(sa.BigInteger, nullable=False))
    created_at: datetime = Field(default_factory=utcnow, index=True)


class ReceiptItem(SQLModel, table=True):
    """Line item of a receipt."""

    __tablename__ = "receipt_items"

    id: int | None = Field(default=None, primary_key=True)
    receipt_id: int = Field(foreign_key="receipts.id", index=True)
    description: str = Field(max_length=255)
    quantity: int
    unit_price: int = Field(sa_column=sa.Column(sa.BigInteger, nullable=False))
    total: int = Field(sa_column=sa.Column(sa.BigInteger, nullable=False))


class ReceiptAttachment(SQLModel, table=True):
    """Uploaded receipt file; only the attachment store URL is kept."""

    __tablename__ = "receipt_attachments"

    id: int | None = Field(default=None, primary_key=True)
    receipt_id: int = Field(foreign_key="receipts.id", index=True)
    file_url: str = Field(max_length=512)
    file_name: str | None = Field(default=None, max_length=255)
    mime_type: str | None = Field(default=None, max_length=100)
    size_bytes: int | None = Field(default=None)


# =============================================================================
# 4. Cashback
# =============================================================================


class Cashback(SQLModel, table=True):
    """Cashback returned by a vendor; mirrored by a wallet CREDIT."""

    __tablename__ = "cashbacks"

    id: int | None = Field(default=None, primary_key=True)
    receipt_id: int = Field(foreign_key="receipts.id", index=True)
    amount: int = Field(sa_column=sa.Column(sa.BigInteger, nullable=False))
    vendor: str | None = Field(default=None, max_length=200)
    notes: str | None = Field(default=None, max_length=500)
    occurred_at: datetime = Field(index=True)
    created_by: str = Field(max_length=64)
    created_at: datetime = Field(default_factory=utcnow)


# =============================================================================
# 5. Task Settlement
# =============================================================================


class SettlementType(str, Enum):
    """Settlement direction."""

    REFUND = "REFUND"  # Leftover budget returned to the funder
    REIMBURSE = "REIMBURSE"  # Overspend paid back to the spender


class SettlementStatus(str, Enum):
    """Settlement status. DONE locks the task permanently."""

    PENDING = "PENDING"
    DONE = "DONE"


class TaskSettlement(SQLModel, table=True):
    """Settlement of a task, at most one per (task, type)."""

    __tablename__ = "task_settlements"

    id: int | None = Field(default=None, primary_key=True)
    task_id: int = Field(foreign_key="spending_tasks.id", index=True)
    type: SettlementType
    status: SettlementStatus = Field(default=SettlementStatus.PENDING, index=True)
    amount: int = Field(sa_column=sa.Column(sa.BigInteger, nullable=False))
    done_at: datetime | None = Field(default=None)
    notes: str | None = Field(default=None, max_length=500)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    __table_args__ = (sa.UniqueConstraint("task_id", "type", name="uq_task_settlement_type"),)
