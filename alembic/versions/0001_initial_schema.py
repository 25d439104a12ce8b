"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Initial database schema for the Akasia operations ledger.
"""

from collections.abc import Sequence

import sqlalchemy as sa
import sqlmodel

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

ledger_entry_kind = sa.Enum("INCOME", "EXPENSE", "FUEL_PURCHASE", name="ledgerentrykind")
spending_task_status = sa.Enum(
    "DRAFT",
    "FUNDED",
    "SPENDING",
    "NEEDS_REFUND",
    "NEEDS_REIMBURSE",
    "SETTLED",
    name="spendingtaskstatus",
)
settlement_type = sa.Enum("REFUND", "REIMBURSE", name="settlementtype")
settlement_status = sa.Enum("PENDING", "DONE", name="settlementstatus")
wallet_entry_type = sa.Enum("CREDIT", "DEBIT", name="walletentrytype")
wallet_entry_source = sa.Enum(
    "CASHBACK", "CASHBACK_REVERSAL", "MANUAL", name="walletentrysource"
)


def upgrade() -> None:
    """Create initial database schema."""
    # Vehicles table
    op.create_table(
        "vehicles",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sqlmodel.sql.sqltypes.AutoString(length=100), nullable=False),
        sa.Column("license_plate", sqlmodel.sql.sqltypes.AutoString(length=20), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_vehicles_license_plate"), "vehicles", ["license_plate"], unique=False)

    # Ledger entries table
    op.create_table(
        "ledger_entries",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("kind", ledger_entry_kind, nullable=False),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.Column("description", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column("notes", sqlmodel.sql.sqltypes.AutoString(length=500), nullable=True),
        sa.Column("receipt_url", sqlmodel.sql.sqltypes.AutoString(length=512), nullable=True),
        sa.Column("occurred_at", sa.DateTime(), nullable=False),
        sa.Column("balance_before", sa.BigInteger(), nullable=False),
        sa.Column("balance_after", sa.BigInteger(), nullable=False),
        sa.Column("owner_user_id", sqlmodel.sql.sqltypes.AutoString(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_ledger_entries_kind"), "ledger_entries", ["kind"], unique=False)
    op.create_index(
        op.f("ix_ledger_entries_occurred_at"), "ledger_entries", ["occurred_at"], unique=False
    )
    op.create_index(
        op.f("ix_ledger_entries_owner_user_id"), "ledger_entries", ["owner_user_id"], unique=False
    )
    op.create_index(
        op.f("ix_ledger_entries_created_at"), "ledger_entries", ["created_at"], unique=False
    )
    op.create_index(
        op.f("ix_ledger_entries_deleted_at"), "ledger_entries", ["deleted_at"], unique=False
    )

    # Expense items table
    op.create_table(
        "expense_items",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("entry_id", sa.Integer(), nullable=False),
        sa.Column("description", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.BigInteger(), nullable=False),
        sa.Column("total", sa.BigInteger(), nullable=False),
        sa.Column("vehicle_id", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["entry_id"], ["ledger_entries.id"]),
        sa.ForeignKeyConstraint(["vehicle_id"], ["vehicles.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_expense_items_entry_id"), "expense_items", ["entry_id"], unique=False)
    op.create_index(
        op.f("ix_expense_items_vehicle_id"), "expense_items", ["vehicle_id"], unique=False
    )

    # Fuel purchases table
    op.create_table(
        "fuel_purchases",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("entry_id", sa.Integer(), nullable=False),
        sa.Column("vehicle_id", sa.Integer(), nullable=False),
        sa.Column("liter_amount", sa.DECIMAL(precision=10, scale=2), nullable=False),
        sa.Column("price_per_liter", sa.BigInteger(), nullable=False),
        sa.Column("total_amount", sa.BigInteger(), nullable=False),
        sa.Column("notes", sqlmodel.sql.sqltypes.AutoString(length=500), nullable=True),
        sa.ForeignKeyConstraint(["entry_id"], ["ledger_entries.id"]),
        sa.ForeignKeyConstraint(["vehicle_id"], ["vehicles.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_fuel_purchases_entry_id"), "fuel_purchases", ["entry_id"], unique=True)
    op.create_index(
        op.f("ix_fuel_purchases_vehicle_id"), "fuel_purchases", ["vehicle_id"], unique=False
    )

    # Spending tasks table
    op.create_table(
        "spending_tasks",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("title", sqlmodel.sql.sqltypes.AutoString(length=200), nullable=False),
        sa.Column("description", sqlmodel.sql.sqltypes.AutoString(length=1000), nullable=True),
        sa.Column("status", spending_task_status, nullable=False),
        sa.Column("created_by", sqlmodel.sql.sqltypes.AutoString(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_spending_tasks_status"), "spending_tasks", ["status"], unique=False)
    op.create_index(
        op.f("ix_spending_tasks_created_by"), "spending_tasks", ["created_by"], unique=False
    )
    op.create_index(
        op.f("ix_spending_tasks_created_at"), "spending_tasks", ["created_at"], unique=False
    )

    # Task fundings table
    op.create_table(
        "task_fundings",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("task_id", sa.Integer(), nullable=False),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.Column("received_at", sa.DateTime(), nullable=False),
        sa.Column("source", sqlmodel.sql.sqltypes.AutoString(length=100), nullable=False),
        sa.Column("notes", sqlmodel.sql.sqltypes.AutoString(length=500), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["task_id"], ["spending_tasks.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_task_fundings_task_id"), "task_fundings", ["task_id"], unique=True)
    op.create_index(
        op.f("ix_task_fundings_received_at"), "task_fundings", ["received_at"], unique=False
    )

    # Receipts table
    op.create_table(
        "receipts",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("task_id", sa.Integer(), nullable=False),
        sa.Column("vendor", sqlmodel.sql.sqltypes.AutoString(length=200), nullable=True),
        sa.Column("receipt_no", sqlmodel.sql.sqltypes.AutoString(length=100), nullable=True),
        sa.Column("receipt_date", sa.DateTime(), nullable=True),
        sa.Column("notes", sqlmodel.sql.sqltypes.AutoString(length=500), nullable=True),
        sa.Column("total_amount", sa.BigInteger(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["task_id"], ["spending_tasks.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_receipts_task_id"), "receipts", ["task_id"], unique=False)
    op.create_index(op.f("ix_receipts_created_at"), "receipts", ["created_at"], unique=False)

    # Receipt items table
    op.create_table(
        "receipt_items",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("receipt_id", sa.Integer(), nullable=False),
        sa.Column("description", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.BigInteger(), nullable=False),
        sa.Column("total", sa.BigInteger(), nullable=False),
        sa.ForeignKeyConstraint(["receipt_id"], ["receipts.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_receipt_items_receipt_id"), "receipt_items", ["receipt_id"], unique=False
    )

    # Receipt attachments table
    op.create_table(
        "receipt_attachments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("receipt_id", sa.Integer(), nullable=False),
        sa.Column("file_url", sqlmodel.sql.sqltypes.AutoString(length=512), nullable=False),
        sa.Column("file_name", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True),
        sa.Column("mime_type", sqlmodel.sql.sqltypes.AutoString(length=100), nullable=True),
        sa.Column("size_bytes", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["receipt_id"], ["receipts.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_receipt_attachments_receipt_id"),
        "receipt_attachments",
        ["receipt_id"],
        unique=False,
    )

    # Cashbacks table
    op.create_table(
        "cashbacks",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("receipt_id", sa.Integer(), nullable=False),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.Column("vendor", sqlmodel.sql.sqltypes.AutoString(length=200), nullable=True),
        sa.Column("notes", sqlmodel.sql.sqltypes.AutoString(length=500), nullable=True),
        sa.Column("occurred_at", sa.DateTime(), nullable=False),
        sa.Column("created_by", sqlmodel.sql.sqltypes.AutoString(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["receipt_id"], ["receipts.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_cashbacks_receipt_id"), "cashbacks", ["receipt_id"], unique=False)
    op.create_index(op.f("ix_cashbacks_occurred_at"), "cashbacks", ["occurred_at"], unique=False)

    # Task settlements table
    op.create_table(
        "task_settlements",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("task_id", sa.Integer(), nullable=False),
        sa.Column("type", settlement_type, nullable=False),
        sa.Column("status", settlement_status, nullable=False),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.Column("done_at", sa.DateTime(), nullable=True),
        sa.Column("notes", sqlmodel.sql.sqltypes.AutoString(length=500), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["task_id"], ["spending_tasks.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("task_id", "type", name="uq_task_settlement_type"),
    )
    op.create_index(
        op.f("ix_task_settlements_task_id"), "task_settlements", ["task_id"], unique=False
    )
    op.create_index(
        op.f("ix_task_settlements_status"), "task_settlements", ["status"], unique=False
    )

    # Wallets table
    op.create_table(
        "wallets",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sqlmodel.sql.sqltypes.AutoString(length=100), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_wallets_name"), "wallets", ["name"], unique=True)

    # Wallet entries table
    op.create_table(
        "wallet_entries",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("wallet_id", sa.Integer(), nullable=False),
        sa.Column("type", wallet_entry_type, nullable=False),
        sa.Column("source", wallet_entry_source, nullable=False),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.Column("description", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True),
        sa.Column("occurred_at", sa.DateTime(), nullable=False),
        sa.Column("attachment_url", sqlmodel.sql.sqltypes.AutoString(length=512), nullable=True),
        sa.Column("task_id", sa.Integer(), nullable=True),
        sa.Column("cashback_id", sa.Integer(), nullable=True),
        sa.Column("created_by", sqlmodel.sql.sqltypes.AutoString(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["wallet_id"], ["wallets.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_wallet_entries_wallet_id"), "wallet_entries", ["wallet_id"], unique=False
    )
    op.create_index(op.f("ix_wallet_entries_type"), "wallet_entries", ["type"], unique=False)
    op.create_index(op.f("ix_wallet_entries_source"), "wallet_entries", ["source"], unique=False)
    op.create_index(
        op.f("ix_wallet_entries_occurred_at"), "wallet_entries", ["occurred_at"], unique=False
    )
    op.create_index(op.f("ix_wallet_entries_task_id"), "wallet_entries", ["task_id"], unique=False)
    op.create_index(
        op.f("ix_wallet_entries_cashback_id"), "wallet_entries", ["cashback_id"], unique=False
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("wallet_entries")
    op.drop_table("wallets")
    op.drop_table("task_settlements")
    op.drop_table("cashbacks")
    op.drop_table("receipt_attachments")
    op.drop_table("receipt_items")
    op.drop_table("receipts")
    op.drop_table("task_fundings")
    op.drop_table("spending_tasks")
    op.drop_table("fuel_purchases")
    op.drop_table("expense_items")
    op.drop_table("ledger_entries")
    op.drop_table("vehicles")
    for enum_type in (
        wallet_entry_source,
        wallet_entry_type,
        settlement_status,
        settlement_type,
        spending_task_status,
        ledger_entry_kind,
    ):
        enum_type.drop(op.get_bind(), checkfirst=True)
