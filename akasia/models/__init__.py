"""Models module - SQLModel database entities."""

from akasia.models.ledger import (
    OPERATING_KINDS,
    ExpenseItem,
    FuelPurchase,
    LedgerEntry,
    LedgerEntryKind,
    signed_amount,
)
from akasia.models.spending import (
    Cashback,
    Receipt,
    ReceiptAttachment,
    ReceiptItem,
    SettlementStatus,
    SettlementType,
    SpendingTask,
    SpendingTaskStatus,
    TaskFunding,
    TaskSettlement,
)
from akasia.models.vehicle import Vehicle
from akasia.models.wallet import Wallet, WalletEntry, WalletEntrySource, WalletEntryType

__all__ = [
    # Ledger
    "LedgerEntry",
    "LedgerEntryKind",
    "OPERATING_KINDS",
    "signed_amount",
    "ExpenseItem",
    "FuelPurchase",
    # Vehicle
    "Vehicle",
    # Spending
    "SpendingTask",
    "SpendingTaskStatus",
    "TaskFunding",
    "Receipt",
    "ReceiptItem",
    "ReceiptAttachment",
    "Cashback",
    "TaskSettlement",
    "SettlementType",
    "SettlementStatus",
    # Wallet
    "Wallet",
    "WalletEntry",
    "WalletEntryType",
    "WalletEntrySource",
]
