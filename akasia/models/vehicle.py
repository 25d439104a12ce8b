"""Akasia Operations Ledger - Vehicle model.

Vehicles are owned by the fleet module; the ledger only needs their
identity to attribute fuel purchases and expense items.
"""

from datetime import datetime

from sqlmodel import Field, SQLModel

from akasia.utils.helpers import utcnow


class Vehicle(SQLModel, table=True):
    """Fleet vehicle referenced by fuel purchases and expense items.

    Attributes:
        id: Auto-increment primary key
        name: Display name (e.g., 'Avanza Putih')
        license_plate: Registration plate
        deleted_at: Soft-delete marker
    """

    __tablename__ = "vehicles"

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(max_length=100)
    license_plate: str = Field(max_length=20, index=True)

    created_at: datetime = Field(default_factory=utcnow)
    deleted_at: datetime | None = Field(default=None)
