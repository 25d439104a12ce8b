"""Small shared helpers."""

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in every ``created_at`` column."""
    return datetime.now(UTC).replace(tzinfo=None)


def format_amount(amount: int) -> str:
    """Format an amount in the smallest currency unit with dot thousand separators.

    Example: 1500000 -> "1.500.000"
    """
    sign = "-" if amount < 0 else ""
    return sign + f"{abs(amount):,}".replace(",", ".")
