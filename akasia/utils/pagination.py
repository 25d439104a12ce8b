"""Offset pagination for list endpoints."""

import math
from collections.abc import Callable
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select


@dataclass
class PaginationParams:
    """Page number (1-based) and page size."""

    page: int = 1
    page_size: int = 20

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


@dataclass
class PaginatedResult[T]:
    """One page of items plus the total row count."""

    items: list[T]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.total > 0 else 1

    def map[U](self, convert: Callable[[T], U]) -> "PaginatedResult[U]":
        """Same page with every item converted."""
        return PaginatedResult(
            items=[convert(item) for item in self.items],
            total=self.total,
            page=self.page,
            page_size=self.page_size,
        )


async def paginate_query[T](
    db: AsyncSession,
    query: Select,
    params: PaginationParams,
) -> PaginatedResult[T]:
    """Count the rows of ``query`` and fetch the requested page of it."""
    count_result = await db.execute(select(func.count()).select_from(query.subquery()))
    total = count_result.scalar() or 0

    result = await db.execute(query.offset(params.offset).limit(params.page_size))
    return PaginatedResult(
        items=list(result.scalars().all()),
        total=total,
        page=params.page,
        page_size=params.page_size,
    )
