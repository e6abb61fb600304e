"""Pagination parameters and query helper."""

from typing import Any

from pydantic import BaseModel, Field
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession


class PaginationParams(BaseModel):
    """Query parameters for pagination.

    Can be used as dependency in FastAPI routes:
    ```python
    @router.get("/items")
    async def list_items(pagination: PaginationParams = Depends()):
        items, total = await paginate(session, select(Item), pagination)
    ```

    Frontend can disable pagination by using page=None.
    """

    page: int | None = Field(default=1, ge=1, description="Page number (1-indexed). Set to None to disable pagination")

    page_size: int | None = Field(
        default=50, ge=1, le=1000, description="Items per page. Set to None to disable pagination"
    )

    @property
    def skip(self) -> int:
        """Calculate skip/offset for database query."""
        if self.page is None or self.page_size is None:
            return 0
        return (self.page - 1) * self.page_size

    @property
    def limit(self) -> int | None:
        """Calculate limit for database query (None = no limit)."""
        return self.page_size

    @property
    def is_paginated(self) -> bool:
        """Check if pagination is enabled."""
        return self.page is not None and self.page_size is not None


async def paginate(session: AsyncSession, stmt: Select, pagination: PaginationParams) -> tuple[list[Any], int]:
    """Run a select statement with offset/limit applied.

    Args:
        session: Database session
        stmt: Select statement returning ORM entities, ordering included
        pagination: PaginationParams with page and page_size

    Returns:
        Tuple of (items, total_count)

    """
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = (await session.execute(count_stmt)).scalar_one()

    if pagination.is_paginated:
        stmt = stmt.offset(pagination.skip).limit(pagination.limit)

    result = await session.execute(stmt)
    return list(result.scalars().all()), total
