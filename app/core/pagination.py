# app/core/pagination.py
"""
Pagination primitives shared by list endpoints
"""
from typing import TypeVar, Generic, List, Optional, Dict, Any, Sequence, Tuple
from pydantic import BaseModel, ConfigDict, Field, computed_field
from sqlalchemy import select, func, Select
from sqlalchemy.ext.asyncio import AsyncSession
from math import ceil

from app.db.models.enums import SortOrder

T = TypeVar('T')

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


class PaginationParams(BaseModel):
    """Page, page size and ordering for a list query"""
    page: int = Field(DEFAULT_PAGE, ge=1, description="Page number (1-indexed)")
    limit: int = Field(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT, description="Items per page")
    sort_by: str = Field("created_at", description="Column to sort by")
    sort_order: SortOrder = Field(SortOrder.DESC, description="ASC or DESC")

    @computed_field
    @property
    def offset(self) -> int:
        """Calculate offset for database query"""
        return (self.page - 1) * self.limit


class PaginationMeta(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total: int
    page: int
    limit: int
    total_pages: int = Field(..., alias="totalPages")
    has_next: bool = Field(..., alias="hasNext")
    has_prev: bool = Field(..., alias="hasPrev")

    @classmethod
    def build(cls, total: int, page: int, limit: int) -> "PaginationMeta":
        total_pages = ceil(total / limit) if total > 0 else 0
        return cls(
            total=total,
            page=page,
            limit=limit,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1
        )


class PaginatedResponse(BaseModel, Generic[T]):
    """
    Envelope returned by list endpoints
    """
    success: bool = True
    data: List[T]
    pagination: PaginationMeta
    filters: Dict[str, Any] = Field(default_factory=dict)


class AutoPaginator:
    """
    Count, order and slice an arbitrary select() in two round trips
    """

    @staticmethod
    async def paginate(
            db: AsyncSession,
            query: Select,
            params: PaginationParams,
            sort_columns: Dict[str, Any],
            tiebreaker: Optional[Any] = None
    ) -> Tuple[Sequence[Any], int]:
        """
        Args:
            db: Database session
            query: Filtered select() of a single entity
            params: Pagination parameters, ``sort_by`` must be a key of ``sort_columns``
            sort_columns: Allowed sort keys mapped to columns
            tiebreaker: Column appended to the ordering so pages are stable
        """
        count_query = select(func.count()).select_from(query.order_by(None).subquery())
        total = await db.scalar(count_query) or 0

        order_column = sort_columns[params.sort_by]
        if params.sort_order == SortOrder.DESC:
            ordering = [order_column.desc()]
            if tiebreaker is not None:
                ordering.append(tiebreaker.desc())
        else:
            ordering = [order_column.asc()]
            if tiebreaker is not None:
                ordering.append(tiebreaker.asc())

        query = query.order_by(*ordering).offset(params.offset).limit(params.limit)

        result = await db.execute(query)
        return result.scalars().all(), total
