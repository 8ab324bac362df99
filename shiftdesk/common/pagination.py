"""Page/size/sort query parameters and a LIMIT/OFFSET helper for list endpoints."""


import math
from typing import Any, Optional, Sequence

from fastapi import Query
from pydantic import BaseModel
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from shiftdesk.common.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE


class PaginationParams:
    """Inject via ``Depends()`` on list endpoints (history, events, requests)."""

    def __init__(
        self,
        page: int = Query(default=1, ge=1),
        page_size: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
        sort: Optional[str] = Query(
            default=None,
            description='Column to sort by; prefix "-" for descending (e.g. "-date")',
        ),
    ) -> None:
        self.page = page
        self.page_size = page_size
        self.sort = sort

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


class PaginationMeta(BaseModel):
    page: int
    page_size: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


def build_meta(page: int, page_size: int, total: int) -> PaginationMeta:
    total_pages = math.ceil(total / page_size) if total else 0
    return PaginationMeta(
        page=page,
        page_size=page_size,
        total=total,
        total_pages=total_pages,
        has_next=page < total_pages,
        has_prev=page > 1,
    )


def _sort_clause(model: Any, sort: str):
    descending = sort.startswith("-")
    column = model.__table__.columns.get(sort.lstrip("-"))
    if column is None:
        return None
    return column.desc() if descending else column.asc()


async def paginate(
    session: AsyncSession,
    query: Select,
    params: PaginationParams,
    *,
    model: Any = None,
) -> tuple[Sequence[Any], PaginationMeta]:
    """
    Run one page of *query* and return ``(rows, meta)``.

    ``params.sort`` must name a column of *model*'s table; anything else is
    ignored and the query's own ORDER BY is kept. The primary key breaks ties
    so a record never shows up on two pages.
    """
    if params.sort and model is not None:
        clause = _sort_clause(model, params.sort)
        if clause is not None:
            query = query.order_by(None).order_by(clause, *model.__table__.primary_key.columns)

    count_q = select(func.count()).select_from(query.order_by(None).subquery())
    total: int = (await session.execute(count_q)).scalar_one()

    rows = (
        await session.execute(query.offset(params.offset).limit(params.page_size))
    ).scalars().all()

    return rows, build_meta(params.page, params.page_size, total)
