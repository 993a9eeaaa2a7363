"""
AtlasPM Backend — List Pagination & Sorting
============================================

What:  Page/page_size/sort handling shared by every list endpoint.
How:   Offset pagination. `page_size=0` means "no limit" (the whole result
       set in one page), which the map view uses to plot every project.

Sorting:
    Each resource declares a safelist of sortable keys. A leading "-" sorts
    descending. Ties are always broken by the primary key so pages are
    stable between requests.
"""

import math
from dataclasses import dataclass
from typing import Dict, List, Tuple

from sqlalchemy import Select, asc, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from atlaspm.exceptions import ValidationError
from atlaspm.schemas.common import PageMetadata

MAX_PAGE_SIZE = 100
MAX_PAGE = 10_000_000


@dataclass(frozen=True)
class ListParams:
    page: int = 1
    page_size: int = 0
    sort: str = ""

    def validate(self, sort_safelist: Dict[str, object]) -> None:
        errors = {}
        if self.page < 1 or self.page > MAX_PAGE:
            errors["page"] = f"must be between 1 and {MAX_PAGE}"
        if self.page_size < 0 or self.page_size > MAX_PAGE_SIZE:
            errors["page_size"] = f"must be between 0 and {MAX_PAGE_SIZE}"
        if self.sort and self.sort.lstrip("-") not in sort_safelist:
            errors["sort"] = "invalid sort value"
        if errors:
            raise ValidationError(fields=errors)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size if self.page_size else 0


def calculate_metadata(total_records: int, page: int, page_size: int) -> PageMetadata:
    """Empty metadata when there is nothing to page through."""
    if total_records == 0:
        return PageMetadata()
    size = page_size or total_records
    return PageMetadata(
        current_page=page,
        page_size=size,
        first_page=1,
        last_page=math.ceil(total_records / size),
        total_records=total_records,
    )


async def paginate(
    db: AsyncSession,
    stmt: Select,
    params: ListParams,
    sort_columns: Dict[str, object],
    default_sort: str,
    tie_breaker,
) -> Tuple[List, PageMetadata]:
    """
    Count, sort and slice `stmt`.

    Args:
        db: Session (caller owns the transaction)
        stmt: SELECT with filters applied, no ORDER BY / LIMIT
        params: Page, page size and sort key from the query string
        sort_columns: Safelisted sort key → column
        default_sort: Sort key used when the client sends none
        tie_breaker: Column appended to ORDER BY for stable pages

    Returns:
        (rows, metadata) where rows are whatever `stmt` selects
    """
    params.validate(sort_columns)

    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = (await db.execute(count_stmt)).scalar_one()

    key = params.sort or default_sort
    column = sort_columns[key.lstrip("-")]
    direction = desc if key.startswith("-") else asc
    stmt = stmt.order_by(direction(column), asc(tie_breaker))

    if params.page_size:
        stmt = stmt.limit(params.page_size).offset(params.offset)

    result = await db.execute(stmt)
    return list(result.scalars().all()), calculate_metadata(total, params.page, params.page_size)
