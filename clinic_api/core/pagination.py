"""
Page-based listing for the collection endpoints.

A page is returned as ``{<items_key>: [...], "pagination": {...}}`` so the
patient list reads ``patients`` and the user list reads ``users``.
"""
import math
from typing import Any, Dict, Optional, Type

from fastapi import Query
from pydantic import BaseModel
from sqlalchemy.orm import Query as SQLAlchemyQuery

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 10


class PageParams:
    """
    Page parameters taken from the query string.

    Attributes:
        page: Page number (1-indexed)
        limit: Number of items per page (at most 100)

    Out of range values are clamped rather than rejected; a zero limit
    falls back to the default page size.
    """
    def __init__(
        self,
        page: int = Query(1, description="Page number"),
        limit: int = Query(DEFAULT_PAGE_SIZE, description="Items per page"),
    ):
        self.page = max(1, page)
        self.limit = min(MAX_PAGE_SIZE, max(1, limit or DEFAULT_PAGE_SIZE))

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total: int
    per_page: int
    has_next_page: bool
    has_prev_page: bool

    @classmethod
    def for_page(cls, page_params: PageParams, total: int) -> "Pagination":
        total_pages = math.ceil(total / page_params.limit) if total else 0
        return cls(
            current_page=page_params.page,
            total_pages=total_pages,
            total=total,
            per_page=page_params.limit,
            has_next_page=page_params.page < total_pages,
            has_prev_page=page_params.page > 1,
        )


def paginate(
    query: SQLAlchemyQuery,
    page_params: PageParams,
    schema_class: Optional[Type[BaseModel]] = None,
    items_key: str = "items",
) -> Dict[str, Any]:
    """
    Run one page of an ordered query.

    Args:
        query: SQLAlchemy query, already filtered and ordered
        page_params: Page and page size
        schema_class: Pydantic model each row is converted to
        items_key: Key the rows are placed under

    Returns:
        Dict with the rows and their pagination block
    """
    total = query.count()
    rows = query.offset(page_params.offset).limit(page_params.limit).all()
    if schema_class:
        rows = [schema_class.model_validate(row) for row in rows]
    return {items_key: rows, "pagination": Pagination.for_page(page_params, total)}
