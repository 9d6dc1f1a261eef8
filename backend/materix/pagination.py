"""Pagination and sorting descriptors shared by every list endpoint."""
from dataclasses import dataclass, field
from typing import Callable, Mapping

from fastapi import Query
from pydantic import BaseModel
from sqlalchemy.sql.elements import ColumnElement

from materix.validator import Validator, permitted_value

MAX_PAGE = 10_000_000
MAX_PAGE_SIZE = 100


@dataclass
class Filters:
    page: int = 1
    page_size: int = 20
    sort: str = "id"
    sort_safelist: tuple[str, ...] = field(default_factory=lambda: ("id",))

    def sort_column(self) -> str:
        """Column name for ``sort``; refuses anything outside the safelist."""
        if self.sort in self.sort_safelist:
            return self.sort.lstrip("-")
        raise ValueError(f"unsafe sort parameter: {self.sort}")

    def is_descending(self) -> bool:
        return self.sort.startswith("-")

    def order_by(self, columns: Mapping[str, ColumnElement]) -> ColumnElement:
        column = columns[self.sort_column()]
        return column.desc() if self.is_descending() else column.asc()

    def limit(self) -> int:
        return self.page_size

    def offset(self) -> int:
        return (self.page - 1) * self.page_size


def validate_filters(v: Validator, f: Filters) -> None:
    v.check(f.page > 0, "page", "must be greater than zero")
    v.check(f.page <= MAX_PAGE, "page", "must be a maximum of 10 million")
    v.check(f.page_size > 0, "page_size", "must be greater than zero")
    v.check(f.page_size <= MAX_PAGE_SIZE, "page_size", "must be a maximum of 100")
    v.check(permitted_value(f.sort, *f.sort_safelist), "sort", "invalid sort value")


class Meta(BaseModel):
    current_page: int = 0
    page_size: int = 0
    first_page: int = 0
    last_page: int = 0
    total_records: int = 0


def calculate_meta(total_records: int, page: int, page_size: int) -> Meta:
    if total_records == 0:
        return Meta()
    return Meta(
        current_page=page,
        page_size=page_size,
        first_page=1,
        last_page=(total_records + page_size - 1) // page_size,
        total_records=total_records,
    )


def paginate(query, filters: Filters) -> tuple[list, Meta]:
    """Run ``query`` for one page.

    The query's first selected column must be ``count(*) OVER()``; its value on
    any returned row is the size of the whole result set.
    """
    rows = query.limit(filters.limit()).offset(filters.offset()).all()
    total = rows[0][0] if rows else 0
    return rows, calculate_meta(total, filters.page, filters.page_size)


def filters_dependency(sort_safelist: tuple[str, ...], default_sort: str) -> Callable[..., Filters]:
    """Build a FastAPI dependency that reads and validates page/page_size/sort."""

    def _filters(
        page: int = Query(1),
        page_size: int = Query(20),
        sort: str = Query(default_sort),
    ) -> Filters:
        filters = Filters(page=page, page_size=page_size, sort=sort, sort_safelist=sort_safelist)
        v = Validator()
        validate_filters(v, filters)
        v.raise_if_invalid()
        return filters

    return _filters
