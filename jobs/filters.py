"""
jobs/filters.py -- Safelist-checked sorting and pagination for listings.

SQL cannot bind a column name as a parameter, so ORDER BY is the one place
where caller input steers identifier-position query text. This module is
the gate for that:

  - The requested sort key (descending marker included) must appear verbatim
    in the entity's static safelist. Anything else -- a typo, "foo",
    "; DROP TABLE jobs" -- resolves to the fixed default, id ASC.
  - A resolved key becomes a SortOrder (column name + Direction enum). The
    store turns the column name into a SQLAlchemy Column object from its own
    Table definition, so even the safelisted string is never pasted into SQL.
  - Search terms, LIMIT and OFFSET always travel as bound parameters.

Precondition: page and page_size are positive. validate_filters() enforces
this and callers must run it (422 on failure) before building a query.
limit()/offset() do not re-check.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

from sqlalchemy import Table

from core.validator import Validator

SORT_DESCENDING_MARKER = "-"
DEFAULT_SORT_COLUMN = "id"

# Static per-entity safelist. Listing routes never build their own.
JOB_SORT_SAFELIST: tuple[str, ...] = (
    "id",
    "title",
    "company",
    "salary",
    "-id",
    "-title",
    "-company",
    "-salary",
)

MAX_PAGE = 10_000_000
MAX_PAGE_SIZE = 100


class Direction(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


@dataclass(frozen=True)
class SortOrder:
    column: str
    direction: Direction


_DEFAULT_ORDER = SortOrder(DEFAULT_SORT_COLUMN, Direction.ASC)


@dataclass(frozen=True)
class Filters:
    page: int = 1
    page_size: int = 20
    sort: str = DEFAULT_SORT_COLUMN
    sort_safelist: tuple[str, ...] = JOB_SORT_SAFELIST

    def sort_order(self) -> SortOrder:
        """Resolve the requested sort key against the safelist.

        Unknown keys fall back to id ASC as a whole -- a stray "-" on an
        unknown key does not flip the fallback to descending.
        """
        if self.sort not in self.sort_safelist:
            return _DEFAULT_ORDER
        if self.sort.startswith(SORT_DESCENDING_MARKER):
            return SortOrder(self.sort[len(SORT_DESCENDING_MARKER) :], Direction.DESC)
        return SortOrder(self.sort, Direction.ASC)

    def sort_column(self) -> str:
        return self.sort_order().column

    def sort_direction(self) -> Direction:
        return self.sort_order().direction

    def limit(self) -> int:
        return self.page_size

    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    def order_by(self, table: Table) -> list:
        """ORDER BY clauses for table: the resolved column, then id ASC as tiebreak."""
        order = self.sort_order()
        column = table.c[order.column]
        clauses = [column.desc() if order.direction is Direction.DESC else column.asc()]
        if order.column != "id":
            clauses.append(table.c.id.asc())
        return clauses


@dataclass(frozen=True)
class Metadata:
    """Paging summary returned alongside a listing. All zero when nothing matched."""

    current_page: int = 0
    page_size: int = 0
    first_page: int = 0
    last_page: int = 0
    total_records: int = 0


def calculate_metadata(total_records: int, page: int, page_size: int) -> Metadata:
    if total_records == 0:
        return Metadata()
    return Metadata(
        current_page=page,
        page_size=page_size,
        first_page=1,
        last_page=math.ceil(total_records / page_size),
        total_records=total_records,
    )


def validate_filters(v: Validator, filters: Filters) -> None:
    v.check(filters.page > 0, "page", "must be greater than zero")
    v.check(filters.page <= MAX_PAGE, "page", "must be a maximum of 10 million")
    v.check(filters.page_size > 0, "page_size", "must be greater than zero")
    v.check(filters.page_size <= MAX_PAGE_SIZE, "page_size", "must be a maximum of 100")
