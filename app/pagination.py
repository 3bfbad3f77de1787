"""
Paging and sorting for list endpoints.

Clients page through results with three query parameters:

    ?page=0&size=20&sort=balance,desc&sort=account_number

  - page: zero-based page index
  - size: number of records per page
  - sort: repeatable, "field" or "field,direction" (asc/desc, default asc)

Only whitelisted fields can be sorted on. Sorting by an arbitrary
attribute name would otherwise let a client reach any mapped column. An
`id ASC` tie-breaker is always appended so that records with equal sort
values keep a stable order across pages.
"""

import math
from dataclasses import dataclass
from typing import Generic, TypeVar

from app.exceptions import InvalidAccountDataError

T = TypeVar("T")

SORT_ASC = "asc"
SORT_DESC = "desc"


@dataclass(frozen=True)
class SortKey:
    field: str
    direction: str = SORT_ASC


@dataclass(frozen=True)
class PageSpec:
    """Which slice of an ordered result set to return."""
    page: int = 0
    size: int = 20
    sort: tuple[SortKey, ...] = ()

    def __post_init__(self):
        if self.page < 0:
            raise InvalidAccountDataError("page", "must be greater than or equal to 0")
        if self.size <= 0:
            raise InvalidAccountDataError("size", "must be greater than 0")

    @property
    def offset(self) -> int:
        return self.page * self.size


@dataclass
class Page(Generic[T]):
    """A bounded slice of results plus the totals needed to page through the rest."""
    items: list[T]
    page: int
    size: int
    total_items: int
    sort: tuple[SortKey, ...] = ()

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_items / self.size) if self.size else 0


def parse_sort(values: list[str] | None, allowed: frozenset[str]) -> tuple[SortKey, ...]:
    """
    Parse "field,direction" sort parameters into SortKeys.

    Args:
        values: Raw query values, e.g. ["balance,desc", "account_number"].
        allowed: Field names that may be sorted on.

    Raises:
        InvalidAccountDataError: Unknown field or direction.
    """
    keys: list[SortKey] = []
    for raw in values or []:
        parts = [part.strip() for part in raw.split(",") if part.strip()]
        if not parts:
            continue
        name = parts[0]
        direction = parts[1].lower() if len(parts) > 1 else SORT_ASC
        if name not in allowed:
            raise InvalidAccountDataError(
                "sort", f"cannot sort by '{name}'; allowed: {', '.join(sorted(allowed))}"
            )
        if direction not in (SORT_ASC, SORT_DESC):
            raise InvalidAccountDataError("sort", f"direction must be 'asc' or 'desc', got '{direction}'")
        keys.append(SortKey(name, direction))
    return tuple(keys)
