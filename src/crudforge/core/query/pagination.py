# src/crudforge/core/query/pagination.py
"""Page/offset arithmetic and sort parsing."""

import math
from typing import Any, Generic, List, Mapping, Optional, Tuple, TypeVar

from pydantic import BaseModel, ConfigDict, Field, computed_field

from crudforge.core.errors import InvalidParameterError

DEFAULT_PAGE_SIZE = 10

PAGE_PARAMS = ("page", "pageNum")
SIZE_PARAMS = ("size", "pageSize")
SORT_PARAMS = ("sort", "orderBy")

T = TypeVar("T")


class SortOrder(BaseModel):
    model_config = ConfigDict(frozen=True)

    column: str
    desc: bool = False


class PageRequest(BaseModel):
    """Requested page, 1-based."""

    model_config = ConfigDict(frozen=True)

    page_num: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    @property
    def offset(self) -> int:
        return (self.page_num - 1) * self.page_size

    @property
    def limit(self) -> int:
        return self.page_size


class PageResult(BaseModel, Generic[T]):
    """One page of rows plus the counters clients need to page further."""

    model_config = ConfigDict(populate_by_name=True)

    page_num: int = Field(alias="pageNum")
    page_size: int = Field(alias="pageSize")
    total: int
    data: List[T] = []

    @computed_field(alias="totalPages")
    @property
    def total_pages(self) -> int:
        return total_pages(self.total, self.page_size)


def paginate(
    page_num: Optional[int] = None,
    page_size: Optional[int] = None,
    default_size: int = DEFAULT_PAGE_SIZE,
    max_size: Optional[int] = None,
) -> Tuple[int, int]:
    """Return ``(offset, limit)`` for a 1-based page.

    Missing or non-positive values fall back to page 1 and size ``default_size``
    clamped to at least 1. ``max_size`` caps the size when given.
    """
    page = page_num if page_num is not None else 1
    size = page_size if page_size is not None else default_size
    page = max(page, 1)
    size = max(size, 1)
    if max_size is not None:
        size = min(size, max_size)
    return (page - 1) * size, size


def total_pages(total: int, page_size: int) -> int:
    if total <= 0:
        return 0
    return math.ceil(total / max(page_size, 1))


def _first(params: Mapping[str, Any], names: Tuple[str, ...]) -> Optional[Any]:
    for name in names:
        value = params.get(name)
        if value is not None and str(value).strip() != "":
            return value
    return None


def _as_int(name: str, value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except ValueError as exc:
        raise InvalidParameterError(f"Parameter '{name}' must be an integer, got {value!r}") from exc


def page_request(
    params: Mapping[str, Any],
    default_size: int = DEFAULT_PAGE_SIZE,
    max_size: Optional[int] = None,
) -> PageRequest:
    """Read ``page``/``pageNum`` and ``size``/``pageSize`` from request params."""
    page = _as_int("page", _first(params, PAGE_PARAMS))
    size = _as_int("size", _first(params, SIZE_PARAMS))
    offset, limit = paginate(page, size, default_size, max_size)
    return PageRequest(page_num=offset // limit + 1, page_size=limit)


def parse_sort(text: Optional[str]) -> List[SortOrder]:
    """``"-created_at,name"`` -> ``[created_at desc, name asc]``.

    Blank tokens and a bare ``-`` are skipped; column names are not validated.
    """
    if not text:
        return []
    orders: List[SortOrder] = []
    for token in text.split(","):
        token = token.strip()
        desc = token.startswith("-")
        column = token[1:].strip() if desc else token
        if column:
            orders.append(SortOrder(column=column, desc=desc))
    return orders


def sort_orders(params: Mapping[str, Any]) -> List[SortOrder]:
    return parse_sort(_first(params, SORT_PARAMS))
