"""Filter parsing, pagination and the data-access builder."""

from crudforge.core.query.builder import QueryBuilder, SqlAlchemyQueryBuilder, escape_like
from crudforge.core.query.conditions import RESERVED_PARAMS, Condition, parse_conditions, split_parameter
from crudforge.core.query.operators import LIST_OPERATORS, OPERATOR_MAP, OperatorKind
from crudforge.core.query.pagination import (
    PageRequest,
    PageResult,
    SortOrder,
    page_request,
    paginate,
    parse_sort,
    total_pages,
)

__all__ = [
    "Condition",
    "LIST_OPERATORS",
    "OPERATOR_MAP",
    "OperatorKind",
    "PageRequest",
    "PageResult",
    "QueryBuilder",
    "RESERVED_PARAMS",
    "SortOrder",
    "SqlAlchemyQueryBuilder",
    "escape_like",
    "page_request",
    "paginate",
    "parse_conditions",
    "parse_sort",
    "split_parameter",
    "total_pages",
]
