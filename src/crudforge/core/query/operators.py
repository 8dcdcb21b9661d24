# src/crudforge/core/query/operators.py
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple


class OperatorKind(str, Enum):
    """Comparison operators understood by filter parameters."""

    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GE = "ge"
    LT = "lt"
    LE = "le"
    LIKE = "like"
    NOT_LIKE = "not_like"
    IN = "in"
    NOT_IN = "not_in"
    STARTS = "starts"
    ENDS = "ends"


# Maps operator names from API query params to operators.
# For example, `?age__gte=18` resolves 'gte' to `OperatorKind.GE`.
OPERATOR_MAP: Dict[str, OperatorKind] = {
    "eq": OperatorKind.EQ,
    "ne": OperatorKind.NE,
    "neq": OperatorKind.NE,
    "gt": OperatorKind.GT,
    "ge": OperatorKind.GE,
    "gte": OperatorKind.GE,
    "lt": OperatorKind.LT,
    "le": OperatorKind.LE,
    "lte": OperatorKind.LE,
    "like": OperatorKind.LIKE,
    "not_like": OperatorKind.NOT_LIKE,
    "notlike": OperatorKind.NOT_LIKE,
    "in": OperatorKind.IN,
    "not_in": OperatorKind.NOT_IN,
    "notin": OperatorKind.NOT_IN,
    "starts": OperatorKind.STARTS,
    "startswith": OperatorKind.STARTS,
    "ends": OperatorKind.ENDS,
    "endswith": OperatorKind.ENDS,
}

# Operators that expect a list of values, typically comma-separated.
LIST_OPERATORS: FrozenSet[OperatorKind] = frozenset({OperatorKind.IN, OperatorKind.NOT_IN})

# Pattern operators; their values always stay text
TEXT_OPERATORS: FrozenSet[OperatorKind] = frozenset(
    {OperatorKind.LIKE, OperatorKind.NOT_LIKE, OperatorKind.STARTS, OperatorKind.ENDS}
)

# Suffix form (`name_like=`), longest first so `_not_like` wins over `_like`
SUFFIX_OPERATORS: List[Tuple[str, OperatorKind]] = sorted(
    [
        ("_like", OperatorKind.LIKE),
        ("_not_like", OperatorKind.NOT_LIKE),
        ("_gt", OperatorKind.GT),
        ("_gte", OperatorKind.GE),
        ("_lt", OperatorKind.LT),
        ("_lte", OperatorKind.LE),
        ("_ne", OperatorKind.NE),
        ("_in", OperatorKind.IN),
        ("_not_in", OperatorKind.NOT_IN),
        ("_starts", OperatorKind.STARTS),
        ("_ends", OperatorKind.ENDS),
    ],
    key=lambda item: len(item[0]),
    reverse=True,
)


def resolve_operator(name: str) -> Optional[OperatorKind]:
    """Operator for ``name`` (canonical or alias), or ``None`` when unknown."""
    return OPERATOR_MAP.get(name.lower())
