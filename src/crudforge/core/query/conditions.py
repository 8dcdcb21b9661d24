# src/crudforge/core/query/conditions.py
"""Parsing of ``field[__op]=value`` request parameters into typed conditions."""

from dataclasses import dataclass
from typing import Any, Collection, Iterable, List, Mapping, Optional, Tuple, Union

from crudforge.core.errors import FieldNotAllowedError, InvalidParameterError, UnsupportedOperatorError
from crudforge.core.logging import log
from crudforge.core.models.descriptor import ModelDescriptor
from crudforge.core.query.operators import (
    LIST_OPERATORS,
    SUFFIX_OPERATORS,
    TEXT_OPERATORS,
    OperatorKind,
    resolve_operator,
)
from crudforge.core.values import coerce_or_infer

# Control parameters consumed by pagination and sorting
RESERVED_PARAMS = frozenset({"page", "pageNum", "size", "pageSize", "sort", "orderBy"})

OPERATOR_SEPARATOR = "__"

Params = Union[Mapping[str, str], Iterable[Tuple[str, str]]]


@dataclass(frozen=True)
class Condition:
    """A single ``field <operator> value`` predicate."""

    field: str
    operator: OperatorKind
    value: Any


def split_parameter(name: str, descriptor: Optional[ModelDescriptor] = None) -> Tuple[str, OperatorKind]:
    """Split a parameter name into ``(field, operator)``.

    ``age__gte`` and ``age_gte`` both give ``("age", GE)``. The suffix form only
    applies when the prefix is a known field and the full name is not.

    Raises:
        UnsupportedOperatorError: for an unknown ``__op``.
    """
    if descriptor is not None and descriptor.has_field(name):
        return name, OperatorKind.EQ

    if OPERATOR_SEPARATOR in name:
        field, _, op_name = name.rpartition(OPERATOR_SEPARATOR)
        operator = resolve_operator(op_name)
        if operator is None or not field:
            raise UnsupportedOperatorError(name, op_name)
        return field, operator

    for suffix, operator in SUFFIX_OPERATORS:
        if not name.endswith(suffix) or len(name) == len(suffix):
            continue
        field = name[: -len(suffix)]
        if descriptor is None or descriptor.has_field(field):
            return field, operator

    return name, OperatorKind.EQ


def _split_list(parameter: str, raw: Any) -> List[str]:
    if isinstance(raw, (list, tuple)):
        tokens = [str(token).strip() for token in raw]
    else:
        tokens = [token.strip() for token in str(raw).split(",")]
    tokens = [token for token in tokens if token]
    if not tokens:
        raise InvalidParameterError(f"Parameter '{parameter}' needs at least one value")
    return tokens


def _typed_value(
    parameter: str,
    field: str,
    operator: OperatorKind,
    raw: Any,
    descriptor: Optional[ModelDescriptor],
) -> Any:
    python_type = descriptor.field(field).python_type if descriptor is not None else None

    if operator in LIST_OPERATORS:
        return [coerce_or_infer(token, python_type, parameter) for token in _split_list(parameter, raw)]
    if operator in TEXT_OPERATORS:
        # Patterns are always text, whatever the column type
        return str(raw)
    return coerce_or_infer(str(raw), python_type, parameter)


def parse_conditions(
    params: Params,
    descriptor: Optional[ModelDescriptor] = None,
    allowed: Optional[Collection[str]] = None,
) -> List[Condition]:
    """Parse request parameters into conditions, in parameter order.

    Args:
        params: Query parameters, as a mapping or as ``(name, value)`` pairs
        descriptor: Schema used to resolve field names and value types
        allowed: Fields that may be filtered on; ``None`` allows all

    Returns:
        List[Condition]: One condition per filter parameter

    Raises:
        UnsupportedOperatorError: unknown operator
        FieldNotAllowedError: filter on a field outside ``allowed``
        InvalidParameterError: value that does not convert, or an empty list
    """
    items = params.items() if isinstance(params, Mapping) else params
    conditions: List[Condition] = []

    for name, raw in items:
        if name in RESERVED_PARAMS:
            continue
        field, operator = split_parameter(name, descriptor)

        if descriptor is not None and not descriptor.has_field(field):
            # Not a column: left for custom stages (tokens, composite keys...)
            log.debug(f"Ignoring parameter '{name}': no field '{field}'")
            continue
        if allowed is not None and field not in allowed:
            raise FieldNotAllowedError(field, name)

        conditions.append(Condition(field, operator, _typed_value(name, field, operator, raw, descriptor)))

    return conditions
