# src/crudforge/core/values.py
"""Conversion of loosely typed request values into typed Python values.

Query strings only carry text and JSON bodies only carry JSON scalars, so
every value crossing the boundary is validated by pydantic against the
target field's Python type (lax mode: ``"1"`` -> 1, ``"true"`` -> True,
ISO datetimes, UUIDs and enum values).
"""

import re
from enum import Enum
from functools import lru_cache
from typing import Any, Dict, Mapping, Optional, Union, get_args, get_origin

from pydantic import ConfigDict, TypeAdapter, ValidationError
from pydantic.errors import PydanticSchemaGenerationError

from crudforge.core.errors import InvalidParameterError

_INT_RE = re.compile(r"^[+-]?\d+$")
_FLOAT_RE = re.compile(r"^[+-]?(\d+\.\d*|\.\d+|\d+)([eE][+-]?\d+)?$")

# Numbers sent for text columns are kept as text
_ADAPTER_CONFIG = ConfigDict(coerce_numbers_to_str=True)


def unwrap_optional(annotation: Any) -> Any:
    """``Optional[int]`` / ``int | None`` -> ``int``."""
    args = get_args(annotation)
    if args and type(None) in args:
        remaining = [a for a in args if a is not type(None)]
        if len(remaining) == 1:
            return remaining[0]
    return annotation


def is_optional(annotation: Any) -> bool:
    return type(None) in get_args(annotation)


def type_tag(annotation: Any) -> str:
    """Readable name for an annotation, e.g. ``int`` or ``Optional[datetime]``."""
    inner = unwrap_optional(annotation)
    if inner is not annotation:
        return f"Optional[{type_tag(inner)}]"
    if get_origin(annotation) is not None:
        return repr(annotation).replace("typing.", "")
    return getattr(annotation, "__name__", str(annotation))


def infer(raw: str) -> Union[int, float, str]:
    """Best-effort typing for values whose target type is unknown."""
    text = raw.strip()
    if _INT_RE.match(text):
        return int(text)
    if _FLOAT_RE.match(text):
        return float(text)
    return raw


@lru_cache(maxsize=None)
def _adapter(python_type: Any) -> Optional[TypeAdapter]:
    try:
        return TypeAdapter(python_type, config=_ADAPTER_CONFIG)
    except PydanticSchemaGenerationError:
        # Custom column types without a pydantic schema are stored as given
        return None


def coerce(value: Any, python_type: Any, name: str = "value") -> Any:
    """Convert ``value`` to ``python_type``.

    ``None`` passes through. Enum members are stored by value. Types pydantic
    cannot build a schema for are returned unchanged.

    Raises:
        InvalidParameterError: when the value does not validate.
    """
    if value is None or python_type is None:
        return value
    target = unwrap_optional(python_type)
    adapter = _adapter(target)
    if adapter is None:
        return value
    if isinstance(value, str) and target is not str:
        value = value.strip()
    try:
        result = adapter.validate_python(value)
    except ValidationError as exc:
        reason = exc.errors()[0]["msg"] if exc.errors() else str(exc)
        raise InvalidParameterError(
            f"Invalid value for '{name}': cannot convert {value!r} to {type_tag(target)} ({reason})"
        ) from exc
    return result.value if isinstance(result, Enum) else result


def coerce_payload(data: Mapping[str, Any], types: Mapping[str, Any]) -> Dict[str, Any]:
    """Coerce every known key of a payload; unknown keys pass through."""
    return {
        key: coerce(value, types[key], key) if types.get(key) is not None else value
        for key, value in data.items()
    }


def coerce_or_infer(raw: str, python_type: Optional[Any], name: str) -> Any:
    if python_type is None:
        return infer(raw)
    return coerce(raw, python_type, name)
