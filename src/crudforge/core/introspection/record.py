# src/crudforge/core/introspection/record.py
"""Build :class:`ModelDescriptor` objects from record classes."""

import dataclasses
import re
from functools import lru_cache
from typing import Annotated, Any, Iterator, List, Optional, Tuple, get_args, get_origin, get_type_hints

from pydantic import BaseModel

from crudforge.core.errors import SchemaError
from crudforge.core.models.descriptor import Column, FieldDescriptor, ModelDescriptor
from crudforge.core.values import is_optional, type_tag, unwrap_optional

_CAMEL_BOUNDARY = re.compile(r"(.)([A-Z][a-z]+)")
_LOWER_UPPER = re.compile(r"([a-z0-9])([A-Z])")


def to_snake_case(name: str) -> str:
    """``UserProfile`` -> ``user_profile``, ``HTTPLog`` -> ``http_log``."""
    name = _CAMEL_BOUNDARY.sub(r"\1_\2", name)
    return _LOWER_UPPER.sub(r"\1_\2", name).lower()


def resolve_table_name(record_type: type) -> str:
    """Explicit ``table_name()`` / ``__tablename__`` first, else the snake-cased class name."""
    explicit = getattr(record_type, "table_name", None)
    if callable(explicit):
        name = explicit()
        if isinstance(name, str) and name:
            return name
    tablename = getattr(record_type, "__tablename__", None)
    if isinstance(tablename, str) and tablename:
        return tablename
    return to_snake_case(record_type.__name__)


def _column_marker(metadata: Any) -> Optional[Column]:
    for item in metadata or ():
        if isinstance(item, Column):
            return item
    return None


def _iter_pydantic_fields(model: type) -> Iterator[Tuple[str, Any, Optional[Column], Any]]:
    for name, info in model.model_fields.items():
        default = None if info.is_required() or info.default_factory is not None else info.default
        yield name, info.annotation, _column_marker(info.metadata), default


def _iter_dataclass_fields(record_type: type) -> Iterator[Tuple[str, Any, Optional[Column], Any]]:
    hints = get_type_hints(record_type, include_extras=True)
    for field in dataclasses.fields(record_type):
        annotation = hints.get(field.name, field.type)
        marker = None
        if get_origin(annotation) is Annotated:
            base, *extras = get_args(annotation)
            marker = _column_marker(extras)
            annotation = base
        default = None if field.default is dataclasses.MISSING else field.default
        yield field.name, annotation, marker, default


def _iter_fields(record_type: Any) -> Iterator[Tuple[str, Any, Optional[Column], Any]]:
    if isinstance(record_type, type) and issubclass(record_type, BaseModel):
        return _iter_pydantic_fields(record_type)
    if isinstance(record_type, type) and dataclasses.is_dataclass(record_type):
        return _iter_dataclass_fields(record_type)
    raise SchemaError(
        f"{record_type!r} is not a record type (expected a pydantic model or a dataclass)"
    )


def build_descriptor(record_type: type) -> ModelDescriptor:
    """Derive the descriptor for ``record_type``, once per type.

    Raises:
        SchemaError: when the type is not a record or has no persisted fields.
    """
    if not isinstance(record_type, type):
        raise SchemaError(f"{record_type!r} is not a record type")
    return _build_descriptor(record_type)


@lru_cache(maxsize=None)
def _build_descriptor(record_type: type) -> ModelDescriptor:
    fields: List[FieldDescriptor] = []
    primary_keys: List[str] = []
    auto_increment: List[str] = []

    for name, annotation, marker, default in _iter_fields(record_type):
        if marker is None:
            continue
        storage_name = marker.name or to_snake_case(name)
        fields.append(
            FieldDescriptor(
                storage_name=storage_name,
                display_name=name,
                type_tag=type_tag(annotation),
                python_type=unwrap_optional(annotation),
                is_primary_key=marker.primary_key,
                is_auto_increment=marker.auto_increment,
                nullable=is_optional(annotation),
                default=default,
            )
        )
        if marker.primary_key:
            primary_keys.append(storage_name)
        if marker.auto_increment:
            auto_increment.append(storage_name)

    type_name = getattr(record_type, "__name__", repr(record_type))
    if not fields:
        raise SchemaError(f"{type_name} declares no persisted fields")
    if len(auto_increment) > 1:
        raise SchemaError(
            f"{type_name} declares more than one auto-increment field: {', '.join(auto_increment)}"
        )

    return ModelDescriptor(
        table_name=resolve_table_name(record_type),
        fields=fields,
        primary_keys=primary_keys,
        auto_increment_field=auto_increment[0] if auto_increment else None,
    )
