# src/crudforge/core/introspection/table.py
"""Bridge between descriptors and SQLAlchemy ``Table`` objects."""

import uuid
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Time,
    Uuid,
)

from crudforge.core.errors import SchemaError
from crudforge.core.models.descriptor import FieldDescriptor, ModelDescriptor

# Python type -> SQLAlchemy column type
SQL_TYPE_MAP = {
    bool: Boolean,
    int: Integer,
    float: Float,
    Decimal: Numeric,
    str: String,
    datetime: DateTime,
    date: Date,
    time: Time,
    uuid.UUID: Uuid,
    dict: JSON,
    list: JSON,
}


def _python_type(column: Column) -> Optional[type]:
    try:
        return column.type.python_type
    except NotImplementedError:
        return None


def _is_auto_increment(table: Table, column: Column) -> bool:
    pk_columns = list(table.primary_key.columns)
    if len(pk_columns) != 1 or pk_columns[0] is not column:
        return False
    if _python_type(column) is not int:
        return False
    return column.autoincrement in (True, "auto")


def descriptor_from_table(table: Table) -> ModelDescriptor:
    """Build a descriptor where every column of ``table`` is a persisted field."""
    if not len(table.columns):
        raise SchemaError(f"Table '{table.name}' has no columns")

    fields: List[FieldDescriptor] = []
    auto_increment = None
    for column in table.columns:
        is_auto = _is_auto_increment(table, column)
        if is_auto:
            auto_increment = column.name
        fields.append(
            FieldDescriptor(
                storage_name=column.name,
                display_name=column.name,
                type_tag=str(column.type),
                python_type=_python_type(column),
                is_primary_key=column.primary_key,
                is_auto_increment=is_auto,
                nullable=bool(column.nullable),
            )
        )

    return ModelDescriptor(
        table_name=table.name,
        fields=fields,
        primary_keys=[c.name for c in table.primary_key.columns],
        auto_increment_field=auto_increment,
    )


def _sql_type(python_type: Any) -> Any:
    if isinstance(python_type, type) and issubclass(python_type, Enum):
        return String
    # Generic aliases such as Dict[str, Any] map through their origin
    origin = getattr(python_type, "__origin__", None)
    return SQL_TYPE_MAP.get(origin or python_type, String)


def table_from_descriptor(descriptor: ModelDescriptor, metadata: MetaData) -> Table:
    """Return the ``Table`` for ``descriptor``, declaring it on ``metadata`` if needed.

    Args:
        descriptor: Schema to map
        metadata: MetaData collection the table belongs to

    Returns:
        Table: The existing table of the same name, or a freshly declared one
    """
    existing = metadata.tables.get(descriptor.table_name)
    if existing is not None:
        return existing

    columns = []
    for field in descriptor.fields:
        columns.append(
            Column(
                field.storage_name,
                _sql_type(field.python_type),
                primary_key=field.is_primary_key,
                autoincrement=field.is_auto_increment,
                nullable=field.nullable and not field.is_primary_key,
                default=field.default,
            )
        )
    return Table(descriptor.table_name, metadata, *columns)
