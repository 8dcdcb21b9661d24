"""Turn record types and tables into schema descriptors."""

from crudforge.core.introspection.record import build_descriptor, resolve_table_name, to_snake_case
from crudforge.core.introspection.table import descriptor_from_table, table_from_descriptor

__all__ = [
    "build_descriptor",
    "descriptor_from_table",
    "resolve_table_name",
    "table_from_descriptor",
    "to_snake_case",
]
