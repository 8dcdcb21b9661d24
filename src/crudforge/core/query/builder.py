# src/crudforge/core/query/builder.py
"""Chain-style data access used by the pipeline's build and execute stages."""

import copy
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

from sqlalchemy import MetaData, Table, delete, func, insert, select, update
from sqlalchemy.engine import Engine

from crudforge.core.errors import ExecutionError
from crudforge.core.introspection.table import table_from_descriptor
from crudforge.core.logging import color_palette, log
from crudforge.core.models.descriptor import ModelDescriptor
from crudforge.core.query.conditions import Condition
from crudforge.core.query.operators import OperatorKind
from crudforge.core.query.pagination import SortOrder

# Maps comparison operators to SQLAlchemy column methods.
# For example, `age__gte=18` calls `Column.__ge__(18)`.
COLUMN_METHODS: Dict[OperatorKind, str] = {
    OperatorKind.EQ: "__eq__",
    OperatorKind.NE: "__ne__",
    OperatorKind.GT: "__gt__",
    OperatorKind.GE: "__ge__",
    OperatorKind.LT: "__lt__",
    OperatorKind.LE: "__le__",
    OperatorKind.LIKE: "like",
    OperatorKind.NOT_LIKE: "not_like",
    OperatorKind.IN: "in_",
    OperatorKind.NOT_IN: "not_in",
    OperatorKind.STARTS: "like",
    OperatorKind.ENDS: "like",
}

# LIKE patterns around the escaped value
LIKE_PATTERNS: Dict[OperatorKind, str] = {
    OperatorKind.LIKE: "%{}%",
    OperatorKind.NOT_LIKE: "%{}%",
    OperatorKind.STARTS: "{}%",
    OperatorKind.ENDS: "%{}",
}

LIKE_ESCAPE = "\\"


class QueryBuilder(Protocol):
    """Data-access collaborator driven by the pipeline.

    Chain methods return a new builder and never touch the datastore; the
    terminal methods run the statement and raise on failure.
    """

    def build_filter(self, table: str, conditions: Sequence[Condition]) -> "QueryBuilder": ...

    def fields(self, names: Sequence[str]) -> "QueryBuilder": ...

    def order_by(self, orders: Sequence[SortOrder]) -> "QueryBuilder": ...

    def paginate(self, offset: int, limit: int) -> "QueryBuilder": ...

    def count(self) -> int: ...

    def list(self) -> List[Dict[str, Any]]: ...

    def one(self) -> Optional[Dict[str, Any]]: ...

    def insert(self, values: Mapping[str, Any]) -> Dict[str, Any]: ...

    def update(self, values: Mapping[str, Any]) -> int: ...

    def delete(self) -> int: ...


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user text matches literally."""
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


class SqlAlchemyQueryBuilder:
    """:class:`QueryBuilder` on SQLAlchemy Core, bound parameters only."""

    def __init__(self, engine: Engine, metadata: MetaData):
        self.engine = engine
        self.metadata = metadata
        self._table: Optional[Table] = None
        self._conditions: Tuple[Condition, ...] = ()
        self._fields: Tuple[str, ...] = ()
        self._orders: Tuple[SortOrder, ...] = ()
        self._offset: Optional[int] = None
        self._limit: Optional[int] = None

    def prepare(self, descriptor: ModelDescriptor) -> Table:
        """Declare the descriptor's table on this builder's metadata."""
        return table_from_descriptor(descriptor, self.metadata)

    # ===== Chain Methods =====

    def build_filter(self, table: str, conditions: Sequence[Condition]) -> "SqlAlchemyQueryBuilder":
        sql_table = self.metadata.tables.get(table)
        if sql_table is None:
            raise ExecutionError(f"Table '{table}' is not declared")
        for condition in conditions:
            if condition.field not in sql_table.c:
                raise ExecutionError(f"Unknown column '{condition.field}' in table '{table}'")
        return self._replace(_table=sql_table, _conditions=tuple(conditions))

    def fields(self, names: Sequence[str]) -> "SqlAlchemyQueryBuilder":
        return self._replace(_fields=tuple(names))

    def order_by(self, orders: Sequence[SortOrder]) -> "SqlAlchemyQueryBuilder":
        return self._replace(_orders=tuple(orders))

    def paginate(self, offset: int, limit: int) -> "SqlAlchemyQueryBuilder":
        return self._replace(_offset=offset, _limit=limit)

    # ===== Terminal Methods =====

    def count(self) -> int:
        # Ordering and paging do not change the count
        stmt = select(func.count()).select_from(self._require_table()).where(*self._where())
        with self.engine.connect() as conn:
            return conn.execute(stmt).scalar_one()

    def list(self) -> List[Dict[str, Any]]:
        with self.engine.connect() as conn:
            return [dict(row) for row in conn.execute(self._select()).mappings()]

    def one(self) -> Optional[Dict[str, Any]]:
        stmt = self._select().limit(1)
        with self.engine.connect() as conn:
            row = conn.execute(stmt).mappings().first()
        return dict(row) if row is not None else None

    def insert(self, values: Mapping[str, Any]) -> Dict[str, Any]:
        table = self._require_table()
        with self.engine.begin() as conn:
            result = conn.execute(insert(table).values(**values))
            keys = list(table.primary_key.columns)
            if not keys or result.inserted_primary_key is None:
                return dict(values)
            criteria = [col == value for col, value in zip(keys, result.inserted_primary_key)]
            row = conn.execute(select(table).where(*criteria)).mappings().first()
        return dict(row) if row is not None else dict(values)

    def update(self, values: Mapping[str, Any]) -> int:
        table = self._require_table()
        if not self._conditions:
            raise ExecutionError(f"Refusing to update '{table.name}' without conditions")
        with self.engine.begin() as conn:
            return conn.execute(update(table).where(*self._where()).values(**values)).rowcount

    def delete(self) -> int:
        table = self._require_table()
        if not self._conditions:
            raise ExecutionError(f"Refusing to delete from '{table.name}' without conditions")
        with self.engine.begin() as conn:
            return conn.execute(delete(table).where(*self._where())).rowcount

    # ===== Helper Methods =====

    def _replace(self, **changes: Any) -> "SqlAlchemyQueryBuilder":
        clone = copy.copy(self)
        for name, value in changes.items():
            setattr(clone, name, value)
        return clone

    def _require_table(self) -> Table:
        if self._table is None:
            raise ExecutionError("No table selected; call build_filter() first")
        return self._table

    def _where(self) -> List[Any]:
        table = self._require_table()
        clauses = []
        for condition in self._conditions:
            column = table.c[condition.field]
            method = getattr(column, COLUMN_METHODS[condition.operator])
            pattern = LIKE_PATTERNS.get(condition.operator)
            if pattern is not None:
                clauses.append(method(pattern.format(escape_like(str(condition.value))), escape=LIKE_ESCAPE))
            else:
                clauses.append(method(condition.value))
        return clauses

    def _select(self):
        table = self._require_table()
        columns = [table.c[name] for name in self._fields if name in table.c]
        for name in self._fields:
            if name not in table.c:
                log.warn(f"Skipping unknown field {color_palette['field'](name)} on {table.name}")
        stmt = select(*columns) if columns else select(table)
        stmt = stmt.where(*self._where())

        for order in self._orders:
            # Unknown sort columns are skipped, not rejected
            order_column = table.c.get(order.column)
            if order_column is not None:
                stmt = stmt.order_by(order_column.desc() if order.desc else order_column)
            else:
                log.warn(f"Skipping unknown sort column {color_palette['field'](order.column)}")

        if self._offset:
            stmt = stmt.offset(self._offset)
        if self._limit is not None:
            stmt = stmt.limit(self._limit)
        return stmt
