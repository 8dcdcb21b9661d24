# src/crudforge/core/pipeline/stages.py
"""Stock stages used by the generated CRUD routes.

Custom routes can mix these with their own stages, e.g. a pre-process stage
that seeds ``ctx.conditions`` followed by :class:`BuildListQuery`,
:class:`ExecutePage` and :class:`PageEnvelope`.
"""

from typing import Any, Dict, List, Mapping

from crudforge.core.access import filter_fields
from crudforge.core.envelope import ApiResponse
from crudforge.core.errors import ExecutionError, InvalidParameterError, MissingPrimaryKeyError, RecordNotFoundError
from crudforge.core.models.descriptor import ModelDescriptor
from crudforge.core.pipeline.context import RequestContext
from crudforge.core.pipeline.pipeline import Stage
from crudforge.core.query.builder import QueryBuilder
from crudforge.core.query.conditions import Condition, parse_conditions
from crudforge.core.query.operators import OperatorKind
from crudforge.core.query.pagination import PageResult, page_request, sort_orders
from crudforge.core.values import coerce, coerce_payload

# Path parameter bound to the first primary key
ID_PARAM = "id"


# ===== Helper Functions =====


def require_builder(ctx: RequestContext) -> QueryBuilder:
    if ctx.builder is None:
        raise ExecutionError(f"No query builder available for '{ctx.descriptor.table_name}'")
    return ctx.builder


def normalise_payload(data: Mapping[str, Any], descriptor: ModelDescriptor) -> Dict[str, Any]:
    """Accept display names in payloads by mapping them to storage names."""
    by_display = {f.display_name: f.storage_name for f in descriptor.fields}
    result: Dict[str, Any] = {}
    for key, value in data.items():
        storage = key if descriptor.has_field(key) else by_display.get(key, key)
        result.setdefault(storage, value)
    return result


def key_conditions(ctx: RequestContext) -> List[Condition]:
    """Equality conditions on every primary key of the resource.

    The first key is read from the ``{id}`` path parameter; any other key (and
    the first one, when there is no ``{id}``) from a parameter named after the
    key, falling back to the payload.
    """
    descriptor = ctx.descriptor
    if not descriptor.primary_keys:
        raise MissingPrimaryKeyError(f"'{descriptor.table_name}' has no primary key")

    conditions = []
    for index, key in enumerate(descriptor.primary_keys):
        raw = ctx.path_params.get(ID_PARAM) if index == 0 else None
        if raw is None:
            raw = ctx.param(key, ctx.payload.get(key))
        if raw is None or str(raw).strip() == "":
            raise MissingPrimaryKeyError(f"Missing primary key '{key}'")
        value = coerce(raw, descriptor.field(key).python_type, key)
        conditions.append(Condition(key, OperatorKind.EQ, value))
    return conditions


def shape_row(ctx: RequestContext, row: Any) -> Any:
    """Restrict an outbound row to the fields the route may expose."""
    if not isinstance(row, Mapping):
        return row
    visible = set(ctx.query_fields())
    return {key: value for key, value in row.items() if key in visible}


def typed_values(ctx: RequestContext, spec_name: str) -> Dict[str, Any]:
    spec = getattr(ctx, f"{spec_name}_spec")
    descriptor = ctx.descriptor
    payload = normalise_payload(ctx.payload, descriptor)
    values = filter_fields(payload, spec, descriptor.storage_names)
    return coerce_payload(values, descriptor.python_types())


# ===== Build Query Stages =====


class BuildListQuery(Stage):
    """Filters, sorting, paging and column selection for list-style routes."""

    def run(self, ctx: RequestContext) -> None:
        fields = ctx.query_fields()
        parsed = parse_conditions(ctx.query_params, ctx.descriptor, fields)
        # Conditions seeded by earlier stages come first
        ctx.conditions = [*ctx.conditions, *parsed]
        ctx.page = page_request(ctx.query_params, ctx.default_page_size, ctx.max_page_size)
        ctx.sorts = sort_orders(ctx.query_params)

        ctx.builder = (
            require_builder(ctx)
            .build_filter(ctx.descriptor.table_name, ctx.conditions)
            .fields(fields)
            .order_by(ctx.sorts)
            .paginate(ctx.page.offset, ctx.page.limit)
        )


class BuildKeyQuery(Stage):
    """Primary-key lookup used by detail and delete."""

    def run(self, ctx: RequestContext) -> None:
        ctx.conditions = [*ctx.conditions, *key_conditions(ctx)]
        ctx.builder = (
            require_builder(ctx)
            .build_filter(ctx.descriptor.table_name, ctx.conditions)
            .fields(ctx.query_fields())
        )


class BuildInsert(Stage):
    def run(self, ctx: RequestContext) -> None:
        ctx.data["values"] = typed_values(ctx, "create")
        ctx.builder = require_builder(ctx).build_filter(ctx.descriptor.table_name, [])


class BuildUpdate(Stage):
    def run(self, ctx: RequestContext) -> None:
        ctx.conditions = [*ctx.conditions, *key_conditions(ctx)]
        values = typed_values(ctx, "update")
        if not values:
            raise InvalidParameterError("No updatable fields in payload")
        ctx.data["values"] = values
        ctx.builder = (
            require_builder(ctx)
            .build_filter(ctx.descriptor.table_name, ctx.conditions)
            .fields(ctx.query_fields())
        )


# ===== Execute Stages =====


def _describe_key(ctx: RequestContext) -> str:
    return ", ".join(f"{c.field}={c.value!r}" for c in ctx.conditions)


class ExecutePage(Stage):
    def run(self, ctx: RequestContext) -> None:
        builder = require_builder(ctx)
        total = builder.count()
        rows = builder.list()
        page = ctx.page or page_request({}, ctx.default_page_size, ctx.max_page_size)
        ctx.result = PageResult(pageNum=page.page_num, pageSize=page.page_size, total=total, data=rows)


class ExecuteOne(Stage):
    def run(self, ctx: RequestContext) -> None:
        row = require_builder(ctx).one()
        if row is None:
            raise RecordNotFoundError(f"No {ctx.descriptor.table_name} record with {_describe_key(ctx)}")
        ctx.result = row


class ExecuteInsert(Stage):
    def run(self, ctx: RequestContext) -> None:
        ctx.result = require_builder(ctx).insert(ctx.data.get("values", {}))


class ExecuteUpdate(Stage):
    """Update by key, then read the stored record back.

    When the update rewrites primary keys, the read-back uses the new values.
    """

    def run(self, ctx: RequestContext) -> None:
        builder = require_builder(ctx)
        values = ctx.data.get("values", {})
        affected = builder.update(values)
        if not affected:
            raise RecordNotFoundError(f"No {ctx.descriptor.table_name} record with {_describe_key(ctx)}")

        keys = set(ctx.descriptor.primary_keys)
        if any(key in values for key in keys):
            ctx.conditions = [
                Condition(c.field, c.operator, values[c.field])
                if c.field in keys and c.operator is OperatorKind.EQ and c.field in values
                else c
                for c in ctx.conditions
            ]
            builder = builder.build_filter(ctx.descriptor.table_name, ctx.conditions).fields(ctx.query_fields())
        ctx.result = builder.one()


class ExecuteDelete(Stage):
    def run(self, ctx: RequestContext) -> None:
        affected = require_builder(ctx).delete()
        result: Dict[str, Any] = {c.field: c.value for c in ctx.conditions}
        result["affected"] = affected
        ctx.result = result


# ===== Post Process Stages =====


class PageEnvelope(Stage):
    def run(self, ctx: RequestContext) -> None:
        page = ctx.result
        if isinstance(page, PageResult):
            page = page.model_copy(update={"data": [shape_row(ctx, row) for row in page.data]})
            ctx.response = ApiResponse.ok(page.model_dump(by_alias=True))
        else:
            ctx.response = ApiResponse.ok(page)


class RecordEnvelope(Stage):
    def run(self, ctx: RequestContext) -> None:
        ctx.response = ApiResponse.ok(shape_row(ctx, ctx.result))


class DeleteEnvelope(Stage):
    def run(self, ctx: RequestContext) -> None:
        ctx.response = ApiResponse.ok(ctx.result)


class StructEnvelope(Stage):
    """Describe the resource's table structure instead of querying it."""

    def run(self, ctx: RequestContext) -> None:
        descriptor = ctx.descriptor
        ctx.response = ApiResponse.ok(
            {
                "table": descriptor.table_name,
                "primaryKeys": list(descriptor.primary_keys),
                "autoIncrement": descriptor.auto_increment_field,
                "fields": [
                    {
                        "name": f.storage_name,
                        "displayName": f.display_name,
                        "type": f.type_tag,
                        "primaryKey": f.is_primary_key,
                        "autoIncrement": f.is_auto_increment,
                        "nullable": f.nullable,
                    }
                    for f in descriptor.fields
                ],
            }
        )
