# src/crudforge/api/docs.py
"""
API documentation built from route registries.

Each registered operation is described from its route entry and from the
stages of its pipeline, so custom routes are documented the same way as the
generated ones.
"""

import re
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional

from pydantic import BaseModel

from crudforge.api.registry import RouteEntry
from crudforge.core.access import allowed_fields, route_fields
from crudforge.core.pipeline import BuildInsert, BuildKeyQuery, BuildListQuery, BuildUpdate
from crudforge.core.pipeline.stages import ID_PARAM
from crudforge.core.query.operators import OPERATOR_MAP

if TYPE_CHECKING:
    from crudforge.api.routers.crud import CrudResource

_PATH_PARAM = re.compile(r"{(\w+)}")

FILTER_HINT = "Filter; append __op for " + ", ".join(sorted(OPERATOR_MAP))

# ===== Response Models =====


class ApiParameter(BaseModel):
    name: str
    type: str
    required: bool = False
    location: str = "query"  # path, query or body
    description: str = ""


class ApiDoc(BaseModel):
    """Description of one registered operation."""

    name: str
    group: str
    method: str
    path: str
    description: str = ""
    allowed_fields: Optional[List[str]] = None
    aliases: List[str] = []
    parameters: List[ApiParameter] = []


# ===== Helper Functions =====


def _has_stage(entry: RouteEntry, stage_type: type) -> bool:
    return any(isinstance(stage, stage_type) for _, stage in entry.pipeline.steps())


def _path_parameters(resource: "CrudResource", path: str) -> List[ApiParameter]:
    descriptor = resource.descriptor
    params = []
    for name in _PATH_PARAM.findall(path):
        type_tag = "str"
        if name == ID_PARAM and descriptor.primary_keys:
            type_tag = descriptor.field(descriptor.primary_keys[0]).type_tag
        elif descriptor.has_field(name):
            type_tag = descriptor.field(name).type_tag
        params.append(ApiParameter(name=name, type=type_tag, required=True, location="path"))
    return params


def _list_parameters(resource: "CrudResource", entry: RouteEntry) -> List[ApiParameter]:
    params = [
        ApiParameter(name="page", type="int", description="Page number, 1-based (alias: pageNum)"),
        ApiParameter(
            name="size",
            type="int",
            description=f"Page size, default {resource.default_page_size} (alias: pageSize)",
        ),
        ApiParameter(name="sort", type="str", description="Comma separated columns, '-' for descending (alias: orderBy)"),
    ]
    fields = route_fields(resource.query_spec, entry.allowed_fields, resource.descriptor.storage_names)
    for name in fields:
        field = resource.descriptor.field(name)
        params.append(ApiParameter(name=name, type=field.type_tag, description=FILTER_HINT))
    return params


def _extra_key_parameters(resource: "CrudResource") -> List[ApiParameter]:
    # Only the first key is bound to {id}
    descriptor = resource.descriptor
    return [
        ApiParameter(name=key, type=descriptor.field(key).type_tag, required=True, description="Primary key")
        for key in descriptor.primary_keys[1:]
    ]


def _body_parameters(resource: "CrudResource", creating: bool) -> List[ApiParameter]:
    spec = resource.create_spec if creating else resource.update_spec
    params = []
    for name in allowed_fields(spec, resource.descriptor.storage_names):
        field = resource.descriptor.field(name)
        required = creating and not field.nullable and not field.is_auto_increment and field.default is None
        params.append(ApiParameter(name=name, type=field.type_tag, required=required, location="body"))
    return params


def describe_entry(resource: "CrudResource", entry: RouteEntry) -> ApiDoc:
    parameters = _path_parameters(resource, entry.path)
    if _has_stage(entry, BuildListQuery):
        parameters += _list_parameters(resource, entry)
    if _has_stage(entry, BuildKeyQuery) or _has_stage(entry, BuildUpdate):
        parameters += _extra_key_parameters(resource)
    if _has_stage(entry, BuildInsert):
        parameters += _body_parameters(resource, creating=True)
    if _has_stage(entry, BuildUpdate):
        parameters += _body_parameters(resource, creating=False)

    return ApiDoc(
        name=entry.operation_name,
        group=resource.group,
        method=entry.method,
        path=resource.prefix + entry.path or "/",
        description=entry.description,
        allowed_fields=entry.allowed_fields,
        aliases=[f"{method} {resource.prefix}{path}" for method, path in entry.aliases],
        parameters=parameters,
    )


def build_api_docs(resources: Iterable["CrudResource"]) -> Dict[str, List[ApiDoc]]:
    """Group the documentation of every registered operation by resource group."""
    docs: Dict[str, List[ApiDoc]] = {}
    for resource in resources:
        group = docs.setdefault(resource.group, [])
        group.extend(describe_entry(resource, entry) for entry in resource.entries())
    return docs
