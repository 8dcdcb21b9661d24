# src/crudforge/core/pipeline/context.py
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from crudforge.core.access import FieldAccessSpec, route_fields
from crudforge.core.envelope import ApiResponse
from crudforge.core.errors import ForgeError
from crudforge.core.models.descriptor import ModelDescriptor
from crudforge.core.query.builder import QueryBuilder
from crudforge.core.query.conditions import Condition
from crudforge.core.query.pagination import DEFAULT_PAGE_SIZE, PageRequest, SortOrder


class StageRole(str, Enum):
    """Pipeline slots, in execution order."""

    PRE_PROCESS = "pre_process"
    BUILD_QUERY = "build_query"
    EXECUTE = "execute"
    POST_PROCESS = "post_process"


class PipelineState(str, Enum):
    CREATED = "created"
    PRE_PROCESS = "pre_process"
    BUILD_QUERY = "build_query"
    EXECUTE = "execute"
    POST_PROCESS = "post_process"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass
class RequestContext:
    """Per-request state shared by the stages of one pipeline run.

    Stages communicate only through this object: the build stage leaves a
    configured ``builder``, the execute stage leaves ``result`` and the
    post-process stage leaves ``response``. ``data`` is free scratch space for
    custom stages.
    """

    descriptor: ModelDescriptor
    operation: str = ""
    request: Any = None
    builder: Optional[QueryBuilder] = None

    query_params: Dict[str, Any] = field(default_factory=dict)
    path_params: Dict[str, Any] = field(default_factory=dict)
    payload: Dict[str, Any] = field(default_factory=dict)

    # Effective access rules for this resource
    query_spec: FieldAccessSpec = field(default_factory=FieldAccessSpec)
    create_spec: FieldAccessSpec = field(default_factory=FieldAccessSpec)
    update_spec: FieldAccessSpec = field(default_factory=FieldAccessSpec)
    # Per-route override of the query allow-list
    allowed_fields: Optional[List[str]] = None

    default_page_size: int = DEFAULT_PAGE_SIZE
    max_page_size: Optional[int] = None

    conditions: List[Condition] = field(default_factory=list)
    page: Optional[PageRequest] = None
    sorts: List[SortOrder] = field(default_factory=list)

    data: Dict[str, Any] = field(default_factory=dict)
    result: Any = None
    response: Optional[ApiResponse] = None
    error: Optional[ForgeError] = None
    state: PipelineState = PipelineState.CREATED

    @property
    def aborted(self) -> bool:
        return self.state is PipelineState.ABORTED

    def query_fields(self) -> List[str]:
        """Fields that may be filtered on and returned by query operations."""
        return route_fields(self.query_spec, self.allowed_fields, self.descriptor.storage_names)

    def param(self, name: str, default: Any = None) -> Any:
        """Path parameter first, then query parameter."""
        if name in self.path_params:
            return self.path_params[name]
        return self.query_params.get(name, default)
