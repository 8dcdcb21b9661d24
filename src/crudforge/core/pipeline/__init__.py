"""Request pipeline: context, stage contract and stock stages."""

from crudforge.core.pipeline.context import PipelineState, RequestContext, StageRole
from crudforge.core.pipeline.pipeline import FunctionStage, HandlerPipeline, NoOpStage, Stage, as_stage
from crudforge.core.pipeline.stages import (
    BuildInsert,
    BuildKeyQuery,
    BuildListQuery,
    BuildUpdate,
    DeleteEnvelope,
    ExecuteDelete,
    ExecuteInsert,
    ExecuteOne,
    ExecutePage,
    ExecuteUpdate,
    PageEnvelope,
    RecordEnvelope,
    StructEnvelope,
    key_conditions,
)

__all__ = [
    "BuildInsert",
    "BuildKeyQuery",
    "BuildListQuery",
    "BuildUpdate",
    "DeleteEnvelope",
    "ExecuteDelete",
    "ExecuteInsert",
    "ExecuteOne",
    "ExecutePage",
    "ExecuteUpdate",
    "FunctionStage",
    "HandlerPipeline",
    "NoOpStage",
    "PageEnvelope",
    "PipelineState",
    "RecordEnvelope",
    "RequestContext",
    "Stage",
    "StageRole",
    "StructEnvelope",
    "as_stage",
    "key_conditions",
]
