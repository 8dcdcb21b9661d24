"""
crudforge: generate FastAPI CRUD routes from record definitions.
"""

from crudforge.api.auth import InMemoryTokenStore, RequireToken, issue_token
from crudforge.api.routers.crud import CrudResource
from crudforge.core.access import FieldAccessSpec, filter_fields
from crudforge.core.config import ForgeConfig, ResourceConfig
from crudforge.core.envelope import ApiResponse
from crudforge.core.errors import ForgeError
from crudforge.core.introspection import build_descriptor
from crudforge.core.logging import log
from crudforge.core.models import Column, ModelDescriptor
from crudforge.core.pipeline import HandlerPipeline, RequestContext, Stage, StageRole
from crudforge.core.query import Condition, OperatorKind, SqlAlchemyQueryBuilder, parse_conditions
from crudforge.forge import CrudForge

__version__ = "0.1.0"

__all__ = [
    "ApiResponse",
    "Column",
    "Condition",
    "CrudForge",
    "CrudResource",
    "FieldAccessSpec",
    "ForgeConfig",
    "ForgeError",
    "HandlerPipeline",
    "InMemoryTokenStore",
    "ModelDescriptor",
    "OperatorKind",
    "RequestContext",
    "RequireToken",
    "ResourceConfig",
    "SqlAlchemyQueryBuilder",
    "Stage",
    "StageRole",
    "build_descriptor",
    "filter_fields",
    "issue_token",
    "log",
    "parse_conditions",
]
