"""FastAPI layer: route registry, generated CRUD routers, docs and token guard."""

from crudforge.api.auth import InMemoryTokenStore, RequireToken, TokenDetail, TokenStore, issue_token
from crudforge.api.docs import ApiDoc, ApiParameter, build_api_docs
from crudforge.api.registry import ReadWriteLock, RouteEntry, RouteRegistry
from crudforge.api.routers import CrudResource, MetadataRouter

__all__ = [
    "ApiDoc",
    "ApiParameter",
    "CrudResource",
    "InMemoryTokenStore",
    "MetadataRouter",
    "ReadWriteLock",
    "RequireToken",
    "RouteEntry",
    "RouteRegistry",
    "TokenDetail",
    "TokenStore",
    "build_api_docs",
    "issue_token",
]
