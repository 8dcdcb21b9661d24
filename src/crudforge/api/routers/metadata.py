# src/crudforge/api/routers/metadata.py
"""
API documentation endpoints.

Serves the operations of every registered resource, grouped by resource
group, under the configured docs path (``/api-info`` by default).
"""

from typing import TYPE_CHECKING, Callable, Iterable

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from crudforge.api.docs import build_api_docs
from crudforge.api.envelope import envelope_response, error_response
from crudforge.core.envelope import ApiResponse
from crudforge.core.errors import NotRegisteredError
from crudforge.core.logging import color_palette, log

if TYPE_CHECKING:
    from crudforge.api.routers.crud import CrudResource


class MetadataRouter:
    """Documentation route generator."""

    def __init__(
        self,
        router: APIRouter,
        resources: Callable[[], Iterable["CrudResource"]],
        prefix: str = "/api-info",
    ):
        """
        Initialize the metadata router.

        Args:
            router: FastAPI router to attach routes to
            resources: Returns the resources to document; called per request
            prefix: Path the docs are served under
        """
        self.router = router
        self.resources = resources
        self.prefix = "/" + prefix.strip("/")

    def register_all_routes(self) -> None:
        """Register all documentation routes."""
        log.info(f"Registering API docs at {color_palette['route'](self.prefix)}")
        self.register_docs_route()
        self.register_group_route()

    def register_docs_route(self) -> None:
        @self.router.get(self.prefix, tags=["Metadata"], summary="Documentation of every resource")
        async def get_api_docs() -> JSONResponse:
            docs = build_api_docs(self.resources())
            return envelope_response(ApiResponse.ok(docs))

    def register_group_route(self) -> None:
        @self.router.get(self.prefix + "/{group}", tags=["Metadata"], summary="Documentation of one group")
        async def get_group_docs(group: str) -> JSONResponse:
            docs = build_api_docs(self.resources())
            if group not in docs:
                return error_response(NotRegisteredError(group, "group"))
            return envelope_response(ApiResponse.ok(docs[group]))
