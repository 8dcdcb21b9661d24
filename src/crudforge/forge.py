"""Main crudforge application wiring."""

from typing import Dict, List, Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from rich.markup import escape
from sqlalchemy import Table
from starlette.exceptions import HTTPException as StarletteHTTPException

from crudforge.api.envelope import envelope_response, error_response
from crudforge.api.registry import ReadWriteLock
from crudforge.api.routers.crud import BuilderFactory, CrudResource
from crudforge.api.routers.metadata import MetadataRouter
from crudforge.core.config import ForgeConfig, ResourceConfig
from crudforge.core.envelope import ApiResponse
from crudforge.core.errors import ForgeError, NotRegisteredError
from crudforge.core.introspection import build_descriptor, descriptor_from_table
from crudforge.core.logging import color_palette, log
from crudforge.core.models.descriptor import ModelDescriptor
from crudforge import ui


class CrudForge:
    """Registers record types as resources and generates their routes."""

    def __init__(self, config: Optional[ForgeConfig] = None, app: Optional[FastAPI] = None):
        """Initialize the forge on a new or existing FastAPI app."""
        self.config = config or ForgeConfig()
        self.app = app or FastAPI()
        self._resources: Dict[str, CrudResource] = {}
        self._lock = ReadWriteLock()
        self._docs_mounted = False
        log.level = self.config.log_level
        self._initialize_app()

    def _initialize_app(self) -> None:
        """Initialize FastAPI app configuration."""
        self.app.title = self.config.project_name
        self.app.version = self.config.version
        self.app.description = self.config.description

        if self.config.author:
            self.app.contact = {"name": self.config.author, "email": self.config.email}

        if self.config.license_info:
            self.app.license_info = self.config.license_info

        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=self.config.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # ===== Resources =====

    def register(
        self,
        record_type: type,
        builder_factory: BuilderFactory,
        config: Optional[ResourceConfig] = None,
    ) -> CrudResource:
        """
        Register a record type (pydantic model or dataclass) as a resource.

        Args:
            record_type: Class whose ``Column``-annotated fields are persisted
            builder_factory: Returns a fresh query builder per request
            config: Per-resource options

        Returns:
            CrudResource: The resource, ready for custom routes

        Raises:
            SchemaError: If the record type cannot be described
        """
        return self._add(build_descriptor(record_type), builder_factory, config)

    def register_table(
        self,
        table: Table,
        builder_factory: BuilderFactory,
        config: Optional[ResourceConfig] = None,
    ) -> CrudResource:
        """Register an existing SQLAlchemy table as a resource."""
        return self._add(descriptor_from_table(table), builder_factory, config)

    def resource(self, name: str) -> CrudResource:
        with self._lock.read():
            resource = self._resources.get(name)
        if resource is None:
            raise NotRegisteredError(name, "resource")
        return resource

    def resources(self) -> List[CrudResource]:
        with self._lock.read():
            return list(self._resources.values())

    def _add(
        self,
        descriptor: ModelDescriptor,
        builder_factory: BuilderFactory,
        config: Optional[ResourceConfig],
    ) -> CrudResource:
        resource = CrudResource(descriptor, builder_factory, config, forge_config=self.config)
        with self._lock.write():
            if resource.name in self._resources:
                log.warn(f"Resource {resource.name} registered twice; keeping the latest")
            self._resources[resource.name] = resource

        log.info(
            f"Registered {color_palette['resource'](resource.name)} "
            f"({len(descriptor.fields)} fields) at {color_palette['route'](resource.prefix or '/')}"
        )
        if self.config.debug_mode:
            ui.display_descriptor_structure(descriptor)
        return resource

    # ===== Routes =====

    def generate_routes(self) -> None:
        """
        Mount the routes of every registered resource plus the docs routes.

        Safe to call again after registering more resources or operations:
        only bindings that are not mounted yet are added.
        """
        log.section("Generating Resource Routes")

        total = 0
        for resource in self.resources():
            with log.indented():
                added = resource.mount(self.app)
            if added:
                log.info(
                    f"Generated {added} routes for {color_palette['resource'](resource.name)}"
                )
            total += added

        if not self._docs_mounted:
            router = APIRouter()
            MetadataRouter(router, self.resources, prefix=self.config.docs_path).register_all_routes()
            self.app.include_router(router)
            self._docs_mounted = True

        log.success(f"Generated {total} routes for {len(self.resources())} resources")

    def configure_error_handlers(self) -> None:
        """
        Configure global error handlers for the API.

        Every error is rendered as a ``{code, message, data}`` envelope.
        """

        @self.app.exception_handler(ForgeError)
        async def forge_exception_handler(request: Request, exc: ForgeError) -> JSONResponse:
            return error_response(exc)

        @self.app.exception_handler(StarletteHTTPException)
        async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
            return envelope_response(
                ApiResponse(code=exc.status_code, message=str(exc.detail)),
                status_code=exc.status_code,
            )

        @self.app.exception_handler(RequestValidationError)
        async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
            return envelope_response(
                ApiResponse(code=400, message="Invalid request", data=exc.errors()),
                status_code=400,
            )

        @self.app.exception_handler(Exception)
        async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
            log.error(f"Unhandled exception: {escape(str(exc))}")
            return envelope_response(
                ApiResponse(
                    code=500,
                    message="Internal server error",
                    data=str(exc) if self.config.debug_mode else None,
                ),
                status_code=500,
            )

        log.success("Configured global error handlers")

    def print_welcome(self) -> None:
        """Print welcome message with app information."""
        ui.print_welcome(self.config.project_name, self.config.version, self.config.host, self.config.port)
        ui.display_routes(self.resources())
