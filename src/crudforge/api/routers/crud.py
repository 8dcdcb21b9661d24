# src/crudforge/api/routers/crud.py
"""CRUD routes generated from a model descriptor."""

import json
from typing import Any, Callable, Dict, List, Optional, Sequence, Set, Tuple, Union

from fastapi import APIRouter, FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from starlette.routing import BaseRoute

from crudforge.api.envelope import context_response, error_response
from crudforge.api.registry import RouteEntry, RouteRegistry
from crudforge.core.access import FieldAccessSpec
from crudforge.core.config import ForgeConfig, ResourceConfig
from crudforge.core.errors import ForgeError, InvalidParameterError, NotRegisteredError
from crudforge.core.logging import color_palette, log
from crudforge.core.models.descriptor import ModelDescriptor
from crudforge.core.pipeline import (
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
    HandlerPipeline,
    PageEnvelope,
    RecordEnvelope,
    RequestContext,
    StageRole,
    StructEnvelope,
)
from crudforge.core.query.builder import QueryBuilder

BuilderFactory = Callable[[], QueryBuilder]

# name -> (method, path, aliases, description)
DEFAULT_ROUTES: Dict[str, Tuple[str, str, Tuple[Tuple[str, str], ...], str]] = {
    "list": ("GET", "", (("GET", "/list"),), "Paginated list of {name} records with optional filters"),
    "detail": ("GET", "/detail/{id}", (), "Fetch one {name} record by primary key"),
    "save": ("POST", "/save", (), "Create a new {name} record"),
    "update": (
        "PUT",
        "/update/{id}",
        (("POST", "/update/{id}"), ("PATCH", "/update/{id}")),
        "Update a {name} record by primary key",
    ),
    "delete": ("DELETE", "/delete/{id}", (("GET", "/delete/{id}"),), "Delete a {name} record by primary key"),
    "table": ("GET", "/table", (), "Describe the structure of {name}"),
}

# Bodies are only read for methods that carry one
BODY_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


def stock_pipeline(operation_name: str) -> HandlerPipeline:
    """Fresh default pipeline for one of the built-in operations."""
    stages = {
        "list": (BuildListQuery(), ExecutePage(), PageEnvelope()),
        "detail": (BuildKeyQuery(), ExecuteOne(), RecordEnvelope()),
        "save": (BuildInsert(), ExecuteInsert(), RecordEnvelope()),
        "update": (BuildUpdate(), ExecuteUpdate(), RecordEnvelope()),
        "delete": (BuildKeyQuery(), ExecuteDelete(), DeleteEnvelope()),
    }
    if operation_name == "table":
        return HandlerPipeline({StageRole.POST_PROCESS: StructEnvelope()})
    if operation_name not in stages:
        raise NotRegisteredError(operation_name, "pipeline")
    build, execute, post = stages[operation_name]
    return HandlerPipeline(
        {
            StageRole.BUILD_QUERY: build,
            StageRole.EXECUTE: execute,
            StageRole.POST_PROCESS: post,
        }
    )


async def read_payload(request: Request) -> Dict[str, Any]:
    """Parse the JSON body as a flat object; an empty body gives ``{}``."""
    if request.method not in BODY_METHODS:
        return {}
    body = await request.body()
    if not body.strip():
        return {}
    try:
        data = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidParameterError("Request body is not valid JSON") from exc
    if not isinstance(data, dict):
        raise InvalidParameterError("Request body must be a JSON object")
    return data


def _normalise_prefix(prefix: str) -> str:
    prefix = "/" + prefix.strip("/")
    return prefix if prefix != "/" else ""


class CrudResource:
    """One record type exposed as a set of routes.

    Each resource owns its :class:`RouteRegistry`. Endpoints resolve their
    entry by name on every request, so re-registering an operation after
    :meth:`mount` swaps the pipeline without touching FastAPI's routes.
    """

    def __init__(
        self,
        descriptor: ModelDescriptor,
        builder_factory: BuilderFactory,
        config: Optional[ResourceConfig] = None,
        forge_config: Optional[ForgeConfig] = None,
    ):
        self.config = config or ResourceConfig()
        if self.config.primary_keys is not None:
            descriptor = descriptor.with_primary_keys(self.config.primary_keys)
        self.descriptor = descriptor
        self.builder_factory = builder_factory
        self.name = descriptor.table_name
        self.prefix = _normalise_prefix(self.config.prefix or self.name)
        self.group = self.config.group or self.name
        self.description = self.config.description

        self.default_page_size = forge_config.default_page_size if forge_config else 10
        self.max_page_size = forge_config.max_page_size if forge_config else None

        self.query_spec = self.config.query
        self.create_spec = self._create_spec()
        self.update_spec = self._update_spec()

        self.registry = RouteRegistry()
        self._mounted: Set[Tuple[str, str]] = set()
        self._routes: List[BaseRoute] = []

        self._prepare_builder()
        if not descriptor.primary_keys:
            log.warn(f"{self.name} has no primary key; detail, update and delete will reject requests")
        self.register_defaults()

    # ===== Registration =====

    def register_defaults(self) -> None:
        """Register the enabled built-in operations."""
        for name, (method, path, aliases, description) in DEFAULT_ROUTES.items():
            if name not in self.config.operations:
                continue
            if name == "detail" and self.config.id_shortcut:
                aliases = aliases + (("GET", "/{id}"),)
            self.registry.register(
                name,
                method,
                path,
                stock_pipeline(name),
                description=description.format(name=self.name),
                aliases=aliases,
            )

    def add_route(
        self,
        operation_name: str,
        method: str,
        path: str,
        pipeline: HandlerPipeline,
        allowed_fields: Optional[Sequence[str]] = None,
        description: str = "",
        aliases: Sequence[Tuple[str, str]] = (),
    ) -> RouteEntry:
        """
        Register a custom operation, or replace an existing one.

        Args:
            operation_name: Unique name within this resource
            method: HTTP method
            path: Path relative to the resource prefix, e.g. ``/active``
            pipeline: Stages to run; see :meth:`pipeline_for` for a starting point
            allowed_fields: Fields this route may filter on and return
            description: Summary shown in the docs
            aliases: Additional (method, path) bindings

        Returns:
            RouteEntry: The registered entry
        """
        entry = self.registry.register(
            operation_name,
            method,
            path,
            pipeline,
            allowed_fields=allowed_fields,
            description=description,
            aliases=aliases,
        )
        log.info(
            f"Registered {color_palette['operation'](operation_name)} on "
            f"{color_palette['resource'](self.name)}: "
            f"{color_palette['method'](entry.method)} {color_palette['route'](self.prefix + path)}"
        )
        return entry

    def pipeline_for(self, operation_name: str) -> HandlerPipeline:
        """Stock pipeline of a built-in operation, to customise for a new route."""
        return stock_pipeline(operation_name)

    def entries(self) -> List[RouteEntry]:
        return self.registry.list()

    # ===== Execution =====

    def new_context(
        self,
        entry: RouteEntry,
        request: Any = None,
        query_params: Optional[Dict[str, Any]] = None,
        path_params: Optional[Dict[str, Any]] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> RequestContext:
        return RequestContext(
            descriptor=self.descriptor,
            operation=entry.operation_name,
            request=request,
            builder=self.builder_factory(),
            query_params=dict(query_params or {}),
            path_params=dict(path_params or {}),
            payload=dict(payload or {}),
            query_spec=self.query_spec,
            create_spec=self.create_spec,
            update_spec=self.update_spec,
            allowed_fields=entry.allowed_fields,
            default_page_size=self.default_page_size,
            max_page_size=self.max_page_size,
        )

    def execute(
        self,
        operation_name: str,
        query_params: Optional[Dict[str, Any]] = None,
        path_params: Optional[Dict[str, Any]] = None,
        payload: Optional[Dict[str, Any]] = None,
        request: Any = None,
    ) -> RequestContext:
        """Run an operation's pipeline directly, without HTTP.

        Raises:
            NotRegisteredError: unknown ``operation_name``
        """
        entry = self.registry.dispatch(operation_name)
        ctx = self.new_context(entry, request, query_params, path_params, payload)
        return entry.pipeline.run(ctx)

    def endpoint(self, operation_name: str) -> Callable[[Request], Any]:
        """FastAPI endpoint that dispatches ``operation_name`` at request time."""

        async def handle(request: Request) -> JSONResponse:
            try:
                entry = self.registry.dispatch(operation_name)
                payload = await read_payload(request)
            except ForgeError as exc:
                return error_response(exc)

            ctx = self.new_context(
                entry,
                request=request,
                query_params=dict(request.query_params),
                path_params=dict(request.path_params),
                payload=payload,
            )
            with log.timed(f"{self.name}.{operation_name}"):
                ctx = await run_in_threadpool(entry.pipeline.run, ctx)
            return context_response(ctx)

        handle.__name__ = f"{self.name}_{operation_name}"
        return handle

    # ===== Mounting =====

    def mount(self, router: Union[APIRouter, FastAPI]) -> int:
        """Add FastAPI routes for every binding not mounted yet.

        Static paths go before parameterised ones so ``/list`` is not captured
        by ``/{id}``. When bindings are added after an earlier mount, this
        resource's routes are replaced as a whole so that order still holds.

        Returns:
            int: Number of bindings added
        """
        bindings = [
            (entry, method, path) for entry in self.registry.list() for method, path in entry.bindings()
        ]
        added = [(method, path) for _, method, path in bindings if (method, path) not in self._mounted]
        if not added:
            return 0

        # Stable sort keeps registration order within each group
        bindings.sort(key=lambda item: "{" in item[2])

        routes = router.routes
        for route in self._routes:
            if route in routes:
                routes.remove(route)

        api_router = APIRouter(prefix=self.prefix, tags=[self.group])
        for entry, method, path in bindings:
            api_router.add_api_route(
                # FastAPI rejects an empty path under an empty prefix
                path or ("" if self.prefix else "/"),
                self.endpoint(entry.operation_name),
                methods=[method],
                summary=f"{entry.operation_name} {self.name}",
                description=entry.description or None,
                name=f"{self.name}.{entry.operation_name}.{method.lower()}",
            )
            if (method, path) in added:
                log.debug(f"{method:<6} {self.prefix}{path} -> {entry.operation_name}")

        start = len(routes)
        router.include_router(api_router)
        self._routes = routes[start:]
        self._mounted = {(method, path) for _, method, path in bindings}
        if isinstance(router, FastAPI):
            # Rebuilt on the next /openapi.json request
            router.openapi_schema = None
        return len(added)

    # ===== Helper Methods =====

    def _create_spec(self) -> FieldAccessSpec:
        """Creates never write the auto-increment field unless explicitly allowed."""
        spec = self.config.create
        auto = self.descriptor.auto_increment_field
        if auto and auto not in spec.allow:
            spec = spec.with_exclude(auto)
        return spec

    def _update_spec(self) -> FieldAccessSpec:
        """Updates never rewrite primary keys unless explicitly allowed."""
        spec = self.config.update
        keys = [key for key in self.descriptor.primary_keys if key not in spec.allow]
        return spec.with_exclude(*keys) if keys else spec

    def _prepare_builder(self) -> None:
        # Builders that manage their own schema (SqlAlchemyQueryBuilder) learn the table here
        prepare = getattr(self.builder_factory(), "prepare", None)
        if callable(prepare):
            prepare(self.descriptor)

    def __repr__(self) -> str:
        return f"CrudResource({self.name!r}, prefix={self.prefix!r}, operations={len(self.registry)})"
