# examples/main.py
"""
crudforge example: a SQLite-backed user resource with two custom endpoints.

Run with ``uvicorn examples.main:app --reload``.
"""

from datetime import datetime
from typing import Annotated, Optional

from fastapi import FastAPI
from pydantic import BaseModel
from sqlalchemy import MetaData, create_engine, func, select
from sqlalchemy.pool import StaticPool

from crudforge import (
    Column,
    CrudForge,
    ForgeConfig,
    InMemoryTokenStore,
    RequireToken,
    ResourceConfig,
    SqlAlchemyQueryBuilder,
    StageRole,
)
from crudforge.core.access import FieldAccessSpec
from crudforge.core.envelope import ApiResponse
from crudforge.core.query import Condition, OperatorKind


class User(BaseModel):
    id: Annotated[Optional[int], Column(primary_key=True, auto_increment=True)] = None
    name: Annotated[str, Column()]
    age: Annotated[int, Column()] = 0
    status: Annotated[int, Column()] = 1
    password: Annotated[Optional[str], Column()] = None
    created_at: Annotated[Optional[datetime], Column()] = None


# ? Database -------------------------------------------------------------------------------------

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
metadata = MetaData()


def builder() -> SqlAlchemyQueryBuilder:
    return SqlAlchemyQueryBuilder(engine, metadata)


# ? Main API Forge -------------------------------------------------------------------------------

app: FastAPI = FastAPI()
forge = CrudForge(ForgeConfig(project_name="User API", debug_mode=True), app=app)
forge.configure_error_handlers()

users = forge.register(
    User,
    builder,
    ResourceConfig(
        prefix="/users",
        description="Application users",
        query=FieldAccessSpec(exclude={"password"}),
    ),
)
tokens = InMemoryTokenStore()


# * Custom endpoint: list pipeline with a seeded condition
def only_active(ctx) -> None:
    ctx.conditions.append(Condition("status", OperatorKind.EQ, 1))


users.add_route(
    "active",
    "GET",
    "/active",
    users.pipeline_for("list").replace(StageRole.PRE_PROCESS, only_active),
    description="Active users, paginated",
)


# * Custom endpoint: bespoke execute stage, stock envelope
def age_stats(ctx) -> None:
    table = metadata.tables["user"]
    stmt = select(func.count(), func.min(table.c.age), func.max(table.c.age), func.avg(table.c.age))
    with engine.connect() as conn:
        count, youngest, oldest, average = conn.execute(stmt).one()
    ctx.result = {"count": count, "youngest": youngest, "oldest": oldest, "average": average}


def stats_envelope(ctx) -> None:
    ctx.response = ApiResponse.ok(ctx.result)


users.add_route(
    "age_stats",
    "GET",
    "/age-stats",
    users.pipeline_for("table")
    .replace(StageRole.PRE_PROCESS, RequireToken(tokens))
    .replace(StageRole.EXECUTE, age_stats)
    .replace(StageRole.POST_PROCESS, stats_envelope),
    description="Age statistics, requires a token header",
)

metadata.create_all(engine)
forge.generate_routes()


def run():
    import uvicorn

    forge.print_welcome()
    uvicorn.run(app, host=forge.config.host, port=forge.config.port)


if __name__ == "__main__":
    run()
