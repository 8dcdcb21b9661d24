# test/conftest.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Annotated, Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from pydantic import BaseModel
from sqlalchemy import MetaData, create_engine
from sqlalchemy.pool import StaticPool

from crudforge import Column, CrudForge, ForgeConfig, ResourceConfig, SqlAlchemyQueryBuilder
from crudforge.core.access import FieldAccessSpec

# --- Record types used across the tests ---


class User(BaseModel):
    id: Annotated[Optional[int], Column(primary_key=True, auto_increment=True)] = None
    name: Annotated[str, Column()]
    age: Annotated[int, Column()] = 0
    status: Annotated[int, Column()] = 1
    password: Annotated[Optional[str], Column()] = None
    created_at: Annotated[Optional[datetime], Column()] = None
    nickname: str = ""  # not persisted


@dataclass
class OrderLine:
    order_id: Annotated[int, Column(primary_key=True)]
    line_no: Annotated[int, Column(primary_key=True)]
    sku: Annotated[str, Column("product_sku")]
    quantity: Annotated[int, Column()] = 1


class AuditLog(BaseModel):
    message: Annotated[str, Column()]
    level: Annotated[str, Column()] = "info"


# --- Recording fake for the data-access collaborator ---


@dataclass
class RecordingBuilder:
    """QueryBuilder fake that records every call and returns canned rows."""

    rows: List[Dict[str, Any]] = field(default_factory=list)
    total: Optional[int] = None
    affected: int = 1
    calls: List[tuple] = field(default_factory=list)

    def _record(self, name: str, *args: Any) -> "RecordingBuilder":
        self.calls.append((name, *args))
        return self

    def calls_named(self, name: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == name]

    def build_filter(self, table, conditions):
        return self._record("build_filter", table, list(conditions))

    def fields(self, names):
        return self._record("fields", list(names))

    def order_by(self, orders):
        return self._record("order_by", list(orders))

    def paginate(self, offset, limit):
        return self._record("paginate", offset, limit)

    def count(self):
        self._record("count")
        return self.total if self.total is not None else len(self.rows)

    def list(self):
        self._record("list")
        return [dict(row) for row in self.rows]

    def one(self):
        self._record("one")
        return dict(self.rows[0]) if self.rows else None

    def insert(self, values):
        self._record("insert", dict(values))
        return {"id": 1, **values}

    def update(self, values):
        self._record("update", dict(values))
        return self.affected

    def delete(self):
        self._record("delete")
        return self.affected


# --- Fixtures ---


@pytest.fixture()
def recorder():
    return RecordingBuilder(
        rows=[{"id": 1, "name": "abc", "age": 30, "status": 1, "password": "hunter2", "created_at": None}]
    )


@pytest.fixture()
def fake_forge(recorder):
    forge = CrudForge(ForgeConfig())
    forge.configure_error_handlers()
    forge.register(
        User,
        lambda: recorder,
        ResourceConfig(
            prefix="/res",
            query=FieldAccessSpec(exclude={"password"}),
            create=FieldAccessSpec(allow={"name", "status"}),
        ),
    )
    return forge


@pytest.fixture()
def fake_client(fake_forge):
    fake_forge.generate_routes()
    return TestClient(fake_forge.app)


@pytest.fixture()
def engine():
    return create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


@pytest.fixture()
def sql_forge(engine):
    metadata = MetaData()
    forge = CrudForge(ForgeConfig(default_page_size=10))
    forge.configure_error_handlers()

    def builder():
        return SqlAlchemyQueryBuilder(engine, metadata)

    forge.register(
        User,
        builder,
        ResourceConfig(prefix="/users", query=FieldAccessSpec(exclude={"password"})),
    )
    forge.register(OrderLine, builder, ResourceConfig(prefix="/lines"))
    forge.register(AuditLog, builder, ResourceConfig(prefix="/logs"))
    metadata.create_all(engine)
    forge.generate_routes()
    return forge


@pytest.fixture()
def client(sql_forge):
    return TestClient(sql_forge.app)
