# test/test_sqlalchemy_builder.py
"""Generated routes against an in-memory SQLite database."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import Column as SqlColumn
from sqlalchemy import Integer, MetaData, String, Table

from crudforge import CrudForge, ForgeConfig, ResourceConfig, SqlAlchemyQueryBuilder
from crudforge.core.access import FieldAccessSpec
from crudforge.core.errors import ExecutionError
from crudforge.core.introspection import build_descriptor
from crudforge.core.query import Condition, OperatorKind, SortOrder, escape_like

from conftest import User


def create_user(client, **payload):
    r = client.post("/users/save", json=payload)
    assert r.status_code == 200, r.text
    return r.json()["data"]


def test_create_and_read_back(client):
    created = create_user(client, name="ann", age=31, password="pw", created_at="2024-01-02T03:04:05")

    assert created["id"] == 1
    assert created["name"] == "ann"
    assert created["created_at"] == "2024-01-02T03:04:05"
    assert "password" not in created

    detail = client.get("/users/detail/1").json()["data"]
    assert detail == created


def test_create_uses_record_defaults(client):
    created = create_user(client, name="bob")
    assert created["age"] == 0
    assert created["status"] == 1


def test_list_filters_sorts_and_counts(client):
    for name, age in [("ann", 31), ("anna", 40), ("bob", 22), ("dan", 40)]:
        create_user(client, name=name, age=age)

    body = client.get("/users", params={"age__in": "31,40", "sort": "-age,name", "size": 2}).json()
    page = body["data"]
    assert page["total"] == 3
    assert page["totalPages"] == 2
    assert [row["name"] for row in page["data"]] == ["anna", "dan"]

    second = client.get("/users/list", params={"age__in": "31,40", "sort": "-age,name", "size": 2, "page": 2})
    assert [row["name"] for row in second.json()["data"]["data"]] == ["ann"]

    like = client.get("/users", params={"name__like": "an", "age__lt": "35"}).json()["data"]
    assert [row["name"] for row in like["data"]] == ["ann"]


def test_like_matches_wildcards_literally(client):
    create_user(client, name="100%")
    create_user(client, name="1000")

    rows = client.get("/users", params={"name__like": "100%"}).json()["data"]["data"]
    assert [row["name"] for row in rows] == ["100%"]


def test_prefix_and_suffix_matches(client):
    for name in ["apple", "pineapple", "apricot", "ap_x"]:
        create_user(client, name=name)

    def names(**params):
        return sorted(row["name"] for row in client.get("/users", params=params).json()["data"]["data"])

    assert names(name__starts="ap") == ["ap_x", "apple", "apricot"]
    assert names(name__ends="apple") == ["apple", "pineapple"]
    assert names(name_starts="x") == []
    # Wildcards in the value match literally
    assert names(name__starts="ap_") == ["ap_x"]


def test_update_then_read(client):
    create_user(client, name="ann", age=31)

    r = client.put("/users/update/1", json={"age": 32, "id": 7})
    assert r.status_code == 200, r.text
    assert r.json()["data"]["age"] == 32
    assert r.json()["data"]["id"] == 1


def test_update_can_move_the_primary_key(engine):
    metadata = MetaData()
    forge = CrudForge(ForgeConfig())
    forge.register(
        User,
        lambda: SqlAlchemyQueryBuilder(engine, metadata),
        ResourceConfig(prefix="/users", update=FieldAccessSpec(allow={"id", "name"})),
    )
    metadata.create_all(engine)
    forge.generate_routes()
    client = TestClient(forge.app)
    create_user(client, name="ann")

    r = client.put("/users/update/1", json={"id": 5, "name": "anne"})
    assert r.status_code == 200, r.text
    assert r.json()["data"]["id"] == 5
    assert r.json()["data"]["name"] == "anne"
    assert client.get("/users/detail/5").status_code == 200
    assert client.get("/users/detail/1").status_code == 404


def test_update_missing_record(client):
    r = client.put("/users/update/99", json={"age": 1})
    assert r.status_code == 404
    assert r.json()["code"] == 404


def test_delete(client):
    create_user(client, name="ann")

    assert client.delete("/users/delete/1").json()["data"] == {"id": 1, "affected": 1}
    assert client.get("/users/detail/1").status_code == 404
    # Deleting again is not an error
    assert client.delete("/users/delete/1").json()["data"] == {"id": 1, "affected": 0}


def test_filter_on_unknown_field_is_ignored(client):
    create_user(client, name="ann")
    page = client.get("/users", params={"nickname": "x"}).json()["data"]
    assert page["total"] == 1


def test_composite_primary_key(client):
    r = client.post("/lines/save", json={"order_id": 1, "line_no": 2, "sku": "A-1", "quantity": 3})
    assert r.status_code == 200, r.text
    assert r.json()["data"]["product_sku"] == "A-1"

    detail = client.get("/lines/detail/1", params={"line_no": 2})
    assert detail.status_code == 200, detail.text
    assert detail.json()["data"]["quantity"] == 3

    assert client.get("/lines/detail/1").status_code == 400
    assert client.get("/lines/detail/1", params={"line_no": 9}).status_code == 404


def test_resource_without_primary_key(client):
    r = client.post("/logs/save", json={"message": "started"})
    assert r.status_code == 200, r.text
    assert r.json()["data"]["message"] == "started"

    rows = client.get("/logs").json()["data"]["data"]
    assert rows == [{"message": "started", "level": "info"}]

    assert client.get("/logs/detail/1").status_code == 400
    assert client.delete("/logs/delete/1").status_code == 400


def test_table_route_reports_structure(client):
    data = client.get("/lines/table").json()["data"]
    assert data["table"] == "order_line"
    assert data["primaryKeys"] == ["order_id", "line_no"]
    assert data["autoIncrement"] is None
    sku = next(f for f in data["fields"] if f["name"] == "product_sku")
    assert sku["displayName"] == "sku"


# --- Builder used directly ---


@pytest.fixture()
def builder(engine):
    b = SqlAlchemyQueryBuilder(engine, MetaData())
    b.prepare(build_descriptor(User))
    b.metadata.create_all(engine)
    base = b.build_filter("user", [])
    for name, age in [("a", 1), ("b", 2), ("c", 3)]:
        base.insert({"name": name, "age": age})
    return b


def test_chain_methods_do_not_mutate(builder):
    base = builder.build_filter("user", [])
    paged = base.order_by([SortOrder(column="age", desc=True)]).paginate(0, 1)

    assert len(base.list()) == 3
    assert [row["name"] for row in paged.list()] == ["c"]
    # Paging does not change the count
    assert paged.count() == 3


def test_fields_limit_the_selected_columns(builder):
    rows = builder.build_filter("user", [Condition("age", OperatorKind.GE, 2)]).fields(["name"]).list()
    assert rows == [{"name": "b"}, {"name": "c"}]


def test_unknown_table_and_column(builder):
    with pytest.raises(ExecutionError):
        builder.build_filter("ghost", [])
    with pytest.raises(ExecutionError):
        builder.build_filter("user", [Condition("ghost", OperatorKind.EQ, 1)])


def test_update_and_delete_need_conditions(builder):
    unfiltered = builder.build_filter("user", [])
    with pytest.raises(ExecutionError):
        unfiltered.update({"age": 9})
    with pytest.raises(ExecutionError):
        unfiltered.delete()


def test_terminal_methods_need_a_table(builder):
    with pytest.raises(ExecutionError):
        builder.count()


def test_escape_like():
    assert escape_like("50%_off\\") == "50\\%\\_off\\\\"


def test_register_existing_table(engine):
    metadata = MetaData()
    tags = Table(
        "tag",
        metadata,
        SqlColumn("id", Integer, primary_key=True, autoincrement=True),
        SqlColumn("label", String, nullable=False),
    )
    metadata.create_all(engine)

    forge = CrudForge(ForgeConfig())
    resource = forge.register_table(tags, lambda: SqlAlchemyQueryBuilder(engine, metadata))
    assert resource.descriptor.auto_increment_field == "id"
    forge.generate_routes()
    client = TestClient(forge.app)

    created = client.post("/tag/save", json={"label": "red"}).json()["data"]
    assert created == {"id": 1, "label": "red"}
    assert client.get("/tag", params={"label": "red"}).json()["data"]["total"] == 1
