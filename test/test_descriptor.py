# test/test_descriptor.py
from dataclasses import dataclass
from datetime import datetime
from typing import Annotated, Optional

import pytest
from pydantic import BaseModel
from sqlalchemy import Column as SqlColumn
from sqlalchemy import Integer, MetaData, String, Table

from crudforge.core.errors import SchemaError
from crudforge.core.introspection import (
    build_descriptor,
    descriptor_from_table,
    table_from_descriptor,
    to_snake_case,
)
from crudforge.core.models import Column, FieldDescriptor, ModelDescriptor

from conftest import AuditLog, OrderLine, User


def test_pydantic_record_fields():
    descriptor = build_descriptor(User)

    assert descriptor.table_name == "user"
    # nickname has no Column marker
    assert descriptor.storage_names == ["id", "name", "age", "status", "password", "created_at"]
    assert descriptor.primary_keys == ["id"]
    assert descriptor.auto_increment_field == "id"


def test_field_metadata():
    descriptor = build_descriptor(User)

    id_field = descriptor.field("id")
    assert id_field.is_primary_key and id_field.is_auto_increment
    assert id_field.python_type is int
    assert id_field.type_tag == "Optional[int]"

    created = descriptor.field("created_at")
    assert created.python_type is datetime
    assert created.nullable

    assert not descriptor.field("name").nullable


def test_dataclass_record_with_storage_name_and_composite_key():
    descriptor = build_descriptor(OrderLine)

    assert descriptor.table_name == "order_line"
    assert descriptor.primary_keys == ["order_id", "line_no"]
    assert descriptor.auto_increment_field is None
    sku = descriptor.field("product_sku")
    assert sku.display_name == "sku"
    assert not descriptor.has_field("sku")


def test_record_without_primary_key():
    descriptor = build_descriptor(AuditLog)
    assert descriptor.primary_keys == []


def test_descriptor_is_cached():
    assert build_descriptor(User) is build_descriptor(User)


@pytest.mark.parametrize(
    "name, expected",
    [
        ("User", "user"),
        ("UserProfile", "user_profile"),
        ("HTTPLog", "http_log"),
        ("orderLine", "order_line"),
    ],
)
def test_snake_case(name, expected):
    assert to_snake_case(name) == expected


def test_explicit_table_name():
    class Account(BaseModel):
        id: Annotated[int, Column(primary_key=True)]

        @classmethod
        def table_name(cls):
            return "accounts"

    class Invoice(BaseModel):
        __tablename__ = "billing_invoice"
        id: Annotated[int, Column(primary_key=True)]

    assert build_descriptor(Account).table_name == "accounts"
    assert build_descriptor(Invoice).table_name == "billing_invoice"


@pytest.mark.parametrize("bad", [int, "user", 42])
def test_non_record_types_are_rejected(bad):
    with pytest.raises(SchemaError):
        build_descriptor(bad)


def test_record_instance_is_rejected():
    with pytest.raises(SchemaError):
        build_descriptor(User(name="x"))


def test_record_without_columns_is_rejected():
    class Plain(BaseModel):
        name: str

    with pytest.raises(SchemaError, match="no persisted fields"):
        build_descriptor(Plain)


def test_two_auto_increment_fields_are_rejected():
    @dataclass
    class Twice:
        a: Annotated[int, Column(primary_key=True, auto_increment=True)]
        b: Annotated[int, Column(auto_increment=True)]

    with pytest.raises(SchemaError, match="more than one auto-increment"):
        build_descriptor(Twice)


def test_duplicate_storage_names_are_rejected():
    with pytest.raises(SchemaError, match="Duplicate"):
        ModelDescriptor(
            table_name="t",
            fields=[
                FieldDescriptor(storage_name="x", display_name="a", type_tag="int"),
                FieldDescriptor(storage_name="x", display_name="b", type_tag="int"),
            ],
        )


def test_unknown_primary_key_is_rejected():
    with pytest.raises(SchemaError):
        build_descriptor(User).with_primary_keys(["missing"])


def test_descriptor_from_table():
    metadata = MetaData()
    table = Table(
        "products",
        metadata,
        SqlColumn("id", Integer, primary_key=True),
        SqlColumn("title", String(80), nullable=False),
        SqlColumn("price", Integer),
    )

    descriptor = descriptor_from_table(table)

    assert descriptor.table_name == "products"
    assert descriptor.storage_names == ["id", "title", "price"]
    assert descriptor.primary_keys == ["id"]
    assert descriptor.auto_increment_field == "id"
    assert descriptor.field("title").python_type is str
    assert not descriptor.field("title").nullable


def test_table_from_descriptor_roundtrips_keys():
    metadata = MetaData()
    table = table_from_descriptor(build_descriptor(OrderLine), metadata)

    assert table.name == "order_line"
    assert [c.name for c in table.primary_key.columns] == ["order_id", "line_no"]
    assert "product_sku" in table.c
    # Declaring twice returns the same table
    assert table_from_descriptor(build_descriptor(OrderLine), metadata) is table
