# src/crudforge/core/models/descriptor.py
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from crudforge.core.errors import SchemaError


@dataclass(frozen=True)
class Column:
    """Persistence marker for a record field.

    Only fields annotated with ``Annotated[T, Column(...)]`` become columns::

        class User(BaseModel):
            id: Annotated[Optional[int], Column(primary_key=True, auto_increment=True)] = None
            user_name: Annotated[str, Column("username")]
            nickname: str = ""  # not persisted
    """

    name: Optional[str] = None
    primary_key: bool = False
    auto_increment: bool = False


class FieldDescriptor(BaseModel):
    """Static metadata for a single persisted field."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    storage_name: str
    display_name: str
    type_tag: str
    python_type: Any = Field(default=None, exclude=True)
    default: Any = Field(default=None, exclude=True)
    is_primary_key: bool = False
    is_auto_increment: bool = False
    nullable: bool = True


class ModelDescriptor(BaseModel):
    """Schema of a record type: table name, fields and keys."""

    model_config = ConfigDict(frozen=True)

    table_name: str
    fields: List[FieldDescriptor]
    primary_keys: List[str] = []
    auto_increment_field: Optional[str] = None

    @model_validator(mode="after")
    def _check_consistency(self) -> "ModelDescriptor":
        names = [f.storage_name for f in self.fields]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise SchemaError(
                f"Duplicate storage names in '{self.table_name}': {', '.join(duplicates)}"
            )
        for key in self.primary_keys:
            if key not in names:
                raise SchemaError(f"Primary key '{key}' is not a field of '{self.table_name}'")
        if self.auto_increment_field and self.auto_increment_field not in names:
            raise SchemaError(
                f"Auto-increment field '{self.auto_increment_field}' is not a field of '{self.table_name}'"
            )
        return self

    @property
    def storage_names(self) -> List[str]:
        return [f.storage_name for f in self.fields]

    def has_field(self, name: str) -> bool:
        return any(f.storage_name == name for f in self.fields)

    def field(self, name: str) -> FieldDescriptor:
        for f in self.fields:
            if f.storage_name == name:
                return f
        raise KeyError(name)

    def python_types(self) -> Dict[str, Any]:
        return {f.storage_name: f.python_type for f in self.fields}

    def with_primary_keys(self, keys: List[str]) -> "ModelDescriptor":
        """Copy of this descriptor with different primary keys."""
        fields = [
            f.model_copy(update={"is_primary_key": f.storage_name in keys}) for f in self.fields
        ]
        return ModelDescriptor(
            table_name=self.table_name,
            fields=fields,
            primary_keys=list(keys),
            auto_increment_field=self.auto_increment_field,
        )
