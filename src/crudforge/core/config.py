# src/crudforge/core/config.py
"""Configuration models for the forge and for individual resources."""

from typing import Dict, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from crudforge.core.access import FieldAccessSpec

# Operations every resource gets unless told otherwise
DEFAULT_OPERATIONS: FrozenSet[str] = frozenset(
    {"list", "detail", "save", "update", "delete", "table"}
)


class ForgeConfig(BaseSettings):
    """Application-wide settings, overridable through ``CRUDFORGE_*`` env vars."""

    project_name: str = "crudforge API"
    version: str = "0.1.0"
    description: str = "CRUD endpoints generated from record definitions"
    author: Optional[str] = None
    email: Optional[str] = None
    license_info: Optional[Dict[str, str]] = None
    debug_mode: bool = False

    # HTTP
    host: str = "localhost"
    port: int = 8000
    cors_origins: List[str] = ["*"]
    docs_path: str = "/api-info"

    # Pagination
    default_page_size: int = Field(default=10, ge=1)
    max_page_size: Optional[int] = Field(default=None, ge=1)

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="CRUDFORGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()


class ResourceConfig(BaseModel):
    """Per-resource options: routing, field access and enabled operations."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    # Route prefix; defaults to "/<table_name>"
    prefix: Optional[str] = None
    # Docs group; defaults to the table name
    group: Optional[str] = None
    description: str = ""

    query: FieldAccessSpec = Field(default_factory=FieldAccessSpec)
    create: FieldAccessSpec = Field(default_factory=FieldAccessSpec)
    update: FieldAccessSpec = Field(default_factory=FieldAccessSpec)

    # Overrides the descriptor's primary keys when set
    primary_keys: Optional[List[str]] = None
    operations: FrozenSet[str] = DEFAULT_OPERATIONS
    # Also serve detail at "{prefix}/{id}"
    id_shortcut: bool = False
