"""Project-level configuration stored at ``.kan/config.toml``."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from .board import dump_toml
from .version import (
    CURRENT_PROJECT_VERSION,
    PROJECT_SCHEMA_PREFIX,
    SchemaVersionError,
    current_project_schema,
    schema_version_or_zero,
)

ICON_TYPE_LETTER = "letter"


class FaviconConfig(BaseModel):
    """Favicon appearance for the web UI."""

    background: str = ""
    icon_type: str = ICON_TYPE_LETTER
    letter: str = ""
    emoji: str = ""

    model_config = {"extra": "allow"}


class ProjectConfig(BaseModel):
    """Project configuration."""

    kan_schema: str | None = None
    id: str = ""
    name: str = ""
    favicon: FaviconConfig = Field(default_factory=FaviconConfig)

    model_config = {"extra": "allow"}

    @classmethod
    def from_raw(cls, data: dict[str, Any]) -> ProjectConfig:
        """Lenient decode; the stamp may be missing or outdated."""
        return cls.model_validate(data)

    @classmethod
    def from_raw_strict(cls, data: dict[str, Any], path: str) -> ProjectConfig:
        """Strict decode that rejects a missing or non-current stamp."""
        schema = data.get("kan_schema")
        if schema != current_project_schema():
            raise SchemaVersionError.for_stamp(
                "project config",
                path,
                schema if isinstance(schema, str) else None,
                PROJECT_SCHEMA_PREFIX,
                CURRENT_PROJECT_VERSION,
            )
        return cls.from_raw(data)

    def to_raw(self) -> dict[str, Any]:
        return dump_toml(self)

    @property
    def schema_version(self) -> int:
        return schema_version_or_zero(self.kan_schema, PROJECT_SCHEMA_PREFIX)
