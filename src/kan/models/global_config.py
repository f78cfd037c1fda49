"""User-level configuration stored at ``~/.config/kan/config.toml``."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from .board import dump_toml
from .version import (
    CURRENT_GLOBAL_VERSION,
    GLOBAL_SCHEMA_PREFIX,
    SchemaVersionError,
    current_global_schema,
    schema_version_or_zero,
)


class RepoConfig(BaseModel):
    """Per-repository settings keyed by repository path."""

    default_board: str = ""
    data_location: str = ""  # custom .kan location relative to the repo

    model_config = {"extra": "allow"}


class GlobalConfig(BaseModel):
    """Global Kan configuration."""

    kan_schema: str | None = None
    editor: str = ""
    projects: dict[str, str] = Field(default_factory=dict)  # name -> path
    repos: dict[str, RepoConfig] = Field(default_factory=dict)  # path -> config

    model_config = {"extra": "allow"}

    @classmethod
    def from_raw(cls, data: dict[str, Any]) -> GlobalConfig:
        """Lenient decode; the stamp may be missing or outdated."""
        return cls.model_validate(data)

    @classmethod
    def from_raw_strict(cls, data: dict[str, Any], path: str) -> GlobalConfig:
        """Strict decode that rejects a missing or non-current stamp."""
        schema = data.get("kan_schema")
        if schema != current_global_schema():
            raise SchemaVersionError.for_stamp(
                "global config",
                path,
                schema if isinstance(schema, str) else None,
                GLOBAL_SCHEMA_PREFIX,
                CURRENT_GLOBAL_VERSION,
            )
        return cls.from_raw(data)

    def to_raw(self) -> dict[str, Any]:
        return dump_toml(self)

    @property
    def schema_version(self) -> int:
        return schema_version_or_zero(self.kan_schema, GLOBAL_SCHEMA_PREFIX)

    def get_repo_config(self, repo_path: str) -> RepoConfig | None:
        return self.repos.get(repo_path)
