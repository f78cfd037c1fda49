"""Board configuration models for ``boards/<name>/config.toml``."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from .version import (
    BOARD_SCHEMA_PREFIX,
    CURRENT_BOARD_VERSION,
    SchemaVersionError,
    current_board_schema,
    schema_version_or_zero,
)


class FieldType(str, Enum):
    """Custom field types a board can declare."""

    STRING = "string"
    ENUM = "enum"
    ENUM_SET = "enum-set"
    FREE_SET = "free-set"
    DATE = "date"
    TAGS = "tags"  # legacy spelling of enum-set written by the labels migration


ENUM_TYPES = frozenset({FieldType.ENUM.value})
SET_TYPES = frozenset({FieldType.ENUM_SET.value, FieldType.FREE_SET.value, FieldType.TAGS.value})


def dump_toml(model: BaseModel) -> dict[str, Any]:
    """Dump a model to a TOML-ready dict.

    Declared fields holding None (which TOML cannot hold) or an empty default
    are omitted, as are unset fields at their default. Unknown keys kept by
    ``extra="allow"`` are passed through untouched, whatever their value.
    """
    data: dict[str, Any] = {}
    for name, field in type(model).model_fields.items():
        value = getattr(model, name)
        if value is None:
            continue
        if not field.is_required() and value == field.get_default(call_default_factory=True):
            if not value or name not in model.model_fields_set:
                continue
        data[field.alias or name] = _dump_value(value)
    data.update(model.model_extra or {})
    return data


def _dump_value(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return dump_toml(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, list):
        return [_dump_value(item) for item in value]
    if isinstance(value, dict):
        return {key: _dump_value(item) for key, item in value.items()}
    return value


class CustomFieldOption(BaseModel):
    """One allowed value of an enum-like custom field."""

    value: str
    color: str = ""
    description: str = ""

    model_config = {"extra": "allow"}


class CustomFieldSchema(BaseModel):
    """Declared type (and options) of a board custom field."""

    type: str = FieldType.STRING.value
    options: list[CustomFieldOption] = Field(default_factory=list)
    wanted: bool = False
    description: str = ""

    model_config = {"extra": "allow"}

    @property
    def is_enum(self) -> bool:
        return self.type in ENUM_TYPES

    @property
    def is_set(self) -> bool:
        return self.type in SET_TYPES


class CardDisplay(BaseModel):
    """Which custom fields render on a card and how."""

    type_indicator: str = ""
    badges: list[str] = Field(default_factory=list)
    metadata: list[str] = Field(default_factory=list)

    model_config = {"extra": "allow"}


class LinkRule(BaseModel):
    """Turns regex matches in card text into links."""

    name: str = ""
    pattern: str = ""
    url: str = ""

    model_config = {"extra": "allow"}


class PatternHook(BaseModel):
    """Runs a command when a new card's title matches a regex."""

    name: str = ""
    pattern_title: str = ""
    command: str = ""
    timeout: int | None = None

    model_config = {"extra": "allow"}


class Column(BaseModel):
    """A board column. ``card_ids`` is authoritative for membership and order."""

    name: str
    color: str = ""
    description: str = ""
    limit: int | None = None
    card_ids: list[str] = Field(default_factory=list)

    model_config = {"extra": "allow"}


class BoardConfig(BaseModel):
    """Board configuration as stored on disk.

    Unknown keys are kept so that a read followed by a rewrite is lossless.
    """

    kan_schema: str | None = None
    id: str = ""
    name: str = ""
    columns: list[Column] = Field(default_factory=list)
    default_column: str = ""
    custom_fields: dict[str, CustomFieldSchema] = Field(default_factory=dict)
    card_display: CardDisplay = Field(default_factory=CardDisplay)
    link_rules: list[LinkRule] = Field(default_factory=list)
    pattern_hooks: list[PatternHook] = Field(default_factory=list)

    model_config = {"extra": "allow"}

    # --- Decoding ---

    @classmethod
    def from_raw(cls, data: dict[str, Any]) -> BoardConfig:
        """Lenient decode used by migration and diagnostics.

        A missing or outdated ``kan_schema`` is accepted as-is; type errors in
        known fields still raise ``pydantic.ValidationError``.
        """
        return cls.model_validate(data)

    @classmethod
    def from_raw_strict(cls, data: dict[str, Any], path: str) -> BoardConfig:
        """Strict decode used by the runtime store.

        Raises:
            SchemaVersionError: If the stamp is missing or not current.
            ValueError: If column names are not unique.
        """
        schema = data.get("kan_schema")
        if schema != current_board_schema():
            raise SchemaVersionError.for_stamp(
                "board config",
                path,
                schema if isinstance(schema, str) else None,
                BOARD_SCHEMA_PREFIX,
                CURRENT_BOARD_VERSION,
            )
        config = cls.from_raw(data)
        names = config.column_names
        if len(names) != len(set(names)):
            raise ValueError(f"Column names must be unique (file: {path})")
        return config

    def to_raw(self) -> dict[str, Any]:
        """Encode to a TOML-ready dict; declared fields at their defaults are omitted."""
        return dump_toml(self)

    # --- Queries ---

    @property
    def schema_version(self) -> int:
        return schema_version_or_zero(self.kan_schema, BOARD_SCHEMA_PREFIX)

    @property
    def column_names(self) -> list[str]:
        """Column names in declared order."""
        return [col.name for col in self.columns]

    def has_column(self, name: str) -> bool:
        return any(col.name == name for col in self.columns)

    def get_column(self, name: str) -> Column | None:
        for col in self.columns:
            if col.name == name:
                return col
        return None

    def get_default_column(self) -> str:
        """Default column name, falling back to the first column."""
        if self.default_column and self.has_column(self.default_column):
            return self.default_column
        if self.columns:
            return self.columns[0].name
        return ""

    def find_card_column(self, card_id: str) -> str | None:
        """Name of the first column (in declared order) holding the card."""
        for col in self.columns:
            if card_id in col.card_ids:
                return col.name
        return None

    # --- Mutation ---

    def insert_card_in_column(self, card_id: str, column_name: str, position: int) -> None:
        """Insert a card ID into a column at the given position.

        Raises:
            ValueError: If the column does not exist.
        """
        column = self.get_column(column_name)
        if column is None:
            raise ValueError(f"column not found: {column_name!r} (in board {self.name!r})")
        position = max(0, min(position, len(column.card_ids)))
        column.card_ids.insert(position, card_id)

    def remove_card(self, card_id: str) -> int:
        """Remove every reference to a card. Returns the number removed."""
        removed = 0
        for col in self.columns:
            before = len(col.card_ids)
            col.card_ids = [cid for cid in col.card_ids if cid != card_id]
            removed += before - len(col.card_ids)
        return removed

    def dedupe_card(self, card_id: str) -> int:
        """Keep only the first occurrence of a card, in column order."""
        found = False
        removed = 0
        for col in self.columns:
            kept: list[str] = []
            for cid in col.card_ids:
                if cid == card_id:
                    if found:
                        removed += 1
                        continue
                    found = True
                kept.append(cid)
            col.card_ids = kept
        return removed

    # --- Validation ---

    def validate_card_display(self) -> list[tuple[str, str]]:
        """Check card_display references against ``custom_fields``.

        Returns:
            ``(sub_field, message)`` pairs where sub_field is one of
            ``type_indicator``, ``badges`` or ``metadata``.
        """
        problems: list[tuple[str, str]] = []
        display = self.card_display

        if display.type_indicator:
            schema = self.custom_fields.get(display.type_indicator)
            if schema is None:
                problems.append(
                    (
                        "type_indicator",
                        f"card_display.type_indicator references undefined field "
                        f"'{display.type_indicator}'",
                    )
                )
            elif not schema.is_enum:
                problems.append(
                    (
                        "type_indicator",
                        f"card_display.type_indicator field '{display.type_indicator}' "
                        f"must be enum type, got '{schema.type}'",
                    )
                )

        for name in display.badges:
            schema = self.custom_fields.get(name)
            if schema is None:
                problems.append(
                    ("badges", f"card_display.badges references undefined field '{name}'")
                )
            elif not schema.is_set:
                problems.append(
                    (
                        "badges",
                        f"card_display.badges field '{name}' must be enum-set or "
                        f"free-set type, got '{schema.type}'",
                    )
                )

        for name in display.metadata:
            if name not in self.custom_fields:
                problems.append(
                    ("metadata", f"card_display.metadata references undefined field '{name}'")
                )

        return problems

    def valid_badges(self) -> list[str]:
        """Badges that reference a declared field."""
        return [name for name in self.card_display.badges if name in self.custom_fields]

    def valid_metadata(self) -> list[str]:
        """Metadata fields that are declared."""
        return [name for name in self.card_display.metadata if name in self.custom_fields]
