"""Card domain model for ``cards/<id>.json``.

Card files are flat JSON objects: known keys map to model fields and every
other top-level key is a board-defined custom field value.
"""

from __future__ import annotations

from datetime import date
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, model_validator

from .board import CustomFieldSchema, FieldType
from .version import CARD_VERSION_KEY, CURRENT_CARD_VERSION, SchemaVersionError

LEGACY_COLUMN_KEY = "column"

KNOWN_CARD_KEYS = frozenset(
    {
        CARD_VERSION_KEY,
        "id",
        "alias",
        "alias_explicit",
        "title",
        "description",
        "parent",
        "creator",
        "created_at_millis",
        "updated_at_millis",
        "comments",
    }
)

RESERVED_FIELD_PREFIXES = ("_", "kan_")


class ReservedFieldPrefixError(ValueError):
    """A custom field name uses a prefix reserved for Kan itself."""

    def __init__(self, field_name: str, prefix: str) -> None:
        self.field_name = field_name
        self.prefix = prefix
        suggestion = field_name[len(prefix) :] or f"x_{field_name}"
        super().__init__(
            f'custom field "{field_name}" uses reserved prefix "{prefix}" '
            f'(reserved for Kan internal use). Try "{suggestion}" instead.'
        )


def validate_custom_field_name(name: str) -> str:
    """Reject custom field names that use a reserved prefix."""
    for prefix in RESERVED_FIELD_PREFIXES:
        if name.startswith(prefix):
            raise ReservedFieldPrefixError(name, prefix)
    return name


# --- Custom field values (tagged union) ---


class StringValue(BaseModel):
    kind: Literal["string"] = "string"
    value: str

    def to_raw(self) -> Any:
        return self.value


class EnumValue(BaseModel):
    kind: Literal["enum"] = "enum"
    value: str

    def to_raw(self) -> Any:
        return self.value


class SetValue(BaseModel):
    kind: Literal["enum-set", "free-set"] = "free-set"
    values: list[str] = Field(default_factory=list)

    def to_raw(self) -> Any:
        return list(self.values)


class DateValue(BaseModel):
    kind: Literal["date"] = "date"
    value: date

    def to_raw(self) -> Any:
        return self.value.isoformat()


class RawValue(BaseModel):
    """A value that matches no declared type; kept verbatim."""

    kind: Literal["raw"] = "raw"
    value: Any = None

    def to_raw(self) -> Any:
        return self.value


CustomFieldValue = Annotated[
    StringValue | EnumValue | SetValue | DateValue | RawValue,
    Field(discriminator="kind"),
]


def _is_str_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(v, str) for v in value)


def decode_field_value(value: Any, schema: CustomFieldSchema | None = None) -> CustomFieldValue:
    """Decode a raw JSON value against its declared schema.

    Without a schema the type is inferred from the JSON value. Values that do
    not fit their declared type are kept as ``RawValue`` so nothing is lost.
    """
    if schema is None:
        if isinstance(value, str):
            return StringValue(value=value)
        if _is_str_list(value):
            return SetValue(kind="free-set", values=value)
        return RawValue(value=value)

    field_type = schema.type
    if field_type == FieldType.ENUM.value and isinstance(value, str):
        return EnumValue(value=value)
    if field_type in (FieldType.ENUM_SET.value, FieldType.TAGS.value) and _is_str_list(value):
        return SetValue(kind="enum-set", values=value)
    if field_type == FieldType.FREE_SET.value and _is_str_list(value):
        return SetValue(kind="free-set", values=value)
    if field_type == FieldType.DATE.value and isinstance(value, str):
        try:
            return DateValue(value=date.fromisoformat(value))
        except ValueError:
            return RawValue(value=value)
    if field_type == FieldType.STRING.value and isinstance(value, str):
        return StringValue(value=value)
    return RawValue(value=value)


# --- Card ---


class Comment(BaseModel):
    """A comment on a card."""

    id: str = ""
    body: str = ""
    author: str = ""
    created_at_millis: int = 0

    model_config = {"extra": "allow"}

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        """A JSON null decodes to the field default."""
        if data is None:
            return {}
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class Card(BaseModel):
    """Represents a single card file."""

    version: int | None = Field(default=None, alias=CARD_VERSION_KEY)
    id: str = ""
    alias: str = ""
    alias_explicit: bool = False
    title: str = ""
    description: str = ""
    parent: str = ""
    creator: str = ""
    created_at_millis: int = 0
    updated_at_millis: int = 0
    comments: list[Comment] = Field(default_factory=list)

    # Serialized at the top level of the JSON object, not nested
    custom_fields: dict[str, CustomFieldValue] = Field(default_factory=dict)

    # Pre-v1 cards stored their column inline; membership now lives on the board
    legacy_column: str | None = None

    model_config = {"populate_by_name": True}

    @classmethod
    def from_raw(
        cls,
        data: dict[str, Any],
        schemas: dict[str, CustomFieldSchema] | None = None,
    ) -> Card:
        """Lenient decode used by migration and diagnostics.

        A missing ``_v`` and a legacy ``column`` key are recorded, not rejected.
        Known keys set to null take their defaults. Other type errors in known
        fields raise ``pydantic.ValidationError``.
        """
        schemas = schemas or {}
        known: dict[str, Any] = {}
        custom: dict[str, Any] = {}
        legacy_column = None
        for key, value in data.items():
            if key in KNOWN_CARD_KEYS:
                if value is not None:
                    known[key] = value
            elif key == LEGACY_COLUMN_KEY:
                legacy_column = "" if value is None else str(value)
            else:
                custom[key] = decode_field_value(value, schemas.get(key))
        return cls.model_validate(
            {**known, "custom_fields": custom, "legacy_column": legacy_column}
        )

    @classmethod
    def from_raw_strict(
        cls,
        data: dict[str, Any],
        path: str,
        schemas: dict[str, CustomFieldSchema] | None = None,
    ) -> Card:
        """Strict decode used by the runtime store.

        Raises:
            SchemaVersionError: If ``_v`` is missing or not current.
            ValueError: If the card still carries the legacy ``column`` key or
                a custom field uses a reserved prefix.
        """
        raw_version = data.get(CARD_VERSION_KEY)
        if raw_version != CURRENT_CARD_VERSION or isinstance(raw_version, bool):
            found = raw_version if isinstance(raw_version, int) else None
            raise SchemaVersionError.for_card(path, found)
        if LEGACY_COLUMN_KEY in data:
            raise ValueError(
                f"card has legacy 'column' field (file: {path}). Run 'kan migrate' to upgrade."
            )
        card = cls.from_raw(data, schemas)
        for name in card.custom_fields:
            validate_custom_field_name(name)
        return card

    def to_raw(self) -> dict[str, Any]:
        """Encode to the flat JSON object stored on disk."""
        data: dict[str, Any] = {}
        if self.version is not None:
            data[CARD_VERSION_KEY] = self.version
        data["id"] = self.id
        data["alias"] = self.alias
        data["alias_explicit"] = self.alias_explicit
        data["title"] = self.title
        if self.description:
            data["description"] = self.description
        if self.parent:
            data["parent"] = self.parent
        data["creator"] = self.creator
        data["created_at_millis"] = self.created_at_millis
        data["updated_at_millis"] = self.updated_at_millis
        if self.comments:
            data["comments"] = [c.model_dump(mode="json") for c in self.comments]
        if self.legacy_column is not None:
            data[LEGACY_COLUMN_KEY] = self.legacy_column
        for key, value in self.custom_fields.items():
            data[key] = value.to_raw()
        return data
