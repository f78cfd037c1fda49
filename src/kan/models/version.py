"""Schema version stamps for persisted Kan files.

Every persisted entity carries a stamp identifying the format it was written
in. Boards, the global config, and the project config use a string stamp
under the ``kan_schema`` key (``"board/3"``); cards use the integer ``_v``.
A missing or unparseable stamp is treated as version 0 (pre-versioning data).

When bumping a version:
    1. Update the constant below
    2. Add an entry to MIN_KAN_VERSION
    3. Append a step to the relevant table in ``kan.services.migrations``
"""

from __future__ import annotations

CURRENT_CARD_VERSION = 1
CURRENT_BOARD_VERSION = 3
CURRENT_GLOBAL_VERSION = 1
CURRENT_PROJECT_VERSION = 1

SCHEMA_KEY = "kan_schema"
CARD_VERSION_KEY = "_v"

BOARD_SCHEMA_PREFIX = "board/"
GLOBAL_SCHEMA_PREFIX = "global/"
PROJECT_SCHEMA_PREFIX = "project/"

# Minimum Kan release able to read each schema. Used to word errors when a
# file was written by a newer tool than this one.
MIN_KAN_VERSION: dict[str, str] = {
    "card/1": "0.1.0",
    "board/1": "0.1.0",
    "board/2": "0.2.0",
    "board/3": "0.4.0",
    "global/1": "0.1.0",
    "project/1": "0.3.0",
}


def format_schema(prefix: str, version: int) -> str:
    """Format a schema stamp, e.g. ``format_schema("board/", 3) == "board/3"``."""
    return f"{prefix}{version}"


def parse_schema(schema: str, prefix: str) -> int:
    """Extract the version number from a schema stamp.

    Raises:
        ValueError: If the stamp has the wrong prefix, a non-integer version,
            or a version below 1.
    """
    kind = prefix.rstrip("/")
    if not schema.startswith(prefix):
        raise ValueError(f"invalid {kind} schema format: {schema!r} (expected {prefix}N)")
    version_str = schema[len(prefix) :]
    try:
        version = int(version_str)
    except ValueError as err:
        raise ValueError(f"invalid {kind} schema version: {version_str!r}") from err
    if version < 1:
        raise ValueError(f"invalid {kind} schema version: {version} (must be >= 1)")
    return version


def schema_version_or_zero(schema: object, prefix: str) -> int:
    """Lenient stamp parse: anything missing or malformed is version 0."""
    if not isinstance(schema, str):
        return 0
    try:
        return parse_schema(schema, prefix)
    except ValueError:
        return 0


def card_version_or_zero(value: object) -> int:
    """Lenient ``_v`` parse for cards."""
    # bool is an int subclass; a stray `true` is not a version
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return 0


def current_board_schema() -> str:
    return format_schema(BOARD_SCHEMA_PREFIX, CURRENT_BOARD_VERSION)


def current_global_schema() -> str:
    return format_schema(GLOBAL_SCHEMA_PREFIX, CURRENT_GLOBAL_VERSION)


def current_project_schema() -> str:
    return format_schema(PROJECT_SCHEMA_PREFIX, CURRENT_PROJECT_VERSION)


class SchemaVersionError(Exception):
    """A file's schema stamp is missing, invalid, or newer than supported."""

    def __init__(
        self,
        file_type: str,
        file_path: str,
        found: str,
        expected: str,
        min_required: str | None = None,
    ) -> None:
        self.file_type = file_type
        self.file_path = file_path
        self.found = found
        self.expected = expected
        self.min_required = min_required
        super().__init__(self._message())

    def _message(self) -> str:
        if self.min_required:
            return (
                f"{self.file_type} schema version {self.found} requires Kan >= "
                f"{self.min_required} (file: {self.file_path}, found: {self.found}, "
                f"supports up to: {self.expected})"
            )
        if self.found == "missing":
            return (
                f"{self.file_type} has no schema version (file: {self.file_path}). "
                "Run 'kan migrate' to upgrade."
            )
        return (
            f"{self.file_type} has invalid schema version: found {self.found}, "
            f"expected {self.expected} (file: {self.file_path})"
        )

    @classmethod
    def for_stamp(
        cls,
        file_type: str,
        path: str,
        found: str | None,
        prefix: str,
        current: int,
    ) -> SchemaVersionError:
        """Build the error for a config stamp that is not the current one."""
        expected = format_schema(prefix, current)
        if found is None:
            return cls(file_type, path, "missing", expected)
        min_required = None
        if schema_version_or_zero(found, prefix) > current:
            min_required = MIN_KAN_VERSION.get(found, "a newer version")
        return cls(file_type, path, found, expected, min_required)

    @classmethod
    def for_card(cls, path: str, found: int | None) -> SchemaVersionError:
        """Build the error for a card whose ``_v`` is not the current one."""
        expected = str(CURRENT_CARD_VERSION)
        if found is None:
            return cls("card", path, "missing", expected)
        min_required = None
        if found > CURRENT_CARD_VERSION:
            min_required = MIN_KAN_VERSION.get(f"card/{found}", "a newer version")
        return cls("card", path, str(found), expected, min_required)
