"""Tests for schema version stamps."""

import pytest

from kan.models.version import (
    BOARD_SCHEMA_PREFIX,
    CURRENT_BOARD_VERSION,
    SchemaVersionError,
    card_version_or_zero,
    current_board_schema,
    current_global_schema,
    current_project_schema,
    format_schema,
    parse_schema,
    schema_version_or_zero,
)


class TestParseSchema:
    """Tests for parse_schema and its lenient wrapper."""

    def test_parses_board_stamp(self):
        """A well-formed stamp yields its version."""
        assert parse_schema("board/3", BOARD_SCHEMA_PREFIX) == 3

    def test_rejects_wrong_prefix(self):
        """A stamp for another file type is rejected."""
        with pytest.raises(ValueError, match="invalid board schema format"):
            parse_schema("global/1", BOARD_SCHEMA_PREFIX)

    def test_rejects_non_integer(self):
        """Non-numeric versions are rejected."""
        with pytest.raises(ValueError, match="invalid board schema version"):
            parse_schema("board/x", BOARD_SCHEMA_PREFIX)

    def test_rejects_zero(self):
        """Versions start at 1."""
        with pytest.raises(ValueError, match="must be >= 1"):
            parse_schema("board/0", BOARD_SCHEMA_PREFIX)

    @pytest.mark.parametrize("value", [None, "", "board/", "board/abc", "card/2", 4])
    def test_lenient_parse_falls_back_to_zero(self, value):
        """Missing or malformed stamps count as version 0."""
        assert schema_version_or_zero(value, BOARD_SCHEMA_PREFIX) == 0

    def test_format_round_trips(self):
        """format_schema produces what parse_schema reads."""
        stamp = format_schema(BOARD_SCHEMA_PREFIX, 7)
        assert stamp == "board/7"
        assert parse_schema(stamp, BOARD_SCHEMA_PREFIX) == 7

    def test_current_stamps(self):
        """Current stamps use the expected prefixes."""
        assert current_board_schema() == f"board/{CURRENT_BOARD_VERSION}"
        assert current_global_schema() == "global/1"
        assert current_project_schema() == "project/1"


class TestCardVersion:
    """Tests for card_version_or_zero."""

    def test_integer(self):
        """Integers are returned as-is."""
        assert card_version_or_zero(1) == 1

    def test_integral_float(self):
        """JSON numbers like 1.0 are accepted."""
        assert card_version_or_zero(1.0) == 1

    @pytest.mark.parametrize("value", [None, True, "1", 1.5, [1]])
    def test_other_values_are_zero(self, value):
        """Anything else is treated as unversioned."""
        assert card_version_or_zero(value) == 0


class TestSchemaVersionError:
    """Tests for SchemaVersionError messages."""

    def test_missing_stamp_suggests_migrate(self):
        """A missing stamp points at kan migrate."""
        err = SchemaVersionError.for_stamp("board config", "/b.toml", None, "board/", 3)
        assert err.found == "missing"
        assert "kan migrate" in str(err)
        assert "/b.toml" in str(err)

    def test_newer_stamp_names_minimum_version(self):
        """A stamp from a newer tool reports the required release."""
        err = SchemaVersionError.for_stamp("board config", "/b.toml", "board/9", "board/", 3)
        assert err.min_required == "a newer version"
        assert "requires Kan >=" in str(err)

    def test_older_stamp_reports_expected(self):
        """An older stamp reports found and expected."""
        err = SchemaVersionError.for_stamp("board config", "/b.toml", "board/2", "board/", 3)
        assert err.min_required is None
        assert "found board/2, expected board/3" in str(err)

    def test_card_missing_version(self):
        """Cards without _v are reported as missing."""
        err = SchemaVersionError.for_card("/c.json", None)
        assert err.file_type == "card"
        assert err.found == "missing"

    def test_card_newer_version(self):
        """Cards from a newer tool report a minimum release."""
        err = SchemaVersionError.for_card("/c.json", 2)
        assert err.min_required == "a newer version"
