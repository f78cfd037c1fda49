"""Tests for raw file access."""

import json

import pytest

from kan.repositories import RawStateReader, update_stamp, write_json, write_toml


@pytest.fixture
def reader():
    return RawStateReader()


class TestRawStateReader:
    """Tests for RawStateReader."""

    def test_read_toml(self, tmp_path, reader):
        """TOML files decode to dicts."""
        path = tmp_path / "config.toml"
        path.write_text('kan_schema = "board/3"\nname = "main"\n')
        assert reader.read_toml(path) == {"kan_schema": "board/3", "name": "main"}

    def test_read_toml_invalid(self, tmp_path, reader):
        """Invalid TOML raises a ValueError subclass."""
        path = tmp_path / "config.toml"
        path.write_text("name = \n")
        with pytest.raises(ValueError):
            reader.read_toml(path)

    def test_read_toml_missing(self, tmp_path, reader):
        """Missing files raise OSError."""
        with pytest.raises(OSError):
            reader.read_toml(tmp_path / "nope.toml")

    def test_read_json(self, tmp_path, reader):
        """JSON objects decode to dicts."""
        path = tmp_path / "a.json"
        path.write_text('{"id": "a"}')
        assert reader.read_json(path) == {"id": "a"}

    def test_read_json_rejects_non_object(self, tmp_path, reader):
        """A top-level array is not a card."""
        path = tmp_path / "a.json"
        path.write_text("[1, 2]")
        with pytest.raises(json.JSONDecodeError):
            reader.read_json(path)

    def test_list_card_ids(self, tmp_path, reader):
        """Only .json files count, sorted by name."""
        cards = tmp_path / "cards"
        cards.mkdir()
        (cards / "b.json").write_text("{}")
        (cards / "a.json").write_text("{}")
        (cards / "notes.txt").write_text("")
        (cards / "dir.json").mkdir()
        assert reader.list_card_ids(cards) == ["a", "b"]

    def test_list_card_ids_missing_dir(self, tmp_path, reader):
        """A missing cards directory has no cards."""
        assert reader.list_card_ids(tmp_path / "cards") == []


class TestWriters:
    """Tests for write_toml and write_json."""

    def test_write_toml_creates_parents(self, tmp_path, reader):
        """Parent directories are created."""
        path = tmp_path / "a" / "b" / "config.toml"
        write_toml(path, {"kan_schema": "board/3", "columns": [{"name": "x"}]})
        assert reader.read_toml(path)["columns"] == [{"name": "x"}]

    def test_write_json_format(self, tmp_path):
        """Two-space indent, unescaped unicode, and a trailing newline."""
        path = tmp_path / "card.json"
        write_json(path, {"_v": 1, "title": "café"})
        assert path.read_text(encoding="utf-8") == '{\n  "_v": 1,\n  "title": "café"\n}\n'


class TestUpdateStamp:
    """Tests for update_stamp."""

    def test_prepend_keeps_original_as_suffix(self, tmp_path):
        """Without a stamp the original bytes are untouched after the new line."""
        path = tmp_path / "config.toml"
        original = b'# my board\nname = "main"   # trailing\n\n[[columns]]\nname = "a"\n'
        path.write_bytes(original)

        update_stamp(path, "kan_schema", "board/3")

        content = path.read_bytes()
        assert content.endswith(original)
        assert content == b'kan_schema = "board/3"\n\n' + original

    def test_replaces_existing_line(self, tmp_path):
        """An existing top-level stamp line is rewritten in place."""
        path = tmp_path / "config.toml"
        path.write_bytes(b'name = "main"\nkan_schema = "board/2"\r\n[x]\ny = 1\n')

        update_stamp(path, "kan_schema", "board/3")

        assert path.read_bytes() == b'name = "main"\nkan_schema = "board/3"\r\n[x]\ny = 1\n'

    def test_ignores_key_inside_table(self, tmp_path):
        """A same-named key under a table header is not the stamp."""
        path = tmp_path / "config.toml"
        original = b'name = "main"\n\n[meta]\nkan_schema = "other"\n'
        path.write_bytes(original)

        update_stamp(path, "kan_schema", "board/3")

        assert path.read_bytes() == b'kan_schema = "board/3"\n\n' + original

    def test_result_is_valid_toml(self, tmp_path, reader):
        """The stamped file decodes with the new value."""
        path = tmp_path / "config.toml"
        path.write_text('editor = "vim"\n')
        update_stamp(path, "kan_schema", "global/1")
        assert reader.read_toml(path) == {"kan_schema": "global/1", "editor": "vim"}
